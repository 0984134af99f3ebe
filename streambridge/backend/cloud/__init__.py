from .drive_proxy import DriveProxy, build_direct_url

__all__ = [
    "DriveProxy",
    "build_direct_url",
]
