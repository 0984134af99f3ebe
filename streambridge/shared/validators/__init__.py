from .stream_link import LinkClassification, LinkKind, classify_link, extract_drive_file_id

__all__ = [
    "LinkClassification",
    "LinkKind",
    "classify_link",
    "extract_drive_file_id",
]
