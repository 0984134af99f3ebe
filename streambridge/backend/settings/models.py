from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000
DEFAULT_READY_TIMEOUT_S = 30.0
DEFAULT_MEDIA_SUFFIX = ".mp4"
DEFAULT_CHUNK_SIZE = 256 * 1024
DEFAULT_DOWNLOAD_DIR = "downloads"
DEFAULT_CLOUD_TIMEOUT_S = 30.0
DEFAULT_LOG_LEVEL = "INFO"


def _as_int(value: Any, default: int, *, minimum: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= minimum else default


def _as_float(value: Any, default: float, *, minimum: float) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > minimum else default


def _as_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass
class BridgeSettings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    # Base used in returned stream URLs; falls back to the request's base URL.
    public_base_url: Optional[str] = None
    ready_timeout_s: float = DEFAULT_READY_TIMEOUT_S
    media_suffix: str = DEFAULT_MEDIA_SUFFIX
    chunk_size: int = DEFAULT_CHUNK_SIZE
    download_dir: str = DEFAULT_DOWNLOAD_DIR
    cloud_timeout_s: float = DEFAULT_CLOUD_TIMEOUT_S
    proxy_url: Optional[str] = None
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_persist_dict(cls, data: dict[str, Any]) -> "BridgeSettings":
        raw_origins = data.get("cors_origins")
        if isinstance(raw_origins, (list, tuple)):
            cors_origins = [str(o) for o in raw_origins if str(o).strip()]
        else:
            cors_origins = ["*"]

        media_suffix = str(data.get("media_suffix", DEFAULT_MEDIA_SUFFIX) or DEFAULT_MEDIA_SUFFIX)
        log_level = str(data.get("log_level", DEFAULT_LOG_LEVEL) or DEFAULT_LOG_LEVEL).upper()

        return cls(
            host=str(data.get("host", DEFAULT_HOST) or DEFAULT_HOST),
            port=_as_int(data.get("port"), DEFAULT_PORT, minimum=1),
            public_base_url=_as_optional_str(data.get("public_base_url")),
            ready_timeout_s=_as_float(data.get("ready_timeout_s"), DEFAULT_READY_TIMEOUT_S, minimum=0.0),
            media_suffix=media_suffix,
            chunk_size=_as_int(data.get("chunk_size"), DEFAULT_CHUNK_SIZE, minimum=1),
            download_dir=str(data.get("download_dir", DEFAULT_DOWNLOAD_DIR) or DEFAULT_DOWNLOAD_DIR),
            cloud_timeout_s=_as_float(data.get("cloud_timeout_s"), DEFAULT_CLOUD_TIMEOUT_S, minimum=0.0),
            proxy_url=_as_optional_str(data.get("proxy_url")),
            cors_origins=cors_origins,
            log_level=log_level,
        )
