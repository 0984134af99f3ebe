"""
Stream link classification.

Decides which backend serves a link submitted by a caller:
- `magnet:` URIs go to the swarm engine
- Google Drive sharing links go to the cloud proxy (file id extracted)
- anything else is rejected with a reason that can be shown to the user
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import parse_qs, urlparse


SWARM_SCHEME_PREFIX = "magnet:"
CLOUD_HOST_MARKER = "drive.google.com"

# https://drive.google.com/file/d/<id>/view
DRIVE_PATH_ID_PATTERN = re.compile(r"/d/([a-zA-Z0-9_-]+)")
DRIVE_FILE_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")

ERROR_MISSING_LINK = "A valid link is required"
ERROR_MALFORMED_CLOUD_LINK = "Invalid Google Drive link"
ERROR_UNSUPPORTED_LINK = "Unsupported link type"


class LinkKind(str, Enum):
    SWARM = "swarm"
    CLOUD_FILE = "cloud_file"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class LinkClassification:
    """Classification result for one link."""

    kind: LinkKind
    link: str = ""
    file_id: Optional[str] = None
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.kind != LinkKind.UNSUPPORTED


def extract_drive_file_id(link: str) -> Optional[str]:
    """
    Extract the file id from a Google Drive link.

    Accepts the `/d/<id>` path form and the `?id=<id>` query form
    (`open?id=`, `uc?id=`). Returns None when no id can be found.
    """
    match = DRIVE_PATH_ID_PATTERN.search(link)
    if match:
        return match.group(1)

    try:
        query = parse_qs(urlparse(link).query)
    except ValueError:
        return None

    for candidate in query.get("id", []):
        if DRIVE_FILE_ID_PATTERN.match(candidate):
            return candidate
    return None


def classify_link(link: Optional[str]) -> LinkClassification:
    """
    Classify a caller-supplied link.

    Args:
        link: Raw link string (magnet URI or Drive sharing link).

    Returns:
        LinkClassification with `kind`, the stripped `link`, the Drive
        `file_id` for cloud links, and `error` for unsupported ones.
    """
    if not link or not link.strip():
        return LinkClassification(kind=LinkKind.UNSUPPORTED, error=ERROR_MISSING_LINK)

    link = link.strip()

    if link.startswith(SWARM_SCHEME_PREFIX):
        return LinkClassification(kind=LinkKind.SWARM, link=link)

    if CLOUD_HOST_MARKER in link:
        file_id = extract_drive_file_id(link)
        if not file_id:
            return LinkClassification(
                kind=LinkKind.UNSUPPORTED,
                link=link,
                error=ERROR_MALFORMED_CLOUD_LINK,
            )
        return LinkClassification(kind=LinkKind.CLOUD_FILE, link=link, file_id=file_id)

    return LinkClassification(kind=LinkKind.UNSUPPORTED, link=link, error=ERROR_UNSUPPORTED_LINK)
