from __future__ import annotations

from typing import Iterable, Optional

from .engine import SwarmFile

DEFAULT_MEDIA_SUFFIX = ".mp4"


def resolve_media_file(files: Iterable[SwarmFile], suffix: str = DEFAULT_MEDIA_SUFFIX) -> Optional[SwarmFile]:
    """
    Pick the playable file of a swarm resource.

    First file in listed order whose name ends with `suffix` (exact,
    case-sensitive). None when nothing matches.
    """
    for f in files:
        if f.name.endswith(suffix):
            return f
    return None
