"""
HTTP `Range` header parsing for single byte ranges.

Only `bytes=<start>-[<end>]` is accepted. Anything else (other units,
suffix ranges, multiple ranges, non-numeric bounds, start past the end of
the file, start > end) is rejected with 416, never served as a full 200.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from ..errors import RangeNotSatisfiableError

RANGE_PATTERN = re.compile(r"^bytes=\s*(\d+)\s*-\s*(\d*)\s*$")


@dataclass(frozen=True)
class ByteRange:
    """Inclusive byte interval `[start, end]`."""
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def content_range(self, file_length: int) -> str:
        return f"bytes {self.start}-{self.end}/{file_length}"


def parse_range_header(header: Optional[str], file_length: int) -> Optional[ByteRange]:
    """
    Parse a `Range` header against a file of `file_length` bytes.

    Returns:
        None when no header was sent, else the satisfiable ByteRange. An end
        past the last byte is clamped to `file_length - 1`.

    Raises:
        RangeNotSatisfiableError: malformed or unsatisfiable range.
    """
    if header is None:
        return None

    match = RANGE_PATTERN.match(header.strip())
    if not match:
        raise RangeNotSatisfiableError(f"Malformed Range header: {header!r}", file_length=file_length)

    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else file_length - 1

    if start >= file_length:
        raise RangeNotSatisfiableError(
            f"Range start {start} is beyond the end of the file ({file_length} bytes)",
            file_length=file_length,
        )
    if start > end:
        raise RangeNotSatisfiableError(f"Range start {start} is after range end {end}", file_length=file_length)

    return ByteRange(start=start, end=min(end, file_length - 1))
