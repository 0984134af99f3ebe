"""
Byte-range to piece mapping for piece-based swarm storage.

A file inside a torrent starts at `file_offset` in the torrent's linear byte
space, which is cut into pieces of `piece_length` bytes.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PieceSpan:
    """Part of one piece covered by a byte range."""
    piece: int
    offset: int  # offset inside the piece
    length: int


def piece_spans(*, file_offset: int, start: int, end: int, piece_length: int) -> list[PieceSpan]:
    """
    Map the inclusive file range `[start, end]` to piece spans, in order.

    Raises:
        ValueError: on a non-positive piece length or an empty/negative range.
    """
    if piece_length <= 0:
        raise ValueError("piece_length must be > 0")
    if start < 0 or end < start:
        raise ValueError(f"invalid range {start}-{end}")

    abs_start = file_offset + start
    abs_end = file_offset + end

    spans: list[PieceSpan] = []
    for piece in range(abs_start // piece_length, abs_end // piece_length + 1):
        piece_start = piece * piece_length
        lo = max(abs_start, piece_start) - piece_start
        hi = min(abs_end, piece_start + piece_length - 1) - piece_start
        spans.append(PieceSpan(piece=piece, offset=lo, length=hi - lo + 1))
    return spans
