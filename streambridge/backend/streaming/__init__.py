"""
HTTP delivery of swarm files.

Provides:
- Range header parsing (range.py)
- 200/206 streaming responses with disconnect teardown (responder.py)
- The /stream routes (api.py)
"""

from .range import ByteRange, parse_range_header
from .responder import stream_swarm_file

__all__ = [
    "ByteRange",
    "parse_range_header",
    "stream_swarm_file",
]
