"""
Swarm engine contract consumed by the job lifecycle manager.

An engine turns a swarm identifier into a handle. The handle becomes ready
once the file metadata is known, then exposes the contained files, each of
which can open a bounded byte stream.

Callbacks registered on a handle must be invoked on the event loop thread.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator, Callable, Optional, Sequence

ReadyCallback = Callable[[], None]
ErrorCallback = Callable[[BaseException], None]
DoneCallback = Callable[[], None]


class FileReadStream(ABC):
    """
    Async chunk iterator over an inclusive byte range of one file.

    `destroy()` releases engine resources and is idempotent; iteration after
    destroy ends immediately.
    """

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self

    @abstractmethod
    async def __anext__(self) -> bytes:
        raise NotImplementedError

    @abstractmethod
    def destroy(self) -> None:
        raise NotImplementedError

    @property
    @abstractmethod
    def destroyed(self) -> bool:
        raise NotImplementedError


class SwarmFile(ABC):
    @property
    @abstractmethod
    def name(self) -> str:
        raise NotImplementedError

    @property
    @abstractmethod
    def length(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def create_read_stream(self, start: int = 0, end: Optional[int] = None) -> FileReadStream:
        """Open a stream over `[start, end]` (inclusive); `end=None` means last byte."""
        raise NotImplementedError


class SwarmHandle(ABC):
    @property
    @abstractmethod
    def ready(self) -> bool:
        raise NotImplementedError

    @property
    @abstractmethod
    def name(self) -> Optional[str]:
        raise NotImplementedError

    @property
    @abstractmethod
    def files(self) -> Sequence[SwarmFile]:
        raise NotImplementedError

    @abstractmethod
    def on_ready(self, callback: ReadyCallback) -> None:
        raise NotImplementedError

    @abstractmethod
    def on_error(self, callback: ErrorCallback) -> None:
        raise NotImplementedError

    @abstractmethod
    def on_done(self, callback: DoneCallback) -> None:
        raise NotImplementedError

    @abstractmethod
    def destroy(self) -> None:
        raise NotImplementedError


class SwarmEngine(ABC):
    @abstractmethod
    def add(self, identifier: str) -> SwarmHandle:
        raise NotImplementedError

    async def close(self) -> None:
        """Release the engine session. Default: nothing to release."""
        return None


class SwarmEngineError(RuntimeError):
    """Error reported by a swarm engine (bad identifier, torrent error, read failure)."""
