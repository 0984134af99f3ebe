"""
Swarm engine backed by a single libtorrent session.

libtorrent reports progress through alerts. A polling task on the event loop
pops them and turns them into handle callbacks, so everything the lifecycle
manager sees happens on the loop thread.

Reads are piece based: a read stream asks for each piece it covers with a
deadline and `alert_when_available`, and libtorrent answers with a
read_piece_alert carrying the bytes once the piece is on disk.

Adding an info-hash the session already holds yields the same torrent, so
several handles can share one. Alerts go to all of them, a piece deadline is
only reset when no handle still waits on that piece, and the torrent leaves
the session when its last handle is destroyed.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Optional, Sequence

import libtorrent as lt

from .engine import (
    DoneCallback,
    ErrorCallback,
    FileReadStream,
    ReadyCallback,
    SwarmEngine,
    SwarmEngineError,
    SwarmFile,
    SwarmHandle,
)
from .pieces import PieceSpan, piece_spans

DEFAULT_POLL_INTERVAL_S = 0.2
DEFAULT_PIECE_DEADLINE_MS = 1000
DEFAULT_READ_AHEAD_PIECES = 4

logger = logging.getLogger(__name__)


def _default_session_settings() -> dict[str, Any]:
    return {
        "listen_interfaces": "0.0.0.0:6881",
        "alert_mask": (
            lt.alert.category_t.error_notification
            | lt.alert.category_t.status_notification
            | lt.alert.category_t.storage_notification
        ),
        "connections_limit": 200,
        "request_timeout": 10,
        "piece_timeout": 20,
        "peer_connect_timeout": 15,
    }


class LibtorrentReadStream(FileReadStream):
    def __init__(self, handle: "LibtorrentHandle", spans: Sequence[PieceSpan]) -> None:
        self._handle = handle
        self._spans = list(spans)
        self._index = 0
        self._destroyed = False

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    async def __anext__(self) -> bytes:
        if self._destroyed or self._index >= len(self._spans):
            raise StopAsyncIteration

        span = self._spans[self._index]
        upcoming = [s.piece for s in self._spans[self._index + 1 : self._index + 1 + self._handle.read_ahead]]
        self._handle.prioritize(upcoming)

        data = await self._handle.read_piece(span.piece)
        if self._destroyed:
            raise StopAsyncIteration
        self._index += 1
        return data[span.offset : span.offset + span.length]

    def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        self._handle.release_pieces(s.piece for s in self._spans[self._index :])


class LibtorrentFile(SwarmFile):
    def __init__(self, *, handle: "LibtorrentHandle", name: str, length: int, offset: int) -> None:
        self._handle = handle
        self._name = name
        self._length = length
        self._offset = offset

    @property
    def name(self) -> str:
        return self._name

    @property
    def length(self) -> int:
        return self._length

    def create_read_stream(self, start: int = 0, end: Optional[int] = None) -> FileReadStream:
        if end is None:
            end = self._length - 1
        if self._length == 0:
            return LibtorrentReadStream(self._handle, [])
        spans = piece_spans(
            file_offset=self._offset,
            start=start,
            end=end,
            piece_length=self._handle.piece_length,
        )
        return LibtorrentReadStream(self._handle, spans)


class LibtorrentHandle(SwarmHandle):
    def __init__(self, engine: "LibtorrentEngine", torrent: Any, key: str) -> None:
        self._engine = engine
        self._torrent = torrent
        self._key = key
        self._ready = False
        self._destroyed = False
        self._name: Optional[str] = None
        self._files: tuple[LibtorrentFile, ...] = ()
        self._piece_length = 0
        self._ready_callbacks: list[ReadyCallback] = []
        self._error_callbacks: list[ErrorCallback] = []
        self._done_callbacks: list[DoneCallback] = []
        self._piece_waiters: dict[int, list[asyncio.Future]] = {}

        if torrent.status().has_metadata:
            self._load_metadata()

    @property
    def key(self) -> str:
        return self._key

    @property
    def torrent(self) -> Any:
        return self._torrent

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def name(self) -> Optional[str]:
        return self._name

    @property
    def files(self) -> Sequence[SwarmFile]:
        return self._files

    @property
    def piece_length(self) -> int:
        return self._piece_length

    @property
    def read_ahead(self) -> int:
        return self._engine.read_ahead

    def on_ready(self, callback: ReadyCallback) -> None:
        self._ready_callbacks.append(callback)

    def on_error(self, callback: ErrorCallback) -> None:
        self._error_callbacks.append(callback)

    def on_done(self, callback: DoneCallback) -> None:
        self._done_callbacks.append(callback)

    def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        self._fail_piece_waiters(SwarmEngineError("torrent destroyed"))
        self._engine.remove(self)

    # ------------------------------------------------------------------
    # Piece access
    # ------------------------------------------------------------------

    async def read_piece(self, piece: int) -> bytes:
        if self._destroyed:
            raise SwarmEngineError("torrent destroyed")

        fut: asyncio.Future = asyncio.get_running_loop().create_future()
        waiters = self._piece_waiters.setdefault(piece, [])
        waiters.append(fut)
        if len(waiters) == 1:
            self._torrent.set_piece_deadline(
                piece,
                self._engine.piece_deadline_ms,
                lt.deadline_flags_t.alert_when_available,
            )

        try:
            return await fut
        finally:
            remaining = self._piece_waiters.get(piece)
            if remaining is not None and fut in remaining:
                remaining.remove(fut)
                if not remaining:
                    del self._piece_waiters[piece]
                    self._reset_deadline(piece)

    def prioritize(self, pieces: Sequence[int]) -> None:
        if self._destroyed:
            return
        for step, piece in enumerate(pieces, start=2):
            if not self._engine.piece_wanted(self._key, piece):
                self._torrent.set_piece_deadline(piece, self._engine.piece_deadline_ms * step)

    def release_pieces(self, pieces) -> None:
        for piece in pieces:
            self._reset_deadline(piece)

    def wants_piece(self, piece: int) -> bool:
        return piece in self._piece_waiters

    def _reset_deadline(self, piece: int) -> None:
        if self._destroyed or not self._torrent.is_valid():
            return
        if self._engine.piece_wanted(self._key, piece):
            return
        self._torrent.reset_piece_deadline(piece)

    # ------------------------------------------------------------------
    # Alert delivery (called by the engine on the loop thread)
    # ------------------------------------------------------------------

    def handle_metadata(self) -> None:
        if self._ready or self._destroyed:
            return
        self._load_metadata()
        if not self._ready:
            return
        for cb in list(self._ready_callbacks):
            cb()

    def handle_error(self, exc: BaseException) -> None:
        if self._destroyed:
            return
        self._fail_piece_waiters(exc)
        for cb in list(self._error_callbacks):
            cb(exc)

    def handle_finished(self) -> None:
        for cb in list(self._done_callbacks):
            cb()

    def handle_piece(self, piece: int, data: bytes, error: Optional[str]) -> None:
        waiters = self._piece_waiters.pop(piece, [])
        for fut in waiters:
            if fut.done():
                continue
            if error:
                fut.set_exception(SwarmEngineError(f"piece {piece} read failed: {error}"))
            else:
                fut.set_result(data)

    def _fail_piece_waiters(self, exc: BaseException) -> None:
        waiters = self._piece_waiters
        self._piece_waiters = {}
        for futures in waiters.values():
            for fut in futures:
                if not fut.done():
                    fut.set_exception(exc)

    def _load_metadata(self) -> None:
        info = self._torrent.torrent_file()
        if info is None:
            return
        storage = info.files()
        self._piece_length = info.piece_length()
        self._name = info.name()
        self._files = tuple(
            LibtorrentFile(
                handle=self,
                name=os.path.basename(storage.file_path(i)),
                length=storage.file_size(i),
                offset=storage.file_offset(i),
            )
            for i in range(storage.num_files())
        )
        self._ready = True


class LibtorrentEngine(SwarmEngine):
    def __init__(
        self,
        *,
        save_path: Path,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
        piece_deadline_ms: int = DEFAULT_PIECE_DEADLINE_MS,
        read_ahead: int = DEFAULT_READ_AHEAD_PIECES,
        session_settings: Optional[dict[str, Any]] = None,
    ) -> None:
        self._save_path = Path(save_path)
        self._poll_interval_s = poll_interval_s
        self.piece_deadline_ms = piece_deadline_ms
        self.read_ahead = read_ahead

        settings = _default_session_settings()
        settings.update(session_settings or {})
        self._session = lt.session(settings)
        # Every live handle per info-hash; a retry may wrap a torrent that an
        # older job's handle still holds.
        self._handles: dict[str, list[LibtorrentHandle]] = {}
        self._poll_task: Optional[asyncio.Task[None]] = None

    def add(self, identifier: str) -> SwarmHandle:
        try:
            params = lt.parse_magnet_uri(identifier)
        except RuntimeError as exc:
            raise SwarmEngineError(f"invalid magnet link: {exc}") from exc
        return self.add_params(params)

    def add_params(self, params: Any) -> LibtorrentHandle:
        """
        Add a torrent from prepared `add_torrent_params`.

        Adding an info-hash already in the session returns its existing
        torrent; the new handle shares it with the older ones.
        """
        if not params.save_path:
            self._save_path.mkdir(parents=True, exist_ok=True)
            params.save_path = str(self._save_path)
        params.storage_mode = lt.storage_mode_t.storage_mode_sparse

        try:
            torrent = self._session.add_torrent(params)
        except RuntimeError as exc:
            raise SwarmEngineError(str(exc)) from exc

        key = str(torrent.info_hash())
        handle = LibtorrentHandle(self, torrent, key)
        self._handles.setdefault(key, []).append(handle)
        self._ensure_polling()
        return handle

    def handles_for(self, key: str) -> list[LibtorrentHandle]:
        return list(self._handles.get(key, ()))

    def piece_wanted(self, key: str, piece: int) -> bool:
        return any(h.wants_piece(piece) for h in self._handles.get(key, ()))

    def remove(self, handle: LibtorrentHandle) -> None:
        """Drop `handle`; the torrent leaves the session with its last handle."""
        owners = self._handles.get(handle.key)
        if owners is not None and handle in owners:
            owners.remove(handle)
        if owners:
            logger.info("Torrent %s still used by %d handle(s)", handle.key, len(owners))
            return

        self._handles.pop(handle.key, None)
        torrent = handle.torrent
        if torrent.is_valid():
            self._session.remove_torrent(torrent)

    async def close(self) -> None:
        for owners in list(self._handles.values()):
            for handle in list(owners):
                handle.destroy()
        task = self._poll_task
        self._poll_task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._session.pause()

    # ------------------------------------------------------------------
    # Alert pump
    # ------------------------------------------------------------------

    def _ensure_polling(self) -> None:
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.get_running_loop().create_task(
                self._poll_alerts(), name="streambridge-libtorrent-alerts"
            )

    async def _poll_alerts(self) -> None:
        while True:
            for alert in self._session.pop_alerts():
                self._dispatch(alert)
            await asyncio.sleep(self._poll_interval_s)

    def _lookup(self, torrent: Any) -> list[LibtorrentHandle]:
        if not torrent.is_valid():
            return []
        return self.handles_for(str(torrent.info_hash()))

    def _dispatch(self, alert: Any) -> None:
        if isinstance(alert, lt.read_piece_alert):
            error = alert.error.message() if alert.error.value() else None
            data = bytes(alert.buffer) if error is None else b""
            for handle in self._lookup(alert.handle):
                handle.handle_piece(alert.piece, data, error)
        elif isinstance(alert, lt.metadata_received_alert):
            for handle in self._lookup(alert.handle):
                handle.handle_metadata()
        elif isinstance(alert, lt.torrent_error_alert):
            for handle in self._lookup(alert.handle):
                handle.handle_error(SwarmEngineError(alert.error.message()))
        elif isinstance(alert, lt.torrent_finished_alert):
            for handle in self._lookup(alert.handle):
                handle.handle_finished()
        elif isinstance(alert, lt.file_error_alert):
            owners = self._lookup(alert.handle)
            if owners:
                logger.error("libtorrent file error: %s", alert.message())
            for handle in owners:
                handle.handle_error(SwarmEngineError(alert.error.message()))
