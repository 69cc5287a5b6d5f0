from __future__ import annotations

import logging
from pathlib import Path
from typing import Awaitable, Callable

import asyncssh

from core.errors import LocalIOError, RemoteProtocolError
from core.logging import get_logger
from core.remote.lister import stat_remote
from core.remote.remote_paths import remote_basename
from core.remote.session import RemoteSession, describe_error
from core.transfers.progress import NullProgressSink, ProgressSink, ProgressTopic
from core.transfers.transfer_models import CHUNK_SIZE

FILE_MODE = 0o644

ChunkReader = Callable[[int], Awaitable[bytes]]
ChunkWriter = Callable[[bytes], None]


class TransferEngine:
    """Moves file contents between the local disk and the remote host.

    Every transfer goes through one buffer of ``chunk_size`` bytes at a time
    and reports the cumulative byte count after each chunk.
    """

    def __init__(
        self,
        progress: ProgressSink | None = None,
        chunk_size: int = CHUNK_SIZE,
        logger: logging.Logger | None = None,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._progress = progress or NullProgressSink()
        self._chunk_size = chunk_size
        self._logger = logger or get_logger("transfers")

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    async def download_file(self, session: RemoteSession, remote_path: str, downloads_dir: Path) -> Path:
        local_path = Path(downloads_dir) / remote_basename(remote_path)

        total_size = await self.remote_size(session, remote_path)
        self._progress.emit(ProgressTopic.TOTAL_SIZE, total_size)

        try:
            local_file = local_path.open("wb")
        except OSError as error:
            raise LocalIOError(f"Failed to create local file: {error}", path=str(local_path)) from error

        with local_file:
            def write(chunk: bytes) -> None:
                try:
                    local_file.write(chunk)
                except OSError as error:
                    raise LocalIOError(f"Failed to write to local file: {error}", path=str(local_path)) from error

            transferred = await self.stream_remote_file(
                session,
                remote_path,
                write,
                ProgressTopic.DOWNLOAD_PROGRESS,
            )

            try:
                local_file.flush()
            except OSError as error:
                raise LocalIOError(f"Failed to flush local file: {error}", path=str(local_path)) from error

        self._logger.info("Downloaded %s to %s (%d bytes)", remote_path, local_path, transferred)
        return local_path

    async def upload_file(self, session: RemoteSession, remote_path: str, local_path: Path) -> int:
        source = Path(local_path)
        try:
            if not source.is_file():
                raise LocalIOError("Local file does not exist", path=str(source))
            total_size = source.stat().st_size
        except OSError as error:
            raise LocalIOError(f"Failed to read local file metadata: {error}", path=str(source)) from error
        self._progress.emit(ProgressTopic.TOTAL_SIZE, total_size)

        try:
            local_file = source.open("rb")
        except OSError as error:
            raise LocalIOError(f"Failed to open local file: {error}", path=str(source)) from error

        with local_file:
            try:
                remote_file = await session.sftp.open(
                    remote_path,
                    "wb",
                    asyncssh.SFTPAttrs(permissions=FILE_MODE),
                )
            except asyncssh.SFTPError as error:
                raise RemoteProtocolError(
                    f"Failed to create remote file: {describe_error(error)}", path=remote_path
                ) from error

            async def read(size: int) -> bytes:
                try:
                    return local_file.read(size)
                except OSError as error:
                    raise LocalIOError(f"Failed to read local file: {error}", path=str(source)) from error

            async def write(chunk: bytes) -> None:
                try:
                    await remote_file.write(chunk)
                except asyncssh.SFTPError as error:
                    raise RemoteProtocolError(
                        f"Failed to write to remote file: {describe_error(error)}", path=remote_path
                    ) from error

            async with remote_file:
                transferred = await self._pump(read, write, ProgressTopic.UPLOAD_PROGRESS)

        self._logger.info("Uploaded %s to %s (%d bytes)", source, remote_path, transferred)
        return transferred

    async def remote_size(self, session: RemoteSession, remote_path: str) -> int:
        attrs = await stat_remote(session, remote_path)
        return int(attrs.size) if attrs.size is not None else 0

    async def stream_remote_file(
        self,
        session: RemoteSession,
        remote_path: str,
        write: ChunkWriter,
        topic: ProgressTopic,
        offset: int = 0,
    ) -> int:
        """Read ``remote_path`` chunk by chunk into ``write``.

        Progress for ``topic`` is reported as ``offset`` plus the bytes read so
        far, so several files can share one cumulative counter. Returns the
        number of bytes read from this file.
        """
        try:
            remote_file = await session.sftp.open(remote_path, "rb")
        except asyncssh.SFTPError as error:
            raise RemoteProtocolError(
                f"Failed to open remote file: {describe_error(error)}", path=remote_path
            ) from error

        async def read(size: int) -> bytes:
            try:
                return await remote_file.read(size)
            except asyncssh.SFTPError as error:
                raise RemoteProtocolError(
                    f"Failed to read remote file: {describe_error(error)}", path=remote_path
                ) from error

        async def forward(chunk: bytes) -> None:
            write(chunk)

        async with remote_file:
            return await self._pump(read, forward, topic, offset)

    async def _pump(
        self,
        read: ChunkReader,
        write: Callable[[bytes], Awaitable[None]],
        topic: ProgressTopic,
        offset: int = 0,
    ) -> int:
        transferred = 0
        while True:
            chunk = await read(self._chunk_size)
            if not chunk:
                break

            await write(chunk)
            transferred += len(chunk)
            self._progress.emit(topic, offset + transferred)

            # a short read means end of file
            if len(chunk) < self._chunk_size:
                break
        return transferred
