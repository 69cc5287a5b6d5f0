from __future__ import annotations

from datetime import datetime
import logging
from pathlib import Path
import shutil
import tempfile
from typing import Sequence
import zipfile
import zlib

import asyncssh

from core.errors import ArchiveError, LocalIOError
from core.logging import get_logger
from core.remote.lister import is_directory, read_dir, stat_remote
from core.remote.remote_paths import join_remote, validate_segment
from core.remote.session import RemoteSession
from core.transfers.progress import NullProgressSink, ProgressSink, ProgressTopic
from core.transfers.transfer_engine import TransferEngine
from core.transfers.transfer_models import ArchiveEntry, ArchivePlan

ARCHIVE_PREFIX = "pi-interface"

_ARCHIVE_WRITE_ERRORS = (OSError, zlib.error, zipfile.LargeZipFile, RuntimeError, ValueError)


class ArchiveBuilder:
    """Bundles remote files and directory trees into one local ZIP file."""

    def __init__(
        self,
        engine: TransferEngine,
        progress: ProgressSink | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._engine = engine
        self._progress = progress or NullProgressSink()
        self._logger = logger or get_logger("archive")

    async def plan(self, session: RemoteSession, base_dir: str, item_names: Sequence[str]) -> ArchivePlan:
        entries: list[ArchiveEntry] = []
        directories: list[str] = []

        for name in dict.fromkeys(item_names):
            remote_path = join_remote(base_dir, validate_segment(name))
            attrs = await stat_remote(session, remote_path)
            if not is_directory(attrs):
                entries.append(ArchiveEntry(name, remote_path, _size_of(attrs)))
                continue

            directories.append(f"{name}/")
            pending: list[tuple[str, str]] = [(remote_path, name)]
            while pending:
                current_remote, current_archive = pending.pop()
                children = await read_dir(session, current_remote)
                subdirectories: list[tuple[str, str]] = []
                for child in children:
                    child_remote = f"{current_remote}/{child.filename}"
                    child_archive = f"{current_archive}/{child.filename}"
                    if is_directory(child.attrs):
                        directories.append(f"{child_archive}/")
                        subdirectories.append((child_remote, child_archive))
                    else:
                        entries.append(ArchiveEntry(child_archive, child_remote, _size_of(child.attrs)))
                pending.extend(reversed(subdirectories))

        return ArchivePlan(entries=entries, directories=directories)

    async def build_zip(
        self,
        session: RemoteSession,
        base_dir: str,
        item_names: Sequence[str],
        downloads_dir: Path,
    ) -> Path:
        plan = await self.plan(session, base_dir, item_names)
        self._progress.emit(ProgressTopic.TOTAL_SIZE, plan.total_size)

        archive_name = _archive_name(datetime.now())
        with tempfile.TemporaryDirectory(prefix="pibridge-") as staging_dir:
            staging_path = Path(staging_dir) / archive_name
            await self._write_archive(session, plan, staging_path)
            destination = _unique_destination(Path(downloads_dir), archive_name)
            try:
                shutil.move(str(staging_path), str(destination))
            except OSError as error:
                raise LocalIOError(f"Failed to move archive: {error}", path=str(destination)) from error

        self._logger.info(
            "Created archive %s with %d files (%d bytes)",
            destination,
            len(plan.entries),
            plan.total_size,
        )
        return destination

    async def _write_archive(self, session: RemoteSession, plan: ArchivePlan, staging_path: Path) -> None:
        try:
            archive = zipfile.ZipFile(staging_path, "w", compression=zipfile.ZIP_DEFLATED, allowZip64=True)
        except _ARCHIVE_WRITE_ERRORS as error:
            raise ArchiveError(f"Failed to create archive: {error}", path=str(staging_path)) from error

        written = 0
        try:
            for directory in plan.directories:
                archive.writestr(directory, b"")

            for entry in plan.entries:
                with archive.open(entry.archive_path, "w", force_zip64=True) as target:
                    def write(chunk: bytes) -> None:
                        try:
                            target.write(chunk)
                        except _ARCHIVE_WRITE_ERRORS as error:
                            raise ArchiveError(
                                f"Failed to write archive entry: {error}", path=entry.archive_path
                            ) from error

                    written += await self._engine.stream_remote_file(
                        session,
                        entry.remote_path,
                        write,
                        ProgressTopic.ZIP_PROGRESS,
                        offset=written,
                    )
        except _ARCHIVE_WRITE_ERRORS as error:
            archive.close()
            raise ArchiveError(f"Failed to write archive: {error}", path=str(staging_path)) from error
        except BaseException:
            archive.close()
            raise

        try:
            archive.close()
        except _ARCHIVE_WRITE_ERRORS as error:
            raise ArchiveError(f"Failed to finalize archive: {error}", path=str(staging_path)) from error


def _size_of(attrs: asyncssh.SFTPAttrs) -> int:
    return int(attrs.size) if attrs.size is not None else 0


def _archive_name(now: datetime) -> str:
    return f"{ARCHIVE_PREFIX}_{now:%Y%m%d_%H%M%S_%f}.zip"


def _unique_destination(downloads_dir: Path, archive_name: str) -> Path:
    if not downloads_dir.is_dir():
        raise LocalIOError("Failed to find the Downloads directory", path=str(downloads_dir))

    candidate = downloads_dir / archive_name
    stem = candidate.stem
    counter = 2
    while candidate.exists():
        candidate = downloads_dir / f"{stem}-{counter}.zip"
        counter += 1
    return candidate
