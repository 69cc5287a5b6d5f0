from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Sequence

from core.config import AppConfig
from core.errors import BridgeError, LocalIOError, PathError
from core.logging import get_logger
from core.fileops.file_ops_service import FileOpsService
from core.profiles.loader import load_connection_profile
from core.profiles.models import ConnectionProfile
from core.remote.lister import DirectoryLister, is_directory, stat_remote
from core.remote.models import FileDescriptor
from core.remote.remote_paths import join_remote, split_path, validate_segment
from core.remote.session import RemoteSession, open_session
from core.remote.workspace import WorkspaceResolver
from core.transfers.archive_builder import ArchiveBuilder
from core.transfers.progress import NullProgressSink, ProgressSink
from core.transfers.transfer_engine import TransferEngine
from core.transfers.transfer_models import TransferResult

ProfileLoader = Callable[[], ConnectionProfile]
SessionOpener = Callable[[ConnectionProfile, float], Awaitable[RemoteSession]]


@dataclass(slots=True)
class CommandResult:
    success: bool
    message: str
    value: Any = None


class BridgeCommands:
    """Entry points for the presentation layer, one per user action.

    Every command opens its own session, runs against the caller's workspace
    and reports either a value or a diagnostic message through
    ``CommandResult``. Nothing is shared between two commands.
    """

    def __init__(
        self,
        config: AppConfig,
        progress: ProgressSink | None = None,
        profile_loader: ProfileLoader | None = None,
        session_opener: SessionOpener | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._progress = progress or NullProgressSink()
        self._profile_loader = profile_loader or (
            lambda: load_connection_profile(verify_host_key=config.get_verify_host_key())
        )
        self._session_opener = session_opener or open_session
        self._logger = logger or get_logger("commands")

        self._workspace = WorkspaceResolver(config.get_base_dir_name())
        self._lister = DirectoryLister()
        self._engine = TransferEngine(self._progress, chunk_size=config.get_chunk_size())
        self._archive = ArchiveBuilder(self._engine, self._progress)
        self._fileops = FileOpsService()

    async def connect_to_pi(self, user_name: str, path: str = "") -> CommandResult:
        async def operation() -> list[FileDescriptor]:
            sub_path = _validated_location(user_name, split_path(path))
            async with await self._open() as session:
                remote_dir = await self._workspace.resolve_workspace(session, user_name, sub_path)
                return await self._lister.list(session, remote_dir)

        return await self._run("connect_to_pi", operation)

    async def download_files(
        self,
        user_name: str,
        current_path: Sequence[str],
        file_names: Sequence[str],
    ) -> CommandResult:
        async def operation() -> Path:
            if len(file_names) == 0:
                raise PathError("No files selected for download")
            _validated_location(user_name, current_path)
            for name in file_names:
                validate_segment(name)
            downloads_dir = self._config.get_downloads_dir()

            async with await self._open() as session:
                remote_dir = await self._workspace.resolve_workspace(session, user_name, current_path)
                if len(file_names) == 1:
                    remote_path = join_remote(remote_dir, file_names[0])
                    attrs = await stat_remote(session, remote_path)
                    if not is_directory(attrs):
                        return await self._engine.download_file(session, remote_path, downloads_dir)
                return await self._archive.build_zip(session, remote_dir, file_names, downloads_dir)

        return await self._run("download_files", operation)

    async def upload_files(
        self,
        user_name: str,
        current_path: Sequence[str],
        local_file_paths: Sequence[str | Path],
    ) -> CommandResult:
        async def operation() -> TransferResult:
            sources = [Path(item) for item in local_file_paths]
            _validated_location(user_name, current_path)
            for source in sources:
                validate_segment(source.name)

            bytes_transferred = 0
            async with await self._open() as session:
                remote_dir = await self._workspace.resolve_workspace(session, user_name, current_path)
                for source in sources:
                    remote_path = join_remote(remote_dir, source.name)
                    bytes_transferred += await self._engine.upload_file(session, remote_path, source)

            return TransferResult(
                local_path=None,
                bytes_transferred=bytes_transferred,
                files_transferred=len(sources),
            )

        return await self._run("upload_files", operation)

    async def create_folder(self, user_name: str, current_path: Sequence[str], folder_name: str) -> CommandResult:
        async def operation() -> None:
            _validated_location(user_name, current_path)
            validate_segment(folder_name)
            async with await self._open() as session:
                remote_dir = await self._workspace.resolve_workspace(session, user_name, current_path)
                await self._fileops.create_folder(session, remote_dir, folder_name)

        return await self._run("create_folder", operation)

    async def rename_file(
        self,
        user_name: str,
        current_path: Sequence[str],
        old_name: str,
        new_name: str,
    ) -> CommandResult:
        async def operation() -> None:
            _validated_location(user_name, current_path)
            validate_segment(old_name)
            validate_segment(new_name)
            async with await self._open() as session:
                remote_dir = await self._workspace.resolve_workspace(session, user_name, current_path)
                await self._fileops.rename(session, remote_dir, old_name, new_name)

        return await self._run("rename_file", operation)

    async def delete_files(self, user_name: str, current_path: Sequence[str], file_names: Sequence[str]) -> CommandResult:
        async def operation() -> None:
            _validated_location(user_name, current_path)
            for name in file_names:
                validate_segment(name)
            async with await self._open() as session:
                remote_dir = await self._workspace.resolve_workspace(session, user_name, current_path)
                await self._fileops.delete_many(session, remote_dir, file_names)

        return await self._run("delete_files", operation)

    async def read_file(self, user_name: str, current_path: Sequence[str], file_name: str) -> CommandResult:
        async def operation() -> str:
            _validated_location(user_name, current_path)
            validate_segment(file_name)
            async with await self._open() as session:
                remote_dir = await self._workspace.resolve_workspace(session, user_name, current_path)
                return await self._fileops.read_file(session, remote_dir, file_name)

        return await self._run("read_file", operation)

    async def save_file(
        self,
        user_name: str,
        current_path: Sequence[str],
        file_name: str,
        content: str,
    ) -> CommandResult:
        async def operation() -> None:
            _validated_location(user_name, current_path)
            validate_segment(file_name)
            async with await self._open() as session:
                remote_dir = await self._workspace.resolve_workspace(session, user_name, current_path)
                await self._fileops.save_file(session, remote_dir, file_name, content)

        return await self._run("save_file", operation)

    async def get_storage_used(self, user_name: str) -> CommandResult:
        async def operation() -> int:
            validate_segment(user_name)
            async with await self._open() as session:
                remote_dir = await self._workspace.resolve_workspace(session, user_name)
                return await self._fileops.storage_used(session, remote_dir)

        return await self._run("get_storage_used", operation)

    async def get_file_sizes(self, file_paths: Sequence[str | Path]) -> CommandResult:
        async def operation() -> list[int]:
            sizes: list[int] = []
            for item in file_paths:
                path = Path(item)
                try:
                    sizes.append(path.stat().st_size)
                except OSError as error:
                    raise LocalIOError(f"Failed to read local file metadata: {error}", path=str(path)) from error
            return sizes

        return await self._run("get_file_sizes", operation)

    async def _open(self) -> RemoteSession:
        profile = self._profile_loader()
        return await self._session_opener(profile, self._config.get_connect_timeout_seconds())

    async def _run(self, command: str, operation: Callable[[], Awaitable[Any]]) -> CommandResult:
        try:
            value = await operation()
        except BridgeError as error:
            self._logger.error("%s failed: %s", command, error)
            return CommandResult(success=False, message=str(error))
        except Exception as error:
            self._logger.exception("%s failed unexpectedly", command)
            return CommandResult(success=False, message=str(error) or type(error).__name__)

        self._logger.debug("%s succeeded", command)
        return CommandResult(success=True, message="ok", value=value)


def _validated_location(user_name: str, sub_path: Sequence[str]) -> list[str]:
    validate_segment(user_name)
    return [validate_segment(segment) for segment in sub_path]
