from __future__ import annotations

import logging
from typing import Sequence

import asyncssh

from core.config import DEFAULT_BASE_DIR_NAME
from core.errors import RemoteProtocolError
from core.logging import get_logger
from core.remote.remote_paths import join_remote, validate_segment
from core.remote.session import RemoteSession, describe_error

DIRECTORY_MODE = 0o755


class WorkspaceResolver:
    """Locates and provisions ``<home>/<base>/<user>`` on the remote host."""

    def __init__(self, base_dir_name: str = DEFAULT_BASE_DIR_NAME, logger: logging.Logger | None = None) -> None:
        self._base_dir_name = validate_segment(base_dir_name)
        self._logger = logger or get_logger("workspace")

    async def resolve_home(self, session: RemoteSession) -> str:
        try:
            result = await session.connection.run("echo $HOME", check=False)
        except (asyncssh.Error, OSError) as error:
            raise RemoteProtocolError(
                f"Failed to execute command to get home directory: {describe_error(error)}"
            ) from error

        if result.exit_status != 0:
            raise RemoteProtocolError(
                f"Command to get home directory failed with exit status: {result.exit_status}"
            )

        stdout = result.stdout
        if isinstance(stdout, bytes):
            stdout = stdout.decode("utf-8", errors="replace")
        home = (stdout or "").strip()
        if home == "":
            raise RemoteProtocolError("Command to get home directory returned no output")
        return home

    async def ensure_base(self, session: RemoteSession, home: str) -> str:
        base_dir = join_remote(home, self._base_dir_name)
        await self._ensure_directory(session, base_dir, "base directory")
        return base_dir

    async def ensure_user_dir(self, session: RemoteSession, base_dir: str, user_name: str) -> str:
        user_dir = join_remote(base_dir, user_name)
        await self._ensure_directory(session, user_dir, "user directory")
        return user_dir

    async def resolve_workspace(
        self,
        session: RemoteSession,
        user_name: str,
        sub_path: Sequence[str] = (),
    ) -> str:
        validate_segment(user_name)
        for segment in sub_path:
            validate_segment(segment)

        home = await self.resolve_home(session)
        base_dir = await self.ensure_base(session, home)
        user_dir = await self.ensure_user_dir(session, base_dir, user_name)
        return join_remote(user_dir, *sub_path)

    async def _ensure_directory(self, session: RemoteSession, remote_dir: str, label: str) -> None:
        try:
            await session.sftp.stat(remote_dir)
            return
        except asyncssh.SFTPError:
            pass

        try:
            await session.sftp.mkdir(remote_dir, asyncssh.SFTPAttrs(permissions=DIRECTORY_MODE))
        except asyncssh.SFTPError as error:
            raise RemoteProtocolError(
                f"Failed to create {label}: {describe_error(error)}", path=remote_dir
            ) from error

        self._logger.info("Created %s %s", label, remote_dir)
