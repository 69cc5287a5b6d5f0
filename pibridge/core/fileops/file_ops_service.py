from __future__ import annotations

import logging
from typing import Sequence

import asyncssh

from core.errors import RemoteProtocolError
from core.logging import get_logger
from core.remote.lister import is_directory, is_symlink, lstat_remote, read_dir
from core.remote.remote_paths import join_remote
from core.remote.session import RemoteSession, describe_error
from core.remote.workspace import DIRECTORY_MODE


class FileOpsService:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or get_logger("fileops")

    async def create_folder(self, session: RemoteSession, path: str, name: str) -> str:
        folder_path = join_remote(path, name)
        try:
            await session.sftp.mkdir(folder_path, asyncssh.SFTPAttrs(permissions=DIRECTORY_MODE))
        except asyncssh.SFTPError as error:
            raise RemoteProtocolError(
                f"Failed to create folder: {describe_error(error)}", path=folder_path
            ) from error

        self._logger.info("Created folder %s", folder_path)
        return folder_path

    async def rename(self, session: RemoteSession, path: str, old_name: str, new_name: str) -> str:
        old_path = join_remote(path, old_name)
        new_path = join_remote(path, new_name)
        try:
            await session.sftp.rename(old_path, new_path)
        except asyncssh.SFTPError as error:
            raise RemoteProtocolError(
                f"Failed to rename to {new_path}: {describe_error(error)}", path=old_path
            ) from error

        self._logger.info("Renamed %s to %s", old_path, new_path)
        return new_path

    async def delete_many(self, session: RemoteSession, path: str, names: Sequence[str]) -> None:
        for name in names:
            target = join_remote(path, name)
            attrs = await lstat_remote(session, target)
            # links are removed as entries, their targets are never walked
            if is_directory(attrs) and not is_symlink(attrs):
                await self._delete_tree(session, target)
            else:
                await self._unlink(session, target)
            self._logger.info("Deleted %s", target)

    async def read_file(self, session: RemoteSession, path: str, name: str) -> str:
        file_path = join_remote(path, name)
        try:
            remote_file = await session.sftp.open(file_path, "rb")
        except asyncssh.SFTPError as error:
            raise RemoteProtocolError(
                f"Failed to open remote file: {describe_error(error)}", path=file_path
            ) from error

        async with remote_file:
            try:
                payload = await remote_file.read()
            except asyncssh.SFTPError as error:
                raise RemoteProtocolError(
                    f"Failed to read remote file: {describe_error(error)}", path=file_path
                ) from error

        try:
            return bytes(payload).decode("utf-8")
        except UnicodeDecodeError as error:
            raise RemoteProtocolError("Failed to read remote file as UTF-8 text", path=file_path) from error

    async def save_file(self, session: RemoteSession, path: str, name: str, content: str) -> int:
        file_path = join_remote(path, name)
        payload = content.encode("utf-8")
        try:
            remote_file = await session.sftp.open(file_path, "wb")
        except asyncssh.SFTPError as error:
            raise RemoteProtocolError(
                f"Failed to create remote file: {describe_error(error)}", path=file_path
            ) from error

        async with remote_file:
            try:
                await remote_file.write(payload)
            except asyncssh.SFTPError as error:
                raise RemoteProtocolError(
                    f"Failed to write to remote file: {describe_error(error)}", path=file_path
                ) from error

        self._logger.info("Saved %s (%d bytes)", file_path, len(payload))
        return len(payload)

    async def storage_used(self, session: RemoteSession, root: str) -> int:
        total = 0
        pending = [root]
        while pending:
            current = pending.pop()
            for entry in await read_dir(session, current):
                if is_directory(entry.attrs):
                    pending.append(f"{current}/{entry.filename}")
                elif entry.attrs.size is not None:
                    total += int(entry.attrs.size)
        return total

    async def _delete_tree(self, session: RemoteSession, root: str) -> None:
        # directories are removed in reverse discovery order, so children go first
        discovered: list[str] = []
        pending = [root]
        while pending:
            current = pending.pop()
            discovered.append(current)
            for entry in await read_dir(session, current):
                child = f"{current}/{entry.filename}"
                if is_directory(entry.attrs) and not is_symlink(entry.attrs):
                    pending.append(child)
                else:
                    await self._unlink(session, child)

        for directory in reversed(discovered):
            try:
                await session.sftp.rmdir(directory)
            except asyncssh.SFTPError as error:
                raise RemoteProtocolError(
                    f"Failed to remove directory: {describe_error(error)}", path=directory
                ) from error

    async def _unlink(self, session: RemoteSession, remote_path: str) -> None:
        try:
            await session.sftp.remove(remote_path)
        except asyncssh.SFTPError as error:
            raise RemoteProtocolError(
                f"Failed to delete file: {describe_error(error)}", path=remote_path
            ) from error
