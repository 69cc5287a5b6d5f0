from __future__ import annotations

import stat

import asyncssh

from core.errors import RemoteProtocolError
from core.remote.models import FileDescriptor, FileKind
from core.remote.session import RemoteSession, describe_error

_SKIPPED_NAMES = {".", ".."}
_FILEXFER_TYPE_DIRECTORY = 2
_FILEXFER_TYPE_SYMLINK = 3


def is_symlink(attrs: asyncssh.SFTPAttrs) -> bool:
    permissions = attrs.permissions
    if permissions is not None:
        return stat.S_ISLNK(permissions)
    return attrs.type == _FILEXFER_TYPE_SYMLINK


def is_directory(attrs: asyncssh.SFTPAttrs) -> bool:
    permissions = attrs.permissions
    if permissions is not None:
        return stat.S_ISDIR(permissions)
    return attrs.type == _FILEXFER_TYPE_DIRECTORY


def classify_entry(name: str, attrs: asyncssh.SFTPAttrs) -> FileKind:
    if is_directory(attrs):
        return FileKind.directory()

    stem, dot, extension = name.rpartition(".")
    if dot == "" or stem == "":
        return FileKind.unknown()
    return FileKind.from_extension(extension)


async def stat_remote(session: RemoteSession, remote_path: str) -> asyncssh.SFTPAttrs:
    try:
        return await session.sftp.stat(remote_path)
    except asyncssh.SFTPError as error:
        raise RemoteProtocolError(
            f"Failed to get file metadata: {describe_error(error)}", path=remote_path
        ) from error


async def lstat_remote(session: RemoteSession, remote_path: str) -> asyncssh.SFTPAttrs:
    """Like ``stat_remote`` but describes a symlink itself instead of its target."""
    try:
        return await session.sftp.lstat(remote_path)
    except asyncssh.SFTPError as error:
        raise RemoteProtocolError(
            f"Failed to get file metadata: {describe_error(error)}", path=remote_path
        ) from error


async def read_dir(session: RemoteSession, remote_dir: str) -> list[asyncssh.SFTPName]:
    try:
        entries = await session.sftp.readdir(remote_dir)
    except asyncssh.SFTPError as error:
        raise RemoteProtocolError(
            f"Failed to read directory: {describe_error(error)}", path=remote_dir
        ) from error

    children: list[asyncssh.SFTPName] = []
    for entry in entries:
        if isinstance(entry.filename, bytes):
            entry.filename = entry.filename.decode("utf-8", errors="replace")
        if entry.filename not in _SKIPPED_NAMES:
            children.append(entry)
    return children


class DirectoryLister:
    async def list(self, session: RemoteSession, remote_dir: str) -> list[FileDescriptor]:
        files: list[FileDescriptor] = []
        for entry in await read_dir(session, remote_dir):
            attrs = entry.attrs
            files.append(
                FileDescriptor(
                    name=entry.filename,
                    kind=classify_entry(entry.filename, attrs),
                    size=int(attrs.size) if attrs.size is not None else 0,
                    last_modified=str(int(attrs.mtime)) if attrs.mtime is not None else "0",
                )
            )
        return files
