from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import asyncssh
import pytest

from core.remote.session import RemoteSession
from core.transfers.progress import ProgressTopic

REMOTE_HOME = "/home/pi"


class FakeSFTPFile:
    def __init__(self, handle: Any, remote_path: str, read_counts: Counter[str]) -> None:
        self._handle = handle
        self._remote_path = remote_path
        self._read_counts = read_counts

    async def read(self, size: int = -1) -> bytes:
        self._read_counts[self._remote_path] += 1
        return self._handle.read(size)

    async def write(self, data: bytes) -> int:
        return self._handle.write(data)

    async def close(self) -> None:
        self._handle.close()

    async def __aenter__(self) -> FakeSFTPFile:
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.close()


class FakeSFTPClient:
    """In-memory stand-in for ``asyncssh.SFTPClient`` rooted at a local directory."""

    def __init__(self, root: Path) -> None:
        self._root = root
        self.read_counts: Counter[str] = Counter()
        self.failing_paths: set[str] = set()
        self.failing_opens: set[str] = set()
        self.exited = False

    def local(self, remote_path: str) -> Path:
        return self._root / remote_path.lstrip("/")

    def _check(self, remote_path: str) -> None:
        if remote_path in self.failing_paths:
            raise asyncssh.SFTPFailure("Permission denied")

    async def stat(self, remote_path: str) -> asyncssh.SFTPAttrs:
        self._check(remote_path)
        local_path = self.local(remote_path)
        if not local_path.exists():
            raise asyncssh.SFTPNoSuchFile("No such file")
        return _attrs_for(local_path)

    async def lstat(self, remote_path: str) -> asyncssh.SFTPAttrs:
        self._check(remote_path)
        local_path = self.local(remote_path)
        if not local_path.is_symlink() and not local_path.exists():
            raise asyncssh.SFTPNoSuchFile("No such file")
        return _attrs_for(local_path, follow_symlinks=False)

    async def mkdir(self, remote_path: str, attrs: asyncssh.SFTPAttrs | None = None) -> None:
        self._check(remote_path)
        try:
            self.local(remote_path).mkdir(mode=attrs.permissions if attrs and attrs.permissions else 0o777)
        except FileExistsError as error:
            raise asyncssh.SFTPFailure("File exists") from error
        except FileNotFoundError as error:
            raise asyncssh.SFTPNoSuchFile("No such file") from error

    async def readdir(self, remote_path: str) -> list[asyncssh.SFTPName]:
        self._check(remote_path)
        local_path = self.local(remote_path)
        if not local_path.is_dir():
            raise asyncssh.SFTPNoSuchFile("No such file")

        names = [
            asyncssh.SFTPName(filename=".", attrs=_attrs_for(local_path)),
            asyncssh.SFTPName(filename="..", attrs=_attrs_for(local_path.parent)),
        ]
        for child in sorted(local_path.iterdir()):
            names.append(asyncssh.SFTPName(filename=child.name, attrs=_attrs_for(child, follow_symlinks=False)))
        return names

    async def open(self, remote_path: str, mode: str = "r", attrs: asyncssh.SFTPAttrs | None = None) -> FakeSFTPFile:
        self._check(remote_path)
        if remote_path in self.failing_opens:
            raise asyncssh.SFTPFailure("Permission denied")
        local_mode = mode if "b" in mode else f"{mode}b"
        try:
            handle = self.local(remote_path).open(local_mode)
        except FileNotFoundError as error:
            raise asyncssh.SFTPNoSuchFile("No such file") from error
        except IsADirectoryError as error:
            raise asyncssh.SFTPFailure("Is a directory") from error
        return FakeSFTPFile(handle, remote_path, self.read_counts)

    async def rename(self, old_path: str, new_path: str) -> None:
        self._check(old_path)
        source = self.local(old_path)
        target = self.local(new_path)
        if not source.exists():
            raise asyncssh.SFTPNoSuchFile("No such file")
        if target.exists():
            raise asyncssh.SFTPFailure("File exists")
        source.rename(target)

    async def remove(self, remote_path: str) -> None:
        self._check(remote_path)
        try:
            self.local(remote_path).unlink()
        except FileNotFoundError as error:
            raise asyncssh.SFTPNoSuchFile("No such file") from error

    async def rmdir(self, remote_path: str) -> None:
        self._check(remote_path)
        try:
            self.local(remote_path).rmdir()
        except OSError as error:
            raise asyncssh.SFTPFailure(str(error)) from error

    def exit(self) -> None:
        self.exited = True


@dataclass
class FakeCompletedProcess:
    stdout: str
    exit_status: int


class FakeConnection:
    def __init__(self, sftp: FakeSFTPClient, home: str = REMOTE_HOME) -> None:
        self.sftp = sftp
        self.home = home
        self.exit_status = 0
        self.commands: list[str] = []
        self.closed = False
        self.wait_closed_called = False

    async def run(self, command: str, check: bool = False) -> FakeCompletedProcess:
        self.commands.append(command)
        return FakeCompletedProcess(stdout=f"{self.home}\n", exit_status=self.exit_status)

    async def start_sftp_client(self) -> FakeSFTPClient:
        return self.sftp

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        self.wait_closed_called = True


class RecordingProgressSink:
    def __init__(self) -> None:
        self.events: list[tuple[ProgressTopic, int]] = []

    def emit(self, topic: ProgressTopic, value: int) -> None:
        self.events.append((ProgressTopic(topic), value))

    def values(self, topic: ProgressTopic) -> list[int]:
        return [value for event_topic, value in self.events if event_topic is topic]


def _attrs_for(local_path: Path, follow_symlinks: bool = True) -> asyncssh.SFTPAttrs:
    # readdir and lstat describe the link itself, as SFTP servers do
    info = local_path.stat() if follow_symlinks else local_path.lstat()
    return asyncssh.SFTPAttrs(permissions=info.st_mode, size=info.st_size, mtime=int(info.st_mtime))


@pytest.fixture
def remote_root(tmp_path: Path) -> Path:
    root = tmp_path / "remote"
    (root / REMOTE_HOME.lstrip("/")).mkdir(parents=True)
    return root


@pytest.fixture
def fake_sftp(remote_root: Path) -> FakeSFTPClient:
    return FakeSFTPClient(remote_root)


@pytest.fixture
def fake_connection(fake_sftp: FakeSFTPClient) -> FakeConnection:
    return FakeConnection(fake_sftp)


@pytest.fixture
def session(fake_connection: FakeConnection, fake_sftp: FakeSFTPClient) -> RemoteSession:
    return RemoteSession(connection=fake_connection, sftp=fake_sftp, host="pi.local:22")


@pytest.fixture
def progress() -> RecordingProgressSink:
    return RecordingProgressSink()


@pytest.fixture
def downloads_dir(tmp_path: Path) -> Path:
    path = tmp_path / "Downloads"
    path.mkdir()
    return path


@pytest.fixture
def workspace_dir(fake_sftp: FakeSFTPClient) -> str:
    remote_dir = f"{REMOTE_HOME}/pi-interface/alice"
    fake_sftp.local(remote_dir).mkdir(parents=True)
    return remote_dir
