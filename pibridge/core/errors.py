from __future__ import annotations

from typing import Any


class BridgeError(Exception):
    """Base exception for every failure surfaced by the bridge core."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = {key: value for key, value in context.items() if value is not None}

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class ConfigError(BridgeError):
    """A required connection value is missing."""


class ConnectionError(BridgeError):
    """Connecting, handshaking or authenticating with the remote host failed."""


class RemoteProtocolError(BridgeError):
    """A remote filesystem operation or remote command failed."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message, path=path)
        self.path = path


class LocalIOError(BridgeError):
    """A local file operation failed or a well-known directory is missing."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message, path=path)
        self.path = path


class ArchiveError(BridgeError):
    """Writing or finalizing the ZIP archive failed."""


class PathError(BridgeError):
    """A requested name cannot be used as a single path component."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message, path=path)
        self.path = path
