from __future__ import annotations

import asyncio
from dataclasses import dataclass

import asyncssh

from core.errors import ConnectionError
from core.logging import get_logger
from core.profiles.models import ConnectionProfile

_logger = get_logger("remote")


@dataclass(slots=True)
class RemoteSession:
    """Authenticated SSH connection plus its SFTP channel for one command."""

    connection: asyncssh.SSHClientConnection
    sftp: asyncssh.SFTPClient
    host: str

    async def close(self) -> None:
        self.sftp.exit()
        self.connection.close()
        await self.connection.wait_closed()

    async def __aenter__(self) -> RemoteSession:
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.close()


def describe_error(error: BaseException) -> str:
    reason = getattr(error, "reason", None)
    if isinstance(reason, str) and reason.strip() != "":
        return reason
    message = str(error)
    return message if message != "" else type(error).__name__


async def open_session(profile: ConnectionProfile, timeout_seconds: float = 12.0) -> RemoteSession:
    target = f"{profile.host}:{profile.port}"
    known_hosts = None if not profile.verify_host_key else ()

    try:
        connection = await asyncssh.connect(
            host=profile.host,
            port=profile.port,
            username=profile.username,
            password=profile.password,
            known_hosts=known_hosts,
            connect_timeout=timeout_seconds,
            login_timeout=timeout_seconds,
        )
    except asyncssh.PermissionDenied as error:
        raise ConnectionError(f"SSH authentication failed: {describe_error(error)}") from error
    except asyncssh.Error as error:
        raise ConnectionError(f"SSH handshake failed: {describe_error(error)}") from error
    except (OSError, asyncio.TimeoutError) as error:
        raise ConnectionError(f"Failed to connect to {target}: {describe_error(error)}") from error

    try:
        sftp = await connection.start_sftp_client()
    except (asyncssh.Error, OSError) as error:
        connection.close()
        await connection.wait_closed()
        raise ConnectionError(f"Failed to create SFTP session: {describe_error(error)}") from error

    _logger.debug("Opened session to %s as %s", target, profile.username)
    return RemoteSession(connection=connection, sftp=sftp, host=target)
