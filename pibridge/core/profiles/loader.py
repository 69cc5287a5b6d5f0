from __future__ import annotations

import os
from typing import Mapping

from core.errors import ConfigError
from core.logging import get_logger
from core.profiles.credentials import CredentialService
from core.profiles.models import DEFAULT_SSH_PORT, ConnectionProfile

HOST_VARIABLE = "PIBRIDGE_HOST"
USERNAME_VARIABLE = "PIBRIDGE_USERNAME"
PASSWORD_VARIABLE = "PIBRIDGE_PASSWORD"
PORT_VARIABLE = "PIBRIDGE_PORT"

_logger = get_logger("profiles")


def load_connection_profile(
    environ: Mapping[str, str] | None = None,
    credentials: CredentialService | None = None,
    verify_host_key: bool = False,
) -> ConnectionProfile:
    """Resolve host, username and password for a single command.

    The password comes from the environment when set, otherwise from the OS
    keyring entry stored for ``host`` and ``username``.
    """
    values = os.environ if environ is None else environ

    host = _require(values, HOST_VARIABLE)
    username = _require(values, USERNAME_VARIABLE)

    password = values.get(PASSWORD_VARIABLE)
    if password is None or password == "":
        service = credentials or CredentialService()
        password = service.get_password(host, username)
        if password is None or password == "":
            raise ConfigError(f"Failed to load {PASSWORD_VARIABLE}: value is not set")
        _logger.debug("Password for %s@%s loaded from keyring", username, host)

    return ConnectionProfile(
        host=host,
        username=username,
        password=password,
        port=_parse_port(values.get(PORT_VARIABLE)),
        verify_host_key=verify_host_key,
    )


def _require(values: Mapping[str, str], name: str) -> str:
    value = values.get(name, "").strip()
    if value == "":
        raise ConfigError(f"Failed to load {name}: value is not set")
    return value


def _parse_port(raw: str | None) -> int:
    if raw is None or raw.strip() == "":
        return DEFAULT_SSH_PORT
    try:
        port = int(raw)
    except ValueError as error:
        raise ConfigError(f"Failed to load {PORT_VARIABLE}: {raw!r} is not a port number") from error
    if port <= 0 or port > 65535:
        raise ConfigError(f"Failed to load {PORT_VARIABLE}: {port} is out of range")
    return port
