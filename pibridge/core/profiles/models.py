from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_SSH_PORT = 22


@dataclass(slots=True)
class ConnectionProfile:
    host: str
    username: str
    password: str = field(repr=False)
    port: int = DEFAULT_SSH_PORT
    verify_host_key: bool = False
