from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    archive_path: str
    remote_path: str
    size: int


@dataclass(slots=True)
class ArchivePlan:
    entries: list[ArchiveEntry]
    directories: list[str]

    @property
    def total_size(self) -> int:
        return sum(entry.size for entry in self.entries)


@dataclass(slots=True)
class TransferResult:
    local_path: Path | None
    bytes_transferred: int
    files_transferred: int
