from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class KindTag(str, Enum):
    DIRECTORY = "directory"
    EXTENSION = "extension"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class FileKind:
    tag: KindTag
    extension: str | None = None

    @classmethod
    def directory(cls) -> FileKind:
        return cls(KindTag.DIRECTORY)

    @classmethod
    def unknown(cls) -> FileKind:
        return cls(KindTag.UNKNOWN)

    @classmethod
    def from_extension(cls, extension: str) -> FileKind:
        normalized = extension.strip().lower()
        if normalized == "":
            return cls.unknown()
        return cls(KindTag.EXTENSION, normalized)

    @property
    def is_directory(self) -> bool:
        return self.tag is KindTag.DIRECTORY

    @property
    def label(self) -> str:
        if self.tag is KindTag.DIRECTORY:
            return "Directory"
        if self.tag is KindTag.EXTENSION and self.extension:
            return self.extension
        return "Unknown"


@dataclass(frozen=True, slots=True)
class FileDescriptor:
    name: str
    kind: FileKind
    size: int
    last_modified: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "file_type": self.kind.label,
            "size": self.size,
            "last_modified": self.last_modified,
        }
