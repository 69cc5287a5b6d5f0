from __future__ import annotations

from pathlib import PurePosixPath

from core.errors import PathError

_FORBIDDEN_CHARACTERS = ("/", "\\", "\x00")


def validate_segment(segment: str) -> str:
    """Return ``segment`` unchanged if it names exactly one path component.

    Empty names, ``.``, ``..`` and names carrying a separator or NUL byte are
    rejected so a user can never address anything outside their workspace.
    """
    if not isinstance(segment, str) or segment == "":
        raise PathError("Path segment must not be empty", path=str(segment))
    if segment in {".", ".."}:
        raise PathError("Path segment must not be a relative reference", path=segment)
    if any(char in segment for char in _FORBIDDEN_CHARACTERS):
        raise PathError("Path segment must not contain separators", path=segment)
    return segment


def split_path(path: str) -> list[str]:
    return [part for part in path.strip().split("/") if part]


def join_remote(root: str, *segments: str) -> str:
    joined = root.rstrip("/") if root != "/" else ""
    for segment in segments:
        joined = f"{joined}/{validate_segment(segment)}"
    return joined or "/"


def remote_basename(remote_path: str) -> str:
    name = PurePosixPath(remote_path).name
    if name in {"", ".", ".."}:
        raise PathError("Failed to get file name from path", path=remote_path)
    return name
