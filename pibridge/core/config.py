from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from core.errors import LocalIOError
from core.paths import get_config_path, get_downloads_dir

DEFAULT_BASE_DIR_NAME = "pi-interface"
DEFAULT_CHUNK_SIZE = 1024 * 1024


class AppConfig:
    _DEFAULTS: dict[str, Any] = {
        "base_dir_name": DEFAULT_BASE_DIR_NAME,
        "downloads_dir": None,
        "chunk_size": DEFAULT_CHUNK_SIZE,
        "connect_timeout_seconds": 12.0,
        "verify_host_key": False,
    }

    def __init__(self, config_path: Path | None = None) -> None:
        self._config_path = config_path or get_config_path()
        self._data: dict[str, Any] = {}
        self._load_or_create()

    def _load_or_create(self) -> None:
        if not self._config_path.exists():
            self._data = dict(self._DEFAULTS)
            self.save()
            return

        try:
            content = self._config_path.read_text(encoding="utf-8")
            loaded = json.loads(content)
            if not isinstance(loaded, dict):
                loaded = {}
        except (json.JSONDecodeError, OSError):
            loaded = {}

        self._data = dict(self._DEFAULTS)
        self._data.update(loaded)

        base_dir_name = str(self._data.get("base_dir_name") or "").strip().strip("/")
        if base_dir_name == "" or "/" in base_dir_name or base_dir_name in {".", ".."}:
            base_dir_name = DEFAULT_BASE_DIR_NAME
        self._data["base_dir_name"] = base_dir_name

        self.save()

    def save(self) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        self._config_path.write_text(
            json.dumps(self._data, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self.save()

    def get_base_dir_name(self) -> str:
        return str(self._data.get("base_dir_name", self._DEFAULTS["base_dir_name"]))

    def get_chunk_size(self) -> int:
        value = self._data.get("chunk_size", self._DEFAULTS["chunk_size"])
        try:
            chunk_size = int(value)
        except (TypeError, ValueError):
            return DEFAULT_CHUNK_SIZE
        return chunk_size if chunk_size > 0 else DEFAULT_CHUNK_SIZE

    def get_connect_timeout_seconds(self) -> float:
        value = self._data.get("connect_timeout_seconds", self._DEFAULTS["connect_timeout_seconds"])
        try:
            timeout = float(value)
        except (TypeError, ValueError):
            return float(self._DEFAULTS["connect_timeout_seconds"])
        return timeout if timeout > 0 else float(self._DEFAULTS["connect_timeout_seconds"])

    def get_verify_host_key(self) -> bool:
        return bool(self._data.get("verify_host_key", self._DEFAULTS["verify_host_key"]))

    def get_downloads_dir(self) -> Path:
        configured = self._data.get("downloads_dir")
        if configured is None or str(configured).strip() == "":
            return get_downloads_dir()

        downloads_dir = Path(str(configured)).expanduser()
        if not downloads_dir.is_dir():
            raise LocalIOError("Failed to find the Downloads directory", path=str(downloads_dir))
        return downloads_dir.resolve()

    def set_downloads_dir(self, path: Path | None) -> None:
        self._data["downloads_dir"] = None if path is None else str(path)
        self.save()
