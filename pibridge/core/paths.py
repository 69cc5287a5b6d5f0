from __future__ import annotations

import os
from pathlib import Path

from core.errors import LocalIOError

APP_NAME = "pibridge"


def get_app_data_dir() -> Path:
    if os.name == "nt":
        appdata = os.getenv("APPDATA")
        base_dir = Path(appdata) if appdata else Path.home() / "AppData" / "Roaming"
    else:
        base_dir = Path.home() / ".config"

    app_data_dir = base_dir / APP_NAME
    app_data_dir.mkdir(parents=True, exist_ok=True)
    return app_data_dir.resolve()


def get_logs_dir() -> Path:
    logs_dir = get_app_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir.resolve()


def get_config_path() -> Path:
    return (get_app_data_dir() / "config.json").resolve()


def get_downloads_dir() -> Path:
    xdg_download = os.getenv("XDG_DOWNLOAD_DIR")
    if xdg_download:
        downloads_dir = Path(xdg_download).expanduser()
    elif os.name == "nt":
        userprofile = os.getenv("USERPROFILE")
        base_dir = Path(userprofile) if userprofile else Path.home()
        downloads_dir = base_dir / "Downloads"
    else:
        downloads_dir = Path.home() / "Downloads"

    if not downloads_dir.is_dir():
        raise LocalIOError("Failed to find the Downloads directory", path=str(downloads_dir))
    return downloads_dir.resolve()
