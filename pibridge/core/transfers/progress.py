from __future__ import annotations

from enum import Enum
from typing import Protocol

from PySide6.QtCore import QObject, Signal


class ProgressTopic(str, Enum):
    TOTAL_SIZE = "total-size"
    DOWNLOAD_PROGRESS = "download-progress"
    UPLOAD_PROGRESS = "upload-progress"
    ZIP_PROGRESS = "zip-progress"


class ProgressSink(Protocol):
    def emit(self, topic: ProgressTopic, value: int) -> None: ...


class NullProgressSink:
    def emit(self, topic: ProgressTopic, value: int) -> None:
        return None


class QtProgressEmitter(QObject):
    """Forwards progress events to Qt subscribers as ``(topic, value)``."""

    progress = Signal(str, object)

    def emit(self, topic: ProgressTopic, value: int) -> None:
        self.progress.emit(ProgressTopic(topic).value, int(value))
