from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

from PySide6.QtCore import QObject, Signal

from core.paths import get_logs_dir

ROOT_LOGGER_NAME = "pibridge"
LOG_FILE_NAME = "pibridge.log"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


class LogEmitter(QObject):
    log_message = Signal(str)


class QtSignalLogHandler(logging.Handler):
    """Mirrors formatted records to the UI log panel."""

    def __init__(self, emitter: LogEmitter) -> None:
        super().__init__()
        self._emitter = emitter

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._emitter.log_message.emit(self.format(record))
        except Exception:
            self.handleError(record)


def get_logger(component: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}")


def setup_logging(level: int = logging.INFO, console: bool = False) -> tuple[logging.Logger, LogEmitter]:
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # setup may run again after the logs directory changes
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    file_handler = RotatingFileHandler(
        filename=get_logs_dir() / LOG_FILE_NAME,
        maxBytes=1_000_000,
        backupCount=5,
        encoding="utf-8",
    )

    emitter = LogEmitter()
    handlers: list[logging.Handler] = [file_handler, QtSignalLogHandler(emitter)]
    if console:
        handlers.append(logging.StreamHandler())

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
        logger.addHandler(handler)

    logger.debug("Logging initialised at level %s", logging.getLevelName(level))
    return logger, emitter
