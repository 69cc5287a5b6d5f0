from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from PySide6.QtCore import QObject, Signal

from core.commands import CommandResult


class CommandWorker(QObject):
    succeeded = Signal(object)
    failed = Signal(str)

    def __init__(
        self,
        command: Callable[[], Awaitable[CommandResult]],
        logger: logging.Logger,
    ) -> None:
        super().__init__()
        self._command = command
        self._logger = logger

    def run(self) -> None:
        try:
            result = asyncio.run(self._command())
        except Exception as error:
            self._logger.exception("Command worker crashed")
            self.failed.emit(str(error))
            return

        if result.success:
            self.succeeded.emit(result.value)
        else:
            self.failed.emit(result.message)
