"""
Progress reporting and per-run message buffers.
"""

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class ProgressMonitor(Protocol):
    def report_progress(self, table: str, row_number: int) -> None:
        ...


class LoggingProgressMonitor:
    """Writes progress to the log at INFO level."""

    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger

    def report_progress(self, table: str, row_number: int) -> None:
        self.log.info(f"{table}: {row_number} rows processed")


class MessageBuffer:
    """
    Ordered list of messages collected during one run.

    Every message is also sent to ``log`` at ``level``.
    """

    def __init__(self, log: logging.Logger | None = None, level: int = logging.WARNING):
        self._messages: list[str] = []
        self._log = log or logger
        self._level = level

    def append(self, message: str) -> None:
        self._messages.append(message)
        self._log.log(self._level, message)

    def clear(self) -> None:
        self._messages.clear()

    @property
    def messages(self) -> list[str]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __bool__(self) -> bool:
        return bool(self._messages)

    def __iter__(self):
        return iter(list(self._messages))

    def __eq__(self, other):
        if isinstance(other, MessageBuffer):
            return self._messages == other._messages
        return NotImplemented

    __hash__ = None

    def __str__(self):
        return "\n".join(self._messages)
