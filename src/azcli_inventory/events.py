"""Status and diagnostic events for the presentation layer.

The orchestrator never hands structured errors to a UI. It publishes:

- ``StatusUpdate``: one status line plus a ``Severity``
- ``LogRecord``: one line of the append-only diagnostic log
- ``InventorySnapshot``: the result collections after a fetch cycle

through a :class:`PresentationSink`, and keeps the diagnostic log in an
:class:`EventLog` that can be replayed or followed.

Example:
    async for record in orchestrator.log.follow():
        print(record.timestamp, record.message)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, AsyncIterator, Iterator

if TYPE_CHECKING:
    from azcli_inventory.models import InventorySnapshot


class Severity(Enum):
    """Severity attached to the status line."""

    READY = "ready"
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class LogLevel(Enum):
    """Level of a diagnostic log record."""

    INFO = "info"
    OUTPUT = "output"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class LogRecord:
    """One line of the diagnostic log."""

    message: str
    level: LogLevel = LogLevel.INFO
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class StatusUpdate:
    """The current status line."""

    message: str
    severity: Severity
    timestamp: datetime = field(default_factory=datetime.now)


class EventLog:
    """Append-only diagnostic log with lazy replay and async follow.

    ``clear()`` starts a new epoch; followers restart from the first
    record of the new epoch.
    """

    def __init__(self) -> None:
        self._records: list[LogRecord] = []
        self._epoch = 0
        self._closed = False
        self._changed = asyncio.Event()

    def append(self, message: str, level: LogLevel = LogLevel.INFO) -> LogRecord:
        record = LogRecord(message=message, level=level)
        self._records.append(record)
        self._notify()
        return record

    def clear(self) -> None:
        self._records = []
        self._epoch += 1
        self._notify()

    def close(self) -> None:
        """Stop all followers once they have drained the log."""
        self._closed = True
        self._notify()

    def replay(self, start: int = 0) -> Iterator[LogRecord]:
        """Lazily iterate over records from index ``start``."""
        index = start
        epoch = self._epoch
        while epoch == self._epoch and index < len(self._records):
            yield self._records[index]
            index += 1

    async def follow(self, start: int = 0) -> AsyncIterator[LogRecord]:
        """Yield existing records from ``start``, then new ones as they arrive."""
        index = start
        epoch = self._epoch
        while True:
            if epoch != self._epoch:
                epoch = self._epoch
                index = 0
            while index < len(self._records):
                yield self._records[index]
                index += 1
                if epoch != self._epoch:
                    break
            else:
                if self._closed:
                    return
                await self._changed.wait()

    def render(self) -> str:
        """The whole log as text, one record per line."""
        return "\n".join(record.message for record in self._records)

    def _notify(self) -> None:
        self._changed.set()
        self._changed = asyncio.Event()

    def __iter__(self) -> Iterator[LogRecord]:
        return self.replay()

    def __len__(self) -> int:
        return len(self._records)


class PresentationSink:
    """Receiver for orchestrator output. Every hook is a no-op by default."""

    def on_status(self, update: StatusUpdate) -> None:
        pass

    def on_log(self, record: LogRecord) -> None:
        pass

    def on_results(self, snapshot: "InventorySnapshot") -> None:
        pass


__all__ = [
    "EventLog",
    "LogLevel",
    "LogRecord",
    "PresentationSink",
    "Severity",
    "StatusUpdate",
]
