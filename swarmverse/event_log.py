"""
Bounded battle journal.

Every component writes here: the scheduler (decisions, errors, retry notices),
the tick engine (combat and victory), the principle clock and the simulation
controller. The decision oracle reads the last few entries as prompt context.

Writers only ever append a fresh frozen LogEntry to a ``deque`` with a fixed
``maxlen``, so the oldest entries fall off on overflow and readers never see a
half-written record. Reads are a copy of whatever is present at the time;
they are not ordered against concurrent writes.
"""

from collections import deque
from typing import Deque, List, Optional

from .logging_utils import echo_entry
from .schemas import LogCategory, LogEntry


LOG_CAPACITY = 100
PROMPT_CONTEXT_ENTRIES = 5


class EventLog:
    """Append-only FIFO of the most recent ``capacity`` log entries."""

    def __init__(self, capacity: int = LOG_CAPACITY, *, echo: bool = False) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self.echo = echo
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)

    def append(
        self,
        message: str,
        category: LogCategory = LogCategory.INFO,
        author: Optional[str] = None,
    ) -> LogEntry:
        entry = LogEntry(category=category, message=message, author=author)
        self._entries.append(entry)
        if self.echo:
            echo_entry(entry)
        return entry

    def recent(self, limit: int = PROMPT_CONTEXT_ENTRIES) -> List[LogEntry]:
        """Return up to ``limit`` newest entries, oldest first."""

        if limit <= 0:
            return []
        return list(self._entries)[-limit:]

    def entries(self) -> List[LogEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["EventLog", "LOG_CAPACITY", "PROMPT_CONTEXT_ENTRIES"]
