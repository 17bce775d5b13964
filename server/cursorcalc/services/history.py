from __future__ import annotations

import datetime as dt
import threading
from typing import Iterable, List, Optional, Protocol

from cursorcalc.models.history import HistoryEntry, HistoryGroup


class HistoryStore(Protocol):
    def append(self, entry: HistoryEntry) -> None: ...

    def clear(self) -> int: ...

    def all(self) -> List[HistoryEntry]: ...

    def get(self, entry_id: str) -> Optional[HistoryEntry]: ...


class InMemoryHistoryStore:
    """
    Newest-first list of committed calculations.

    Entries are only ever prepended or dropped all at once, which mirrors how
    the calculator exposes history: append on commit, clear on request.
    """

    def __init__(self, entries: Iterable[HistoryEntry] = ()) -> None:
        self._lock = threading.RLock()
        self._entries: List[HistoryEntry] = list(entries)

    def append(self, entry: HistoryEntry) -> None:
        with self._lock:
            self._entries.insert(0, entry)

    def clear(self) -> int:
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
            return removed

    def all(self) -> List[HistoryEntry]:
        with self._lock:
            return list(self._entries)

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        with self._lock:
            for entry in self._entries:
                if entry.id == entry_id:
                    return entry
            return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _local_day(timestamp: dt.datetime, now: dt.datetime) -> dt.date:
    if timestamp.tzinfo is not None and now.tzinfo is not None:
        timestamp = timestamp.astimezone(now.tzinfo)
    return timestamp.date()


def _day_label(day: dt.date, today: dt.date) -> str:
    if day == today:
        return "Today"
    if day == today - dt.timedelta(days=1):
        return "Yesterday"
    return day.isoformat()


def group_history_by_day(
    entries: Iterable[HistoryEntry],
    now: dt.datetime | None = None,
) -> List[HistoryGroup]:
    now = now or dt.datetime.now().astimezone()
    today = now.date()

    groups: List[HistoryGroup] = []
    by_day: dict[dt.date, HistoryGroup] = {}
    for entry in entries:
        day = _local_day(entry.timestamp, now)
        group = by_day.get(day)
        if group is None:
            group = HistoryGroup(label=_day_label(day, today), day=day)
            by_day[day] = group
            groups.append(group)
        group.entries.append(entry)
    return groups
