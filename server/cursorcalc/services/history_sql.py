from __future__ import annotations

import datetime as dt
import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from cursorcalc.db.models import HistoryRecord
from cursorcalc.db.session import session_scope
from cursorcalc.models.history import HistoryEntry

logger = logging.getLogger("cursorcalc.history")


def _as_utc(timestamp: dt.datetime) -> dt.datetime:
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=dt.timezone.utc)
    return timestamp.astimezone(dt.timezone.utc)


def _to_entry(record: HistoryRecord) -> HistoryEntry:
    return HistoryEntry(
        id=record.entry_id,
        expression=record.expression,
        result=record.result,
        timestamp=_as_utc(record.created_at),
    )


class SqlHistoryStore:
    """
    History persisted through SQLAlchemy, one logical list per ``session_key``.

    Ordering relies on the autoincrement ``seq`` column rather than timestamps,
    so entries committed within the same millisecond keep their commit order.
    """

    def __init__(self, session_factory: sessionmaker[Session], session_key: str) -> None:
        self._session_factory = session_factory
        self.session_key = session_key

    def append(self, entry: HistoryEntry) -> None:
        with session_scope(self._session_factory) as session:
            session.add(
                HistoryRecord(
                    entry_id=entry.id,
                    session_key=self.session_key,
                    expression=entry.expression,
                    result=entry.result,
                    created_at=_as_utc(entry.timestamp),
                )
            )

    def clear(self) -> int:
        with session_scope(self._session_factory) as session:
            result = session.execute(
                delete(HistoryRecord).where(HistoryRecord.session_key == self.session_key)
            )
            removed = result.rowcount or 0
        logger.info("history.sql.cleared", extra={"session_key": self.session_key, "removed": removed})
        return removed

    def all(self) -> List[HistoryEntry]:
        with session_scope(self._session_factory) as session:
            records = session.scalars(
                select(HistoryRecord)
                .where(HistoryRecord.session_key == self.session_key)
                .order_by(HistoryRecord.seq.desc())
            ).all()
            return [_to_entry(record) for record in records]

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        with session_scope(self._session_factory) as session:
            record = session.scalar(
                select(HistoryRecord).where(
                    HistoryRecord.session_key == self.session_key,
                    HistoryRecord.entry_id == entry_id,
                )
            )
            return _to_entry(record) if record is not None else None
