from __future__ import annotations

import logging
import threading
import time
import uuid
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional

from cursorcalc.core.config import AppSettings, get_settings
from cursorcalc.core.exceptions import SessionNotFoundError
from cursorcalc.services.history import HistoryStore, InMemoryHistoryStore
from cursorcalc.services.session import CalculatorSession

logger = logging.getLogger("cursorcalc.registry")

HistoryFactory = Callable[[str], HistoryStore]


def build_history_factory(settings: AppSettings) -> HistoryFactory:
    if not settings.uses_sql_history:
        return lambda session_id: InMemoryHistoryStore()

    from cursorcalc.db.session import get_session_factory, init_schema
    from cursorcalc.services.history_sql import SqlHistoryStore

    init_schema()
    session_factory = get_session_factory()
    return lambda session_id: SqlHistoryStore(session_factory, session_id)


class SessionRegistry:
    """
    In-memory calculator sessions keyed by sessionId.

    Each session carries its own lock so that a mutation and its evaluation
    pass complete before the next request for the same session is applied.
    Sessions untouched for longer than ``idle_ttl_seconds`` are removed by
    :meth:`evict_idle`; the caller owns any per-session resources beyond the
    registry, such as event channels.
    """

    def __init__(
        self,
        history_factory: Optional[HistoryFactory] = None,
        *,
        select_mode: str = "expression",
        max_expression_length: int | None = None,
        idle_ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._lock = threading.RLock()
        self._sessions: Dict[str, CalculatorSession] = {}
        self._session_locks: Dict[str, threading.RLock] = {}
        self._last_used: Dict[str, float] = {}
        self._history_factory = history_factory or (lambda session_id: InMemoryHistoryStore())
        self._select_mode = select_mode
        self._max_expression_length = max_expression_length
        self._idle_ttl_seconds = idle_ttl_seconds
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: AppSettings | None = None) -> "SessionRegistry":
        settings = settings or get_settings()
        return cls(
            build_history_factory(settings),
            select_mode=settings.history_select_mode,
            max_expression_length=settings.max_expression_length,
            idle_ttl_seconds=settings.session_idle_ttl_seconds,
        )

    def create(self, session_id: Optional[str] = None) -> tuple[str, CalculatorSession]:
        session_id = session_id or uuid.uuid4().hex
        session = CalculatorSession(
            self._history_factory(session_id),
            select_mode=self._select_mode,
            max_length=self._max_expression_length,
        )
        with self._lock:
            self._sessions[session_id] = session
            self._session_locks[session_id] = threading.RLock()
            self._last_used[session_id] = self._clock()
        logger.info("session.created", extra={"session_id": session_id})
        return session_id, session

    def get(self, session_id: str) -> CalculatorSession:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                self._last_used[session_id] = self._clock()
        if session is None:
            raise SessionNotFoundError(
                f"Calculator session '{session_id}' does not exist.",
                details={"sessionId": session_id},
            )
        return session

    @contextmanager
    def locked(self, session_id: str) -> Iterator[CalculatorSession]:
        session = self.get(session_id)
        with self._lock:
            session_lock = self._session_locks.get(session_id)
        if session_lock is None:
            raise SessionNotFoundError(
                f"Calculator session '{session_id}' does not exist.",
                details={"sessionId": session_id},
            )
        with session_lock:
            yield session

    def drop(self, session_id: str) -> bool:
        with self._lock:
            self._session_locks.pop(session_id, None)
            self._last_used.pop(session_id, None)
            removed = self._sessions.pop(session_id, None) is not None
        if removed:
            logger.info("session.dropped", extra={"session_id": session_id})
        return removed

    def evict_idle(self) -> List[str]:
        """Drop every session idle for longer than the TTL and return their ids."""
        if self._idle_ttl_seconds is None:
            return []
        cutoff = self._clock() - self._idle_ttl_seconds
        with self._lock:
            expired = [session_id for session_id, used in self._last_used.items() if used < cutoff]
        evicted = [session_id for session_id in expired if self.drop(session_id)]
        if evicted:
            logger.info("session.evicted", extra={"count": len(evicted)})
        return evicted

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions
