from __future__ import annotations

import asyncio
import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict

from cursorcalc.models.history import HistoryEntry
from cursorcalc.models.session import SessionSnapshot


@dataclass
class SessionChannel:
    events: Deque[dict[str, Any]]
    condition: asyncio.Condition | None = None
    loop: asyncio.AbstractEventLoop | None = None
    seq: int = 0


class EventBroker:
    """
    Per-session fan-out of calculator state changes.

    Every mutation publishes the new snapshot. Events published while nobody
    listens are kept in a bounded backlog and replayed to the next subscriber.
    Each event carries a per-session ``seq`` so clients can drop duplicates.
    """

    def __init__(self, max_backlog: int = 200) -> None:
        self._lock = threading.RLock()
        self._channels: Dict[str, SessionChannel] = {}
        self._max_backlog = max_backlog

    def configure(self, max_backlog: int) -> None:
        with self._lock:
            self._max_backlog = max_backlog

    def _channel(self, session_id: str) -> SessionChannel:
        channel = self._channels.get(session_id)
        if channel is None:
            channel = SessionChannel(events=deque(maxlen=self._max_backlog))
            self._channels[session_id] = channel
        return channel

    def register(self, session_id: str) -> SessionChannel:
        loop = asyncio.get_running_loop()
        with self._lock:
            channel = self._channel(session_id)
            if channel.condition is None:
                channel.condition = asyncio.Condition()
            channel.loop = loop
            return channel

    def unregister(self, session_id: str) -> None:
        with self._lock:
            channel = self._channels.get(session_id)
            if channel:
                channel.loop = None
                channel.condition = None

    def drop(self, session_id: str) -> int:
        """Forget the session's channel, returning how many queued events were discarded."""
        with self._lock:
            channel = self._channels.pop(session_id, None)
        return len(channel.events) if channel else 0

    def backlog(self, session_id: str) -> list[dict[str, Any]]:
        with self._lock:
            channel = self._channels.get(session_id)
            return list(channel.events) if channel else []

    def publish(self, session_id: str, event: dict[str, Any]) -> None:
        with self._lock:
            channel = self._channel(session_id)
            channel.seq += 1
            event = {**event, "seq": channel.seq}
            loop = channel.loop
            condition = channel.condition

        if condition is None or loop is None or not loop.is_running():
            channel.events.append(event)
            return

        asyncio.run_coroutine_threadsafe(self._push(channel, event), loop)

    def _envelope(self, session_id: str, event_type: str, snapshot: SessionSnapshot) -> dict[str, Any]:
        return {"type": event_type, "sessionId": session_id, "snapshot": snapshot.model_dump(mode="json")}

    def publish_snapshot(self, session_id: str, snapshot: SessionSnapshot, *, event_type: str = "snapshot") -> None:
        self.publish(session_id, self._envelope(session_id, event_type, snapshot))

    def publish_commit(self, session_id: str, snapshot: SessionSnapshot, entry: HistoryEntry) -> None:
        event = self._envelope(session_id, "commit", snapshot)
        event["entry"] = entry.model_dump(mode="json")
        self.publish(session_id, event)

    async def next_event(
        self,
        session_id: str,
        *,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        with self._lock:
            channel = self._channel(session_id)
        condition = channel.condition

        if condition is None:
            if channel.events:
                return channel.events.popleft()
            raise asyncio.TimeoutError("No events available.")

        async with condition:
            if channel.events:
                return channel.events.popleft()

            if timeout is None:
                await condition.wait()
            else:
                await asyncio.wait_for(condition.wait(), timeout=timeout)

            if channel.events:
                return channel.events.popleft()
            raise asyncio.TimeoutError("No events available.")

    async def _push(self, channel: SessionChannel, event: dict[str, Any]) -> None:
        if channel.condition is None:
            channel.events.append(event)
            return

        async with channel.condition:
            channel.events.append(event)
            channel.condition.notify_all()


event_broker = EventBroker()
