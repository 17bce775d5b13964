from __future__ import annotations

import json
from typing import Iterator

from fastapi.testclient import TestClient

from cursorcalc.services.events import event_broker


def read_data_events(lines: Iterator[str], limit: int) -> list[dict]:
    events: list[dict] = []
    for _ in range(50):
        try:
            line = next(lines)
        except StopIteration:
            break
        if not line or not line.startswith("data:"):
            continue
        events.append(json.loads(line.replace("data:", "").strip()))
        if len(events) == limit:
            break
    return events


def test_events_stream_replays_session_updates(client: TestClient, session_id: str) -> None:
    client.post(f"/sessions/{session_id}/insert", json={"text": "2 + 3"})
    client.post(f"/sessions/{session_id}/commit")

    with client.stream(
        "GET",
        "/events",
        params={"sessionId": session_id, "maxEvents": 3},
    ) as stream:
        events = read_data_events(stream.iter_lines(), 3)

    event_broker.drop(session_id)

    assert events[0] == {"sessionId": session_id, "status": "ready"}
    assert events[1]["type"] == "snapshot"
    assert events[1]["snapshot"]["expressionText"] == "2 + 3"
    assert events[1]["snapshot"]["displayedResult"] == "5"
    assert events[2]["type"] == "commit"
    assert events[2]["entry"]["result"] == "5"
    assert events[2]["snapshot"]["isResultShown"] is True


def test_events_stream_reports_history_clear(client: TestClient, session_id: str) -> None:
    client.delete(f"/sessions/{session_id}/history")

    with client.stream(
        "GET",
        "/events",
        params={"sessionId": session_id, "maxEvents": 2},
    ) as stream:
        events = read_data_events(stream.iter_lines(), 2)

    event_broker.drop(session_id)

    assert events[1] == {"type": "history_cleared", "sessionId": session_id, "removed": 0, "seq": 1}


def test_events_requires_session_id(client: TestClient) -> None:
    response = client.get("/events")

    assert response.status_code == 422
