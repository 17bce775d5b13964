from __future__ import annotations

from fastapi.testclient import TestClient

from cursorcalc.api.routes.sessions import get_session_registry
from cursorcalc.main import create_app
from cursorcalc.services.events import event_broker
from cursorcalc.services.registry import SessionRegistry


def type_fragments(client: TestClient, session_id: str, *fragments: str) -> dict:
    body: dict = {}
    for fragment in fragments:
        response = client.post(f"/sessions/{session_id}/insert", json={"text": fragment})
        assert response.status_code == 200, response.text
        body = response.json()
    return body


def test_create_session_returns_initial_snapshot(client: TestClient) -> None:
    response = client.post("/sessions")

    assert response.status_code == 201
    body = response.json()
    assert body["sessionId"]
    assert body["expressionText"] == ""
    assert body["cursorPosition"] == 0
    assert body["displayedResult"] == "0"
    assert body["mode"] == "editing"
    assert body["evaluation"] == "empty"


def test_typing_updates_live_preview(client: TestClient, session_id: str) -> None:
    body = type_fragments(client, session_id, "12", " + ", "3")

    assert body["expressionText"] == "12 + 3"
    assert body["cursorPosition"] == 6
    assert body["displayedResult"] == "15"
    assert body["evaluation"] == "value"


def test_invalid_tail_keeps_previous_preview(client: TestClient, session_id: str) -> None:
    body = type_fragments(client, session_id, "12", " + ")

    assert body["displayedResult"] == "12"
    assert body["evaluation"] == "invalid"


def test_cursor_edit_in_the_middle(client: TestClient, session_id: str) -> None:
    type_fragments(client, session_id, "12 + 3")

    moved = client.put(f"/sessions/{session_id}/cursor", json={"position": 2})
    assert moved.json()["cursorPosition"] == 2

    body = type_fragments(client, session_id, "0")
    assert body["expressionText"] == "120 + 3"
    assert body["displayedResult"] == "123"

    left = client.post(f"/sessions/{session_id}/cursor/move", json={"direction": "left"})
    assert left.json()["cursorPosition"] == 2

    deleted = client.post(f"/sessions/{session_id}/delete")
    assert deleted.json()["expressionText"] == "10 + 3"
    assert deleted.json()["cursorPosition"] == 1


def test_set_cursor_is_clamped(client: TestClient, session_id: str) -> None:
    type_fragments(client, session_id, "42")

    response = client.put(f"/sessions/{session_id}/cursor", json={"position": 99})

    assert response.json()["cursorPosition"] == 2


def test_percent_and_sign_toggles(client: TestClient, session_id: str) -> None:
    type_fragments(client, session_id, "50 + 8")

    percent = client.post(f"/sessions/{session_id}/percent").json()
    assert percent["expressionText"] == "50 + 0.08"
    assert percent["displayedResult"] == "50.08"

    negated = client.post(f"/sessions/{session_id}/sign").json()
    assert negated["expressionText"] == "50 + -0.08"

    restored = client.post(f"/sessions/{session_id}/sign").json()
    assert restored["expressionText"] == "50 + 0.08"


def test_commit_shows_result_and_records_history(client: TestClient, session_id: str) -> None:
    type_fragments(client, session_id, "8", " × ", "2")

    response = client.post(f"/sessions/{session_id}/commit")

    assert response.status_code == 200
    body = response.json()
    assert body["snapshot"]["isResultShown"] is True
    assert body["snapshot"]["mode"] == "result_shown"
    assert body["snapshot"]["displayedResult"] == "16"
    assert body["snapshot"]["lastCommittedExpression"] == "8 × 2"
    assert body["entry"]["expression"] == "8 × 2"
    assert body["entry"]["result"] == "16"

    again = client.post(f"/sessions/{session_id}/commit").json()
    assert again["entry"] is None


def test_commit_of_undefined_result_is_not_recorded(client: TestClient, session_id: str) -> None:
    body = type_fragments(client, session_id, "5 / 0")
    assert body["displayedResult"] == "Error"
    assert body["evaluation"] == "error"

    response = client.post(f"/sessions/{session_id}/commit").json()

    assert response["entry"] is None
    assert response["snapshot"]["isResultShown"] is False


def test_numeric_insert_after_commit_starts_new_expression(client: TestClient, session_id: str) -> None:
    type_fragments(client, session_id, "8 + 2")
    client.post(f"/sessions/{session_id}/commit")

    body = type_fragments(client, session_id, "7")

    assert body["expressionText"] == "7"
    assert body["mode"] == "editing"


def test_clear_resets_session(client: TestClient, session_id: str) -> None:
    type_fragments(client, session_id, "9 - 1")

    body = client.post(f"/sessions/{session_id}/clear").json()

    assert body["expressionText"] == ""
    assert body["displayedResult"] == "0"


def test_get_and_delete_session(client: TestClient, session_id: str) -> None:
    type_fragments(client, session_id, "3")

    assert client.get(f"/sessions/{session_id}").json()["expressionText"] == "3"
    assert client.delete(f"/sessions/{session_id}").status_code == 204

    missing = client.get(f"/sessions/{session_id}")
    assert missing.status_code == 404
    assert missing.json()["error"]["type"] == "SESSION_NOT_FOUND"
    assert missing.json()["error"]["details"] == {"sessionId": session_id}


def test_unknown_session_operations_return_404(client: TestClient) -> None:
    for method, path, payload in [
        ("post", "/sessions/nope/insert", {"text": "1"}),
        ("post", "/sessions/nope/commit", None),
        ("delete", "/sessions/nope", None),
    ]:
        response = client.request(method.upper(), path, json=payload)
        assert response.status_code == 404, path


def test_insert_rejects_unsupported_characters(client: TestClient, session_id: str) -> None:
    response = client.post(f"/sessions/{session_id}/insert", json={"text": "2a"})

    assert response.status_code == 422


def test_insert_rejects_unknown_direction(client: TestClient, session_id: str) -> None:
    response = client.post(f"/sessions/{session_id}/cursor/move", json={"direction": "up"})

    assert response.status_code == 422


def test_insert_enforces_length_limit(client: TestClient, session_id: str) -> None:
    for _ in range(6):
        type_fragments(client, session_id, "1" * 32)

    response = client.post(f"/sessions/{session_id}/insert", json={"text": "1" * 20})

    assert response.status_code == 400
    assert response.json()["error"]["type"] == "EXPRESSION_TOO_LONG"
    assert client.get(f"/sessions/{session_id}").json()["cursorPosition"] == 192


def test_repeated_percent_stops_at_length_limit(client: TestClient, session_id: str) -> None:
    type_fragments(client, session_id, "1")

    responses = [client.post(f"/sessions/{session_id}/percent") for _ in range(120)]

    rejected = [response for response in responses if response.status_code != 200]
    assert len(rejected) == 21
    assert all(response.json()["error"]["type"] == "EXPRESSION_TOO_LONG" for response in rejected)
    assert len(client.get(f"/sessions/{session_id}").json()["expressionText"]) == 200


def test_sign_toggle_respects_length_limit(client: TestClient, session_id: str) -> None:
    for _ in range(6):
        type_fragments(client, session_id, "1" * 32)
    type_fragments(client, session_id, "1" * 8)

    response = client.post(f"/sessions/{session_id}/sign")

    assert response.status_code == 400
    assert response.json()["error"]["details"] == {"limit": 200}
    assert client.get(f"/sessions/{session_id}").json()["expressionText"] == "1" * 200


def test_creating_a_session_evicts_idle_sessions_and_their_events() -> None:
    now = [0.0]
    registry = SessionRegistry(idle_ttl_seconds=30, clock=lambda: now[0])
    app = create_app()
    app.dependency_overrides[get_session_registry] = lambda: registry
    client = TestClient(app)

    idle_id = client.post("/sessions").json()["sessionId"]
    type_fragments(client, idle_id, "4")
    assert event_broker.backlog(idle_id)
    now[0] = 100.0

    fresh_id = client.post("/sessions").json()["sessionId"]

    assert client.get(f"/sessions/{idle_id}").status_code == 404
    assert event_broker.backlog(idle_id) == []
    assert client.get(f"/sessions/{fresh_id}").status_code == 200
