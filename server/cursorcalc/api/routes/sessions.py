from __future__ import annotations

from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator

from fastapi import APIRouter, Depends, Response

from cursorcalc.core.context import bind_session_id, unbind_session_id
from cursorcalc.models.session import (
    CommitResponse,
    InsertRequest,
    MoveCursorRequest,
    SessionSnapshot,
    SetCursorRequest,
)
from cursorcalc.services.events import event_broker
from cursorcalc.services.registry import SessionRegistry
from cursorcalc.services.session import CalculatorSession

router = APIRouter(prefix="/sessions", tags=["sessions"])


@lru_cache
def get_session_registry() -> SessionRegistry:
    return SessionRegistry.from_settings()


@contextmanager
def operate_on(registry: SessionRegistry, session_id: str) -> Iterator[CalculatorSession]:
    token = bind_session_id(session_id)
    try:
        with registry.locked(session_id) as session:
            yield session
    finally:
        unbind_session_id(token)


def publish_session_snapshot(session_id: str, snapshot: SessionSnapshot) -> SessionSnapshot:
    snapshot = snapshot.model_copy(update={"sessionId": session_id})
    event_broker.publish_snapshot(session_id, snapshot)
    return snapshot


@router.post("", response_model=SessionSnapshot, status_code=201)
def create_session(
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionSnapshot:
    for evicted_id in registry.evict_idle():
        event_broker.drop(evicted_id)
    session_id, session = registry.create()
    return session.snapshot().model_copy(update={"sessionId": session_id})


@router.get("/{session_id}", response_model=SessionSnapshot)
def get_session_snapshot(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionSnapshot:
    with operate_on(registry, session_id) as session:
        return session.snapshot().model_copy(update={"sessionId": session_id})


@router.delete("/{session_id}", status_code=204)
def delete_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> Response:
    registry.get(session_id)
    registry.drop(session_id)
    event_broker.drop(session_id)
    return Response(status_code=204)


@router.post("/{session_id}/insert", response_model=SessionSnapshot)
def insert_fragment(
    session_id: str,
    request: InsertRequest,
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionSnapshot:
    with operate_on(registry, session_id) as session:
        return publish_session_snapshot(session_id, session.insert(request.text))


@router.post("/{session_id}/delete", response_model=SessionSnapshot)
def delete_backward(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionSnapshot:
    with operate_on(registry, session_id) as session:
        return publish_session_snapshot(session_id, session.delete_backward())


@router.post("/{session_id}/cursor/move", response_model=SessionSnapshot)
def move_cursor(
    session_id: str,
    request: MoveCursorRequest,
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionSnapshot:
    with operate_on(registry, session_id) as session:
        return publish_session_snapshot(session_id, session.move_cursor(request.direction))


@router.put("/{session_id}/cursor", response_model=SessionSnapshot)
def set_cursor(
    session_id: str,
    request: SetCursorRequest,
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionSnapshot:
    with operate_on(registry, session_id) as session:
        return publish_session_snapshot(session_id, session.set_cursor(request.position))


@router.post("/{session_id}/percent", response_model=SessionSnapshot)
def toggle_percent(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionSnapshot:
    with operate_on(registry, session_id) as session:
        return publish_session_snapshot(session_id, session.toggle_percent())


@router.post("/{session_id}/sign", response_model=SessionSnapshot)
def toggle_sign(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionSnapshot:
    with operate_on(registry, session_id) as session:
        return publish_session_snapshot(session_id, session.toggle_sign())


@router.post("/{session_id}/commit", response_model=CommitResponse)
def commit_expression(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> CommitResponse:
    with operate_on(registry, session_id) as session:
        entry = session.commit()
        snapshot = session.snapshot().model_copy(update={"sessionId": session_id})
    if entry is not None:
        event_broker.publish_commit(session_id, snapshot, entry)
    return CommitResponse(snapshot=snapshot, entry=entry)


@router.post("/{session_id}/clear", response_model=SessionSnapshot)
def clear_expression(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionSnapshot:
    with operate_on(registry, session_id) as session:
        return publish_session_snapshot(session_id, session.clear())
