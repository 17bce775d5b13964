from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from cursorcalc.api.routes.sessions import publish_session_snapshot, get_session_registry, operate_on
from cursorcalc.models.history import HistoryResponse
from cursorcalc.models.session import SessionSnapshot
from cursorcalc.services.events import event_broker
from cursorcalc.services.registry import SessionRegistry

router = APIRouter(prefix="/sessions/{session_id}/history", tags=["history"])


@router.get("", response_model=HistoryResponse)
def list_history(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> HistoryResponse:
    with operate_on(registry, session_id) as session:
        groups = session.grouped_history()
    return HistoryResponse(
        sessionId=session_id,
        total=sum(len(group.entries) for group in groups),
        groups=groups,
    )


@router.post("/{entry_id}/select", response_model=SessionSnapshot)
def select_history_entry(
    session_id: str,
    entry_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionSnapshot:
    with operate_on(registry, session_id) as session:
        return publish_session_snapshot(session_id, session.select_history_entry(entry_id))


@router.delete("", status_code=204)
def clear_history(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> Response:
    with operate_on(registry, session_id) as session:
        removed = session.clear_history()
    event_broker.publish(session_id, {"type": "history_cleared", "sessionId": session_id, "removed": removed})
    return Response(status_code=204)
