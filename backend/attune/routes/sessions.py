"""Viewing session lifecycle routes."""

from typing import Optional

from fastapi import APIRouter, HTTPException

from ..deps import (
    _close_session,
    _dump,
    _open_session,
    _require_session,
    _session_http_error,
    sessions,
)
from ..errors import SessionClosedError, SessionLimitError
from ..schemas import SessionCreateRequest

router = APIRouter()


@router.post("/api/sessions")
async def create_session(request: Optional[SessionCreateRequest] = None) -> dict:
    """Start a viewing session with its own smoother, arbiter and controller."""
    session_id = request.session_id if request is not None else None
    try:
        session = await _open_session(session_id)
    except (SessionLimitError, ValueError) as exc:
        raise _session_http_error(exc) from exc
    return {"session": _dump(session.snapshot())}


@router.get("/api/sessions")
async def list_sessions() -> dict:
    items = await sessions.list()
    return {"sessions": [_dump(session.snapshot()) for session in items]}


@router.get("/api/sessions/{session_id}")
async def get_session(session_id: str) -> dict:
    session = await _require_session(session_id)
    return {"session": _dump(session.snapshot())}


@router.post("/api/sessions/{session_id}/restart")
async def restart_session(session_id: str) -> dict:
    """Clear the smoothing window, suggestion cooldown and content state."""
    session = await _require_session(session_id)
    try:
        snapshot = await session.restart()
    except SessionClosedError as exc:
        raise _session_http_error(exc) from exc
    return {"session": _dump(snapshot)}


@router.delete("/api/sessions/{session_id}")
async def delete_session(session_id: str) -> dict:
    closed = await _close_session(session_id)
    if not closed:
        raise HTTPException(status_code=404, detail=f"session {session_id} not found")
    return {"closed": True, "session_id": session_id}
