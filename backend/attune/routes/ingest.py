"""Attention sample ingest routes: HTTP and WebSocket."""

import asyncio
import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, WebSocket, WebSocketDisconnect

from ..config import settings
from ..deps import _require_session, _session_http_error, sessions
from ..errors import SessionClosedError, ValidationError
from ..session import ViewingSession

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/sessions/{session_id}/samples")
async def post_sample(session_id: str, payload: Any = Body(...)) -> dict:
    """Ingest a single ``{focusScore, timestamp}`` event via HTTP."""
    session = await _require_session(session_id)
    try:
        changed = await session.ingest_event(payload)
    except (ValidationError, SessionClosedError) as exc:
        raise _session_http_error(exc) from exc
    return {"status": "ok", **changed.model_dump()}


async def _heartbeat_sender(ws: WebSocket, interval_s: float) -> None:
    """Send periodic JSON pings to the sample source to detect stale connections."""
    while True:
        await asyncio.sleep(interval_s)
        try:
            await ws.send_json({"type": "ping"})
        except Exception:
            break


async def _handle_message(session: ViewingSession, raw: str) -> Dict[str, Any]:
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning(
            "sample_rejected session=%s reason=invalid JSON",
            session.session_id,
            extra={"session_id": session.session_id},
        )
        return {"status": "rejected", "error": "invalid JSON"}
    if isinstance(data, dict) and data.get("type") == "pong":
        return {}
    try:
        changed = await session.ingest_event(data)
    except ValidationError as exc:
        return {"status": "rejected", "error": str(exc)}
    return {"status": "ok", "attention_level": changed.attention_level}


@router.websocket("/ingest/{session_id}")
async def ingest_ws(ws: WebSocket, session_id: str) -> None:
    """WebSocket endpoint for the real-time attention sample stream of one session."""
    session = await sessions.get(session_id)
    if session is None or session.closed:
        await ws.close(code=4404, reason="unknown session")
        return
    await ws.accept()
    session.note_source_connected(True)
    logger.info("sample_source_connected session=%s", session_id, extra={"session_id": session_id})
    heartbeat_task = asyncio.create_task(
        _heartbeat_sender(ws, settings.ingest_heartbeat_interval_s)
    )
    try:
        while True:
            raw = await ws.receive_text()
            ack = await _handle_message(session, raw)
            if ack:
                await ws.send_json(ack)
    except WebSocketDisconnect:
        logger.info("sample_source_disconnected session=%s", session_id, extra={"session_id": session_id})
    except SessionClosedError:
        await ws.close(code=1000, reason="session closed")
    except Exception as exc:
        logger.exception("Sample source WS error: %s", exc)
    finally:
        heartbeat_task.cancel()
        session.note_source_connected(False)
