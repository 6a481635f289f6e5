"""Shared singletons and helpers used by route modules."""

from __future__ import annotations

import asyncio
import logging
from typing import List

from fastapi import HTTPException
from fastapi.encoders import jsonable_encoder

from .config import settings
from .content_source import build_content_source
from .errors import (
    NoActiveSuggestionError,
    SessionClosedError,
    SessionLimitError,
    SourceFetchError,
    ValidationError,
)
from .runtime_logs import RuntimeLogStore
from .session import ViewingSession
from .sessions import SessionRegistry
from .ws import WebSocketHub

logger = logging.getLogger("attune.backend")

# ── Singletons ────────────────────────────────────────────────────────────

runtime_logs = RuntimeLogStore(max_entries=settings.runtime_log_max_entries)
hub = WebSocketHub(
    send_timeout_s=settings.ws_send_timeout_s,
    max_connections=settings.ws_max_connections,
)
content_source = build_content_source(
    mode=settings.content_source_mode,
    base_url=settings.content_source_url,
    timeout_s=settings.content_source_timeout_s,
    cache_max=settings.content_cache_max,
)
sessions = SessionRegistry(
    content_source,
    max_sessions=settings.max_sessions,
    window_size=settings.smoothing_window,
    low_focus_threshold=settings.low_focus_threshold,
    cooldown_s=settings.suggestion_cooldown_s,
    default_attention_level=settings.default_attention_level,
)


# ── Helpers ───────────────────────────────────────────────────────────────

def _dump(model):
    return jsonable_encoder(model)


async def _require_session(session_id: str) -> ViewingSession:
    session = await sessions.get(session_id)
    if session is None or session.closed:
        raise HTTPException(status_code=404, detail=f"session {session_id} not found")
    return session


async def _open_session(session_id=None) -> ViewingSession:
    session = await sessions.create(session_id)
    session.subscribe(hub.listener_for(session.session_id))
    return session


async def _close_session(session_id: str) -> bool:
    closed = await sessions.close(session_id)
    if closed:
        await hub.drop_session(session_id)
    return closed


async def _reap_idle_sessions() -> List[str]:
    """Close sessions left behind by viewers that navigated away."""
    expired = await sessions.prune_idle(
        settings.session_idle_timeout_s,
        is_attached=lambda session_id: hub.connection_count(session_id) > 0,
    )
    for session_id in expired:
        await hub.drop_session(session_id)
    return expired


async def _session_reaper(interval_s: float) -> None:
    while True:
        await asyncio.sleep(interval_s)
        try:
            await _reap_idle_sessions()
        except Exception as exc:
            logger.exception("Idle session sweep failed: %s", exc)


def _session_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, SessionClosedError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, NoActiveSuggestionError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, SessionLimitError):
        return HTTPException(status_code=429, detail=str(exc))
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, SourceFetchError):
        return HTTPException(status_code=502, detail=str(exc))
    if isinstance(exc, ValueError):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))
