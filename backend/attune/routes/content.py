"""Content selection, suggestion resolution, and classification routes."""

from fastapi import APIRouter, Query

from ..classifier import attention_band, classify
from ..deps import _dump, _require_session, _session_http_error, content_source
from ..errors import NoActiveSuggestionError, SessionClosedError, SourceFetchError
from ..schemas import ContentSelectRequest

router = APIRouter()


@router.post("/api/sessions/{session_id}/content")
async def select_content(session_id: str, request: ContentSelectRequest) -> dict:
    """Load a document in the format matching the viewer's current attention level."""
    session = await _require_session(session_id)
    try:
        state = await session.select_source(request.document, request.attention_level)
    except (SourceFetchError, SessionClosedError) as exc:
        raise _session_http_error(exc) from exc
    return {"applied": state is not None, "content": _dump(state)}


@router.post("/api/sessions/{session_id}/suggestion/confirm")
async def confirm_suggestion(session_id: str) -> dict:
    session = await _require_session(session_id)
    try:
        outcome = await session.confirm_switch()
    except (NoActiveSuggestionError, SourceFetchError, SessionClosedError) as exc:
        raise _session_http_error(exc) from exc
    return {"outcome": _dump(outcome)}


@router.post("/api/sessions/{session_id}/suggestion/dismiss")
async def dismiss_suggestion(session_id: str) -> dict:
    session = await _require_session(session_id)
    try:
        await session.dismiss_suggestion()
    except (NoActiveSuggestionError, SessionClosedError) as exc:
        raise _session_http_error(exc) from exc
    return {"dismissed": True, "suggestion": _dump(session.snapshot().suggestion)}


@router.get("/api/classify")
async def classify_signal(signal: int = Query(..., ge=0, le=100)) -> dict:
    return {
        "signal": signal,
        "format": classify(signal).value,
        "band": attention_band(signal).as_dict(),
    }


@router.get("/api/content-source")
async def get_content_source_status() -> dict:
    return content_source.status()
