"""Runtime log inspection routes."""

from typing import Optional

from fastapi import APIRouter, HTTPException

from ..deps import runtime_logs
from ..runtime_logs import parse_iso

router = APIRouter()


@router.get("/api/runtime-logs")
async def list_runtime_logs(
    limit: int = 200,
    level: Optional[str] = None,
    contains: Optional[str] = None,
    session_id: Optional[str] = None,
    since: Optional[str] = None,
) -> dict:
    if since and parse_iso(since) is None:
        raise HTTPException(status_code=400, detail="invalid since timestamp")
    logs = runtime_logs.list_entries(
        limit=limit,
        level=level,
        contains=contains,
        session_id=session_id,
        since=since,
    )
    return {"logs": logs}


@router.post("/api/runtime-logs/reset")
async def reset_runtime_logs() -> dict:
    cleared = runtime_logs.clear()
    return {"cleared": cleared}


@router.get("/api/runtime-logs/sessions")
async def runtime_log_sessions() -> dict:
    return {"sessions": runtime_logs.session_counts()}
