"""UI WebSocket route streaming one session's notifications."""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..deps import _dump, hub, sessions

router = APIRouter()


@router.websocket("/ws/{session_id}")
async def ui_ws(ws: WebSocket, session_id: str) -> None:
    session = await sessions.get(session_id)
    if session is None or session.closed:
        await ws.close(code=4404, reason="unknown session")
        return
    accepted = await hub.add(session_id, ws)
    if not accepted:
        return
    session.touch()
    await ws.send_json({"type": "snapshot", "session": _dump(session.snapshot())})
    try:
        while True:
            await ws.receive_text()
    except WebSocketDisconnect:
        await hub.remove(session_id, ws)
        session.touch()
