"""WebSocket hub fanning session notifications out to connected UI clients."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from fastapi import WebSocket


class WebSocketHub:
    def __init__(self, send_timeout_s: float = 1.0, max_connections: int = 20) -> None:
        self._clients: Dict[str, Set[WebSocket]] = {}
        self._send_timeout_s = send_timeout_s
        self._max_connections = max_connections
        self._lock = asyncio.Lock()

    def connection_count(self, session_id: Optional[str] = None) -> int:
        if session_id is not None:
            return len(self._clients.get(session_id, ()))
        return sum(len(clients) for clients in self._clients.values())

    async def add(self, session_id: str, ws: WebSocket) -> bool:
        """Accept and register a WebSocket for a session. Returns False if at capacity."""
        async with self._lock:
            clients = self._clients.setdefault(session_id, set())
            if len(clients) >= self._max_connections:
                await ws.close(code=1013, reason="max connections reached")
                return False
            await ws.accept()
            clients.add(ws)
            return True

    async def remove(self, session_id: str, ws: WebSocket) -> None:
        async with self._lock:
            clients = self._clients.get(session_id)
            if clients is None:
                return
            clients.discard(ws)
            if not clients:
                self._clients.pop(session_id, None)

    async def drop_session(self, session_id: str) -> int:
        """Forget every client of a session and close their sockets."""
        async with self._lock:
            clients = self._clients.pop(session_id, set())
        for ws in clients:
            try:
                await ws.close(code=1000, reason="session closed")
            except Exception:
                continue
        return len(clients)

    def listener_for(self, session_id: str) -> Callable[[Dict[str, Any]], Awaitable[None]]:
        async def _broadcast(payload: Dict[str, Any]) -> None:
            await self.broadcast_json(session_id, payload)

        return _broadcast

    async def broadcast_json(self, session_id: str, payload: dict) -> None:
        async with self._lock:
            clients = list(self._clients.get(session_id, ()))
        if not clients:
            return
        stale = []

        async def _send_one(ws: WebSocket):
            try:
                await asyncio.wait_for(ws.send_json(payload), timeout=self._send_timeout_s)
                return None
            except Exception:
                return ws

        results = await asyncio.gather(*[_send_one(ws) for ws in clients], return_exceptions=False)
        stale.extend(ws for ws in results if ws is not None)
        if stale:
            async with self._lock:
                remaining = self._clients.get(session_id)
                if remaining is not None:
                    for ws in stale:
                        remaining.discard(ws)
