"""In-memory registry of viewing sessions."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Callable, Dict, List, Optional

from .arbiter import Clock
from .content_source import ContentSource
from .errors import SessionLimitError
from .session import ViewingSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(
        self,
        source: ContentSource,
        *,
        max_sessions: int = 100,
        window_size: int = 5,
        low_focus_threshold: int = 40,
        cooldown_s: float = 60.0,
        default_attention_level: int = 75,
        clock: Clock = time.time,
    ) -> None:
        self._source = source
        self._max_sessions = max(1, int(max_sessions))
        self._window_size = window_size
        self._low_focus_threshold = low_focus_threshold
        self._cooldown_s = cooldown_s
        self._default_attention_level = default_attention_level
        self._clock = clock
        self._sessions: Dict[str, ViewingSession] = {}
        self._lock = asyncio.Lock()

    @property
    def source(self) -> ContentSource:
        return self._source

    async def create(self, session_id: Optional[str] = None) -> ViewingSession:
        async with self._lock:
            sid = session_id or uuid.uuid4().hex
            if sid in self._sessions:
                raise ValueError(f"session {sid} already exists")
            if len(self._sessions) >= self._max_sessions:
                raise SessionLimitError(f"session limit reached ({self._max_sessions})")
            session = ViewingSession(
                sid,
                self._source,
                window_size=self._window_size,
                low_focus_threshold=self._low_focus_threshold,
                cooldown_s=self._cooldown_s,
                default_attention_level=self._default_attention_level,
                clock=self._clock,
            )
            self._sessions[sid] = session
        logger.info("session_created session=%s", sid, extra={"session_id": sid})
        return session

    async def get(self, session_id: str) -> Optional[ViewingSession]:
        async with self._lock:
            return self._sessions.get(session_id)

    async def list(self) -> List[ViewingSession]:
        async with self._lock:
            return list(self._sessions.values())

    async def count(self) -> int:
        async with self._lock:
            return len(self._sessions)

    async def close(self, session_id: str) -> bool:
        async with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        await session.close()
        return True

    async def prune_idle(
        self,
        idle_timeout_s: float,
        *,
        is_attached: Optional[Callable[[str], bool]] = None,
    ) -> List[str]:
        """Close sessions with no sample source, no attached viewer and no recent activity."""
        if idle_timeout_s <= 0:
            return []
        async with self._lock:
            expired = [
                session
                for session in self._sessions.values()
                if not session.source_connected
                and not (is_attached is not None and is_attached(session.session_id))
                and session.idle_for() >= idle_timeout_s
            ]
            for session in expired:
                self._sessions.pop(session.session_id, None)
        for session in expired:
            logger.info(
                "session_expired session=%s idle_s=%.0f",
                session.session_id,
                session.idle_for(),
                extra={"session_id": session.session_id},
            )
            await session.close()
        return [session.session_id for session in expired]

    async def reset(self) -> int:
        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            await session.close()
        return len(sessions)
