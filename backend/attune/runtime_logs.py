"""In-memory ring buffer of runtime log records, correlated by viewing session."""

from __future__ import annotations

import logging
from collections import Counter, deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Dict, List, Optional


@dataclass(frozen=True)
class RuntimeLogEntry:
    level: str
    logger: str
    message: str
    session_id: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def severity(self) -> int:
        value = logging.getLevelName(self.level)
        return value if isinstance(value, int) else logging.NOTSET

    def as_dict(self) -> Dict[str, Optional[str]]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


class RuntimeLogStore:
    """Bounded log buffer queried per session by the runtime log routes.

    ``level`` filters by minimum severity, so ``WARNING`` also returns errors.
    """

    def __init__(self, max_entries: int = 1000):
        self._entries: deque[RuntimeLogEntry] = deque(maxlen=max(1, int(max_entries)))
        self._lock = Lock()

    def append(
        self,
        *,
        level: str,
        logger_name: str,
        message: str,
        session_id: Optional[str] = None,
    ) -> None:
        entry = RuntimeLogEntry(level=level.upper(), logger=logger_name, message=message, session_id=session_id)
        with self._lock:
            self._entries.append(entry)

    def list_entries(
        self,
        *,
        limit: int = 200,
        level: Optional[str] = None,
        contains: Optional[str] = None,
        session_id: Optional[str] = None,
        since: Optional[str] = None,
    ) -> List[dict]:
        checks: List[Callable[[RuntimeLogEntry], bool]] = []
        if session_id:
            checks.append(lambda entry: entry.session_id == session_id)
        if level and level.strip():
            floor = RuntimeLogEntry(level=level.strip().upper(), logger="", message="").severity
            checks.append(lambda entry: entry.severity >= floor)
        needle = (contains or "").strip().lower()
        if needle:
            checks.append(lambda entry: needle in entry.message.lower() or needle in entry.logger.lower())
        since_dt = parse_iso(since)
        if since_dt is not None:
            checks.append(lambda entry: entry.timestamp >= since_dt)

        with self._lock:
            entries = list(self._entries)
        matched = [entry for entry in entries if all(check(entry) for check in checks)]
        max_items = max(1, min(int(limit), 2000))
        return [entry.as_dict() for entry in matched[-max_items:]]

    def session_counts(self) -> Dict[str, int]:
        """Buffered record count per session id; records without a session are skipped."""
        with self._lock:
            counts = Counter(entry.session_id for entry in self._entries if entry.session_id)
        return dict(counts)

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def count(self) -> int:
        with self._lock:
            return len(self._entries)


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    raw = (value or "").strip()
    if not raw:
        return None
    if raw.endswith("Z"):
        raw = f"{raw[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class RuntimeLogHandler(logging.Handler):
    """Copies records into the store, keeping the ``session_id`` passed via ``extra``."""

    def __init__(self, store: RuntimeLogStore):
        super().__init__()
        self._store = store

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._store.append(
                level=record.levelname,
                logger_name=record.name,
                message=record.getMessage(),
                session_id=getattr(record, "session_id", None),
            )
        except Exception:
            self.handleError(record)
