"""Viewing session: one smoother/arbiter/controller triple plus its host notifications."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

import pydantic
from fastapi.encoders import jsonable_encoder

from .arbiter import Clock, SuggestionArbiter
from .classifier import attention_band
from .content_source import ContentSource
from .controller import ContentSwitchController
from .errors import SessionClosedError, SourceFetchError, ValidationError
from .schemas import (
    AttentionChanged,
    ContentState,
    DocumentRef,
    FocusScoreEvent,
    SampleSourceStatus,
    SessionSnapshot,
    SuggestionAction,
    SwitchOutcome,
)
from .smoother import SignalSmoother, round_half_up

logger = logging.getLogger(__name__)

Listener = Callable[[Dict[str, Any]], Awaitable[None]]


class ViewingSession:
    def __init__(
        self,
        session_id: str,
        source: ContentSource,
        *,
        window_size: int = 5,
        low_focus_threshold: int = 40,
        cooldown_s: float = 60.0,
        default_attention_level: int = 75,
        clock: Clock = time.time,
    ) -> None:
        self.session_id = session_id
        self._clock = clock
        self._default_attention_level = default_attention_level
        self._smoother = SignalSmoother(window_size)
        self._arbiter = SuggestionArbiter(
            history_size=window_size,
            low_focus_threshold=low_focus_threshold,
            cooldown_s=cooldown_s,
            clock=clock,
        )
        self._controller = ContentSwitchController(source, self._arbiter, clock=clock)
        self._attention_level = default_attention_level
        self._source_status = SampleSourceStatus()
        self._listeners: List[Listener] = []
        self._lock = asyncio.Lock()
        self._closed = False
        self._last_activity = clock()
        self.created_at = datetime.fromtimestamp(self._last_activity, tz=timezone.utc)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def source_connected(self) -> bool:
        return self._source_status.connected

    def idle_for(self) -> float:
        """Seconds since the last sample, viewer action or source connection change."""
        return self._clock() - self._last_activity

    @property
    def attention_level(self) -> int:
        return self._attention_level

    @property
    def controller(self) -> ContentSwitchController:
        return self._controller

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def ingest_event(self, payload: Union[FocusScoreEvent, Mapping[str, Any]]) -> AttentionChanged:
        """Apply one inbound focus score event and notify observers.

        Malformed events are logged, counted and re-raised as ``ValidationError``;
        the smoothing window is left untouched.
        """
        async with self._lock:
            self._ensure_open()
            self.touch()
            try:
                event = _parse_focus_event(payload)
                smoothed = self._smoother.ingest(
                    {
                        "value": round_half_up(event.focus_score),
                        "observed_at": self._observed_at(event),
                    }
                )
            except ValidationError as exc:
                self._source_status.rejected += 1
                logger.warning(
                    "sample_rejected session=%s reason=%s",
                    self.session_id,
                    exc,
                    extra={"session_id": self.session_id},
                )
                raise

            self._attention_level = smoothed.value
            self._source_status.accepted += 1
            self._source_status.last_sample_at = datetime.now(timezone.utc)
            prompt = self._controller.on_attention_update(smoothed)

            changed = AttentionChanged(
                attention_level=smoothed.value,
                should_switch_content=False,
                band=attention_band(smoothed.value).as_dict(),
            )
            await self._emit({"type": "attention_changed", **changed.model_dump()})
            if prompt is not None:
                logger.info(
                    "suggestion_opened session=%s average_focus_score=%d",
                    self.session_id,
                    prompt.average_focus_score,
                    extra={"session_id": self.session_id},
                )
                await self._emit_suggestion("open", prompt.average_focus_score)
            return changed

    async def select_source(
        self, document: DocumentRef, attention_level: Optional[int] = None
    ) -> Optional[ContentState]:
        """Fetch content for a newly available document at the current attention level."""
        async with self._lock:
            self._ensure_open()
            self.touch()
            level = self._attention_level if attention_level is None else attention_level
            await self._emit({"type": "content_loading", "document_id": document.document_id})

        try:
            state = await self._controller.select_initial(level, document)
        except SourceFetchError as exc:
            await self._report_failure(exc, document.document_id)
            raise

        if state is None:
            return None
        async with self._lock:
            await self._emit({"type": "content_state", "state": jsonable_encoder(state)})
        return state

    async def confirm_switch(self) -> SwitchOutcome:
        async with self._lock:
            self._ensure_open()
            self.touch()
            candidate = self._controller.accept_suggestion()
            await self._emit_suggestion("confirm", candidate)
            changed = AttentionChanged(
                attention_level=candidate,
                should_switch_content=True,
                band=attention_band(candidate).as_dict(),
            )
            await self._emit({"type": "attention_changed", **changed.model_dump()})

        try:
            outcome = await self._controller.apply_switch(candidate)
        except SourceFetchError as exc:
            document = self._controller.document
            await self._report_failure(exc, document.document_id if document else None)
            raise

        if outcome.changed and outcome.state is not None:
            async with self._lock:
                await self._emit({"type": "content_state", "state": jsonable_encoder(outcome.state)})
        return outcome

    async def dismiss_suggestion(self) -> None:
        async with self._lock:
            self._ensure_open()
            self.touch()
            candidate = self._arbiter.candidate
            self._controller.dismiss()
            await self._emit_suggestion("dismiss", candidate)

    async def restart(self) -> SessionSnapshot:
        async with self._lock:
            self._ensure_open()
            self.touch()
            self._smoother.reset()
            self._controller.reset()
            self._attention_level = self._default_attention_level
            self._source_status.accepted = 0
            self._source_status.rejected = 0
            self._source_status.last_sample_at = None
            snapshot = self.snapshot()
            await self._emit({"type": "snapshot", "session": jsonable_encoder(snapshot)})
            logger.info("session_restarted session=%s", self.session_id, extra={"session_id": self.session_id})
            return snapshot

    async def close(self) -> None:
        async with self._lock:
            if self._closed:
                return
            self._closed = True
            self._controller.close()
            await self._emit({"type": "session_closed", "session_id": self.session_id})
            self._listeners.clear()
            logger.info("session_closed session=%s", self.session_id, extra={"session_id": self.session_id})

    def note_source_connected(self, connected: bool) -> None:
        self._source_status.connected = connected
        self.touch()

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.session_id,
            closed=self._closed,
            attention_level=self._attention_level,
            window=self._smoother.window,
            suggestion=self._arbiter.state,
            suggesting=self._arbiter.suggesting,
            candidate_focus_score=self._arbiter.candidate,
            content=self._controller.state,
            loading=self._controller.loading,
            document=self._controller.document,
            sample_source=self._source_status.model_copy(),
        )

    async def _emit_suggestion(self, action: SuggestionAction, score: Optional[int]) -> None:
        await self._emit({"type": "suggestion", "action": action, "average_focus_score": score})

    async def _report_failure(self, exc: SourceFetchError, document_id: Optional[str]) -> None:
        logger.warning(
            "content_fetch_failed session=%s document_id=%s error=%s",
            self.session_id,
            document_id,
            exc,
            extra={"session_id": self.session_id},
        )
        async with self._lock:
            if self._closed:
                return
            await self._emit(
                {
                    "type": "content_failed",
                    "document_id": document_id,
                    "format": exc.format,
                    "error": str(exc),
                }
            )

    async def _emit(self, payload: Dict[str, Any]) -> None:
        message = {"session_id": self.session_id, **payload}
        for listener in list(self._listeners):
            try:
                await listener(message)
            except Exception as exc:
                logger.exception("Failed to notify session listener: %s", exc)

    def _observed_at(self, event: FocusScoreEvent) -> datetime:
        if event.timestamp is None:
            return datetime.fromtimestamp(self._clock(), tz=timezone.utc)
        try:
            return datetime.fromtimestamp(event.timestamp / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise ValidationError(f"invalid sample timestamp: {event.timestamp!r}") from exc

    def touch(self) -> None:
        self._last_activity = self._clock()

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError(f"session {self.session_id} is closed")


def _parse_focus_event(payload: Union[FocusScoreEvent, Mapping[str, Any]]) -> FocusScoreEvent:
    if isinstance(payload, FocusScoreEvent):
        return payload
    try:
        return FocusScoreEvent.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise ValidationError(f"malformed focus score event: {exc.errors()[0]['msg']}", payload=payload) from exc
