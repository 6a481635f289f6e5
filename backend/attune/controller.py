"""Content switch controller: owns the active content state of one viewing session."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from .arbiter import Clock, SuggestionArbiter
from .classifier import classify
from .content_source import ContentSource
from .errors import SessionClosedError, SourceFetchError
from .schemas import (
    ContentFormat,
    ContentState,
    DocumentRef,
    SmoothedSignal,
    SuggestionPrompt,
    SwitchOutcome,
)

logger = logging.getLogger(__name__)


class ContentSwitchController:
    """Applies classifier output to content fetches and arbiter decisions to format switches.

    Attention updates only feed the arbiter; the active format changes on the
    first fetch for a document or after an explicit viewer confirmation.

    Document selections and format switches carry separate tokens. A selection
    result is dropped only when a newer selection, a reset, or teardown
    superseded it. A switch waits for pending selections so it always targets
    the newest document, and its result is dropped when a later selection,
    switch, reset, or teardown superseded it.
    """

    def __init__(
        self,
        source: ContentSource,
        arbiter: SuggestionArbiter,
        *,
        clock: Clock = time.time,
    ) -> None:
        self._source = source
        self._arbiter = arbiter
        self._clock = clock
        self._state: Optional[ContentState] = None
        self._document: Optional[DocumentRef] = None
        self._selection = 0
        self._switch = 0
        self._selections_pending = 0
        self._selection_idle = asyncio.Event()
        self._selection_idle.set()
        self._inflight = 0
        self._closed = False

    @property
    def arbiter(self) -> SuggestionArbiter:
        return self._arbiter

    @property
    def state(self) -> Optional[ContentState]:
        if self._state is None:
            return None
        return self._state.model_copy(deep=True)

    @property
    def document(self) -> Optional[DocumentRef]:
        return self._document.model_copy() if self._document is not None else None

    @property
    def loading(self) -> bool:
        return self._inflight > 0

    @property
    def closed(self) -> bool:
        return self._closed

    async def select_initial(self, signal: int, document: DocumentRef) -> Optional[ContentState]:
        """Fetch and commit content for ``document`` in the format ``signal`` classifies to.

        Returns ``None`` when the result arrived after teardown or after a newer
        selection superseded it. Raises ``SourceFetchError`` with prior state intact.
        """
        self._ensure_open()
        content_format = classify(signal)
        self._selection += 1
        self._switch += 1
        token = self._selection
        self._selections_pending += 1
        self._selection_idle.clear()
        try:
            payload = await self._fetch(content_format, document, lambda: token == self._selection)
            if payload is _STALE:
                return None
            self._document = document.model_copy()
            self._state = ContentState(
                format=content_format,
                payload=payload,
                focus_score_at_selection=signal,
                selected_at=self._now(),
                document_id=document.document_id,
            )
        finally:
            self._selections_pending -= 1
            if not self._selections_pending:
                self._selection_idle.set()
        logger.info(
            "content_selected document_id=%s format=%s focus_score=%d",
            document.document_id,
            content_format.value,
            signal,
        )
        return self.state

    def on_attention_update(self, signal: SmoothedSignal) -> Optional[SuggestionPrompt]:
        if self._closed:
            return None
        return self._arbiter.observe(signal)

    def accept_suggestion(self) -> int:
        """Resolve the open prompt as confirmed and return the candidate score."""
        self._ensure_open()
        return self._arbiter.confirm_switch()

    async def confirm_switch(self) -> SwitchOutcome:
        return await self.apply_switch(self.accept_suggestion())

    def dismiss(self) -> None:
        self._ensure_open()
        self._arbiter.dismiss()

    async def apply_switch(self, signal: int) -> SwitchOutcome:
        """Switch to the format ``signal`` classifies to, fetching only when it differs.

        Waits for any pending document selection first, so the switch applies
        to the document the viewer loaded last.
        """
        self._ensure_open()
        await self._selection_idle.wait()
        current = self._state
        document = self._document
        if self._closed or current is None or document is None:
            return SwitchOutcome(changed=False, state=self.state)

        content_format = classify(signal)
        if content_format == current.format:
            return SwitchOutcome(changed=False, state=self.state, previous_format=current.format)

        self._switch += 1
        token = self._switch
        payload = await self._fetch(content_format, document, lambda: token == self._switch)
        if payload is _STALE:
            return SwitchOutcome(changed=False, state=self.state, previous_format=current.format)

        self._state = ContentState(
            format=content_format,
            payload=payload,
            focus_score_at_selection=signal,
            selected_at=self._now(),
            document_id=current.document_id,
        )
        logger.info(
            "content_switched document_id=%s from=%s to=%s focus_score=%d",
            current.document_id,
            current.format.value,
            content_format.value,
            signal,
        )
        return SwitchOutcome(changed=True, state=self.state, previous_format=current.format)

    def reset(self) -> None:
        self._selection += 1
        self._switch += 1
        self._state = None
        self._document = None
        self._arbiter.reset()

    def close(self) -> None:
        self._selection += 1
        self._switch += 1
        self._closed = True

    async def _fetch(
        self,
        content_format: ContentFormat,
        document: DocumentRef,
        is_current: Callable[[], bool],
    ) -> Any:
        self._inflight += 1
        try:
            payload = await self._source.fetch(content_format, document)
        except Exception as exc:
            if not is_current():
                logger.debug("stale_fetch_failure_dropped format=%s error=%s", content_format.value, exc)
                return _STALE
            if isinstance(exc, SourceFetchError):
                raise
            raise SourceFetchError(
                f"content fetch failed: {exc}", format=content_format.value
            ) from exc
        finally:
            self._inflight -= 1
        if not is_current():
            logger.debug("stale_fetch_dropped format=%s document_id=%s", content_format.value, document.document_id)
            return _STALE
        return payload

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError("viewing session has been closed")

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc)


_STALE = object()
