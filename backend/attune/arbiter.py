"""Suggestion arbiter: decides when to prompt the viewer to switch content formats."""

from __future__ import annotations

import logging
import time
from collections import deque
from enum import Enum
from typing import Callable, Deque, List, Optional, Union

from .errors import NoActiveSuggestionError
from .schemas import SmoothedSignal, SuggestionPrompt, SuggestionState

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

DEFAULT_HISTORY_SIZE = 5
LOW_FOCUS_THRESHOLD = 40
SUGGESTION_COOLDOWN_S = 60.0


class SuggestionPhase(str, Enum):
    IDLE = "idle"
    SUGGESTING = "suggesting"


class SuggestionArbiter:
    """Two-state machine (idle/suggesting) with a cooldown between prompts.

    A prompt opens once the history holds a full window of smoothed readings,
    the latest reading is below the low-focus threshold, and the cooldown since
    the last resolved prompt has elapsed. While a prompt is open, the candidate
    score follows the latest reading and no further prompt opens. Confirm and
    dismiss both restart the cooldown.
    """

    def __init__(
        self,
        *,
        history_size: int = DEFAULT_HISTORY_SIZE,
        low_focus_threshold: int = LOW_FOCUS_THRESHOLD,
        cooldown_s: float = SUGGESTION_COOLDOWN_S,
        clock: Clock = time.time,
    ) -> None:
        self._history: Deque[int] = deque(maxlen=max(1, history_size))
        self._threshold = low_focus_threshold
        self._cooldown_s = cooldown_s
        self._clock = clock
        self._phase = SuggestionPhase.IDLE
        self._last_suggested_at: Optional[float] = None
        self._candidate: Optional[int] = None

    @property
    def phase(self) -> SuggestionPhase:
        return self._phase

    @property
    def suggesting(self) -> bool:
        return self._phase is SuggestionPhase.SUGGESTING

    @property
    def candidate(self) -> Optional[int]:
        """Average focus score shown with the open prompt, if any."""
        return self._candidate if self.suggesting else None

    @property
    def history(self) -> List[int]:
        return list(self._history)

    @property
    def state(self) -> SuggestionState:
        return SuggestionState(
            last_suggested_at=self._last_suggested_at,
            modal_open=self.suggesting,
        )

    def observe(self, signal: Union[SmoothedSignal, int]) -> Optional[SuggestionPrompt]:
        """Record a smoothed reading; return a prompt only on the idle -> suggesting edge."""
        value = signal.value if isinstance(signal, SmoothedSignal) else int(signal)
        self._history.append(value)

        if self.suggesting:
            self._candidate = value
            return None

        now = self._clock()
        if not self._ready(value, now):
            return None

        self._phase = SuggestionPhase.SUGGESTING
        self._candidate = value
        logger.info("suggestion_open average_focus_score=%d", value)
        return SuggestionPrompt(average_focus_score=value, opened_at=now)

    def confirm_switch(self) -> int:
        """Close the open prompt and return the candidate score to switch on."""
        return self._resolve("confirm")

    def dismiss(self) -> None:
        self._resolve("dismiss")

    def reset(self) -> None:
        self._history.clear()
        self._phase = SuggestionPhase.IDLE
        self._last_suggested_at = None
        self._candidate = None

    def _ready(self, value: int, now: float) -> bool:
        if len(self._history) < self._history.maxlen:
            return False
        if value >= self._threshold:
            return False
        if self._last_suggested_at is None:
            return True
        return now - self._last_suggested_at >= self._cooldown_s

    def _resolve(self, action: str) -> int:
        if not self.suggesting or self._candidate is None:
            raise NoActiveSuggestionError(f"cannot {action}: no suggestion is open")
        candidate = self._candidate
        self._last_suggested_at = self._clock()
        self._phase = SuggestionPhase.IDLE
        self._candidate = None
        logger.info("suggestion_%s average_focus_score=%d", action, candidate)
        return candidate
