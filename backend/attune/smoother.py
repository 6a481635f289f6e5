"""Rolling-window smoothing of raw attention samples."""

from __future__ import annotations

import math
from collections import deque
from typing import Any, Deque, List

import pydantic

from .errors import ValidationError
from .schemas import AttentionSample, SmoothedSignal

DEFAULT_WINDOW_SIZE = 5


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for non-negative input."""
    return int(math.floor(value + 0.5))


class SignalSmoother:
    def __init__(self, window_size: int = DEFAULT_WINDOW_SIZE) -> None:
        if window_size < 1:
            raise ValueError("window_size must be at least 1")
        self._window: Deque[int] = deque(maxlen=window_size)

    @property
    def window_size(self) -> int:
        return self._window.maxlen or DEFAULT_WINDOW_SIZE

    @property
    def window(self) -> List[int]:
        return list(self._window)

    def ingest(self, sample: Any) -> SmoothedSignal:
        """Append a sample and return the rounded mean of the current window.

        Malformed samples raise ``ValidationError`` and leave the window untouched.
        """
        value = _validated_value(sample)
        self._window.append(value)
        mean = sum(self._window) / len(self._window)
        return SmoothedSignal(value=round_half_up(mean), sample_count=len(self._window))

    def reset(self) -> None:
        self._window.clear()


def _validated_value(sample: Any) -> int:
    if not isinstance(sample, AttentionSample):
        try:
            sample = AttentionSample.model_validate(sample)
        except pydantic.ValidationError as exc:
            raise ValidationError(f"malformed attention sample: {exc.errors()[0]['msg']}", payload=sample) from exc
    value = sample.value
    # model_construct() skips validation, so bounds are checked again here.
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 100:
        raise ValidationError(f"attention value out of range: {value!r}", payload=sample)
    return value
