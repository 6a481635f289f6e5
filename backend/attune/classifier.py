"""Maps a smoothed attention level to a content format and display band."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable

from .schemas import ContentFormat

# Evaluated top-down with strict ">" so 80, 60, 40 and 20 land in the lower band.
_FORMAT_THRESHOLDS: Iterable[tuple[int, ContentFormat]] = (
    (80, ContentFormat.TEXT),
    (60, ContentFormat.FLIPCARD),
    (40, ContentFormat.SHORT_FORM),
    (20, ContentFormat.QUIZ),
)
_FALLBACK_FORMAT = ContentFormat.INTERACTIVE

_BAND_RULES: Iterable[tuple[int, str, str]] = (
    (30, "Take a break!", "low"),
    (70, "We can do better", "medium"),
    (90, "LOCKED IN", "high"),
)


@dataclass(frozen=True)
class AttentionBand:
    label: str
    tone: str

    def as_dict(self) -> Dict[str, str]:
        return {"label": self.label, "tone": self.tone}


def classify(signal: int) -> ContentFormat:
    level = _clamp(signal)
    for bound, content_format in _FORMAT_THRESHOLDS:
        if level > bound:
            return content_format
    return _FALLBACK_FORMAT


def attention_band(level: int) -> AttentionBand:
    value = _clamp(level)
    for upper, label, tone in _BAND_RULES:
        if value < upper:
            return AttentionBand(label, tone)
    return AttentionBand("LFG", "high")


def _clamp(value: int) -> int:
    return max(0, min(100, int(value)))
