"""Content sources supplying per-format payloads for a document."""

from __future__ import annotations

from typing import Optional

import httpx

from .base import ContentSource
from .http import HttpContentSource
from .simulated import SimulatedContentSource

CONTENT_SOURCE_MODES = ("simulated", "http")


def build_content_source(
    *,
    mode: str,
    base_url: str = "",
    timeout_s: float = 30.0,
    cache_max: int = 16,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ContentSource:
    selected = str(mode or "").strip().lower()
    if selected == "http":
        return HttpContentSource(
            base_url,
            timeout_s=timeout_s,
            cache_max=cache_max,
            transport=transport,
        )
    if selected == "simulated":
        return SimulatedContentSource()
    raise ValueError(f"unsupported content source mode: {mode!r}; expected one of {CONTENT_SOURCE_MODES}")


__all__ = [
    "CONTENT_SOURCE_MODES",
    "ContentSource",
    "HttpContentSource",
    "SimulatedContentSource",
    "build_content_source",
]
