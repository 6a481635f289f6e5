"""Simulated (deterministic) content source for development and tests."""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

from ..schemas import ContentFormat, DocumentRef
from .base import ContentSource


class SimulatedContentSource(ContentSource):
    mode = "simulated"

    def __init__(self) -> None:
        self.calls: List[Tuple[ContentFormat, str]] = []

    async def fetch(self, content_format: ContentFormat, document: DocumentRef) -> Any:
        self.calls.append((content_format, document.document_id))
        return {
            "source": "backend-simulated",
            "format": content_format.value,
            "document_id": document.document_id,
            "title": document.filename or document.document_id,
        }

    def status(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "available": True,
            "fetches": len(self.calls),
            "message": "Simulated deterministic content source active.",
        }
