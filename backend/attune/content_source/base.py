"""Base types shared across content sources."""

from __future__ import annotations

from typing import Any, Dict

from ..schemas import ContentFormat, DocumentRef


class ContentSource:
    """Supplies the payload for one content format of a document.

    Implementations raise ``SourceFetchError`` on failure and never retry;
    retry policy belongs to the caller.
    """

    mode: str = "base"

    async def fetch(self, content_format: ContentFormat, document: DocumentRef) -> Any:
        raise NotImplementedError

    def status(self) -> Dict[str, Any]:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
