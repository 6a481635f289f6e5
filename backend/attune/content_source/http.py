"""HTTP content source backed by the document processing service."""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from ..errors import SourceFetchError
from ..schemas import ContentFormat, DocumentRef
from .base import ContentSource

logger = logging.getLogger(__name__)

# Keys of the processed-document bundle returned by the processing service.
_BUNDLE_KEYS: Dict[ContentFormat, str] = {
    ContentFormat.TEXT: "text",
    ContentFormat.FLIPCARD: "flipcard",
    ContentFormat.SHORT_FORM: "tiktok",
    ContentFormat.QUIZ: "quiz",
    ContentFormat.INTERACTIVE: "mini",
}


class HttpContentSource(ContentSource):
    """Uploads a document once, caches the processed bundle, and serves per-format payloads."""

    mode = "http"

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 30.0,
        cache_max: int = 16,
        process_path: str = "/process-pdf",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._process_path = process_path
        self._timeout_s = timeout_s
        self._cache_max = max(1, int(cache_max))
        self._cache: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        self._lock = asyncio.Lock()
        self._uploads: Dict[str, "asyncio.Task[Dict[str, Any]]"] = {}
        self._transport = transport
        self._last_fetch_at: Optional[str] = None
        self._last_http_status: Optional[int] = None
        self._last_error: Optional[str] = None

    async def fetch(self, content_format: ContentFormat, document: DocumentRef) -> Any:
        bundle = await self._bundle(document)
        return _extract(bundle, content_format)

    def status(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "available": self._last_error is None,
            "url": self.base_url,
            "cached_documents": len(self._cache),
            "last_fetch_at": self._last_fetch_at,
            "last_http_status": self._last_http_status,
            "last_error": self._last_error,
            "message": self._last_error or "HTTP content source ready.",
        }

    async def aclose(self) -> None:
        async with self._lock:
            uploads = list(self._uploads.values())
            self._uploads.clear()
        for upload in uploads:
            upload.cancel()

    async def _bundle(self, document: DocumentRef) -> Dict[str, Any]:
        """Return the processed bundle, uploading at most once per document at a time.

        The lock guards cache and in-flight bookkeeping only; uploads run
        outside it so one slow document never stalls fetches of another.
        """
        key = document.document_id
        async with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                self._cache.move_to_end(key)
                return cached
            upload = self._uploads.get(key)
            if upload is None:
                upload = asyncio.create_task(self._process(document))
                self._uploads[key] = upload

        try:
            bundle = await asyncio.shield(upload)
        except Exception:
            async with self._lock:
                if self._uploads.get(key) is upload:
                    del self._uploads[key]
            raise

        async with self._lock:
            if self._uploads.get(key) is upload:
                del self._uploads[key]
            self._cache[key] = bundle
            self._cache.move_to_end(key)
            while len(self._cache) > self._cache_max:
                self._cache.popitem(last=False)
        return bundle

    async def _process(self, document: DocumentRef) -> Dict[str, Any]:
        content = await self._read_document(document)
        filename = document.filename or Path(document.path or document.document_id).name
        url = f"{self.base_url}{self._process_path}"
        self._last_fetch_at = datetime.now(timezone.utc).isoformat()
        try:
            async with httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport) as client:
                resp = await client.post(url, files={"file": (filename, content)})
        except httpx.HTTPError as exc:
            self._record_failure(None, f"POST {self._process_path} failed: {_format_exception(exc)}")
            raise SourceFetchError(self._last_error or "request failed") from exc

        if resp.status_code != 200:
            self._record_failure(resp.status_code, f"POST {self._process_path} returned HTTP {resp.status_code}")
            raise SourceFetchError(self._last_error or "bad status", status_code=resp.status_code)

        try:
            payload = resp.json()
        except ValueError as exc:
            self._record_failure(resp.status_code, "processing service returned invalid JSON")
            raise SourceFetchError(self._last_error or "invalid JSON", status_code=resp.status_code) from exc
        if not isinstance(payload, dict):
            self._record_failure(resp.status_code, "processing service returned a non-object body")
            raise SourceFetchError(self._last_error or "invalid body", status_code=resp.status_code)

        self._last_http_status = resp.status_code
        self._last_error = None
        logger.info("document_processed document_id=%s keys=%s", document.document_id, sorted(payload))
        return payload

    async def _read_document(self, document: DocumentRef) -> bytes:
        if not document.path:
            raise SourceFetchError(f"document {document.document_id} has no readable path")
        try:
            return await asyncio.to_thread(Path(document.path).read_bytes)
        except OSError as exc:
            raise SourceFetchError(f"cannot read document {document.document_id}: {exc}") from exc

    def _record_failure(self, status_code: Optional[int], error: str) -> None:
        self._last_http_status = status_code
        self._last_error = error
        logger.warning("content_fetch_failed status=%s error=%s", status_code, error)


def _extract(bundle: Dict[str, Any], content_format: ContentFormat) -> Any:
    section = bundle.get(_BUNDLE_KEYS[content_format])
    data = section.get("data") if isinstance(section, dict) else None
    if not data:
        data = bundle.get("data")
    if data is None:
        raise SourceFetchError(
            f"processed document has no payload for format {content_format.value}",
            format=content_format.value,
        )
    return data


def _format_exception(exc: Exception) -> str:
    detail = str(exc).strip()
    if detail:
        return detail
    return exc.__class__.__name__
