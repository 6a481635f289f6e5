"""Exception types raised by the attention engine and its collaborators."""

from __future__ import annotations

from typing import Optional


class AttuneError(Exception):
    """Base class for session-local engine errors."""


class ValidationError(AttuneError, ValueError):
    """A malformed attention sample was rejected before entering the window."""

    def __init__(self, message: str, *, payload: object = None) -> None:
        super().__init__(message)
        self.payload = payload


class SourceFetchError(AttuneError):
    """The external content source could not supply a payload."""

    def __init__(
        self,
        message: str,
        *,
        format: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.format = format
        self.status_code = status_code


class NoActiveSuggestionError(AttuneError):
    """Confirm or dismiss was called while no suggestion prompt is open."""


class SessionClosedError(AttuneError):
    """An operation was attempted on a torn-down viewing session."""


class SessionLimitError(AttuneError):
    """The session registry is at capacity."""
