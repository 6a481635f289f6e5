"""Pydantic models for samples, signals, content state, session events, and API requests."""

import math
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator


class ContentFormat(str, Enum):
    TEXT = "text"
    FLIPCARD = "flipcard"
    SHORT_FORM = "short_form"
    QUIZ = "quiz"
    INTERACTIVE = "interactive"


class AttentionSample(BaseModel):
    value: StrictInt = Field(ge=0, le=100)
    observed_at: datetime

    model_config = ConfigDict(frozen=True)


class FocusScoreEvent(BaseModel):
    """Inbound wire shape emitted by the attention sample source."""

    focus_score: float = Field(alias="focusScore")
    timestamp: Optional[float] = None  # epoch milliseconds

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @field_validator("focus_score", mode="before")
    @classmethod
    def _numeric_score(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("focusScore must be a number")
        if not math.isfinite(value):
            raise ValueError("focusScore must be finite")
        return value


class SmoothedSignal(BaseModel):
    value: int = Field(ge=0, le=100)
    sample_count: int = Field(ge=1)

    model_config = ConfigDict(frozen=True)


class DocumentRef(BaseModel):
    document_id: str = Field(min_length=1)
    filename: str = ""
    path: Optional[str] = None


class ContentState(BaseModel):
    format: ContentFormat
    payload: Any = None
    focus_score_at_selection: int
    selected_at: datetime
    document_id: str


class SuggestionState(BaseModel):
    last_suggested_at: Optional[float] = None  # epoch seconds from the injected clock
    modal_open: bool = False


class SuggestionPrompt(BaseModel):
    average_focus_score: int
    opened_at: float


class SwitchOutcome(BaseModel):
    changed: bool
    state: Optional[ContentState] = None
    previous_format: Optional[ContentFormat] = None


SuggestionAction = Literal["open", "confirm", "dismiss"]


class AttentionChanged(BaseModel):
    attention_level: int
    should_switch_content: bool = False
    band: Dict[str, str] = Field(default_factory=dict)


class SessionCreateRequest(BaseModel):
    session_id: Optional[str] = Field(default=None, min_length=1, max_length=128)


class ContentSelectRequest(BaseModel):
    document: DocumentRef
    attention_level: Optional[int] = Field(default=None, ge=0, le=100)


class SampleSourceStatus(BaseModel):
    connected: bool = False
    last_sample_at: Optional[datetime] = None
    accepted: int = 0
    rejected: int = 0


class SessionSnapshot(BaseModel):
    session_id: str
    closed: bool = False
    attention_level: int
    window: List[int] = Field(default_factory=list)
    suggestion: SuggestionState
    suggesting: bool = False
    candidate_focus_score: Optional[int] = None
    content: Optional[ContentState] = None
    loading: bool = False
    document: Optional[DocumentRef] = None
    sample_source: SampleSourceStatus
