import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


SessionStatus = Literal["active", "ended", "archived"]

QueryType = Literal["emotion", "fact_extraction", "personal_info", "topic_based", "general"]


class ConversationTurn(BaseModel):
    """A single message exchanged during a conversation session"""

    message: str
    sender: Literal["user", "assistant"]
    timestamp: float
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ConversationSession(BaseModel):
    """Model for a conversation session owned by the session finalizer"""

    chat_id: str = Field(..., description="External conversation identifier")
    owner: str = Field(..., description="Owner identity (e.g. email) of the conversation")
    user_id: Optional[str] = Field(default=None, description="Internal id of the owning user")
    status: SessionStatus = Field(default="active", description="Lifecycle state")
    turns: List[ConversationTurn] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=utcnow)
    ended_at: Optional[datetime] = None
    duration: Optional[int] = Field(
        default=None, ge=0, description="Whole seconds between started_at and ended_at"
    )
    metadata: Dict[str, Any] = Field(default_factory=dict)
    emotion_data: Optional[Dict[str, Any]] = Field(
        default=None, description="Raw emotion-event payload fetched at finalize time"
    )
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class EmotionScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    score: float


class EmotionEvent(BaseModel):
    """One turn-level record from the voice-analysis API"""

    model_config = ConfigDict(frozen=True)

    id: str
    type: str = "unknown"
    timestamp: float = Field(..., description="Epoch seconds")
    user_input: Optional[str] = None
    assistant_output: Optional[str] = None
    emotions: List[EmotionScore] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class EmotionEventPage(BaseModel):
    """A single page of events as returned by an emotion event source"""

    chat_id: str
    page_number: int
    page_size: int
    total_pages: int
    events: List[EmotionEvent] = Field(default_factory=list)


class DominantEmotion(BaseModel):
    name: str
    average_score: float
    occurrence_count: int


class EmotionTimelineEntry(BaseModel):
    timestamp: float
    emotions: List[EmotionScore]


class EmotionSummary(BaseModel):
    dominant_emotions: List[DominantEmotion] = Field(default_factory=list)
    emotion_timeline: List[EmotionTimelineEntry] = Field(default_factory=list)


class EmotionEventBundle(BaseModel):
    """Everything the aggregator gathered for one conversation"""

    chat_id: str
    total_events: int
    events: List[EmotionEvent]
    emotion_summary: EmotionSummary
    fetched_at: datetime = Field(default_factory=utcnow)


class SummaryContent(BaseModel):
    """Structured summary produced by the language model (or the fallback)"""

    summary: str = Field(..., min_length=1)
    emotional_context: Optional[str] = None
    dominant_emotion: Optional[str] = None
    topics: List[str] = Field(default_factory=list)
    personal_facts: List[str] = Field(default_factory=list)
    conversation_mood: Optional[str] = None
    has_questions: bool = False
    has_personal_info: bool = False
    conversation_length: Optional[Literal["short", "medium", "long"]] = None
    importance: float = Field(default=0.5, ge=0.0, le=1.0)


class SummaryMetadata(BaseModel):
    total_events: int = 0
    conversation_duration: Optional[int] = None
    summary_generated_at: datetime = Field(default_factory=utcnow)
    model: str = "basic"
    tokens_used: Optional[int] = None
    source: Literal["model", "fallback"] = "fallback"


class ConversationSummary(BaseModel):
    """Model for the single live summary of a conversation"""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    chat_id: str
    owner: str
    user_id: Optional[str] = None
    summary: SummaryContent
    metadata: SummaryMetadata = Field(default_factory=SummaryMetadata)
    raw_data: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class SearchResult(BaseModel):
    chat_id: str
    owner: str
    summary: str
    score: float = Field(..., ge=0.0, le=1.0)
    created_at: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SearchResponse(BaseModel):
    query: str
    results: List[SearchResult]
    total_found: int
    search_time_ms: int = 0
