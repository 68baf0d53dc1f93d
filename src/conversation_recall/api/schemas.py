"""Request/response schemas for the chat HTTP API."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, Field

from conversation_recall.models import utcnow


class FinalizeWebhook(BaseModel):
    """Payload sent when a conversation ends. ``email`` is accepted for ``owner``."""

    owner: str = Field(..., min_length=1, validation_alias=AliasChoices("owner", "email"))
    chat_id: Optional[str] = None
    timestamp: float
    metadata: Optional[Dict[str, Any]] = None
    user_id: Optional[str] = None


class ServiceResponse(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)


class SessionEnded(BaseModel):
    chat_id: str
    owner: str
    status: str
    duration: Optional[int]
    ended_at: Optional[datetime]
