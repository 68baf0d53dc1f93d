"""
conversation-recall: Conversation finalization, emotion-aware summarization and semantic recall.

Core components:
- sessions: Session lifecycle and finalization
- emotions: Emotion event fetching and aggregation
- summarization: LLM summaries with deterministic fallback
- indexing: Embedding summaries into the vector store
- retrieval: Query classification, ranking and fact extraction
- storage: Protocol abstractions for session, summary and vector stores
- models: Core data models (ConversationSession, ConversationSummary, etc.)
"""

__version__ = "0.1.0"

from conversation_recall.models import (
    ConversationSession,
    ConversationTurn,
    ConversationSummary,
    SummaryContent,
    EmotionEvent,
    EmotionSummary,
    SearchResult,
    SearchResponse,
)
from conversation_recall.conversation_service import (
    ConversationService,
    build_conversation_service,
)

__all__ = [
    "__version__",
    # Models
    "ConversationSession",
    "ConversationTurn",
    "ConversationSummary",
    "SummaryContent",
    "EmotionEvent",
    "EmotionSummary",
    "SearchResult",
    "SearchResponse",
    "ConversationService",
    "build_conversation_service",
]
