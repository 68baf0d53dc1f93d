"""
Storage protocols and implementations for sessions, summaries and vectors.

Implementations can use various databases (SQLAlchemy, Qdrant, in-memory,
etc.) as long as they satisfy the protocol interface.
"""

from conversation_recall.storage.documents.memory import (
    InMemorySessionStore,
    InMemorySummaryStore,
)
from conversation_recall.storage.documents.sqlalchemy import (
    SQLAlchemySessionStore,
    SQLAlchemySummaryStore,
)
from conversation_recall.storage.protocols import (
    ConversationVectorStore,
    SessionStore,
    SummaryStore,
)
from conversation_recall.storage.vector.memory import InMemoryVectorStore
from conversation_recall.storage.vector.models import VectorMatch, VectorRecord
from conversation_recall.storage.vector.qdrant import QdrantVectorStore

__all__ = [
    "SessionStore",
    "SummaryStore",
    "ConversationVectorStore",
    "VectorRecord",
    "VectorMatch",
    "InMemorySessionStore",
    "InMemorySummaryStore",
    "SQLAlchemySessionStore",
    "SQLAlchemySummaryStore",
    "InMemoryVectorStore",
    "QdrantVectorStore",
]
