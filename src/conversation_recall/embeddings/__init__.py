"""
Text embedding abstractions for conversation-recall.

Provides a protocol-based embedding interface with an OpenAI adapter.
"""

from conversation_recall.embeddings.openai_embedding import (
    OpenAIEmbedding,
    prepare_embedding_text,
)
from conversation_recall.embeddings.protocol import TextEmbedding

__all__ = [
    "TextEmbedding",
    "OpenAIEmbedding",
    "prepare_embedding_text",
]
