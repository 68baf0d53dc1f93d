"""
Vector indexing of conversation summaries.

Turns a stored ConversationSummary into an embedding plus flat metadata and
writes it to the conversation namespace of the vector store.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from conversation_recall.embeddings.protocol import TextEmbedding
from conversation_recall.models import ConversationSummary, SummaryContent
from conversation_recall.storage.protocols import ConversationVectorStore
from conversation_recall.storage.vector.models import VectorRecord

logger = logging.getLogger(__name__)

SUMMARY_RECORD_TYPE = "conversation_summary"
DEFAULT_NAMESPACE = "conversation-namespace"

# Upper bound on older vectors looked up per chat when retiring
RETIRE_SCAN_LIMIT = 100


def flatten_summary(content: SummaryContent) -> str:
    """
    Render a structured summary as one deterministic string.

    The summary text comes first, followed by the labelled optional fields
    in a fixed order. Empty fields are skipped.
    """
    parts = [content.summary]

    if content.emotional_context:
        parts.append(f"Emotional context: {content.emotional_context}")
    if content.dominant_emotion:
        parts.append(f"Dominant emotion: {content.dominant_emotion}")
    if content.topics:
        parts.append(f"Topics: {', '.join(content.topics)}")
    if content.personal_facts:
        parts.append(f"Personal facts: {', '.join(content.personal_facts)}")
    if content.conversation_mood:
        parts.append(f"Mood: {content.conversation_mood}")

    return "\n".join(parts)


def build_vector_id(chat_id: str, timestamp_ms: Optional[int] = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"summary_{chat_id}_{timestamp_ms}"


def vector_id_timestamp(vector_id: str) -> Optional[int]:
    """Epoch milliseconds encoded in a summary vector id, or None if absent."""
    _, _, suffix = vector_id.rpartition("_")
    return int(suffix) if suffix.isdigit() else None


def build_vector_metadata(summary: ConversationSummary) -> Dict[str, Any]:
    """
    Build the flat metadata stored next to a summary vector.

    Optional values that are None are left out entirely.
    """
    content = summary.summary
    metadata: Dict[str, Any] = {
        "type": SUMMARY_RECORD_TYPE,
        "chat_id": summary.chat_id,
        "owner": summary.owner,
        "summary_text": content.summary,
        "total_events": summary.metadata.total_events,
        "emotions_count": int(summary.raw_data.get("emotions_count", 0) or 0),
        "created_at": summary.created_at.isoformat(),
        "updated_at": summary.updated_at.isoformat(),
        "has_personal_info": content.has_personal_info,
        "dominant_emotion": content.dominant_emotion.lower() if content.dominant_emotion else None,
        "emotional_context": content.emotional_context,
        "topics": [topic.lower() for topic in content.topics],
        "relevance_score": content.importance,
        "user_id": summary.user_id,
        "conversation_duration": summary.metadata.conversation_duration,
        "summary_id": summary.id,
    }
    return {key: value for key, value in metadata.items() if value is not None}


class VectorIndexer:
    """
    Embeds summaries and upserts them into the vector store.

    Indexing is best-effort: ``index`` logs failures and returns None
    instead of raising.

    Example:
        >>> indexer = VectorIndexer(embedding, vector_store)
        >>> await indexer.index(summary)
        'summary_chat-1234567890_1718000000000'
    """

    def __init__(
        self,
        embedding: TextEmbedding,
        vector_store: ConversationVectorStore,
        namespace: str = DEFAULT_NAMESPACE,
        retire_previous: bool = True,
    ):
        """
        Initialize the indexer.

        Args:
            embedding: Embedder used for summary text
            vector_store: Target vector store
            namespace: Namespace holding conversation summaries
            retire_previous: Delete older vectors of the same chat after writing
        """
        self.embedding = embedding
        self.vector_store = vector_store
        self.namespace = namespace
        self.retire_previous = retire_previous

        logger.info(
            f"VectorIndexer initialized: namespace={namespace}, retire_previous={retire_previous}"
        )

    async def index(self, summary: ConversationSummary) -> Optional[str]:
        """
        Embed and store one summary.

        Args:
            summary: The stored summary to index

        Returns:
            The vector id, or None if indexing failed
        """
        try:
            text = flatten_summary(summary.summary)
            values = await self.embedding.embed_document(text)

            vector_id = build_vector_id(summary.chat_id)
            record = VectorRecord(
                id=vector_id, values=values, metadata=build_vector_metadata(summary)
            )
            self.vector_store.upsert(self.namespace, [record])
        except Exception as e:
            logger.error(f"Failed to index summary for chat {summary.chat_id}: {e}")
            return None

        logger.info(f"Indexed summary for chat {summary.chat_id} as {vector_id}")

        if self.retire_previous:
            try:
                retired = self._retire_previous(summary.chat_id, keep_id=vector_id)
                if retired:
                    logger.info(f"Retired {retired} older vectors for chat {summary.chat_id}")
            except Exception as e:
                logger.warning(f"Failed to retire older vectors for chat {summary.chat_id}: {e}")

        return vector_id

    def _retire_previous(self, chat_id: str, keep_id: str) -> int:
        matches = self.vector_store.query(
            self.namespace,
            vector=None,
            top_k=RETIRE_SCAN_LIMIT,
            filter={"type": SUMMARY_RECORD_TYPE, "chat_id": chat_id},
            include_metadata=False,
        )
        keep_ms = vector_id_timestamp(keep_id)
        if keep_ms is None:
            return 0

        # Only strictly older vectors; a newer one belongs to a concurrent write
        stale_ids: List[str] = []
        for match in matches:
            match_ms = vector_id_timestamp(match.id)
            if match_ms is not None and match_ms < keep_ms:
                stale_ids.append(match.id)

        if not stale_ids:
            return 0
        return self.vector_store.delete(self.namespace, stale_ids)
