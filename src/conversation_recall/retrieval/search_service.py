"""
Semantic search over a user's conversation summaries.

Pipeline per query:
1. Classify the query intent
2. Fact fast path (owner given): ask the language model for a literal fact
3. Filtered vector search for 3x top_k candidates
4. Drop candidates whose raw similarity is below min_score
5. Re-rank by combined score and truncate to top_k
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from conversation_recall.embeddings.protocol import TextEmbedding
from conversation_recall.exceptions import InvalidInputError
from conversation_recall.indexing.indexer import DEFAULT_NAMESPACE, SUMMARY_RECORD_TYPE
from conversation_recall.models import QueryType, SearchResponse, SearchResult, utcnow
from conversation_recall.retrieval.fact_extractor import LLMFactExtractor
from conversation_recall.retrieval.query_classifier import classify_query, extract_topic_token
from conversation_recall.retrieval.ranking import (
    DEFAULT_RECENCY_WINDOW_HOURS,
    parse_timestamp,
    rank_candidates,
)
from conversation_recall.storage.protocols import ConversationVectorStore
from conversation_recall.storage.vector.models import VectorMatch

logger = logging.getLogger(__name__)

CANDIDATE_MULTIPLIER = 3

# Metadata-only scan size for owner listings and fact context
HISTORY_SCAN_LIMIT = 1000

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def build_search_filter(
    query: str, query_type: QueryType, owner: Optional[str] = None
) -> Dict[str, Any]:
    """Build the vector-store filter for a classified query."""
    filters: Dict[str, Any] = {"type": {"$eq": SUMMARY_RECORD_TYPE}}
    if owner:
        filters["owner"] = {"$eq": owner}

    if query_type == "emotion":
        filters["dominant_emotion"] = {"$ne": "neutral"}
    elif query_type in ("fact_extraction", "personal_info"):
        filters["has_personal_info"] = {"$eq": True}
    elif query_type == "topic_based":
        topic = extract_topic_token(query)
        if topic:
            filters["topics"] = {"$in": [topic]}

    return filters


def _to_result(match: VectorMatch, extra: Optional[Dict[str, Any]] = None) -> SearchResult:
    metadata = dict(match.metadata)
    if extra:
        metadata.update(extra)

    return SearchResult(
        chat_id=str(metadata.get("chat_id", "")),
        owner=str(metadata.get("owner", "")),
        summary=str(metadata.get("summary_text", "")),
        score=min(max(match.score, 0.0), 1.0),
        created_at=str(metadata.get("created_at", "")),
        metadata=metadata,
    )


class ConversationSearchService:
    """
    Read path over the conversation summary index.

    Holds no per-call state; every search is independent.

    Example:
        >>> service = ConversationSearchService(embedding, vector_store, fact_extractor)
        >>> response = await service.search("what is my password", owner="a@b.c")
        >>> response.results[0].summary
        '1234'
    """

    def __init__(
        self,
        embedding: TextEmbedding,
        vector_store: ConversationVectorStore,
        fact_extractor: Optional[LLMFactExtractor] = None,
        namespace: str = DEFAULT_NAMESPACE,
        fact_context_size: int = 10,
        recency_window_hours: float = DEFAULT_RECENCY_WINDOW_HOURS,
    ):
        """
        Initialize the search service.

        Args:
            embedding: Embedder used for queries
            vector_store: Vector store holding summary vectors
            fact_extractor: Optional LLM fact extractor for the fast path
            namespace: Namespace holding conversation summaries
            fact_context_size: Summaries handed to the fact extractor
            recency_window_hours: Window over which recency decays to zero
        """
        self.embedding = embedding
        self.vector_store = vector_store
        self.fact_extractor = fact_extractor
        self.namespace = namespace
        self.fact_context_size = fact_context_size
        self.recency_window_hours = recency_window_hours

        logger.info(
            f"ConversationSearchService initialized: namespace={namespace}, "
            f"fact_fast_path={'on' if fact_extractor else 'off'}"
        )

    async def search(
        self,
        query: str,
        owner: Optional[str] = None,
        top_k: int = 5,
        min_score: float = 0.2,
    ) -> SearchResponse:
        """
        Search summaries for a free-text query.

        Args:
            query: Free-text query
            owner: Restrict results to this owner
            top_k: Maximum number of results
            min_score: Minimum raw similarity for a candidate to be kept

        Returns:
            SearchResponse whose results all have ``score >= min_score``

        Raises:
            InvalidInputError: If the query or limits are invalid
        """
        if not isinstance(query, str) or not query.strip():
            raise InvalidInputError("Search query is required")
        if top_k < 1:
            raise InvalidInputError("top_k must be at least 1")
        if not 0.0 <= min_score <= 1.0:
            raise InvalidInputError("min_score must be between 0 and 1")

        start = time.perf_counter()
        query = query.strip()
        query_type = classify_query(query)

        logger.info(f"Searching conversations: '{query}' (type={query_type}, owner={owner})")

        if owner and self.fact_extractor is not None:
            fact_result = await self._extract_fact(query, owner, query_type)
            if fact_result is not None:
                return SearchResponse(
                    query=query,
                    results=[fact_result],
                    total_found=1,
                    search_time_ms=self._elapsed_ms(start),
                )

        vector = await self.embedding.embed_query(query)
        candidates = self.vector_store.query(
            self.namespace,
            vector=vector,
            top_k=top_k * CANDIDATE_MULTIPLIER,
            filter=build_search_filter(query, query_type, owner),
            include_metadata=True,
        )

        relevant = [match for match in candidates if match.score >= min_score]
        ranked = rank_candidates(query, relevant, window_hours=self.recency_window_hours)

        results = [
            _to_result(match, {"combined_score": round(score, 6), "query_type": query_type})
            for match, score in ranked[:top_k]
        ]

        logger.info(
            f"Search complete: {len(candidates)} candidates, {len(relevant)} with "
            f"score >= {min_score}, returning {len(results)}"
        )

        return SearchResponse(
            query=query,
            results=results,
            total_found=len(results),
            search_time_ms=self._elapsed_ms(start),
        )

    async def _extract_fact(
        self, query: str, owner: str, query_type: QueryType
    ) -> Optional[SearchResult]:
        summaries = self._newest_owner_summaries(owner, self.fact_context_size)
        conversations = [
            (str(match.metadata.get("chat_id", "")), str(match.metadata.get("summary_text", "")))
            for match in summaries
            if match.metadata.get("summary_text")
        ]
        if not conversations:
            return None

        extraction = await self.fact_extractor.extract(query, conversations)
        if extraction is None or not extraction.found:
            logger.debug(f"No literal fact found for '{query}', falling back to vector search")
            return None

        source = next(
            (m for m in summaries if m.metadata.get("chat_id") == extraction.source_chat_id),
            None,
        )
        created_at = source.metadata.get("created_at") if source else None

        logger.info(f"Fact fast path answered '{query}' from chat {extraction.source_chat_id}")

        return SearchResult(
            chat_id=extraction.source_chat_id or "",
            owner=owner,
            summary=extraction.value,
            score=1.0,
            created_at=str(created_at or utcnow().isoformat()),
            metadata={"query_type": query_type, "source": "fact_extraction"},
        )

    async def search_user_conversations(
        self, owner: str, query: Optional[str] = None, top_k: int = 10
    ) -> SearchResponse:
        """
        Search or list one owner's conversations.

        With a query this is ``search(query, owner, top_k, 0.2)``. Without one
        it lists the owner's summaries newest first, with no score filter.
        """
        if not owner:
            raise InvalidInputError("owner is required")
        if top_k < 1:
            raise InvalidInputError("top_k must be at least 1")

        if query and query.strip():
            return await self.search(query, owner=owner, top_k=top_k, min_score=0.2)

        start = time.perf_counter()
        matches = self._newest_owner_summaries(owner, top_k)
        results = [_to_result(match) for match in matches]

        logger.info(f"Listed {len(results)} conversations for {owner}")

        return SearchResponse(
            query="",
            results=results,
            total_found=len(results),
            search_time_ms=self._elapsed_ms(start),
        )

    def _newest_owner_summaries(self, owner: str, limit: int) -> List[VectorMatch]:
        """Metadata-only fetch of an owner's summaries, newest ``created_at`` first."""
        matches = self.vector_store.query(
            self.namespace,
            vector=None,
            top_k=max(limit * 2, HISTORY_SCAN_LIMIT),
            filter={"type": {"$eq": SUMMARY_RECORD_TYPE}, "owner": {"$eq": owner}},
            include_metadata=True,
        )
        matches = sorted(
            matches,
            key=lambda match: parse_timestamp(match.metadata.get("created_at")) or _EPOCH,
            reverse=True,
        )
        return matches[:limit]

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.perf_counter() - start) * 1000)
