"""
In-memory vector storage implementation.

Provides a simple namespaced in-memory index with cosine similarity search,
suitable for testing and development. For production, use the Qdrant
implementation.
"""

import logging
from typing import Any, Dict, List, Optional

from conversation_recall.storage.vector.filters import matches_filter
from conversation_recall.storage.vector.models import VectorMatch, VectorRecord

logger = logging.getLogger(__name__)


class InMemoryVectorStore:
    """
    In-memory implementation of the ConversationVectorStore protocol.

    Records are kept per namespace in insertion order. Data is lost on restart.
    """

    def __init__(self):
        # namespace -> {id -> record}
        self._namespaces: Dict[str, Dict[str, VectorRecord]] = {}

        logger.info("InMemoryVectorStore initialized")

    def _cosine_similarity(self, vec1: List[float], vec2: List[float]) -> float:
        """Calculate cosine similarity between two vectors."""
        if len(vec1) != len(vec2):
            raise ValueError("Vectors must have the same length")

        dot_product = sum(a * b for a, b in zip(vec1, vec2))
        magnitude1 = sum(a * a for a in vec1) ** 0.5
        magnitude2 = sum(b * b for b in vec2) ** 0.5

        if magnitude1 == 0 or magnitude2 == 0:
            return 0.0

        return dot_product / (magnitude1 * magnitude2)

    def upsert(self, namespace: str, records: List[VectorRecord]) -> int:
        """Insert or replace records by id."""
        records_by_id = self._namespaces.setdefault(namespace, {})

        for record in records:
            records_by_id[record.id] = record.model_copy(deep=True)
            logger.debug(f"Upserted vector {record.id} into namespace '{namespace}'")

        return len(records)

    def query(
        self,
        namespace: str,
        vector: Optional[List[float]] = None,
        top_k: int = 10,
        filter: Optional[Dict[str, Any]] = None,
        include_metadata: bool = True,
    ) -> List[VectorMatch]:
        """
        Query a namespace.

        With a vector, matches are sorted by cosine similarity (highest
        first). Without one, matching records are returned in insertion
        order with a score of 0.0.
        """
        results = []

        for record_id, record in self._namespaces.get(namespace, {}).items():
            if not matches_filter(record.metadata, filter):
                continue

            score = self._cosine_similarity(vector, record.values) if vector is not None else 0.0
            results.append(
                VectorMatch(
                    id=record_id,
                    score=score,
                    metadata=dict(record.metadata) if include_metadata else {},
                )
            )

        if vector is not None:
            results.sort(key=lambda match: match.score, reverse=True)

        results = results[:top_k]

        logger.debug(f"{len(results)} matches found in namespace '{namespace}'")

        return results

    def delete(self, namespace: str, ids: List[str]) -> int:
        """Delete records by id, returning the number removed."""
        records_by_id = self._namespaces.get(namespace, {})
        count = 0

        for record_id in ids:
            if records_by_id.pop(record_id, None) is not None:
                count += 1

        logger.info(f"Deleted {count} vectors from namespace '{namespace}'")

        return count

    def get_by_id(self, namespace: str, record_id: str) -> Optional[VectorRecord]:
        """Retrieve a specific record by its ID."""
        return self._namespaces.get(namespace, {}).get(record_id)

    def count(self, namespace: str) -> int:
        return len(self._namespaces.get(namespace, {}))

    def clear(self):
        """Clear ALL namespaces."""
        count = sum(len(records) for records in self._namespaces.values())
        self._namespaces.clear()
        logger.info(f"Cleared all vectors ({count} total)")
