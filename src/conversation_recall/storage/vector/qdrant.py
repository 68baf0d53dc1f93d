import logging
import uuid
from typing import Any, Dict, List, Optional

from qdrant_client import QdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchAny,
    MatchValue,
    PointIdsList,
    PointStruct,
    VectorParams,
)

from conversation_recall.storage.vector.filters import normalize_condition
from conversation_recall.storage.vector.models import VectorMatch, VectorRecord

logger = logging.getLogger(__name__)

# Payload keys used to emulate namespaces inside one collection
NAMESPACE_KEY = "_namespace"
RECORD_ID_KEY = "_record_id"


def point_id_for(namespace: str, record_id: str) -> str:
    """Qdrant only accepts UUIDs or integers as point ids."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{namespace}/{record_id}"))


def build_qdrant_filter(namespace: str, filters: Optional[Dict[str, Any]]) -> Filter:
    """Translate the shared filter language into a Qdrant filter."""
    must = [FieldCondition(key=NAMESPACE_KEY, match=MatchValue(value=namespace))]
    must_not = []

    for key, raw_condition in (filters or {}).items():
        condition = normalize_condition(raw_condition)
        for operator, expected in condition.items():
            if operator == "$eq":
                must.append(FieldCondition(key=key, match=MatchValue(value=expected)))
            elif operator == "$ne":
                must_not.append(FieldCondition(key=key, match=MatchValue(value=expected)))
            elif operator == "$in":
                must.append(FieldCondition(key=key, match=MatchAny(any=list(expected))))
            elif operator == "$nin":
                must_not.append(FieldCondition(key=key, match=MatchAny(any=list(expected))))

    return Filter(must=must, must_not=must_not or None)


def _strip_internal(payload: Optional[dict]) -> dict:
    return {k: v for k, v in (payload or {}).items() if k not in (NAMESPACE_KEY, RECORD_ID_KEY)}


class QdrantVectorStore:
    def __init__(
        self,
        host: str = "localhost",
        port: int = 6333,
        collection_name: str = "conversations",
        dimension: int = 1024,
        client: Optional[QdrantClient] = None,
    ):
        """
        Initialize Qdrant vector store.

        Args:
            host: Qdrant host (default: localhost)
            port: Qdrant port (default: 6333)
            collection_name: Collection name (default: conversations)
            dimension: Vector size of the collection, must match the embedder
            client: Pre-built client (e.g. ``QdrantClient(":memory:")``)
        """
        self.client = client or QdrantClient(host=host, port=port)
        self.collection_name = collection_name
        self.dimension = dimension
        self._init_collection()

    def _init_collection(self):
        if not self.client.collection_exists(self.collection_name):
            self.client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(size=self.dimension, distance=Distance.COSINE),
            )
            logger.info(
                f"Created Qdrant collection {self.collection_name} ({self.dimension} dims)"
            )

    def upsert(self, namespace: str, records: List[VectorRecord]) -> int:
        """
        Insert or replace records in a namespace.

        Args:
            namespace: Logical partition of the collection
            records: Records to write

        Returns:
            Number of records written
        """
        if not records:
            return 0

        points = [
            PointStruct(
                id=point_id_for(namespace, record.id),
                vector=record.values,
                payload={
                    **record.metadata,
                    NAMESPACE_KEY: namespace,
                    RECORD_ID_KEY: record.id,
                },
            )
            for record in records
        ]
        self.client.upsert(collection_name=self.collection_name, points=points)
        logger.debug(f"Upserted {len(points)} vectors into namespace '{namespace}'")
        return len(points)

    def query(
        self,
        namespace: str,
        vector: Optional[List[float]] = None,
        top_k: int = 10,
        filter: Optional[Dict[str, Any]] = None,
        include_metadata: bool = True,
    ) -> List[VectorMatch]:
        """
        Query a namespace by similarity, or by filter only when no vector is given.
        """
        qdrant_filter = build_qdrant_filter(namespace, filter)

        if vector is None:
            points, _ = self.client.scroll(
                collection_name=self.collection_name,
                scroll_filter=qdrant_filter,
                limit=top_k,
                with_payload=True,
                with_vectors=False,
            )
            scored = [(point, 0.0) for point in points]
        else:
            response = self.client.query_points(
                collection_name=self.collection_name,
                query=vector,
                limit=top_k,
                query_filter=qdrant_filter,
                with_payload=True,
                with_vectors=False,
            )
            scored = [(point, point.score) for point in response.points]

        matches = []
        for point, score in scored:
            payload = point.payload or {}
            matches.append(
                VectorMatch(
                    id=str(payload.get(RECORD_ID_KEY, point.id)),
                    score=score,
                    metadata=_strip_internal(payload) if include_metadata else {},
                )
            )

        logger.debug(f"{len(matches)} hits found in namespace '{namespace}'")
        return matches

    def delete(self, namespace: str, ids: List[str]) -> int:
        """Delete records by id."""
        if not ids:
            return 0

        try:
            self.client.delete(
                collection_name=self.collection_name,
                points_selector=PointIdsList(
                    points=[point_id_for(namespace, record_id) for record_id in ids]
                ),
            )
            logger.info(f"Deleted {len(ids)} vectors from namespace '{namespace}'")
            return len(ids)
        except Exception as e:
            logger.error(f"Failed to delete vectors from namespace '{namespace}': {e}")
            raise
