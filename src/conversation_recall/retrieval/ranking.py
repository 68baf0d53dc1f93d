"""
Multi-factor re-ranking of vector search candidates.

Combined score:

    0.35 * similarity
  + 0.15 * recency (linear decay over the recency window)
  + 0.20 * personal-info bonus
  + 0.10 * emotion relevance
  + 0.10 * topic relevance
  + 0.10 * stored relevance score
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from conversation_recall.models import utcnow
from conversation_recall.retrieval.query_classifier import emotion_keywords_in
from conversation_recall.storage.vector.models import VectorMatch

logger = logging.getLogger(__name__)

SIMILARITY_WEIGHT = 0.35
RECENCY_WEIGHT = 0.15
PERSONAL_INFO_WEIGHT = 0.20
EMOTION_WEIGHT = 0.10
TOPIC_WEIGHT = 0.10
STORED_RELEVANCE_WEIGHT = 0.10

DEFAULT_RECENCY_WINDOW_HOURS = 168.0


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string from metadata, assuming UTC when naive."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def recency_score(
    created_at: Any,
    now: Optional[datetime] = None,
    window_hours: float = DEFAULT_RECENCY_WINDOW_HOURS,
) -> float:
    """1.0 for a brand-new record, falling linearly to 0.0 at ``window_hours``."""
    created = parse_timestamp(created_at)
    if created is None:
        return 0.0

    now = now or utcnow()
    age_hours = max((now - created).total_seconds() / 3600.0, 0.0)
    return max(0.0, 1.0 - age_hours / window_hours)


def emotion_relevance(query: str, metadata: Dict[str, Any]) -> float:
    """Fraction of the query's emotion words found in the record's emotion fields."""
    keywords = emotion_keywords_in(query)
    if not keywords:
        return 0.0

    emotion_text = " ".join(
        str(metadata.get(field) or "") for field in ("dominant_emotion", "emotional_context")
    ).lower()
    if not emotion_text.strip():
        return 0.0

    matched = sum(1 for keyword in keywords if keyword in emotion_text)
    return matched / len(keywords)


def topic_relevance(query: str, metadata: Dict[str, Any]) -> float:
    """Fraction of the record's stored topics that appear in the query."""
    topics = metadata.get("topics") or []
    if not isinstance(topics, list) or not topics:
        return 0.0

    query_lower = query.lower()
    matched = sum(
        1
        for topic in topics
        if re.search(rf"\b{re.escape(str(topic).lower())}\b", query_lower)
    )
    return matched / len(topics)


def stored_relevance(metadata: Dict[str, Any]) -> float:
    try:
        value = float(metadata.get("relevance_score", 0.0))
    except (TypeError, ValueError):
        return 0.0
    return min(max(value, 0.0), 1.0)


def combined_score(
    query: str,
    match: VectorMatch,
    now: Optional[datetime] = None,
    window_hours: float = DEFAULT_RECENCY_WINDOW_HOURS,
) -> float:
    metadata = match.metadata
    personal_bonus = 1.0 if metadata.get("has_personal_info") is True else 0.0

    return (
        SIMILARITY_WEIGHT * match.score
        + RECENCY_WEIGHT * recency_score(metadata.get("created_at"), now, window_hours)
        + PERSONAL_INFO_WEIGHT * personal_bonus
        + EMOTION_WEIGHT * emotion_relevance(query, metadata)
        + TOPIC_WEIGHT * topic_relevance(query, metadata)
        + STORED_RELEVANCE_WEIGHT * stored_relevance(metadata)
    )


def rank_candidates(
    query: str,
    matches: List[VectorMatch],
    now: Optional[datetime] = None,
    window_hours: float = DEFAULT_RECENCY_WINDOW_HOURS,
) -> List[Tuple[VectorMatch, float]]:
    """
    Score and sort candidates by combined score, highest first.

    The sort is stable: equal scores keep the order of ``matches``.
    """
    now = now or utcnow()
    scored = [(match, combined_score(query, match, now, window_hours)) for match in matches]
    scored.sort(key=lambda item: item[1], reverse=True)

    if scored:
        logger.debug(
            f"Ranked {len(scored)} candidates "
            f"(combined {scored[0][1]:.3f} to {scored[-1][1]:.3f})"
        )

    return scored
