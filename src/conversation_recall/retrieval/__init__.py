"""
Semantic retrieval and ranking of conversation summaries.
"""

from conversation_recall.retrieval.fact_extractor import FactExtraction, LLMFactExtractor
from conversation_recall.retrieval.query_classifier import classify_query, extract_topic_token
from conversation_recall.retrieval.ranking import combined_score, rank_candidates
from conversation_recall.retrieval.search_service import (
    ConversationSearchService,
    build_search_filter,
)

__all__ = [
    "ConversationSearchService",
    "LLMFactExtractor",
    "FactExtraction",
    "build_search_filter",
    "classify_query",
    "extract_topic_token",
    "combined_score",
    "rank_candidates",
]
