"""
Vector indexing of conversation summaries.
"""

from conversation_recall.indexing.indexer import (
    DEFAULT_NAMESPACE,
    SUMMARY_RECORD_TYPE,
    VectorIndexer,
    build_vector_metadata,
    flatten_summary,
)

__all__ = [
    "VectorIndexer",
    "build_vector_metadata",
    "flatten_summary",
    "DEFAULT_NAMESPACE",
    "SUMMARY_RECORD_TYPE",
]
