"""
Metadata filter language shared by the vector store implementations.

Filters are dictionaries keyed by metadata field. A value is either a plain
value (exact match) or an operator dict:

    {"type": {"$eq": "conversation_summary"},
     "dominant_emotion": {"$ne": "neutral"},
     "topics": {"$in": ["work"]}}

``$in`` against a list-valued field matches when any element is in the
given list. ``$ne`` and ``$nin`` match records where the field is absent.
"""

from typing import Any, Dict, Optional

SUPPORTED_OPERATORS = ("$eq", "$ne", "$in", "$nin")


def normalize_condition(condition: Any) -> Dict[str, Any]:
    """Turn a plain value into an ``{"$eq": value}`` condition."""
    if isinstance(condition, dict):
        unknown = set(condition) - set(SUPPORTED_OPERATORS)
        if unknown:
            raise ValueError(f"Unsupported filter operators: {sorted(unknown)}")
        return condition
    return {"$eq": condition}


def _contains(field_value: Any, candidates: list) -> bool:
    if isinstance(field_value, list):
        return any(item in candidates for item in field_value)
    return field_value in candidates


def matches_filter(metadata: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
    """Check if a metadata dict satisfies every condition in ``filters``."""
    if not filters:
        return True

    for key, raw_condition in filters.items():
        condition = normalize_condition(raw_condition)
        present = key in metadata
        value = metadata.get(key)

        for operator, expected in condition.items():
            if operator == "$eq":
                if not present:
                    return False
                if isinstance(value, list):
                    if expected not in value:
                        return False
                elif value != expected:
                    return False
            elif operator == "$ne":
                if present and value == expected:
                    return False
            elif operator == "$in":
                if not present or not _contains(value, list(expected)):
                    return False
            elif operator == "$nin":
                if present and _contains(value, list(expected)):
                    return False

    return True
