"""Unit tests for the shared metadata filter language."""

import pytest

from conversation_recall.storage.vector.filters import matches_filter, normalize_condition

METADATA = {
    "type": "conversation_summary",
    "owner": "alice@example.com",
    "has_personal_info": True,
    "dominant_emotion": "joy",
    "topics": ["work", "travel"],
}


def test_empty_filter_matches_everything():
    assert matches_filter(METADATA, None)
    assert matches_filter(METADATA, {})


def test_plain_value_is_equality():
    assert normalize_condition("x") == {"$eq": "x"}
    assert matches_filter(METADATA, {"owner": "alice@example.com"})
    assert not matches_filter(METADATA, {"owner": "bob@example.com"})


def test_eq_requires_field():
    assert not matches_filter(METADATA, {"user_id": {"$eq": "u1"}})


def test_eq_on_list_checks_membership():
    assert matches_filter(METADATA, {"topics": {"$eq": "work"}})
    assert not matches_filter(METADATA, {"topics": {"$eq": "health"}})


def test_ne_matches_absent_field():
    assert matches_filter(METADATA, {"dominant_emotion": {"$ne": "neutral"}})
    assert not matches_filter({"dominant_emotion": "neutral"}, {"dominant_emotion": {"$ne": "neutral"}})
    assert matches_filter({}, {"dominant_emotion": {"$ne": "neutral"}})


def test_in_and_nin():
    assert matches_filter(METADATA, {"topics": {"$in": ["travel", "food"]}})
    assert not matches_filter(METADATA, {"topics": {"$in": ["food"]}})
    assert matches_filter(METADATA, {"dominant_emotion": {"$in": ["joy", "surprise"]}})
    assert matches_filter(METADATA, {"topics": {"$nin": ["food"]}})
    assert not matches_filter(METADATA, {"topics": {"$nin": ["work"]}})


def test_bool_equality():
    assert matches_filter(METADATA, {"has_personal_info": {"$eq": True}})
    assert not matches_filter({"has_personal_info": False}, {"has_personal_info": {"$eq": True}})


def test_all_conditions_must_hold():
    filters = {"type": "conversation_summary", "owner": {"$eq": "bob@example.com"}}
    assert not matches_filter(METADATA, filters)


def test_unknown_operator_raises():
    with pytest.raises(ValueError):
        matches_filter(METADATA, {"owner": {"$gt": 1}})
