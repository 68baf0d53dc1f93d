"""Unit tests for in-memory session and summary stores."""

from datetime import datetime, timedelta, timezone

import pytest

from conversation_recall.models import (
    ConversationSession,
    ConversationSummary,
    ConversationTurn,
    SummaryContent,
)
from conversation_recall.storage.documents.memory import InMemorySessionStore, InMemorySummaryStore

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def session_store():
    return InMemorySessionStore()


@pytest.fixture
def summary_store():
    return InMemorySummaryStore()


def make_session(chat_id="chat-0000000001", owner="alice@example.com", **kwargs):
    return ConversationSession(chat_id=chat_id, owner=owner, **kwargs)


def make_summary(chat_id="chat-0000000001", owner="alice@example.com", text="First summary"):
    return ConversationSummary(chat_id=chat_id, owner=owner, summary=SummaryContent(summary=text))


def test_create_and_get(session_store):
    session_store.create(make_session())

    stored = session_store.get("chat-0000000001")

    assert stored is not None
    assert stored.status == "active"
    assert session_store.get("missing-chat-id") is None


def test_create_keeps_existing(session_store):
    session_store.create(make_session(metadata={"v": 1}))
    result = session_store.create(make_session(metadata={"v": 2}))

    assert result.metadata == {"v": 1}
    assert session_store.get("chat-0000000001").metadata == {"v": 1}


def test_returned_sessions_are_copies(session_store):
    session_store.create(make_session())

    fetched = session_store.get("chat-0000000001")
    fetched.metadata["changed"] = True

    assert session_store.get("chat-0000000001").metadata == {}


def test_save_replaces(session_store):
    session = session_store.create(make_session())
    session_store.save(session.model_copy(update={"status": "ended", "duration": 12}))

    stored = session_store.get("chat-0000000001")
    assert stored.status == "ended"
    assert stored.duration == 12


def test_append_turn(session_store):
    session_store.create(make_session())

    updated = session_store.append_turn(
        "chat-0000000001", ConversationTurn(message="Hi", sender="user", timestamp=1.0)
    )

    assert [turn.message for turn in updated.turns] == ["Hi"]
    assert session_store.append_turn(
        "missing-chat-id", ConversationTurn(message="Hi", sender="user", timestamp=1.0)
    ) is None


def test_list_for_owner_newest_first(session_store):
    session_store.create(make_session("chat-old-00001", created_at=T0))
    session_store.create(make_session("chat-new-00001", created_at=T0 + timedelta(hours=1)))
    session_store.create(make_session("chat-other-001", owner="bob@example.com"))

    sessions = session_store.list_for_owner("alice@example.com")

    assert [s.chat_id for s in sessions] == ["chat-new-00001", "chat-old-00001"]


def test_get_active_for_owner(session_store):
    session_store.create(make_session("chat-ended-001", status="ended", created_at=T0))
    session_store.create(make_session("chat-active-01", created_at=T0 - timedelta(hours=1)))

    active = session_store.get_active_for_owner("alice@example.com")

    assert active.chat_id == "chat-active-01"
    assert session_store.get_active_for_owner("nobody@example.com") is None


def test_summary_upsert_keeps_identity(summary_store):
    first = summary_store.upsert(make_summary(text="First summary"))
    second = summary_store.upsert(make_summary(text="Second summary"))

    assert second.id == first.id
    assert second.created_at == first.created_at
    assert second.summary.summary == "Second summary"
    assert summary_store.get("chat-0000000001").summary.summary == "Second summary"
    assert len(summary_store.list_for_owner("alice@example.com")) == 1


def test_summary_list_for_owner(summary_store):
    summary_store.upsert(make_summary("chat-0000000001"))
    summary_store.upsert(make_summary("chat-0000000002"))
    summary_store.upsert(make_summary("chat-0000000003", owner="bob@example.com"))

    assert len(summary_store.list_for_owner("alice@example.com")) == 2
    assert summary_store.get("chat-missing-01") is None
