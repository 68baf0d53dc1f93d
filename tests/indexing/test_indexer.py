"""Tests for the vector indexer."""

import re
from unittest.mock import AsyncMock, Mock

import pytest

from fakes import FakeEmbedding, make_event

from conversation_recall.indexing.indexer import (
    DEFAULT_NAMESPACE,
    VectorIndexer,
    build_vector_id,
    build_vector_metadata,
    flatten_summary,
    vector_id_timestamp,
)
from conversation_recall.emotions.aggregator import summarize_emotions
from conversation_recall.models import ConversationSummary, SummaryContent, SummaryMetadata
from conversation_recall.storage.documents.memory import InMemorySummaryStore
from conversation_recall.storage.vector.memory import InMemoryVectorStore
from conversation_recall.storage.vector.models import VectorRecord
from conversation_recall.summarization import ConversationSummarizer


@pytest.fixture
def vector_store():
    return InMemoryVectorStore()


@pytest.fixture
def summary():
    return ConversationSummary(
        chat_id="chat-0000000001",
        owner="alice@example.com",
        user_id="user-1",
        summary=SummaryContent(
            summary="User wants smart lighting.",
            emotional_context="positive",
            dominant_emotion="Joy",
            topics=["Smart Home", "budget"],
            personal_facts=["has 3 bedrooms"],
            conversation_mood="relaxed",
            has_personal_info=True,
            importance=0.8,
        ),
        metadata=SummaryMetadata(total_events=6, conversation_duration=120, source="model"),
        raw_data={"original_events_count": 6, "emotions_count": 4},
    )


def test_flatten_summary_is_deterministic(summary):
    text = flatten_summary(summary.summary)

    assert text == (
        "User wants smart lighting.\n"
        "Emotional context: positive\n"
        "Dominant emotion: Joy\n"
        "Topics: Smart Home, budget\n"
        "Personal facts: has 3 bedrooms\n"
        "Mood: relaxed"
    )


def test_flatten_plain_summary():
    assert flatten_summary(SummaryContent(summary="Just text")) == "Just text"


def test_vector_id_format():
    assert build_vector_id("chat-0000000001", 1718000000000) == "summary_chat-0000000001_1718000000000"
    assert re.fullmatch(r"summary_chat-0000000001_\d{13}", build_vector_id("chat-0000000001"))


def test_metadata_fields(summary):
    metadata = build_vector_metadata(summary)

    assert metadata["type"] == "conversation_summary"
    assert metadata["chat_id"] == "chat-0000000001"
    assert metadata["owner"] == "alice@example.com"
    assert metadata["summary_text"] == "User wants smart lighting."
    assert metadata["total_events"] == 6
    assert metadata["emotions_count"] == 4
    assert metadata["has_personal_info"] is True
    assert metadata["dominant_emotion"] == "joy"
    assert metadata["topics"] == ["smart home", "budget"]
    assert metadata["relevance_score"] == 0.8
    assert metadata["user_id"] == "user-1"
    assert metadata["conversation_duration"] == 120
    assert metadata["summary_id"] == summary.id
    assert metadata["created_at"] == summary.created_at.isoformat()


def test_metadata_omits_none():
    fallback = ConversationSummary(
        chat_id="chat-0000000002",
        owner="bob@example.com",
        summary=SummaryContent(summary="User engaged in a conversation with 0 messages."),
    )

    metadata = build_vector_metadata(fallback)

    assert None not in metadata.values()
    for key in ("user_id", "conversation_duration", "dominant_emotion", "emotional_context"):
        assert key not in metadata
    assert metadata["emotions_count"] == 0
    assert metadata["has_personal_info"] is False


@pytest.mark.asyncio
async def test_index_writes_record(summary, vector_store):
    embedding = FakeEmbedding()
    indexer = VectorIndexer(embedding, vector_store)

    vector_id = await indexer.index(summary)

    assert vector_id.startswith("summary_chat-0000000001_")
    stored = vector_store.get_by_id(DEFAULT_NAMESPACE, vector_id)
    assert stored.metadata["owner"] == "alice@example.com"
    assert embedding.calls == [flatten_summary(summary.summary)]


@pytest.mark.asyncio
async def test_reindex_retires_previous_vectors(summary, vector_store):
    indexer = VectorIndexer(FakeEmbedding(), vector_store)

    first_id = await indexer.index(summary)
    stale = vector_store.get_by_id(DEFAULT_NAMESPACE, first_id)
    vector_store.upsert(DEFAULT_NAMESPACE, [stale.model_copy(update={"id": "summary_chat-0000000001_1"})])
    second_id = await indexer.index(summary)

    assert [m.id for m in vector_store.query(DEFAULT_NAMESPACE)] == [second_id]


@pytest.mark.asyncio
async def test_keep_previous_vectors_when_disabled(summary, vector_store):
    indexer = VectorIndexer(FakeEmbedding(), vector_store, retire_previous=False)
    vector_store.upsert(
        DEFAULT_NAMESPACE,
        [
            VectorRecord(
                id="summary_chat-0000000001_1",
                values=[1.0, 0.0, 0.0, 0.0],
                metadata={"type": "conversation_summary", "chat_id": "chat-0000000001"},
            )
        ],
    )

    await indexer.index(summary)

    assert vector_store.count(DEFAULT_NAMESPACE) == 2


@pytest.mark.asyncio
async def test_other_chats_are_not_retired(summary, vector_store):
    indexer = VectorIndexer(FakeEmbedding(), vector_store)
    other = summary.model_copy(update={"chat_id": "chat-0000000002"})

    await indexer.index(other)
    await indexer.index(summary)

    assert vector_store.count(DEFAULT_NAMESPACE) == 2


@pytest.mark.asyncio
async def test_embedding_failure_returns_none(summary, vector_store):
    embedding = Mock()
    embedding.embed_document = AsyncMock(side_effect=RuntimeError("openai down"))
    indexer = VectorIndexer(embedding, vector_store)

    assert await indexer.index(summary) is None
    assert vector_store.count(DEFAULT_NAMESPACE) == 0


@pytest.mark.asyncio
async def test_vector_store_failure_returns_none(summary):
    vector_store = Mock()
    vector_store.upsert.side_effect = ConnectionError("qdrant down")
    indexer = VectorIndexer(FakeEmbedding(), vector_store)

    assert await indexer.index(summary) is None


@pytest.mark.asyncio
async def test_retire_failure_still_returns_id(summary):
    vector_store = Mock()
    vector_store.upsert.return_value = 1
    vector_store.query.side_effect = ConnectionError("qdrant down")
    indexer = VectorIndexer(FakeEmbedding(), vector_store)

    assert (await indexer.index(summary)).startswith("summary_chat-0000000001_")


def test_vector_id_timestamp():
    assert vector_id_timestamp("summary_chat_with_underscores_1718000000000") == 1718000000000
    assert vector_id_timestamp("summary_chat-0000000001_latest") is None


@pytest.mark.asyncio
async def test_newer_vector_from_concurrent_write_is_kept(summary, vector_store):
    indexer = VectorIndexer(FakeEmbedding(), vector_store)
    newer = VectorRecord(
        id="summary_chat-0000000001_99999999999999",
        values=[1.0, 0.0, 0.0, 0.0],
        metadata={"type": "conversation_summary", "chat_id": "chat-0000000001"},
    )
    vector_store.upsert(DEFAULT_NAMESPACE, [newer])

    vector_id = await indexer.index(summary)

    ids = {m.id for m in vector_store.query(DEFAULT_NAMESPACE)}
    assert ids == {vector_id, newer.id}


def test_interleaved_duplicate_writes_leave_a_vector(summary, vector_store):
    first = VectorIndexer(FakeEmbedding(), vector_store)
    second = VectorIndexer(FakeEmbedding(), vector_store)
    older_id = build_vector_id(summary.chat_id, 1718000000000)
    newer_id = build_vector_id(summary.chat_id, 1718000000500)
    for vector_id in (older_id, newer_id):
        vector_store.upsert(
            DEFAULT_NAMESPACE,
            [VectorRecord(id=vector_id, values=[1.0, 0.0, 0.0, 0.0], metadata=build_vector_metadata(summary))],
        )

    first._retire_previous(summary.chat_id, keep_id=older_id)
    second._retire_previous(summary.chat_id, keep_id=newer_id)

    assert [m.id for m in vector_store.query(DEFAULT_NAMESPACE)] == [newer_id]


@pytest.mark.asyncio
async def test_emotions_count_reaches_metadata(vector_store):
    events = [make_event(i, f"message {i}", {"Joy": 0.5}) for i in range(5)]
    indexer = VectorIndexer(FakeEmbedding(), vector_store)
    summarizer = ConversationSummarizer(InMemorySummaryStore(), indexer)

    await summarizer.summarize("chat-0000000001", "alice@example.com", events, summarize_emotions(events))

    (match,) = vector_store.query(DEFAULT_NAMESPACE)
    assert match.metadata["emotions_count"] == 5
