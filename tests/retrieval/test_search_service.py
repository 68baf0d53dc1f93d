"""Tests for the conversation search service."""

import json
from datetime import timedelta
from unittest.mock import AsyncMock, Mock

import pytest

from conversation_recall.exceptions import InvalidInputError
from conversation_recall.indexing import DEFAULT_NAMESPACE, SUMMARY_RECORD_TYPE
from conversation_recall.models import utcnow
from conversation_recall.retrieval import (
    ConversationSearchService,
    LLMFactExtractor,
    build_search_filter,
)
from conversation_recall.storage import InMemoryVectorStore
from conversation_recall.storage.vector.models import VectorMatch, VectorRecord
from fakes import MockLLMProvider

OWNER = "ana@example.com"


def summary_record(chat_id, summary_text, owner=OWNER, values=None, age_hours=1, **metadata):
    return VectorRecord(
        id=f"summary_{chat_id}_1700000000000",
        values=values or [1.0, 0.0, 0.0, 0.0],
        metadata={
            "type": SUMMARY_RECORD_TYPE,
            "chat_id": chat_id,
            "owner": owner,
            "summary_text": summary_text,
            "created_at": (utcnow() - timedelta(hours=age_hours)).isoformat(),
            "has_personal_info": False,
            **metadata,
        },
    )


@pytest.fixture
def vector_store():
    return InMemoryVectorStore()


@pytest.fixture
def service(fake_embedding, vector_store):
    return ConversationSearchService(fake_embedding, vector_store)


class TestBuildSearchFilter:
    def test_general_query(self):
        assert build_search_filter("smart home lighting", "general") == {
            "type": {"$eq": SUMMARY_RECORD_TYPE}
        }

    def test_owner_is_added(self):
        filters = build_search_filter("smart home", "general", OWNER)

        assert filters["owner"] == {"$eq": OWNER}

    def test_emotion_excludes_neutral(self):
        filters = build_search_filter("how did I feel", "emotion")

        assert filters["dominant_emotion"] == {"$ne": "neutral"}

    @pytest.mark.parametrize("query_type", ["fact_extraction", "personal_info"])
    def test_personal_queries_require_personal_info(self, query_type):
        filters = build_search_filter("what is my pin", query_type)

        assert filters["has_personal_info"] == {"$eq": True}

    def test_topic_token(self):
        filters = build_search_filter("talks about travel", "topic_based")

        assert filters["topics"] == {"$in": ["travel"]}

    def test_topic_without_token(self):
        assert "topics" not in build_search_filter("tell me about", "topic_based")


class TestSearch:
    @pytest.mark.asyncio
    async def test_results_above_min_score_ranked_by_combined_score(self, fake_embedding):
        raw_scores = [0.9, 0.15, 0.8, 0.1, 0.7, 0.05, 0.6, 0.12, 0.5, 0.11, 0.25, 0.19, 0.18, 0.17, 0.16]
        candidates = [
            VectorMatch(
                id=f"summary_chat-{i:06d}_1",
                score=score,
                metadata={
                    "type": SUMMARY_RECORD_TYPE,
                    "chat_id": f"chat-{i:06d}",
                    "owner": OWNER,
                    "summary_text": f"Summary {i}",
                    "has_personal_info": score == 0.6,
                },
            )
            for i, score in enumerate(raw_scores)
        ]
        store = Mock()
        store.query.return_value = candidates
        service = ConversationSearchService(fake_embedding, store)

        response = await service.search("smart home lighting", top_k=5, min_score=0.2)

        assert store.query.call_args.kwargs["top_k"] == 15
        assert response.total_found == 5
        assert all(result.score >= 0.2 for result in response.results)
        combined = [result.metadata["combined_score"] for result in response.results]
        assert combined == sorted(combined, reverse=True)
        # Personal info bonus lifts the 0.6 candidate above the 0.9 one
        assert response.results[0].chat_id == "chat-000006"
        assert response.results[1].chat_id == "chat-000000"
        assert "chat-000010" not in [result.chat_id for result in response.results]

    @pytest.mark.asyncio
    async def test_nothing_above_min_score(self, service, vector_store):
        vector_store.upsert(
            DEFAULT_NAMESPACE,
            [summary_record("chat-000001", "Garden talk", values=[0.0, 1.0, 0.0, 0.0])],
        )

        response = await service.search("smart home lighting", min_score=0.2)

        assert response.results == []
        assert response.total_found == 0

    @pytest.mark.asyncio
    async def test_result_fields(self, service, vector_store):
        vector_store.upsert(
            DEFAULT_NAMESPACE,
            [summary_record("chat-000001", "The user planned a trip to Lisbon.")],
        )

        response = await service.search("trip planning")

        result = response.results[0]
        assert result.chat_id == "chat-000001"
        assert result.owner == OWNER
        assert result.summary == "The user planned a trip to Lisbon."
        assert result.score == pytest.approx(1.0)
        assert result.metadata["query_type"] == "general"
        assert response.query == "trip planning"

    @pytest.mark.asyncio
    async def test_owner_isolation(self, service, vector_store):
        vector_store.upsert(
            DEFAULT_NAMESPACE,
            [
                summary_record("chat-000001", "Ana's chat"),
                summary_record("chat-000002", "Ben's chat", owner="ben@example.com"),
            ],
        )

        response = await service.search("smart home lighting", owner=OWNER)

        assert [result.chat_id for result in response.results] == ["chat-000001"]

    @pytest.mark.asyncio
    async def test_emotion_query_skips_neutral(self, service, vector_store):
        vector_store.upsert(
            DEFAULT_NAMESPACE,
            [
                summary_record("chat-000001", "Calm chat", dominant_emotion="neutral"),
                summary_record("chat-000002", "Sad chat", dominant_emotion="sadness"),
                summary_record("chat-000003", "No emotion data"),
            ],
        )

        response = await service.search("when did I feel sad")

        chat_ids = {result.chat_id for result in response.results}
        assert chat_ids == {"chat-000002", "chat-000003"}

    @pytest.mark.asyncio
    async def test_personal_info_query_filters(self, service, vector_store):
        vector_store.upsert(
            DEFAULT_NAMESPACE,
            [
                summary_record("chat-000001", "Owns a Tesla", has_personal_info=True),
                summary_record("chat-000002", "Weather chat"),
            ],
        )

        response = await service.search("my car")

        assert [result.chat_id for result in response.results] == ["chat-000001"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"query": ""},
            {"query": "   "},
            {"query": "ok", "top_k": 0},
            {"query": "ok", "min_score": 1.5},
            {"query": "ok", "min_score": -0.1},
        ],
    )
    async def test_invalid_input(self, service, kwargs):
        with pytest.raises(InvalidInputError):
            await service.search(**kwargs)

    @pytest.mark.asyncio
    async def test_embedding_failure_propagates(self, vector_store):
        embedding = Mock()
        embedding.embed_query = AsyncMock(side_effect=RuntimeError("embedding service down"))
        service = ConversationSearchService(embedding, vector_store)

        with pytest.raises(RuntimeError, match="embedding service down"):
            await service.search("smart home")


class TestFactFastPath:
    @pytest.mark.asyncio
    async def test_literal_fact_is_returned(self, fake_embedding, vector_store):
        vector_store.upsert(
            DEFAULT_NAMESPACE,
            [
                summary_record(
                    "chat-000001",
                    "The user said their password is 1234.",
                    has_personal_info=True,
                )
            ],
        )
        provider = MockLLMProvider(
            json.dumps({"found": True, "value": "1234", "source_chat_id": "chat-000001"})
        )
        service = ConversationSearchService(
            fake_embedding, vector_store, fact_extractor=LLMFactExtractor(provider)
        )

        response = await service.search("what is my password", owner=OWNER)

        assert response.total_found == 1
        result = response.results[0]
        assert result.score == 1.0
        assert result.summary == "1234"
        assert result.chat_id == "chat-000001"
        assert result.metadata == {"query_type": "fact_extraction", "source": "fact_extraction"}
        assert fake_embedding.calls == []

    @pytest.mark.asyncio
    async def test_not_found_falls_back_to_vector_search(self, fake_embedding, vector_store):
        vector_store.upsert(
            DEFAULT_NAMESPACE,
            [summary_record("chat-000001", "Owns a Tesla", has_personal_info=True)],
        )
        provider = MockLLMProvider(json.dumps({"found": False}))
        service = ConversationSearchService(
            fake_embedding, vector_store, fact_extractor=LLMFactExtractor(provider)
        )

        response = await service.search("what car do I drive", owner=OWNER)

        assert response.results[0].summary == "Owns a Tesla"
        assert response.results[0].metadata["query_type"] == "fact_extraction"
        assert fake_embedding.calls == ["what car do I drive"]

    @pytest.mark.asyncio
    async def test_context_uses_newest_summaries(self, fake_embedding, vector_store):
        vector_store.upsert(
            DEFAULT_NAMESPACE,
            [
                summary_record(f"chat-{i:06d}", f"Summary {i}", age_hours=100 - i)
                for i in range(12)
            ],
        )
        provider = MockLLMProvider(json.dumps({"found": False}))
        service = ConversationSearchService(
            fake_embedding,
            vector_store,
            fact_extractor=LLMFactExtractor(provider),
            fact_context_size=10,
        )

        await service.search("what is my password", owner=OWNER)

        prompt = provider.chat.call_args.kwargs["messages"][1].content
        assert "CONVERSATION chat-000011:" in prompt
        assert "CONVERSATION chat-000002:" in prompt
        assert "CONVERSATION chat-000001:" not in prompt
        assert "CONVERSATION chat-000000:" not in prompt

    @pytest.mark.asyncio
    async def test_skipped_without_owner(self, fake_embedding, vector_store):
        provider = MockLLMProvider(json.dumps({"found": True, "value": "1234"}))
        service = ConversationSearchService(
            fake_embedding, vector_store, fact_extractor=LLMFactExtractor(provider)
        )

        await service.search("what is my password")

        provider.chat.assert_not_called()

    @pytest.mark.asyncio
    async def test_extractor_failure_falls_back(self, fake_embedding, vector_store):
        vector_store.upsert(
            DEFAULT_NAMESPACE,
            [summary_record("chat-000001", "Owns a Tesla", has_personal_info=True)],
        )
        provider = MockLLMProvider(error=RuntimeError("timeout"))
        service = ConversationSearchService(
            fake_embedding, vector_store, fact_extractor=LLMFactExtractor(provider)
        )

        response = await service.search("what car do I drive", owner=OWNER)

        assert response.total_found == 1
        assert response.results[0].chat_id == "chat-000001"


class TestUserConversations:
    @pytest.mark.asyncio
    async def test_listing_is_newest_first(self, service, vector_store):
        vector_store.upsert(
            DEFAULT_NAMESPACE,
            [
                summary_record("chat-000002", "Middle", age_hours=5),
                summary_record("chat-000001", "Oldest", age_hours=50),
                summary_record("chat-000003", "Newest", age_hours=1),
                summary_record("chat-000004", "Someone else", owner="ben@example.com"),
            ],
        )

        response = await service.search_user_conversations(OWNER, top_k=2)

        assert [result.chat_id for result in response.results] == ["chat-000003", "chat-000002"]
        assert response.query == ""
        assert all(result.score == 0.0 for result in response.results)

    @pytest.mark.asyncio
    async def test_with_query_uses_search(self, service, vector_store):
        vector_store.upsert(
            DEFAULT_NAMESPACE,
            [
                summary_record("chat-000001", "Mine"),
                summary_record("chat-000002", "Not mine", owner="ben@example.com"),
            ],
        )

        response = await service.search_user_conversations(OWNER, query="smart home")

        assert response.query == "smart home"
        assert [result.chat_id for result in response.results] == ["chat-000001"]

    @pytest.mark.asyncio
    async def test_owner_required(self, service):
        with pytest.raises(InvalidInputError):
            await service.search_user_conversations("")
