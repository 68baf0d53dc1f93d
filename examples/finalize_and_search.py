"""
Example: Finalize a conversation and search it afterwards

This example wires the finalize pipeline with in-memory stores, summarizes a
conversation with a local Ollama model and searches the indexed summary.
Requires OPENAI_API_KEY for embeddings; HUME_API_KEY is optional.
"""

import asyncio
import os
import time

from casual_llm import ModelConfig, Provider, create_provider

from conversation_recall.conversation_service import ConversationService
from conversation_recall.embeddings import OpenAIEmbedding
from conversation_recall.emotions import EmotionEventAggregator, HumeEventSource
from conversation_recall.indexing import VectorIndexer
from conversation_recall.retrieval import ConversationSearchService, LLMFactExtractor
from conversation_recall.sessions import SessionFinalizer
from conversation_recall.storage import (
    InMemorySessionStore,
    InMemorySummaryStore,
    InMemoryVectorStore,
)
from conversation_recall.summarization import ConversationSummarizer


async def main():
    # Setup LLM provider (using Ollama for this example)
    model = ModelConfig(name="qwen2.5:7b-instruct", provider=Provider.OLLAMA)
    llm_provider = create_provider(model)

    embedding = OpenAIEmbedding(api_key=os.environ["OPENAI_API_KEY"])
    vector_store = InMemoryVectorStore()

    summarizer = ConversationSummarizer(
        InMemorySummaryStore(),
        indexer=VectorIndexer(embedding, vector_store),
        llm_provider=llm_provider,
        model_name=model.name,
    )
    emotion_source = HumeEventSource(api_key=os.environ.get("HUME_API_KEY"))
    finalizer = SessionFinalizer(
        InMemorySessionStore(), EmotionEventAggregator(emotion_source), summarizer
    )
    service = ConversationService(
        finalizer,
        summarizer,
        ConversationSearchService(
            embedding, vector_store, fact_extractor=LLMFactExtractor(llm_provider, model.name)
        ),
        emotion_source,
    )

    chat_id = "example-chat-0001"
    owner = "alex@example.com"

    print("=" * 80)
    print("Finalizing conversation")
    print("=" * 80)

    session = await service.finalize(chat_id, owner, time.time())
    print(f"\nSession {session.chat_id}: status={session.status}, duration={session.duration}s")

    summary = service.get_summary(chat_id)
    print(f"Summary ({summary.metadata.source}): {summary.summary.summary}")

    print("\n" + "=" * 80)
    print("Searching")
    print("=" * 80)

    response = await service.search("what did we talk about", owner=owner)
    for i, result in enumerate(response.results, 1):
        print(f"\n{i}. [{result.score:.2f}] {result.chat_id}")
        print(f"   {result.summary}")

    await service.close()


if __name__ == "__main__":
    asyncio.run(main())
