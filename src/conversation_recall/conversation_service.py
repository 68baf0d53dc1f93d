import logging
from typing import Any, Dict, List, Optional

from casual_llm import LLMProvider, ModelConfig, Provider, create_provider
from sqlalchemy import create_engine

from conversation_recall.config import Settings, get_settings
from conversation_recall.embeddings import OpenAIEmbedding
from conversation_recall.emotions import EmotionEventAggregator, HumeEventSource
from conversation_recall.exceptions import DependencyUnavailable
from conversation_recall.indexing import VectorIndexer
from conversation_recall.models import (
    ConversationSession,
    ConversationSummary,
    SearchResponse,
)
from conversation_recall.retrieval import ConversationSearchService, LLMFactExtractor
from conversation_recall.sessions import SessionFinalizer
from conversation_recall.storage import (
    ConversationVectorStore,
    InMemoryVectorStore,
    QdrantVectorStore,
    SQLAlchemySessionStore,
    SQLAlchemySummaryStore,
)
from conversation_recall.summarization import ConversationSummarizer

logger = logging.getLogger(__name__)


class ConversationService:
    """
    Entry point wiring the finalize pipeline and the search read path.

    All components are built once and injected; the service itself holds no
    mutable state of its own.
    """

    def __init__(
        self,
        finalizer: SessionFinalizer,
        summarizer: ConversationSummarizer,
        search_service: Optional[ConversationSearchService] = None,
        emotion_source: Optional[HumeEventSource] = None,
        search_top_k: int = 5,
        search_min_score: float = 0.2,
        history_top_k: int = 10,
    ):
        self.finalizer = finalizer
        self.search_top_k = search_top_k
        self.search_min_score = search_min_score
        self.history_top_k = history_top_k
        self.summarizer = summarizer
        self.search_service = search_service
        self.emotion_source = emotion_source

    async def finalize(
        self,
        chat_id: str,
        owner: str,
        end_timestamp: float,
        metadata: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ) -> ConversationSession:
        return await self.finalizer.finalize(chat_id, owner, end_timestamp, metadata, user_id)

    def end_session(
        self,
        chat_id: str,
        owner: str,
        end_timestamp: float,
        metadata: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ) -> ConversationSession:
        return self.finalizer.end_session(chat_id, owner, end_timestamp, metadata, user_id)

    async def process_ended_session(self, session: ConversationSession) -> None:
        try:
            await self.finalizer.process_ended_session(session)
        except Exception as e:
            # Background task: errors are only logged
            logger.error(f"Post-finalize processing failed for chat {session.chat_id}: {e}")

    def _require_search(self) -> ConversationSearchService:
        if self.search_service is None:
            raise DependencyUnavailable("search", "embedding credentials missing")
        return self.search_service

    async def search(
        self,
        query: str,
        owner: Optional[str] = None,
        top_k: Optional[int] = None,
        min_score: Optional[float] = None,
    ) -> SearchResponse:
        return await self._require_search().search(
            query,
            owner,
            top_k or self.search_top_k,
            self.search_min_score if min_score is None else min_score,
        )

    async def search_user_conversations(
        self, owner: str, query: Optional[str] = None, top_k: Optional[int] = None
    ) -> SearchResponse:
        return await self._require_search().search_user_conversations(
            owner, query, top_k or self.history_top_k
        )

    def get_session(self, chat_id: str) -> Optional[ConversationSession]:
        return self.finalizer.get_session(chat_id)

    def list_sessions(self, owner: str) -> List[ConversationSession]:
        return self.finalizer.list_sessions(owner)

    def get_summary(self, chat_id: str) -> Optional[ConversationSummary]:
        return self.summarizer.get_summary(chat_id)

    def list_summaries(self, owner: str) -> List[ConversationSummary]:
        return self.summarizer.list_summaries(owner)

    async def close(self):
        if self.emotion_source is not None:
            await self.emotion_source.close()


def build_llm_provider(settings: Settings) -> Optional[LLMProvider]:
    """Create the casual-llm provider, or None when it cannot be used."""
    if settings.LLM_PROVIDER == "ollama":
        config = ModelConfig(
            name=settings.LLM_MODEL,
            provider=Provider.OLLAMA,
            base_url=settings.LLM_BASE_URL,
        )
    elif settings.OPENAI_API_KEY:
        config = ModelConfig(
            name=settings.LLM_MODEL,
            provider=Provider.OPENAI,
            base_url=settings.LLM_BASE_URL,
            api_key=settings.OPENAI_API_KEY,
        )
    else:
        logger.warning("OpenAI API key not found. AI summaries and fact extraction disabled.")
        return None

    return create_provider(config)


def build_vector_store(settings: Settings) -> ConversationVectorStore:
    if settings.VECTOR_BACKEND == "memory":
        return InMemoryVectorStore()
    return QdrantVectorStore(
        host=settings.QDRANT_HOST,
        port=settings.QDRANT_PORT,
        collection_name=settings.QDRANT_COLLECTION,
        dimension=settings.EMBEDDING_DIMENSION,
    )


def build_conversation_service(settings: Optional[Settings] = None) -> ConversationService:
    """
    Build every component from settings.

    Missing credentials disable the matching capability instead of failing:
    no Hume key skips emotion fetching, no OpenAI key uses basic summaries
    and disables indexing and search.
    """
    settings = settings or get_settings()

    engine = create_engine(settings.DATABASE_URL)
    session_store = SQLAlchemySessionStore(engine)
    summary_store = SQLAlchemySummaryStore(engine)
    session_store.create_tables()

    llm_provider = build_llm_provider(settings)

    indexer = None
    search_service = None
    if settings.OPENAI_API_KEY:
        embedding = OpenAIEmbedding(
            model=settings.EMBEDDING_MODEL,
            api_key=settings.OPENAI_API_KEY,
            dimensions=settings.EMBEDDING_DIMENSION,
            max_chars=settings.EMBEDDING_MAX_CHARS,
        )
        vector_store = build_vector_store(settings)
        indexer = VectorIndexer(
            embedding,
            vector_store,
            namespace=settings.VECTOR_NAMESPACE,
            retire_previous=settings.RETIRE_PREVIOUS_VECTORS,
        )
        search_service = ConversationSearchService(
            embedding,
            vector_store,
            fact_extractor=LLMFactExtractor(llm_provider, settings.LLM_MODEL)
            if llm_provider
            else None,
            namespace=settings.VECTOR_NAMESPACE,
            fact_context_size=settings.FACT_CONTEXT_SIZE,
            recency_window_hours=settings.RECENCY_WINDOW_HOURS,
        )
    else:
        logger.warning("No embedding credentials. Vector indexing and search disabled.")

    summarizer = ConversationSummarizer(
        summary_store,
        indexer=indexer,
        llm_provider=llm_provider,
        model_name=settings.LLM_MODEL,
        temperature=settings.SUMMARY_TEMPERATURE,
        max_tokens=settings.SUMMARY_MAX_TOKENS,
    )

    emotion_source = HumeEventSource(api_key=settings.HUME_API_KEY, base_url=settings.HUME_BASE_URL)
    aggregator = EmotionEventAggregator(emotion_source, page_size=settings.EMOTION_PAGE_SIZE)

    finalizer = SessionFinalizer(session_store, aggregator, summarizer)

    logger.info("Conversation service built")

    return ConversationService(
        finalizer,
        summarizer,
        search_service,
        emotion_source,
        search_top_k=settings.SEARCH_TOP_K,
        search_min_score=settings.SEARCH_MIN_SCORE,
        history_top_k=settings.USER_HISTORY_TOP_K,
    )
