"""Application configuration loaded from environment variables."""

from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # ── Language model (casual-llm) ──────────────────────────────────────────
    LLM_PROVIDER: Literal["openai", "ollama"] = "openai"
    LLM_MODEL: str = "gpt-4o-mini"
    LLM_BASE_URL: Optional[str] = None
    OPENAI_API_KEY: Optional[str] = None
    SUMMARY_TEMPERATURE: float = 0.7
    SUMMARY_MAX_TOKENS: int = 2000

    # ── Embeddings ───────────────────────────────────────────────────────────
    EMBEDDING_MODEL: str = "text-embedding-3-small"
    # Requested explicitly on every call so the vector store dimension does not
    # follow the model's native output size.
    EMBEDDING_DIMENSION: int = 1024
    EMBEDDING_MAX_CHARS: int = 8000

    # ── Emotion events (Hume EVI) ────────────────────────────────────────────
    HUME_API_KEY: Optional[str] = None
    HUME_BASE_URL: str = "https://api.hume.ai"
    EMOTION_PAGE_SIZE: int = 100

    # ── Document store ───────────────────────────────────────────────────────
    # SQLite for local dev; any SQLAlchemy URL works (postgresql://...)
    DATABASE_URL: str = "sqlite:///./conversation_recall.db"

    # ── Vector store ─────────────────────────────────────────────────────────
    VECTOR_BACKEND: Literal["qdrant", "memory"] = "qdrant"
    QDRANT_HOST: str = "localhost"
    QDRANT_PORT: int = 6333
    QDRANT_COLLECTION: str = "conversations"
    VECTOR_NAMESPACE: str = "conversation-namespace"
    RETIRE_PREVIOUS_VECTORS: bool = True

    # ── Search ───────────────────────────────────────────────────────────────
    SEARCH_TOP_K: int = 5
    SEARCH_MIN_SCORE: float = 0.2
    USER_HISTORY_TOP_K: int = 10
    FACT_CONTEXT_SIZE: int = 10
    RECENCY_WINDOW_HOURS: float = 168.0

    # ── HTTP server ──────────────────────────────────────────────────────────
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # ── Logging ──────────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"


def get_settings() -> Settings:
    return Settings()
