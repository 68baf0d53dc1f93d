"""OpenAI embedding adapter for conversation-recall."""

import logging
import os
from typing import List, Optional

from openai import AsyncOpenAI

from conversation_recall.exceptions import InvalidInputError

logger = logging.getLogger(__name__)


def prepare_embedding_text(text: str, max_chars: int) -> str:
    """
    Normalize text for embedding.

    Strips surrounding whitespace and truncates to ``max_chars`` characters.

    Raises:
        InvalidInputError: If text is not a string or is empty after stripping
    """
    if not isinstance(text, str):
        raise InvalidInputError("Embedding input must be a string")

    clean_text = text.strip()
    if not clean_text:
        raise InvalidInputError("Cannot embed empty text")

    if len(clean_text) > max_chars:
        return clean_text[:max_chars]
    return clean_text


class OpenAIEmbedding:
    """
    Embedding adapter using OpenAI's embedding API.

    The requested output dimension is always sent explicitly, so the vector
    store dimension stays fixed even when the model's native dimension
    differs (text-embedding-3-small is 1536 natively, the conversation
    index is 1024).

    Example:
        >>> embedder = OpenAIEmbedding(
        ...     model="text-embedding-3-small",
        ...     dimensions=1024,
        ...     max_chars=8000,
        ... )
        >>> vector = await embedder.embed_document("I like pizza")
        >>> len(vector)
        1024
    """

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        dimensions: int = 1024,
        max_chars: int = 8000,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize OpenAI embedder.

        Args:
            model: OpenAI model name (default: text-embedding-3-small)
            api_key: OpenAI API key (None = use OPENAI_API_KEY env var)
            base_url: Custom endpoint (None = official OpenAI)
            dimensions: Output dimension requested on every call
            max_chars: Input is truncated to this many characters
            client: Pre-built client (mainly for tests)
        """
        if dimensions <= 0:
            raise ValueError("dimensions must be positive")
        if max_chars <= 0:
            raise ValueError("max_chars must be positive")

        self._model = model
        self._dimension = dimensions
        self._max_chars = max_chars
        self._client = client or AsyncOpenAI(
            api_key=api_key or os.getenv("OPENAI_API_KEY"),
            base_url=base_url,
        )

        logger.info(
            f"OpenAI embedder initialized: {model} ({self._dimension} dimensions, "
            f"max_chars={max_chars})"
        )

    @property
    def dimension(self) -> int:
        """Vector dimension produced by this embedder."""
        return self._dimension

    @property
    def model_name(self) -> str:
        """Identifier of the OpenAI model."""
        return self._model

    @property
    def max_chars(self) -> int:
        return self._max_chars

    async def _embed_single(self, text: str) -> List[float]:
        input_text = prepare_embedding_text(text, self._max_chars)

        logger.debug(f"Generating embedding for text ({len(input_text)} chars)")

        response = await self._client.embeddings.create(
            model=self._model,
            input=input_text,
            encoding_format="float",
            dimensions=self._dimension,
        )

        if not response.data:
            raise ValueError("No embedding returned from OpenAI")

        embedding = list(response.data[0].embedding)
        if len(embedding) != self._dimension:
            raise ValueError(
                f"Embedding dimension mismatch: expected {self._dimension}, got {len(embedding)}"
            )

        return embedding

    async def embed_document(self, text: str) -> List[float]:
        """
        Generate embedding for a summary to be stored.

        OpenAI models don't distinguish documents from queries, so this is
        identical to embed_query().
        """
        return await self._embed_single(text)

    async def embed_query(self, text: str) -> List[float]:
        """Generate embedding for a search query."""
        return await self._embed_single(text)
