"""
Text embedding protocol for conversation-recall.

Provides a unified interface for embedding summary text and search queries
into dense vectors for semantic similarity search.
"""

from typing import List, Protocol

from typing_extensions import runtime_checkable


@runtime_checkable
class TextEmbedding(Protocol):
    """
    Protocol for text embedding providers.

    All implementations must:

    1. Accept only non-empty plain strings
    2. Truncate input to their configured maximum length
    3. Return vectors whose length equals ``dimension``

    Example:
        >>> embedder = OpenAIEmbedding(dimensions=1024)
        >>> vector = await embedder.embed_document("User mentioned their dog Rex")
        >>> len(vector) == embedder.dimension
        True
    """

    @property
    def dimension(self) -> int:
        """
        Vector dimension produced by this embedder.

        The vector store is created with this dimension, so every vector
        written to a namespace must have exactly this length.
        """
        ...

    @property
    def model_name(self) -> str:
        """Identifier of the embedding model."""
        ...

    @property
    def max_chars(self) -> int:
        """Maximum number of characters submitted for a single embedding."""
        ...

    async def embed_document(self, text: str) -> List[float]:
        """
        Generate embedding for a document to be stored.

        Raises:
            InvalidInputError: If text is empty after normalization
        """
        ...

    async def embed_query(self, text: str) -> List[float]:
        """
        Generate embedding for a search query.

        Raises:
            InvalidInputError: If text is empty after normalization
        """
        ...
