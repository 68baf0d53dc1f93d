"""
Models for vector storage.

Defines the records written to and the matches read from a namespaced
vector index.
"""

from typing import Any, Dict, List, Union

from pydantic import BaseModel, Field

MetadataValue = Union[str, int, float, bool, List[str]]


class VectorRecord(BaseModel):
    """
    A record in vector storage.

    Metadata values must be plain scalars or lists of strings; ``None`` is
    never stored.
    """

    id: str
    values: List[float]
    metadata: Dict[str, MetadataValue] = Field(default_factory=dict)


class VectorMatch(BaseModel):
    """A single query hit."""

    id: str
    score: float = 0.0
    metadata: Dict[str, Any] = Field(default_factory=dict)
