"""
Storage protocol definitions for sessions, summaries and vectors.

These protocols define the interface that storage implementations must provide.
They are implementation-agnostic and can be backed by various databases
(SQLAlchemy, Qdrant, in-memory, etc.).
"""

from typing import Any, Dict, List, Optional, Protocol

from conversation_recall.models import ConversationSession, ConversationSummary, ConversationTurn
from conversation_recall.storage.vector.models import VectorMatch, VectorRecord


class SessionStore(Protocol):
    """
    Protocol for conversation session storage.

    Sessions are keyed by ``chat_id``; there is at most one record per chat.
    Implementations raise PersistenceError when the backing store fails.
    """

    def get(self, chat_id: str) -> Optional[ConversationSession]:
        """
        Retrieve a session by chat ID.

        Args:
            chat_id: The chat ID

        Returns:
            The session if found, None otherwise
        """
        ...

    def create(self, session: ConversationSession) -> ConversationSession:
        """
        Insert a session unless one already exists for its chat ID.

        Args:
            session: The session to insert

        Returns:
            The stored session (the existing one when chat_id is taken)
        """
        ...

    def save(self, session: ConversationSession) -> ConversationSession:
        """
        Replace the stored session with the same chat ID.

        Args:
            session: The updated session

        Returns:
            The stored session
        """
        ...

    def append_turn(self, chat_id: str, turn: ConversationTurn) -> Optional[ConversationSession]:
        """
        Append a turn to a session.

        Returns:
            The updated session, None if the session does not exist
        """
        ...

    def list_for_owner(self, owner: str) -> List[ConversationSession]:
        """
        Get all sessions for an owner, newest first.
        """
        ...

    def get_active_for_owner(self, owner: str) -> Optional[ConversationSession]:
        """
        Get the newest active session for an owner.
        """
        ...


class SummaryStore(Protocol):
    """
    Protocol for conversation summary storage.

    Holds at most one summary per ``chat_id``.
    """

    def get(self, chat_id: str) -> Optional[ConversationSummary]:
        """
        Retrieve the summary of a chat.
        """
        ...

    def upsert(self, summary: ConversationSummary) -> ConversationSummary:
        """
        Insert a summary, or replace the existing one for the same chat ID.

        The existing record keeps its ``id`` and ``created_at``; every other
        field is replaced.

        Returns:
            The stored summary
        """
        ...

    def list_for_owner(self, owner: str) -> List[ConversationSummary]:
        """
        Get all summaries for an owner, newest first.
        """
        ...


class ConversationVectorStore(Protocol):
    """
    Protocol for a namespaced vector index.

    Filters use the dictionary language described in
    ``conversation_recall.storage.vector.filters``.
    """

    def upsert(self, namespace: str, records: List[VectorRecord]) -> int:
        """
        Insert or replace records by id.

        Returns:
            Number of records written
        """
        ...

    def query(
        self,
        namespace: str,
        vector: Optional[List[float]] = None,
        top_k: int = 10,
        filter: Optional[Dict[str, Any]] = None,
        include_metadata: bool = True,
    ) -> List[VectorMatch]:
        """
        Query a namespace.

        Args:
            namespace: Namespace to search
            vector: Query vector; None performs a metadata-only fetch
            top_k: Maximum number of matches
            filter: Metadata filter
            include_metadata: Whether to return metadata with matches

        Returns:
            Matches, highest similarity first when a vector is given
        """
        ...

    def delete(self, namespace: str, ids: List[str]) -> int:
        """
        Delete records by id.

        Returns:
            Number of records deleted
        """
        ...
