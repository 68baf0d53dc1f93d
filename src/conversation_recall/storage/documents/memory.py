"""
In-memory document storage implementations.

Provide simple dictionary-backed session and summary stores, suitable for
testing and single-instance deployments. Each instance owns its own
registry, so tests can build isolated stores.
"""

import logging
from typing import Dict, List, Optional

from conversation_recall.models import (
    ConversationSession,
    ConversationSummary,
    ConversationTurn,
    utcnow,
)

logger = logging.getLogger(__name__)


class InMemorySessionStore:
    """
    In-memory implementation of the SessionStore protocol.

    Stores sessions keyed by chat_id. Data is lost on restart.
    """

    def __init__(self):
        self._sessions: Dict[str, ConversationSession] = {}

        logger.info("InMemorySessionStore initialized")

    def get(self, chat_id: str) -> Optional[ConversationSession]:
        session = self._sessions.get(chat_id)
        return session.model_copy(deep=True) if session else None

    def create(self, session: ConversationSession) -> ConversationSession:
        existing = self._sessions.get(session.chat_id)
        if existing:
            logger.debug(f"Session {session.chat_id} already exists, not creating")
            return existing.model_copy(deep=True)

        self._sessions[session.chat_id] = session.model_copy(deep=True)
        logger.info(f"Created session {session.chat_id} for {session.owner}")
        return session

    def save(self, session: ConversationSession) -> ConversationSession:
        self._sessions[session.chat_id] = session.model_copy(deep=True)
        logger.debug(f"Saved session {session.chat_id} (status={session.status})")
        return session

    def append_turn(self, chat_id: str, turn: ConversationTurn) -> Optional[ConversationSession]:
        session = self._sessions.get(chat_id)
        if not session:
            logger.warning(f"Cannot append turn to session {chat_id}: not found")
            return None

        session.turns.append(turn)
        session.updated_at = utcnow()
        return session.model_copy(deep=True)

    def list_for_owner(self, owner: str) -> List[ConversationSession]:
        sessions = [s for s in self._sessions.values() if s.owner == owner]
        sessions.sort(key=lambda s: s.created_at, reverse=True)
        return [s.model_copy(deep=True) for s in sessions]

    def get_active_for_owner(self, owner: str) -> Optional[ConversationSession]:
        for session in self.list_for_owner(owner):
            if session.status == "active":
                return session
        return None


class InMemorySummaryStore:
    """
    In-memory implementation of the SummaryStore protocol.
    """

    def __init__(self):
        self._summaries: Dict[str, ConversationSummary] = {}

        logger.info("InMemorySummaryStore initialized")

    def get(self, chat_id: str) -> Optional[ConversationSummary]:
        summary = self._summaries.get(chat_id)
        return summary.model_copy(deep=True) if summary else None

    def upsert(self, summary: ConversationSummary) -> ConversationSummary:
        existing = self._summaries.get(summary.chat_id)

        if existing:
            stored = summary.model_copy(
                update={"id": existing.id, "created_at": existing.created_at, "updated_at": utcnow()},
                deep=True,
            )
            logger.info(f"Updated existing summary for chat: {summary.chat_id}")
        else:
            stored = summary.model_copy(deep=True)
            logger.info(f"Created new summary for chat: {summary.chat_id}")

        self._summaries[summary.chat_id] = stored
        return stored.model_copy(deep=True)

    def list_for_owner(self, owner: str) -> List[ConversationSummary]:
        summaries = [s for s in self._summaries.values() if s.owner == owner]
        summaries.sort(key=lambda s: s.created_at, reverse=True)
        return [s.model_copy(deep=True) for s in summaries]
