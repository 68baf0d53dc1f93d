"""
SQLAlchemy-based document storage for sessions and summaries.

Works with any SQLAlchemy-compatible database (PostgreSQL, SQLite, MySQL,
etc.). Nested structures (turns, metadata, structured summaries) are stored
as JSON text columns.
"""

import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Column, DateTime, Engine, Index, Integer, String, Text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base

from conversation_recall.exceptions import PersistenceError
from conversation_recall.models import (
    ConversationSession,
    ConversationSummary,
    ConversationTurn,
    SummaryContent,
    SummaryMetadata,
    utcnow,
)

logger = logging.getLogger(__name__)

Base = declarative_base()


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; stored values are always UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SessionDB(Base):
    """SQLAlchemy model for conversation sessions."""

    __tablename__ = "chat_sessions"

    chat_id = Column(String, primary_key=True)
    owner = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=True)
    status = Column(String, nullable=False, default="active")

    started_at = Column(DateTime(timezone=True), nullable=False)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    duration = Column(Integer, nullable=True)

    turns_json = Column(Text, nullable=False, default="[]")
    metadata_json = Column(Text, nullable=False, default="{}")
    emotion_data_json = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("idx_sessions_owner_status", "owner", "status"),)

    def to_session(self) -> ConversationSession:
        """Convert database model to ConversationSession."""
        return ConversationSession(
            chat_id=self.chat_id,
            owner=self.owner,
            user_id=self.user_id,
            status=self.status,
            turns=[ConversationTurn(**turn) for turn in json.loads(self.turns_json or "[]")],
            started_at=_as_utc(self.started_at),
            ended_at=_as_utc(self.ended_at),
            duration=self.duration,
            metadata=json.loads(self.metadata_json or "{}"),
            emotion_data=json.loads(self.emotion_data_json) if self.emotion_data_json else None,
            created_at=_as_utc(self.created_at),
            updated_at=_as_utc(self.updated_at),
        )

    def apply(self, session: ConversationSession) -> None:
        """Copy every field of a ConversationSession onto this row."""
        self.chat_id = session.chat_id
        self.owner = session.owner
        self.user_id = session.user_id
        self.status = session.status
        self.started_at = session.started_at
        self.ended_at = session.ended_at
        self.duration = session.duration
        self.turns_json = json.dumps([turn.model_dump(mode="json") for turn in session.turns])
        self.metadata_json = json.dumps(session.metadata, default=str)
        self.emotion_data_json = (
            json.dumps(session.emotion_data, default=str) if session.emotion_data is not None else None
        )
        self.created_at = session.created_at
        self.updated_at = session.updated_at


class SummaryDB(Base):
    """SQLAlchemy model for conversation summaries."""

    __tablename__ = "summaries"

    id = Column(String, primary_key=True)
    chat_id = Column(String, nullable=False, unique=True, index=True)
    owner = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=True)

    summary_json = Column(Text, nullable=False)
    metadata_json = Column(Text, nullable=False, default="{}")
    raw_data_json = Column(Text, nullable=False, default="{}")

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    def to_summary(self) -> ConversationSummary:
        """Convert database model to ConversationSummary."""
        return ConversationSummary(
            id=self.id,
            chat_id=self.chat_id,
            owner=self.owner,
            user_id=self.user_id,
            summary=SummaryContent.model_validate_json(self.summary_json),
            metadata=SummaryMetadata.model_validate_json(self.metadata_json),
            raw_data=json.loads(self.raw_data_json or "{}"),
            created_at=_as_utc(self.created_at),
            updated_at=_as_utc(self.updated_at),
        )

    def apply(self, summary: ConversationSummary) -> None:
        """Copy every field except id and created_at onto this row."""
        self.chat_id = summary.chat_id
        self.owner = summary.owner
        self.user_id = summary.user_id
        self.summary_json = summary.summary.model_dump_json()
        self.metadata_json = summary.metadata.model_dump_json()
        self.raw_data_json = json.dumps(summary.raw_data, default=str)
        self.updated_at = summary.updated_at


class _SQLAlchemyStore:
    def __init__(self, engine: Engine):
        """
        Initialize the store.

        Args:
            engine: SQLAlchemy engine for database connection
        """
        self.engine = engine
        logger.info(f"{type(self).__name__} initialized (engine={engine.url})")

    @contextmanager
    def _session(self):
        """Context manager for database sessions with automatic commit/rollback."""
        session = Session(self.engine, expire_on_commit=False)
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database error: {e}")
            raise PersistenceError(str(e)) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_tables(self):
        """Create database tables if they don't exist."""
        Base.metadata.create_all(self.engine)
        logger.info("Database tables created/verified")


class SQLAlchemySessionStore(_SQLAlchemyStore):
    """
    SQLAlchemy-based session storage.

    Example:
        from sqlalchemy import create_engine
        engine = create_engine("sqlite:///conversations.db")
        store = SQLAlchemySessionStore(engine)
        store.create_tables()
    """

    def get(self, chat_id: str) -> Optional[ConversationSession]:
        with self._session() as session:
            row = session.get(SessionDB, chat_id)
            return row.to_session() if row else None

    def create(self, conversation: ConversationSession) -> ConversationSession:
        with self._session() as session:
            existing = session.get(SessionDB, conversation.chat_id)
            if existing:
                logger.debug(f"Session {conversation.chat_id} already exists, not creating")
                return existing.to_session()

            row = SessionDB()
            row.apply(conversation)
            session.add(row)

            logger.info(f"Created session {conversation.chat_id} for {conversation.owner}")
            return conversation

    def save(self, conversation: ConversationSession) -> ConversationSession:
        with self._session() as session:
            row = session.get(SessionDB, conversation.chat_id)
            if row is None:
                row = SessionDB()
                session.add(row)
            row.apply(conversation)

            logger.debug(f"Saved session {conversation.chat_id} (status={conversation.status})")
            return conversation

    def append_turn(self, chat_id: str, turn: ConversationTurn) -> Optional[ConversationSession]:
        with self._session() as session:
            row = session.get(SessionDB, chat_id)
            if not row:
                logger.warning(f"Cannot append turn to session {chat_id}: not found")
                return None

            turns = json.loads(row.turns_json or "[]")
            turns.append(turn.model_dump(mode="json"))
            row.turns_json = json.dumps(turns)
            row.updated_at = utcnow()

            return row.to_session()

    def list_for_owner(self, owner: str) -> List[ConversationSession]:
        with self._session() as session:
            rows = (
                session.query(SessionDB)
                .filter(SessionDB.owner == owner)
                .order_by(SessionDB.created_at.desc())
                .all()
            )
            return [row.to_session() for row in rows]

    def get_active_for_owner(self, owner: str) -> Optional[ConversationSession]:
        with self._session() as session:
            row = (
                session.query(SessionDB)
                .filter(SessionDB.owner == owner, SessionDB.status == "active")
                .order_by(SessionDB.created_at.desc())
                .first()
            )
            return row.to_session() if row else None


class SQLAlchemySummaryStore(_SQLAlchemyStore):
    """
    SQLAlchemy-based summary storage, one row per chat_id.
    """

    def get(self, chat_id: str) -> Optional[ConversationSummary]:
        with self._session() as session:
            row = session.query(SummaryDB).filter(SummaryDB.chat_id == chat_id).first()
            return row.to_summary() if row else None

    def upsert(self, summary: ConversationSummary) -> ConversationSummary:
        with self._session() as session:
            row = session.query(SummaryDB).filter(SummaryDB.chat_id == summary.chat_id).first()

            if row:
                row.apply(summary)
                row.updated_at = utcnow()
                logger.info(f"Updated existing summary for chat: {summary.chat_id}")
            else:
                row = SummaryDB(id=summary.id, created_at=summary.created_at)
                row.apply(summary)
                session.add(row)
                logger.info(f"Created new summary for chat: {summary.chat_id}")

            session.flush()
            return row.to_summary()

    def list_for_owner(self, owner: str) -> List[ConversationSummary]:
        with self._session() as session:
            rows = (
                session.query(SummaryDB)
                .filter(SummaryDB.owner == owner)
                .order_by(SummaryDB.created_at.desc())
                .all()
            )
            return [row.to_summary() for row in rows]
