"""
Conversation session lifecycle and finalization.

Finalizing a session has a durable part (state transition, duration,
metadata) that must succeed, and a best-effort part (emotion fetch,
summarization, indexing) whose failures are logged and never undo the
durable part.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from conversation_recall.emotions.aggregator import EmotionEventAggregator
from conversation_recall.exceptions import InvalidInputError, PersistenceError
from conversation_recall.models import ConversationSession, ConversationTurn, utcnow
from conversation_recall.storage.protocols import SessionStore
from conversation_recall.summarization.summarizer import ConversationSummarizer

logger = logging.getLogger(__name__)

MIN_CHAT_ID_LENGTH = 10
PLACEHOLDER_CHAT_ID = "unknown"


def validate_chat_id(chat_id: Any) -> str:
    """
    Reject missing, placeholder and too-short chat ids.

    Raises:
        InvalidInputError: If the chat id is not usable
    """
    if not isinstance(chat_id, str) or not chat_id:
        raise InvalidInputError("chat_id is required")
    if chat_id == PLACEHOLDER_CHAT_ID:
        raise InvalidInputError("chat_id is the placeholder 'unknown'")
    if len(chat_id) < MIN_CHAT_ID_LENGTH:
        raise InvalidInputError(
            f"chat_id must be at least {MIN_CHAT_ID_LENGTH} characters, got {len(chat_id)}"
        )
    return chat_id


def _from_epoch(timestamp: float) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


class SessionFinalizer:
    """
    Owns the session lifecycle: start, append turns and finalize.

    Example:
        >>> finalizer = SessionFinalizer(session_store, aggregator, summarizer)
        >>> session = await finalizer.finalize("abc123xyz9", "a@b.c", 1700000000)
        >>> session.status
        'ended'
    """

    def __init__(
        self,
        session_store: SessionStore,
        aggregator: Optional[EmotionEventAggregator] = None,
        summarizer: Optional[ConversationSummarizer] = None,
    ):
        """
        Initialize the finalizer.

        Args:
            session_store: Durable session storage
            aggregator: Emotion event aggregator (None skips emotion fetch)
            summarizer: Summarizer (None skips summarization and indexing)
        """
        self.session_store = session_store
        self.aggregator = aggregator
        self.summarizer = summarizer

    def start_session(
        self,
        chat_id: str,
        owner: str,
        user_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ConversationSession:
        """Create an active session, or return the existing one for this chat."""
        validate_chat_id(chat_id)
        if not owner:
            raise InvalidInputError("owner is required")

        return self.session_store.create(
            ConversationSession(
                chat_id=chat_id, owner=owner, user_id=user_id, metadata=dict(metadata or {})
            )
        )

    def append_turn(self, chat_id: str, turn: ConversationTurn) -> ConversationSession:
        """
        Append a turn to an existing session.

        Raises:
            InvalidInputError: If the session does not exist
        """
        validate_chat_id(chat_id)
        session = self.session_store.append_turn(chat_id, turn)
        if session is None:
            raise InvalidInputError(f"Session {chat_id} not found")
        return session

    def end_session(
        self,
        chat_id: str,
        owner: str,
        end_timestamp: float,
        metadata: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ) -> ConversationSession:
        """
        Durably end a session.

        Creates the session when none exists (started at the end time),
        computes the duration, merges metadata and moves it to ``ended``.
        Calling again with the same arguments leaves the same record.

        Args:
            chat_id: Conversation identifier
            owner: Owner identity
            end_timestamp: End time in epoch seconds
            metadata: Metadata merged over the stored metadata
            user_id: Internal id of the owner

        Returns:
            The ended session

        Raises:
            InvalidInputError: If the input is invalid (nothing is written)
            PersistenceError: If the session store fails
        """
        validate_chat_id(chat_id)
        if not owner:
            raise InvalidInputError("owner is required")
        try:
            end_time = _from_epoch(float(end_timestamp))
        except (TypeError, ValueError, OverflowError, OSError) as e:
            raise InvalidInputError(f"Invalid timestamp: {end_timestamp}") from e

        session = self.session_store.get(chat_id)
        if session is None:
            logger.info(f"No session for chat {chat_id}, creating one at end time")
            session = self.session_store.create(
                ConversationSession(
                    chat_id=chat_id, owner=owner, user_id=user_id, started_at=end_time
                )
            )

        elapsed = (end_time - session.started_at).total_seconds()

        update: Dict[str, Any] = {
            "ended_at": end_time,
            "duration": max(0, math.floor(elapsed)),
            "metadata": {**session.metadata, **(metadata or {})},
            "updated_at": utcnow(),
        }
        if session.status == "active":
            update["status"] = "ended"
        if user_id and not session.user_id:
            update["user_id"] = user_id

        session = self.session_store.save(session.model_copy(update=update))

        logger.info(
            f"Ended session {chat_id} for {session.owner} (duration={session.duration}s)"
        )
        return session

    async def process_ended_session(self, session: ConversationSession) -> None:
        """
        Run emotion aggregation, then summarization (which indexes).

        Best-effort: failures are logged and swallowed, except
        PersistenceError from the stores.
        """
        chat_id = session.chat_id
        bundle = None

        if self.aggregator is not None:
            try:
                bundle = await self.aggregator.fetch_all(chat_id)
            except PersistenceError:
                raise
            except Exception as e:
                logger.error(f"Emotion aggregation failed for chat {chat_id}: {e}")

        if bundle is not None:
            session = self.session_store.save(
                session.model_copy(
                    update={"emotion_data": bundle.model_dump(mode="json"), "updated_at": utcnow()}
                )
            )

        if self.summarizer is None:
            logger.debug(f"No summarizer configured, skipping summary for chat {chat_id}")
            return

        try:
            await self.summarizer.summarize(
                chat_id=chat_id,
                owner=session.owner,
                events=bundle.events if bundle else [],
                emotion_summary=bundle.emotion_summary if bundle else None,
                user_id=session.user_id,
                duration=session.duration,
            )
        except PersistenceError:
            raise
        except Exception as e:
            logger.error(f"Summarization failed for chat {chat_id}: {e}")

    async def finalize(
        self,
        chat_id: str,
        owner: str,
        end_timestamp: float,
        metadata: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ) -> ConversationSession:
        """
        End a session and run the downstream pipeline in sequence.

        Returns:
            The ended session

        Raises:
            InvalidInputError: If the input is invalid
            PersistenceError: If the document store fails
        """
        session = self.end_session(chat_id, owner, end_timestamp, metadata, user_id)
        await self.process_ended_session(session)
        return self.session_store.get(chat_id) or session

    def get_session(self, chat_id: str) -> Optional[ConversationSession]:
        return self.session_store.get(chat_id)

    def list_sessions(self, owner: str) -> List[ConversationSession]:
        return self.session_store.list_for_owner(owner)

    def get_active_session(self, owner: str) -> Optional[ConversationSession]:
        return self.session_store.get_active_for_owner(owner)

    def list_chat_ids(self, owner: str) -> List[str]:
        return [session.chat_id for session in self.session_store.list_for_owner(owner)]
