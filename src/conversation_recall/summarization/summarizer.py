"""
Conversation summarization with deterministic fallback.

Builds a prompt from the user's own messages and the emotion summary, asks
the language model for a structured JSON summary, validates it into a tagged
result, and falls back to a fixed template whenever the model is missing or
its output cannot be trusted.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from casual_llm import LLMProvider, SystemMessage, UserMessage
from pydantic import ValidationError

from conversation_recall.indexing.indexer import VectorIndexer
from conversation_recall.models import (
    ConversationSummary,
    DominantEmotion,
    EmotionEvent,
    EmotionSummary,
    SummaryContent,
    SummaryMetadata,
)
from conversation_recall.storage.protocols import SummaryStore
from conversation_recall.summarization.prompts import SUMMARY_PROMPT, SUMMARY_SYSTEM_PROMPT

logger = logging.getLogger(__name__)

NO_EMOTION_DATA = "No emotional data available"
CONVERSATION_LENGTHS = ("short", "medium", "long")


@dataclass(frozen=True)
class ParsedSummary:
    """
    A summary the language model produced and that passed validation.

    Attributes:
        content: The validated structured summary
        tokens_used: Tokens reported by the provider, if any
    """

    content: SummaryContent
    tokens_used: Optional[int] = None


@dataclass(frozen=True)
class FallbackSummary:
    """
    Marker for "use the deterministic template instead".

    Attributes:
        reason: Why the model output was not used
    """

    reason: str


SummaryResult = Union[ParsedSummary, FallbackSummary]


def _user_text(event: EmotionEvent) -> Optional[str]:
    if event.type == "USER_MESSAGE":
        segments = event.metadata.get("segments")
        if isinstance(segments, list) and segments and isinstance(segments[0], dict):
            content = segments[0].get("content")
            if content:
                return str(content)
    return event.user_input or None


def extract_user_messages(events: List[EmotionEvent]) -> List[str]:
    """
    Collect user-authored text, numbered by position in the event list.

    Assistant output is never included.

    Returns:
        Lines of the form ``[Message N] text``
    """
    messages = []
    for index, event in enumerate(events):
        text = _user_text(event)
        if text:
            messages.append(f"[Message {index + 1}] {text}")
    return messages


def format_emotions(emotion_summary: Optional[EmotionSummary]) -> str:
    """Render the top 5 dominant emotions and the timeline size for the prompt."""
    if emotion_summary is None:
        return NO_EMOTION_DATA

    text = "Dominant emotions detected:\n"
    for i, emotion in enumerate(emotion_summary.dominant_emotions[:5], start=1):
        text += (
            f"{i}. {emotion.name} (avg: {emotion.average_score:.2f}, "
            f"occurrences: {emotion.occurrence_count})\n"
        )

    if emotion_summary.emotion_timeline:
        text += (
            f"\nEmotional timeline: {len(emotion_summary.emotion_timeline)} "
            "emotion data points throughout conversation"
        )

    return text


def build_summary_prompt(
    user_messages: List[str], emotion_summary: Optional[EmotionSummary]
) -> str:
    return SUMMARY_PROMPT.format(
        conversation_text="\n\n".join(user_messages),
        emotions_text=format_emotions(emotion_summary),
    )


def build_basic_summary(message_count: int, dominant_emotions: List[DominantEmotion]) -> str:
    """
    Deterministic summary used whenever the model output is unavailable.

    The same count and emotion list always yield the same text.
    """
    text = f"User engaged in a conversation with {message_count} messages."
    if dominant_emotions:
        names = ", ".join(emotion.name for emotion in dominant_emotions[:3])
        text += f" Dominant emotions: {names}."
    text += " The user participated in an interactive dialogue session."
    return text


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def _importance(value: Any) -> float:
    try:
        return min(max(float(value), 0.0), 1.0)
    except (TypeError, ValueError):
        return 0.5


def parse_summary_response(content: Optional[str], tokens_used: Optional[int] = None) -> SummaryResult:
    """
    Validate raw model output into a tagged result.

    Non-JSON text, non-object JSON and a missing or empty ``summary`` all
    produce a FallbackSummary. Optional fields with unexpected shapes are
    dropped rather than failing the whole summary.
    """
    if not content:
        return FallbackSummary("empty response")

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse summary JSON: {e}")
        return FallbackSummary("invalid JSON")

    if not isinstance(data, dict):
        return FallbackSummary("response is not a JSON object")

    summary_text = data.get("summary")
    if not isinstance(summary_text, str) or not summary_text.strip():
        return FallbackSummary("missing summary field")

    length = _optional_str(data.get("conversation_length"))
    if length is not None:
        length = length.lower()

    try:
        parsed = SummaryContent(
            summary=summary_text.strip(),
            emotional_context=_optional_str(data.get("emotional_context")),
            dominant_emotion=_optional_str(data.get("dominant_emotion")),
            topics=_str_list(data.get("topics")),
            personal_facts=_str_list(data.get("personal_facts")),
            conversation_mood=_optional_str(data.get("conversation_mood")),
            has_questions=data.get("has_questions") is True,
            has_personal_info=data.get("has_personal_info") is True,
            conversation_length=length if length in CONVERSATION_LENGTHS else None,
            importance=_importance(data.get("importance", 0.5)),
        )
    except ValidationError as e:
        logger.error(f"Summary failed validation: {e}")
        return FallbackSummary("validation error")

    return ParsedSummary(content=parsed, tokens_used=tokens_used)


def _tokens_used(llm_provider: LLMProvider) -> Optional[int]:
    get_usage = getattr(llm_provider, "get_usage", None)
    if not callable(get_usage):
        return None
    try:
        usage = get_usage()
    except Exception as e:
        logger.warning(f"Could not read token usage: {e}")
        return None
    total = getattr(usage, "total_tokens", None)
    return total if isinstance(total, int) else None


class ConversationSummarizer:
    """
    Produces and stores the single live summary of a conversation.

    Every summary, model-generated or fallback, is upserted by chat_id and
    handed to the vector indexer so that it stays searchable.

    Example:
        >>> summarizer = ConversationSummarizer(summary_store, indexer, llm_provider)
        >>> summary = await summarizer.summarize("chat-1234567890", "a@b.c", events, emotions)
        >>> summary.metadata.source
        'model'
    """

    def __init__(
        self,
        summary_store: SummaryStore,
        indexer: Optional[VectorIndexer] = None,
        llm_provider: Optional[LLMProvider] = None,
        model_name: str = "gpt-4o-mini",
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ):
        """
        Initialize the summarizer.

        Args:
            summary_store: Store holding one summary per chat
            indexer: Vector indexer called after every upsert
            llm_provider: Language model provider (None always falls back)
            model_name: Name of the model (recorded in summary metadata)
            temperature: Sampling temperature for the summary call
            max_tokens: Response token limit for the summary call
        """
        self.summary_store = summary_store
        self.indexer = indexer
        self.llm_provider = llm_provider
        self.model_name = model_name
        self.temperature = temperature
        self.max_tokens = max_tokens

        if llm_provider is None:
            logger.warning("No language model configured. Summaries will use the basic template.")
        else:
            logger.info(f"ConversationSummarizer initialized: model={model_name}")

    async def generate(
        self, events: List[EmotionEvent], emotion_summary: Optional[EmotionSummary]
    ) -> SummaryResult:
        """
        Ask the language model for a structured summary.

        Never raises: provider errors and bad output become FallbackSummary.
        """
        if self.llm_provider is None:
            return FallbackSummary("no language model configured")

        user_messages = extract_user_messages(events)
        if not user_messages:
            return FallbackSummary("no user messages")

        prompt = build_summary_prompt(user_messages, emotion_summary)
        messages = [
            SystemMessage(content=SUMMARY_SYSTEM_PROMPT),
            UserMessage(content=prompt),
        ]

        try:
            logger.debug(f"Summarizing {len(user_messages)} user messages ({len(prompt)} chars)")
            response = await self.llm_provider.chat(
                messages=messages,
                response_format="json",
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            logger.error(f"Summary LLM failed: {e}")
            return FallbackSummary(f"provider error: {e}")

        tokens_used = _tokens_used(self.llm_provider)

        return parse_summary_response(response.content, tokens_used)

    async def summarize(
        self,
        chat_id: str,
        owner: str,
        events: List[EmotionEvent],
        emotion_summary: Optional[EmotionSummary] = None,
        user_id: Optional[str] = None,
        duration: Optional[int] = None,
    ) -> ConversationSummary:
        """
        Generate, store and index the summary of a conversation.

        Args:
            chat_id: Conversation identifier
            owner: Owner identity of the conversation
            events: Emotion events in conversation order (may be empty)
            emotion_summary: Aggregated emotions, None when unavailable
            user_id: Internal id of the owner
            duration: Conversation duration in seconds

        Returns:
            The stored summary

        Raises:
            PersistenceError: If the summary store fails
        """
        result = await self.generate(events, emotion_summary)

        if isinstance(result, ParsedSummary):
            content = result.content
            metadata = SummaryMetadata(
                total_events=len(events),
                conversation_duration=duration,
                model=self.model_name,
                tokens_used=result.tokens_used,
                source="model",
            )
            logger.info(f"Generated model summary for chat {chat_id}: {content.summary[:100]}")
        else:
            dominant = emotion_summary.dominant_emotions if emotion_summary else []
            content = SummaryContent(
                summary=build_basic_summary(len(extract_user_messages(events)), dominant),
                dominant_emotion=dominant[0].name if dominant else None,
            )
            metadata = SummaryMetadata(
                total_events=len(events),
                conversation_duration=duration,
                model="basic",
                source="fallback",
            )
            logger.warning(f"Using basic summary for chat {chat_id}: {result.reason}")

        stored = self.summary_store.upsert(
            ConversationSummary(
                chat_id=chat_id,
                owner=owner,
                user_id=user_id,
                summary=content,
                metadata=metadata,
                raw_data=self._raw_data(events, emotion_summary),
            )
        )

        if self.indexer is not None:
            await self.indexer.index(stored)

        return stored

    @staticmethod
    def _raw_data(
        events: List[EmotionEvent], emotion_summary: Optional[EmotionSummary]
    ) -> Dict[str, Any]:
        return {
            "original_events_count": len(events),
            "emotions_count": len(emotion_summary.emotion_timeline) if emotion_summary else 0,
        }

    def get_summary(self, chat_id: str) -> Optional[ConversationSummary]:
        return self.summary_store.get(chat_id)

    def list_summaries(self, owner: str) -> List[ConversationSummary]:
        return self.summary_store.list_for_owner(owner)
