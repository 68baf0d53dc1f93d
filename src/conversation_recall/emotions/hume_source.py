"""Hume EVI chat-event source for conversation-recall."""

import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from conversation_recall.exceptions import DependencyFailure, DependencyUnavailable
from conversation_recall.models import EmotionEvent, EmotionEventPage, EmotionScore

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def _decode_json_object(raw: Any) -> Dict[str, Any]:
    """Hume returns several object fields as JSON-encoded strings."""
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str) and raw:
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug(f"Ignoring undecodable JSON field: {raw[:50]}")
            return {}
        return decoded if isinstance(decoded, dict) else {}
    return {}


def _parse_emotions(raw_event: Dict[str, Any]) -> List[EmotionScore]:
    # Already-normalized shape: [{"name": ..., "score": ...}]
    emotions = raw_event.get("emotions")
    if isinstance(emotions, list):
        return [
            EmotionScore(name=str(item["name"]), score=float(item["score"]))
            for item in emotions
            if isinstance(item, dict) and "name" in item and "score" in item
        ]

    features = _decode_json_object(raw_event.get("emotion_features"))
    return [
        EmotionScore(name=name, score=float(score))
        for name, score in features.items()
        if isinstance(score, (int, float))
    ]


def _normalize_timestamp(raw: Any) -> float:
    """Hume timestamps are epoch milliseconds; anything that large is converted."""
    timestamp = float(raw or 0)
    if timestamp > 1e11:
        timestamp = timestamp / 1000.0
    return timestamp


def parse_hume_event(raw_event: Dict[str, Any]) -> EmotionEvent:
    """Transform a raw Hume chat event into an EmotionEvent."""
    role = str(raw_event.get("role") or "").upper()
    message_text = raw_event.get("message_text")

    user_input = raw_event.get("user_input")
    assistant_output = raw_event.get("assistant_output")
    if message_text:
        if role == "USER" and user_input is None:
            user_input = message_text
        elif role == "AGENT" and assistant_output is None:
            assistant_output = message_text

    return EmotionEvent(
        id=str(raw_event.get("id") or ""),
        type=str(raw_event.get("type") or "unknown"),
        timestamp=_normalize_timestamp(raw_event.get("timestamp")),
        user_input=user_input,
        assistant_output=assistant_output,
        emotions=_parse_emotions(raw_event),
        metadata=_decode_json_object(raw_event.get("metadata")),
    )


class HumeEventSource:
    """
    Emotion event source backed by the Hume EVI chat-events REST API.

    Example:
        >>> source = HumeEventSource(api_key="...")
        >>> page = await source.fetch_page("chat-123", page_number=0)
        >>> page.total_pages
        3
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://api.hume.ai",
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the Hume source.

        Args:
            api_key: Hume API key (None disables the source)
            base_url: Hume API root
            http_client: Optional shared HTTP client
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = http_client

        if api_key:
            logger.info("Hume event source initialized")
        else:
            logger.warning("Hume API key not found. Emotion event fetching disabled.")

    def is_available(self) -> bool:
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def fetch_page(
        self,
        chat_id: str,
        page_number: int,
        page_size: int = MAX_PAGE_SIZE,
        ascending_order: bool = True,
    ) -> EmotionEventPage:
        if not self.is_available():
            raise DependencyUnavailable("hume")

        page_size = min(page_size, MAX_PAGE_SIZE)
        client = await self._get_client()

        try:
            response = await client.get(
                f"{self.base_url}/v0/evi/chats/{chat_id}",
                params={
                    "page_number": page_number,
                    "page_size": page_size,
                    "ascending_order": str(ascending_order).lower(),
                },
                headers={"X-Hume-Api-Key": self.api_key},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Hume API error for chat {chat_id} (page {page_number}): {e}")
            raise DependencyFailure("hume", str(e)) from e

        events = [parse_hume_event(raw) for raw in data.get("events_page") or []]

        logger.debug(
            f"Fetched {len(events)} events for chat {chat_id} "
            f"(page {page_number}/{data.get('total_pages')})"
        )

        return EmotionEventPage(
            chat_id=chat_id,
            page_number=int(data.get("page_number", page_number)),
            page_size=int(data.get("page_size", page_size)),
            total_pages=int(data.get("total_pages") or 0),
            events=events,
        )

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
