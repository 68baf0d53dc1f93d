"""
Emotion event aggregation.

Pages through an emotion event source for one conversation and reduces the
events into dominant emotions plus a per-event timeline.
"""

import logging
from typing import AsyncIterator, Dict, List, Optional

from conversation_recall.emotions.protocol import EmotionEventSource
from conversation_recall.exceptions import DependencyUnavailable
from conversation_recall.models import (
    DominantEmotion,
    EmotionEvent,
    EmotionEventBundle,
    EmotionSummary,
    EmotionTimelineEntry,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
DEFAULT_TOP_EMOTIONS = 10


def summarize_emotions(
    events: List[EmotionEvent], top_n: int = DEFAULT_TOP_EMOTIONS
) -> EmotionSummary:
    """
    Reduce events into dominant emotions and a timeline.

    Every (name, score) pair across all events is grouped by name. Emotions
    are ranked by mean score (highest first); ties keep first-seen order.

    Args:
        events: Events in conversation order
        top_n: Number of dominant emotions to keep

    Returns:
        EmotionSummary with at most ``top_n`` dominant emotions
    """
    totals: Dict[str, List[float]] = {}  # name -> [score sum, count]
    timeline: List[EmotionTimelineEntry] = []

    for event in events:
        if not event.emotions:
            continue

        timeline.append(EmotionTimelineEntry(timestamp=event.timestamp, emotions=event.emotions))

        for emotion in event.emotions:
            entry = totals.setdefault(emotion.name, [0.0, 0])
            entry[0] += emotion.score
            entry[1] += 1

    dominant = [
        DominantEmotion(name=name, average_score=total / count, occurrence_count=count)
        for name, (total, count) in totals.items()
    ]
    dominant.sort(key=lambda emotion: emotion.average_score, reverse=True)

    return EmotionSummary(dominant_emotions=dominant[:top_n], emotion_timeline=timeline)


class EmotionEventAggregator:
    """Fetches every emotion event of a conversation and summarizes them."""

    def __init__(
        self,
        source: EmotionEventSource,
        page_size: int = DEFAULT_PAGE_SIZE,
        top_n: int = DEFAULT_TOP_EMOTIONS,
    ):
        """
        Initialize the aggregator.

        Args:
            source: Paginated emotion event source
            page_size: Events requested per page (capped at 100)
            top_n: Number of dominant emotions to keep
        """
        self.source = source
        self.page_size = min(page_size, DEFAULT_PAGE_SIZE)
        self.top_n = top_n

    def is_available(self) -> bool:
        return self.source.is_available()

    async def iter_events(self, chat_id: str) -> AsyncIterator[EmotionEvent]:
        """
        Lazily yield every event of a conversation, oldest first.

        The sequence is finite and each call starts again from page 0. The
        total page count is read from the first page only; a different count
        reported by later pages is ignored.

        Raises:
            DependencyUnavailable: If the source has no credentials
            DependencyFailure: If any page request fails
        """
        first_page = await self.source.fetch_page(
            chat_id, page_number=0, page_size=self.page_size, ascending_order=True
        )
        total_pages = first_page.total_pages

        for event in first_page.events:
            yield event

        for page_number in range(1, total_pages):
            page = await self.source.fetch_page(
                chat_id, page_number=page_number, page_size=self.page_size, ascending_order=True
            )

            if page.total_pages != total_pages:
                logger.warning(
                    f"Total pages for chat {chat_id} changed from {total_pages} to "
                    f"{page.total_pages} mid-fetch; keeping {total_pages}"
                )

            if not page.events:
                logger.debug(f"Empty page {page_number} for chat {chat_id}, stopping")
                return

            for event in page.events:
                yield event

    async def fetch_all(self, chat_id: str) -> Optional[EmotionEventBundle]:
        """
        Fetch all events of a conversation and summarize their emotions.

        Args:
            chat_id: Conversation identifier

        Returns:
            EmotionEventBundle, or None when the source is unavailable

        Raises:
            DependencyFailure: If the source fails while paging
        """
        if not self.source.is_available():
            logger.info(f"Emotion source unavailable, skipping events for chat {chat_id}")
            return None

        logger.info(f"Fetching all emotion events for chat {chat_id}")

        try:
            events = [event async for event in self.iter_events(chat_id)]
        except DependencyUnavailable as e:
            logger.warning(f"Emotion source became unavailable: {e}")
            return None

        summary = summarize_emotions(events, self.top_n)

        logger.info(
            f"Processed {len(events)} events for chat {chat_id} "
            f"({len(summary.dominant_emotions)} dominant emotions)"
        )

        return EmotionEventBundle(
            chat_id=chat_id,
            total_events=len(events),
            events=events,
            emotion_summary=summary,
        )
