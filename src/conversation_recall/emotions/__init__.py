"""
Emotion event fetching and aggregation.
"""

from conversation_recall.emotions.aggregator import EmotionEventAggregator, summarize_emotions
from conversation_recall.emotions.hume_source import HumeEventSource, parse_hume_event
from conversation_recall.emotions.protocol import EmotionEventSource

__all__ = [
    "EmotionEventSource",
    "EmotionEventAggregator",
    "HumeEventSource",
    "parse_hume_event",
    "summarize_emotions",
]
