"""
Query intent classification.

Keyword groups are checked in priority order and the first group with a
whole-word match decides the query type.
"""

import re
from typing import List, Optional

from conversation_recall.models import QueryType

EMOTION_KEYWORDS = (
    "feel",
    "feeling",
    "feelings",
    "felt",
    "emotion",
    "emotions",
    "emotional",
    "mood",
    "happy",
    "sad",
    "angry",
    "anxious",
    "anxiety",
    "stressed",
    "stress",
    "upset",
    "excited",
    "worried",
    "frustrated",
    "scared",
    "afraid",
    "lonely",
    "depressed",
    "joy",
    "fear",
    "calm",
)
FACT_KEYWORDS = ("what", "when", "who", "mentioned", "said")
PERSONAL_INFO_KEYWORDS = ("my", "i have", "i own")
TOPIC_KEYWORDS = ("about", "regarding")

_TOPIC_STOPWORDS = {"a", "an", "the", "my", "our", "your", "this", "that", "some", "me"}
_WORD_RE = re.compile(r"[a-z0-9']+")


def tokenize(query: str) -> List[str]:
    return _WORD_RE.findall(query.lower())


def _has_phrase(tokens: List[str], phrase: str) -> bool:
    words = phrase.split()
    size = len(words)
    return any(tokens[i : i + size] == words for i in range(len(tokens) - size + 1))


def _matches_any(tokens: List[str], keywords) -> bool:
    return any(_has_phrase(tokens, keyword) for keyword in keywords)


def classify_query(query: str) -> QueryType:
    """
    Classify a search query.

    Priority: emotion, fact_extraction, personal_info, topic_based, general.

    Example:
        >>> classify_query("how did I feel last week")
        'emotion'
        >>> classify_query("what is my password")
        'fact_extraction'
    """
    tokens = tokenize(query)

    if _matches_any(tokens, EMOTION_KEYWORDS):
        return "emotion"
    if _matches_any(tokens, FACT_KEYWORDS):
        return "fact_extraction"
    if _matches_any(tokens, PERSONAL_INFO_KEYWORDS):
        return "personal_info"
    if _matches_any(tokens, TOPIC_KEYWORDS):
        return "topic_based"
    return "general"


def extract_topic_token(query: str) -> Optional[str]:
    """Return the first meaningful word after "about" or "regarding"."""
    tokens = tokenize(query)
    for i, token in enumerate(tokens):
        if token not in TOPIC_KEYWORDS:
            continue
        for candidate in tokens[i + 1 :]:
            if candidate not in _TOPIC_STOPWORDS:
                return candidate
    return None


def emotion_keywords_in(query: str) -> List[str]:
    return [token for token in tokenize(query) if token in EMOTION_KEYWORDS]
