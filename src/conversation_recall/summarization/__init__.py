"""
Conversation summarization.
"""

from conversation_recall.summarization.summarizer import (
    ConversationSummarizer,
    FallbackSummary,
    ParsedSummary,
    SummaryResult,
    build_basic_summary,
    extract_user_messages,
    format_emotions,
    parse_summary_response,
)

__all__ = [
    "ConversationSummarizer",
    "ParsedSummary",
    "FallbackSummary",
    "SummaryResult",
    "build_basic_summary",
    "extract_user_messages",
    "format_emotions",
    "parse_summary_response",
]
