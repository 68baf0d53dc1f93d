"""
Conversation session lifecycle.
"""

from conversation_recall.sessions.finalizer import SessionFinalizer, validate_chat_id

__all__ = ["SessionFinalizer", "validate_chat_id"]
