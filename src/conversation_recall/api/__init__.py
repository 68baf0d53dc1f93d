"""
HTTP surface for conversation-recall.
"""

from conversation_recall.api.app import create_app

__all__ = ["create_app"]
