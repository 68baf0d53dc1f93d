"""
Base protocol for emotion event sources.
"""

from typing import Protocol

from conversation_recall.models import EmotionEventPage


class EmotionEventSource(Protocol):
    """
    Protocol for a paginated emotion-analysis API.

    This is a Protocol (PEP 544), meaning any class that implements
    these methods is compatible - no inheritance required.
    """

    def is_available(self) -> bool:
        """
        Whether the source has credentials configured.
        """
        ...

    async def fetch_page(
        self,
        chat_id: str,
        page_number: int,
        page_size: int = 100,
        ascending_order: bool = True,
    ) -> EmotionEventPage:
        """
        Fetch one page of events for a conversation.

        Args:
            chat_id: Conversation identifier at the provider
            page_number: Zero-based page index
            page_size: Events per page (at most 100)
            ascending_order: Oldest events first when True

        Returns:
            The page, including the provider's total page count

        Raises:
            DependencyUnavailable: If the source has no credentials
            DependencyFailure: If the request fails
        """
        ...
