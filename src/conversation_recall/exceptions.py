"""
Error taxonomy for conversation-recall.

- InvalidInputError: malformed webhook or query input, rejected before any side effect
- DependencyUnavailable: an external service has no credentials configured
- DependencyFailure: an external call was made but failed
- PersistenceError: the document store could not read or write a record
"""


class ConversationRecallError(Exception):
    """Base class for all conversation-recall errors."""


class InvalidInputError(ConversationRecallError, ValueError):
    """Raised when caller-supplied input is rejected."""


class DependencyUnavailable(ConversationRecallError):
    """Raised when an external service is not configured."""

    def __init__(self, service: str, reason: str = "credentials missing"):
        self.service = service
        self.reason = reason
        super().__init__(f"{service} unavailable: {reason}")


class DependencyFailure(ConversationRecallError):
    """Raised when a call to an external service fails."""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(f"{service} call failed: {message}")


class PersistenceError(ConversationRecallError):
    """Raised when the document store fails."""
