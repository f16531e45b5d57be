"""Application-level exception types for Askflow."""

from __future__ import annotations


class AskflowError(Exception):
    """Base exception for Askflow."""


class ConfigurationError(AskflowError):
    """Raised when settings or plugin wiring are unusable."""


class ConversationError(AskflowError):
    """Raised when a turn cannot be appended to a conversation."""


class PersistenceError(AskflowError):
    """Raised when the chat store fails to save a committed conversation."""


class StreamClosedError(AskflowError):
    """Raised when a producer writes to a stream that is already done."""
