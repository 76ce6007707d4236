"""Custom exception hierarchy for aqiwatch."""

from __future__ import annotations


class AqiWatchError(Exception):
    """Base exception for all aqiwatch errors."""


class ConfigError(AqiWatchError):
    """Invalid or missing configuration."""


class PersistenceError(AqiWatchError):
    """Storage-level failure (schema, query, connection)."""


class TransientProviderError(AqiWatchError):
    """Air-quality provider call failed (network, non-200, invalid payload).

    Always treated as transient: the caller logs it and moves on.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class DeliveryError(AqiWatchError):
    """Chat transport could not deliver a message."""

    def __init__(self, message: str, *, chat_id: int | None = None) -> None:
        self.chat_id = chat_id
        super().__init__(message)


class DuplicateSubscriptionError(AqiWatchError):
    """The location is already covered by an enabled subscription.

    An expected business outcome, reported back to the user as-is.
    """

    def __init__(self, chat_id: int, existing_id: int) -> None:
        self.chat_id = chat_id
        self.existing_id = existing_id
        super().__init__(f"location is already subscribed (chat {chat_id}, subscription {existing_id})")


class NoSessionError(AqiWatchError):
    """No location has been shared for the chat yet."""

    def __init__(self, chat_id: int) -> None:
        self.chat_id = chat_id
        super().__init__(f"no session for chat {chat_id}; share a location first")


class NoReadingError(AqiWatchError):
    """No reading has been fetched for the chat yet."""

    def __init__(self, chat_id: int) -> None:
        self.chat_id = chat_id
        super().__init__(f"no reading for chat {chat_id}")
