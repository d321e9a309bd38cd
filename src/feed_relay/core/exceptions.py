"""Domain exceptions raised by the Feed Relay core.

Callers map these onto user-facing messages. Failures that are not listed
here (network errors, unexpected Discord responses) are never reinterpreted
and reach the caller unchanged.
"""

from __future__ import annotations


class FeedRelayError(Exception):
    """Base class for all domain failures raised by this package."""


class NotFoundError(FeedRelayError):
    """A channel, webhook or feed does not exist."""


class PermissionDeniedError(FeedRelayError):
    """The actor lacks rights to the destination, or the destination is owned elsewhere."""


class TypeMismatchError(FeedRelayError):
    """A destination exists but cannot be used by the bot to send messages."""


class StorageInconsistencyError(FeedRelayError, RuntimeError):
    """A write succeeded but the written record could not be read back.

    This signals that the insert/update and the subsequent read used
    inconsistent criteria. It is a defect, never retried.
    """


class ChannelNotFoundError(NotFoundError):
    """Discord reported the channel as missing."""


class ChannelPermissionDeniedError(PermissionDeniedError):
    """Discord refused access to the channel."""


class ChannelNotOwnedError(PermissionDeniedError):
    """The channel belongs to a different guild than the one requested."""


class WebhookNonexistentError(NotFoundError):
    """The webhook could not be fetched."""


class WebhookWrongTypeError(TypeMismatchError):
    """The webhook is not an incoming webhook the bot can post through."""


class WebhookNotOwnedError(PermissionDeniedError):
    """The webhook belongs to a different guild than the one requested."""


class WebhookMissingUserPermissionError(PermissionDeniedError):
    """The requesting user does not manage the guild of the webhook."""


class FeedNotFoundError(NotFoundError):
    """The target feed id does not exist."""


class ConnectionNotPersistedError(StorageInconsistencyError):
    """A created or patched connection was not found after the write."""


__all__ = [
    "ChannelNotFoundError",
    "ChannelNotOwnedError",
    "ChannelPermissionDeniedError",
    "ConnectionNotPersistedError",
    "FeedNotFoundError",
    "FeedRelayError",
    "NotFoundError",
    "PermissionDeniedError",
    "StorageInconsistencyError",
    "TypeMismatchError",
    "WebhookMissingUserPermissionError",
    "WebhookNonexistentError",
    "WebhookNotOwnedError",
    "WebhookWrongTypeError",
]
