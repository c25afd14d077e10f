"""Error taxonomy for LedgerBot.

Startup errors end the process. Everything else is local to one invocation
and stops at the dispatcher.
"""
from __future__ import annotations

from typing import Any, Optional


class LedgerBotError(Exception):
    """Base class for errors raised by LedgerBot."""


class StartupError(LedgerBotError):
    """Raised when the bot cannot finish starting up."""


class RegistryPushError(StartupError):
    """Raised when the command table could not be pushed to Discord."""


class CommandError(LedgerBotError):
    """Invocation-local failure with a message safe to show the user."""

    def __init__(self, message: str, *, user_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.user_message = user_message


class MissingOptionError(CommandError):
    """Raised when a required command option was not supplied."""

    def __init__(self, option: str) -> None:
        super().__init__(
            f"missing required option '{option}'",
            user_message=f"Missing required option `{option}`.",
        )
        self.option = option


class MessageTooLongError(CommandError):
    """Raised when user text would not fit in a single Discord message."""

    def __init__(self, length: int, limit: int) -> None:
        super().__init__(
            f"reply of {length} characters exceeds the {limit} character limit",
            user_message=f"That message is too long to echo ({length} characters, the limit is {limit}).",
        )
        self.length = length
        self.limit = limit


class ResponseDeliveryError(LedgerBotError):
    """The acknowledgment for an invocation could not be delivered."""

    reason = "unknown"
    # set by handlers that did other work before the delivery failed
    outcome: Any = None


class ResponseRejectedError(ResponseDeliveryError):
    """Discord refused the response payload."""

    reason = "rejected"


class TransportUnavailableError(ResponseDeliveryError):
    """The connection to Discord was lost while responding."""

    reason = "connection_lost"


class AlreadyRespondedError(ResponseDeliveryError):
    """A response was already sent for this interaction."""

    reason = "already_responded"


class PersistenceError(LedgerBotError):
    """Raised when a record could not be written to the store."""


__all__ = [
    "LedgerBotError",
    "StartupError",
    "RegistryPushError",
    "CommandError",
    "MissingOptionError",
    "MessageTooLongError",
    "ResponseDeliveryError",
    "ResponseRejectedError",
    "TransportUnavailableError",
    "AlreadyRespondedError",
    "PersistenceError",
]
