"""Slash command handlers.

Each handler turns one :class:`Invocation` into exactly one response.
``insert`` and ``log`` also write a record through the persistence gateway.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from .errors import MessageTooLongError, PersistenceError, ResponseDeliveryError
from .models import InsertResult, Invocation, LogRecord, MessageRecord, Response
from .options import ParsedOptions, parse_options
from .persistence import PersistenceGateway
from .responder import MAX_MESSAGE_LENGTH, InteractionResponder

logger = logging.getLogger(__name__)

INSERT_ACK = "Added to the database!"
LOG_SUCCESS = "Successfully logged"


@dataclass
class HandlerOutcome:
    """What a handler did for one invocation."""

    command: str
    response: Optional[Response] = None
    stored: Optional[InsertResult] = None
    persistence_error: Optional[PersistenceError] = None


class CommandHandler:
    """Base class for the per-command handlers."""

    name: str = ""

    async def handle(
        self, invocation: Invocation, responder: InteractionResponder
    ) -> HandlerOutcome:
        raise NotImplementedError

    @staticmethod
    def options(invocation: Invocation) -> ParsedOptions:
        return parse_options(invocation.options)


def format_echo(message: str, author: Optional[str] = None) -> str:
    """Build the echo text, optionally attributed to ``author``."""

    if author:
        return f"**{author}** says: {message}"
    return message


class EchoHandler(CommandHandler):
    name = "echo"

    async def handle(
        self, invocation: Invocation, responder: InteractionResponder
    ) -> HandlerOutcome:
        opts = self.options(invocation)
        message = opts.require_str("message")
        author = invocation.author if opts.get_bool("author") else None
        content = format_echo(message, author)
        if len(content) > MAX_MESSAGE_LENGTH:
            raise MessageTooLongError(len(content), MAX_MESSAGE_LENGTH)
        response = Response(content=content)
        await responder.send(response)
        logger.info("Sent echo for interaction %s", invocation.interaction_id)
        return HandlerOutcome(command=self.name, response=response)


class InsertHandler(CommandHandler):
    """Acknowledges first, then stores a :class:`MessageRecord`.

    Discord expects the initial response within a few seconds, so the write
    happens after it and runs even if the acknowledgment failed.
    """

    name = "insert"
    option_name = "input"

    def __init__(self, gateway: PersistenceGateway) -> None:
        self._gateway = gateway

    async def handle(
        self, invocation: Invocation, responder: InteractionResponder
    ) -> HandlerOutcome:
        opts = self.options(invocation)
        record = MessageRecord(author=invocation.author, input=opts.require_str(self.option_name))
        outcome = HandlerOutcome(command=self.name)

        delivery_error: Optional[ResponseDeliveryError] = None
        response = Response(content=INSERT_ACK)
        try:
            await responder.send(response)
            outcome.response = response
        except ResponseDeliveryError as exc:
            delivery_error = exc

        try:
            outcome.stored = await self._gateway.insert(record)
            logger.info(
                "Stored message %s from %s", outcome.stored.id, invocation.author
            )
        except PersistenceError as exc:
            outcome.persistence_error = exc
            logger.error(
                "Failed to store message from %s (interaction %s): %s",
                invocation.author,
                invocation.interaction_id,
                exc,
            )

        if delivery_error is not None:
            delivery_error.outcome = outcome
            raise delivery_error
        return outcome


class LogHandler(CommandHandler):
    """Stores a :class:`LogRecord` and reports how that went."""

    name = "log"

    def __init__(self, gateway: PersistenceGateway) -> None:
        self._gateway = gateway

    async def handle(
        self, invocation: Invocation, responder: InteractionResponder
    ) -> HandlerOutcome:
        outcome = HandlerOutcome(command=self.name)
        try:
            outcome.stored = await self._gateway.insert(LogRecord(author=invocation.author))
            content = LOG_SUCCESS
        except PersistenceError as exc:
            outcome.persistence_error = exc
            logger.error(
                "Failed to store log entry for %s (interaction %s): %s",
                invocation.author,
                invocation.interaction_id,
                exc,
            )
            content = f"Failed to save a log entry for **{invocation.author}**."

        response = Response(content=content)
        await responder.send(response)
        outcome.response = response
        return outcome


def build_handlers(gateway: PersistenceGateway) -> Dict[str, CommandHandler]:
    """Default command name -> handler table."""

    handlers = (EchoHandler(), InsertHandler(gateway), LogHandler(gateway))
    return {handler.name: handler for handler in handlers}


__all__ = [
    "HandlerOutcome",
    "CommandHandler",
    "EchoHandler",
    "InsertHandler",
    "LogHandler",
    "build_handlers",
    "format_echo",
    "INSERT_ACK",
    "LOG_SUCCESS",
]
