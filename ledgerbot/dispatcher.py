"""Routing of Discord interactions to command handlers."""
from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Any, Dict, Mapping, Optional

import discord

from .errors import CommandError, ResponseDeliveryError
from .handlers import CommandHandler, HandlerOutcome
from .models import Invocation
from .options import invocation_from_interaction
from .registry import CommandRegistry
from .responder import InteractionResponder
from .telemetry import TelemetryCollector

logger = logging.getLogger(__name__)


class DispatchOutcome(str, Enum):
    IGNORED = "ignored"
    UNKNOWN_COMMAND = "unknown_command"
    HANDLED = "handled"
    FAILED = "failed"


def _describe(invocation: Invocation) -> str:
    return " ".join(f"{key}={value}" for key, value in invocation.context().items())


class Dispatcher:
    """Sends each application-command interaction to its handler.

    ``dispatch`` never raises. Failures are logged against the invocation
    that caused them and reported as a :class:`DispatchOutcome`.
    """

    def __init__(
        self,
        handlers: Mapping[str, CommandHandler],
        *,
        registry: Optional[CommandRegistry] = None,
        telemetry: Optional[TelemetryCollector] = None,
    ) -> None:
        self._handlers: Dict[str, CommandHandler] = dict(handlers)
        self._registry = registry
        self._telemetry = telemetry
        if registry is not None:
            missing = [name for name in registry.names() if name not in self._handlers]
            if missing:
                logger.warning("Registered commands without a handler: %s", ", ".join(missing))

    @property
    def commands(self) -> list[str]:
        return sorted(self._handlers)

    def _lookup(self, name: str) -> Optional[CommandHandler]:
        if self._registry is not None and name not in self._registry:
            return None
        return self._handlers.get(name)

    async def dispatch(self, interaction: Any) -> DispatchOutcome:
        if interaction.type != discord.InteractionType.application_command:
            return DispatchOutcome.IGNORED

        try:
            invocation = invocation_from_interaction(interaction)
        except Exception:
            logger.exception("Could not decode interaction %s", getattr(interaction, "id", None))
            return DispatchOutcome.FAILED

        handler = self._lookup(invocation.command)
        if handler is None:
            logger.warning("Unknown command %r [%s]", invocation.command, _describe(invocation))
            self._track_error("UnknownCommand", invocation, f"no handler for {invocation.command!r}")
            return DispatchOutcome.UNKNOWN_COMMAND

        responder = InteractionResponder(interaction)
        start_time = time.perf_counter()
        success = False
        try:
            outcome = await handler.handle(invocation, responder)
            success = True
            self._track_persistence(outcome)
            return DispatchOutcome.HANDLED
        except CommandError as exc:
            logger.warning("Command failed: %s [%s]", exc, _describe(invocation))
            self._track_error(type(exc).__name__, invocation, str(exc))
            await self._report(responder, invocation, exc)
            return DispatchOutcome.FAILED
        except ResponseDeliveryError as exc:
            logger.error(
                "Could not respond to interaction (%s): %s [%s]",
                exc.reason,
                exc,
                _describe(invocation),
            )
            self._track_error(type(exc).__name__, invocation, str(exc))
            if isinstance(exc.outcome, HandlerOutcome):
                self._track_persistence(exc.outcome)
            return DispatchOutcome.FAILED
        except Exception as exc:
            logger.exception("Unhandled error in %s handler [%s]", invocation.command, _describe(invocation))
            self._track_error(type(exc).__name__, invocation, str(exc))
            return DispatchOutcome.FAILED
        finally:
            if self._telemetry is not None:
                self._telemetry.track_command(
                    invocation.command,
                    str(invocation.user_id),
                    str(invocation.guild_id) if invocation.guild_id else "dm",
                    success=success,
                    duration_ms=(time.perf_counter() - start_time) * 1000,
                    channel_id=str(invocation.channel_id) if invocation.channel_id else None,
                )

    async def _report(
        self, responder: InteractionResponder, invocation: Invocation, exc: CommandError
    ) -> None:
        if responder.responded or not exc.user_message:
            return
        try:
            await responder.send_text(exc.user_message)
        except ResponseDeliveryError as delivery_exc:
            logger.error(
                "Could not report failure to user (%s): %s [%s]",
                delivery_exc.reason,
                delivery_exc,
                _describe(invocation),
            )

    def _track_error(self, error_type: str, invocation: Invocation, details: str) -> None:
        if self._telemetry is None:
            return
        self._telemetry.track_error(
            error_type,
            command=invocation.command,
            user_id=str(invocation.user_id) if invocation.user_id else None,
            error_details=details,
        )

    def _track_persistence(self, outcome: HandlerOutcome) -> None:
        if self._telemetry is None:
            return
        if outcome.stored is not None:
            self._telemetry.track_persistence(outcome.command, True)
        elif outcome.persistence_error is not None:
            self._telemetry.track_persistence(outcome.command, False)


__all__ = ["Dispatcher", "DispatchOutcome"]
