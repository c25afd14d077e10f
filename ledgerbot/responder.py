"""Delivery of the single acknowledgment allowed per interaction."""
from __future__ import annotations

import logging
from typing import Any, Optional

import aiohttp
import discord

from .errors import (
    AlreadyRespondedError,
    ResponseRejectedError,
    TransportUnavailableError,
)
from .models import Response, ResponseType

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000


def _clamp_text(text: str) -> str:
    """Ensure Discord-compatible message length for bot-authored text."""

    if len(text) <= MAX_MESSAGE_LENGTH:
        return text
    return text[: MAX_MESSAGE_LENGTH - 1].rstrip() + "…"


class InteractionResponder:
    """Sends at most one response for one interaction.

    Every failure is raised as a ``ResponseDeliveryError`` subclass; deciding
    whether that is fatal for the invocation is up to the caller.
    """

    def __init__(self, interaction: Any) -> None:
        self._interaction = interaction
        self._sent: Optional[Response] = None

    @property
    def responded(self) -> bool:
        return self._sent is not None

    @property
    def sent(self) -> Optional[Response]:
        return self._sent

    async def send(self, response: Response) -> None:
        if self._sent is not None:
            raise AlreadyRespondedError(
                f"interaction {getattr(self._interaction, 'id', None)} already has a response"
            )
        if response.type is not ResponseType.CHANNEL_MESSAGE:
            raise ResponseRejectedError(f"unsupported response type {response.type!r}")

        try:
            await self._interaction.response.send_message(_clamp_text(response.content))
        except discord.InteractionResponded as exc:
            self._sent = response
            raise AlreadyRespondedError(str(exc)) from exc
        except discord.ConnectionClosed as exc:
            raise TransportUnavailableError(str(exc)) from exc
        except discord.HTTPException as exc:
            raise ResponseRejectedError(
                f"Discord rejected the response ({exc.status}): {exc.text}"
            ) from exc
        except (aiohttp.ClientError, OSError) as exc:
            raise TransportUnavailableError(str(exc)) from exc

        self._sent = response
        logger.debug(
            "Responded to interaction %s", getattr(self._interaction, "id", None)
        )

    async def send_text(self, content: str) -> None:
        await self.send(Response(content=content))


__all__ = ["InteractionResponder", "MAX_MESSAGE_LENGTH"]
