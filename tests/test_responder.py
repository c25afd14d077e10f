"""Tests for the single-response guard."""
from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock

import aiohttp
import discord
import pytest

from ledgerbot.errors import (
    AlreadyRespondedError,
    ResponseDeliveryError,
    ResponseRejectedError,
    TransportUnavailableError,
)
from ledgerbot.models import Response
from ledgerbot.responder import InteractionResponder

from conftest import make_interaction


@pytest.mark.asyncio
async def test_send_once():
    interaction = make_interaction()
    responder = InteractionResponder(interaction)

    await responder.send(Response("hello"))

    interaction.response.send_message.assert_awaited_once_with("hello")
    assert responder.responded
    assert responder.sent == Response("hello")


@pytest.mark.asyncio
async def test_second_send_is_refused_locally():
    interaction = make_interaction()
    responder = InteractionResponder(interaction)
    await responder.send_text("first")

    with pytest.raises(AlreadyRespondedError):
        await responder.send_text("second")

    assert interaction.response.send_message.await_count == 1


@pytest.mark.asyncio
async def test_transport_already_responded():
    interaction = make_interaction()
    interaction.response.send_message = AsyncMock(side_effect=discord.InteractionResponded(interaction))
    responder = InteractionResponder(interaction)

    with pytest.raises(AlreadyRespondedError) as excinfo:
        await responder.send_text("hello")
    assert excinfo.value.reason == "already_responded"


@pytest.mark.asyncio
async def test_http_rejection():
    interaction = make_interaction()
    interaction.response.send_message = AsyncMock(
        side_effect=discord.HTTPException(SimpleNamespace(status=400, reason="Bad Request"), "Invalid Form Body")
    )
    responder = InteractionResponder(interaction)

    with pytest.raises(ResponseRejectedError) as excinfo:
        await responder.send_text("hello")
    assert "400" in str(excinfo.value)
    assert not responder.responded


@pytest.mark.asyncio
async def test_connection_lost():
    interaction = make_interaction()
    interaction.response.send_message = AsyncMock(side_effect=aiohttp.ClientConnectionError("reset"))
    responder = InteractionResponder(interaction)

    with pytest.raises(TransportUnavailableError) as excinfo:
        await responder.send_text("hello")
    assert isinstance(excinfo.value, ResponseDeliveryError)
    assert excinfo.value.reason == "connection_lost"


@pytest.mark.asyncio
async def test_long_content_is_clamped():
    interaction = make_interaction()
    responder = InteractionResponder(interaction)

    await responder.send_text("x" * 2500)

    sent = interaction.response.send_message.await_args.args[0]
    assert len(sent) == 2000
    assert sent.endswith("…")
