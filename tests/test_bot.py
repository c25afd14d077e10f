"""Tests for bot startup wiring."""
from __future__ import annotations

import sqlite3

import pytest

from ledgerbot import bot as bot_module
from ledgerbot.bot import LedgerBot
from ledgerbot.config import BotConfig
from ledgerbot.dispatcher import DispatchOutcome
from ledgerbot.errors import RegistryPushError, StartupError

from conftest import make_interaction


class RecordingHTTP:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple] = []

    async def bulk_upsert_guild_commands(self, application_id, guild_id, payload):
        if self.fail:
            raise RuntimeError("gateway unavailable")
        self.calls.append((application_id, guild_id, [entry["name"] for entry in payload]))
        return payload


def _make_bot(tmp_path, gateway, registry, telemetry, **config_kwargs) -> LedgerBot:
    config = BotConfig(token="abc", telemetry_path=tmp_path / "t.db", **config_kwargs)
    return LedgerBot(config, gateway=gateway, registry=registry, telemetry=telemetry)


@pytest.mark.asyncio
async def test_setup_hook_prepares_store_and_pushes_commands(tmp_path, gateway, registry, telemetry):
    client = _make_bot(tmp_path, gateway, registry, telemetry, application_id=123, guild_id=456)
    client.http = RecordingHTTP()

    await client.setup_hook()

    assert gateway.connected
    assert gateway.schema_calls == 1
    assert client.http.calls == [(123, 456, ["echo", "insert", "log"])]


@pytest.mark.asyncio
async def test_setup_hook_without_application_id(tmp_path, gateway, registry, telemetry):
    client = _make_bot(tmp_path, gateway, registry, telemetry, guild_id=456)
    client.http = RecordingHTTP()

    with pytest.raises(StartupError, match="application id"):
        await client.setup_hook()


@pytest.mark.asyncio
async def test_setup_hook_push_failure(tmp_path, gateway, registry, telemetry):
    client = _make_bot(tmp_path, gateway, registry, telemetry, application_id=123, guild_id=456)
    client.http = RecordingHTTP(fail=True)

    with pytest.raises(RegistryPushError):
        await client.setup_hook()


@pytest.mark.asyncio
async def test_setup_hook_telemetry_failure_is_startup_error(tmp_path, gateway, registry, telemetry, monkeypatch):
    client = _make_bot(tmp_path, gateway, registry, telemetry, application_id=123, guild_id=456)
    client.http = RecordingHTTP()

    def broken_cleanup(days_to_keep=30):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(telemetry, "cleanup_old_data", broken_cleanup)

    with pytest.raises(StartupError, match="database is locked"):
        await client.setup_hook()


@pytest.mark.asyncio
async def test_on_interaction_routes_to_dispatcher(tmp_path, gateway, registry, telemetry):
    client = _make_bot(tmp_path, gateway, registry, telemetry, application_id=123)
    interaction = make_interaction("insert", [{"name": "input", "type": 3, "value": "note"}])

    await client.on_interaction(interaction)

    interaction.response.send_message.assert_awaited_once_with("Added to the database!")
    assert len(gateway.records) == 1
    assert await client.dispatcher.dispatch(make_interaction("nope")) is DispatchOutcome.UNKNOWN_COMMAND


def test_main_requires_token(monkeypatch):
    monkeypatch.delenv("AUTH_TOKEN", raising=False)
    assert bot_module.main([]) == 1


def test_main_reports_startup_failure(monkeypatch):
    monkeypatch.setenv("AUTH_TOKEN", "abc")

    class FailingBot:
        def run(self, token, log_handler=None):
            raise StartupError("failed to connect to PostgreSQL")

    monkeypatch.setattr(bot_module, "build_bot", lambda config: FailingBot())
    assert bot_module.main(["--guild", "456"]) == 1
