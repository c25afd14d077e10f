"""Shared fixtures and stand-ins for Discord objects."""
from __future__ import annotations

import uuid
from types import SimpleNamespace
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import discord
import pytest

from ledgerbot.errors import PersistenceError
from ledgerbot.models import InsertResult, MessageRecord, Record
from ledgerbot.persistence import PersistenceGateway, SqliteGateway
from ledgerbot.registry import load_registry
from ledgerbot.telemetry import TelemetryCollector


class FakeUser:
    def __init__(self, name: str = "Alice#0001", user_id: int = 1001) -> None:
        self.name = name
        self.id = user_id

    def __str__(self) -> str:
        return self.name


class FakeMember(FakeUser):
    """Guild member as discord.py hands it over in guild interactions."""

    def __init__(self, name: str, user_id: int, *, nick: Optional[str] = None, guild_id: int = 42) -> None:
        super().__init__(name, user_id)
        self.nick = nick
        self.guild = SimpleNamespace(id=guild_id)

    @property
    def display_name(self) -> str:
        return self.nick or self.name


def make_interaction(
    command: Optional[str] = "echo",
    options: Optional[List[Dict[str, Any]]] = None,
    *,
    user: Optional[FakeUser] = None,
    interaction_type: discord.InteractionType = discord.InteractionType.application_command,
    send_message: Optional[AsyncMock] = None,
    guild_id: Optional[int] = 42,
) -> SimpleNamespace:
    data: Dict[str, Any] = {}
    if command is not None:
        data["name"] = command
        data["type"] = 1
    if options is not None:
        data["options"] = options
    return SimpleNamespace(
        id=555,
        type=interaction_type,
        data=data,
        user=user or FakeUser(),
        guild_id=guild_id,
        channel_id=77,
        response=SimpleNamespace(send_message=send_message or AsyncMock()),
    )


class MemoryGateway(PersistenceGateway):
    """In-memory store that can be told to fail."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.records: List[Record] = []
        self.schema_calls = 0
        self.connected = False
        self.closed = False

    async def connect(self) -> None:
        self.connected = True

    async def ensure_schema(self) -> None:
        self.schema_calls += 1

    async def insert(self, record: Record) -> InsertResult:
        if self.fail:
            raise PersistenceError("database is down")
        self.records.append(record)
        if isinstance(record, MessageRecord):
            return InsertResult("messages", len(self.records))
        return InsertResult("logs", uuid.uuid4())

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def gateway() -> MemoryGateway:
    return MemoryGateway()


@pytest.fixture
def failing_gateway() -> MemoryGateway:
    return MemoryGateway(fail=True)


@pytest.fixture
def sqlite_gateway(tmp_path) -> SqliteGateway:
    store = SqliteGateway(tmp_path / "ledger.db")
    store._ensure_schema()  # pylint: disable=protected-access
    return store


@pytest.fixture
def telemetry(tmp_path) -> TelemetryCollector:
    return TelemetryCollector(tmp_path / "telemetry.db")


@pytest.fixture
def registry():
    return load_registry()


