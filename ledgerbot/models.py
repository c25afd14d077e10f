"""Core data models for LedgerBot."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Tuple, Union
from uuid import UUID


class OptionKind(str, Enum):
    """Value kinds a command option can carry."""

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"


class ResponseType(IntEnum):
    """Interaction callback types used by the bot."""

    CHANNEL_MESSAGE = 4


OptionValue = Union[str, int, float, bool]


@dataclass(frozen=True)
class CommandOption:
    name: str
    kind: OptionKind
    value: OptionValue


@dataclass(frozen=True)
class Invocation:
    """A single slash-command event, decoded from the transport."""

    command: str
    author: str
    options: Tuple[CommandOption, ...] = ()
    interaction_id: Optional[int] = None
    user_id: Optional[int] = None
    guild_id: Optional[int] = None
    channel_id: Optional[int] = None

    def context(self) -> Dict[str, Any]:
        """Fields worth attaching to log lines about this invocation."""

        return {
            "command": self.command,
            "interaction_id": self.interaction_id,
            "user_id": self.user_id,
            "guild_id": self.guild_id,
            "channel_id": self.channel_id,
        }


@dataclass(frozen=True)
class Response:
    content: str
    type: ResponseType = ResponseType.CHANNEL_MESSAGE


@dataclass
class MessageRecord:
    """Row in the ``messages`` table; id and timestamp come from the store."""

    author: str
    input: str
    id: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass
class LogRecord:
    """Row in the ``logs`` table.

    ``ended`` is part of the schema but nothing in the bot ever sets it, so
    every record stays an open interval.
    """

    author: str
    id: Optional[UUID] = None
    started: Optional[datetime] = None
    ended: Optional[datetime] = None


Record = Union[MessageRecord, LogRecord]


@dataclass(frozen=True)
class InsertResult:
    """Identifiers and defaults the store assigned to a new row."""

    table: str
    id: Union[int, UUID, str]
    created_at: Optional[Union[datetime, str]] = None


@dataclass(frozen=True)
class OptionSpec:
    name: str
    description: str
    kind: OptionKind
    required: bool = False
    max_length: Optional[int] = None


@dataclass(frozen=True)
class CommandSpec:
    name: str
    description: str
    options: List[OptionSpec] = field(default_factory=list)


__all__ = [
    "OptionKind",
    "ResponseType",
    "OptionValue",
    "CommandOption",
    "Invocation",
    "Response",
    "MessageRecord",
    "LogRecord",
    "Record",
    "InsertResult",
    "OptionSpec",
    "CommandSpec",
]
