"""Command option parsing and the Discord payload adapter."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

import discord

from .errors import MissingOptionError
from .models import CommandOption, Invocation, OptionKind, OptionValue

logger = logging.getLogger(__name__)

_KIND_BY_DISCORD_TYPE: Dict[int, OptionKind] = {
    discord.AppCommandOptionType.string.value: OptionKind.STRING,
    discord.AppCommandOptionType.integer.value: OptionKind.INTEGER,
    discord.AppCommandOptionType.number.value: OptionKind.NUMBER,
    discord.AppCommandOptionType.boolean.value: OptionKind.BOOLEAN,
}

DISCORD_TYPE_BY_KIND: Dict[OptionKind, int] = {
    kind: value for value, kind in _KIND_BY_DISCORD_TYPE.items()
}


class ParsedOptions(Mapping[str, OptionValue]):
    """Read-only lookup of option values by name."""

    def __init__(self, values: Optional[Dict[str, OptionValue]] = None) -> None:
        self._values: Dict[str, OptionValue] = dict(values or {})

    def __getitem__(self, key: str) -> OptionValue:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ParsedOptions({self._values!r})"

    def get_str(self, name: str, default: Optional[str] = None) -> Optional[str]:
        value = self._values.get(name)
        if value is None:
            return default
        return str(value)

    def get_bool(self, name: str, default: bool = False) -> bool:
        value = self._values.get(name)
        if value is None:
            return default
        return bool(value)

    def require_str(self, name: str) -> str:
        if name not in self._values:
            raise MissingOptionError(name)
        return str(self._values[name])


def parse_options(
    options: Iterable[Union[CommandOption, Tuple[str, OptionValue]]],
) -> ParsedOptions:
    """Build a name -> value lookup from an ordered option list.

    No validation happens here; a repeated name keeps the last value.
    """

    values: Dict[str, OptionValue] = {}
    for option in options:
        if isinstance(option, CommandOption):
            values[option.name] = option.value
        else:
            name, value = option
            values[name] = value
    return ParsedOptions(values)


def options_from_payload(raw_options: Optional[Iterable[Mapping[str, Any]]]) -> List[CommandOption]:
    """Translate ``interaction.data["options"]`` into :class:`CommandOption`."""

    converted: List[CommandOption] = []
    for raw in raw_options or []:
        name = raw.get("name")
        if not name or "value" not in raw:
            logger.debug("Skipping option without a value: %s", raw)
            continue
        kind = _KIND_BY_DISCORD_TYPE.get(raw.get("type"))
        if kind is None:
            # users, channels, roles and the like arrive as snowflake strings
            kind = OptionKind.STRING
        converted.append(CommandOption(name=name, kind=kind, value=raw["value"]))
    return converted


def invocation_from_interaction(interaction: discord.Interaction) -> Invocation:
    """Decode an application-command interaction into an :class:`Invocation`.

    In a guild discord.py resolves ``interaction.user`` to the invoking
    ``Member``, so the member identity wins over the plain user.
    """

    data = interaction.data or {}
    return Invocation(
        command=str(data.get("name", "")),
        author=str(interaction.user),
        options=tuple(options_from_payload(data.get("options"))),
        interaction_id=interaction.id,
        user_id=getattr(interaction.user, "id", None),
        guild_id=interaction.guild_id,
        channel_id=interaction.channel_id,
    )


__all__ = [
    "ParsedOptions",
    "parse_options",
    "options_from_payload",
    "invocation_from_interaction",
    "DISCORD_TYPE_BY_KIND",
]
