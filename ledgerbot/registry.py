"""Static slash-command table and its bulk push to Discord."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

import discord
import yaml

from .config import DEFAULT_COMMANDS_PATH
from .errors import RegistryPushError, StartupError
from .models import CommandSpec, OptionKind, OptionSpec
from .options import DISCORD_TYPE_BY_KIND

logger = logging.getLogger(__name__)

_CHAT_INPUT = discord.AppCommandType.chat_input.value


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


def _option_payload(option: OptionSpec) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "name": option.name,
        "description": option.description,
        "type": DISCORD_TYPE_BY_KIND[option.kind],
        "required": option.required,
    }
    if option.max_length is not None:
        payload["max_length"] = option.max_length
    return payload


@dataclass(frozen=True)
class CommandRegistry:
    """Read-only view over the declared commands."""

    commands: Tuple[CommandSpec, ...]
    _by_name: Dict[str, CommandSpec] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_name", {spec.name: spec for spec in self.commands})

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "CommandRegistry":
        specs: List[CommandSpec] = []
        seen: set[str] = set()
        for entry in data.get("commands") or []:
            name = str(entry.get("name", "")).strip()
            if not name:
                raise ValueError("command entry without a name")
            if name in seen:
                raise ValueError(f"command {name} declared twice")
            seen.add(name)
            options = [
                OptionSpec(
                    name=str(option["name"]),
                    description=str(option.get("description", "")),
                    kind=OptionKind(option.get("type", "string")),
                    required=bool(option.get("required", False)),
                    max_length=_optional_int(option.get("max_length")),
                )
                for option in entry.get("options") or []
            ]
            specs.append(
                CommandSpec(
                    name=name,
                    description=str(entry.get("description", "")),
                    options=options,
                )
            )
        return CommandRegistry(commands=tuple(specs))

    @staticmethod
    def from_yaml(path: Path) -> "CommandRegistry":
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        return CommandRegistry.from_dict(data)

    def __iter__(self) -> Iterator[CommandSpec]:
        return iter(self.commands)

    def __len__(self) -> int:
        return len(self.commands)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name in self._by_name

    def names(self) -> List[str]:
        return [spec.name for spec in self.commands]

    def get(self, name: str) -> Optional[CommandSpec]:
        return self._by_name.get(name)

    def to_payload(self) -> List[Dict[str, Any]]:
        """Serialize the table into Discord's application command JSON."""

        payload: List[Dict[str, Any]] = []
        for spec in self.commands:
            entry: Dict[str, Any] = {
                "name": spec.name,
                "description": spec.description,
                "type": _CHAT_INPUT,
            }
            if spec.options:
                # Discord rejects optional options placed before required ones
                ordered = sorted(spec.options, key=lambda option: not option.required)
                entry["options"] = [_option_payload(option) for option in ordered]
            payload.append(entry)
        return payload

    async def push(
        self,
        http: Any,
        application_id: int,
        guild_id: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Replace the remote command set for the scope with this table.

        ``http`` is discord.py's ``HTTPClient``. Any failure is fatal to
        startup and raised as :class:`RegistryPushError`.
        """

        payload = self.to_payload()
        scope = f"guild {guild_id}" if guild_id is not None else "global"
        try:
            if guild_id is not None:
                registered = await http.bulk_upsert_guild_commands(
                    application_id, guild_id, payload
                )
            else:
                registered = await http.bulk_upsert_global_commands(application_id, payload)
        except discord.HTTPException as exc:
            raise RegistryPushError(
                f"could not register commands ({scope}): {exc.status} {exc.text}"
            ) from exc
        except Exception as exc:
            raise RegistryPushError(f"could not register commands ({scope}): {exc}") from exc
        logger.info("Registered %d commands (%s)", len(registered or []), scope)
        return list(registered or [])


class RegistryLoader:
    """Loads and caches the command table from YAML."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or DEFAULT_COMMANDS_PATH
        self._cache: CommandRegistry | None = None

    @property
    def path(self) -> Path:
        return self._path

    def load(self, force: bool = False) -> CommandRegistry:
        if self._cache is not None and not force:
            return self._cache
        try:
            self._cache = CommandRegistry.from_yaml(self._path)
        except (OSError, yaml.YAMLError, KeyError, ValueError) as exc:
            raise StartupError(f"invalid command table {self._path}: {exc}") from exc
        return self._cache


def load_registry(path: Path | None = None) -> CommandRegistry:
    """Convenience accessor for the packaged command table."""

    return RegistryLoader(path).load()


__all__ = ["CommandRegistry", "RegistryLoader", "load_registry"]
