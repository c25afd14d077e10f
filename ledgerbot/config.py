"""Configuration loading utilities for LedgerBot.

The process configuration is built once at startup and handed to the objects
that need it. Nothing reads the environment after that.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping, Optional
from urllib.parse import quote

logger = logging.getLogger(__name__)

DEFAULT_COMMANDS_PATH = Path(__file__).parent / "data" / "commands.yaml"
DATABASE_BACKENDS = ("postgres", "sqlite")


def _parse_id(env: Mapping[str, str], env_key: str) -> Optional[int]:
    value = env.get(env_key)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning("Invalid snowflake %s for %s", value, env_key)
        return None


@dataclass(frozen=True)
class PostgresConfig:
    host: str = "localhost"
    port: int = 5432
    database: str = "postgres"
    user: str = "postgres"
    # TODO: refuse an empty password once deployments set POSTGRES_PASSWORD
    password: str = ""

    @property
    def dsn(self) -> str:
        credentials = quote(self.user, safe="")
        if self.password:
            credentials += ":" + quote(self.password, safe="")
        return (
            f"postgresql://{credentials}@{self.host}:{self.port}/"
            f"{quote(self.database, safe='')}"
        )

    @staticmethod
    def from_env(env: Optional[Mapping[str, str]] = None) -> "PostgresConfig":
        env = os.environ if env is None else env
        port_raw = env.get("POSTGRES_PORT", "5432")
        try:
            port = int(port_raw)
        except ValueError:
            logger.warning("Invalid POSTGRES_PORT %s; using 5432", port_raw)
            port = 5432
        return PostgresConfig(
            host=env.get("POSTGRES_HOST", "localhost"),
            port=port,
            database=env.get("POSTGRES_DB", "postgres"),
            user=env.get("POSTGRES_USER", "postgres"),
            password=env.get("POSTGRES_PASSWORD", ""),
        )


@dataclass(frozen=True)
class BotConfig:
    """Everything the bot needs to start."""

    token: str = ""
    application_id: Optional[int] = None
    guild_id: Optional[int] = None
    database_backend: str = "postgres"
    sqlite_path: Path = Path("ledgerbot.db")
    telemetry_path: Path = Path("telemetry.db")
    commands_path: Path = DEFAULT_COMMANDS_PATH
    postgres: PostgresConfig = field(default_factory=PostgresConfig)

    @staticmethod
    def from_env(env: Optional[Mapping[str, str]] = None) -> "BotConfig":
        env = os.environ if env is None else env
        backend = env.get("LEDGERBOT_DB_BACKEND", "postgres").strip().lower()
        if backend not in DATABASE_BACKENDS:
            logger.warning("Unknown LEDGERBOT_DB_BACKEND %s; using postgres", backend)
            backend = "postgres"
        commands_path = env.get("LEDGERBOT_COMMANDS_FILE")
        return BotConfig(
            token=env.get("AUTH_TOKEN", ""),
            application_id=_parse_id(env, "APP_ID"),
            guild_id=_parse_id(env, "GUILD_ID"),
            database_backend=backend,
            sqlite_path=Path(env.get("LEDGERBOT_SQLITE_PATH", "ledgerbot.db")),
            telemetry_path=Path(env.get("LEDGERBOT_TELEMETRY_DB", "telemetry.db")),
            commands_path=Path(commands_path) if commands_path else DEFAULT_COMMANDS_PATH,
            postgres=PostgresConfig.from_env(env),
        )

    def with_overrides(
        self,
        *,
        token: Optional[str] = None,
        application_id: Optional[int] = None,
        guild_id: Optional[int] = None,
    ) -> "BotConfig":
        """Return a copy with command-line values taking precedence."""

        changes = {}
        if token:
            changes["token"] = token
        if application_id is not None:
            changes["application_id"] = application_id
        if guild_id is not None:
            changes["guild_id"] = guild_id
        return replace(self, **changes) if changes else self


__all__ = ["BotConfig", "PostgresConfig", "DEFAULT_COMMANDS_PATH", "DATABASE_BACKENDS"]
