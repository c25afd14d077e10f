"""Discord bot entry point for LedgerBot."""
from __future__ import annotations

import argparse
import logging
import sqlite3
from typing import Iterable, Optional

import discord

from .config import BotConfig
from .dispatcher import Dispatcher
from .errors import StartupError
from .handlers import build_handlers
from .persistence import PersistenceGateway, create_gateway
from .registry import CommandRegistry, load_registry
from .telemetry import TelemetryCollector

logger = logging.getLogger(__name__)


class LedgerBot(discord.Client):
    """Discord client wiring the dispatcher to the gateway connection.

    Startup order: connect to the database, create the schema, push the
    command table, then open the gateway session. A failure in any of these
    steps propagates out of :meth:`discord.Client.run`.
    """

    def __init__(
        self,
        config: BotConfig,
        *,
        gateway: Optional[PersistenceGateway] = None,
        registry: Optional[CommandRegistry] = None,
        telemetry: Optional[TelemetryCollector] = None,
        intents: Optional[discord.Intents] = None,
    ) -> None:
        super().__init__(
            intents=intents or discord.Intents.default(),
            application_id=config.application_id,
        )
        self.config = config
        self.gateway = gateway or create_gateway(config)
        self.registry = registry or load_registry(config.commands_path)
        self.telemetry = telemetry or TelemetryCollector(config.telemetry_path)
        self.dispatcher = Dispatcher(
            build_handlers(self.gateway),
            registry=self.registry,
            telemetry=self.telemetry,
        )

    async def setup_hook(self) -> None:
        await self.gateway.connect()
        await self.gateway.ensure_schema()
        # discord.py fills this in from the application info fetched at login
        if self.application_id is None:
            raise StartupError("application id is not set")
        await self.registry.push(self.http, self.application_id, self.config.guild_id)
        try:
            self.telemetry.track_system_event("startup", source="setup_hook")
            self.telemetry.cleanup_old_data()
        except sqlite3.Error as exc:
            raise StartupError(
                f"telemetry store {self.config.telemetry_path} is unusable: {exc}"
            ) from exc

    async def on_ready(self) -> None:
        logger.info("Logged in as %s", self.user)

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        await self.dispatcher.dispatch(interaction)

    async def close(self) -> None:
        # in-flight handlers are not awaited here
        try:
            await super().close()
        finally:
            await self.gateway.close()
            self.telemetry.flush()


def build_bot(config: BotConfig, intents: Optional[discord.Intents] = None) -> LedgerBot:
    return LedgerBot(config, intents=intents)


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run the LedgerBot Discord bot.")
    parser.add_argument("--token", help="Bot authentication token (overrides AUTH_TOKEN)")
    parser.add_argument("--app", type=int, help="Application ID (overrides APP_ID)")
    parser.add_argument("--guild", type=int, help="Guild ID to register commands in (overrides GUILD_ID)")
    args = parser.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(level=logging.INFO)
    config = BotConfig.from_env().with_overrides(
        token=args.token,
        application_id=args.app,
        guild_id=args.guild,
    )
    if not config.token:
        logger.critical("AUTH_TOKEN environment variable must be set")
        return 1

    try:
        bot = build_bot(config)
        bot.run(config.token, log_handler=None)
    except (StartupError, discord.LoginFailure) as exc:
        logger.critical("Startup failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())


__all__ = ["LedgerBot", "build_bot", "main"]
