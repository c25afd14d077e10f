"""Deployment smoke checks for LedgerBot."""
from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Mapping

from ledgerbot.config import DATABASE_BACKENDS
from ledgerbot.errors import StartupError
from ledgerbot.registry import RegistryLoader


@dataclass(frozen=True)
class CheckResult:
    name: str
    status: str
    detail: str


REQUIRED_ENV = ["AUTH_TOKEN"]


def _status(level: str, name: str, detail: str) -> CheckResult:
    return CheckResult(name=name, status=level, detail=detail)


def run_checks(env: Mapping[str, str]) -> List[CheckResult]:
    results: List[CheckResult] = []

    for key in REQUIRED_ENV:
        if env.get(key):
            results.append(_status("ok", key, "present"))
        else:
            results.append(_status("error", key, "missing"))

    app_id = env.get("APP_ID", "")
    if not app_id:
        results.append(_status("warning", "APP_ID", "not set; the id reported at login will be used"))
    elif app_id.isdigit():
        results.append(_status("ok", "APP_ID", "present"))
    else:
        results.append(_status("error", "APP_ID", f"not a numeric id: {app_id}"))

    guild_id = env.get("GUILD_ID", "")
    if not guild_id:
        results.append(_status("ok", "command_scope", "global; every registered command is replaced"))
    elif guild_id.isdigit():
        results.append(_status("ok", "command_scope", f"guild {guild_id}"))
    else:
        results.append(_status("error", "command_scope", f"GUILD_ID is not a numeric id: {guild_id}"))

    backend = env.get("LEDGERBOT_DB_BACKEND", "postgres").strip().lower()
    if backend not in DATABASE_BACKENDS:
        results.append(_status("error", "database_backend", f"unknown backend {backend}"))
    elif backend == "sqlite":
        path = env.get("LEDGERBOT_SQLITE_PATH", "ledgerbot.db")
        results.append(_status("ok", "database_backend", f"sqlite at {path}"))
    else:
        port = env.get("POSTGRES_PORT", "5432")
        if port.isdigit():
            results.append(_status("ok", "database_backend", f"postgres at {env.get('POSTGRES_HOST', 'localhost')}:{port}"))
        else:
            results.append(_status("error", "database_backend", f"POSTGRES_PORT is not a number: {port}"))
        if env.get("POSTGRES_PASSWORD"):
            results.append(_status("ok", "postgres_password", "set"))
        else:
            results.append(_status("warning", "postgres_password", "empty; connecting without a password"))

    commands_file = env.get("LEDGERBOT_COMMANDS_FILE")
    try:
        registry = RegistryLoader(Path(commands_file) if commands_file else None).load()
    except StartupError as exc:
        results.append(_status("error", "command_table", str(exc)))
    else:
        results.append(_status("ok", "command_table", ", ".join(registry.names()) or "empty"))

    return results


def _print_table(results: Iterable[CheckResult]) -> None:
    header = f"{'Check':<32} {'Status':<8} Detail"
    print(header)
    print("-" * len(header))
    for result in results:
        print(f"{result.name:<32} {result.status:<8} {result.detail}")


def main(argv: Iterable[str] | None = None) -> int:  # pragma: no cover - CLI entry point
    parser = argparse.ArgumentParser(description="Run deployment smoke checks for LedgerBot.")
    parser.parse_args(argv)
    results = run_checks(os.environ)
    _print_table(results)
    if any(result.status == "error" for result in results):
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
