"""CLI shared utilities used across all commands."""

from __future__ import annotations

from typing import NoReturn

import typer
from rich.console import Console

from qfix.config import Settings, load_settings
from qfix.core.database import SqliteQuotaStore
from qfix.core.errors import ConfigError, QuotaInfrastructureFault
from qfix.service import build_store

console = Console()


def cli_error(message: str) -> NoReturn:
    """Print a red error message and exit with code 1."""
    console.print(f"[red]{message}[/red]")
    raise typer.Exit(code=1)


def require_settings() -> Settings:
    """Load settings or exit with the configuration problem."""
    try:
        return load_settings()
    except ConfigError as exc:
        cli_error(str(exc))


def open_store(settings: Settings) -> SqliteQuotaStore:
    """Open the quota database or exit with an error message."""
    try:
        return build_store(settings)
    except QuotaInfrastructureFault as exc:
        cli_error(str(exc))
