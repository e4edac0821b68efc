"""Quota administration commands."""

from __future__ import annotations

import asyncio

import typer

from qfix.cli import console, open_store, require_settings
from qfix.quota.ledger import QuotaLedger

quota_app = typer.Typer(
    name="quota",
    help="Administer per-user daily quotas.",
    no_args_is_help=True,
)


@quota_app.command("special")
def special_command(
    user: str = typer.Argument(..., help="User to exempt from the daily limit."),
    revoke: bool = typer.Option(False, "--revoke", help="Remove the exemption instead."),
) -> None:
    """Mark USER as special (unlimited), or revoke it with --revoke."""
    settings = require_settings()
    ledger = QuotaLedger(open_store(settings), daily_limit=settings.daily_limit)
    record = asyncio.run(ledger.set_special(user, not revoke))

    if record.is_special:
        console.print(f"[green]{user} is now a special user (no daily limit).[/green]")
    else:
        console.print(f"[green]{user} is back on the daily limit.[/green]")
