"""Status command: show a user's remaining daily allowance."""

from __future__ import annotations

import asyncio

import typer

from qfix.cli import console, open_store, require_settings
from qfix.core.models import UNLIMITED
from qfix.service import build_service


def status_command(
    user: str = typer.Option(..., "--user", "-u", help="User to look up."),
) -> None:
    """Show how many tailoring requests USER has left today (UTC)."""
    settings = require_settings()
    service = build_service(settings, open_store(settings))
    status = asyncio.run(service.limit_status(user))

    if status.is_special or status.remaining == UNLIMITED:
        console.print(f"[green]{user}[/green]: unlimited (special user)")
    elif status.remaining > 0:
        console.print(f"[green]{user}[/green]: {status.remaining} remaining today")
    else:
        console.print(f"[yellow]{user}[/yellow]: daily limit reached, try again tomorrow")
