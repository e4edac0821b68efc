"""Serve command: run the HTTP API under uvicorn."""

from __future__ import annotations

import typer
import uvicorn

from qfix.api import create_app
from qfix.cli import console, open_store, require_settings
from qfix.core.logging_setup import configure_logging


def serve_command(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind."),
    port: int = typer.Option(8000, "--port", "-p", help="Port to listen on."),
) -> None:
    """Start the tailoring API."""
    settings = require_settings()
    store = open_store(settings)
    log_file = configure_logging()
    console.print(f"[dim]Logging to {log_file}[/dim]")
    uvicorn.run(create_app(settings, store=store), host=host, port=port)
