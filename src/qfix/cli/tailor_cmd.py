"""Tailor command: generate a one-page resume for a job description."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.panel import Panel

from qfix.cli import cli_error, console, open_store, require_settings
from qfix.core.errors import QfixError
from qfix.extraction import extract_text
from qfix.service import build_service


def _default_out(resume_file: Path) -> Path:
    return resume_file.with_name(f"{resume_file.stem}-tailored.pdf")


def tailor_command(
    resume_file: Path = typer.Argument(..., help="Resume file (PDF or plain text)."),
    job: Path = typer.Option(..., "--job", "-j", help="File containing the job description."),
    user: str = typer.Option(..., "--user", "-u", help="User the daily quota is charged to."),
    out: Optional[Path] = typer.Option(
        None, "--out", "-o", help="Output PDF path. Defaults to <resume>-tailored.pdf."
    ),
) -> None:
    """Tailor a resume to a job description and write a one-page PDF."""
    settings = require_settings()

    try:
        resume_text = extract_text(resume_file)
        job_description = extract_text(job)
    except QfixError as exc:
        cli_error(str(exc))

    store = open_store(settings)
    service = build_service(settings, store)

    console.print("[dim]Tailoring resume...[/dim]")
    try:
        result = asyncio.run(service.tailor(user, resume_text, job_description))
    except QfixError as exc:
        cli_error(str(exc))

    out_path = out or _default_out(resume_file)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(result.document)
    tex_path = out_path.with_suffix(".tex")
    tex_path.write_text(result.markup, encoding="utf-8")

    style = "green" if result.fit_ok else "yellow"
    fit = "fits on one page" if result.fit_ok else f"still {result.page_count} pages"
    console.print(
        Panel(
            f"PDF:    [bold]{out_path}[/bold]\n"
            f"Source: {tex_path}\n"
            f"Result: {fit} after {result.iterations} iteration(s)",
            title="Tailored Resume",
            border_style=style,
        )
    )
