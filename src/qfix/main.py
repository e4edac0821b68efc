import logging
from importlib.metadata import version as pkg_version
from typing import Optional

import typer

from qfix.cli.quota_cmd import quota_app
from qfix.cli.serve_cmd import serve_command
from qfix.cli.status_cmd import status_command
from qfix.cli.tailor_cmd import tailor_command

app = typer.Typer(
    name="qfix",
    help="Tailor resumes to job descriptions, one page at a time.",
    no_args_is_help=True,
    invoke_without_command=True,
)

app.add_typer(quota_app, name="quota")

app.command("tailor")(tailor_command)
app.command("status")(status_command)
app.command("serve")(serve_command)


def version_callback(value: bool):
    if value:
        typer.echo(f"qfix {pkg_version('qfix')}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True,
        help="Show version and exit.",
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Enable debug logging.",
    ),
):
    """Tailor resumes to job descriptions, one page at a time."""
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(level=logging.WARNING, format="%(name)s %(levelname)s: %(message)s")
    logging.getLogger("qfix").setLevel(level)


if __name__ == "__main__":
    app()
