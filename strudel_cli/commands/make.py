"""strudel make — create a new song as version 1.

By default the code is validated on the daemon's engine first, so a typo is
reported with its line and column before anything is stored.  ``--no-validate``
skips the round trip (and does not start the daemon).
"""
from __future__ import annotations

import logging

import typer

from strudel_cli import client, storage
from strudel_cli.commands._output import echo_code_with_error, exit_with, format_location
from strudel_cli.config import settings
from strudel_cli.errors import ExitCode

logger = logging.getLogger(__name__)


def make(
    name: str = typer.Argument(..., help="Song name."),
    code: str = typer.Option(..., "--code", "-c", help="Pattern code for the song."),
    validate: bool = typer.Option(
        True, "--validate/--no-validate", help="Check the code on the daemon before saving."
    ),
) -> None:
    """Create a new song."""
    try:
        if validate:
            typer.echo("Validating code...")
            result = client.validate(code)
            if not result.valid:
                logger.info("❌ Validation rejected new song %s: %s", name, result.error)
                typer.echo(
                    f"❌ Code validation failed{format_location(result.line, result.column)}"
                )
                typer.echo(f"   {result.error}")
                echo_code_with_error(code, result.line, result.column)
                typer.echo(
                    "Tip: Fix the code and try again, or use --no-validate to skip validation."
                )
                raise typer.Exit(code=ExitCode.FAILURE)

        version = storage.create_song(settings.home, name, code)
    except typer.Exit:
        raise
    except Exception as exc:
        exit_with(exc)

    typer.echo(f"✅ Created song {name} (v1, {version.created_at})")
    typer.echo(f"   Code: {code}")
