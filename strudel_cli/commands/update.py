"""strudel update — find & replace in a song's latest code, then hot-swap it.

Storage and playback are separate steps.  The new version is always saved
first; if the daemon then rejects the code (validation or evaluation), the
command reports "saved but not played" and exits 1 — the version stays in
history and can be fixed with another update or rolled back with
``strudel version-change``.
"""
from __future__ import annotations

import logging
from typing import Optional

import typer

from strudel_cli import client, storage
from strudel_cli.commands._output import (
    echo_code_with_error,
    error_message,
    exit_with,
    format_location,
)
from strudel_cli.config import settings
from strudel_cli.errors import ExitCode, StrudelError

logger = logging.getLogger(__name__)


def update(
    name: str = typer.Argument(..., help="Song name."),
    from_: str = typer.Option(..., "--from", "-f", help="Text to find."),
    to: str = typer.Option(..., "--to", "-t", help="Replacement text."),
    index: Optional[int] = typer.Option(
        None, "--index", "-i", help="Occurrence index (0-based) if multiple matches."
    ),
) -> None:
    """Find & replace in a song's code and auto-play."""
    try:
        result = storage.update_song(settings.home, name, from_, to, index)
    except typer.Exit:
        raise
    except Exception as exc:
        exit_with(exc)

    typer.echo(f"✅ Updated {name} → v{result.version}")
    typer.echo(f"   {from_} → {to}")

    typer.echo("Sending updated code to daemon...")
    try:
        check = client.validate(result.code)
        if not check.valid:
            typer.echo(
                f"⚠️  Saved {name} v{result.version} but did not play it: "
                f"validation failed{format_location(check.line, check.column)}"
            )
            typer.echo(f"   {check.error}")
            echo_code_with_error(result.code, check.line, check.column)
            raise typer.Exit(code=ExitCode.FAILURE)
        client.evaluate(result.code, name, result.version)
    except typer.Exit:
        raise
    except Exception as exc:
        logger.warning(
            "⚠️ %s v%d saved but not played: %s",
            name,
            result.version,
            exc,
            exc_info=not isinstance(exc, StrudelError),
        )
        typer.echo(
            f"⚠️  Saved {name} v{result.version} but did not play it: {error_message(exc)}"
        )
        raise typer.Exit(code=ExitCode.FAILURE)

    typer.echo(f"▶  Now playing: {name} (v{result.version})")
