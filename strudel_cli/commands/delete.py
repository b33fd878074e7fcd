"""strudel delete — remove a song and its whole history."""
from __future__ import annotations

import typer

from strudel_cli import storage
from strudel_cli.commands._output import exit_with
from strudel_cli.config import settings


def delete(name: str = typer.Argument(..., help="Song name.")) -> None:
    """Delete a song."""
    try:
        storage.delete_song(settings.home, name)
    except typer.Exit:
        raise
    except Exception as exc:
        exit_with(exc)
    typer.echo(f"🗑  Deleted song {name}.")
