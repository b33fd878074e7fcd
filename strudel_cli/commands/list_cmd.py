"""strudel list — list stored songs with their version counts."""
from __future__ import annotations

import typer

from strudel_cli import storage
from strudel_cli.commands._output import exit_with
from strudel_cli.config import settings


def list_songs() -> None:
    """List all saved songs."""
    try:
        names = storage.list_songs(settings.home)
        if not names:
            typer.echo("No songs yet. Use 'strudel make <name> --code <code>' to create one.")
            return
        typer.echo("Songs:")
        for name in names:
            total = storage.detail_song(settings.home, name).total_versions
            typer.echo(f"  {name} ({total} version{'s' if total != 1 else ''})")
    except typer.Exit:
        raise
    except Exception as exc:
        exit_with(exc)
