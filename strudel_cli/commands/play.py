"""strudel play — start playing a stored song (latest version by default)."""
from __future__ import annotations

from typing import Optional

import typer

from strudel_cli import client, storage
from strudel_cli.commands._output import exit_with
from strudel_cli.config import settings


def play(
    name: str = typer.Argument(..., help="Song name."),
    ver: Optional[int] = typer.Option(None, "--ver", help="Version number (default: latest)."),
) -> None:
    """Start playing a saved song."""
    try:
        code, version = storage.get_song_code(settings.home, name, ver)
        typer.echo("Starting daemon...")
        result = client.play(code, name, version)
    except typer.Exit:
        raise
    except Exception as exc:
        exit_with(exc)

    typer.echo(f"▶  Now playing: {result.name} (v{result.version})")
