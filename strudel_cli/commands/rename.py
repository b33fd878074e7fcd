"""strudel rename — move a song to a new name, keeping every version."""
from __future__ import annotations

import typer

from strudel_cli import storage
from strudel_cli.commands._output import exit_with
from strudel_cli.config import settings


def rename(
    old: str = typer.Argument(..., help="Current song name."),
    new: str = typer.Argument(..., help="New song name."),
) -> None:
    """Rename a song."""
    try:
        storage.rename_song(settings.home, old, new)
    except typer.Exit:
        raise
    except Exception as exc:
        exit_with(exc)
    typer.echo(f"✅ Renamed {old} → {new}")
