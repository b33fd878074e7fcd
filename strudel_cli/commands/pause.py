"""strudel pause — pause playback on the running daemon."""
from __future__ import annotations

import typer

from strudel_cli import client
from strudel_cli.commands._output import exit_with


def pause() -> None:
    """Pause playback."""
    try:
        client.pause()
    except typer.Exit:
        raise
    except Exception as exc:
        exit_with(exc)
    typer.echo("⏸  Playback paused.")
