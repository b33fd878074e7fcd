"""strudel stop — stop playback on the running daemon."""
from __future__ import annotations

import typer

from strudel_cli import client
from strudel_cli.commands._output import exit_with


def stop() -> None:
    """Stop playback."""
    try:
        client.stop()
    except typer.Exit:
        raise
    except Exception as exc:
        exit_with(exc)
    typer.echo("⏹  Playback stopped.")
