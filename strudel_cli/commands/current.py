"""strudel current — show what the daemon is playing.

Does not start a daemon: with none running there is nothing to show.
"""
from __future__ import annotations

import typer

from strudel_cli import client
from strudel_cli.commands._output import echo_code_block, exit_with
from strudel_cli.models import PlaybackState

_ICONS = {
    PlaybackState.PLAYING: "▶ ",
    PlaybackState.PAUSED: "⏸ ",
    PlaybackState.STOPPED: "⏹ ",
}


def current() -> None:
    """Show current playback state."""
    try:
        if not client.is_daemon_running():
            typer.echo("No music is playing. Use 'strudel play <name>' to start.")
            return
        cur = client.get_current()
    except typer.Exit:
        raise
    except Exception as exc:
        exit_with(exc)

    typer.echo(f"{_ICONS[cur.state]} State: {cur.state.value}")
    if cur.name:
        suffix = f" (v{cur.version})" if cur.version else ""
        typer.echo(f"  Song:    {cur.name}{suffix}")
    if cur.code:
        typer.echo("  Code:")
        echo_code_block(cur.code, indent="  ")
