"""Strudel CLI — Typer application root.

Entry point for the ``strudel`` console script.  Song management commands
(make, update, detail, version-change, sequence, delete, rename, list) go
through the version store; playback commands (play, stop, pause, current)
talk to the background daemon, starting it on demand where that makes sense.

Commands are registered as plain ``@cli.command()`` functions rather than
``add_typer`` sub-apps: Click groups disable interspersed args, which would
stop ``--from``/``--ver`` from being parsed after the positional name.
"""
from __future__ import annotations

import logging

import typer

from strudel_cli.commands import (
    current,
    delete,
    detail,
    list_cmd,
    make,
    pause,
    play,
    rename,
    sequence,
    stop,
    update,
    version_change,
)
from strudel_cli.config import settings

cli = typer.Typer(
    name="strudel",
    help="Strudel — play and version live-coding music from the terminal.",
    no_args_is_help=True,
)


@cli.callback()
def _main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to stderr."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


cli.command("make", help="Create a new song.")(make.make)
cli.command("play", help="Start playing a saved song.")(play.play)
cli.command("stop", help="Stop playback.")(stop.stop)
cli.command("pause", help="Pause playback.")(pause.pause)
cli.command("current", help="Show current playback state.")(current.current)
cli.command("update", help="Find & replace in a song's code and auto-play.")(update.update)
cli.command("detail", help="Show song code and version info.")(detail.detail)
cli.command("version-change", help="Promote an earlier version and play it.")(
    version_change.version_change
)
cli.command("sequence", help="Play versions of a song one after another.")(sequence.sequence)
cli.command("delete", help="Delete a song.")(delete.delete)
cli.command("rename", help="Rename a song.")(rename.rename)
cli.command("list", help="List all saved songs.")(list_cmd.list_songs)


if __name__ == "__main__":
    cli()
