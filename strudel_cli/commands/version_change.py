"""strudel version-change — roll the playing song to another version.

The chosen version is copied to a new latest version (history is never
truncated) and hot-swapped into the daemon.  Without ``--name`` the song
currently loaded in the daemon is used.
"""
from __future__ import annotations

import logging
from typing import Optional

import typer

from strudel_cli import client, storage
from strudel_cli.commands._output import error_message, exit_with
from strudel_cli.config import settings
from strudel_cli.errors import ExitCode, NoActiveSession, StrudelError

logger = logging.getLogger(__name__)


def _playing_song_name() -> str:
    if not client.is_daemon_running():
        raise NoActiveSession()
    cur = client.get_current()
    if not cur.name:
        raise NoActiveSession("No song is loaded. Pass --name to pick one.")
    return cur.name


def version_change(
    version: int = typer.Argument(..., help="Version to switch to."),
    name: Optional[str] = typer.Option(
        None, "--name", "-n", help="Song name (default: the song currently playing)."
    ),
) -> None:
    """Promote an earlier version and play it."""
    try:
        song = name or _playing_song_name()
        promoted = storage.promote_version(settings.home, song, version)
    except typer.Exit:
        raise
    except Exception as exc:
        exit_with(exc)

    typer.echo(f"✅ {song}: v{promoted.from_version} saved as v{promoted.new_version}")

    try:
        client.evaluate(promoted.code, song, promoted.new_version)
    except Exception as exc:
        logger.warning(
            "⚠️ %s v%d saved but not played: %s",
            song,
            promoted.new_version,
            exc,
            exc_info=not isinstance(exc, StrudelError),
        )
        typer.echo(
            f"⚠️  Saved {song} v{promoted.new_version} but did not play it: {error_message(exc)}"
        )
        raise typer.Exit(code=ExitCode.FAILURE)

    typer.echo(f"▶  Now playing: {song} (v{promoted.new_version})")
