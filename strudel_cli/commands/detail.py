"""strudel detail — print one version of a song."""
from __future__ import annotations

from typing import Optional

import typer

from strudel_cli import storage
from strudel_cli.commands._output import echo_code_block, exit_with
from strudel_cli.config import settings


def detail(
    name: str = typer.Argument(..., help="Song name."),
    ver: Optional[int] = typer.Option(None, "--ver", help="Version number (default: latest)."),
) -> None:
    """Show song code and version info."""
    try:
        info = storage.detail_song(settings.home, name, ver)
    except typer.Exit:
        raise
    except Exception as exc:
        exit_with(exc)

    typer.echo(f"{name} — v{info.version}/{info.total_versions} ({info.created_at})")
    typer.echo("")
    echo_code_block(info.code)
