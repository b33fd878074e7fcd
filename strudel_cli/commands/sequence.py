"""strudel sequence — play a scripted walk through a song's versions.

``--versions '[[1,0],[3,8],[2,8]]'``: play v1 now, v3 eight seconds later,
then v2 eight seconds after that.  Each step is a promotion, so the song
gains one version per step.
"""
from __future__ import annotations

import typer

from strudel_cli import client
from strudel_cli.commands._output import exit_with
from strudel_cli.config import settings
from strudel_cli.sequence import SequenceStep, parse_steps, run_sequence
from strudel_cli.storage import PromoteResult


def _report(step: SequenceStep, promoted: PromoteResult) -> None:
    typer.echo(
        f"▶  v{promoted.from_version} (after {step.delay_seconds:g}s) → playing as v{promoted.new_version}"
    )


def sequence(
    name: str = typer.Argument(..., help="Song name."),
    versions: str = typer.Option(
        ..., "--versions", help="JSON list of [version, delaySeconds] steps."
    ),
) -> None:
    """Play versions of a song one after another."""
    try:
        steps = parse_steps(versions)
        results = run_sequence(
            settings.home, name, steps, evaluate=client.evaluate, on_step=_report
        )
    except typer.Exit:
        raise
    except Exception as exc:
        exit_with(exc)

    typer.echo(f"✅ Sequence finished: {name} (v{results[-1].new_version})")
