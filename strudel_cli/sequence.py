"""Scripted multi-version playback.

``strudel sequence groove --versions '[[1, 0], [3, 8], [2, 8]]'`` walks the
steps in order.  Each step waits ``delay`` seconds, promotes ``version`` to
a new latest version (history is only extended, see
:func:`strudel_cli.storage.promote_version`) and hot-swaps the promoted code
into the daemon.  The playback version after the run is therefore the one
created by the *last* promotion.
"""
from __future__ import annotations

import json
import logging
import pathlib
import time
from dataclasses import dataclass
from typing import Callable, Optional

from strudel_cli.errors import InvalidArgument
from strudel_cli.storage import PromoteResult, detail_song, promote_version

logger = logging.getLogger(__name__)

_USAGE = "--versions must be a JSON array of [version, delaySeconds] pairs, e.g. '[[1,0],[2,8]]'"


@dataclass(frozen=True)
class SequenceStep:
    version: int
    delay_seconds: float


def parse_steps(raw: str) -> list[SequenceStep]:
    """Parse ``[[version, delaySeconds], ...]``.

    Versions must be integers ≥ 1, delays numbers ≥ 0, and the list must
    not be empty.
    """
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidArgument(f"{_USAGE} ({exc.msg})") from exc

    if not isinstance(payload, list) or not payload:
        raise InvalidArgument(_USAGE)

    steps: list[SequenceStep] = []
    for i, item in enumerate(payload):
        if not isinstance(item, list) or len(item) != 2:
            raise InvalidArgument(f"Step {i}: expected [version, delaySeconds]. {_USAGE}")
        version, delay = item
        if isinstance(version, bool) or not isinstance(version, int) or version < 1:
            raise InvalidArgument(f"Step {i}: version must be an integer >= 1, got {version!r}")
        if isinstance(delay, bool) or not isinstance(delay, (int, float)) or delay < 0:
            raise InvalidArgument(f"Step {i}: delay must be a number >= 0, got {delay!r}")
        steps.append(SequenceStep(version=version, delay_seconds=float(delay)))
    return steps


def run_sequence(
    root: pathlib.Path,
    name: str,
    steps: list[SequenceStep],
    *,
    evaluate: Callable[[str, str, int], object],
    sleep: Callable[[float], None] = time.sleep,
    on_step: Optional[Callable[[SequenceStep, PromoteResult], None]] = None,
) -> list[PromoteResult]:
    """Apply *steps* to song *name* in order.

    Every referenced version is checked before anything is promoted, so a
    typo in the last step does not leave half a sequence behind.  Errors
    from ``evaluate`` stop the run; promotions already made stay in history.

    Args:
        root:     Song store directory.
        name:     Song to sequence.
        steps:    Parsed steps (see :func:`parse_steps`).
        evaluate: Called as ``evaluate(code, name, new_version)`` per step.
        sleep:    Injected for tests.
        on_step:  Progress callback after each successful step.
    """
    for step in steps:
        detail_song(root, name, step.version)

    results: list[PromoteResult] = []
    for step in steps:
        if step.delay_seconds > 0:
            sleep(step.delay_seconds)
        promoted = promote_version(root, name, step.version)
        evaluate(promoted.code, name, promoted.new_version)
        logger.info(
            "🎼 Sequence %s: v%d → v%d", name, promoted.from_version, promoted.new_version
        )
        results.append(promoted)
        if on_step is not None:
            on_step(step, promoted)
    return results
