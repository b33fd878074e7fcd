"""Directory-based inter-process lock.

``mkdir`` is atomic on every filesystem we care about, so the existence of
the marker directory *is* the lock.  Contenders poll with a short fixed
backoff.  A marker that outlives ``timeout`` is assumed to belong to a holder
that crashed before releasing; it is force-removed and acquisition retries.

Known tradeoff: a holder that is merely slow (longer than ``timeout``) loses
exclusivity to the next contender.  Mutations under this lock are a single
small JSON rewrite, so the window is narrow in practice.
"""
from __future__ import annotations

import logging
import pathlib
import shutil
import time
from collections.abc import Iterator
from contextlib import contextmanager

from strudel_cli.config import settings

logger = logging.getLogger(__name__)


def _acquire(path: pathlib.Path, timeout: float, poll_interval: float) -> None:
    start = time.monotonic()
    while True:
        try:
            path.mkdir()
            return
        except FileExistsError:
            if time.monotonic() - start > timeout:
                logger.warning(
                    "⚠️ Lock %s held longer than %.1fs — assuming stale and taking over",
                    path,
                    timeout,
                )
                shutil.rmtree(path, ignore_errors=True)
                start = time.monotonic()
                continue
            time.sleep(poll_interval)


@contextmanager
def dir_lock(
    path: pathlib.Path,
    *,
    timeout: float | None = None,
    poll_interval: float | None = None,
) -> Iterator[None]:
    """Hold the lock marker at *path* for the duration of the ``with`` block.

    The parent directory is created if missing.  Errors other than
    contention (permissions, missing mount) propagate unchanged.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    _acquire(
        path,
        timeout=settings.lock_timeout_seconds if timeout is None else timeout,
        poll_interval=(
            settings.lock_poll_interval_seconds if poll_interval is None else poll_interval
        ),
    )
    logger.debug("🔒 Acquired %s", path)
    try:
        yield
    finally:
        shutil.rmtree(path, ignore_errors=True)
        logger.debug("🔓 Released %s", path)
