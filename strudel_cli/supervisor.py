"""Daemon supervisor — find, verify and lazily launch the background process.

The daemon record (``daemon.pid``, ``{"port": ..., "pid": ...}``) is only a
hint.  A record is trusted when **both** checks pass:

1. the recorded pid exists on this machine, and
2. ``GET /health`` on the recorded port answers 200 within a short timeout.

Either check failing means "not running" — the record is stale, not an
error.  Launching happens under a dedicated directory lock (separate from
the song store lock) and re-resolves after acquiring it, so concurrent CLI
invocations racing to start a daemon end up sharing the first one.
"""
from __future__ import annotations

import logging
import os
import pathlib
import subprocess
import sys
import time
from typing import Optional

import httpx
from pydantic import ValidationError

from strudel_cli.config import settings
from strudel_cli.errors import DaemonStartTimeout
from strudel_cli.lock import dir_lock
from strudel_cli.models import DaemonRecord

logger = logging.getLogger(__name__)

_DAEMON_MODULE = "strudel_cli.daemon"


# ---------------------------------------------------------------------------
# Daemon record
# ---------------------------------------------------------------------------


def read_record(path: pathlib.Path) -> Optional[DaemonRecord]:
    """Return the record at *path*, or ``None`` if absent, unreadable or bogus."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return None
    try:
        record = DaemonRecord.model_validate_json(raw)
    except ValidationError:
        logger.debug("⚠️ Ignoring malformed daemon record at %s", path)
        return None
    if record.port <= 0 or record.pid <= 0:
        return None
    return record


def write_record(path: pathlib.Path, record: DaemonRecord) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(record.model_dump_json(), encoding="utf-8")


def remove_record(path: pathlib.Path, owner_pid: Optional[int] = None) -> None:
    """Delete the record.  With *owner_pid*, only if the record names that pid."""
    if owner_pid is not None:
        current = read_record(path)
        if current is not None and current.pid != owner_pid:
            logger.info("Daemon record now belongs to pid %d — leaving it", current.pid)
            return
    path.unlink(missing_ok=True)


# ---------------------------------------------------------------------------
# Liveness checks
# ---------------------------------------------------------------------------


def is_process_alive(pid: int) -> bool:
    """True if a process with *pid* exists (signal 0 probe)."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists, but owned by someone else.
        return True
    except OSError:
        return False
    return True


def daemon_url(record: DaemonRecord, path: str = "") -> str:
    return f"http://{settings.daemon_host}:{record.port}{path}"


def check_health(record: DaemonRecord, timeout: Optional[float] = None) -> bool:
    """Probe ``GET /health``; any transport error or non-200 is ``False``."""
    probe = settings.health_timeout_seconds if timeout is None else timeout
    try:
        with httpx.Client(timeout=httpx.Timeout(probe)) as client:
            resp = client.get(daemon_url(record, "/health"))
    except httpx.HTTPError as exc:
        logger.debug("Health probe on port %d failed: %s", record.port, exc)
        return False
    return resp.status_code == 200


def resolve_daemon(pid_file: Optional[pathlib.Path] = None) -> Optional[DaemonRecord]:
    """Return the live daemon's record, or ``None`` if none is running."""
    record = read_record(pid_file or settings.pid_file)
    if record is None:
        return None
    if not is_process_alive(record.pid):
        logger.debug("Daemon record names dead pid %d", record.pid)
        return None
    if not check_health(record):
        return None
    return record


# ---------------------------------------------------------------------------
# Launch
# ---------------------------------------------------------------------------


def _spawn_daemon() -> None:
    """Start the daemon detached from this process; output goes to the log."""
    home = settings.home
    home.mkdir(parents=True, exist_ok=True)
    env = {**os.environ, "STRUDEL_HOME": str(home)}
    with settings.daemon_log.open("ab") as log:
        subprocess.Popen(
            [sys.executable, "-m", _DAEMON_MODULE],
            stdin=subprocess.DEVNULL,
            stdout=log,
            stderr=log,
            env=env,
            start_new_session=True,
            close_fds=True,
        )
    logger.info("🚀 Spawned daemon (log: %s)", settings.daemon_log)


def launch_daemon() -> DaemonRecord:
    """Spawn a daemon and wait until it answers its health endpoint.

    Raises:
        DaemonStartTimeout: No healthy record appeared within
            ``health_poll_interval_seconds × health_poll_max_attempts``.
    """
    _spawn_daemon()

    for _ in range(settings.health_poll_max_attempts):
        time.sleep(settings.health_poll_interval_seconds)
        record = resolve_daemon()
        if record is not None:
            logger.info("✅ Daemon healthy on port %d (pid %d)", record.port, record.pid)
            return record

    waited = settings.health_poll_interval_seconds * settings.health_poll_max_attempts
    raise DaemonStartTimeout(
        f"Daemon failed to start within {waited:g}s. "
        f"Check {settings.daemon_log} for errors."
    )


def ensure_daemon() -> DaemonRecord:
    """Return a healthy daemon record, launching a daemon if needed."""
    record = resolve_daemon()
    if record is not None:
        return record

    # A legitimate holder may spend the whole health-poll window launching.
    launch_window = settings.health_poll_interval_seconds * settings.health_poll_max_attempts
    with dir_lock(settings.daemon_lock, timeout=launch_window + settings.lock_timeout_seconds):
        # Another invocation may have finished launching while we waited.
        record = resolve_daemon()
        if record is not None:
            return record
        return launch_daemon()
