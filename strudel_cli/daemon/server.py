"""Daemon process entry point.

Run with ``python -m strudel_cli.daemon`` (the supervisor does this).

Startup:
1. configure logging (stderr — the launcher redirects it to ``daemon.log``),
2. load the engine named by ``STRUDEL_ENGINE``,
3. bind a loopback socket on an OS-assigned port,
4. serve the app with uvicorn on that socket; the lifespan writes
   ``{port, pid}`` to the daemon record.

Shutdown happens through uvicorn's exit path in every case — inactivity
(``server.should_exit``), SIGTERM and SIGINT (uvicorn's own handlers) — so
the lifespan teardown always stops the engine and removes the record.
"""
from __future__ import annotations

import logging
import os
import socket
import sys

import uvicorn

from strudel_cli.config import settings
from strudel_cli.daemon.app import create_app
from strudel_cli.daemon.session import DaemonSession
from strudel_cli.engine import load_engine
from strudel_cli.models import DaemonRecord

logger = logging.getLogger(__name__)


def _bind_socket(host: str) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    sock.bind((host, 0))
    sock.set_inheritable(True)
    return sock


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Daemon starting (pid %d, home %s)", os.getpid(), settings.home)

    try:
        engine = load_engine(settings.engine)
    except Exception as exc:
        logger.error("❌ Failed to initialize engine %s: %s", settings.engine, exc, exc_info=True)
        return 1

    sock = _bind_socket(settings.daemon_host)
    port = sock.getsockname()[1]

    server: uvicorn.Server | None = None

    def _request_exit() -> None:
        if server is not None:
            server.should_exit = True

    session = DaemonSession(
        engine,
        inactivity_timeout=settings.inactivity_timeout_seconds,
        on_idle=_request_exit,
    )
    app = create_app(
        session,
        record=DaemonRecord(port=port, pid=session.pid),
        record_path=settings.pid_file,
    )
    config = uvicorn.Config(app, log_level="info", access_log=False)
    server = uvicorn.Server(config)

    try:
        server.run(sockets=[sock])
    except Exception as exc:
        logger.error("❌ Fatal error: %s", exc, exc_info=True)
        return 1
    finally:
        sock.close()

    logger.info("Daemon exited")
    return 0


if __name__ == "__main__":
    sys.exit(main())
