"""HTTP client for CLI → daemon communication.

:class:`DaemonClient` speaks the control protocol to one known daemon.  The
module-level functions below mirror what the CLI commands need and decide
whether a missing daemon should be started (``play``, ``evaluate``,
``validate``, ``get_current``) or reported (``stop``, ``pause``).

Every exchange is one synchronous request and one JSON response.  Error
bodies have the shape ``{"ok": false, "error": "..."}`` and are mapped to
:mod:`strudel_cli.errors` types:

- 400 → :class:`InvalidArgument`
- 500 on ``/play`` or ``/evaluate`` → :class:`EvaluationError`
- anything else → :class:`DaemonRequestError`
"""
from __future__ import annotations

import logging
import types
from typing import Optional, TypeVar

import httpx
from pydantic import BaseModel

from strudel_cli import supervisor
from strudel_cli.config import settings
from strudel_cli.errors import (
    DaemonRequestError,
    EvaluationError,
    InvalidArgument,
    NoActiveSession,
)
from strudel_cli.models import (
    DaemonRecord,
    DaemonState,
    HealthResponse,
    OkResponse,
    PlayResponse,
    StateResponse,
    ValidateResponse,
)

logger = logging.getLogger(__name__)

_M = TypeVar("_M", bound=BaseModel)

_EVALUATING_PATHS = frozenset({"/play", "/evaluate"})


class DaemonClient:
    """Typed wrapper around the daemon's JSON endpoints.

    Usage::

        with DaemonClient(record) as daemon:
            daemon.play(code, "groove", 3)
    """

    def __init__(
        self,
        record: DaemonRecord,
        *,
        timeout: Optional[float] = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.record = record
        self._client = httpx.Client(
            base_url=supervisor.daemon_url(record),
            timeout=settings.request_timeout_seconds if timeout is None else timeout,
            transport=transport,
        )

    def __enter__(self) -> DaemonClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        model: type[_M],
        body: dict[str, object] | None = None,
    ) -> _M:
        try:
            resp = self._client.request(method, path, json=body)
        except httpx.HTTPError as exc:
            logger.error("❌ %s %s failed: %s", method, path, exc)
            raise DaemonRequestError(f"Daemon request {method} {path} failed: {exc}") from exc

        try:
            data = resp.json()
        except ValueError:
            data = {}

        if resp.is_error:
            message = data.get("error") if isinstance(data, dict) else None
            message = message or f"HTTP {resp.status_code}"
            if resp.status_code == 400:
                raise InvalidArgument(message)
            if resp.status_code == 500 and path in _EVALUATING_PATHS:
                raise EvaluationError(message)
            raise DaemonRequestError(message)

        return model.model_validate(data)

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def health(self) -> HealthResponse:
        return self._request("GET", "/health", HealthResponse)

    def current(self) -> DaemonState:
        return self._request("GET", "/current", DaemonState)

    def play(self, code: str, name: str, version: int) -> PlayResponse:
        return self._request(
            "POST", "/play", PlayResponse, {"code": code, "name": name, "version": version}
        )

    def stop(self) -> StateResponse:
        return self._request("POST", "/stop", StateResponse, {})

    def pause(self) -> StateResponse:
        return self._request("POST", "/pause", StateResponse, {})

    def evaluate(
        self, code: str, name: Optional[str] = None, version: Optional[int] = None
    ) -> OkResponse:
        body: dict[str, object] = {"code": code}
        if name is not None:
            body["name"] = name
        if version is not None:
            body["version"] = version
        return self._request("POST", "/evaluate", OkResponse, body)

    def validate(self, code: str) -> ValidateResponse:
        return self._request("POST", "/validate", ValidateResponse, {"code": code})


# ---------------------------------------------------------------------------
# CLI-facing helpers
# ---------------------------------------------------------------------------


def _running_client() -> DaemonClient:
    """Client for an already running daemon, or ``NoActiveSession``."""
    record = supervisor.resolve_daemon()
    if record is None:
        raise NoActiveSession()
    return DaemonClient(record)


def is_daemon_running() -> bool:
    """Check whether a daemon is running, without starting one."""
    return supervisor.resolve_daemon() is not None


def get_current() -> DaemonState:
    """Current playback state.  Starts the daemon if needed."""
    with DaemonClient(supervisor.ensure_daemon()) as daemon:
        return daemon.current()


def play(code: str, name: str, version: int) -> PlayResponse:
    """Play *code* from scratch.  Starts the daemon if needed."""
    with DaemonClient(supervisor.ensure_daemon()) as daemon:
        return daemon.play(code, name, version)


def evaluate(
    code: str, name: Optional[str] = None, version: Optional[int] = None
) -> OkResponse:
    """Hot-swap the running pattern.  Starts the daemon if needed."""
    with DaemonClient(supervisor.ensure_daemon()) as daemon:
        return daemon.evaluate(code, name, version)


def validate(code: str) -> ValidateResponse:
    """Syntax pre-check on the daemon's engine.  Starts the daemon if needed."""
    with DaemonClient(supervisor.ensure_daemon()) as daemon:
        return daemon.validate(code)


def stop() -> StateResponse:
    """Stop playback.  Raises ``NoActiveSession`` when no daemon is running."""
    with _running_client() as daemon:
        return daemon.stop()


def pause() -> StateResponse:
    """Pause playback.  Raises ``NoActiveSession`` when no daemon is running."""
    with _running_client() as daemon:
        return daemon.pause()
