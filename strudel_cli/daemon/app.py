"""Strudel daemon FastAPI application factory.

Architecture:
- ``create_app(session)`` builds the app around one explicit
  :class:`DaemonSession`; handlers reach it through the ``get_session``
  dependency, never through module globals.
- ``lifespan`` writes the daemon record (when the server knows its port),
  arms the inactivity timer, and on shutdown stops the engine and removes
  the record.  Inactivity, SIGTERM and SIGINT all exit through it.
- Every error body is ``{"ok": false, "error": "..."}``.

Routes:
    GET  /health     liveness + pid
    GET  /current    playback snapshot
    POST /play       stop, then evaluate fresh code
    POST /stop       stop playback
    POST /pause      pause playback
    POST /evaluate   hot-swap the running pattern
    POST /validate   syntax pre-check, no state change
"""
from __future__ import annotations

import logging
import pathlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from strudel_cli.daemon.session import DaemonSession
from strudel_cli.errors import InvalidArgument, StrudelError
from strudel_cli.models import (
    DaemonRecord,
    DaemonState,
    ErrorResponse,
    EvaluateRequest,
    HealthResponse,
    OkResponse,
    PlayRequest,
    PlayResponse,
    StateResponse,
    ValidateRequest,
    ValidateResponse,
)
from strudel_cli.supervisor import remove_record, write_record

logger = logging.getLogger(__name__)

_MISSING_CODE = 'Missing "code" in request body'

router = APIRouter()


def get_session(request: Request) -> DaemonSession:
    """Dependency: the session owned by this app instance."""
    session: DaemonSession = request.app.state.session
    return session


def _require_code(code: str | None) -> str:
    if not code or not isinstance(code, str):
        raise InvalidArgument(_MISSING_CODE)
    return code


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/health")
async def health(session: DaemonSession = Depends(get_session)) -> HealthResponse:
    """Liveness probe — side-effect free."""
    return HealthResponse(pid=session.pid)


@router.get("/current", response_model=DaemonState, response_model_exclude_none=True)
async def current(session: DaemonSession = Depends(get_session)) -> DaemonState:
    """Current playback snapshot — side-effect free."""
    return session.state


@router.post("/play")
async def play(
    body: PlayRequest, session: DaemonSession = Depends(get_session)
) -> PlayResponse:
    code = _require_code(body.code)
    state = await session.play(code, body.name, body.version)
    return PlayResponse(name=state.name, version=state.version, state=state.state)


@router.post("/stop")
async def stop(session: DaemonSession = Depends(get_session)) -> StateResponse:
    state = await session.stop()
    return StateResponse(state=state.state)


@router.post("/pause")
async def pause(session: DaemonSession = Depends(get_session)) -> StateResponse:
    """Always answers ``paused``; the stored state only changes if it was playing."""
    await session.pause()
    return StateResponse(state="paused")


@router.post("/evaluate")
async def evaluate(
    body: EvaluateRequest, session: DaemonSession = Depends(get_session)
) -> OkResponse:
    code = _require_code(body.code)
    await session.evaluate(code, body.name, body.version)
    return OkResponse()


@router.post("/validate", response_model=ValidateResponse, response_model_exclude_none=True)
async def validate(
    body: ValidateRequest, session: DaemonSession = Depends(get_session)
) -> ValidateResponse:
    code = _require_code(body.code)
    result = session.validate(code)
    return ValidateResponse(
        valid=result.valid,
        error=result.error,
        line=result.line,
        column=result.column,
    )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_app(
    session: DaemonSession,
    *,
    record: DaemonRecord | None = None,
    record_path: pathlib.Path | None = None,
) -> FastAPI:
    """Build the daemon app around *session*.

    When *record* and *record_path* are both given the record is written on
    startup and removed on shutdown (only if it still names this process).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        if record is not None and record_path is not None:
            write_record(record_path, record)
            logger.info("✅ Daemon ready on port %d (pid: %d)", record.port, record.pid)
        session.reset_inactivity_timer()
        try:
            yield
        finally:
            logger.info("Cleaning up...")
            await session.shutdown()
            if record_path is not None:
                remove_record(record_path, owner_pid=session.pid)

    app = FastAPI(title="Strudel daemon", lifespan=lifespan)
    app.state.session = session
    app.include_router(router)

    @app.exception_handler(StrudelError)
    async def _strudel_error(request: Request, exc: StrudelError) -> JSONResponse:
        status_code = 400 if isinstance(exc, InvalidArgument) else 500
        return _error(status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def _bad_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(400, "Invalid request body")

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = "Not found" if exc.status_code == 404 else str(exc.detail)
        return _error(exc.status_code, message)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.error("❌ Unhandled error on %s: %s", request.url.path, exc, exc_info=True)
        return _error(500, str(exc) or type(exc).__name__)

    return app
