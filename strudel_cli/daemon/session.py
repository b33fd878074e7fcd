"""Daemon session — the one object that owns playback state.

A ``DaemonSession`` holds the engine, the current :class:`DaemonState`
snapshot and the inactivity timer.  Route handlers receive it by reference
(see :mod:`strudel_cli.daemon.app`); nothing here is module-global.

Engine-touching operations are serialised by ``self.lock`` so that two
overlapping requests can never interleave a stop/evaluate pair.  State is
only committed after the engine call succeeds: a failed ``play`` or
``evaluate`` leaves the previous snapshot in place.
"""
from __future__ import annotations

import asyncio
import logging
import os
from typing import Callable, Optional

from strudel_cli.engine import PatternEngine, ValidationResult
from strudel_cli.errors import DaemonRequestError, EvaluationError
from strudel_cli.models import DaemonState, PlaybackState

logger = logging.getLogger(__name__)


class DaemonSession:
    """Playback state and engine handle for one daemon process."""

    def __init__(
        self,
        engine: PatternEngine,
        *,
        inactivity_timeout: float,
        on_idle: Optional[Callable[[], None]] = None,
        pid: Optional[int] = None,
    ) -> None:
        self.engine = engine
        self.inactivity_timeout = inactivity_timeout
        self.on_idle = on_idle
        self.pid = pid if pid is not None else os.getpid()
        self.state = DaemonState()
        self.lock = asyncio.Lock()
        self._timer: asyncio.TimerHandle | None = None

    # ------------------------------------------------------------------
    # Inactivity timer
    # ------------------------------------------------------------------

    def reset_inactivity_timer(self) -> None:
        """(Re)arm the single inactivity timer.  No-op without ``on_idle``."""
        self.cancel_inactivity_timer()
        if self.on_idle is None:
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.inactivity_timeout, self._on_timer)

    def cancel_inactivity_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        logger.info("⏰ Inactivity timeout reached (%.0fs). Shutting down.", self.inactivity_timeout)
        if self.on_idle is not None:
            self.on_idle()

    # ------------------------------------------------------------------
    # Control operations
    # ------------------------------------------------------------------

    async def play(self, code: str, name: str | None, version: int | None) -> DaemonState:
        """Stop whatever is playing, then evaluate *code* from scratch."""
        async with self.lock:
            try:
                if self.state.state == PlaybackState.PLAYING:
                    self.engine.stop()
                await self.engine.evaluate(code)
            except Exception as exc:
                logger.error("❌ Play error: %s", exc)
                raise EvaluationError(str(exc)) from exc
            self.state = DaemonState(
                state=PlaybackState.PLAYING,
                name=name or None,
                version=version or None,
                code=code,
            )
        self.reset_inactivity_timer()
        logger.info("▶️ Playing: %s v%s", name or "anonymous", version or "?")
        return self.state

    async def evaluate(
        self, code: str, name: str | None = None, version: int | None = None
    ) -> DaemonState:
        """Hot-swap the running pattern without stopping the scheduler.

        ``name``/``version`` are kept from the previous snapshot unless
        supplied.
        """
        async with self.lock:
            try:
                await self.engine.evaluate(code)
            except Exception as exc:
                logger.error("❌ Evaluate error: %s", exc)
                raise EvaluationError(str(exc)) from exc
            self.state = DaemonState(
                state=PlaybackState.PLAYING,
                name=name or self.state.name,
                version=version or self.state.version,
                code=code,
            )
        self.reset_inactivity_timer()
        logger.info("🔁 Evaluated: %s v%s", self.state.name or "anonymous", self.state.version or "?")
        return self.state

    async def stop(self) -> DaemonState:
        """Stop the engine (safe when nothing plays) and clear the snapshot."""
        async with self.lock:
            try:
                self.engine.stop()
            except Exception as exc:
                logger.error("❌ Stop error: %s", exc)
                raise DaemonRequestError(str(exc)) from exc
            self.state = DaemonState(state=PlaybackState.STOPPED)
        self.reset_inactivity_timer()
        logger.info("⏹️ Stopped playback")
        return self.state

    async def pause(self) -> DaemonState:
        """Pause the engine.  Only a playing session becomes ``paused``."""
        async with self.lock:
            try:
                self.engine.pause()
            except Exception as exc:
                logger.error("❌ Pause error: %s", exc)
                raise DaemonRequestError(str(exc)) from exc
            if self.state.state == PlaybackState.PLAYING:
                self.state = self.state.model_copy(update={"state": PlaybackState.PAUSED})
        self.reset_inactivity_timer()
        logger.info("⏸️ Paused playback")
        return self.state

    def validate(self, code: str) -> ValidationResult:
        try:
            result = self.engine.validate(code)
        except Exception as exc:
            logger.error("❌ Validate error: %s", exc)
            raise DaemonRequestError(str(exc)) from exc
        self.reset_inactivity_timer()
        logger.info(
            "🔎 Validate: valid=%s%s",
            result.valid,
            f" error={result.error}" if result.error else "",
        )
        return result

    async def shutdown(self) -> None:
        """Stop the engine and the timer.  Best effort — never raises."""
        self.cancel_inactivity_timer()
        try:
            self.engine.stop()
        except Exception as exc:  # noqa: BLE001
            logger.warning("⚠️ Engine stop during shutdown failed: %s", exc)
        self.state = DaemonState(state=PlaybackState.STOPPED)
        logger.info("🧹 Session cleaned up")
