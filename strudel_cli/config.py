"""Strudel CLI configuration.

All settings are prefixed with ``STRUDEL_`` and can be overridden from the
environment.  Defaults work for a normal desktop session without any env vars
set; the launcher forwards ``STRUDEL_HOME`` to the daemon so both processes
agree on where state lives.
"""
from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class StrudelSettings(BaseSettings):
    """Runtime configuration shared by the CLI and the daemon."""

    model_config = SettingsConfigDict(env_prefix="STRUDEL_")

    home: Path = Path.home() / ".strudel-cli"
    daemon_host: str = "127.0.0.1"
    engine: str = "strudel_cli.engine:SilentEngine"
    log_level: str = "WARNING"

    inactivity_timeout_seconds: float = 30 * 60
    health_poll_interval_seconds: float = 0.2
    health_poll_max_attempts: int = 75
    health_timeout_seconds: float = 1.0
    request_timeout_seconds: float = 60.0

    lock_timeout_seconds: float = 5.0
    lock_poll_interval_seconds: float = 0.05

    @property
    def pid_file(self) -> Path:
        return self.home / "daemon.pid"

    @property
    def daemon_lock(self) -> Path:
        return self.home / "daemon.lock"

    @property
    def daemon_log(self) -> Path:
        return self.home / "daemon.log"


settings = StrudelSettings()
