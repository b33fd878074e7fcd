"""Domain models for the Strudel CLI.

These types are the shared contract between the version store, the daemon
supervisor, the daemon HTTP routes and the client.  Persisted documents use
the on-disk key names (``createdAt``) through aliases so the files stay
readable by older tooling.
"""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Song storage (songs.json)
# ---------------------------------------------------------------------------


class SongVersion(BaseModel):
    """One immutable snapshot of a song's pattern code."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    code: str
    created_at: str = Field(alias="createdAt")


class Song(BaseModel):
    """Ordered, append-only version history.  Version N lives at index N-1."""

    versions: list[SongVersion]


class SongsData(BaseModel):
    """The whole persisted document: song name → song."""

    songs: dict[str, Song] = {}


# ---------------------------------------------------------------------------
# Daemon record (daemon.pid)
# ---------------------------------------------------------------------------


class DaemonRecord(BaseModel):
    """Where the background process listens.  Advisory — verify before use."""

    port: int
    pid: int


# ---------------------------------------------------------------------------
# Playback state (daemon memory only)
# ---------------------------------------------------------------------------


class PlaybackState(str, Enum):
    """What the engine is doing right now."""

    PLAYING = "playing"
    PAUSED = "paused"
    STOPPED = "stopped"


class DaemonState(BaseModel):
    """Snapshot served by ``GET /current``.

    ``name``/``version``/``code`` are absent while stopped.
    """

    state: PlaybackState = PlaybackState.STOPPED
    name: str | None = None
    version: int | None = None
    code: str | None = None


# ---------------------------------------------------------------------------
# Control protocol payloads
# ---------------------------------------------------------------------------


class PlayRequest(BaseModel):
    code: str | None = None
    name: str | None = None
    version: int | None = None


class EvaluateRequest(BaseModel):
    code: str | None = None
    name: str | None = None
    version: int | None = None


class ValidateRequest(BaseModel):
    code: str | None = None


class HealthResponse(BaseModel):
    ok: bool = True
    pid: int


class PlayResponse(BaseModel):
    ok: bool = True
    name: str | None = None
    version: int | None = None
    state: PlaybackState


class StateResponse(BaseModel):
    """Response for ``POST /stop`` and ``POST /pause``."""

    ok: bool = True
    state: PlaybackState


class OkResponse(BaseModel):
    ok: bool = True


class ValidateResponse(BaseModel):
    ok: bool = True
    valid: bool
    error: str | None = None
    line: int | None = None
    column: int | None = None


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
