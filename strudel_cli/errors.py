"""Exit-code contract and exception types for the Strudel CLI.

Every failure a command can surface is a :class:`StrudelError` subclass.
Storage and control-protocol layers raise them; the command layer converts
them to ``typer.Exit`` with the carried exit code.  There is no automatic
retry of these errors anywhere.
"""
from __future__ import annotations

import enum


class ExitCode(enum.IntEnum):
    """Standardised CLI exit codes.

    0 — success
    1 — failure (bad input, unknown song, daemon error)
    """

    SUCCESS = 0
    FAILURE = 1


class StrudelError(Exception):
    """Base exception for Strudel CLI errors."""

    def __init__(self, message: str, exit_code: ExitCode = ExitCode.FAILURE) -> None:
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code


# ---------------------------------------------------------------------------
# Version store
# ---------------------------------------------------------------------------


class AlreadyExists(StrudelError):
    """A song with the requested name is already stored."""


class NotFound(StrudelError):
    """The named song does not exist."""


class InvalidArgument(StrudelError):
    """A caller-supplied argument is malformed (empty search string, bad index)."""


class NoMatch(StrudelError):
    """The search string does not occur in the latest version."""


class AmbiguousMatch(StrudelError):
    """The search string occurs more than once and no index was given."""

    def __init__(self, message: str, count: int) -> None:
        super().__init__(message)
        self.count = count


class IndexOutOfRange(StrudelError):
    """The requested occurrence index is not below the match count."""


class VersionOutOfRange(StrudelError):
    """The requested version number does not exist for the song."""


# ---------------------------------------------------------------------------
# Playback / daemon
# ---------------------------------------------------------------------------


class EvaluationError(StrudelError):
    """Pattern code failed validation or execution inside the engine."""


class DaemonStartTimeout(StrudelError):
    """The background process never answered its health endpoint."""


class NoActiveSession(StrudelError):
    """No background process is reachable for a command that needs one."""

    def __init__(
        self,
        message: str = "No music is playing. Use 'strudel play <name>' to start.",
    ) -> None:
        super().__init__(message)


class DaemonRequestError(StrudelError):
    """A control request failed for a reason other than evaluation."""
