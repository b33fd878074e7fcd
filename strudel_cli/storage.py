"""Song Version Store — named songs with append-only version history.

Design
------
- All songs live in one JSON document, ``<root>/songs.json``::

      {"songs": {"<name>": {"versions": [{"code": "...", "createdAt": "..."}]}}}

- Versions are immutable.  Every mutation (create, find-replace update,
  promotion of an old version) *appends*; nothing is edited or truncated in
  place.  Externally versions are 1-indexed (version N = ``versions[N-1]``).
- Every mutating operation holds ``<root>/songs.lock`` (see
  :mod:`strudel_cli.lock`) across its whole read-modify-write cycle, so
  mutations from concurrent CLI processes are strictly serialised.
- The rewrite goes to a temporary sibling and is swapped in with
  ``os.replace``; readers that skip the lock see the old or the new document,
  never a torn one.  They may still see a snapshot that is one mutation stale.

Boundary rules:
  - No Typer imports.
  - No daemon or engine imports — pattern code is an opaque string here.
"""
from __future__ import annotations

import datetime
import logging
import os
import pathlib
from dataclasses import dataclass
from typing import Optional

from strudel_cli.errors import (
    AlreadyExists,
    AmbiguousMatch,
    IndexOutOfRange,
    InvalidArgument,
    NoMatch,
    NotFound,
    VersionOutOfRange,
)
from strudel_cli.lock import dir_lock
from strudel_cli.models import Song, SongsData, SongVersion

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_SONGS_FILE = "songs.json"
_SONGS_LOCK = "songs.lock"


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UpdateResult:
    """Outcome of a find-replace update.

    Attributes:
        code:    The new latest code.
        version: 1-based number of the version just appended.
    """

    code: str
    version: int


@dataclass(frozen=True)
class SongDetail:
    """One version of a song, plus where it sits in the history."""

    code: str
    version: int
    total_versions: int
    created_at: str


@dataclass(frozen=True)
class PromoteResult:
    """Outcome of copying a historical version to the front.

    Attributes:
        code:         Code of the promoted version.
        from_version: The historical version that was copied.
        new_version:  The version number the copy was stored as.
    """

    code: str
    from_version: int
    new_version: int


# ---------------------------------------------------------------------------
# Filesystem helpers
# ---------------------------------------------------------------------------


def songs_path(root: pathlib.Path) -> pathlib.Path:
    """The songs document under *root*."""
    return root / _SONGS_FILE


def songs_lock_path(root: pathlib.Path) -> pathlib.Path:
    return root / _SONGS_LOCK


def _now() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="milliseconds")


def _load(root: pathlib.Path) -> SongsData:
    """Read the songs document; a missing file is an empty collection."""
    path = songs_path(root)
    if not path.exists():
        return SongsData()
    return SongsData.model_validate_json(path.read_text(encoding="utf-8"))


def _save(root: pathlib.Path, data: SongsData) -> None:
    """Rewrite the whole document atomically."""
    root.mkdir(parents=True, exist_ok=True)
    path = songs_path(root)
    tmp = path.with_name(f".{path.name}.{os.getpid()}.tmp")
    tmp.write_text(data.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
    os.replace(tmp, path)


def _require_song(data: SongsData, name: str) -> Song:
    song = data.songs.get(name)
    if song is None:
        raise NotFound(f"Song '{name}' not found. Use 'strudel make' to create one.")
    return song


def _resolve_version(song: Song, name: str, version: Optional[int]) -> int:
    """Return the 0-based index for *version* (latest when ``None``)."""
    total = len(song.versions)
    if version is None:
        return total - 1
    if version < 1 or version > total:
        raise VersionOutOfRange(
            f"Version {version} not found. Song '{name}' has {total} version(s)."
        )
    return version - 1


def find_occurrences(code: str, needle: str) -> list[int]:
    """Return the start offset of every occurrence of *needle* in *code*.

    The search resumes one character after each match, so overlapping
    occurrences are all enumerated: ``"aaa"`` contains ``"aa"`` at 0 and 1.
    """
    matches: list[int] = []
    pos = code.find(needle)
    while pos != -1:
        matches.append(pos)
        pos = code.find(needle, pos + 1)
    return matches


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def create_song(root: pathlib.Path, name: str, code: str) -> SongVersion:
    """Create *name* with *code* as version 1.

    Raises:
        AlreadyExists: When the name is taken.
    """
    with dir_lock(songs_lock_path(root)):
        data = _load(root)
        if name in data.songs:
            raise AlreadyExists(
                f"Song '{name}' already exists. Use 'strudel update' to modify it."
            )
        version = SongVersion(code=code, created_at=_now())
        data.songs[name] = Song(versions=[version])
        _save(root, data)

    logger.info("✅ Created song %s", name)
    return version


def update_song(
    root: pathlib.Path,
    name: str,
    from_: str,
    to: str,
    index: Optional[int] = None,
) -> UpdateResult:
    """Replace one occurrence of *from_* in the latest version and append the result.

    When *from_* occurs more than once the caller must pick the occurrence
    with a 0-based *index*; the same index always resolves to the same
    character offset for the same latest code.

    Raises:
        InvalidArgument:  *from_* is empty, or *index* is negative / not an int.
        NotFound:         The song does not exist.
        NoMatch:          *from_* does not occur.
        AmbiguousMatch:   Several occurrences and no *index*.
        IndexOutOfRange:  *index* ≥ number of occurrences.
    """
    if not from_:
        raise InvalidArgument("--from cannot be empty")
    if index is not None and (
        isinstance(index, bool) or not isinstance(index, int) or index < 0
    ):
        raise InvalidArgument("--index must be a non-negative integer")

    with dir_lock(songs_lock_path(root)):
        data = _load(root)
        song = _require_song(data, name)
        code = song.versions[-1].code

        matches = find_occurrences(code, from_)
        if not matches:
            raise NoMatch(f"No match found for '{from_}' in song '{name}'.")
        if len(matches) > 1 and index is None:
            raise AmbiguousMatch(
                f"Found {len(matches)} matches for '{from_}'. "
                "Please specify --index (0-based) or use a more specific string.",
                count=len(matches),
            )

        target = 0 if index is None else index
        if target >= len(matches):
            raise IndexOutOfRange(
                f"Index {target} is out of range. "
                f"Found {len(matches)} match(es) (0-based)."
            )

        pos = matches[target]
        new_code = code[:pos] + to + code[pos + len(from_):]
        song.versions.append(SongVersion(code=new_code, created_at=_now()))
        _save(root, data)
        new_version = len(song.versions)

    logger.info("✅ Updated song %s → v%d", name, new_version)
    return UpdateResult(code=new_code, version=new_version)


def detail_song(
    root: pathlib.Path,
    name: str,
    version: Optional[int] = None,
) -> SongDetail:
    """Return one version of *name* (latest when *version* is ``None``).

    Raises:
        NotFound:          The song does not exist.
        VersionOutOfRange: *version* is below 1 or above the version count.
    """
    data = _load(root)
    song = _require_song(data, name)
    idx = _resolve_version(song, name, version)
    sv = song.versions[idx]
    return SongDetail(
        code=sv.code,
        version=idx + 1,
        total_versions=len(song.versions),
        created_at=sv.created_at,
    )


def get_song_code(
    root: pathlib.Path,
    name: str,
    version: Optional[int] = None,
) -> tuple[str, int]:
    """Return ``(code, version)`` for playback."""
    detail = detail_song(root, name, version)
    return detail.code, detail.version


def promote_version(root: pathlib.Path, name: str, version: int) -> PromoteResult:
    """Append a copy of *version* as the new latest version.

    This is how rollback works: history only grows, and the old version is
    still addressable by its original number afterwards.
    """
    with dir_lock(songs_lock_path(root)):
        data = _load(root)
        song = _require_song(data, name)
        idx = _resolve_version(song, name, version)
        code = song.versions[idx].code
        song.versions.append(SongVersion(code=code, created_at=_now()))
        _save(root, data)
        new_version = len(song.versions)

    logger.info("✅ Promoted %s v%d → v%d", name, idx + 1, new_version)
    return PromoteResult(code=code, from_version=idx + 1, new_version=new_version)


def list_songs(root: pathlib.Path) -> list[str]:
    """Return every song name in document order."""
    return list(_load(root).songs)


def delete_song(root: pathlib.Path, name: str) -> None:
    """Remove *name* and all of its versions.  Irreversible."""
    with dir_lock(songs_lock_path(root)):
        data = _load(root)
        if name not in data.songs:
            raise NotFound(f"Song '{name}' not found.")
        del data.songs[name]
        _save(root, data)

    logger.info("🗑️ Deleted song %s", name)


def rename_song(root: pathlib.Path, old_name: str, new_name: str) -> None:
    """Move *old_name* to *new_name*, keeping every version and its position."""
    with dir_lock(songs_lock_path(root)):
        data = _load(root)
        if old_name not in data.songs:
            raise NotFound(f"Song '{old_name}' not found.")
        if new_name in data.songs:
            raise AlreadyExists(f"Song '{new_name}' already exists.")
        data.songs = {
            (new_name if key == old_name else key): song
            for key, song in data.songs.items()
        }
        _save(root, data)

    logger.info("✅ Renamed song %s → %s", old_name, new_name)
