"""Tests for strudel_cli/storage.py — the song version store.

Covers:
- create / detail / list / delete / rename round trips
- find-replace update semantics (overlapping matches, ambiguity, index)
- promotion never rewriting history
- serialisation of concurrent mutations through the directory lock

All tests use ``tmp_path`` as the store root; no daemon is involved.
"""
from __future__ import annotations

import json
import pathlib
import threading

import pytest

from strudel_cli.errors import (
    AlreadyExists,
    AmbiguousMatch,
    IndexOutOfRange,
    InvalidArgument,
    NoMatch,
    NotFound,
    VersionOutOfRange,
)
from strudel_cli.storage import (
    create_song,
    delete_song,
    detail_song,
    find_occurrences,
    get_song_code,
    list_songs,
    promote_version,
    rename_song,
    songs_lock_path,
    songs_path,
    update_song,
)


# ---------------------------------------------------------------------------
# create / detail
# ---------------------------------------------------------------------------


def test_create_song_stores_version_one(tmp_path: pathlib.Path) -> None:
    version = create_song(tmp_path, "groove", 's("bd sd")')

    assert version.code == 's("bd sd")'
    detail = detail_song(tmp_path, "groove")
    assert detail.version == 1
    assert detail.total_versions == 1
    assert detail.code == 's("bd sd")'
    assert detail.created_at == version.created_at


def test_create_song_duplicate_name_raises(tmp_path: pathlib.Path) -> None:
    create_song(tmp_path, "groove", "a")
    with pytest.raises(AlreadyExists):
        create_song(tmp_path, "groove", "b")
    assert detail_song(tmp_path, "groove").code == "a"


def test_names_are_case_sensitive(tmp_path: pathlib.Path) -> None:
    create_song(tmp_path, "Groove", "a")
    create_song(tmp_path, "groove", "b")
    assert list_songs(tmp_path) == ["Groove", "groove"]


def test_songs_file_uses_created_at_camel_case_key(tmp_path: pathlib.Path) -> None:
    create_song(tmp_path, "groove", "a")
    raw = json.loads(songs_path(tmp_path).read_text())
    version = raw["songs"]["groove"]["versions"][0]
    assert set(version) == {"code", "createdAt"}


def test_detail_missing_song_raises_not_found(tmp_path: pathlib.Path) -> None:
    with pytest.raises(NotFound):
        detail_song(tmp_path, "nope")


@pytest.mark.parametrize("version", [0, -1, 2])
def test_detail_version_out_of_range(tmp_path: pathlib.Path, version: int) -> None:
    create_song(tmp_path, "groove", "a")
    with pytest.raises(VersionOutOfRange):
        detail_song(tmp_path, "groove", version)


def test_get_song_code_defaults_to_latest(tmp_path: pathlib.Path) -> None:
    create_song(tmp_path, "x", "A")
    update_song(tmp_path, "x", "A", "B")
    assert get_song_code(tmp_path, "x") == ("B", 2)
    assert get_song_code(tmp_path, "x", 1) == ("A", 1)


def test_list_songs_empty_store(tmp_path: pathlib.Path) -> None:
    assert list_songs(tmp_path / "never-created") == []


# ---------------------------------------------------------------------------
# update
# ---------------------------------------------------------------------------


def test_update_round_trip(tmp_path: pathlib.Path) -> None:
    create_song(tmp_path, "x", "A")
    result = update_song(tmp_path, "x", "A", "B")

    assert (result.code, result.version) == ("B", 2)
    latest = detail_song(tmp_path, "x")
    assert (latest.code, latest.version) == ("B", 2)
    first = detail_song(tmp_path, "x", 1)
    assert (first.code, first.version) == ("A", 1)


def test_n_updates_leave_n_plus_one_versions(tmp_path: pathlib.Path) -> None:
    create_song(tmp_path, "x", "v0")
    for n in range(1, 6):
        update_song(tmp_path, "x", f"v{n - 1}", f"v{n}")

    detail = detail_song(tmp_path, "x")
    assert detail.code == "v5"
    assert detail.total_versions == 6


def test_update_empty_from_is_invalid(tmp_path: pathlib.Path) -> None:
    create_song(tmp_path, "x", "A")
    with pytest.raises(InvalidArgument):
        update_song(tmp_path, "x", "", "B")


@pytest.mark.parametrize("index", [-1, True])
def test_update_rejects_bad_index(tmp_path: pathlib.Path, index: int) -> None:
    create_song(tmp_path, "x", "A A")
    with pytest.raises(InvalidArgument):
        update_song(tmp_path, "x", "A", "B", index)


def test_update_missing_song(tmp_path: pathlib.Path) -> None:
    with pytest.raises(NotFound):
        update_song(tmp_path, "ghost", "A", "B")


def test_update_no_match(tmp_path: pathlib.Path) -> None:
    create_song(tmp_path, "x", "A")
    with pytest.raises(NoMatch):
        update_song(tmp_path, "x", "Z", "B")
    assert detail_song(tmp_path, "x").total_versions == 1


def test_update_ambiguous_reports_count(tmp_path: pathlib.Path) -> None:
    create_song(tmp_path, "x", 's("bd bd bd")')
    with pytest.raises(AmbiguousMatch) as exc_info:
        update_song(tmp_path, "x", "bd", "sd")

    assert exc_info.value.count == 3
    assert "3 matches" in str(exc_info.value)
    assert detail_song(tmp_path, "x").total_versions == 1


def test_update_with_index_replaces_that_occurrence(tmp_path: pathlib.Path) -> None:
    create_song(tmp_path, "x", "bd bd bd")
    result = update_song(tmp_path, "x", "bd", "sd", index=1)
    assert result.code == "bd sd bd"


def test_update_index_is_deterministic(tmp_path: pathlib.Path) -> None:
    create_song(tmp_path, "a", "hh hh hh")
    create_song(tmp_path, "b", "hh hh hh")
    assert (
        update_song(tmp_path, "a", "hh", "oh", index=2).code
        == update_song(tmp_path, "b", "hh", "oh", index=2).code
        == "hh hh oh"
    )


def test_update_index_out_of_range(tmp_path: pathlib.Path) -> None:
    create_song(tmp_path, "x", "bd bd")
    with pytest.raises(IndexOutOfRange):
        update_song(tmp_path, "x", "bd", "sd", index=2)


def test_update_single_match_ignores_missing_index(tmp_path: pathlib.Path) -> None:
    create_song(tmp_path, "x", "note(c3)")
    assert update_song(tmp_path, "x", "c3", "e3").code == "note(e3)"


def test_overlapping_matches_are_all_counted(tmp_path: pathlib.Path) -> None:
    assert find_occurrences("aaaa", "aa") == [0, 1, 2]

    create_song(tmp_path, "x", "aaa")
    with pytest.raises(AmbiguousMatch) as exc_info:
        update_song(tmp_path, "x", "aa", "b")
    assert exc_info.value.count == 2

    # Second occurrence starts at offset 1, overlapping the first.
    assert update_song(tmp_path, "x", "aa", "b", index=1).code == "ab"


def test_update_only_looks_at_latest_version(tmp_path: pathlib.Path) -> None:
    create_song(tmp_path, "x", "A")
    update_song(tmp_path, "x", "A", "B")
    with pytest.raises(NoMatch):
        update_song(tmp_path, "x", "A", "C")


# ---------------------------------------------------------------------------
# promote
# ---------------------------------------------------------------------------


def test_promote_appends_copy_and_keeps_history(tmp_path: pathlib.Path) -> None:
    create_song(tmp_path, "x", "A")
    update_song(tmp_path, "x", "A", "B")
    update_song(tmp_path, "x", "B", "C")

    result = promote_version(tmp_path, "x", 1)

    assert (result.code, result.from_version, result.new_version) == ("A", 1, 4)
    assert detail_song(tmp_path, "x", 1).code == "A"
    assert detail_song(tmp_path, "x", 2).code == "B"
    assert detail_song(tmp_path, "x", 3).code == "C"
    latest = detail_song(tmp_path, "x")
    assert (latest.code, latest.version, latest.total_versions) == ("A", 4, 4)


def test_promote_unknown_version(tmp_path: pathlib.Path) -> None:
    create_song(tmp_path, "x", "A")
    with pytest.raises(VersionOutOfRange):
        promote_version(tmp_path, "x", 5)
    assert detail_song(tmp_path, "x").total_versions == 1


# ---------------------------------------------------------------------------
# delete / rename
# ---------------------------------------------------------------------------


def test_delete_removes_song(tmp_path: pathlib.Path) -> None:
    create_song(tmp_path, "x", "A")
    create_song(tmp_path, "y", "B")
    delete_song(tmp_path, "x")

    assert list_songs(tmp_path) == ["y"]
    with pytest.raises(NotFound):
        detail_song(tmp_path, "x")


def test_delete_missing_song(tmp_path: pathlib.Path) -> None:
    with pytest.raises(NotFound):
        delete_song(tmp_path, "x")


def test_rename_preserves_versions_and_position(tmp_path: pathlib.Path) -> None:
    create_song(tmp_path, "first", "1")
    create_song(tmp_path, "old", "A")
    update_song(tmp_path, "old", "A", "B")
    create_song(tmp_path, "last", "3")
    before = detail_song(tmp_path, "old")

    rename_song(tmp_path, "old", "new")

    assert detail_song(tmp_path, "new") == before
    assert detail_song(tmp_path, "new", 1).code == "A"
    assert list_songs(tmp_path) == ["first", "new", "last"]
    with pytest.raises(NotFound):
        detail_song(tmp_path, "old")


def test_rename_errors(tmp_path: pathlib.Path) -> None:
    create_song(tmp_path, "a", "A")
    create_song(tmp_path, "b", "B")
    with pytest.raises(NotFound):
        rename_song(tmp_path, "missing", "c")
    with pytest.raises(AlreadyExists):
        rename_song(tmp_path, "a", "b")
    assert detail_song(tmp_path, "a").code == "A"


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


def test_concurrent_updates_are_serialised(tmp_path: pathlib.Path) -> None:
    """Two overlapping updates on a 1-version song must yield 3 versions, never 2."""
    create_song(tmp_path, "x", "kick snare")
    barrier = threading.Barrier(2)
    errors: list[BaseException] = []

    def _update(from_: str, to: str) -> None:
        barrier.wait()
        try:
            update_song(tmp_path, "x", from_, to)
        except BaseException as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [
        threading.Thread(target=_update, args=("kick", "bd")),
        threading.Thread(target=_update, args=("snare", "sd")),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert errors == []
    detail = detail_song(tmp_path, "x")
    assert detail.total_versions == 3
    assert detail.code == "bd sd"


def test_lock_marker_removed_after_mutation(tmp_path: pathlib.Path) -> None:
    create_song(tmp_path, "x", "A")
    assert not (tmp_path / "songs.lock").exists()


def test_failed_mutation_releases_lock(tmp_path: pathlib.Path) -> None:
    create_song(tmp_path, "x", "A")
    with pytest.raises(NoMatch):
        update_song(tmp_path, "x", "Z", "B")
    assert not (tmp_path / "songs.lock").exists()


# ---------------------------------------------------------------------------
# Store paths
# ---------------------------------------------------------------------------


def test_store_paths_live_under_root(tmp_path: pathlib.Path) -> None:
    assert songs_path(tmp_path) == tmp_path / "songs.json"
    assert songs_lock_path(tmp_path) == tmp_path / "songs.lock"


def test_create_writes_the_songs_path(tmp_path: pathlib.Path) -> None:
    root = tmp_path / "store"
    create_song(root, "groove", 's("bd")')

    doc = json.loads(songs_path(root).read_text())
    assert list(doc["songs"]) == ["groove"]
    assert songs_lock_path(root).parent == root
