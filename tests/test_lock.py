"""Tests for strudel_cli/lock.py — the mkdir-based inter-process lock."""
from __future__ import annotations

import pathlib
import threading
import time

import pytest

from strudel_cli.lock import dir_lock


def test_lock_marker_exists_only_while_held(tmp_path: pathlib.Path) -> None:
    marker = tmp_path / "state" / "songs.lock"
    with dir_lock(marker):
        assert marker.is_dir()
    assert not marker.exists()


def test_lock_released_when_body_raises(tmp_path: pathlib.Path) -> None:
    marker = tmp_path / "songs.lock"
    with pytest.raises(RuntimeError):
        with dir_lock(marker):
            raise RuntimeError("boom")
    assert not marker.exists()


def test_second_holder_waits_for_release(tmp_path: pathlib.Path) -> None:
    marker = tmp_path / "songs.lock"
    order: list[str] = []
    held = threading.Event()

    def _holder() -> None:
        with dir_lock(marker, timeout=5.0, poll_interval=0.01):
            held.set()
            time.sleep(0.2)
            order.append("first-release")

    t = threading.Thread(target=_holder)
    t.start()
    held.wait(timeout=5)
    with dir_lock(marker, timeout=5.0, poll_interval=0.01):
        order.append("second-acquire")
    t.join(timeout=5)

    assert order == ["first-release", "second-acquire"]


def test_stale_marker_is_taken_over(tmp_path: pathlib.Path) -> None:
    """A marker left behind by a crashed holder is removed after the timeout."""
    marker = tmp_path / "songs.lock"
    marker.mkdir()

    start = time.monotonic()
    with dir_lock(marker, timeout=0.1, poll_interval=0.01):
        assert marker.is_dir()
    elapsed = time.monotonic() - start

    assert elapsed >= 0.1
    assert not marker.exists()
