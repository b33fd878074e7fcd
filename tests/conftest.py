"""Pytest configuration and fixtures."""
from __future__ import annotations

import pathlib

import pytest

from strudel_cli.config import settings
from tests.fakes import FakeEngine


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def strudel_home(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> pathlib.Path:
    """Point ``settings.home`` at an isolated per-test directory.

    Nothing under the real ``~/.strudel-cli`` is ever touched.
    """
    home = tmp_path / ".strudel-cli"
    monkeypatch.setattr(settings, "home", home)
    return home


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()
