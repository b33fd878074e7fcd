"""Strudel CLI — versioned live-coding songs played through a background daemon."""
from __future__ import annotations

__version__ = "1.0.0"
