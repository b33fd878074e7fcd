"""Background process holding the pattern engine and playback state."""
from __future__ import annotations
