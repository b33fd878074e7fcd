"""Strudel CLI subcommands.

Each module defines one plain command function; ``strudel_cli.app``
registers them with ``@cli.command`` so options may follow positional
arguments (``strudel update groove --from a --to b``).
"""
from __future__ import annotations
