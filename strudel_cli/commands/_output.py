"""Terminal rendering shared by the Strudel commands."""
from __future__ import annotations

import logging
from typing import NoReturn, Optional

import typer

from strudel_cli.errors import ExitCode, StrudelError

logger = logging.getLogger(__name__)

_RULE = "──────────────────────────────────"


def error_message(exc: Exception) -> str:
    return exc.message if isinstance(exc, StrudelError) else str(exc) or type(exc).__name__


def exit_with(exc: Exception) -> NoReturn:
    """Echo *exc* and exit with its code.

    Errors go to stdout so ``typer.testing.CliRunner`` captures them in
    ``result.output``.  Anything that is not a :class:`StrudelError` (a
    corrupt songs file, an unwritable state directory) is logged with its
    traceback and exits with ``ExitCode.FAILURE``.
    """
    if isinstance(exc, StrudelError):
        typer.echo(f"❌ {exc.message}")
        raise typer.Exit(code=exc.exit_code)
    logger.error("❌ Unexpected error: %s", exc, exc_info=True)
    typer.echo(f"❌ {error_message(exc)}")
    raise typer.Exit(code=ExitCode.FAILURE)


def echo_code_block(code: str, indent: str = "") -> None:
    typer.echo(f"{indent}┌{_RULE}")
    for line in code.split("\n"):
        typer.echo(f"{indent}│ {line}")
    typer.echo(f"{indent}└{_RULE}")


def format_location(line: Optional[int], column: Optional[int]) -> str:
    if line is None:
        return ""
    return f" (line {line}, col {column})" if column is not None else f" (line {line})"


def echo_code_with_error(code: str, line: Optional[int], column: Optional[int]) -> None:
    """Print *code* with a caret under the reported error position."""
    typer.echo(f"┌{_RULE}")
    for n, text in enumerate(code.split("\n"), start=1):
        marker = "→" if n == line else " "
        typer.echo(f"│{marker}{n:>3} │ {text}")
        if n == line and column is not None and column >= 1:
            typer.echo(f"│     │ {' ' * (column - 1)}^")
    typer.echo(f"└{_RULE}")
