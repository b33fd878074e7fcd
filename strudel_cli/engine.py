"""Pattern engine capability interface.

The daemon only ever talks to an engine through :class:`PatternEngine`
(``evaluate``, ``validate``, ``stop``, ``pause``, ``start``).  Which engine
runs is configured with ``STRUDEL_ENGINE=package.module:factory``; the
factory is called with no arguments and must return a ``PatternEngine``.

The bundled :class:`SilentEngine` renders no audio.  It performs a
structural syntax check (balanced brackets and closed string literals) and
keeps track of the active pattern, which is enough to drive the control
protocol end to end on machines without an audio renderer.
"""
from __future__ import annotations

import importlib
import logging
import re
from dataclasses import dataclass
from typing import Callable, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a syntax pre-check.  ``line``/``column`` are 1-based."""

    valid: bool
    error: str | None = None
    line: int | None = None
    column: int | None = None


class EngineError(Exception):
    """Raised by ``evaluate`` when the pattern cannot be run."""


@runtime_checkable
class PatternEngine(Protocol):
    async def evaluate(self, code: str) -> None: ...

    def validate(self, code: str) -> ValidationResult: ...

    def stop(self) -> None: ...

    def pause(self) -> None: ...

    def start(self) -> None: ...


# ---------------------------------------------------------------------------
# CLI input normalisation
# ---------------------------------------------------------------------------

_LABEL_RE = re.compile(r"([^\n;])\s+(_?\$:)")


def preprocess_code(code: str) -> str:
    """Put every ``$:`` / ``_$:`` pattern label on its own statement line.

    CLI users pass code on one line (``setcpm(30) $: s("bd")``) but pattern
    labels must start a statement.
    """
    return _LABEL_RE.sub(r"\1;\n\2", code)


# ---------------------------------------------------------------------------
# Structural syntax check
# ---------------------------------------------------------------------------

_OPENERS = {"(": ")", "[": "]", "{": "}", "<": ">"}
_CLOSERS = {v: k for k, v in _OPENERS.items()}
_QUOTES = {'"', "'", "`"}


def _blank_comments(code: str) -> str:
    """Replace `//` and `/* */` comments with spaces, keeping newlines."""
    out = list(code)
    i, n = 0, len(code)
    quote: str | None = None
    while i < n:
        ch = code[i]
        if quote is not None:
            if ch == "\\":
                i += 2
                continue
            if ch == quote or (ch == "\n" and quote != "`"):
                quote = None
        elif ch in _QUOTES:
            quote = ch
        elif code.startswith("//", i):
            end = code.find("\n", i)
            end = n if end == -1 else end
            out[i:end] = " " * (end - i)
            i = end
            continue
        elif code.startswith("/*", i):
            end = code.find("*/", i + 2)
            end = n if end == -1 else end + 2
            for j in range(i, end):
                if out[j] != "\n":
                    out[j] = " "
            i = end
            continue
        i += 1
    return "".join(out)


def check_structure(code: str) -> ValidationResult:
    """Return the first unbalanced bracket or unterminated string in *code*.

    Brackets inside string literals are checked separately from the
    surrounding code, because mini-notation (``"<c e g>*2 [bd sd]"``) nests
    its own groups inside the string.  ``<``/``>`` only count as brackets
    inside strings; in code they are comparison operators.
    Comments are ignored.
    """
    stack: list[tuple[str, int, int]] = []
    line, col = 1, 0
    quote: tuple[str, int, int] | None = None
    inner: list[tuple[str, int, int]] = []
    escaped = False

    for ch in _blank_comments(code):
        if ch == "\n":
            line, col = line + 1, 0
        else:
            col += 1

        if quote is not None:
            q, qline, qcol = quote
            if escaped:
                escaped = False
                continue
            if ch == "\\":
                escaped = True
                continue
            if ch == q:
                if inner:
                    open_ch, oline, ocol = inner[-1]
                    return ValidationResult(
                        valid=False,
                        error=f"Unclosed '{open_ch}' in pattern string",
                        line=oline,
                        column=ocol,
                    )
                quote = None
                continue
            if ch == "\n" and q != "`":
                return ValidationResult(
                    valid=False,
                    error="Unterminated string literal",
                    line=qline,
                    column=qcol,
                )
            if ch in _OPENERS:
                inner.append((ch, line, col))
            elif ch in _CLOSERS:
                if not inner or inner[-1][0] != _CLOSERS[ch]:
                    return ValidationResult(
                        valid=False,
                        error=f"Unexpected '{ch}' in pattern string",
                        line=line,
                        column=col,
                    )
                inner.pop()
            continue

        if ch in _QUOTES:
            quote = (ch, line, col)
            inner = []
        elif ch in "([{":
            stack.append((ch, line, col))
        elif ch in ")]}":
            if not stack or stack[-1][0] != _CLOSERS[ch]:
                return ValidationResult(
                    valid=False,
                    error=f"Unexpected token '{ch}'",
                    line=line,
                    column=col,
                )
            stack.pop()

    if quote is not None:
        _, qline, qcol = quote
        return ValidationResult(
            valid=False, error="Unterminated string literal", line=qline, column=qcol
        )
    if stack:
        open_ch, oline, ocol = stack[-1]
        return ValidationResult(
            valid=False, error=f"Unclosed '{open_ch}'", line=oline, column=ocol
        )
    return ValidationResult(valid=True)


# ---------------------------------------------------------------------------
# Bundled engine
# ---------------------------------------------------------------------------


class SilentEngine:
    """Engine that tracks patterns without producing sound."""

    def __init__(self) -> None:
        self.active_code: str | None = None
        self.running = False

    async def evaluate(self, code: str) -> None:
        code = preprocess_code(code)
        result = self.validate(code)
        if not result.valid:
            loc = f" (line {result.line}, col {result.column})" if result.line else ""
            raise EngineError(f"Syntax error{loc}: {result.error}")
        self.active_code = code
        self.running = True
        logger.debug("🎵 Silent engine now holds %d chars of pattern code", len(code))

    def validate(self, code: str) -> ValidationResult:
        return check_structure(preprocess_code(code))

    def stop(self) -> None:
        self.active_code = None
        self.running = False

    def pause(self) -> None:
        self.running = False

    def start(self) -> None:
        if self.active_code is not None:
            self.running = True


def load_engine(path: str) -> PatternEngine:
    """Import ``package.module:factory`` and call the factory.

    Raises:
        ValueError:  *path* is not in ``module:attr`` form.
        ImportError: The module cannot be imported.
        TypeError:   The factory's result does not satisfy ``PatternEngine``.
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Engine path must look like 'package.module:factory', got {path!r}")
    factory: Callable[[], object] = getattr(importlib.import_module(module_name), attr)
    engine = factory()
    if not isinstance(engine, PatternEngine):
        raise TypeError(f"{path} did not produce a PatternEngine")
    logger.info("✅ Engine loaded: %s", path)
    return engine
