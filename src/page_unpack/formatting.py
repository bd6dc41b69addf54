from __future__ import annotations

"""Formatting of recovered sources.

`format_source()` runs an ordered list of attempts until one succeeds:

1. the source's own path as the dialect hint,
2. no hint (plain JavaScript),
3. the path with `.tsx` appended,
4. the path with `.ts` appended.

The chain is a small state machine: `Attempting(i)` moves to `Succeeded` or to
`Attempting(i + 1)`, and past the last attempt to `Exhausted`.

Two backends are available: the `prettier` executable, and the
`jsbeautifier`/`cssbeautifier` packages when prettier isn't installed.
"""

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Protocol

import cssbeautifier
import jsbeautifier

from .errors import FormatError, FormatExhaustedError

LOGGER = logging.getLogger(__name__)

DEFAULT_HINT_PATH = "source"
ALTERNATE_EXTENSIONS = (".tsx", ".ts")

JS_EXTENSIONS = frozenset({".js", ".mjs", ".cjs", ".jsx", ".ts", ".tsx", ".json"})
CSS_EXTENSIONS = frozenset({".css", ".scss", ".less"})
PASSTHROUGH_EXTENSIONS = frozenset({".html", ".htm", ".vue", ".svelte", ".md", ".txt", ".svg"})


class Formatter(Protocol):
    def format(self, text: str, path_hint: str | None) -> str:
        ...


@dataclass(frozen=True)
class FormatAttempt:
    text: str
    path_hint: str | None


@dataclass(frozen=True)
class Attempting:
    index: int
    errors: tuple[FormatError, ...] = ()


@dataclass(frozen=True)
class Succeeded:
    text: str
    attempt: FormatAttempt


@dataclass(frozen=True)
class Exhausted:
    errors: tuple[FormatError, ...]


FormatState = Attempting | Succeeded | Exhausted


def plan_attempts(text: str, path: str | None) -> tuple[FormatAttempt, ...]:
    base = path or DEFAULT_HINT_PATH
    hints = [path, None, *(f"{base}{ext}" for ext in ALTERNATE_EXTENSIONS)]
    return tuple(FormatAttempt(text=text, path_hint=hint) for hint in dict.fromkeys(hints))


def advance(state: FormatState, attempts: tuple[FormatAttempt, ...], formatter: Formatter) -> FormatState:
    if not isinstance(state, Attempting):
        return state
    if state.index >= len(attempts):
        return Exhausted(errors=state.errors)

    attempt = attempts[state.index]
    try:
        formatted = formatter.format(attempt.text, attempt.path_hint)
    except FormatError as exc:
        LOGGER.debug("Formatting attempt %d (hint %r) failed: %s", state.index + 1, attempt.path_hint, exc)
        return Attempting(index=state.index + 1, errors=(*state.errors, exc))

    return Succeeded(text=formatted, attempt=attempt)


def format_source(text: str, path: str | None, formatter: Formatter) -> str:
    """Format `text`, trying each fallback in turn.

    Raises FormatExhaustedError (carrying `text` and `path`) if every attempt fails.
    """

    attempts = plan_attempts(text, path)
    state: FormatState = Attempting(index=0)
    while isinstance(state, Attempting):
        state = advance(state, attempts, formatter)

    if isinstance(state, Exhausted):
        raise FormatExhaustedError(text, path, state.errors)
    return state.text


class PrettierFormatter:
    """Format through the `prettier` CLI (stdin -> stdout)."""

    def __init__(self, executable: str = "prettier", timeout: float = 60.0):
        self.executable = executable
        self.timeout = timeout

    def format(self, text: str, path_hint: str | None) -> str:
        args = [self.executable]
        args += ["--stdin-filepath", path_hint] if path_hint else ["--parser", "babel"]

        try:
            proc = subprocess.run(
                args,
                input=text,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise FormatError(f"Could not run prettier: {exc}") from exc

        if proc.returncode != 0:
            message = proc.stderr.strip().splitlines()
            raise FormatError(message[0] if message else f"prettier exited with {proc.returncode}")

        return proc.stdout


class BeautifierFormatter:
    """Format with js-beautify's Python packages."""

    def __init__(self, indent_size: int = 4):
        self.indent_size = indent_size

    def format(self, text: str, path_hint: str | None) -> str:
        ext = PurePosixPath(path_hint).suffix.lower() if path_hint else ".js"

        if ext in PASSTHROUGH_EXTENSIONS:
            return text

        # Unknown dialects (.yml, .graphql, ...) are kept as shipped, never run
        # through the JavaScript beautifier.
        if ext not in JS_EXTENSIONS and ext not in CSS_EXTENSIONS:
            LOGGER.debug("No beautifier for %s; keeping it as shipped", path_hint)
            return text

        if ext in JS_EXTENSIONS:
            opts = jsbeautifier.default_options()
            opts.indent_size = self.indent_size
            beautify = jsbeautifier.beautify
        else:
            opts = cssbeautifier.default_options()
            opts.indent_size = self.indent_size
            beautify = cssbeautifier.beautify

        try:
            return beautify(text, opts)
        except Exception as exc:
            raise FormatError(f"Beautifier failed on {path_hint or '<script>'}: {exc}") from exc


def resolve_formatter(name: str = "auto") -> Formatter:
    if name == "beautify":
        return BeautifierFormatter()

    executable = shutil.which("prettier")
    if name == "prettier":
        return PrettierFormatter(executable or "prettier")
    if name == "auto":
        if executable:
            return PrettierFormatter(executable)
        LOGGER.info("prettier not found on PATH; using jsbeautifier")
        return BeautifierFormatter()

    raise ValueError(f"Unknown formatter: {name!r}")
