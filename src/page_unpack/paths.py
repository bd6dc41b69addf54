from __future__ import annotations

"""Path canonicalization and safe filesystem joins.

Sourcemaps produced by webpack name their sources with virtual paths
(e.g. `webpack:///./src/index.js`, `webpack/bootstrap 1f2e...`,
`./src/pages lazy ^\\.\\/.*$ namespace object`).

This module provides:
- `canonicalize_path()` to turn those into stable, relative paths.
- Naming helpers for embedded scripts and content hashes.
- A `safe_join()` helper that prevents directory traversal when writing outputs.
"""

import hashlib
import re
from pathlib import Path, PurePosixPath

from .errors import UnsafePathError

RUNTIME_DIR = "_webpack"
EMBEDDED_DIR = "_embedded"
BOOTSTRAP_PATH = f"{RUNTIME_DIR}/bootstrap.js"
LAZY_NAMESPACE_NAME = "@@lazy-namespace@@.js"

# `webpack:///src/a.js` (webpack 4) and `webpack://app-name/./src/a.js` (webpack 5)
_WEBPACK_ROOT = re.compile(r"^webpack://[^/]*/")
_BOOTSTRAP = re.compile(r"^webpack/bootstrap(?:[\s:].*)?$")
_RUNTIME = re.compile(r"^webpack/runtime/(?P<name>.+?)(?:\.js)?$")
_BUILDIN_PREFIX = "(webpack)/buildin/"

_LAZY_RECURSIVE = re.compile(r"^(?P<dir>.*?)[ _]lazy[ _]recursive(?:[ _].*)?$")
_LAZY_ENTRY = re.compile(r"^(?P<dir>.*?)[ _]lazy[ _]\^.*[ _]namespace[ _]object$")

_TRAILING_MARKER = re.compile(r"\$+$")
_QUERY_OR_FRAGMENT = re.compile(r"[?#].*", re.DOTALL)
_DRIVE_LETTER = re.compile(r"^[A-Za-z]:$")


def _rewrite_runtime_module(path: str) -> str:
    """Move webpack's own runtime modules under the reserved `_webpack/` directory."""

    if _BOOTSTRAP.match(path):
        return BOOTSTRAP_PATH

    match = _RUNTIME.match(path)
    if match:
        return f"{RUNTIME_DIR}/runtime/{match.group('name')}.js"

    if path.startswith(_BUILDIN_PREFIX):
        return f"{RUNTIME_DIR}/buildin/{path[len(_BUILDIN_PREFIX):]}"

    return path


def _collapse_lazy_namespace(path: str) -> str:
    for pattern in (_LAZY_RECURSIVE, _LAZY_ENTRY):
        match = pattern.match(path)
        if match:
            directory = match.group("dir").rstrip("/")
            return f"{directory}/{LAZY_NAMESPACE_NAME}" if directory else LAZY_NAMESPACE_NAME
    return path


def _split_segments(path: str) -> tuple[list[str], bool]:
    """Resolve `.`/`..` segments. Returns the parts and whether `..` tried to climb above root."""

    path = path.replace("\\", "/").lstrip("/")

    parts: list[str] = []
    attempted_escape = False
    for part in path.split("/"):
        if part in ("", "."):
            continue
        if _DRIVE_LETTER.match(part):
            continue
        if part == "..":
            if parts:
                parts.pop()
            else:
                attempted_escape = True
            continue
        parts.append(part)

    return parts, attempted_escape


def _rewrite_once(path: str) -> str:
    path = _WEBPACK_ROOT.sub("", path, count=1)
    path = _rewrite_runtime_module(path)
    path = _TRAILING_MARKER.sub("", path)
    path = _collapse_lazy_namespace(path)
    path = _QUERY_OR_FRAGMENT.sub("", path)

    parts, _ = _split_segments(path)
    return "/".join(parts)


def canonicalize_path(virtual_path: str) -> str:
    """Canonicalize a sourcemap virtual path into a relative POSIX path.

    The rewrites run in a fixed order and are repeated until the path stops
    changing, since one rewrite can expose work for an earlier one
    (`a.js$?q` only ends in `$` once the query is gone). `..` segments that
    would climb above the output root are dropped. An input with no usable
    segments yields `""`.
    """

    path = _rewrite_once(virtual_path)
    while True:
        rewritten = _rewrite_once(path)
        if rewritten == path:
            return path
        path = rewritten


def text_hash(text: str) -> str:
    """Short, stable digest of `text` as 8 lowercase hex characters."""

    # Sourcemap JSON may carry lone surrogates ("\ud800"); hash them as-is.
    return hashlib.sha256(text.encode("utf-8", "surrogatepass")).hexdigest()[:8]


def embedded_script_path(text: str) -> str:
    return f"{EMBEDDED_DIR}/{text_hash(text)}.js"


def normalize_relative_path(untrusted_path: str) -> str:
    """Normalize an untrusted path into a safe, relative, POSIX-like path.

    - Removes URL schemes ("file://", "webpack://", etc.)
    - Normalizes separators to '/'
    - Resolves '.' and '..' segments
    - Strips Windows drive letters

    Raises UnsafePathError for empty paths or any attempt to escape above the
    output directory.
    """

    path = untrusted_path
    if "://" in path:
        path = path.split("://", 1)[1]

    parts, attempted_escape = _split_segments(path)

    if attempted_escape:
        raise UnsafePathError(f"Path attempts to escape root: {untrusted_path!r}")

    if not parts:
        raise UnsafePathError(f"Unsafe/empty path: {untrusted_path!r}")

    return str(PurePosixPath(*parts))


def safe_join(base: Path, relative_path: str) -> Path:
    """Join an untrusted path to a base directory without allowing traversal."""

    rel = normalize_relative_path(relative_path)

    # Convert posix-ish path to platform path safely.
    joined = base.joinpath(*PurePosixPath(rel).parts)

    base_resolved = base.resolve(strict=False)
    joined_resolved = joined.resolve(strict=False)

    if not joined_resolved.is_relative_to(base_resolved):
        raise UnsafePathError(f"Path escapes output directory: {relative_path!r}")

    return joined
