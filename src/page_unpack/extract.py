from __future__ import annotations

"""Writing the reconstructed tree to disk.

Files are written one after another. Re-running with the same input
rewrites the same files with the same contents.

This module is intentionally filesystem-focused and does no fetching.
"""

import logging
from collections.abc import Iterable
from pathlib import Path

from .errors import OutputError, UnsafePathError
from .paths import safe_join
from .types import OutputFile

LOGGER = logging.getLogger(__name__)


def write_sources(files: Iterable[OutputFile], output_dir: Path) -> int:
    """Write every file under `output_dir`.

    Returns the number of files written. Files whose path is unsafe (empty,
    or escaping `output_dir`) are skipped with a warning. Filesystem failures
    raise OutputError.
    """

    written = 0

    for entry in files:
        try:
            out_path = safe_join(output_dir, entry.relative_path)
        except UnsafePathError as e:
            LOGGER.warning("SKIP: %s (%s)", entry.relative_path, e)
            continue

        try:
            out_path.parent.mkdir(parents=True, exist_ok=True)
            # Lone surrogates from sourcemap JSON are written as U+FFFD.
            out_path.write_text(entry.content, encoding="utf-8", errors="replace")
        except OSError as e:
            raise OutputError(f"Could not write {out_path}: {e}", path=entry.relative_path) from e
        written += 1
        LOGGER.debug("  %s", out_path.relative_to(output_dir))

    return written
