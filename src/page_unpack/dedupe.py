from __future__ import annotations

"""Collapse sources that land on the same path.

Several bundles on one page often embed the same module. Copies with
identical content collapse to one file. Copies whose content differs are all
kept: the longest one keeps the path and the others get a content-hash
suffix, e.g. `src/a.@@deduped@@.1c2d3e4f.js`.
"""

import logging
from collections.abc import Iterable
from pathlib import PurePosixPath

from .errors import PathCollisionError
from .paths import text_hash
from .types import SourceRecord

LOGGER = logging.getLogger(__name__)

DEDUPED_MARKER = "@@deduped@@"


def deduped_path(path: str, text: str) -> str:
    """Insert `.@@deduped@@.<hash>` between the file's stem and extension."""

    pure = PurePosixPath(path)
    if not pure.name:
        return f"{DEDUPED_MARKER}.{text_hash(text)}"
    name = f"{pure.stem}.{DEDUPED_MARKER}.{text_hash(text)}{pure.suffix}"
    return str(pure.with_name(name))


def _dedupe_group(path: str, members: list[SourceRecord]) -> list[SourceRecord]:
    # Stable: equal lengths keep their original order.
    ordered = sorted(members, key=lambda s: -len(s.text))

    seen: set[str] = set()
    distinct: list[SourceRecord] = []
    for member in ordered:
        if member.text in seen:
            continue
        seen.add(member.text)
        distinct.append(member)

    first, rest = distinct[0], distinct[1:]
    if rest:
        LOGGER.debug("%s has %d diverging copies", path, len(rest))
    return [first, *(SourceRecord(path=deduped_path(path, s.text), text=s.text) for s in rest)]


def dedupe_sources(records: Iterable[SourceRecord]) -> list[SourceRecord]:
    """Return records with globally unique paths, sorted by path.

    Raises PathCollisionError if a renamed copy coincides with another path
    that holds different content.
    """

    groups: dict[str, list[SourceRecord]] = {}
    for record in records:
        groups.setdefault(record.path, []).append(record)

    by_path: dict[str, SourceRecord] = {}
    for path, members in groups.items():
        for record in _dedupe_group(path, members):
            existing = by_path.get(record.path)
            if existing is None:
                by_path[record.path] = record
            elif existing.text != record.text:
                raise PathCollisionError(f"Different sources collide on {record.path!r}")

    return [by_path[path] for path in sorted(by_path)]
