from __future__ import annotations

"""Data model for the reconstruction pipeline.

Every record is immutable. Stages hand new tuples/lists to the next stage
instead of mutating what they received.
"""

from dataclasses import dataclass
from enum import Enum


class ScriptKind(Enum):
    INLINE = "inline"
    EXTERNAL = "external"


@dataclass(frozen=True)
class ScriptReference:
    """A `<script>` tag found on the page."""

    kind: ScriptKind
    location: str | None = None
    text: str | None = None

    @classmethod
    def inline(cls, text: str) -> "ScriptReference":
        return cls(kind=ScriptKind.INLINE, text=text)

    @classmethod
    def external(cls, location: str) -> "ScriptReference":
        return cls(kind=ScriptKind.EXTERNAL, location=location)


@dataclass(frozen=True)
class RawDocument:
    """Fetched text plus the URL it came from (needed to resolve relative maps)."""

    location: str
    text: str


@dataclass(frozen=True)
class MapDocument:
    sources: tuple[str, ...]
    sources_content: tuple[str | None, ...]


@dataclass(frozen=True)
class SourceRecord:
    path: str
    text: str


@dataclass(frozen=True)
class OutputFile:
    relative_path: str
    content: str


@dataclass(frozen=True)
class ChunkTemplate:
    """Chunk naming recovered from the bundler's loader.

    A chunk `id` lives at `<prefix><name>.<hash><suffix>`, where `name` is the
    id unless the loader maps it to a chunk name.
    """

    prefix: str
    suffix: str
    hashes: tuple[tuple[str, str], ...]
    pattern: str
    names: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class ReconstructResult:
    files: tuple[OutputFile, ...]
    chunk_urls: tuple[str, ...]
    map_count: int
