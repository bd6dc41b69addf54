from __future__ import annotations

"""Reconstruction pipeline.

    page -> scripts -> sourcemaps -> sources            (pass 1)
         -> bootstrap chunk table -> chunks -> sources  (pass 2, one hop only)
         -> dedupe -> format -> files

Every fetch stage runs its requests concurrently and waits for all of them.
Nothing is written until the whole pipeline has succeeded.
"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import httpx

from .chunks import discover_chunk_urls
from .dedupe import dedupe_sources
from .extract import write_sources
from .fetch import DEFAULT_TIMEOUT, build_client, fetch_documents
from .formatting import Formatter, format_source, resolve_formatter
from .page import fetch_scripts
from .paths import canonicalize_path, embedded_script_path
from .sourcemap import extract_sources, retrieve_sourcemaps, unique_sourcemaps
from .types import MapDocument, OutputFile, RawDocument, ReconstructResult, ScriptKind, SourceRecord

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconstructOptions:
    discover_chunks: bool = True
    format_sources: bool = True
    formatter: str = "auto"
    timeout: float = DEFAULT_TIMEOUT


async def recover_sources(
    client: httpx.AsyncClient, documents: Iterable[RawDocument]
) -> tuple[list[MapDocument], list[SourceRecord]]:
    """Sourcemaps referenced by `documents` and their canonicalized sources."""
    sourcemaps = await retrieve_sourcemaps(client, documents)
    records = [
        SourceRecord(path=canonicalize_path(record.path), text=record.text)
        for sourcemap in sourcemaps
        for record in extract_sources(sourcemap)
    ]
    return sourcemaps, records


def _merge(*passes: Iterable[SourceRecord]) -> list[SourceRecord]:
    merged = dict.fromkeys(record for records in passes for record in records)
    kept = []
    for record in merged:
        if not record.path:
            LOGGER.warning("Skipping a source with no usable path (%d chars)", len(record.text))
            continue
        kept.append(record)
    return kept


async def _reconstruct(
    page_url: str,
    options: ReconstructOptions,
    client: httpx.AsyncClient,
    formatter: Formatter | None,
) -> ReconstructResult:
    scripts = await fetch_scripts(client, page_url)

    embedded = [
        SourceRecord(path=embedded_script_path(script.text), text=script.text)
        for script in scripts
        if script.kind is ScriptKind.INLINE
    ]
    script_urls = list(
        dict.fromkeys(script.location for script in scripts if script.kind is ScriptKind.EXTERNAL)
    )

    documents = await fetch_documents(client, script_urls)
    first_maps, first_pass = await recover_sources(client, documents)
    LOGGER.info("Recovered %d sources from %d sourcemaps", len(first_pass), len(first_maps))

    chunk_urls: list[str] = []
    second_maps: list[MapDocument] = []
    second_pass: list[SourceRecord] = []
    if options.discover_chunks:
        fetched = set(script_urls)
        chunk_urls = [url for url in discover_chunk_urls(first_pass, page_url) if url not in fetched]
        if chunk_urls:
            LOGGER.info("Fetching %d lazy chunks", len(chunk_urls))
            chunk_documents = await fetch_documents(client, chunk_urls)
            second_maps, second_pass = await recover_sources(client, chunk_documents)
            LOGGER.info("Recovered %d sources from chunks", len(second_pass))

    records = dedupe_sources(_merge(embedded, first_pass, second_pass))

    if options.format_sources:
        formatter = formatter or resolve_formatter(options.formatter)
        records = [
            SourceRecord(path=record.path, text=format_source(record.text, record.path, formatter))
            for record in records
        ]

    return ReconstructResult(
        files=tuple(OutputFile(relative_path=r.path, content=r.text) for r in records),
        chunk_urls=tuple(chunk_urls),
        map_count=len(unique_sourcemaps([*first_maps, *second_maps])),
    )


async def reconstruct(
    page_url: str,
    options: ReconstructOptions | None = None,
    *,
    client: httpx.AsyncClient | None = None,
    formatter: Formatter | None = None,
) -> ReconstructResult:
    """Rebuild the source tree behind `page_url`.

    Any fetch, parse, consistency, collision or formatting failure aborts the
    run with the matching `PageUnpackError`.
    """
    options = options or ReconstructOptions()
    if client is not None:
        return await _reconstruct(page_url, options, client, formatter)

    async with build_client(timeout=options.timeout) as owned_client:
        return await _reconstruct(page_url, options, owned_client, formatter)


def reconstruct_sync(
    page_url: str,
    options: ReconstructOptions | None = None,
    *,
    formatter: Formatter | None = None,
) -> ReconstructResult:
    """Synchronous wrapper for `reconstruct`."""
    return asyncio.run(reconstruct(page_url, options, formatter=formatter))


def write_output(result: ReconstructResult, output_dir: Path) -> int:
    return write_sources(result.files, output_dir)
