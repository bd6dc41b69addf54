from __future__ import annotations

"""Sourcemap retrieval and source extraction.

Delivered JavaScript points at its sourcemap with a trailing comment:

    //# sourceMappingURL=main.3f2a.js.map

The reference is resolved against the script's own URL. `data:` references
are decoded in place instead of fetched.

Fetch and parse failures are not caught here; one bad map aborts the run.
"""

import base64
import binascii
import json
import logging
from collections.abc import Iterable
from urllib.parse import unquote, urljoin

import httpx

from .errors import ConsistencyError, ParseError
from .fetch import fetch_text, gather_all
from .types import MapDocument, RawDocument, SourceRecord

LOGGER = logging.getLogger(__name__)

DIRECTIVE_PREFIXES = ("//# sourceMappingURL=", "//@ sourceMappingURL=")


def find_sourcemap_urls(document: RawDocument) -> list[str]:
    """Return the absolute URL of every sourcemap directive, in line order."""

    urls: list[str] = []
    for line in document.text.splitlines():
        line = line.strip()
        for prefix in DIRECTIVE_PREFIXES:
            if line.startswith(prefix):
                reference = line[len(prefix) :].strip()
                if reference:
                    urls.append(urljoin(document.location, reference))
                break
    return urls


def decode_data_url(url: str) -> str:
    header, sep, payload = url[len("data:") :].partition(",")
    if not sep:
        raise ParseError("Malformed data: sourcemap reference", location=url[:64])

    if header.endswith(";base64"):
        try:
            return base64.b64decode(payload).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise ParseError(f"Undecodable inline sourcemap: {exc}", location=url[:64]) from exc

    return unquote(payload)


def parse_sourcemap(text: str, location: str = "") -> MapDocument:
    """Parse a sourcemap JSON document.

    Only `sources` and `sourcesContent` are read; `mappings`, `names` and any
    other fields are accepted and ignored.
    """

    try:
        data = json.loads(text)
    except ValueError as exc:
        raise ParseError(f"Sourcemap is not valid JSON: {exc}", location=location) from exc

    if not isinstance(data, dict):
        raise ParseError("Sourcemap is not a JSON object", location=location)

    sources = data.get("sources")
    if not isinstance(sources, list) or not all(isinstance(s, str) for s in sources):
        raise ParseError("Sourcemap `sources` must be a list of strings", location=location)

    sources_content = data.get("sourcesContent")
    if sources_content is None:
        sources_content = []
    if not isinstance(sources_content, list) or not all(
        c is None or isinstance(c, str) for c in sources_content
    ):
        raise ParseError(
            "Sourcemap `sourcesContent` must be a list of strings or nulls",
            location=location,
        )

    return MapDocument(sources=tuple(sources), sources_content=tuple(sources_content))


def extract_sources(sourcemap: MapDocument) -> list[SourceRecord]:
    """Pair each source path with its content, in sourcemap order."""

    if len(sourcemap.sources) != len(sourcemap.sources_content):
        raise ConsistencyError(
            f"Sourcemap lists {len(sourcemap.sources)} sources but "
            f"{len(sourcemap.sources_content)} sourcesContent entries"
        )

    return [
        SourceRecord(path=path, text=content or "")
        for path, content in zip(sourcemap.sources, sourcemap.sources_content)
    ]


async def load_sourcemap(client: httpx.AsyncClient, url: str) -> MapDocument:
    if url.startswith("data:"):
        text = decode_data_url(url)
    else:
        text = await fetch_text(client, url)
    return parse_sourcemap(text, location=url)


def unique_sourcemaps(sourcemaps: Iterable[MapDocument]) -> list[MapDocument]:
    return list(dict.fromkeys(sourcemaps))


async def retrieve_sourcemaps(
    client: httpx.AsyncClient, documents: Iterable[RawDocument]
) -> list[MapDocument]:
    """Fetch and parse every sourcemap referenced by `documents`.

    All maps are requested concurrently. Duplicate maps (same sources and
    contents) are returned once, in first-seen order.
    """

    urls = list(dict.fromkeys(url for doc in documents for url in find_sourcemap_urls(doc)))
    LOGGER.info("Fetching %d sourcemaps", len(urls))

    sourcemaps = await gather_all(load_sourcemap(client, url) for url in urls)
    return unique_sourcemaps(sourcemaps)
