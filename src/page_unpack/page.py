from __future__ import annotations

"""Page fetching and `<script>` enumeration."""

import logging
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from .fetch import fetch_text
from .types import ScriptReference

LOGGER = logging.getLogger(__name__)


def parse_scripts(html: str, page_url: str) -> list[ScriptReference]:
    """List the page's scripts in document order.

    `src` attributes are resolved against `page_url`. Inline scripts with no
    text are left out.
    """

    soup = BeautifulSoup(html, "html.parser")
    scripts: list[ScriptReference] = []

    for tag in soup.find_all("script"):
        src = tag.get("src")
        if src:
            scripts.append(ScriptReference.external(urljoin(page_url, src.strip())))
            continue

        text = str(tag.string or "")
        if text.strip():
            scripts.append(ScriptReference.inline(text))

    return scripts


async def fetch_scripts(client: httpx.AsyncClient, page_url: str) -> list[ScriptReference]:
    html = await fetch_text(client, page_url)
    scripts = parse_scripts(html, page_url)
    LOGGER.info(
        "Found %d scripts on %s (%d inline)",
        len(scripts),
        page_url,
        sum(1 for s in scripts if s.text is not None),
    )
    return scripts
