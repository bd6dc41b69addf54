from __future__ import annotations

"""Async HTTP fetching.

A single `httpx.AsyncClient` is shared by one reconstruction run. Every
stage issues its requests together and waits for the whole batch
(`gather_all`); results come back in request order regardless of which
response finished first. There are no retries: the first failure cancels the
rest of the batch and raises `FetchError`.
"""

import asyncio
import logging
from collections.abc import Awaitable, Iterable, Sequence
from typing import TypeVar

import httpx

from .errors import FetchError
from .types import RawDocument

LOGGER = logging.getLogger(__name__)

USER_AGENT = "page-unpack/0.1"
DEFAULT_TIMEOUT = 30.0

T = TypeVar("T")


def build_client(
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the async client used for pages, scripts, sourcemaps and chunks."""
    return httpx.AsyncClient(
        headers={"User-Agent": USER_AGENT},
        follow_redirects=True,
        timeout=timeout,
        transport=transport,
    )


async def fetch_text(client: httpx.AsyncClient, url: str) -> str:
    """GET `url` and return the decoded body.

    Raises:
        FetchError: On a non-2xx status or any transport error.
    """
    LOGGER.debug("GET %s", url)
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise FetchError(
            f"HTTP {exc.response.status_code} while fetching {url}",
            url=url,
        ) from exc
    except httpx.RequestError as exc:
        raise FetchError(f"Request failed for {url}: {exc}", url=url) from exc

    return response.text


async def gather_all(coros: Iterable[Awaitable[T]]) -> list[T]:
    """`asyncio.gather` that cancels the rest of the batch on the first failure.

    The siblings are awaited after cancelling, so none of them is still
    running when the caller closes the shared client.
    """
    tasks = [asyncio.ensure_future(coro) for coro in coros]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def fetch_document(client: httpx.AsyncClient, url: str) -> RawDocument:
    return RawDocument(location=url, text=await fetch_text(client, url))


async def fetch_documents(
    client: httpx.AsyncClient, urls: Sequence[str]
) -> list[RawDocument]:
    """Fetch every URL concurrently; output order follows `urls`."""
    if not urls:
        return []
    return await gather_all(fetch_document(client, url) for url in urls)
