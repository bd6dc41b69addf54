from __future__ import annotations

import asyncio
import unittest

import httpx

from page_unpack.errors import FetchError
from page_unpack.fetch import build_client, fetch_documents, gather_all


class TestGatherAll(unittest.IsolatedAsyncioTestCase):
    async def test_results_follow_input_order(self):
        async def after(delay, value):
            await asyncio.sleep(delay)
            return value

        self.assertEqual(await gather_all([after(0.02, "a"), after(0, "b")]), ["a", "b"])

    async def test_failure_cancels_and_awaits_siblings(self):
        finished = []

        async def slow():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                finished.append("cancelled")
                raise

        async def fail():
            await asyncio.sleep(0)
            raise FetchError("boom", url="https://x.test/")

        with self.assertRaises(FetchError):
            await gather_all([slow(), fail()])
        self.assertEqual(finished, ["cancelled"])


class TestFetchDocuments(unittest.IsolatedAsyncioTestCase):
    async def test_one_missing_url_aborts_the_batch(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/missing.js":
                return httpx.Response(404)
            return httpx.Response(200, text="ok")

        async with build_client(transport=httpx.MockTransport(handler)) as client:
            with self.assertRaises(FetchError) as ctx:
                await fetch_documents(client, ["https://x.test/a.js", "https://x.test/missing.js"])
        self.assertEqual(ctx.exception.url, "https://x.test/missing.js")

    async def test_empty_batch(self):
        async with build_client(transport=httpx.MockTransport(lambda r: httpx.Response(200))) as client:
            self.assertEqual(await fetch_documents(client, []), [])


if __name__ == "__main__":
    unittest.main()
