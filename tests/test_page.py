from __future__ import annotations

import unittest

import httpx

from page_unpack.errors import FetchError
from page_unpack.fetch import build_client
from page_unpack.page import fetch_scripts, parse_scripts
from page_unpack.types import ScriptKind, ScriptReference

PAGE = """<!doctype html>
<html>
<head>
  <script>window.__CONFIG__ = {"a": 1};</script>
  <script src="/static/js/runtime.js"></script>
  <script src="vendor.js" defer></script>
  <script src="https://cdn.test/lib.js"></script>
  <script src="//cdn.test/proto-relative.js"></script>
  <script>   </script>
</head>
<body><script type="module">import("./x.js")</script></body>
</html>
"""


class TestParseScripts(unittest.TestCase):
    def test_lists_scripts_in_document_order(self):
        scripts = parse_scripts(PAGE, "https://x.test/app/index.html")
        self.assertEqual(
            scripts,
            [
                ScriptReference.inline('window.__CONFIG__ = {"a": 1};'),
                ScriptReference.external("https://x.test/static/js/runtime.js"),
                ScriptReference.external("https://x.test/app/vendor.js"),
                ScriptReference.external("https://cdn.test/lib.js"),
                ScriptReference.external("https://cdn.test/proto-relative.js"),
                ScriptReference.inline('import("./x.js")'),
            ],
        )

    def test_kinds(self):
        scripts = parse_scripts(PAGE, "https://x.test/")
        self.assertEqual(scripts[0].kind, ScriptKind.INLINE)
        self.assertIsNone(scripts[0].location)
        self.assertEqual(scripts[1].kind, ScriptKind.EXTERNAL)
        self.assertIsNone(scripts[1].text)

    def test_page_without_scripts(self):
        self.assertEqual(parse_scripts("<p>hello</p>", "https://x.test/"), [])


class TestFetchScripts(unittest.IsolatedAsyncioTestCase):
    async def test_fetches_page(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text=PAGE)

        async with build_client(transport=httpx.MockTransport(handler)) as client:
            scripts = await fetch_scripts(client, "https://x.test/")
        self.assertEqual(len(scripts), 6)

    async def test_server_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        async with build_client(transport=httpx.MockTransport(handler)) as client:
            with self.assertRaises(FetchError):
                await fetch_scripts(client, "https://x.test/")

    async def test_transport_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with build_client(transport=httpx.MockTransport(handler)) as client:
            with self.assertRaises(FetchError):
                await fetch_scripts(client, "https://x.test/")


if __name__ == "__main__":
    unittest.main()
