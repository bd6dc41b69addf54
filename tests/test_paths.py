from __future__ import annotations

import unittest
from pathlib import Path

from page_unpack.errors import UnsafePathError
from page_unpack.paths import (
    BOOTSTRAP_PATH,
    LAZY_NAMESPACE_NAME,
    canonicalize_path,
    embedded_script_path,
    normalize_relative_path,
    safe_join,
    text_hash,
)


class TestCanonicalizePath(unittest.TestCase):
    def test_strips_webpack_root_and_trailing_marker(self):
        self.assertEqual(canonicalize_path("webpack:///a/b.js"), "a/b.js")
        self.assertEqual(canonicalize_path("webpack:///a/b.js$"), "a/b.js")

    def test_strips_webpack5_namespace(self):
        self.assertEqual(canonicalize_path("webpack://my-app/./src/index.js"), "src/index.js")

    def test_drops_leading_dot_segment(self):
        self.assertEqual(canonicalize_path("webpack:///./src/index.js"), "src/index.js")

    def test_bootstrap_goes_to_reserved_directory(self):
        self.assertEqual(canonicalize_path("webpack:///webpack/bootstrap"), BOOTSTRAP_PATH)
        self.assertEqual(canonicalize_path("webpack:///webpack/bootstrap 5e0b2a8f1c"), BOOTSTRAP_PATH)

    def test_buildin_and_runtime_modules(self):
        self.assertEqual(
            canonicalize_path("webpack:///(webpack)/buildin/global.js"),
            "_webpack/buildin/global.js",
        )
        self.assertEqual(
            canonicalize_path("webpack://app/webpack/runtime/jsonp chunk loading"),
            "_webpack/runtime/jsonp chunk loading.js",
        )

    def test_strips_query_and_fragment(self):
        self.assertEqual(canonicalize_path("webpack:///./src/App.vue?vue&type=script"), "src/App.vue")
        self.assertEqual(canonicalize_path("webpack:///./src/a.css#hash"), "src/a.css")

    def test_lazy_recursive_entries_collapse(self):
        foo = canonicalize_path(r"webpack:///./src/pages lazy recursive ^\.\/foo$")
        bar = canonicalize_path(r"webpack:///./src/pages lazy recursive ^\.\/bar$")
        self.assertEqual(foo, bar)
        self.assertEqual(foo, f"src/pages/{LAZY_NAMESPACE_NAME}")

    def test_lazy_named_entries_collapse(self):
        foo = canonicalize_path(r"webpack:///./src/locales lazy ^\.\/foo\.json$ namespace object")
        bar = canonicalize_path(r"webpack:///./src/locales lazy ^\.\/bar\.json$ namespace object")
        self.assertEqual(foo, bar)
        self.assertEqual(foo, f"src/locales/{LAZY_NAMESPACE_NAME}")

    def test_lazy_underscore_form_collapses(self):
        self.assertEqual(
            canonicalize_path(r"webpack://app/./src/locales/_lazy_^\.\/.*\.json$_namespace_object"),
            f"src/locales/{LAZY_NAMESPACE_NAME}",
        )

    def test_parent_segments_never_escape(self):
        self.assertEqual(
            canonicalize_path("webpack:///../node_modules/react/index.js"),
            "node_modules/react/index.js",
        )
        self.assertEqual(canonicalize_path("/abs/path.js"), "abs/path.js")

    def test_is_idempotent(self):
        inputs = [
            "webpack:///a/b.js$",
            "webpack:///webpack/bootstrap 123",
            "webpack:///(webpack)/buildin/module.js",
            r"webpack:///./src lazy recursive ^\.\/.*$",
            "webpack:///./src/x.vue?type=template#frag",
            "webpack:///../../x\\y.js",
            "plain/relative.ts",
            "a/b.js$?q",
            "a/b.js$#f",
            "webpack:///a/b.js$/",
        ]
        for raw in inputs:
            once = canonicalize_path(raw)
            self.assertEqual(canonicalize_path(once), once, raw)

    def test_marker_before_query_is_stripped(self):
        self.assertEqual(canonicalize_path("a/b.js$?q"), "a/b.js")
        self.assertEqual(canonicalize_path("a/b.js$#f"), "a/b.js")

    def test_empty_result(self):
        self.assertEqual(canonicalize_path("webpack:///"), "")


class TestNaming(unittest.TestCase):
    def test_text_hash_is_fixed_width_hex(self):
        h = text_hash("console.log(1)")
        self.assertEqual(len(h), 8)
        self.assertRegex(h, r"^[0-9a-f]{8}$")
        self.assertEqual(h, text_hash("console.log(1)"))
        self.assertNotEqual(h, text_hash("console.log(2)"))

    def test_text_hash_accepts_lone_surrogates(self):
        self.assertRegex(text_hash("a\ud800b"), r"^[0-9a-f]{8}$")

    def test_embedded_script_path(self):
        self.assertEqual(embedded_script_path("x"), f"_embedded/{text_hash('x')}.js")


class TestPaths(unittest.TestCase):
    def test_normalize_relative_path_strips_scheme(self):
        self.assertEqual(
            normalize_relative_path("file:///Users/me/project/index.ts"),
            "Users/me/project/index.ts",
        )

    def test_normalize_relative_path_drops_dot_segments(self):
        self.assertEqual(normalize_relative_path("a/./b/../c.ts"), "a/c.ts")

    def test_normalize_relative_path_rejects_empty(self):
        with self.assertRaises(UnsafePathError):
            normalize_relative_path("")

    def test_normalize_relative_path_strips_drive_and_backslashes(self):
        self.assertEqual(normalize_relative_path("C:\\Users\\me\\src\\a.ts"), "Users/me/src/a.ts")

    def test_normalize_relative_path_rejects_escape_through_drive(self):
        with self.assertRaises(UnsafePathError):
            normalize_relative_path("C:/../secret.txt")

    def test_canonicalize_clamps_where_normalize_rejects(self):
        self.assertEqual(canonicalize_path("../x.js"), "x.js")
        with self.assertRaises(UnsafePathError):
            normalize_relative_path("../x.js")

    def test_safe_join_stays_within_base(self):
        base = Path("/tmp/out")
        out = safe_join(base, "a/b/c.txt")
        self.assertTrue(str(out).endswith("/tmp/out/a/b/c.txt"))

    def test_safe_join_prevents_escape(self):
        base = Path("/tmp/out")
        with self.assertRaises(UnsafePathError):
            safe_join(base, "../../etc/passwd")


if __name__ == "__main__":
    unittest.main()
