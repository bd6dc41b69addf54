from __future__ import annotations

"""Lazy chunk discovery from webpack's bootstrap source.

webpack 4's JSONP loader computes chunk URLs in a helper like:

    function jsonpScriptSrc(chunkId) {
        return __webpack_require__.p + "static/js/" + ({}[chunkId]||chunkId)
            + "." + {"0":"1a2b3c4d","1":"5e6f7a8b"}[chunkId] + ".chunk.js"
    }

The id -> hash table in that expression names every chunk the page may load
later, so the chunk URLs can be rebuilt without running any code.

The shape is generated by the bundler and differs between versions. Each
known shape is a `ChunkPattern`; anything that doesn't fit one returns None.
`match_chunk_template` raises `ParseError` for code esprima can't parse;
`discover_chunk_urls` logs that and moves on, since esprima stops at ES2017
and a modern bootstrap is still valid JavaScript.
"""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any
from urllib.parse import urljoin, urlparse

import esprima
from esprima.error_handler import Error as EsprimaError

from .errors import ParseError
from .paths import BOOTSTRAP_PATH
from .types import ChunkTemplate, SourceRecord

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChunkPattern:
    name: str
    function_name: str
    suffixes: tuple[str, ...]


PATTERNS: tuple[ChunkPattern, ...] = (
    ChunkPattern(name="webpack-jsonp", function_name="jsonpScriptSrc", suffixes=(".js",)),
    ChunkPattern(name="create-react-app", function_name="jsonpScriptSrc", suffixes=(".chunk.js",)),
)


def parse_javascript(source: str, location: str = "") -> Any:
    try:
        return esprima.parseScript(source)
    except EsprimaError:
        pass
    try:
        return esprima.parseModule(source)
    except EsprimaError as exc:
        raise ParseError(f"Not parseable as JavaScript: {exc}", location=location) from exc


def _node_type(node: Any) -> str | None:
    node_type = getattr(node, "type", None)
    return node_type if isinstance(node_type, str) else None


def _iter_nodes(tree: Any) -> Iterator[Any]:
    """Depth-first walk over every syntax node."""
    stack = [tree]
    while stack:
        node = stack.pop()
        if _node_type(node) is None:
            continue
        yield node
        children = []
        for key in vars(node):
            child = getattr(node, key, None)
            if isinstance(child, list):
                children.extend(item for item in child if _node_type(item))
            elif _node_type(child):
                children.append(child)
        stack.extend(reversed(children))


def _identifier_name(node: Any) -> str | None:
    if _node_type(node) == "Identifier":
        return node.name
    if _node_type(node) == "MemberExpression" and not node.computed:
        return _identifier_name(node.property)
    return None


def _is_function(node: Any) -> bool:
    return _node_type(node) in ("FunctionExpression", "ArrowFunctionExpression")


def _find_functions(tree: Any, name: str) -> Iterator[Any]:
    """Yield function nodes bound to `name` by declaration, `var` or assignment."""
    for node in _iter_nodes(tree):
        node_type = _node_type(node)
        if node_type == "FunctionDeclaration" and _identifier_name(node.id) == name:
            yield node
        elif node_type == "VariableDeclarator" and _identifier_name(node.id) == name:
            if _is_function(node.init):
                yield node.init
        elif node_type == "AssignmentExpression" and _identifier_name(node.left) == name:
            if _is_function(node.right):
                yield node.right


def _return_expression(function: Any) -> Any | None:
    body = function.body
    if _node_type(body) != "BlockStatement":
        # Arrow function with an expression body.
        return body
    if len(body.body) != 1 or _node_type(body.body[0]) != "ReturnStatement":
        return None
    return body.body[0].argument


def _flatten_concat(node: Any) -> list[Any]:
    if _node_type(node) == "BinaryExpression" and node.operator == "+":
        return _flatten_concat(node.left) + _flatten_concat(node.right)
    return [node]


def _string_literal(node: Any) -> str | None:
    if _node_type(node) == "Literal" and isinstance(node.value, str):
        return node.value
    return None


def _literal_key(node: Any) -> str | None:
    if _node_type(node) == "Identifier":
        return node.name
    if _node_type(node) != "Literal":
        return None
    value = node.value
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(int(value)) if float(value).is_integer() else str(value)
    return None


def _string_table(node: Any) -> tuple[tuple[str, str], ...] | None:
    """Read `{key: "value", ...}` as pairs, or None if it isn't such a literal."""
    if _node_type(node) != "ObjectExpression":
        return None
    entries: list[tuple[str, str]] = []
    for prop in node.properties:
        if _node_type(prop) != "Property" or prop.computed:
            return None
        key = _literal_key(prop.key)
        value = _string_literal(prop.value)
        if key is None or value is None:
            return None
        entries.append((key, value))
    return tuple(entries)


def _table_lookup(node: Any) -> tuple[tuple[str, str], ...] | None:
    """Match `{...}[chunkId]`."""
    if _node_type(node) != "MemberExpression" or not node.computed:
        return None
    return _string_table(node.object)


def _chunk_names(node: Any) -> tuple[tuple[str, str], ...]:
    """Match `({...}[chunkId] || chunkId)`, the optional id -> chunk name table."""
    if _node_type(node) == "LogicalExpression" and node.operator == "||":
        return _table_lookup(node.left) or ()
    return ()


def _match_pattern(function: Any, pattern: ChunkPattern) -> ChunkTemplate | None:
    expression = _return_expression(function)
    if _node_type(expression) != "BinaryExpression" or expression.operator != "+":
        return None

    terms = _flatten_concat(expression)
    if _string_literal(terms[-1]) not in pattern.suffixes:
        return None

    # ... + "." + {id: hash}[chunkId] + suffix
    if len(terms) < 4:
        return None
    hashes = _table_lookup(terms[-2])
    if hashes is None or _string_literal(terms[-3]) != ".":
        return None

    # publicPath + "static/js/" + <chunk id or name>
    leading = terms[:-3]
    literals = [text for text in map(_string_literal, leading) if text is not None]
    if not literals:
        return None

    names: tuple[tuple[str, str], ...] = ()
    for term in leading:
        names = names or _chunk_names(term)

    return ChunkTemplate(
        prefix="".join(literals),
        suffix=_string_literal(terms[-1]),
        hashes=hashes,
        pattern=pattern.name,
        names=names,
    )


def match_chunk_template(
    source: str,
    patterns: Iterable[ChunkPattern] = PATTERNS,
    location: str = "",
) -> ChunkTemplate | None:
    """Find the chunk URL helper in `source` and read its naming scheme.

    Returns None when no known pattern matches. Raises ParseError only when
    `source` isn't JavaScript.
    """
    tree = parse_javascript(source, location=location)
    for pattern in patterns:
        for function in _find_functions(tree, pattern.function_name):
            template = _match_pattern(function, pattern)
            if template is not None:
                LOGGER.debug("Matched chunk pattern %s with %d chunks", pattern.name, len(template.hashes))
                return template
    return None


def page_origin(page_url: str) -> str:
    parsed = urlparse(page_url)
    return f"{parsed.scheme}://{parsed.netloc}"


def chunk_urls(template: ChunkTemplate, origin: str) -> list[str]:
    names = dict(template.names)
    base = origin.rstrip("/") + "/"
    return [
        urljoin(base, f"{template.prefix}{names.get(chunk_id, chunk_id)}.{chunk_hash}{template.suffix}")
        for chunk_id, chunk_hash in template.hashes
    ]


def discover_chunk_urls(records: Iterable[SourceRecord], page_url: str) -> list[str]:
    """Chunk URLs named by every bootstrap source among `records`."""
    origin = page_origin(page_url)
    urls: list[str] = []
    for record in records:
        if record.path != BOOTSTRAP_PATH:
            continue
        try:
            template = match_chunk_template(record.text, location=record.path)
        except ParseError as e:
            LOGGER.warning("Could not parse %s, skipping chunk discovery for it: %s", record.path, e)
            continue
        if template is None:
            LOGGER.info("No chunk loader found in %s", record.path)
            continue
        urls.extend(chunk_urls(template, origin))
    return list(dict.fromkeys(urls))
