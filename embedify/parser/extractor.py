"""Source fact extraction for Svelte embed components.

Recovers the configurable fields a component already declares so that a
regeneration keeps them.  The instance ``<script>`` block is located with a
regex over the markup; its contents are parsed with tree-sitter's JavaScript
grammar and only top-level ``let`` declarations are inspected.
"""

from __future__ import annotations

import re

import tree_sitter_javascript
from tree_sitter import Language, Node, Parser

from ..errors import ParseError
from .models import Field, LiteralValue

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_JS_LANGUAGE = Language(tree_sitter_javascript.language())

_SCRIPT_BLOCK = re.compile(
    r"<script(?P<attrs>[^>]*)>(?P<body>.*?)</script\s*>",
    re.DOTALL | re.IGNORECASE,
)
_MODULE_CONTEXT = re.compile(r"""context\s*=\s*["']module["']""")
_DEPRECATED_OPTIONS = re.compile(r"^[ \t]*<svelte:options[^>]*/>[ \t]*\r?\n?", re.MULTILINE)

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}

_parser: Parser | None = None


def _get_parser() -> Parser:
    global _parser
    if _parser is None:
        _parser = Parser(_JS_LANGUAGE)
    return _parser


# ---------------------------------------------------------------------------
# Markup helpers
# ---------------------------------------------------------------------------


def strip_deprecated_options(source: str) -> str:
    """Remove ``<svelte:options ... />`` lines (the old ``tag="..."`` form)."""
    return _DEPRECATED_OPTIONS.sub("", source)


def extract_instance_script(source: str) -> str:
    """Return the body of the instance ``<script>`` block.

    ``<script context="module">`` blocks are ignored.  Returns an empty
    string when the component has no instance script.
    """
    for match in _SCRIPT_BLOCK.finditer(source):
        if _MODULE_CONTEXT.search(match.group("attrs")):
            continue
        return match.group("body")
    return ""


# ---------------------------------------------------------------------------
# Field extraction
# ---------------------------------------------------------------------------


def extract_fields(script: str) -> list[Field]:
    """Extract the top-level ``let`` declarations of *script* as fields.

    Both ``let x = 1`` and ``export let x = 1`` count.  Declarations that
    destructure (``let {a} = obj``) are skipped.  String, number and boolean
    initializers become the field default; any other initializer leaves the
    default absent.

    Raises:
        ParseError: If *script* is not valid JavaScript.
    """
    source_bytes = script.encode("utf-8")
    tree = _get_parser().parse(source_bytes)
    root = tree.root_node
    if root.has_error:
        raise ParseError("Invalid component script", line=_first_error_line(root))

    fields: list[Field] = []
    for statement in root.named_children:
        declaration = _unwrap_export(statement)
        if declaration is None or not _is_let(declaration):
            continue
        for declarator in declaration.named_children:
            if declarator.type != "variable_declarator":
                continue
            name_node = declarator.child_by_field_name("name")
            if name_node is None or name_node.type != "identifier":
                continue
            value_node = declarator.child_by_field_name("value")
            fields.append(
                Field(
                    name=_node_text(name_node, source_bytes),
                    default=_literal_value(value_node, source_bytes),
                )
            )
    return fields


def _unwrap_export(node: Node) -> Node | None:
    if node.type == "lexical_declaration":
        return node
    if node.type == "export_statement":
        return node.child_by_field_name("declaration")
    return None


def _is_let(node: Node) -> bool:
    if node.type != "lexical_declaration":
        return False
    first = node.children[0] if node.children else None
    return first is not None and first.type == "let"


def _literal_value(node: Node | None, source_bytes: bytes) -> LiteralValue | None:
    if node is None:
        return None
    if node.type == "string":
        return _string_value(node, source_bytes)
    if node.type == "number":
        return _number_value(_node_text(node, source_bytes))
    if node.type == "true":
        return True
    if node.type == "false":
        return False
    return None


def _string_value(node: Node, source_bytes: bytes) -> str:
    parts: list[str] = []
    for child in node.named_children:
        text = _node_text(child, source_bytes)
        if child.type == "escape_sequence":
            parts.append(_decode_escape(text))
        else:
            parts.append(text)
    return "".join(parts)


def _decode_escape(text: str) -> str:
    body = text[1:]
    if body in ("\n", "\r\n", "\r"):
        return ""
    if body in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[body]
    hex_digits = None
    if body.startswith("u{") and body.endswith("}"):
        hex_digits = body[2:-1]
    elif body[:1] in ("x", "u") and len(body) > 1:
        hex_digits = body[1:]
    if hex_digits:
        try:
            return chr(int(hex_digits, 16))
        except ValueError:
            pass
    return body


def _number_value(text: str) -> int | float:
    cleaned = text.replace("_", "").rstrip("n")
    try:
        return int(cleaned, 0)
    except ValueError:
        return float(cleaned)


def _node_text(node: Node, source_bytes: bytes) -> str:
    return source_bytes[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")


def _first_error_line(node: Node) -> int | None:
    if node.type == "ERROR" or node.is_missing:
        return node.start_point[0] + 1
    for child in node.children:
        if child.has_error:
            line = _first_error_line(child)
            if line is not None:
                return line
    return None
