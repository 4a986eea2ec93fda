"""Jinja2 template rendering for generated components and bootstrap files.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``embedify/scaffolder/templates/`` directory, plus the JavaScript literal
rendering the templates use to emit values (``{{ value | js }}``).
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from ..utils import quote_key

# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

INDENT = "  "


# ---------------------------------------------------------------------------
# JavaScript literals
# ---------------------------------------------------------------------------


class JsExpr(str):
    """A string emitted verbatim by :func:`to_js` (an identifier or expression)."""


def js_string(value: str) -> str:
    """Single-quoted JavaScript string literal."""
    escaped = (
        value.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f"'{escaped}'"


def to_js(value: Any, level: int = 0) -> str:
    """Render a Python value as a JavaScript literal.

    Dicts become object literals (one member per line, trailing commas),
    lists of scalars stay on one line, ``JsExpr`` values pass through
    unchanged.  Nested lines are indented relative to *level*, so the result
    can be spliced into text already indented by ``level`` steps.
    """
    if isinstance(value, JsExpr):
        return str(value)
    if isinstance(value, Enum):
        return to_js(value.value, level)
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return js_string(value)
    if isinstance(value, dict):
        if not value:
            return "{}"
        inner = INDENT * (level + 1)
        members = [f"{inner}{quote_key(str(k))}: {to_js(v, level + 1)}," for k, v in value.items()]
        return "{\n" + "\n".join(members) + "\n" + INDENT * level + "}"
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        if all(not isinstance(item, (dict, list, tuple)) for item in value):
            return "[" + ", ".join(to_js(item, level) for item in value) + "]"
        inner = INDENT * (level + 1)
        items = [f"{inner}{to_js(item, level + 1)}," for item in value]
        return "[\n" + "\n".join(items) + "\n" + INDENT * level + "]"
    raise TypeError(f"Cannot render {type(value).__name__} as a JavaScript literal")


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders the Jinja2 templates used by embedify.

    Templates are plain ``.j2`` files.  Besides the standard filters the
    environment provides ``js`` (Python value to JavaScript literal),
    ``json`` (double-quoted literal for Svelte attributes and
    declarations) and ``quote_key``.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([], default_for_string=False),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )
        self.env.filters["js"] = to_js
        self.env.filters["json"] = _json_filter
        self.env.filters["quote_key"] = quote_key

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template with the provided context.

        Args:
            template_path: Path relative to the template directory (e.g.
                ``"component.svelte.j2"``).
            context: Dictionary of variables available inside the template.
        """
        template = self.env.get_template(template_path)
        return template.render(**context)


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------


def _json_filter(value: Any) -> str:
    """JSON literal without HTML escaping (``tojson`` escapes ``<`` and ``'``)."""
    return json.dumps(value, ensure_ascii=False)

