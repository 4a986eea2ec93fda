"""Svelte embed component generation.

Renders ``src/embed-components/<Name>.svelte`` from ``component.svelte.j2``.
When the component already exists its declared fields are recovered first,
so regenerating keeps them (and their literal defaults) while adding the
shared branding and width fields.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Protocol

from ..errors import FormatterUnavailable
from ..parser.extractor import extract_fields, extract_instance_script, strip_deprecated_options
from ..parser.models import ComponentResult, Field
from ..utils import print_warning, to_lookup_key
from .schema import SYNTHETIC_FIELDS, default_for
from .templates import TemplateRenderer

# Declared by the template itself; never treated as a configurable field.
IDENTITY_FIELD = "tagName"
COMPONENT_TEMPLATE = "component.svelte.j2"


class Formatter(Protocol):
    async def format(self, text: str, language_hint: str) -> str: ...


def collect_fields(existing_source: str | None) -> list[Field]:
    """Fields declared by an existing component document, in source order.

    Raises:
        ParseError: If the component's instance script is not valid.
    """
    if not existing_source:
        return []
    source = strip_deprecated_options(existing_source)
    script = extract_instance_script(source)
    return [field for field in extract_fields(script) if field.name != IDENTITY_FIELD]


def merge_synthetic_fields(
    fields: Iterable[Field],
    synthetic: Iterable[Field] = SYNTHETIC_FIELDS,
) -> list[Field]:
    """Append each synthetic field whose name is not declared yet.

    Extracted fields are kept as they are; duplicates by name keep the first.
    """
    merged: list[Field] = []
    seen: set[str] = set()
    for field in [*fields, *synthetic]:
        if field.name in seen:
            continue
        seen.add(field.name)
        merged.append(field)
    return merged


class ComponentGenerator:
    """Builds the text of an embed component from its name and prior source."""

    def __init__(
        self,
        renderer: TemplateRenderer | None = None,
        formatter: Formatter | None = None,
    ) -> None:
        self.renderer = renderer or TemplateRenderer()
        self.formatter = formatter

    def render(self, component_name: str, fields: list[Field]) -> str:
        """Render the component template without formatting."""
        lookup_key = to_lookup_key(component_name)
        width = next((f for f in fields if f.name == "component_width"), None)
        context = {
            "component_name": component_name,
            "lookup_key": lookup_key,
            "fields": [{"name": f.name, "value": default_for(f)} for f in fields],
            "width": default_for(width) if width is not None else "auto",
        }
        return self.renderer.render(COMPONENT_TEMPLATE, context)

    async def format(self, text: str) -> tuple[str, bool]:
        """Run the optional formatter; return ``(text, formatted)``."""
        if self.formatter is None:
            return text, False
        try:
            return await self.formatter.format(text, "svelte"), True
        except FormatterUnavailable as exc:
            print_warning(f"Formatting skipped: {exc}")
            return text, False

    async def generate(
        self,
        component_name: str,
        path: Path,
        existing_source: str | None = None,
    ) -> ComponentResult:
        """Generate the component document.

        Args:
            component_name: PascalCase declaration name, e.g. ``Banner``.
            path: Where the component will be written (reported only).
            existing_source: Current file content when the component exists.

        Raises:
            ParseError: If *existing_source* has an invalid script block.
        """
        fields = merge_synthetic_fields(collect_fields(existing_source))
        raw = self.render(component_name, fields)
        text, formatted = await self.format(raw)
        return ComponentResult(
            component_name=component_name,
            lookup_key=to_lookup_key(component_name),
            fields=fields,
            path=path,
            text=text,
            formatted=formatted,
        )
