"""Configuration-schema synthesis for embed component fields.

Holds the one copy of the shared schema constants (``FIELD_TYPES``,
``COMMON_FIELDS``, ``BRAND_COLOR_FIELDS``).  The config registry prelude is
rendered from them, and every registry entry references them by name through
spreads instead of repeating their content.
"""

from __future__ import annotations

from typing import Any, Iterable

from ..parser.models import Field, FieldSchemaEntry, FieldType, LiteralValue
from .templates import JsExpr

# ---------------------------------------------------------------------------
# Shared schema constants
# ---------------------------------------------------------------------------

FIELD_TYPES: dict[str, str] = {field_type.name: field_type.value for field_type in FieldType}

COMMON_FIELDS: dict[str, FieldSchemaEntry] = {
    "component_width": FieldSchemaEntry(
        type=FieldType.SELECT,
        label="Component Width",
        description="Width of the embedded component",
        options=["auto", "300px", "full"],
        default="auto",
        category="layout",
    ),
}

BRAND_COLOR_FIELDS: dict[str, FieldSchemaEntry] = {
    "brand_colors_primary": FieldSchemaEntry(
        type=FieldType.COLOR,
        label="Primary Brand Color",
        description="Primary color for branding",
        default="#4f46e5",
        category="branding",
    ),
    "brand_colors_text_on_primary": FieldSchemaEntry(
        type=FieldType.COLOR,
        label="Text on Primary Color",
        description="Text color when on primary background",
        default="white",
        category="branding",
    ),
}

# Fields covered by the spreads above; never synthesized per component.
COMMON_FIELD_NAMES: frozenset[str] = frozenset(COMMON_FIELDS) | frozenset(BRAND_COLOR_FIELDS)

# Fields every generated component declares, in declaration order.
SYNTHETIC_FIELDS: tuple[Field, ...] = (
    Field(name="brand_colors_primary", default="#4f46e5"),
    Field(name="brand_colors_text_on_primary", default="white"),
    Field(name="component_width", default="auto"),
)

DEFAULT_CATEGORY = "general"


# ---------------------------------------------------------------------------
# Inference helpers
# ---------------------------------------------------------------------------


def infer_type(name: str) -> FieldType:
    """Guess the editor type of a field from its name.

    First match wins: ``color`` -> color, ``width`` -> select, ``message`` or
    a trailing ``s`` -> array, anything else -> text.
    """
    if "color" in name:
        return FieldType.COLOR
    if "width" in name:
        return FieldType.SELECT
    if "message" in name or name.endswith("s"):
        return FieldType.ARRAY
    return FieldType.TEXT


def humanize_label(name: str) -> str:
    """``welcome_message`` -> ``Welcome Message``."""
    words = name.replace("_", " ").split(" ")
    return " ".join(word[:1].upper() + word[1:] for word in words)


def fallback_default(field_type: FieldType) -> LiteralValue | list[str]:
    """Default used when a field has no literal initializer."""
    if field_type is FieldType.ARRAY:
        return []
    if field_type is FieldType.COLOR:
        return "#000000"
    return ""


def default_for(field: Field) -> LiteralValue | list[str]:
    """The field's literal default, or the fallback for its inferred type."""
    if field.default is not None:
        return field.default
    return fallback_default(infer_type(field.name))


def mock_value(field: Field) -> LiteralValue:
    """Sample value for the mock-data switch."""
    if field.default is not None:
        return field.default
    if "color" in field.name:
        return "#cccccc"
    if "width" in field.name:
        return "auto"
    return "example"


# ---------------------------------------------------------------------------
# Synthesis
# ---------------------------------------------------------------------------


def synthesize_entry(field: Field) -> FieldSchemaEntry:
    field_type = infer_type(field.name)
    label = humanize_label(field.name)
    return FieldSchemaEntry(
        type=field_type,
        label=label,
        description=f"Configure the {label.lower()}.",
        default=default_for(field),
        category=DEFAULT_CATEGORY,
        # Valid options cannot be inferred from source; left for the author.
        options=[] if field_type is FieldType.SELECT else None,
    )


def synthesize_schema(
    fields: Iterable[Field],
    skip: Iterable[str] = COMMON_FIELD_NAMES,
) -> dict[str, FieldSchemaEntry]:
    """Build one schema entry per field, in order, keyed by field name.

    Fields named in *skip* are omitted because the shared spreads already
    describe them.
    """
    skipped = set(skip)
    schema: dict[str, FieldSchemaEntry] = {}
    for field in fields:
        if field.name in skipped or field.name in schema:
            continue
        schema[field.name] = synthesize_entry(field)
    return schema


def schema_literal(entry: FieldSchemaEntry) -> dict[str, Any]:
    """Entry as a JS-renderable dict whose ``type`` references ``FIELD_TYPES``."""
    data = entry.as_literal()
    data["type"] = JsExpr(f"FIELD_TYPES.{entry.type.name}")
    return data
