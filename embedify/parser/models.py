"""Pydantic v2 models shared by the extractor, synthesizer and pipeline.

Defines the configurable field of a component, the schema entry derived from
it, and the per-file results the pipeline reports.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field as PydanticField

LiteralValue = Union[str, bool, int, float]


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class FieldType(str, Enum):
    """Editor widget used for a field in the embed configuration UI."""
    TEXT = "text"
    ARRAY = "array"
    COLOR = "color"
    SELECT = "select"


class StepStatus(str, Enum):
    """Outcome of a single pipeline step."""
    NEW = "new"
    CHANGED = "changed"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    ERROR = "error"


# ---------------------------------------------------------------------------
# Component fields
# ---------------------------------------------------------------------------

class Field(BaseModel):
    """A configurable value declared by a component (``export let name = ...``).

    ``default`` is ``None`` when the declaration has no literal initializer.
    """
    model_config = ConfigDict(frozen=True)

    name: str = PydanticField(..., description="Identifier of the declaration")
    default: Optional[LiteralValue] = PydanticField(
        default=None, description="Literal initializer, if any"
    )


class FieldSchemaEntry(BaseModel):
    """Configuration-schema entry rendered into ``embedConfigRegistry``."""
    type: FieldType
    label: str
    description: str
    default: Union[LiteralValue, list[str]]
    category: str = PydanticField(default="general")
    options: Optional[list[str]] = PydanticField(
        default=None, description="Allowed values; only present for select fields"
    )

    def as_literal(self) -> dict:
        """Return the entry as a plain dict, omitting ``options`` when unset."""
        return self.model_dump(mode="json", exclude_none=True)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class ComponentResult(BaseModel):
    """Output of the component generator."""
    component_name: str
    lookup_key: str
    fields: list[Field] = PydanticField(default_factory=list)
    path: Path
    text: str
    formatted: bool = False


class StepResult(BaseModel):
    """One row of the pipeline summary."""
    name: str
    path: Optional[Path] = None
    status: StepStatus
    detail: str = ""
