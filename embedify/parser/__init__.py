"""Component source parsing.

Extracts the configurable fields an existing Svelte embed component declares
and defines the models shared across embedify.

Usage::

    from embedify.parser import extract_fields, extract_instance_script

    fields = extract_fields(extract_instance_script(source))
"""

from embedify.parser.extractor import (
    extract_fields,
    extract_instance_script,
    strip_deprecated_options,
)
from embedify.parser.models import (
    ComponentResult,
    Field,
    FieldSchemaEntry,
    FieldType,
    StepResult,
    StepStatus,
)

__all__ = [
    "ComponentResult",
    "Field",
    "FieldSchemaEntry",
    "FieldType",
    "StepResult",
    "StepStatus",
    "extract_fields",
    "extract_instance_script",
    "strip_deprecated_options",
]
