"""Structural, idempotent patching of registry documents.

Quick usage::

    from embedify.patcher import upsert_entry

    outcome = upsert_entry(
        source,
        "embedRegistry",
        "banner",
        "Banner",
        header_line="import Banner from '../embed-components/Banner.svelte';",
    )
    if outcome.changed:
        path.write_text(outcome.text)
"""

from embedify.patcher.markup import patch_playground
from embedify.patcher.registry import (
    PatchOutcome,
    ensure_header_line,
    ensure_prelude,
    read_mapping,
    upsert_entry,
)
from embedify.patcher.scanner import ScannedDocument, check_balanced
from embedify.patcher.switch import upsert_switch_case

__all__ = [
    "PatchOutcome",
    "ScannedDocument",
    "check_balanced",
    "ensure_header_line",
    "ensure_prelude",
    "patch_playground",
    "read_mapping",
    "upsert_entry",
    "upsert_switch_case",
]
