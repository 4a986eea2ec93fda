"""Patching of Svelte markup documents (the component playground)."""

from __future__ import annotations

import re

from .registry import PatchOutcome, ensure_header_line
from .scanner import line_indent

_INSTANCE_SCRIPT = re.compile(
    r"(?P<open><script(?![^>]*context\s*=\s*[\"']module[\"'])[^>]*>)(?P<body>.*?)(?P<close></script\s*>)",
    re.DOTALL | re.IGNORECASE,
)
_MAIN_CLOSE = "</main>"


def ensure_script_import(document: str, import_line: str) -> str:
    """Add *import_line* to the instance ``<script>``, creating the block if needed."""
    match = _INSTANCE_SCRIPT.search(document)
    if match is None:
        return f"<script>\n  {import_line.strip()}\n</script>\n\n{document}"
    body = match.group("body")
    if not body.strip():
        new_body = f"\n  {import_line.strip()}\n"
    else:
        new_body = ensure_header_line(body, import_line)
    if new_body == body:
        return document
    return document[: match.start("body")] + new_body + document[match.end("body") :]


def has_usage(document: str, tag: str) -> bool:
    """True when ``<tag`` appears as an element in the markup outside ``<script>``."""
    markup = _INSTANCE_SCRIPT.sub("", document)
    return re.search(rf"<{re.escape(tag)}(?=[\s/>])", markup) is not None


def ensure_usage(document: str, tag: str) -> str:
    """Add ``<tag />`` before the last ``</main>``, or at the end of the document."""
    if has_usage(document, tag):
        return document
    usage = f"<{tag} />"
    close = document.rfind(_MAIN_CLOSE)
    if close == -1:
        return document.rstrip("\n") + f"\n\n{usage}\n"
    indent = line_indent(document, close) + "  "
    line_begin = document.rfind("\n", 0, close) + 1
    if document[line_begin:close].strip():
        return document[:close] + f"\n{indent}{usage}\n" + document[close:]
    return document[:line_begin] + f"{indent}{usage}\n" + document[line_begin:]


def patch_playground(document: str, import_line: str, tag: str) -> PatchOutcome:
    """Import a component into the playground and render one instance of it."""
    text = ensure_script_import(document, import_line)
    text = ensure_usage(text, tag)
    return PatchOutcome(text, text != document)
