"""Idempotent upsert of one entry in a named object literal.

A registry document is any JavaScript module holding a mapping such as::

    import Tab from '../embed-components/Tab.svelte';

    export const embedRegistry = {
      'tab-component': Tab,
    };

``upsert_entry`` makes sure an import-like header line exists and that the
mapping holds exactly one entry for the key, replacing the whole existing
entry when there is one.  Entry boundaries come from the depth-tracking
scanner, so nested objects inside other entries are never touched, and
everything outside the mapping literal and the import block is preserved
byte for byte.  Applying the same upsert twice yields the same text as
applying it once.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

from ..errors import PatchError
from ..utils import quote_key
from .scanner import (
    OPENERS,
    ScannedDocument,
    Token,
    line_end,
    line_indent,
    reindent,
    starts_line,
    string_value,
)

DEFAULT_INDENT = "  "


class PatchOutcome(NamedTuple):
    """Text produced by a patch operation and whether it differs from the input."""
    text: str
    changed: bool


@dataclass(frozen=True)
class Entry:
    """One comma-separated member of a mapping literal (character offsets)."""
    key: str | None
    start: int
    end: int
    value_start: int


@dataclass(frozen=True)
class Mapping:
    """A located mapping literal; ``open``/``close`` are the brace offsets."""
    name: str
    open: int
    close: int
    entries: tuple[Entry, ...]
    trailing_comma_end: int | None


# ---------------------------------------------------------------------------
# Locating and reading mappings
# ---------------------------------------------------------------------------


def find_mapping(doc: ScannedDocument, name: str) -> Mapping | None:
    """Locate ``name = {...}`` or the property ``name: {...}`` in *doc*."""
    tokens = doc.tokens
    for index, token in enumerate(tokens[:-2]):
        if not token.is_word(name):
            continue
        if index > 0 and tokens[index - 1].is_punct("."):
            continue
        operator, brace = tokens[index + 1], tokens[index + 2]
        if not brace.is_punct("{"):
            continue
        if operator.is_punct("="):
            pass
        elif operator.is_punct(":"):
            if index == 0 or not (tokens[index - 1].is_punct("{") or tokens[index - 1].is_punct(",")):
                continue
        else:
            continue
        return _build_mapping(doc, name, index + 2)
    return None


def is_declared(doc: ScannedDocument, name: str) -> bool:
    """True when *doc* holds a ``const``/``let``/``var`` declaration of *name*."""
    tokens = doc.tokens
    for index in range(len(tokens) - 2):
        token = tokens[index]
        if token.kind != "word" or token.value not in ("const", "let", "var"):
            continue
        if tokens[index + 1].is_word(name) and tokens[index + 2].is_punct("="):
            return True
    return False


def _build_mapping(doc: ScannedDocument, name: str, open_index: int) -> Mapping:
    close_index = doc.closer(open_index)
    tokens = doc.tokens
    separators = doc.find_top_level(open_index + 1, close_index, ",")

    entries: list[Entry] = []
    trailing_comma_end: int | None = None
    segment_start = open_index + 1
    for boundary in separators + [close_index]:
        segment = range(segment_start, boundary)
        if len(segment) == 0:
            if boundary != close_index:
                raise PatchError(
                    f"Empty entry in mapping '{name}' at offset {tokens[boundary].start}"
                )
        else:
            entries.append(_build_entry(doc, segment.start, segment.stop))
        segment_start = boundary + 1

    if separators and separators[-1] == close_index - 1:
        trailing_comma_end = tokens[separators[-1]].end

    return Mapping(
        name=name,
        open=tokens[open_index].start,
        close=tokens[close_index].start,
        entries=tuple(entries),
        trailing_comma_end=trailing_comma_end,
    )


def _build_entry(doc: ScannedDocument, first: int, stop: int) -> Entry:
    tokens = doc.tokens
    head = tokens[first]
    key: str | None = None
    value_start = head.start

    following = tokens[first + 1] if first + 1 < stop else None
    if head.is_punct("...") or head.is_punct("["):
        key = None
    elif head.kind == "string":
        key = string_value(head)
    elif head.kind == "word":
        if following is not None and following.kind == "word":
            # get/set/async accessors: the second word is the key
            key = following.value
        else:
            key = head.value

    colons = doc.find_top_level(first, stop, ":")
    if key is not None and colons:
        colon = colons[0]
        if colon + 1 < stop:
            value_start = tokens[colon + 1].start
    return Entry(key=key, start=head.start, end=tokens[stop - 1].end, value_start=value_start)


def read_mapping(document: str, mapping_name: str) -> dict[str, str]:
    """Re-parse *mapping_name* in *document* as ``{key: value text}``.

    Spread and computed entries are left out.

    Raises:
        PatchError: If the mapping is missing or declares a key twice.
    """
    doc = ScannedDocument(document)
    mapping = find_mapping(doc, mapping_name)
    if mapping is None:
        raise PatchError(f"Mapping '{mapping_name}' not found")
    result: dict[str, str] = {}
    for entry in mapping.entries:
        if entry.key is None:
            continue
        if entry.key in result:
            raise PatchError(f"Duplicate key '{entry.key}' in mapping '{mapping_name}'")
        result[entry.key] = document[entry.value_start:entry.end]
    return result


# ---------------------------------------------------------------------------
# Header lines
# ---------------------------------------------------------------------------


def _import_statement_ends(doc: ScannedDocument) -> list[int]:
    """End offsets of top-level ``import ... from '...'`` statements."""
    tokens = doc.tokens
    ends: list[int] = []
    depth = 0
    for index, token in enumerate(tokens):
        if token.kind == "punct":
            if token.value in OPENERS:
                depth += 1
            elif token.value in ("}", "]", ")"):
                depth -= 1
            continue
        if depth != 0 or not token.is_word("import"):
            continue
        following = tokens[index + 1] if index + 1 < len(tokens) else None
        if following is None or following.is_punct("(") or following.is_punct("."):
            continue
        end = _statement_end(tokens, index + 1)
        if end is not None:
            ends.append(end)
    return ends


def _statement_end(tokens: list[Token], start: int) -> int | None:
    for index in range(start, len(tokens)):
        token = tokens[index]
        if token.kind == "string":
            following = tokens[index + 1] if index + 1 < len(tokens) else None
            if following is not None and following.is_punct(";"):
                return following.end
            return token.end
        if token.is_punct(";"):
            return None
    return None


def has_line(document: str, line: str) -> bool:
    """True when some line of *document* equals *line* ignoring surrounding whitespace."""
    wanted = line.strip()
    return any(existing.strip() == wanted for existing in document.splitlines())


def header_insertion_point(document: str) -> tuple[int, str] | None:
    """Offset just after the last import statement and that line's indentation."""
    doc = ScannedDocument(document)
    ends = _import_statement_ends(doc)
    if not ends:
        return None
    last = ends[-1]
    return line_end(document, last), line_indent(document, last)


def ensure_header_line(document: str, header_line: str) -> str:
    """Insert *header_line* after the last import, or at the top, unless present.

    The inserted line copies the indentation of the neighbouring import
    statement (or of the first non-blank line), so it also works on the
    indented body of a Svelte ``<script>`` block.
    """
    if not header_line.strip() or has_line(document, header_line):
        return document
    line = header_line.strip()

    point = header_insertion_point(document)
    if point is None:
        indent = _first_line_indent(document)
        lead = len(document) - len(document.lstrip("\r\n"))
        return f"{document[:lead]}{indent}{line}\n{document[lead:]}"

    offset, indent = point
    prefix = document[:offset]
    if not prefix.endswith("\n"):
        prefix += "\n"
    return f"{prefix}{indent}{line}\n{document[offset:]}"


def _first_line_indent(document: str) -> str:
    for existing in document.splitlines():
        if existing.strip():
            return existing[: len(existing) - len(existing.lstrip())]
    return ""


def ensure_prelude(document: str, marker: str, prelude: str) -> PatchOutcome:
    """Add *prelude* after the import block unless the word *marker* is declared.

    Used for shared constants that registry entries reference by name.
    """
    doc = ScannedDocument(document)
    tokens = doc.tokens
    for index, token in enumerate(tokens[1:], start=1):
        if token.is_word(marker) and tokens[index - 1].kind == "word" and tokens[index - 1].value in (
            "const", "let", "var",
        ):
            return PatchOutcome(document, False)

    block = prelude.strip("\n") + "\n"
    point = header_insertion_point(document)
    if point is None:
        text = block + ("\n" + document if document.strip() else "")
    else:
        offset = point[0]
        head = document[:offset]
        if not head.endswith("\n"):
            head += "\n"
        text = head + "\n" + block + document[offset:]
    return PatchOutcome(text, True)


# ---------------------------------------------------------------------------
# Upsert
# ---------------------------------------------------------------------------


def upsert_entry(
    document: str,
    mapping_name: str,
    key: str,
    value_expression: str,
    header_line: str | None = None,
    *,
    declaration: str = "export const",
    create_if_missing: bool = True,
) -> PatchOutcome:
    """Insert or replace the entry for *key* in the mapping *mapping_name*.

    Args:
        document: Full text of the registry document.
        mapping_name: Identifier the mapping is assigned to (``name = {``) or
            the property holding it (``name: {``).
        key: Lookup key; quoted in the output only when it is not a valid
            identifier.
        value_expression: Rendered value.  Continuation lines are indented
            relative to the entry.
        header_line: Optional line (usually an import) that must exist.
        declaration: Keyword(s) used when the mapping has to be created.
        create_if_missing: Append a fresh ``<declaration> <name> = {...};``
            when the mapping is absent.  When ``False`` a missing mapping is
            an error.

    Raises:
        MalformedDocumentError: If *document* has unbalanced delimiters.
        PatchError: If the mapping is missing and may not be created, or is
            declared with something other than an object literal.
    """
    # Validate the untouched input first so a malformed file is never edited.
    ScannedDocument(document)

    text = document
    if header_line:
        text = ensure_header_line(text, header_line)

    doc = ScannedDocument(text)
    mapping = find_mapping(doc, mapping_name)
    if mapping is None:
        if is_declared(doc, mapping_name):
            raise PatchError(f"Mapping '{mapping_name}' is not an object literal")
        if not create_if_missing:
            raise PatchError(f"Mapping '{mapping_name}' not found")
        text = _append_declaration(text, declaration, mapping_name, key, value_expression)
    else:
        text = _upsert(text, mapping, key, value_expression)

    return PatchOutcome(text, text != document)


def _entry_text(key: str, value_expression: str, indent: str) -> str:
    return f"{quote_key(key)}: {reindent(value_expression.strip(), indent)}"


def _append_declaration(
    text: str, declaration: str, name: str, key: str, value_expression: str
) -> str:
    entry = _entry_text(key, value_expression, DEFAULT_INDENT)
    block = f"{declaration} {name} = {{\n{DEFAULT_INDENT}{entry}\n}};\n"
    if not text.strip():
        return block
    return text.rstrip("\n") + "\n\n" + block


def _upsert(text: str, mapping: Mapping, key: str, value_expression: str) -> str:
    matches = [i for i, entry in enumerate(mapping.entries) if entry.key == key]
    entries = mapping.entries

    if matches:
        first = entries[matches[0]]
        # Drop later duplicates back to front so earlier offsets stay valid.
        for position in reversed(matches[1:]):
            previous = entries[position - 1]
            text = text[: previous.end] + text[entries[position].end :]
        indent = line_indent(text, first.start) if starts_line(text, first.start) else _entry_indent(text, mapping)
        entry = _entry_text(key, value_expression, indent)
        if text[first.start : first.end] != entry:
            text = text[: first.start] + entry + text[first.end :]
        return text

    indent = _entry_indent(text, mapping)
    entry = _entry_text(key, value_expression, indent)
    if not entries:
        inner = text[mapping.open + 1 : mapping.close].rstrip()
        closing_indent = line_indent(text, mapping.open)
        body = f"{inner}\n{indent}{entry}\n{closing_indent}"
        return text[: mapping.open + 1] + body + text[mapping.close :]

    if mapping.trailing_comma_end is not None:
        offset = mapping.trailing_comma_end
        return text[:offset] + f"\n{indent}{entry}," + text[offset:]

    last = entries[-1]
    return text[: last.end] + f",\n{indent}{entry}" + text[last.end :]


def _entry_indent(text: str, mapping: Mapping) -> str:
    for entry in reversed(mapping.entries):
        if starts_line(text, entry.start):
            return line_indent(text, entry.start)
    return line_indent(text, mapping.open) + DEFAULT_INDENT
