"""Upsert of a ``case`` clause in a function's ``switch`` statement.

The config registry carries a mock-data helper shaped like::

    function getMockPropertiesForEmbed(embedName) {
      switch (embedName) {
        case 'banner':
          return { ... };
        default:
          return {};
      }
    }

``upsert_switch_case`` replaces the clause for a key when it exists and
otherwise inserts it before ``default:`` (or after the last clause).
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import PatchError
from .registry import PatchOutcome
from .scanner import ScannedDocument, Token, line_indent, reindent, starts_line, string_value

DEFAULT_INDENT = "  "


@dataclass(frozen=True)
class Clause:
    """A ``case``/``default`` clause; ``end`` is the end of its last token."""
    key: str | None
    is_default: bool
    start: int
    end: int


def _find_function_body(doc: ScannedDocument, function_name: str) -> tuple[int, int] | None:
    tokens = doc.tokens
    for index in range(len(tokens) - 2):
        if not (tokens[index].is_word("function") and tokens[index + 1].is_word(function_name)):
            continue
        params = index + 2
        if not tokens[params].is_punct("("):
            continue
        body = doc.closer(params) + 1
        if body < len(tokens) and tokens[body].is_punct("{"):
            return body, doc.closer(body)
    return None


def _find_switch(
    doc: ScannedDocument, start: int, stop: int, discriminant: str
) -> tuple[int, int] | None:
    tokens = doc.tokens
    for index in range(start, stop - 3):
        if not (tokens[index].is_word("switch") and tokens[index + 1].is_punct("(")):
            continue
        close_paren = doc.closer(index + 1)
        inside = tokens[index + 2 : close_paren]
        if len(inside) != 1 or not inside[0].is_word(discriminant):
            continue
        body = close_paren + 1
        if body < stop and tokens[body].is_punct("{"):
            return body, doc.closer(body)
    return None


def _clauses(doc: ScannedDocument, open_index: int, close_index: int) -> list[Clause]:
    tokens = doc.tokens
    heads: list[tuple[int, str | None, bool]] = []
    index = open_index + 1
    while index < close_index:
        token = tokens[index]
        if token.kind == "punct" and token.value in ("{", "[", "("):
            index = doc.closer(index) + 1
            continue
        if token.is_word("case"):
            following = tokens[index + 1]
            key = _case_label(following)
            heads.append((index, key, False))
        elif token.is_word("default") and tokens[index + 1].is_punct(":"):
            heads.append((index, None, True))
        index += 1

    clauses: list[Clause] = []
    for position, (head, key, is_default) in enumerate(heads):
        stop = heads[position + 1][0] if position + 1 < len(heads) else close_index
        clauses.append(
            Clause(
                key=key,
                is_default=is_default,
                start=tokens[head].start,
                end=tokens[stop - 1].end,
            )
        )
    return clauses


def _case_label(token: Token) -> str | None:
    """Decode a quoted or substitution-free template case label."""
    if token.kind == "string":
        return string_value(token)
    if token.kind == "template" and "${" not in token.value:
        return string_value(token)
    return None


def upsert_switch_case(
    document: str,
    function_name: str,
    discriminant: str,
    case_key: str,
    clause_body: str,
) -> PatchOutcome | None:
    """Insert or replace ``case '<case_key>':`` in ``function_name``'s switch.

    Args:
        document: Full text of the module.
        function_name: Name of the function declaration holding the switch.
        discriminant: Identifier switched on, e.g. ``embedName``.
        case_key: String value of the case label.
        clause_body: Statements of the clause; continuation lines are
            indented relative to the ``case`` keyword.

    Returns:
        The patch outcome, or ``None`` when the function or its switch is
        not present in *document*.

    Raises:
        MalformedDocumentError: If *document* has unbalanced delimiters.
    """
    doc = ScannedDocument(document)
    function = _find_function_body(doc, function_name)
    if function is None:
        return None
    switch = _find_switch(doc, function[0] + 1, function[1], discriminant)
    if switch is None:
        return None

    open_index, close_index = switch
    clauses = _clauses(doc, open_index, close_index)
    open_offset = doc.tokens[open_index].start
    close_offset = doc.tokens[close_index].start

    indent = _clause_indent(document, clauses, open_offset)
    escaped = case_key.replace("\\", "\\\\").replace("'", "\\'")
    clause = f"case '{escaped}':\n{indent}{DEFAULT_INDENT}" + reindent(
        clause_body.strip(), indent + DEFAULT_INDENT
    )

    existing = [c for c in clauses if c.key == case_key]
    if len(existing) > 1:
        raise PatchError(f"Duplicate case '{case_key}' in {function_name}()")
    if existing:
        target = existing[0]
        if document[target.start : target.end] == clause:
            return PatchOutcome(document, False)
        text = document[: target.start] + clause + document[target.end :]
        return PatchOutcome(text, True)

    default = next((c for c in clauses if c.is_default), None)
    if default is not None:
        text = document[: default.start] + clause + f"\n\n{indent}" + document[default.start :]
    elif clauses:
        last = clauses[-1]
        text = document[: last.end] + f"\n\n{indent}" + clause + document[last.end :]
    else:
        closing_indent = line_indent(document, open_offset)
        inner = document[open_offset + 1 : close_offset].rstrip()
        text = (
            document[: open_offset + 1]
            + f"{inner}\n{indent}{clause}\n{closing_indent}"
            + document[close_offset:]
        )
    return PatchOutcome(text, True)


def _clause_indent(document: str, clauses: list[Clause], open_offset: int) -> str:
    for clause in clauses:
        if starts_line(document, clause.start):
            return line_indent(document, clause.start)
    return line_indent(document, open_offset) + DEFAULT_INDENT
