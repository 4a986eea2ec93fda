"""Depth-tracking tokenizer for JavaScript-like documents.

The patchers never edit code with span-guessing regexes.  They tokenize the
document once, pair every opening delimiter with its closer, and work on
token offsets.  Strings, template literals, regex literals and comments are
opaque to the scanner, so braces inside them never affect nesting.

Only as much of the language is understood as the registry files need:
punctuation, words, quoted strings, templates (with nested ``${}``), regex
literals and both comment styles.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator

from ..errors import MalformedDocumentError

OPENERS = {"{": "}", "[": "]", "(": ")"}
CLOSERS = {"}": "{", "]": "[", ")": "("}

_WORD = re.compile(r"[\w$]+")
_WHITESPACE = re.compile(r"\s+")

# A ``/`` after one of these starts a regex literal rather than a division.
_REGEX_PRECEDING_PUNCT = set("(,=:[!&|?{};+-*%<>~^")
_REGEX_PRECEDING_WORDS = {
    "return", "typeof", "case", "do", "else", "in", "of", "new",
    "delete", "void", "throw", "yield", "await",
}


@dataclass(frozen=True)
class Token:
    kind: str  # "punct", "word", "string", "template", "regex"
    value: str
    start: int
    end: int

    def is_punct(self, value: str) -> bool:
        return self.kind == "punct" and self.value == value

    def is_word(self, value: str) -> bool:
        return self.kind == "word" and self.value == value


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------


def _iter_tokens(text: str, pos: int = 0) -> Iterator[Token]:
    """Yield tokens from *pos* to the end of *text*, skipping comments."""
    length = len(text)
    prev: Token | None = None
    while pos < length:
        ch = text[pos]
        ws = _WHITESPACE.match(text, pos)
        if ws:
            pos = ws.end()
            continue

        nxt = text[pos + 1] if pos + 1 < length else ""
        if ch == "/" and nxt == "/":
            newline = text.find("\n", pos)
            pos = length if newline == -1 else newline
            continue
        if ch == "/" and nxt == "*":
            close = text.find("*/", pos + 2)
            if close == -1:
                raise MalformedDocumentError("Unterminated block comment", pos)
            pos = close + 2
            continue

        if ch in "'\"":
            end = _string_end(text, pos)
            token = Token("string", text[pos:end], pos, end)
        elif ch == "`":
            end = _template_end(text, pos)
            token = Token("template", text[pos:end], pos, end)
        elif ch == "/" and _starts_regex(prev):
            end = _regex_end(text, pos)
            token = Token("regex", text[pos:end], pos, end)
        elif ch == "." and text.startswith("...", pos):
            token = Token("punct", "...", pos, pos + 3)
        else:
            word = _WORD.match(text, pos)
            if word:
                token = Token("word", word.group(), pos, word.end())
            else:
                token = Token("punct", ch, pos, pos + 1)

        yield token
        prev = token
        pos = token.end


def _starts_regex(prev: Token | None) -> bool:
    if prev is None:
        return True
    if prev.kind == "punct":
        return prev.value in _REGEX_PRECEDING_PUNCT
    if prev.kind == "word":
        return prev.value in _REGEX_PRECEDING_WORDS
    return False


def _string_end(text: str, pos: int) -> int:
    quote = text[pos]
    i = pos + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        if ch == "\n":
            break
        i += 1
    raise MalformedDocumentError("Unterminated string literal", pos)


def _template_end(text: str, pos: int) -> int:
    i = pos + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "`":
            return i + 1
        if ch == "$" and text.startswith("${", i):
            i = _substitution_end(text, i + 2)
            continue
        i += 1
    raise MalformedDocumentError("Unterminated template literal", pos)


def _substitution_end(text: str, pos: int) -> int:
    depth = 0
    for token in _iter_tokens(text, pos):
        if token.is_punct("{"):
            depth += 1
        elif token.is_punct("}"):
            if depth == 0:
                return token.end
            depth -= 1
    raise MalformedDocumentError("Unterminated template substitution", pos)


def _regex_end(text: str, pos: int) -> int:
    i = pos + 1
    in_class = False
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "\n":
            break
        if ch == "[":
            in_class = True
        elif ch == "]":
            in_class = False
        elif ch == "/" and not in_class:
            flags = _WORD.match(text, i + 1)
            return flags.end() if flags else i + 1
        i += 1
    raise MalformedDocumentError("Unterminated regular expression literal", pos)


def tokenize(text: str) -> list[Token]:
    """Tokenize *text*.

    Raises:
        MalformedDocumentError: On an unterminated string, template, regex or
            block comment.
    """
    return list(_iter_tokens(text))


# ---------------------------------------------------------------------------
# Delimiter pairing
# ---------------------------------------------------------------------------


class ScannedDocument:
    """A tokenized document whose delimiters are known to balance.

    ``pairs`` maps the token index of every opener to the index of its
    closer (and back).
    """

    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = tokenize(text)
        self.pairs = _pair_delimiters(self.tokens)

    def closer(self, index: int) -> int:
        return self.pairs[index]

    def line_indent(self, offset: int) -> str:
        """Return the leading whitespace of the line containing *offset*."""
        return line_indent(self.text, offset)

    def find_top_level(self, start: int, stop: int, value: str) -> list[int]:
        """Indices of punctuation tokens *value* in ``tokens[start:stop]`` at depth 0."""
        found: list[int] = []
        i = start
        while i < stop:
            token = self.tokens[i]
            if token.kind == "punct" and token.value in OPENERS:
                i = self.pairs[i] + 1
                continue
            if token.is_punct(value):
                found.append(i)
            i += 1
        return found


def _pair_delimiters(tokens: list[Token]) -> dict[int, int]:
    pairs: dict[int, int] = {}
    stack: list[int] = []
    for index, token in enumerate(tokens):
        if token.kind != "punct":
            continue
        if token.value in OPENERS:
            stack.append(index)
        elif token.value in CLOSERS:
            if not stack:
                raise MalformedDocumentError(
                    f"Unexpected '{token.value}' at offset {token.start}", token.start
                )
            opener = stack.pop()
            expected = OPENERS[tokens[opener].value]
            if token.value != expected:
                raise MalformedDocumentError(
                    f"Expected '{expected}' to close offset {tokens[opener].start}, "
                    f"found '{token.value}' at offset {token.start}",
                    token.start,
                )
            pairs[opener] = index
            pairs[index] = opener
    if stack:
        opener = tokens[stack[-1]]
        raise MalformedDocumentError(
            f"Unclosed '{opener.value}' at offset {opener.start}", opener.start
        )
    return pairs


def check_balanced(text: str) -> None:
    """Raise ``MalformedDocumentError`` unless every delimiter in *text* balances."""
    ScannedDocument(text)


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def line_start(text: str, offset: int) -> int:
    return text.rfind("\n", 0, offset) + 1


def line_end(text: str, offset: int) -> int:
    """Offset just past the newline ending the line that contains *offset*."""
    newline = text.find("\n", offset)
    return len(text) if newline == -1 else newline + 1


def line_indent(text: str, offset: int) -> str:
    start = line_start(text, offset)
    match = _WHITESPACE.match(text, start)
    if not match:
        return ""
    indent = match.group()
    return indent.split("\n")[0] if "\n" in indent else indent


def starts_line(text: str, offset: int) -> bool:
    """True when only whitespace precedes *offset* on its line."""
    return text[line_start(text, offset):offset].strip() == ""


def reindent(value: str, indent: str) -> str:
    """Prefix every line after the first with *indent* (blank lines stay blank)."""
    lines = value.split("\n")
    return "\n".join([lines[0]] + [indent + line if line.strip() else "" for line in lines[1:]])


def string_value(token: Token) -> str:
    """Decode the value of a quoted string token."""
    raw = token.value[1:-1]
    return re.sub(r"\\(.)", r"\1", raw)
