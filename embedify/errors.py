"""Exception hierarchy for embedify."""

from __future__ import annotations


class EmbedifyError(Exception):
    """Base class for every error raised by embedify."""


class ParseError(EmbedifyError):
    """A component script could not be parsed."""

    def __init__(self, message: str, line: int | None = None) -> None:
        self.line = line
        if line is not None:
            message = f"{message} (line {line})"
        super().__init__(message)


class PatchError(EmbedifyError):
    """A target document could not be patched."""


class MalformedDocumentError(PatchError):
    """The target document has unbalanced delimiters or an unterminated literal."""

    def __init__(self, message: str, offset: int | None = None) -> None:
        self.offset = offset
        super().__init__(message)


class LookupKeyCollisionError(EmbedifyError):
    """Two declaration names normalise to the same lookup key."""

    def __init__(self, lookup_key: str, existing: str, requested: str) -> None:
        self.lookup_key = lookup_key
        self.existing = existing
        self.requested = requested
        super().__init__(
            f"Lookup key '{lookup_key}' is already registered to {existing}; "
            f"refusing to register {requested} (use --force to overwrite)"
        )


class DecodeError(EmbedifyError):
    """A target file is not valid UTF-8."""


class FormatterUnavailable(EmbedifyError):
    """The external formatter is missing or does not support the language."""


class RemoteError(EmbedifyError):
    """The remote repository API returned an error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class RemoteConflictError(RemoteError):
    """The remote file changed since its hash was read."""
