"""Best-effort source formatting through the Prettier CLI.

Formatting is optional: every failure surfaces as ``FormatterUnavailable``
and callers keep the unformatted text.
"""

from __future__ import annotations

from pathlib import Path

from ..errors import FormatterUnavailable
from ..utils import run_command

# Language hint -> file name Prettier uses to pick a parser.
_STDIN_FILEPATHS: dict[str, str] = {
    "svelte": "component.svelte",
    "babel": "module.js",
    "javascript": "module.js",
    "typescript": "module.ts",
    "json": "data.json",
    "css": "styles.css",
}


class PrettierFormatter:
    """Formats text by piping it through ``prettier --stdin-filepath``."""

    def __init__(
        self,
        command: list[str] | None = None,
        cwd: str | Path | None = None,
        timeout: int = 30,
    ) -> None:
        self.command = list(command) if command else ["npx", "--no-install", "prettier"]
        self.cwd = cwd
        self.timeout = timeout

    def supports(self, language_hint: str) -> bool:
        return language_hint in _STDIN_FILEPATHS

    async def format(self, text: str, language_hint: str) -> str:
        """Return *text* formatted for *language_hint*.

        Raises:
            FormatterUnavailable: If the language is unknown, Prettier is not
                installed, or it exits with an error (e.g. a missing
                ``prettier-plugin-svelte``).
        """
        if not self.supports(language_hint):
            raise FormatterUnavailable(f"No formatter for language '{language_hint}'")

        cmd = [*self.command, "--stdin-filepath", _STDIN_FILEPATHS[language_hint]]
        try:
            returncode, stdout, stderr = await run_command(
                cmd, cwd=self.cwd, timeout=self.timeout, input_text=text
            )
        except (FileNotFoundError, PermissionError) as exc:
            raise FormatterUnavailable(f"Prettier not available: {exc}") from exc

        if returncode != 0 or not stdout.strip():
            detail = stderr.splitlines()[0] if stderr else f"exit code {returncode}"
            raise FormatterUnavailable(f"Prettier failed for {language_hint}: {detail}")
        return stdout
