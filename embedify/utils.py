"""Shared utility functions for embedify.

Provides async command execution, identifier normalisation, file-system
helpers and Rich-based console reporting.  Name helpers are pure functions
with no I/O so they can be used from templates and patchers alike.
"""

from __future__ import annotations

import asyncio
import os
import re
from pathlib import Path
from typing import Any, Iterable

from rich.console import Console
from rich.table import Table

from .errors import DecodeError

console = Console()

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: int = 60,
    input_text: str | None = None,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run a command asynchronously and capture its output.

    Args:
        cmd: Program and arguments.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
        input_text: Optional text fed to the child's stdin.
        env: Optional extra environment variables merged on top of ``os.environ``.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.  Stdout is returned verbatim
        (not stripped) because callers use it as file content.

    Raises:
        FileNotFoundError: If the program does not exist.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdin=asyncio.subprocess.PIPE if input_text is not None else None,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=str(cwd) if cwd else None,
        env=merged_env,
    )

    stdin_bytes = input_text.encode("utf-8") if input_text is not None else None
    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(stdin_bytes), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return (-1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}")

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace")
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return (process.returncode or 0, stdout_str, stderr_str)


# ---------------------------------------------------------------------------
# String / name helpers
# ---------------------------------------------------------------------------

_DECLARATION_NAME = re.compile(r"^[A-Z][A-Za-z0-9]*$")
_JS_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


def to_lookup_key(name: str) -> str:
    """Convert a declaration name to its kebab-case lookup key.

    Examples::

        to_lookup_key("LinkedCard")   -> "linked-card"
        to_lookup_key("Theme Picker") -> "theme-picker"
        to_lookup_key("linked-card")  -> "linked-card"

    Distinct names can collide (``"LinkedCard"`` and ``"Linked Card"``);
    callers that care must check the registry themselves.
    """
    key = re.sub(r"([a-z])([A-Z])", r"\1-\2", name)
    key = re.sub(r"\s+", "-", key)
    return key.lower()


def is_declaration_name(name: str) -> bool:
    """Return ``True`` for a PascalCase component name such as ``MyBanner``."""
    return bool(_DECLARATION_NAME.match(name))


def is_js_identifier(value: str) -> bool:
    return bool(_JS_IDENTIFIER.match(value))


def quote_key(key: str) -> str:
    """Render *key* as an object-literal key, quoting only when required."""
    if is_js_identifier(key):
        return key
    escaped = key.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


async def read_text(path: str | Path) -> str | None:
    """Read a UTF-8 file off the event loop, returning ``None`` if it is missing.

    Raises:
        DecodeError: If the file is not valid UTF-8.
    """
    file_path = Path(path)
    if not file_path.exists():
        return None
    try:
        return await asyncio.to_thread(file_path.read_text, encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"{file_path} is not valid UTF-8: {exc.reason} at byte {exc.start}") from exc


async def write_text(path: str | Path, content: str) -> Path:
    """Write *content* to *path*, creating parent directories as needed."""
    file_path = Path(path)
    await asyncio.to_thread(_write_file, file_path, content)
    return file_path


def _write_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def relative_to(path: Path, root: Path) -> str:
    """Return *path* relative to *root* as a POSIX string when possible."""
    try:
        return path.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        return path.as_posix()


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------

STATUS_STYLES: dict[str, str] = {
    "new": "bold green",
    "changed": "green",
    "unchanged": "dim",
    "skipped": "yellow",
    "error": "bold red",
}


def print_summary_table(data: dict[str, Any], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_step_table(rows: Iterable[tuple[str, str, str, str]], title: str = "Files") -> None:
    """Print one row per pipeline step: ``(step, path, status, detail)``."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Step", no_wrap=True)
    table.add_column("Path")
    table.add_column("Status", no_wrap=True)
    table.add_column("Detail")

    for step, path, status, detail in rows:
        style = STATUS_STYLES.get(status, "white")
        table.add_row(step, path, f"[{style}]{status}[/{style}]", detail)

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
