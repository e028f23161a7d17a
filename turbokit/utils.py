"""Shared utility functions for turbokit.

Provides async command execution, name helpers, Rich-based console output and
port validation.  Every public function is designed to be side-effect-free
where possible, with clear error messages when something goes wrong.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: int = 120,
) -> tuple[int, str, str]:
    """Run a command asynchronously and capture its output.

    Args:
        cmd: Program and arguments; no shell is involved.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.  A timeout is reported as
        return code ``-1`` with the reason in *stderr*.
    """
    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=str(cwd) if cwd else None,
    )

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return (-1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}")

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return (process.returncode or 0, stdout_str, stderr_str)


# ---------------------------------------------------------------------------
# String / name helpers
# ---------------------------------------------------------------------------


def sanitize_name(name: str) -> str:
    """Convert an arbitrary name to a safe directory/package name.

    * Lowercases the input.
    * Replaces spaces and non-alphanumeric characters (except hyphens,
      underscores and dots) with hyphens.
    * Collapses consecutive hyphens and strips leading/trailing hyphens
      and dots.

    Examples::

        sanitize_name("Client Blue") -> "client-blue"
        sanitize_name("  ACME (EU)  ") -> "acme-eu"
    """
    result = re.sub(r"[^a-zA-Z0-9._-]", "-", name.strip().lower())
    result = re.sub(r"-+", "-", result)
    return result.strip("-.")


def derive_display_name(name: str, prefix: str = "client-", suffix: str = " Client") -> str:
    """Turn a member name into a human label.

    The *prefix* token is stripped once from the front, the remainder gets its
    first letter upper-cased and the rest lower-cased, then *suffix* is
    appended.

    Examples::

        derive_display_name("client-blue")   -> "Blue Client"
        derive_display_name("client-ACME")   -> "Acme Client"
        derive_display_name("northwind")     -> "Northwind Client"
    """
    stem = name[len(prefix):] if prefix and name.startswith(prefix) else name
    return f"{stem.capitalize()}{suffix}"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_summary_table(
    rows: list[tuple[str, ...]],
    columns: tuple[str, ...],
    title: str = "Summary",
) -> None:
    """Print a simple table with the given *columns*.

    Args:
        rows: Row tuples, one value per column.
        columns: Column headers.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    for index, column in enumerate(columns):
        table.add_column(column, style="dim" if index == 0 else None, no_wrap=index == 0)

    for row in rows:
        table.add_row(*(str(value) for value in row))

    console.print(table)
    console.print()


def print_panel(body: str, title: str, style: str = "green") -> None:
    """Print *body* inside a bordered panel."""
    console.print(Panel(body, title=title, border_style=style))


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]Error:[/bold red] {escape(message)}", highlight=False)


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{escape(message)}[/bold yellow]")


# ---------------------------------------------------------------------------
# Port helpers
# ---------------------------------------------------------------------------


def validate_port(port: int) -> bool:
    """Return ``True`` if *port* is an unprivileged TCP port (1024-65535)."""
    return 1024 <= port <= 65535
