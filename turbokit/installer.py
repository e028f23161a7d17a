"""External dependency installer.

Workspaces are installed with ``pnpm install`` as a separate process after the
scaffolder has finished.  The scaffolder never calls into this module; only the
CLI does, and only when asked to.
"""

from __future__ import annotations

import re
import shutil
from pathlib import Path

from turbokit.utils import console, run_command


class InstallerError(Exception):
    """Raised when a prerequisite is missing or ``pnpm install`` fails."""

    def __init__(self, message: str, command: str = "", stderr: str = ""):
        self.command = command
        self.stderr = stderr
        super().__init__(message)


def parse_version(text: str) -> tuple[int, ...]:
    """Extract a numeric version tuple from ``v20.11.1``-style output.

    Examples::

        parse_version("v20.11.1") -> (20, 11, 1)
        parse_version("9.12.2\\n") -> (9, 12, 2)
    """
    match = re.search(r"(\d+(?:\.\d+)*)", text)
    if not match:
        raise InstallerError(f"Cannot parse version from: {text!r}")
    return tuple(int(part) for part in match.group(1).split("."))


async def check_prerequisites(node_min_version: str = "20.0.0") -> dict[str, str]:
    """Verify that Node.js (at least *node_min_version*) and pnpm are installed.

    Returns:
        ``{"node": <version>, "pnpm": <version>}``.

    Raises:
        InstallerError: a tool is missing or Node.js is too old.
    """
    versions: dict[str, str] = {}
    for tool, hint in (
        ("node", f"Please install Node.js {node_min_version.split('.')[0]}+ first."),
        ("pnpm", "Please install pnpm first: npm install -g pnpm"),
    ):
        if shutil.which(tool) is None:
            raise InstallerError(f"{tool} is required but not installed. {hint}")
        returncode, stdout, stderr = await run_command([tool, "--version"], timeout=30)
        if returncode != 0:
            raise InstallerError(
                f"`{tool} --version` failed (exit {returncode})",
                command=f"{tool} --version",
                stderr=stderr,
            )
        versions[tool] = stdout.strip()

    if parse_version(versions["node"]) < parse_version(node_min_version):
        raise InstallerError(
            f"Node.js version must be {node_min_version} or higher. Current: {versions['node']}"
        )
    return versions


async def install_dependencies(root: str | Path, timeout: int = 600) -> None:
    """Run ``pnpm install`` in the workspace *root*.

    Raises:
        InstallerError: the install exits non-zero or times out.
    """
    console.print(f"[blue]Installing dependencies in[/blue] {root}...")
    returncode, _stdout, stderr = await run_command(
        ["pnpm", "install"], cwd=root, timeout=timeout
    )
    if returncode != 0:
        raise InstallerError(
            f"pnpm install failed (exit {returncode})",
            command="pnpm install",
            stderr=stderr,
        )
