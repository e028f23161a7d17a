"""Workspace layout, validation and initial materialization.

A workspace is a pnpm/turbo monorepo made of a fixed set of root configuration
files, seven shared packages under ``packages/`` and one directory per member
under ``members/``.  ``WorkspaceBuilder`` writes the whole tree from a
``TemplateStore`` once, at creation time; ``Workspace`` answers questions about
an existing tree by reading the filesystem on every call.
"""

from __future__ import annotations

import asyncio
import shutil
import stat
from dataclasses import dataclass
from pathlib import Path

from dotenv import dotenv_values

from turbokit.config import Config
from turbokit.utils import console

from .errors import BuildFailed, InvalidWorkspace, WorkspaceNotEmpty
from .models import Member
from .store import TemplateStore


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------

MEMBERS_DIR = "members"
TEMPLATE_MEMBER = "client-template"
MANIFEST = "package.json"
ENV_FILE = ".env"

ROOT_FILES: tuple[str, ...] = (
    "package.json",
    "pnpm-workspace.yaml",
    "tsconfig.json",
    "turbo.json",
)

SHARED_PACKAGES: tuple[str, ...] = (
    "config",
    "router",
    "theme",
    "ui",
    "utils",
    "store",
    "components",
)

# Produced by the installer or the dev server; never cloned into new members.
INSTALL_ARTIFACTS: tuple[str, ...] = ("node_modules", "dist", ".turbo")


# ---------------------------------------------------------------------------
# Filesystem readers
# ---------------------------------------------------------------------------


def read_env_file(path: Path) -> dict[str, str]:
    """Parse a ``KEY=VALUE`` env file; returns ``{}`` when it does not exist."""
    if not path.is_file():
        return {}
    return {key: value for key, value in dotenv_values(path).items() if value is not None}


def parse_port(value: str | None) -> int | None:
    """Return *value* as a TCP port, or ``None`` when it is missing or invalid."""
    if value is None:
        return None
    try:
        port = int(value.strip())
    except ValueError:
        return None
    return port if 0 < port <= 65535 else None


def iter_member_dirs(members_root: Path, *, include_template: bool = False) -> list[Path]:
    """Return member directories in name order.

    Hidden entries (in-progress staging directories) and directories without
    a package manifest are not members.
    """
    if not members_root.is_dir():
        return []
    result: list[Path] = []
    for child in sorted(members_root.iterdir()):
        if child.name.startswith(".") or not child.is_dir():
            continue
        if child.name == TEMPLATE_MEMBER and not include_template:
            continue
        if (child / MANIFEST).is_file():
            result.append(child)
    return result


def load_member(member_dir: Path) -> Member | None:
    """Read a member back from its directory, or ``None`` if its env has no port."""
    env = read_env_file(member_dir / ENV_FILE)
    port = parse_port(env.get("VITE_PORT"))
    if port is None:
        return None
    return Member(
        name=member_dir.name,
        display_name=env.get("VITE_CLIENT_NAME", ""),
        client_identifier=env.get("VITE_CLIENT_ID", member_dir.name),
        port=port,
        path=member_dir,
    )


# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Workspace:
    """A workspace root directory plus the members found beneath it.

    Nothing is cached: every query re-reads the directory tree, so name and
    port uniqueness always reflect what is on disk.
    """

    root: Path

    @classmethod
    def open(cls, root: str | Path) -> "Workspace":
        return cls(Path(root))

    @property
    def members_root(self) -> Path:
        return self.root / MEMBERS_DIR

    @property
    def template_dir(self) -> Path:
        return self.members_root / TEMPLATE_MEMBER

    def member_dir(self, name: str) -> Path:
        return self.members_root / name

    # -- Validation --------------------------------------------------------

    def missing_paths(self) -> list[str]:
        """Return the required root files and shared packages that are absent."""
        missing = [name for name in ROOT_FILES if not (self.root / name).is_file()]
        for package in SHARED_PACKAGES:
            rel = f"packages/{package}/{MANIFEST}"
            if not (self.root / rel).is_file():
                missing.append(rel)
        return missing

    @property
    def is_valid(self) -> bool:
        return not self.missing_paths()

    def ensure_valid(self) -> None:
        """Raise ``InvalidWorkspace`` unless every required path exists."""
        missing = self.missing_paths()
        if missing:
            raise InvalidWorkspace(self.root, missing)

    # -- Members -----------------------------------------------------------

    def has_template(self) -> bool:
        return (self.template_dir / MANIFEST).is_file()

    def member_names(self) -> list[str]:
        """Names of the instantiated members (the template is not one)."""
        return [path.name for path in iter_member_dirs(self.members_root)]

    def members(self) -> list[Member]:
        """Instantiated members whose env file declares a port."""
        members = (load_member(path) for path in iter_member_dirs(self.members_root))
        return [member for member in members if member is not None]

    def template_member(self) -> Member | None:
        if not self.has_template():
            return None
        return load_member(self.template_dir)


# ---------------------------------------------------------------------------
# WorkspaceBuilder
# ---------------------------------------------------------------------------


class WorkspaceBuilder:
    """Lays out a complete workspace from a ``TemplateStore``.

    The store and configuration are injected so tests can build from fixture
    templates.
    """

    def __init__(self, store: TemplateStore, config: Config | None = None) -> None:
        self.store = store
        self.config = config or Config()

    async def build(self, target_dir: str | Path, *, overwrite: bool = False) -> Workspace:
        """Write every template entry below *target_dir*.

        Args:
            target_dir: Workspace root.  Created when missing.
            overwrite: Caller confirmation that a non-empty *target_dir* may be
                removed and recreated.  Without it a non-empty directory is
                left untouched.

        Returns:
            The new ``Workspace``.

        Raises:
            WorkspaceNotEmpty: *target_dir* has content and *overwrite* is false.
            BuildFailed: any filesystem write failed.  Files written before the
                failure are not removed.
        """
        target = Path(target_dir)
        populated = await asyncio.to_thread(_is_populated, target)

        if populated and not overwrite:
            raise WorkspaceNotEmpty(
                "Target directory is not empty (confirm overwrite to replace it)", target
            )

        try:
            if populated:
                console.print(f"[yellow]Replacing existing directory[/yellow] {target}")
                await asyncio.to_thread(_clear_target, target)
            await asyncio.to_thread(target.mkdir, parents=True, exist_ok=True)
        except OSError as exc:
            raise BuildFailed(f"Cannot prepare target directory ({_reason(exc)})", target) from exc

        context = self.config.template_context()
        for entry in self.store.list():
            destination = target / entry.path
            data = self.store.render(entry, context)
            try:
                await asyncio.to_thread(
                    _write_entry, destination, data, _is_script(entry.path)
                )
            except OSError as exc:
                raise BuildFailed(
                    f"Failed to write workspace file ({_reason(exc)})", destination
                ) from exc

        return Workspace(target)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _is_populated(target: Path) -> bool:
    """``True`` when *target* exists and is anything but an empty directory."""
    if not target.exists() and not target.is_symlink():
        return False
    if not target.is_dir() or target.is_symlink():
        return True
    return any(target.iterdir())


def _clear_target(target: Path) -> None:
    """Empty *target* in place; the directory itself is kept.

    Removing the contents rather than the directory keeps this working when
    *target* is the current working directory.
    """
    if target.is_symlink() or not target.is_dir():
        target.unlink()
        return
    for child in target.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()


def _is_script(path: str) -> bool:
    return path.startswith("scripts/") or path.endswith(".sh")


def _write_entry(path: Path, data: bytes, executable: bool) -> None:
    """Synchronous helper: create parent dirs, write bytes, set the exec bit."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    if executable:
        current = path.stat().st_mode
        path.chmod(current | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def _reason(exc: OSError) -> str:
    return exc.strerror or str(exc)
