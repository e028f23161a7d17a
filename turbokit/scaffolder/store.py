"""Content-addressed template payload store.

Holds the fixed set of files a new workspace is made of (root configuration,
shared packages, the canonical client template, the mock theme server) as
``path -> blob`` entries.  Payload files are opaque bytes copied verbatim;
files whose source name ends in ``.j2`` are Jinja2 templates rendered with a
small context (workspace name, ports, API URL) when the workspace is written.

The store is pure data: it never touches the filesystem after loading, which
lets tests substitute an in-memory fixture store for the embedded payload.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path, PurePosixPath
from typing import Any

from jinja2 import Environment, StrictUndefined, select_autoescape


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates" / "workspace"

TEMPLATE_SUFFIX = ".j2"


class TemplateNotFound(LookupError):
    """Raised when a path that is not part of the template set is requested."""


@dataclass(frozen=True)
class TemplateEntry:
    """An immutable ``(path, content)`` pair.

    ``path`` is workspace-relative with POSIX separators.  ``digest`` is the
    SHA-256 of ``content`` and keys the blob inside the owning store.
    """

    path: str
    digest: str
    content: bytes
    parameterized: bool = False


# ---------------------------------------------------------------------------
# TemplateStore
# ---------------------------------------------------------------------------


class TemplateStore:
    """Maps workspace-relative paths to content-addressed blobs.

    Identical payloads are stored once.  Entries are returned in
    deterministic path order.
    """

    def __init__(self, files: Mapping[str, bytes | str]) -> None:
        self._blobs: dict[str, bytes] = {}
        self._entries: dict[str, TemplateEntry] = {}

        for raw_path, content in files.items():
            data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
            path = _normalise_path(raw_path)
            parameterized = path.endswith(TEMPLATE_SUFFIX)
            if parameterized:
                path = path[: -len(TEMPLATE_SUFFIX)]
            if path in self._entries:
                raise ValueError(f"Duplicate template path: {path}")

            digest = hashlib.sha256(data).hexdigest()
            blob = self._blobs.setdefault(digest, data)
            self._entries[path] = TemplateEntry(path, digest, blob, parameterized)

        self.env = Environment(
            autoescape=select_autoescape([]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    # -- Constructors ------------------------------------------------------

    @classmethod
    def from_directory(cls, template_dir: str | Path) -> "TemplateStore":
        """Load every file under *template_dir* (dotfiles included)."""
        root = Path(template_dir)
        if not root.is_dir():
            raise FileNotFoundError(f"Template directory not found: {root}")
        files = {
            path.relative_to(root).as_posix(): path.read_bytes()
            for path in sorted(root.rglob("*"))
            if path.is_file() and "__pycache__" not in path.parts
        }
        return cls(files)

    @classmethod
    def default(cls) -> "TemplateStore":
        """Return the payload embedded in the package (loaded once)."""
        return _load_default_store()

    # -- Access ------------------------------------------------------------

    def get(self, path: str) -> TemplateEntry:
        """Return the entry stored at *path*.

        Raises:
            TemplateNotFound: *path* is not part of the template set.  The set
                is fixed at build time, so this is a programming error.
        """
        try:
            return self._entries[_normalise_path(path)]
        except (KeyError, ValueError):
            raise TemplateNotFound(f"No template entry for path: {path}") from None

    def list(self) -> list[TemplateEntry]:
        """Return every entry, sorted by path."""
        return [self._entries[key] for key in sorted(self._entries)]

    def blob(self, digest: str) -> bytes:
        """Return the blob with the given SHA-256 *digest*."""
        try:
            return self._blobs[digest]
        except KeyError:
            raise TemplateNotFound(f"No blob with digest: {digest}") from None

    def render(self, entry: TemplateEntry, context: dict[str, Any]) -> bytes:
        """Return the bytes to write for *entry*.

        Opaque entries come back unchanged; parameterized ones are rendered
        with *context* (missing variables raise ``jinja2.UndefinedError``).
        """
        if not entry.parameterized:
            return entry.content
        template = self.env.from_string(entry.content.decode("utf-8"))
        return template.render(**context).encode("utf-8")

    # -- Container protocol ------------------------------------------------

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, str):
            return False
        try:
            return _normalise_path(path) in self._entries
        except ValueError:
            return False

    def __iter__(self) -> Iterator[TemplateEntry]:
        return iter(self.list())

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def blob_count(self) -> int:
        """Number of distinct blobs (deduplicated payloads)."""
        return len(self._blobs)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _normalise_path(path: str) -> str:
    """Return *path* as a clean relative POSIX path.

    Absolute paths and parent-directory components are rejected so an entry
    can never be written outside the workspace root.
    """
    posix = PurePosixPath(str(path).replace("\\", "/"))
    if posix.is_absolute() or ".." in posix.parts or not posix.parts:
        raise ValueError(f"Template path must be relative and inside the workspace: {path}")
    return posix.as_posix()


@lru_cache(maxsize=1)
def _load_default_store() -> TemplateStore:
    return TemplateStore.from_directory(_DEFAULT_TEMPLATE_DIR)
