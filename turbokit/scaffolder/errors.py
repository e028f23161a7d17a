"""Error taxonomy for workspace and member scaffolding.

Every error carries the filesystem path it concerns so the CLI can report a
single line naming it.  Nothing here is retried automatically.
"""

from __future__ import annotations

from pathlib import Path


class ScaffoldError(Exception):
    """Base class for every failure raised by the scaffolding engine."""

    def __init__(self, message: str, path: str | Path | None = None) -> None:
        self.message = message
        self.path = Path(path) if path is not None else None
        super().__init__(message)

    def __str__(self) -> str:
        if self.path is None:
            return self.message
        return f"{self.message}: {self.path}"


# ---------------------------------------------------------------------------
# Precondition violations -- recoverable by the caller, never retried
# ---------------------------------------------------------------------------


class PreconditionViolation(ScaffoldError):
    """The requested operation cannot start in the current workspace state."""


class MemberAlreadyExists(PreconditionViolation):
    """A member directory with the requested name is already present."""


class TemplateMissing(PreconditionViolation):
    """The canonical template member is absent from the workspace."""


class InvalidWorkspace(PreconditionViolation):
    """Root configuration files or shared packages are missing."""

    def __init__(self, path: str | Path, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(
            f"Not a valid workspace (missing {', '.join(self.missing)})", path
        )


class InvalidMemberName(PreconditionViolation):
    """The requested member name cannot be used as a directory/package name."""


class WorkspaceNotEmpty(PreconditionViolation):
    """Target directory has content and overwrite was not confirmed."""


class AllocationError(PreconditionViolation):
    """No valid dev-server port can be allocated."""


# ---------------------------------------------------------------------------
# I/O failures
# ---------------------------------------------------------------------------


class IOFailure(ScaffoldError):
    """An environmental filesystem error (permissions, disk space, ...)."""


class BuildFailed(IOFailure):
    """Writing a workspace entry failed; the partial workspace is left as is."""


class PartialWriteFailure(ScaffoldError):
    """Member instantiation failed midway; the partial member was rolled back."""
