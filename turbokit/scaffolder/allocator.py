"""Dev-server port allocation for new members.

``PortAllocator`` is the seam ``MemberInstantiator`` depends on.  The only
implementation, ``ScanningPortAllocator``, keeps no state of its own: it counts
the members already present in the workspace whose name carries the
member prefix (``client-`` by default) and hands out ``base_port + count``.

Known limitation: the count heuristic is not resilient to out-of-order
deletion.  Removing a member created before others and then adding a new one
can hand out a port a surviving member already uses.  The allocator reports
that collision but does not change the allocated value; a persisted
high-water mark or free-list would replace this class without touching the
instantiator.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Protocol, runtime_checkable

from turbokit.utils import print_warning, validate_port

from .errors import AllocationError
from .workspace import (
    ENV_FILE,
    TEMPLATE_MEMBER,
    Workspace,
    iter_member_dirs,
    parse_port,
    read_env_file,
)


@runtime_checkable
class PortAllocator(Protocol):
    """Hands out dev-server ports for new members."""

    def next(self) -> int:
        ...

    def release(self, port: int) -> None:
        ...


class ScanningPortAllocator:
    """Allocates ``base_port + number of existing members with the prefix``.

    Args:
        members_root: The workspace ``members/`` directory.
        base_port: Default port of the canonical template member.
        prefix: Only members whose name starts with it are counted.  An empty
            prefix counts every member.
        exclude: Directory names that never count as members.
    """

    def __init__(
        self,
        members_root: Path,
        base_port: int,
        prefix: str = "client-",
        exclude: Iterable[str] = (TEMPLATE_MEMBER,),
    ) -> None:
        if not validate_port(base_port):
            raise AllocationError(f"Base port out of range: {base_port}", members_root)
        self.members_root = Path(members_root)
        self.base_port = base_port
        self.prefix = prefix
        self.exclude = frozenset(exclude)

    @classmethod
    def for_workspace(
        cls, workspace: Workspace, base_port: int, prefix: str = "client-"
    ) -> "ScanningPortAllocator":
        return cls(workspace.members_root, base_port, prefix=prefix)

    def existing_members(self) -> list[Path]:
        return [
            path
            for path in iter_member_dirs(self.members_root, include_template=True)
            if path.name not in self.exclude and path.name.startswith(self.prefix)
        ]

    def assigned_ports(self) -> dict[str, int]:
        """Return ``{member name: port}`` read from each member's env file."""
        ports: dict[str, int] = {}
        for path in iter_member_dirs(self.members_root, include_template=True):
            if path.name in self.exclude:
                continue
            port = parse_port(read_env_file(path / ENV_FILE).get("VITE_PORT"))
            if port is not None:
                ports[path.name] = port
        return ports

    def next(self) -> int:
        port = self.base_port + len(self.existing_members())
        if not validate_port(port):
            raise AllocationError(f"Allocated port {port} is out of range", self.members_root)

        holders = sorted(name for name, used in self.assigned_ports().items() if used == port)
        if holders:
            print_warning(
                f"Port {port} is already assigned to {', '.join(holders)}; "
                "a member was probably removed out of creation order."
            )
        return port

    def release(self, port: int) -> None:
        """No-op: a port is released by removing its member directory."""
