"""turbokit scaffolder -- creates workspaces and instantiates members.

``WorkspaceBuilder`` writes a complete pnpm/turbo workspace from a
``TemplateStore``; ``MemberInstantiator`` clones the canonical
``client-template`` member into a new, independently runnable member with its
own name, client identifier and dev-server port.

Quick usage::

    from turbokit.scaffolder import MemberInstantiator, TemplateStore, WorkspaceBuilder

    builder = WorkspaceBuilder(TemplateStore.default())
    workspace = await builder.build("/tmp/sms-turbo")
    member = await MemberInstantiator().instantiate(workspace, "client-blue")
"""

from turbokit.scaffolder.allocator import PortAllocator, ScanningPortAllocator
from turbokit.scaffolder.errors import (
    AllocationError,
    BuildFailed,
    InvalidMemberName,
    InvalidWorkspace,
    IOFailure,
    MemberAlreadyExists,
    PartialWriteFailure,
    PreconditionViolation,
    ScaffoldError,
    TemplateMissing,
    WorkspaceNotEmpty,
)
from turbokit.scaffolder.member import MemberInstantiator
from turbokit.scaffolder.models import Member, MemberState
from turbokit.scaffolder.store import TemplateEntry, TemplateNotFound, TemplateStore
from turbokit.scaffolder.workspace import Workspace, WorkspaceBuilder

__all__ = [
    "AllocationError",
    "BuildFailed",
    "IOFailure",
    "InvalidMemberName",
    "InvalidWorkspace",
    "Member",
    "MemberAlreadyExists",
    "MemberInstantiator",
    "MemberState",
    "PartialWriteFailure",
    "PortAllocator",
    "PreconditionViolation",
    "ScaffoldError",
    "ScanningPortAllocator",
    "TemplateEntry",
    "TemplateMissing",
    "TemplateNotFound",
    "TemplateStore",
    "Workspace",
    "WorkspaceBuilder",
    "WorkspaceNotEmpty",
]
