"""Member instantiation: clone the canonical client template into a new member.

A new member goes through ``Absent -> Cloned -> IdentityRewritten ->
PortAssigned -> EnvWritten -> Ready``.  All work happens in a hidden staging
directory next to the final location and is renamed into place only once the
member is complete, so the workspace never contains a half-written member.
"""

from __future__ import annotations

import asyncio
import json
import os
import re
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path

from jinja2 import Environment, StrictUndefined

from turbokit.config import Config
from turbokit.utils import derive_display_name, sanitize_name

from .allocator import PortAllocator, ScanningPortAllocator
from .errors import (
    AllocationError,
    InvalidMemberName,
    MemberAlreadyExists,
    PartialWriteFailure,
    TemplateMissing,
)
from .models import Member, MemberState
from .workspace import (
    ENV_FILE,
    INSTALL_ARTIFACTS,
    MANIFEST,
    TEMPLATE_MEMBER,
    Workspace,
    parse_port,
    read_env_file,
)


AllocatorFactory = Callable[[Workspace, int], PortAllocator]

_MEMBER_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9._-]*$")

_ENV_TEMPLATE = Environment(undefined=StrictUndefined, keep_trailing_newline=True).from_string(
    "{% for key, value in values.items() %}{{ key }}={{ value }}\n{% endfor %}"
)


class MemberInstantiator:
    """Creates new members from the workspace's canonical template member.

    Args:
        config: Supplies the fallback base port and API URL (used when the
            template's env file lacks them) and the display-name rules.
        allocator_factory: Builds the ``PortAllocator`` for a workspace and
            base port.  Defaults to ``ScanningPortAllocator``.
    """

    def __init__(
        self,
        config: Config | None = None,
        allocator_factory: AllocatorFactory | None = None,
    ) -> None:
        self.config = config or Config()
        self.allocator_factory = allocator_factory or self._default_allocator

    async def instantiate(self, workspace: Workspace, member_name: str) -> Member:
        """Create ``members/<member_name>`` and return the new ``Member``.

        Preconditions are checked before anything is written; a violation
        leaves the workspace byte-for-byte unchanged.

        Raises:
            InvalidMemberName: *member_name* is not a usable package/directory name.
            AllocationError: the template env file declares an unusable base port.
            InvalidWorkspace: root config files or shared packages are missing.
            MemberAlreadyExists: ``members/<member_name>`` is already present.
            TemplateMissing: the canonical template member is absent.
            PartialWriteFailure: a step failed after staging began; the staging
                directory has been removed.
        """
        _check_member_name(member_name)
        await asyncio.to_thread(workspace.ensure_valid)

        final_dir = workspace.member_dir(member_name)
        if await asyncio.to_thread(os.path.lexists, final_dir):
            raise MemberAlreadyExists(f"Member '{member_name}' already exists", final_dir)
        if not await asyncio.to_thread(workspace.has_template):
            raise TemplateMissing("Canonical template member not found", workspace.template_dir)

        template_env = await asyncio.to_thread(read_env_file, workspace.template_dir / ENV_FILE)
        base_port = parse_port(template_env.get("VITE_PORT")) or self.config.base_port
        api_url = template_env.get("VITE_API_URL") or self.config.api_url
        try:
            allocator = self.allocator_factory(workspace, base_port)
        except AllocationError as exc:
            raise AllocationError(exc.message, workspace.template_dir / ENV_FILE) from exc

        state = MemberState.ABSENT
        staging: Path | None = None
        try:
            staging = await asyncio.to_thread(
                _create_staging_dir, workspace.members_root, member_name
            )

            await asyncio.to_thread(_clone_tree, workspace.template_dir, staging)
            state = MemberState.CLONED

            await asyncio.to_thread(
                _rewrite_manifest_file, staging / MANIFEST, TEMPLATE_MEMBER, member_name
            )
            state = MemberState.IDENTITY_REWRITTEN

            port = await asyncio.to_thread(allocator.next)
            state = MemberState.PORT_ASSIGNED

            member = Member(
                name=member_name,
                display_name=derive_display_name(
                    member_name, self.config.member_prefix, self.config.display_suffix
                ),
                client_identifier=member_name,
                port=port,
                path=final_dir,
            )
            env_text = _ENV_TEMPLATE.render(values=member.env_values(api_url))
            await asyncio.to_thread(
                (staging / ENV_FILE).write_text, env_text, encoding="utf-8"
            )
            state = MemberState.ENV_WRITTEN

            await asyncio.to_thread(_promote, staging, final_dir)
            state = MemberState.READY
        except Exception as exc:
            raise PartialWriteFailure(
                f"Instantiating '{member_name}' failed after state '{state.value}' ({exc})",
                final_dir,
            ) from exc
        finally:
            if staging is not None and state is not MemberState.READY:
                await asyncio.to_thread(shutil.rmtree, staging, ignore_errors=True)

        return member

    def _default_allocator(self, workspace: Workspace, base_port: int) -> PortAllocator:
        return ScanningPortAllocator.for_workspace(
            workspace, base_port, prefix=self.config.member_prefix
        )


# ---------------------------------------------------------------------------
# Identity rewrite
# ---------------------------------------------------------------------------


def rewrite_manifest_name(text: str, old: str, new: str) -> str:
    """Replace the top-level ``"name"`` value of a package manifest.

    Only the quoted value of the top-level ``name`` key changes; the same
    string anywhere else in the manifest (nested ``name`` keys, descriptions,
    scripts) and all formatting are preserved.

    Raises:
        ValueError: the manifest is not a JSON object named *old*, or the
            top-level field cannot be located textually.
    """
    original = json.loads(text)
    if not isinstance(original, dict) or original.get("name") != old:
        raise ValueError(f'manifest "name" is not "{old}"')

    expected = {**original, "name": new}
    pattern = re.compile(r'("name"\s*:\s*)' + re.escape(json.dumps(old)))
    for match in pattern.finditer(text):
        candidate = text[: match.start()] + match.group(1) + json.dumps(new) + text[match.end():]
        if json.loads(candidate) == expected:
            return candidate
    raise ValueError('top-level "name" field not found in manifest')


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _check_member_name(name: str) -> None:
    if not _MEMBER_NAME_RE.match(name) or sanitize_name(name) != name:
        raise InvalidMemberName(
            f"Invalid member name '{name}' (use lowercase letters, digits, '-', '_' or '.')"
        )
    if name == TEMPLATE_MEMBER:
        raise InvalidMemberName(f"'{name}' is reserved for the canonical template member")


def _create_staging_dir(members_root: Path, name: str) -> Path:
    return Path(tempfile.mkdtemp(prefix=f".{name}.", dir=members_root))


def _clone_tree(source: Path, destination: Path) -> None:
    """Copy *source* into the existing *destination*, byte-for-byte."""
    shutil.copytree(
        source,
        destination,
        symlinks=True,
        ignore=shutil.ignore_patterns(*INSTALL_ARTIFACTS),
        dirs_exist_ok=True,
    )


def _rewrite_manifest_file(path: Path, old: str, new: str) -> None:
    text = path.read_bytes().decode("utf-8")
    path.write_bytes(rewrite_manifest_name(text, old, new).encode("utf-8"))


def _promote(staging: Path, final_dir: Path) -> None:
    """Atomically move the finished member into place."""
    if os.path.lexists(final_dir):
        raise FileExistsError(f"{final_dir} appeared while the member was being created")
    os.rename(staging, final_dir)
