"""Shared pytest fixtures for the turbokit test suite.

Provides reusable fixtures for:
- A small in-memory template store shaped like the real payload
- Workspaces built from that store or from the embedded payload
- Directory snapshots for "nothing changed" assertions
- Mock subprocess helpers
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from turbokit.config import Config
from turbokit.scaffolder import TemplateStore, Workspace, WorkspaceBuilder
from turbokit.scaffolder.workspace import SHARED_PACKAGES


# ---------------------------------------------------------------------------
# Template fixtures
# ---------------------------------------------------------------------------

# The nested "config.name" comes first so a naive first-match substitution
# would hit the wrong field.
TEMPLATE_MANIFEST = """\
{
  "config": {
    "name": "client-template"
  },
  "name": "client-template",
  "description": "Clone of client-template for a single client",
  "private": true,
  "scripts": {
    "dev": "vite"
  },
  "dependencies": {
    "@repo/ui": "workspace:*"
  }
}
"""

TEMPLATE_ENV = """\
VITE_API_URL={{ api_url }}
VITE_CLIENT_ID=default
VITE_PORT={{ base_port }}
VITE_CLIENT_NAME=Template Client
"""

LOGO_BYTES = bytes(range(256)) * 4


def fixture_files() -> dict[str, bytes | str]:
    """Files of a minimal but valid workspace template."""
    files: dict[str, bytes | str] = {
        "package.json.j2": '{\n  "name": "{{ workspace_name }}",\n  "private": true\n}\n',
        "pnpm-workspace.yaml.j2": 'packages:\n  - "{{ members_dir }}/*"\n  - "packages/*"\n',
        "tsconfig.json": '{\n  "compilerOptions": {"strict": true}\n}\n',
        "turbo.json": '{\n  "tasks": {"dev": {"cache": false}}\n}\n',
        ".gitignore": "/node_modules\n",
        "scripts/hello.sh": "#!/bin/sh\necho hello\n",
        "members/client-template/package.json": TEMPLATE_MANIFEST,
        "members/client-template/.env.j2": TEMPLATE_ENV,
        "members/client-template/src/App.tsx": "export default function App() { return null }\n",
        "members/client-template/src/index.css": "@tailwind base;\r\n@tailwind components;\r\n",
        "members/client-template/public/logo.bin": LOGO_BYTES,
    }
    for package in SHARED_PACKAGES:
        files[f"packages/{package}/package.json"] = json.dumps(
            {"name": f"@repo/{package}", "version": "1.0.0"}, indent=2
        ) + "\n"
    files["packages/ui/src/index.ts"] = "export const Button = () => null;\n"
    return files


@pytest.fixture
def config() -> Config:
    return Config(workspace_name="test-workspace", api_url="http://localhost:3999")


@pytest.fixture
def fixture_store() -> TemplateStore:
    return TemplateStore(fixture_files())


@pytest_asyncio.fixture
async def workspace(tmp_path: Path, fixture_store: TemplateStore, config: Config) -> Workspace:
    """A freshly built workspace from the fixture template store."""
    builder = WorkspaceBuilder(fixture_store, config)
    return await builder.build(tmp_path / "ws")


@pytest_asyncio.fixture
async def default_workspace(tmp_path: Path) -> Workspace:
    """A freshly built workspace from the embedded payload."""
    builder = WorkspaceBuilder(TemplateStore.default(), Config())
    return await builder.build(tmp_path / "sms-turbo")


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


def snapshot_tree(root: Path) -> dict[str, bytes | None]:
    """Map every path under *root* to its bytes (``None`` for directories)."""
    snapshot: dict[str, bytes | None] = {}
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root).as_posix()
        snapshot[rel] = None if path.is_dir() else path.read_bytes()
    return snapshot


@pytest.fixture
def snapshot():
    """Factory fixture returning :func:`snapshot_tree`."""
    return snapshot_tree


# ---------------------------------------------------------------------------
# Mock subprocess
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory
