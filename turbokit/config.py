"""turbokit configuration.

Centralised, typed configuration for workspace creation and member
instantiation.  All settings use Pydantic v2 models so they can be validated
at construction time and serialised to/from JSON or environment variables
without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class Config(BaseModel):
    """Global turbokit configuration.

    Instances are created once by the CLI entry point (usually through
    :meth:`from_env`) and passed explicitly into ``WorkspaceBuilder`` and
    ``MemberInstantiator``.
    """

    workspace_name: str = Field(default="sms-turbo", min_length=1)
    base_port: int = Field(
        default=5173,
        ge=1024,
        le=65535,
        description="Dev-server port of the canonical template member",
    )
    api_url: str = Field(
        default="http://localhost:3001",
        description="Theme/config API base URL written into member env files",
    )
    mock_api_port: int = Field(default=3001, ge=1024, le=65535)
    member_prefix: str = Field(
        default="client-",
        description="Token stripped from member names when deriving display names",
    )
    display_suffix: str = Field(default=" Client")
    node_min_version: str = Field(default="20.0.0")
    install_timeout: int = Field(
        default=600, ge=30, description="pnpm install timeout in seconds"
    )

    # ------------------------------------------------------------------
    # Template context
    # ------------------------------------------------------------------

    def template_context(self) -> dict[str, Any]:
        """Return the Jinja2 context used to render parameterized templates."""
        # Imported lazily; the scaffolder package imports this module.
        from turbokit.scaffolder.workspace import (
            MEMBERS_DIR,
            SHARED_PACKAGES,
            TEMPLATE_MEMBER,
        )

        return {
            "workspace_name": self.workspace_name,
            "base_port": self.base_port,
            "api_url": self.api_url,
            "mock_api_port": self.mock_api_port,
            "template_member": TEMPLATE_MEMBER,
            "members_dir": MEMBERS_DIR,
            "shared_packages": list(SHARED_PACKAGES),
        }

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Returns:
            The path where the file was written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls, **overrides: Any) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            TURBOKIT_WORKSPACE_NAME, TURBOKIT_BASE_PORT, TURBOKIT_API_URL,
            TURBOKIT_MOCK_API_PORT, TURBOKIT_MEMBER_PREFIX,
            TURBOKIT_INSTALL_TIMEOUT.

        Keyword *overrides* whose value is not ``None`` take precedence over
        the environment (used for CLI flags).
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("TURBOKIT_WORKSPACE_NAME"):
            kwargs["workspace_name"] = os.environ["TURBOKIT_WORKSPACE_NAME"]
        if os.environ.get("TURBOKIT_BASE_PORT"):
            kwargs["base_port"] = int(os.environ["TURBOKIT_BASE_PORT"])
        if os.environ.get("TURBOKIT_API_URL"):
            kwargs["api_url"] = os.environ["TURBOKIT_API_URL"]
        if os.environ.get("TURBOKIT_MOCK_API_PORT"):
            kwargs["mock_api_port"] = int(os.environ["TURBOKIT_MOCK_API_PORT"])
        if "TURBOKIT_MEMBER_PREFIX" in os.environ:
            kwargs["member_prefix"] = os.environ["TURBOKIT_MEMBER_PREFIX"]
        if os.environ.get("TURBOKIT_INSTALL_TIMEOUT"):
            kwargs["install_timeout"] = int(os.environ["TURBOKIT_INSTALL_TIMEOUT"])

        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**kwargs)
