"""Pydantic v2 models for instantiated workspace members."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class MemberState(str, Enum):
    """Lifecycle of a member while it is being instantiated.

    ``READY`` is terminal.  A failure in any earlier state rolls the member
    back to ``ABSENT``.
    """
    ABSENT = "absent"
    CLONED = "cloned"
    IDENTITY_REWRITTEN = "identity_rewritten"
    PORT_ASSIGNED = "port_assigned"
    ENV_WRITTEN = "env_written"
    READY = "ready"


class Member(BaseModel):
    """One instantiated application inside a workspace.

    Members are never patched after creation; regenerating one means creating
    a new member.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Directory name and package manifest name")
    display_name: str = Field(..., description="Human label, e.g. 'Blue Client'")
    client_identifier: str = Field(
        ..., description="Key the app uses to look up its theme from the config service"
    )
    port: int = Field(..., ge=1, le=65535, description="Dev-server port")
    path: Path = Field(..., description="Member directory")

    def env_values(self, api_url: str) -> dict[str, str]:
        """Return the key/value pairs written to the member's ``.env`` file."""
        return {
            "VITE_API_URL": api_url,
            "VITE_CLIENT_ID": self.client_identifier,
            "VITE_PORT": str(self.port),
            "VITE_CLIENT_NAME": self.display_name,
        }
