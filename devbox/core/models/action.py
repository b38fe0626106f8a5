"""
Action and Receipt models — how devbox talks to nix, nix-shell and docker.

An Action names an adapter, one of its operations ("exists",
"install", "shell", "exec", "build") and the operation's params.
Adapters answer with a Receipt and never raise; ``Devbox`` turns
failed receipts into InstallError, ShellError or BuildError.
"""

from __future__ import annotations

import shlex
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class Action(BaseModel):
    """One operation for one adapter."""

    id: str                         # operation, e.g. "install"
    adapter: str                    # "nix", "nix-shell" or "docker"
    params: dict[str, Any] = Field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.adapter}:{self.id}"


class Receipt(BaseModel):
    """What an adapter did.

    ``metadata["command"]`` holds the argv that was run, when there
    was one.
    """

    adapter: str
    action_id: str
    status: Literal["ok", "failed"] = "ok"

    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    duration_ms: int = 0

    output: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def command_line(self) -> str:
        """The command run, shell-quoted, or "" if none was recorded."""
        command = self.metadata.get("command")
        return shlex.join(command) if command else ""

    @classmethod
    def success(cls, adapter: str, action_id: str, output: str = "", **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, output=output, **kwargs)

    @classmethod
    def failure(cls, adapter: str, action_id: str, error: str, **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, status="failed", error=error, **kwargs)
