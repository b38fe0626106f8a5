"""
Adapter base — the seam between devbox and the tools it drives.

Each adapter wraps one external CLI (nix-env, nix-shell, docker) and
exposes its operations by action id.  ``Devbox`` reaches adapters
only through ``AdapterRegistry.execute_action``, so tests swap in
``MockAdapter`` without touching a subprocess.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from devbox.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """An action plus where to run it."""

    action: Action
    project_root: str = "."
    params: dict[str, Any] = Field(default_factory=dict)

    @property
    def working_dir(self) -> str:
        """``cwd`` param if given, else the project root."""
        return self.params.get("cwd") or self.project_root


class Adapter(ABC):
    """One external tool.

    ``execute`` reports failures in the returned Receipt; it does not
    raise.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key: "nix", "nix-shell" or "docker"."""

    @abstractmethod
    def is_available(self) -> bool:
        """True if the tool's binary is on PATH."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Check the operation and its params; returns (ok, reason)."""

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Run the operation."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


def require_params(context: ExecutionContext, *names: str) -> tuple[bool, str]:
    """(False, reason) if any of ``names`` is missing or empty."""
    missing = [n for n in names if not context.params.get(n)]
    if missing:
        return False, f"Missing required param: {', '.join(repr(m) for m in missing)}"
    return True, ""


def unknown_operation(context: ExecutionContext, valid: list[str]) -> tuple[bool, str]:
    """Validation result for an action id the adapter doesn't handle."""
    return False, f"Unknown operation '{context.action.id}'. Valid: {', '.join(sorted(valid))}"
