"""
Adapter registry — dispatch of nix, nix-shell and docker operations.

``Devbox`` never calls an adapter directly: it builds an Action and
hands it to ``execute_action``, which always answers with a Receipt.
Anything an adapter does wrong (unknown operation, missing params, an
exception escaping ``execute``) comes back as a failed receipt.
"""

from __future__ import annotations

import logging
import time

from devbox.adapters.base import Adapter, ExecutionContext
from devbox.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


def _failed(action: Action, error: str) -> Receipt:
    return Receipt.failure(adapter=action.adapter, action_id=action.id, error=error)


class AdapterRegistry:
    """Adapters by name.

    In mock mode nothing is dispatched: every action succeeds with a
    ``{"mock": True}`` receipt.
    """

    def __init__(self, mock_mode: bool = False):
        self._adapters: dict[str, Adapter] = {}
        self._mock_mode = mock_mode

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    def register(self, adapter: Adapter) -> None:
        if adapter.name in self._adapters:
            logger.warning("Replacing adapter %s", adapter.name)
        self._adapters[adapter.name] = adapter

    def unregister(self, name: str) -> None:
        self._adapters.pop(name, None)

    def get(self, name: str) -> Adapter | None:
        return self._adapters.get(name)

    def list_adapters(self) -> list[str]:
        return sorted(self._adapters)

    def missing_tools(self) -> list[str]:
        """Names of registered adapters whose tool is not installed."""
        missing = []
        for name, adapter in sorted(self._adapters.items()):
            try:
                available = adapter.is_available()
            except Exception as e:
                logger.debug("Availability check for %s failed: %s", name, e)
                available = False
            if not available:
                missing.append(name)
        return missing

    def execute_action(self, action: Action, project_root: str = ".") -> Receipt:
        """Validate and run ``action`` with its adapter.  Never raises."""
        if self._mock_mode:
            return Receipt.success(
                adapter=action.adapter,
                action_id=action.id,
                output=f"[mock] {action}",
                metadata={"mock": True},
            )

        adapter = self._adapters.get(action.adapter)
        if adapter is None:
            return _failed(action, f"No adapter registered for '{action.adapter}'")

        context = ExecutionContext(action=action, project_root=project_root, params=action.params)
        try:
            valid, reason = adapter.validate(context)
        except Exception as e:
            return _failed(action, f"Validation error: {e}")
        if not valid:
            return _failed(action, f"Validation failed: {reason}")

        logger.debug("Executing %s", action)
        started = time.monotonic()
        try:
            receipt = adapter.execute(context)
        except Exception as e:
            logger.error("Adapter %s raised on %s: %s", action.adapter, action.id, e)
            receipt = _failed(action, f"Unexpected error: {e}")

        if not receipt.duration_ms:
            receipt.duration_ms = int((time.monotonic() - started) * 1000)
        if receipt.failed:
            logger.debug("%s failed: %s", action, receipt.error)
        return receipt


def default_registry() -> AdapterRegistry:
    """Registry with the real nix, nix-shell and docker adapters."""
    from devbox.adapters.containers.docker import DockerAdapter
    from devbox.adapters.nix.nix import NixAdapter
    from devbox.adapters.shell.nix_shell import NixShellAdapter

    registry = AdapterRegistry()
    for adapter in (NixAdapter(), NixShellAdapter(), DockerAdapter()):
        registry.register(adapter)
    return registry
