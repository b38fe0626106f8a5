"""
Mock adapter — stands in for nix, nix-shell or docker in tests.

Every call is recorded.  Operations succeed unless a receipt was
queued for them with ``set_response`` or ``set_failure``.
"""

from __future__ import annotations

from devbox.adapters.base import Adapter, ExecutionContext
from devbox.core.models.action import Receipt


class MockAdapter(Adapter):
    """Recording adapter that takes the name of the adapter it replaces."""

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        default_output: str = "[mock] executed",
    ):
        self._name = adapter_name
        self._available = available
        self._default_output = default_output
        self._responses: dict[str, Receipt] = {}
        self.call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_count(self) -> int:
        return len(self.call_log)

    def calls(self, operation: str) -> list[ExecutionContext]:
        """Recorded contexts for one operation (action id)."""
        return [c for c in self.call_log if c.action.id == operation]

    def is_available(self) -> bool:
        return self._available

    def set_response(self, operation: str, receipt: Receipt) -> None:
        self._responses[operation] = receipt

    def set_failure(self, operation: str, error: str = "mock failure", **kwargs) -> None:
        self.set_response(
            operation, Receipt.failure(adapter=self._name, action_id=operation, error=error, **kwargs)
        )

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self.call_log.append(context)
        queued = self._responses.get(context.action.id)
        if queued is not None:
            return queued.model_copy()
        return Receipt.success(
            adapter=self._name,
            action_id=context.action.id,
            output=self._default_output,
            metadata={"mock": True},
        )

    def reset(self) -> None:
        self.call_log.clear()
        self._responses.clear()
