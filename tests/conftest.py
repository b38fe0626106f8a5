"""
Shared test fixtures and configuration.
"""

import io
import json
from pathlib import Path

import pytest

from devbox.adapters.base import ExecutionContext
from devbox.adapters.mock import MockAdapter
from devbox.adapters.registry import AdapterRegistry
from devbox.core.environment import Devbox
from devbox.core.models.action import Receipt


class FakeNix(MockAdapter):
    """Mock nix adapter that knows a fixed set of packages."""

    def __init__(self, known: set[str]):
        super().__init__(adapter_name="nix")
        self.known = known

    def execute(self, context: ExecutionContext) -> Receipt:
        receipt = super().execute(context)
        if context.action.id == "exists" and receipt.ok:
            exists = context.params["package"] in self.known
            receipt = receipt.model_copy(update={"metadata": {"exists": exists}})
        return receipt


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's shell and devbox settings out of tests."""
    for var in ("SHELL", "DEVBOX_SHELL_ENABLED", "DEVBOX_FEATURE_FLAKES", "DEVBOX_DEBUG"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def nix() -> FakeNix:
    return FakeNix(known={"git", "curl", "python3", "nodejs", "ripgrep"})


@pytest.fixture
def registry(nix: FakeNix) -> AdapterRegistry:
    reg = AdapterRegistry()
    reg.register(nix)
    reg.register(MockAdapter(adapter_name="nix-shell"))
    reg.register(MockAdapter(adapter_name="docker"))
    return reg


@pytest.fixture
def write_config(tmp_path: Path):
    """Write a devbox.json into tmp_path and return the project dir."""

    def _write(data: dict | None = None, directory: Path | None = None) -> Path:
        root = directory or tmp_path
        root.mkdir(parents=True, exist_ok=True)
        (root / "devbox.json").write_text(json.dumps(data or {"packages": []}))
        return root

    return _write


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def open_box(registry: AdapterRegistry, output: io.StringIO):
    """Open a Devbox on a project dir with mock adapters."""

    def _open(project_dir: Path, **kwargs) -> Devbox:
        kwargs.setdefault("registry", registry)
        kwargs.setdefault("writer", output)
        kwargs.setdefault("flakes", False)
        return Devbox.open(project_dir, **kwargs)

    return _open
