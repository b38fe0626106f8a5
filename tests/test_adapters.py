"""
Tests for adapters — registry dispatch, mock, nix, nix-shell and docker.

Subprocesses are monkeypatched; no external tool is run.
"""

import subprocess
from pathlib import Path

import pytest

from devbox.adapters import AdapterRegistry, ExecutionContext, MockAdapter, default_registry
from devbox.adapters.containers.docker import DockerAdapter
from devbox.adapters.nix.nix import NixAdapter
from devbox.adapters.shell.nix_shell import NixShellAdapter, detect_shell
from devbox.core.models.action import Action, Receipt


def _context(action_id: str, adapter: str, **params) -> ExecutionContext:
    return ExecutionContext(
        action=Action(id=action_id, adapter=adapter, params=params),
        project_root="/project",
        params=params,
    )


class _FakeRun:
    """Stand-in for subprocess.run that records argv and returns a result."""

    def __init__(self, returncode: int = 0, stdout: str = "", stderr: str = ""):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.calls: list[list[str]] = []
        self.kwargs: list[dict] = []

    def __call__(self, cmd, **kwargs):
        self.calls.append(cmd)
        self.kwargs.append(kwargs)
        return subprocess.CompletedProcess(cmd, self.returncode, self.stdout, self.stderr)


# ═══════════════════════════════════════════════════════════════════
#  Registry
# ═══════════════════════════════════════════════════════════════════


class TestAdapterRegistry:
    def test_register_and_list(self):
        reg = AdapterRegistry()
        reg.register(MockAdapter(adapter_name="nix"))
        assert reg.list_adapters() == ["nix"]
        assert reg.get("nix").name == "nix"

    def test_unregister(self):
        reg = AdapterRegistry()
        reg.register(MockAdapter(adapter_name="nix"))
        reg.unregister("nix")
        assert reg.get("nix") is None

    def test_unknown_adapter(self):
        receipt = AdapterRegistry().execute_action(Action(id="install", adapter="nix"))
        assert receipt.failed
        assert "No adapter registered for 'nix'" in receipt.error

    def test_mock_mode(self):
        receipt = AdapterRegistry(mock_mode=True).execute_action(Action(id="x", adapter="any"))
        assert receipt.ok
        assert receipt.output == "[mock] any:x"
        assert receipt.metadata["mock"] is True

    def test_validation_failure(self):
        reg = AdapterRegistry()
        reg.register(NixAdapter())
        receipt = reg.execute_action(Action(id="install", adapter="nix", params={"profile": "/p"}))
        assert receipt.failed
        assert receipt.error.startswith("Validation failed: Missing required param")
        assert "'derivation'" in receipt.error

    def test_adapter_exception_becomes_receipt(self):
        class Exploding(MockAdapter):
            def execute(self, context):
                raise RuntimeError("boom")

        reg = AdapterRegistry()
        reg.register(Exploding(adapter_name="nix"))
        receipt = reg.execute_action(Action(id="install", adapter="nix"))
        assert receipt.failed
        assert receipt.error == "Unexpected error: boom"

    def test_missing_tools(self):
        reg = AdapterRegistry()
        reg.register(MockAdapter(adapter_name="docker", available=False))
        reg.register(MockAdapter(adapter_name="nix"))
        assert reg.missing_tools() == ["docker"]

    def test_failed_receipt_records_command(self):
        receipt = Receipt.failure(
            adapter="nix", action_id="install", error="x",
            metadata={"command": ["nix-env", "-f", "my file.nix"]},
        )
        assert receipt.command_line == "nix-env -f 'my file.nix'"

    def test_default_registry(self):
        assert sorted(default_registry().list_adapters()) == ["docker", "nix", "nix-shell"]


class TestMockAdapter:
    def test_records_calls(self):
        mock = MockAdapter(adapter_name="nix")
        mock.execute(_context("install", "nix"))
        mock.execute(_context("exists", "nix", package="git"))

        assert mock.call_count == 2
        assert [c.params for c in mock.calls("exists")] == [{"package": "git"}]

    def test_custom_response_and_reset(self):
        mock = MockAdapter()
        mock.set_response("x", Receipt.success(adapter="mock", action_id="x", output="custom"))
        assert mock.execute(_context("x", "mock")).output == "custom"

        mock.reset()
        assert mock.call_count == 0
        assert mock.execute(_context("x", "mock")).output == "[mock] executed"


# ═══════════════════════════════════════════════════════════════════
#  nix
# ═══════════════════════════════════════════════════════════════════


class TestNixAdapter:
    def test_exists(self, monkeypatch: pytest.MonkeyPatch):
        fake = _FakeRun(stdout='{"nixpkgs.git": {"name": "git-2.38.1"}}')
        monkeypatch.setattr(subprocess, "run", fake)

        receipt = NixAdapter().execute(_context("exists", "nix", package="git"))

        assert receipt.ok
        assert receipt.metadata["exists"] is True
        assert fake.calls[0] == [
            "nix-env", "--query", "--available", "--attr", "nixpkgs.git", "--json",
        ]

    @pytest.mark.parametrize("returncode,stdout", [(1, ""), (0, "{}"), (0, "")])
    def test_not_exists(self, monkeypatch: pytest.MonkeyPatch, returncode: int, stdout: str):
        monkeypatch.setattr(subprocess, "run", _FakeRun(returncode=returncode, stdout=stdout))
        receipt = NixAdapter().execute(_context("exists", "nix", package="nope"))
        assert receipt.ok
        assert receipt.metadata["exists"] is False

    def test_missing_binary(self, monkeypatch: pytest.MonkeyPatch):
        def _raise(cmd, **kwargs):
            raise FileNotFoundError("nix-env")

        monkeypatch.setattr(subprocess, "run", _raise)
        receipt = NixAdapter().execute(_context("exists", "nix", package="git"))
        assert receipt.failed

    def test_install(self, monkeypatch: pytest.MonkeyPatch):
        fake = _FakeRun()
        monkeypatch.setattr(subprocess, "run", fake)

        receipt = NixAdapter().execute(
            _context("install", "nix", profile="/p/default", derivation="/g/development.nix")
        )

        assert receipt.ok
        assert fake.calls[0] == [
            "nix-env", "--profile", "/p/default", "--install", "-f", "/g/development.nix",
        ]
        assert fake.kwargs[0]["cwd"] == "/project"

    def test_install_failure_carries_output(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(subprocess, "run", _FakeRun(returncode=1, stderr="error: undefined variable 'gti'"))

        receipt = NixAdapter().execute(
            _context("install", "nix", profile="/p", derivation="/d.nix")
        )

        assert receipt.failed
        assert "exit status 1 with command output: error: undefined variable 'gti'" in receipt.error
        assert receipt.output == "error: undefined variable 'gti'"

    def test_unknown_operation(self):
        ok, msg = NixAdapter().validate(_context("upgrade", "nix"))
        assert not ok
        assert "Unknown operation" in msg


# ═══════════════════════════════════════════════════════════════════
#  nix-shell
# ═══════════════════════════════════════════════════════════════════


class TestNixShellCommands:
    def test_exec_command(self):
        cmd = NixShellAdapter.exec_command(
            {"shell_nix": "shell.nix", "commands": ["PATH=/p/bin:$PATH", "python", "--version"]}
        )
        assert cmd == ["nix-shell", "shell.nix", "--run", "PATH=/p/bin:$PATH python --version"]

    def test_plain_shell(self, tmp_path: Path):
        assert NixShellAdapter.shell_command({"shell_nix": "shell.nix"}, {}, tmp_path) == [
            "nix-shell", "shell.nix",
        ]

    def test_bash_rcfile(self, tmp_path: Path):
        params = {
            "shell_nix": "shell.nix",
            "shellrc": "/gen/shellrc",
            "shell_name": "bash",
            "shell_binary": "/bin/bash",
        }
        cmd = NixShellAdapter.shell_command(params, {}, tmp_path)
        assert cmd == ["nix-shell", "shell.nix", "--run", "exec /bin/bash --rcfile /gen/shellrc"]

    def test_zsh_uses_zdotdir(self, tmp_path: Path):
        env: dict[str, str] = {}
        params = {
            "shell_nix": "shell.nix",
            "shellrc": "/gen/shellrc",
            "shell_name": "zsh",
            "shell_binary": "/bin/zsh",
        }
        cmd = NixShellAdapter.shell_command(params, env, tmp_path)

        assert cmd[-1] == "exec /bin/zsh"
        assert env["ZDOTDIR"] == str(tmp_path)
        assert (tmp_path / ".zshrc").read_text() == ". /gen/shellrc\n"

    def test_ksh_uses_env(self, tmp_path: Path):
        env: dict[str, str] = {}
        params = {
            "shell_nix": "shell.nix",
            "shellrc": "/gen/shellrc",
            "shell_name": "ksh",
            "shell_binary": "/bin/ksh",
        }
        cmd = NixShellAdapter.shell_command(params, env, tmp_path)
        assert cmd[-1] == "exec /bin/ksh -i"
        assert env["ENV"] == "/gen/shellrc"

    def test_marks_shell_enabled(self, monkeypatch: pytest.MonkeyPatch):
        fake = _FakeRun()
        monkeypatch.setattr(subprocess, "run", fake)

        receipt = NixShellAdapter().execute(
            _context("exec", "nix-shell", shell_nix="shell.nix", commands=["true"])
        )

        assert receipt.ok
        assert fake.kwargs[0]["env"]["DEVBOX_SHELL_ENABLED"] == "1"

    def test_exit_status_fails(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(subprocess, "run", _FakeRun(returncode=2))
        receipt = NixShellAdapter().execute(
            _context("exec", "nix-shell", shell_nix="shell.nix", commands=["false"])
        )
        assert receipt.failed
        assert receipt.metadata["return_code"] == 2


class TestDetectShell:
    def test_bash(self):
        shell = detect_shell({"SHELL": "/usr/bin/bash", "HOME": "/home/me"})
        assert shell.name == "bash"
        assert shell.rcfile == Path("/home/me/.bashrc")

    def test_zdotdir(self):
        shell = detect_shell({"SHELL": "/bin/zsh", "HOME": "/home/me", "ZDOTDIR": "/cfg/zsh"})
        assert shell.rcfile == Path("/cfg/zsh/.zshrc")

    @pytest.mark.parametrize("value", ["", "/usr/bin/fish"])
    def test_unknown(self, value: str):
        assert detect_shell({"SHELL": value}) is None

    def test_missing_rcfile_reads_empty(self, tmp_path: Path):
        shell = detect_shell({"SHELL": "/bin/bash", "HOME": str(tmp_path)})
        assert shell.read_init() == ""


# ═══════════════════════════════════════════════════════════════════
#  docker
# ═══════════════════════════════════════════════════════════════════


class TestDockerAdapter:
    def test_build_command(self):
        ctx = _context(
            "build", "docker",
            dockerfile="/p/.devbox/gen/Dockerfile", name="myapp", tags=["v1", "latest"],
        )
        assert DockerAdapter.build_command(ctx) == [
            "docker", "build", "-f", "/p/.devbox/gen/Dockerfile",
            "-t", "myapp:v1", "-t", "myapp:latest", "/project",
        ]

    def test_defaults_and_engine(self):
        ctx = _context("build", "docker", dockerfile="Dockerfile", engine="podman", context_dir="/src")
        assert DockerAdapter.build_command(ctx) == [
            "podman", "build", "-f", "Dockerfile", "-t", "devbox:latest", "/src",
        ]

    def test_requires_dockerfile(self):
        ok, msg = DockerAdapter().validate(_context("build", "docker"))
        assert not ok
        assert "dockerfile" in msg

    def test_failure(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(subprocess, "run", _FakeRun(returncode=1))
        receipt = DockerAdapter().execute(_context("build", "docker", dockerfile="Dockerfile"))
        assert receipt.failed
        assert "exit status 1" in receipt.error
