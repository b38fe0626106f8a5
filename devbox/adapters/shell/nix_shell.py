"""
nix-shell adapter — interactive devbox shells and one-off commands.

The shell inherits the terminal (no output capture).  The user's own
shell is started inside nix-shell with the generated shellrc as its
init file, so their usual setup runs first and devbox's hooks after.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from devbox.adapters.base import Adapter, ExecutionContext, require_params, unknown_operation
from devbox.core.models.action import Receipt

logger = logging.getLogger(__name__)

SHELL_ENABLED_ENV = "DEVBOX_SHELL_ENABLED"

# Shells we know how to start with a custom init file → their rc file
_RC_FILES = {
    "bash": ".bashrc",
    "zsh": ".zshrc",
    "ksh": ".kshrc",
}


@dataclass(frozen=True)
class UserShell:
    """The user's login shell and where its init file lives."""

    name: str
    binary: str
    rcfile: Path | None = None

    def read_init(self) -> str:
        """Content of the user's rc file, or "" if it has none."""
        if self.rcfile is None:
            return ""
        try:
            return self.rcfile.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug("Cannot read %s: %s", self.rcfile, e)
            return ""


def detect_shell(environ: Mapping[str, str] | None = None) -> UserShell | None:
    """Identify the user's shell from $SHELL.

    Returns None if $SHELL is unset or names a shell devbox can't
    start with a custom init file; callers fall back to plain nix-shell.
    """
    env = os.environ if environ is None else environ
    binary = env.get("SHELL", "")
    name = Path(binary).name
    if name not in _RC_FILES:
        logger.debug("Unrecognized shell %r", binary)
        return None

    home = env.get("HOME")
    rcfile = Path(home) / _RC_FILES[name] if home else None
    if name == "zsh" and env.get("ZDOTDIR"):
        rcfile = Path(env["ZDOTDIR"]) / ".zshrc"
    return UserShell(name=name, binary=binary, rcfile=rcfile)


class NixShellAdapter(Adapter):
    """nix-shell operations.

    Action params:
        shell_nix (str): Path to the generated shell.nix.
        shellrc (str): Generated init file (for 'shell').
        shell_name (str): bash, zsh or ksh (for 'shell'; empty = plain nix-shell).
        shell_binary (str): Path to the user's shell (for 'shell').
        commands (list[str]): Commands to run (for 'exec').
    """

    _REQUIRED = {
        "shell": ("shell_nix",),
        "exec": ("shell_nix", "commands"),
    }

    @property
    def name(self) -> str:
        return "nix-shell"

    def is_available(self) -> bool:
        return shutil.which("nix-shell") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.action.id
        if operation not in self._REQUIRED:
            return unknown_operation(context, list(self._REQUIRED))
        return require_params(context, *self._REQUIRED[operation])

    def execute(self, context: ExecutionContext) -> Receipt:
        env = {**os.environ, SHELL_ENABLED_ENV: "1"}
        with tempfile.TemporaryDirectory(prefix="devbox-") as tmp:
            if context.action.id == "exec":
                cmd = self.exec_command(context.params)
            else:
                cmd = self.shell_command(context.params, env, Path(tmp))
            return self._run(context, cmd, env)

    # ── Command lines ───────────────────────────────────────────

    @staticmethod
    def exec_command(params: dict) -> list[str]:
        return ["nix-shell", params["shell_nix"], "--run", " ".join(params["commands"])]

    @staticmethod
    def shell_command(params: dict, env: dict[str, str], tmp: Path) -> list[str]:
        """Build the nix-shell command line; may add vars to ``env``."""
        cmd = ["nix-shell", params["shell_nix"]]
        shell_name = params.get("shell_name", "")
        shellrc = params.get("shellrc", "")
        binary = params.get("shell_binary", "")
        if not shell_name or not shellrc or not binary:
            return cmd

        if shell_name == "bash":
            inner = f"exec {shlex.quote(binary)} --rcfile {shlex.quote(shellrc)}"
        elif shell_name == "zsh":
            # zsh only reads $ZDOTDIR/.zshrc
            (tmp / ".zshrc").write_text(f". {shlex.quote(shellrc)}\n", encoding="utf-8")
            env["ZDOTDIR"] = str(tmp)
            inner = f"exec {shlex.quote(binary)}"
        else:
            env["ENV"] = shellrc
            inner = f"exec {shlex.quote(binary)} -i"
        return [*cmd, "--run", inner]

    def _run(self, context: ExecutionContext, cmd: list[str], env: dict[str, str]) -> Receipt:
        logger.debug("Running command: %s", shlex.join(cmd))
        try:
            result = subprocess.run(cmd, cwd=context.working_dir, env=env)
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"running command {shlex.join(cmd)}: {e}",
                metadata={"command": cmd},
            )

        if result.returncode != 0:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"running command {shlex.join(cmd)}: exit status {result.returncode}",
                metadata={"command": cmd, "return_code": result.returncode},
            )
        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            metadata={"command": cmd, "return_code": 0},
        )
