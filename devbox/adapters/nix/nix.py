"""
Nix adapter — package index queries and profile installation.

Uses the nix-env CLI.  Two operations:

    exists   Is ``package`` an attribute of nixpkgs?
    install  Make ``profile`` match the derivation in ``derivation``.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
import time

from devbox.adapters.base import Adapter, ExecutionContext, require_params, unknown_operation
from devbox.core.models.action import Receipt

logger = logging.getLogger(__name__)


class NixAdapter(Adapter):
    """nix-env operations.

    Action params:
        package (str): Nix attribute name (for 'exists').
        profile (str): Profile path (for 'install').
        derivation (str): Path to a .nix file (for 'install').
        timeout (int): Timeout in seconds for 'exists' (default: 60).
    """

    _REQUIRED = {
        "exists": ("package",),
        "install": ("profile", "derivation"),
    }

    @property
    def name(self) -> str:
        return "nix"

    def is_available(self) -> bool:
        return shutil.which("nix-env") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.action.id
        if operation not in self._REQUIRED:
            return unknown_operation(context, list(self._REQUIRED))
        return require_params(context, *self._REQUIRED[operation])

    def execute(self, context: ExecutionContext) -> Receipt:
        if context.action.id == "exists":
            return self._exists(context)
        return self._install(context)

    # ── Operations ──────────────────────────────────────────────

    def _exists(self, context: ExecutionContext) -> Receipt:
        package = context.params["package"]
        cmd = [
            "nix-env", "--query", "--available",
            "--attr", f"nixpkgs.{package}",
            "--json",
        ]
        timeout = context.params.get("timeout", 60)
        logger.debug("Running command: %s", shlex.join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            return Receipt.failure(
                adapter=self.name,
                action_id="exists",
                error=f"running command {shlex.join(cmd)}: {e}",
                metadata={"command": cmd},
            )

        found = result.returncode == 0 and result.stdout.strip() not in ("", "{}")
        return Receipt.success(
            adapter=self.name,
            action_id="exists",
            output=result.stdout.strip(),
            metadata={"command": cmd, "exists": found, "package": package},
        )

    def _install(self, context: ExecutionContext) -> Receipt:
        cmd = [
            "nix-env",
            "--profile", context.params["profile"],
            "--install",
            "-f", context.params["derivation"],
        ]
        logger.debug("Running command: %s", shlex.join(cmd))
        start = time.monotonic()
        try:
            result = subprocess.run(
                cmd,
                cwd=context.working_dir,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id="install",
                error=f"running command {shlex.join(cmd)}: {e}",
                metadata={"command": cmd},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        output = (result.stdout + result.stderr).strip()
        if result.returncode != 0:
            return Receipt.failure(
                adapter=self.name,
                action_id="install",
                error=(
                    f"running command {shlex.join(cmd)}: exit status "
                    f"{result.returncode} with command output: {output}"
                ),
                output=output,
                duration_ms=elapsed_ms,
                metadata={"command": cmd, "return_code": result.returncode},
            )

        return Receipt.success(
            adapter=self.name,
            action_id="install",
            output=output,
            duration_ms=elapsed_ms,
            metadata={"command": cmd, "return_code": 0},
        )
