"""
Docker adapter — image builds from the generated Dockerfile.

Uses the docker CLI, never the Docker API directly.  Build output is
streamed to the terminal since image builds are long and the user
wants to see progress.
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


class DockerAdapter(Adapter):
    """docker operations.

    Action params (for 'build'):
        dockerfile (str): Path to the Dockerfile.
        name (str): Image name (default: devbox).
        tags (list[str]): Tags to apply (default: ["latest"]).
        context_dir (str): Build context (default: project root).
        engine (str): CLI to invoke (default: docker; podman works too).
    """

    @property
    def name(self) -> str:
        return "docker"

    def is_available(self) -> bool:
        return shutil.which("docker") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        if context.action.id != "build":
            return unknown_operation(context, ["build"])
        return require_params(context, "dockerfile")

    def execute(self, context: ExecutionContext) -> Receipt:
        cmd = self.build_command(context)
        logger.debug("Running command: %s", shlex.join(cmd))
        start = time.monotonic()
        try:
            result = subprocess.run(cmd, cwd=context.working_dir)
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id="build",
                error=f"running command {shlex.join(cmd)}: {e}",
                metadata={"command": cmd},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if result.returncode != 0:
            return Receipt.failure(
                adapter=self.name,
                action_id="build",
                error=f"running command {shlex.join(cmd)}: exit status {result.returncode}",
                duration_ms=elapsed_ms,
                metadata={"command": cmd, "return_code": result.returncode},
            )
        return Receipt.success(
            adapter=self.name,
            action_id="build",
            duration_ms=elapsed_ms,
            metadata={"command": cmd, "return_code": 0},
        )

    @staticmethod
    def build_command(context: ExecutionContext) -> list[str]:
        params = context.params
        name = params.get("name") or "devbox"
        tags = params.get("tags") or ["latest"]

        cmd = [params.get("engine") or "docker", "build", "-f", params["dockerfile"]]
        for tag in tags:
            cmd += ["-t", f"{name}:{tag}"]
        cmd.append(params.get("context_dir") or context.project_root)
        return cmd
