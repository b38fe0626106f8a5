"""
Artifact generator — render templates for the shell and the image build.

Rendering is plain substitution of the Plan and a GenerationContext
into Jinja2 templates; the only logic allowed in a template is "is
this set?" and loops over lists.  Every call rewrites the whole
template set, and identical inputs give byte-identical files.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError

from devbox.core.errors import GenerationError
from devbox.core.models.plan import Plan
from devbox.core.models.template import GeneratedFile
from devbox.core.persistence.files import atomic_write_text

logger = logging.getLogger(__name__)


# ── Template sets (template name → output path) ─────────────────

SHELL_FILES: Mapping[str, str] = {
    "development.nix.j2": "development.nix",
    "shell.nix.j2": "shell.nix",
    "shellrc.j2": "shellrc",
}

SHELL_FILES_FLAKES: Mapping[str, str] = {
    **SHELL_FILES,
    "flake.nix.j2": "flake.nix",
}

BUILD_FILES: Mapping[str, str] = {
    "development.nix.j2": "development.nix",
    "runtime.nix.j2": "runtime.nix",
    "Dockerfile.j2": "Dockerfile",
    "dockerignore.j2": ".dockerignore",
}


@dataclass(frozen=True)
class GenerationContext:
    """Environment-specific values rendered next to the Plan.

    Attributes:
        project_dir:   Directory holding devbox.json.
        profile_dir:   Nix profile the packages are installed into.
        history_file:  Shell history file for devbox shells.
        user_hook:     Init hook from devbox.json (may be empty).
        original_init: The user's own shell rc content (may be empty).
        original_init_path: Where ``original_init`` was read from.
    """

    project_dir: Path
    profile_dir: Path
    history_file: Path
    user_hook: str = ""
    original_init: str = ""
    original_init_path: str = ""

    @property
    def profile_bin_dir(self) -> Path:
        return self.profile_dir / "bin"

    def template_vars(self, plan: Plan) -> dict[str, Any]:
        return {
            "plan": plan,
            "dev_packages": list(plan.dev_packages),
            "runtime_packages": list(plan.runtime_packages),
            "install_commands": list(plan.install_stage.command),
            "build_commands": list(plan.build_stage.command),
            "start_commands": list(plan.start_stage.command),
            "plan_hook": plan.shell_init_hook.strip(),
            "user_hook": self.user_hook.strip(),
            "original_init": self.original_init.rstrip("\n"),
            "original_init_path": self.original_init_path,
            "project_dir": str(self.project_dir),
            "profile_dir": str(self.profile_dir),
            "profile_bin_dir": str(self.profile_bin_dir),
            "history_file": str(self.history_file),
        }


_env: Environment | None = None


def _environment() -> Environment:
    global _env
    if _env is None:
        _env = Environment(
            loader=PackageLoader("devbox.core.services.generators", "templates"),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
    return _env


def render_templates(
    plan: Plan,
    context: GenerationContext,
    template_set: Mapping[str, str],
    env: Environment | None = None,
) -> list[GeneratedFile]:
    """Render every template in the set without touching the disk.

    Raises:
        GenerationError: On the first template that fails, naming it.
    """
    env = env or _environment()
    variables = context.template_vars(plan)

    files: list[GeneratedFile] = []
    for template_name, output_path in template_set.items():
        try:
            content = env.get_template(template_name).render(**variables)
        except TemplateError as e:
            raise GenerationError(template_name, e) from e
        files.append(GeneratedFile(path=output_path, content=content, template=template_name))
    return files


def generate(
    target_dir: Path,
    plan: Plan,
    context: GenerationContext,
    template_set: Mapping[str, str],
    env: Environment | None = None,
) -> list[Path]:
    """Render a template set and write it under ``target_dir``.

    All templates are rendered before anything is written, so a render
    error leaves the directory as it was.  A write error stops at the
    failing file; files written before it are kept.

    Returns:
        Paths written, in template-set order.
    """
    files = render_templates(plan, context, template_set, env=env)

    written: list[Path] = []
    for f in files:
        path = target_dir / f.path
        try:
            atomic_write_text(path, f.content)
        except OSError as e:
            raise GenerationError(f.template, e) from e
        written.append(path)

    logger.info("Generated %d files in %s", len(written), target_dir)
    return written
