"""
Devbox environment — the orchestrator behind every CLI command.

Owns the project directory (where devbox.json lives) and its .devbox/
state directory, and sequences:

    devbox.json → user Plan ─┬──────────────────────→ shell files → nix install → nix-shell
                             └→ merge(inferred Plan) → build files → docker build

Nothing is cached between operations: each one re-reads the in-memory
Config and re-derives the Plan and generated files, so that package
edits always flow through to the profile.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TextIO

import click

from devbox.adapters.registry import AdapterRegistry, default_registry
from devbox.adapters.shell.nix_shell import UserShell, detect_shell
from devbox.core.config import featureflag
from devbox.core.config.loader import CONFIG_FILENAME, find_config_dir, load_config, save_config
from devbox.core.errors import (
    BuildError,
    InstallError,
    InvalidPlanError,
    PackageNotFoundError,
    ShellError,
)
from devbox.core.models.action import Action, Receipt
from devbox.core.models.config import Config, Stage
from devbox.core.models.plan import Plan, PlanStage
from devbox.core.services.generators import (
    BUILD_FILES,
    SHELL_FILES,
    SHELL_FILES_FLAKES,
    GenerationContext,
    generate,
)
from devbox.core.services.plan_merge import merge_user_plan
from devbox.core.services.planner import PLANNERS, Planner, get_build_plan

logger = logging.getLogger(__name__)

# Generated files (shell.nix, Dockerfile, ...) relative to the project
GEN_DIR = ".devbox/gen"

# Symlink nix-env maintains for the profile; its parent must exist
PROFILE_PATH = ".devbox/nix/profile/default"

# History of commands run inside devbox shell
SHELL_HISTORY_FILE = ".devbox/shell_history"


class InstallMode(str, Enum):
    INSTALL = "install"
    UNINSTALL = "uninstall"


@dataclass
class BuildFlags:
    """Options for ``devbox build``."""

    name: str = "devbox"
    tags: list[str] = field(default_factory=lambda: ["latest"])
    engine: str = "docker"
    dockerfile: Path | None = None


class Devbox:
    """A devbox environment rooted at the directory holding devbox.json."""

    def __init__(
        self,
        config: Config,
        src_dir: Path,
        *,
        registry: AdapterRegistry | None = None,
        writer: TextIO | None = None,
        shell_enabled: bool = False,
        flakes: bool | None = None,
        planners: Sequence[Planner] = PLANNERS,
        user_shell: UserShell | None = None,
    ):
        self.cfg = config
        self.src_dir = src_dir
        self._registry = registry if registry is not None else default_registry()
        self._writer = writer if writer is not None else sys.stdout
        # True when running inside a devbox shell already
        self.shell_enabled = shell_enabled
        self._flakes = featureflag.FLAKES.enabled() if flakes is None else flakes
        self._planners = planners
        self._user_shell = user_shell if user_shell is not None else detect_shell()

    @classmethod
    def open(cls, directory: Path | str | None = None, **kwargs) -> Devbox:
        """Open the devbox whose devbox.json is in ``directory`` or a parent.

        Raises:
            ConfigNotFoundError: If there is no devbox.json.
            ConfigMalformedError: If it doesn't validate.
        """
        cfg_dir = find_config_dir(directory)
        config = load_config(cfg_dir / CONFIG_FILENAME)
        return cls(config, cfg_dir, **kwargs)

    # ── Paths ───────────────────────────────────────────────────

    @property
    def config_path(self) -> Path:
        return self.src_dir / CONFIG_FILENAME

    @property
    def gen_dir(self) -> Path:
        return self.src_dir / GEN_DIR

    def profile_dir(self) -> Path:
        """Profile path; creates its parent so nix-env can create the link."""
        path = self.src_dir / PROFILE_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        return path

    def profile_bin_dir(self) -> Path:
        return self.profile_dir() / "bin"

    # ── Packages ────────────────────────────────────────────────

    def add(self, *pkgs: str) -> None:
        """Add packages to devbox.json and install them.

        Every package is checked against the package index first; if
        any is unknown nothing is added.  Packages already declared are
        skipped, and nothing is installed if all of them were.

        Raises:
            PackageNotFoundError: If a package doesn't exist.
            InstallError: If nix-env fails.
        """
        for pkg in pkgs:
            if not self._package_exists(pkg):
                raise PackageNotFoundError(pkg)

        added = self.cfg.add_packages(list(pkgs))
        self.save_config()

        if added:
            self.ensure_packages_are_installed(InstallMode.INSTALL)
        else:
            logger.info("All packages already in %s, nothing to install", CONFIG_FILENAME)
        self._print_package_update_message(InstallMode.INSTALL, list(pkgs))

    def remove(self, *pkgs: str) -> None:
        """Remove packages from devbox.json and uninstall them.

        Packages that aren't declared are ignored.
        """
        removed = self.cfg.remove_packages(list(pkgs))
        self.save_config()

        if removed:
            self.ensure_packages_are_installed(InstallMode.UNINSTALL)
        else:
            logger.info("None of %s are in %s", ", ".join(pkgs), CONFIG_FILENAME)
        self._print_package_update_message(InstallMode.UNINSTALL, list(pkgs))

    def save_config(self) -> None:
        save_config(self.cfg, self.config_path)

    def _package_exists(self, pkg: str) -> bool:
        receipt = self._execute(Action(id="exists", adapter="nix", params={"package": pkg}))
        if receipt.failed:
            logger.warning("Cannot query package %s: %s", pkg, receipt.error)
            return False
        return bool(receipt.metadata.get("exists", True))

    # ── Plans ───────────────────────────────────────────────────

    def user_plan(self) -> Plan:
        """The plan declared in devbox.json, without any inference."""
        stages = {
            "install_stage": self.cfg.install_stage,
            "build_stage": self.cfg.build_stage,
            "start_stage": self.cfg.start_stage,
        }
        return Plan(
            dev_packages=tuple(self.cfg.packages),
            runtime_packages=tuple(self.cfg.packages),
            **{name: _plan_stage(stage) for name, stage in stages.items()},
        )

    def shell_plan(self) -> Plan:
        """The plan the shell files are generated from.

        Same merge as the build plan, but the planner's issues are
        ignored: a shell needs packages and hooks, not a buildable
        start stage, so it must open even when a build would fail.
        """
        inferred = get_build_plan(self.src_dir, self._planners)
        return merge_user_plan(self.user_plan(), inferred.model_copy(update={"issues": ()}))

    def build_plan(self) -> Plan:
        """The user plan merged over the plan inferred from the sources.

        Raises:
            PlanConflictError: If devbox.json overrides a stage the
                detected project type forbids overriding.
        """
        inferred = get_build_plan(self.src_dir, self._planners)
        return merge_user_plan(self.user_plan(), inferred)

    # ── Generation ──────────────────────────────────────────────

    def generation_context(self) -> GenerationContext:
        shell = self._user_shell
        return GenerationContext(
            project_dir=self.src_dir,
            profile_dir=self.profile_dir(),
            history_file=self.src_dir / SHELL_HISTORY_FILE,
            user_hook=self.cfg.shell.init_hook_text,
            original_init=shell.read_init() if shell else "",
            original_init_path=str(shell.rcfile) if shell and shell.rcfile else "",
        )

    def generate(self) -> None:
        """Write both the shell files and the build files."""
        self.generate_shell_files()
        self.generate_build_files()

    def generate_shell_files(self) -> list[Path]:
        template_set = SHELL_FILES_FLAKES if self._flakes else SHELL_FILES
        return generate(self.gen_dir, self.shell_plan(), self.generation_context(), template_set)

    def generate_build_files(self) -> list[Path]:
        """Merge, validate and render the build plan.

        Raises:
            PlanConflictError: On a hard conflict with the inferred plan.
            InvalidPlanError: If the merged plan has unresolved issues.
        """
        plan = self.build_plan()
        if plan.invalid():
            raise InvalidPlanError(plan.error())
        for warning in plan.warnings:
            click.echo(f"[WARNING]: {warning}", file=self._writer)
        return generate(self.gen_dir, plan, self.generation_context(), BUILD_FILES)

    # ── Install / shell / build ─────────────────────────────────

    def ensure_packages_are_installed(self, mode: InstallMode = InstallMode.INSTALL) -> None:
        """Regenerate the shell files and sync the profile to them.

        Raises:
            InstallError: If nix-env fails.  Generated files stay in place.
        """
        self.generate_shell_files()

        if "nix" in self._registry.missing_tools():
            logger.warning("nix-env is not on PATH; install Nix from https://nixos.org/download.html")

        verb = "Installing" if mode is InstallMode.INSTALL else "Uninstalling"
        click.echo(f"{verb} nix packages. This may take a while...", file=self._writer, nl=False)

        receipt = self._execute(Action(
            id="install",
            adapter="nix",
            params={
                "profile": str(self.profile_dir()),
                "derivation": str(self.gen_dir / "development.nix"),
            },
        ))
        if receipt.failed:
            click.echo(file=self._writer)
            raise InstallError(f"apply Nix derivation: {receipt.error}", output=receipt.output)
        click.echo("done.", file=self._writer)

    def shell(self) -> None:
        """Install packages and start an interactive devbox shell.

        Raises:
            ShellError: If already inside a devbox shell, or the shell fails.
        """
        if self.shell_enabled:
            raise ShellError("You are already in an active devbox shell. Run `exit` to leave it first.")
        self.ensure_packages_are_installed(InstallMode.INSTALL)

        shell = self._user_shell
        params = {"shell_nix": str(self.gen_dir / "shell.nix")}
        if shell is not None:
            params.update(
                shellrc=str(self.gen_dir / "shellrc"),
                shell_name=shell.name,
                shell_binary=shell.binary,
            )
        else:
            logger.info("Unrecognized shell, falling back to a plain nix-shell")

        receipt = self._execute(Action(id="shell", adapter="nix-shell", params=params))
        if receipt.failed:
            raise ShellError(f"devbox shell: {receipt.error}")

    def exec(self, *cmds: str) -> None:
        """Install packages and run ``cmds`` inside the devbox environment."""
        self.ensure_packages_are_installed(InstallMode.INSTALL)

        path_with_profile_bin = f"PATH={self.profile_bin_dir()}:$PATH"
        receipt = self._execute(Action(
            id="exec",
            adapter="nix-shell",
            params={
                "shell_nix": str(self.gen_dir / "shell.nix"),
                "commands": [path_with_profile_bin, *cmds],
            },
        ))
        if receipt.failed:
            raise ShellError(f"devbox exec: {receipt.error}")

    def build(self, flags: BuildFlags | None = None) -> None:
        """Generate the build files and build a container image from them."""
        flags = flags or BuildFlags()
        self.generate_build_files()

        dockerfile = flags.dockerfile or self.gen_dir / "Dockerfile"
        receipt = self._execute(Action(
            id="build",
            adapter="docker",
            params={
                "dockerfile": str(dockerfile),
                "name": flags.name,
                "tags": list(flags.tags),
                "engine": flags.engine,
                "context_dir": str(self.src_dir),
            },
        ))
        if receipt.failed:
            raise BuildError(f"build image: {receipt.error}")

    # ── Helpers ─────────────────────────────────────────────────

    def _execute(self, action: Action) -> Receipt:
        receipt = self._registry.execute_action(action, project_root=str(self.src_dir))
        if receipt.failed and receipt.command_line:
            logger.info("Command failed after %d ms: %s", receipt.duration_ms, receipt.command_line)
        return receipt

    def _print_package_update_message(self, mode: InstallMode, pkgs: list[str]) -> None:
        if not pkgs:
            return
        verb = "installed" if mode is InstallMode.INSTALL else "removed"
        if len(pkgs) == 1:
            msg = f"{pkgs[0]} is now {verb}."
        else:
            msg = f"{', '.join(pkgs)} are now {verb}."
        # Inside a devbox shell, bash caches binary locations
        if self.shell_enabled:
            msg += " Run `hash -r` to ensure your shell is updated."
        click.echo(msg, file=self._writer)


def _plan_stage(stage: Stage | None) -> PlanStage:
    if stage is None:
        return PlanStage()
    return PlanStage(command=tuple(stage.command))
