"""
Node.js planner — package.json projects built with npm or yarn.
"""

from __future__ import annotations

from pathlib import Path

from devbox.core.models.plan import Plan, PlanIssue, PlanStage
from devbox.core.services.planner.base import Planner, has_file, read_json, table


def _package_manager(src_dir: Path) -> str:
    """Pick the package manager from lock files."""
    if has_file(src_dir, "yarn.lock"):
        return "yarn"
    return "npm"


class NodePlanner(Planner):
    """package.json project.

    Stage commands come from the project's own scripts: ``build`` runs
    only if a build script exists, ``start`` prefers the start script
    and falls back to ``node <main>``.
    """

    @property
    def name(self) -> str:
        return "nodejs"

    def detect(self, src_dir: Path) -> bool:
        return has_file(src_dir, "package.json")

    def build_plan(self, src_dir: Path) -> Plan:
        manifest = read_json(src_dir / "package.json")
        scripts = table(manifest, "scripts")
        main = manifest.get("main")
        pm = _package_manager(src_dir)

        packages: tuple[str, ...] = ("nodejs",)
        if pm == "yarn":
            packages = ("nodejs", "yarn")
            install = "yarn install --frozen-lockfile"
        elif has_file(src_dir, "package-lock.json"):
            install = "npm ci"
        else:
            install = "npm install"

        build: tuple[str, ...] = ()
        if "build" in scripts:
            build = (f"{pm} run build",)

        issues: list[PlanIssue] = []
        start: tuple[str, ...] = ()
        if "start" in scripts:
            start = (f"{pm} start",)
        elif main and isinstance(main, str):
            start = (f"node {main}",)
        elif has_file(src_dir, "index.js"):
            start = ("node index.js",)
        else:
            issues.append(PlanIssue(
                message=(
                    "package.json has no start script or main entry. "
                    "Add one, or declare start_stage in devbox.json."
                ),
                stage="start",
            ))

        return Plan(
            planner=self.name,
            dev_packages=packages,
            runtime_packages=("nodejs",),
            install_stage=PlanStage(command=(install,)),
            build_stage=PlanStage(command=build),
            start_stage=PlanStage(command=start),
            issues=tuple(issues),
        )
