"""
Python planners — Poetry projects and plain pip/requirements.txt projects.
"""

from __future__ import annotations

from pathlib import Path

from devbox.core.models.plan import Plan, PlanIssue, PlanStage
from devbox.core.services.planner.base import Planner, has_file, read_toml, table


class PoetryPlanner(Planner):
    """pyproject.toml with a [tool.poetry] table.

    The build packages the project's first script entry point into a
    single PEX file so the runtime image needs nothing but python.
    """

    @property
    def name(self) -> str:
        return "python-poetry"

    def detect(self, src_dir: Path) -> bool:
        if not has_file(src_dir, "pyproject.toml"):
            return False
        return "poetry" in table(read_toml(src_dir / "pyproject.toml"), "tool")

    def build_plan(self, src_dir: Path) -> Plan:
        pyproject = read_toml(src_dir / "pyproject.toml")
        scripts = table(pyproject, "tool", "poetry", "scripts")

        issues: list[PlanIssue] = []
        build: list[str] = []
        start: list[str] = []
        if scripts:
            script = next(iter(scripts))
            build = [
                "poetry add pex -n --lock",
                f"poetry run pex . -o app.pex --script {script} --validate-entry-point",
            ]
            start = ["python ./app.pex"]
        else:
            issues.append(PlanIssue(
                message=(
                    "Project is not a Poetry script package. Add an entry under "
                    "[tool.poetry.scripts] in pyproject.toml, or declare "
                    "install_stage, build_stage and start_stage in devbox.json."
                ),
            ))

        return Plan(
            planner=self.name,
            dev_packages=("python3", "poetry"),
            runtime_packages=("python3",),
            install_stage=PlanStage(command=("poetry install --no-dev --no-interaction",)),
            build_stage=PlanStage(command=tuple(build)),
            start_stage=PlanStage(command=tuple(start)),
            issues=tuple(issues),
        )


class PipPlanner(Planner):
    """requirements.txt project installed into a local virtualenv."""

    _ENTRYPOINTS = ("main.py", "app.py")

    @property
    def name(self) -> str:
        return "python-pip"

    def detect(self, src_dir: Path) -> bool:
        return has_file(src_dir, "requirements.txt")

    def build_plan(self, src_dir: Path) -> Plan:
        entry = next((e for e in self._ENTRYPOINTS if has_file(src_dir, e)), None)

        issues: list[PlanIssue] = []
        start: tuple[str, ...] = ()
        if entry:
            start = (f". .venv/bin/activate && python {entry}",)
        else:
            issues.append(PlanIssue(
                message=(
                    "Could not find main.py or app.py to start the project. "
                    "Declare start_stage in devbox.json."
                ),
                stage="start",
            ))

        return Plan(
            planner=self.name,
            dev_packages=("python3",),
            runtime_packages=("python3",),
            install_stage=PlanStage(command=(
                "python -m venv .venv",
                ". .venv/bin/activate && pip install -r requirements.txt",
            )),
            start_stage=PlanStage(command=start),
            shell_init_hook=(
                "if [ -f .venv/bin/activate ]; then . .venv/bin/activate; fi"
            ),
            issues=tuple(issues),
        )
