"""
Planners for compiled languages — Go, Rust, Java and Dart.

These projects build a self-contained artifact, so the runtime image
carries much less than the development environment.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

import yaml

from devbox.core.models.plan import Plan, PlanIssue, PlanStage
from devbox.core.services.planner.base import Planner, has_file, read_toml, table

logger = logging.getLogger(__name__)


class GoPlanner(Planner):
    """go.mod project compiled to a static binary."""

    @property
    def name(self) -> str:
        return "go"

    def detect(self, src_dir: Path) -> bool:
        return has_file(src_dir, "go.mod")

    def build_plan(self, src_dir: Path) -> Plan:
        return Plan(
            planner=self.name,
            dev_packages=(_go_package(src_dir),),
            # CGO disabled: the binary needs no runtime packages
            runtime_packages=(),
            install_stage=PlanStage(command=("go get",)),
            build_stage=PlanStage(command=("CGO_ENABLED=0 go build -o app",)),
            start_stage=PlanStage(command=("./app",)),
        )


def _go_package(src_dir: Path) -> str:
    """Nix attribute for the Go toolchain named by go.mod's go directive."""
    try:
        content = (src_dir / "go.mod").read_text(encoding="utf-8")
    except (OSError, ValueError):
        return "go"
    match = re.search(r"^go\s+(\d+)\.(\d+)", content, re.MULTILINE)
    if not match:
        return "go"
    return f"go_{match.group(1)}_{match.group(2)}"


class RustPlanner(Planner):
    """Cargo.toml project built in release mode."""

    @property
    def name(self) -> str:
        return "rust"

    def detect(self, src_dir: Path) -> bool:
        return has_file(src_dir, "Cargo.toml")

    def build_plan(self, src_dir: Path) -> Plan:
        package = table(read_toml(src_dir / "Cargo.toml"), "package")
        binary = package.get("name")
        if not isinstance(binary, str):
            binary = ""

        issues: list[PlanIssue] = []
        start: tuple[str, ...] = ()
        if binary:
            start = (f"./target/release/{binary}",)
        else:
            issues.append(PlanIssue(
                message=(
                    "Cargo.toml has no [package] name (workspace?). "
                    "Declare start_stage in devbox.json."
                ),
                stage="start",
            ))

        return Plan(
            planner=self.name,
            dev_packages=("rustc", "cargo", "gcc"),
            runtime_packages=("glibc",),
            install_stage=PlanStage(command=("cargo fetch",)),
            build_stage=PlanStage(command=("cargo build --release --offline",)),
            start_stage=PlanStage(command=start),
            issues=tuple(issues),
        )


class JavaPlanner(Planner):
    """Maven (pom.xml) or Gradle (build.gradle[.kts]) project."""

    @property
    def name(self) -> str:
        return "java"

    def detect(self, src_dir: Path) -> bool:
        return has_file(src_dir, "pom.xml", "build.gradle", "build.gradle.kts")

    def build_plan(self, src_dir: Path) -> Plan:
        if has_file(src_dir, "pom.xml"):
            tool = "maven"
            install = "mvn dependency:resolve -q"
            build = "mvn package -DskipTests -q"
            jar = "target/*.jar"
        else:
            tool = "gradle"
            install = "gradle dependencies -q"
            build = "gradle build -x test -q"
            jar = "build/libs/*.jar"

        return Plan(
            planner=self.name,
            dev_packages=("jdk", tool),
            runtime_packages=("jdk",),
            install_stage=PlanStage(command=(install,)),
            build_stage=PlanStage(command=(build,)),
            start_stage=PlanStage(command=(f"java -jar {jar}",)),
        )


class DartPlanner(Planner):
    """pubspec.yaml project; Flutter apps get the flutter SDK instead of dart."""

    @property
    def name(self) -> str:
        return "dart"

    def detect(self, src_dir: Path) -> bool:
        return has_file(src_dir, "pubspec.yaml")

    def build_plan(self, src_dir: Path) -> Plan:
        pubspec = _read_pubspec(src_dir / "pubspec.yaml")
        deps = pubspec.get("dependencies") or {}

        if isinstance(deps, dict) and "flutter" in deps:
            return Plan(
                planner=self.name,
                dev_packages=("flutter",),
                install_stage=PlanStage(command=("flutter pub get",)),
                build_stage=PlanStage(command=("flutter build web",)),
            )

        return Plan(
            planner=self.name,
            dev_packages=("dart",),
            runtime_packages=(),
            install_stage=PlanStage(command=("dart pub get",)),
            build_stage=PlanStage(command=("dart compile exe bin/main.dart -o app",)),
            start_stage=PlanStage(command=("./app",)),
        )


def _read_pubspec(path: Path) -> dict:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.debug("Cannot read %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}
