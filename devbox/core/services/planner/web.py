"""
Planners for projects served over HTTP — PHP, Ruby (Rack) and nginx sites.
"""

from __future__ import annotations

from pathlib import Path

from devbox.core.models.plan import Plan, PlanIssue, PlanStage
from devbox.core.services.planner.base import Planner, has_file, read_json, table


class PhpPlanner(Planner):
    """composer.json project served by PHP's built-in server."""

    @property
    def name(self) -> str:
        return "php"

    def detect(self, src_dir: Path) -> bool:
        return has_file(src_dir, "composer.json")

    def build_plan(self, src_dir: Path) -> Plan:
        docroot = "public" if (src_dir / "public").is_dir() else "."
        # ext-* requirements map to php extensions
        require = table(read_json(src_dir / "composer.json"), "require")
        extensions = sorted(
            f"php.extensions.{key[4:]}" for key in require if key.startswith("ext-")
        )

        return Plan(
            planner=self.name,
            dev_packages=("php", "phpPackages.composer", *extensions),
            runtime_packages=("php", *extensions),
            install_stage=PlanStage(command=("composer install --no-dev --no-interaction",)),
            start_stage=PlanStage(command=(f"php -S 0.0.0.0:8080 -t {docroot}",)),
        )


class RubyPlanner(Planner):
    """Gemfile project; Rack apps (config.ru) start with rackup."""

    @property
    def name(self) -> str:
        return "ruby"

    def detect(self, src_dir: Path) -> bool:
        return has_file(src_dir, "Gemfile")

    def build_plan(self, src_dir: Path) -> Plan:
        issues: list[PlanIssue] = []
        start: tuple[str, ...] = ()
        if has_file(src_dir, "config.ru"):
            start = ("bundle exec rackup --host 0.0.0.0",)
        else:
            issues.append(PlanIssue(
                message="No config.ru found. Declare start_stage in devbox.json.",
                stage="start",
            ))

        return Plan(
            planner=self.name,
            dev_packages=("ruby", "bundler"),
            runtime_packages=("ruby", "bundler"),
            install_stage=PlanStage(command=("bundle install",)),
            start_stage=PlanStage(command=start),
            issues=tuple(issues),
        )


class NginxPlanner(Planner):
    """Static site served by nginx with the project's own nginx.conf.

    The start stage is what wires the project's config into nginx, so
    a user-declared start stage would bypass it: that slot is marked
    as a conflict.
    """

    _CONFIGS = ("nginx.conf", "shell-nginx.conf")

    @property
    def name(self) -> str:
        return "nginx"

    def detect(self, src_dir: Path) -> bool:
        return has_file(src_dir, *self._CONFIGS)

    def build_plan(self, src_dir: Path) -> Plan:
        conf = next(c for c in self._CONFIGS if has_file(src_dir, c))
        return Plan(
            planner=self.name,
            dev_packages=("nginx",),
            runtime_packages=("nginx",),
            start_stage=PlanStage(command=(f"nginx -p . -c {conf} -g 'daemon off;'",)),
            shell_init_hook=f"export NGINX_CONF=\"$PWD/{conf}\"",
            issues=(
                PlanIssue(
                    message=f"nginx serves this project through {conf}; "
                    "remove start_stage from devbox.json",
                    stage="start",
                    conflict=True,
                ),
            ),
        )
