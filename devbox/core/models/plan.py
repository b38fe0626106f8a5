"""
Plan model — what devbox will install and run.

A Plan is either the user's declaration (converted from devbox.json),
the plan a planner inferred from the source tree, or the merge of
the two.  Plans are immutable: merging builds a new one.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

StageName = Literal["install", "build", "start"]

STAGE_NAMES: tuple[StageName, ...] = ("install", "build", "start")


class PlanStage(BaseModel):
    """Ordered shell commands for one lifecycle slot.

    A stage with no commands is absent.
    """

    model_config = ConfigDict(frozen=True)

    command: tuple[str, ...] = ()

    @property
    def absent(self) -> bool:
        return not any(c.strip() for c in self.command)

    @property
    def script(self) -> str:
        """Commands joined into one shell line."""
        return " && ".join(self.command)


class PlanIssue(BaseModel):
    """A problem a planner found with its own inferred plan.

    ``stage`` is None for plan-wide issues.  ``conflict`` marks an
    explicit directive that the planner's stage cannot be replaced by
    a user-declared one.
    """

    model_config = ConfigDict(frozen=True)

    message: str
    stage: StageName | None = None
    conflict: bool = False


class Plan(BaseModel):
    """Packages and stage commands for a devbox environment."""

    model_config = ConfigDict(frozen=True)

    planner: str = ""

    dev_packages: tuple[str, ...] = ()
    runtime_packages: tuple[str, ...] = ()

    install_stage: PlanStage = Field(default_factory=PlanStage)
    build_stage: PlanStage = Field(default_factory=PlanStage)
    start_stage: PlanStage = Field(default_factory=PlanStage)

    shell_init_hook: str = ""

    issues: tuple[PlanIssue, ...] = ()
    warnings: tuple[str, ...] = ()

    @field_validator("dev_packages", "runtime_packages")
    @classmethod
    def _unique(cls, packages: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(dict.fromkeys(packages))

    def stage(self, name: StageName) -> PlanStage:
        return getattr(self, f"{name}_stage")

    @property
    def empty(self) -> bool:
        """True when the plan declares nothing at all."""
        return (
            not self.dev_packages
            and not self.runtime_packages
            and all(self.stage(n).absent for n in STAGE_NAMES)
            and not self.shell_init_hook
        )

    def declares_all_stages(self) -> bool:
        return all(not self.stage(n).absent for n in STAGE_NAMES)

    def invalid(self) -> bool:
        return bool(self.issues)

    def error(self) -> str | None:
        """All issue messages as one string, or None for a valid plan."""
        if not self.issues:
            return None
        return "; ".join(i.message for i in self.issues)

    def warning(self) -> str | None:
        if not self.warnings:
            return None
        return "; ".join(self.warnings)

    def to_dict(self) -> dict:
        data = self.model_dump(mode="json")
        for name in STAGE_NAMES:
            data[f"{name}_stage"] = list(self.stage(name).command) or None
        return data
