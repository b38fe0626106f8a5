"""
Config model — the user's declaration in devbox.json.

This is the single source of truth for user intent: which packages
belong in the environment, what each lifecycle stage runs, and what
the shell should execute on startup.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


def _as_command_list(value: object) -> object:
    """Accept a single command string wherever a command list is expected."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    return value


class Stage(BaseModel):
    """A lifecycle stage declared in devbox.json.

    ``command`` may be written as a string or a list of strings.
    """

    model_config = ConfigDict(extra="ignore")

    command: list[str] = Field(default_factory=list)

    @field_validator("command", mode="before")
    @classmethod
    def _coerce_command(cls, value: object) -> object:
        return _as_command_list(value)


class ShellConfig(BaseModel):
    """Settings for ``devbox shell``."""

    model_config = ConfigDict(extra="ignore")

    # Either a single script or a list of lines; written back as given.
    init_hook: str | list[str] = ""

    @property
    def init_hook_text(self) -> str:
        """The hook as a single script."""
        if isinstance(self.init_hook, list):
            return "\n".join(self.init_hook)
        return self.init_hook


class Config(BaseModel):
    """Root devbox.json model."""

    model_config = ConfigDict(extra="ignore")

    packages: list[str] = Field(default_factory=list)
    shell: ShellConfig = Field(default_factory=ShellConfig)

    install_stage: Stage | None = None
    build_stage: Stage | None = None
    start_stage: Stage | None = None

    @field_validator("packages")
    @classmethod
    def _dedupe_packages(cls, packages: list[str]) -> list[str]:
        unique = list(dict.fromkeys(packages))
        if len(unique) != len(packages):
            logger.warning("Ignoring duplicate packages in devbox.json")
        return unique

    def add_packages(self, packages: list[str]) -> list[str]:
        """Append packages not already declared.  Returns the ones added."""
        added = []
        for pkg in packages:
            if pkg in self.packages or pkg in added:
                continue
            added.append(pkg)
        self.packages = self.packages + added
        return added

    def remove_packages(self, packages: list[str]) -> list[str]:
        """Drop the given packages.  Returns the ones actually removed."""
        removed = [p for p in self.packages if p in packages]
        self.packages = [p for p in self.packages if p not in packages]
        return removed

    def to_json_dict(self) -> dict:
        """Serialize the way devbox.json is written (unset stages omitted)."""
        data = self.model_dump(mode="json", exclude_none=True)
        if not self.shell.init_hook:
            data.pop("shell", None)
        return data
