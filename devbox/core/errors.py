"""
Error taxonomy — every failure devbox reports to the user.

All errors derive from ``DevboxError`` so the CLI can catch one type
and print a single ``<context>: <cause>`` line.  ``UserError`` marks
failures the user can fix themselves (missing devbox.json, unknown
package, nested shell) as opposed to tool or environment failures.
"""

from __future__ import annotations


class DevboxError(Exception):
    """Base class for all devbox errors."""


class UserError(DevboxError):
    """A failure caused by user input that the user can act on."""


# ── Config ──────────────────────────────────────────────────────


class ConfigError(DevboxError):
    """Raised when devbox.json cannot be found, read, or written."""


class ConfigNotFoundError(ConfigError, UserError):
    """No devbox.json in the directory or any of its parents."""


class ConfigMalformedError(ConfigError):
    """devbox.json exists but does not parse or validate."""


class MissingFieldError(ConfigError):
    """A required field is empty."""

    def __init__(self, field: str):
        super().__init__(f"{field} is required")
        self.field = field


# ── Packages ────────────────────────────────────────────────────


class PackageNotFoundError(UserError):
    """A requested package is unknown to the package index."""

    def __init__(self, package: str):
        super().__init__(f"package {package} not found")
        self.package = package


# ── Plan ────────────────────────────────────────────────────────


class PlanConflictError(DevboxError):
    """The inferred plan forbids overriding a stage the user declared."""


class InvalidPlanError(UserError):
    """The merged plan still carries unresolved issues."""


# ── Generation / external tools ─────────────────────────────────


class GenerationError(DevboxError):
    """A template failed to render or its output failed to write."""

    def __init__(self, template: str, cause: Exception | str):
        super().__init__(f"generate {template}: {cause}")
        self.template = template
        self.cause = cause


class InstallError(DevboxError):
    """The package installer exited with an error."""

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


class ShellError(DevboxError):
    """The devbox shell could not be started."""


class BuildError(DevboxError):
    """The container image build failed."""
