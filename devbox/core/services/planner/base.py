"""
Planner base — the contract every ecosystem planner implements.

A planner answers two questions about a source tree:

    detect(src_dir)      Is this a project of my ecosystem?
    build_plan(src_dir)  What packages and stage commands does it need?

``detect`` must only read the filesystem and must return False (never
raise) for missing directories or unreadable files.  ``build_plan`` is
only called after ``detect`` returned True.
"""

from __future__ import annotations

import json
import logging
import tomllib
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from devbox.core.models.plan import Plan

logger = logging.getLogger(__name__)


class Planner(ABC):
    """Abstract base class for all planners."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Planner identifier (e.g. 'python-poetry', 'nodejs')."""

    @abstractmethod
    def detect(self, src_dir: Path) -> bool:
        """Check for this ecosystem's marker files."""

    @abstractmethod
    def build_plan(self, src_dir: Path) -> Plan:
        """Build the inferred plan for a detected project."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


# ── Read-only filesystem helpers ────────────────────────────────


def has_file(src_dir: Path, *names: str) -> bool:
    """True if any of ``names`` is a regular file under ``src_dir``."""
    try:
        return any((src_dir / n).is_file() for n in names)
    except OSError:
        return False


def read_json(path: Path) -> dict[str, Any]:
    """Parse a JSON object file, or return {} if missing or invalid."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.debug("Cannot read %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def read_toml(path: Path) -> dict[str, Any]:
    """Parse a TOML file, or return {} if missing, mis-encoded or invalid."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, ValueError) as e:
        logger.debug("Cannot read %s: %s", path, e)
        return {}


def table(data: dict[str, Any], *keys: str) -> dict[str, Any]:
    """Nested table at ``keys``, or {} if any level is missing or not a table."""
    for key in keys:
        data = data.get(key)
        if not isinstance(data, dict):
            return {}
    return data
