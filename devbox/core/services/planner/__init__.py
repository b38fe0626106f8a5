"""
Source inspector — infer a build plan from a project's source tree.

Planners are tried in the order of ``PLANNERS``; the first whose
``detect`` returns True builds the plan and no other planner is asked.
The order is significant (Poetry before pip, language planners before
the generic nginx one), which is why this is a tuple and not a mapping.

    from devbox.core.services.planner import get_build_plan

    plan = get_build_plan(Path("."))
    if plan.empty:
        ...  # no ecosystem detected
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from devbox.core.models.plan import Plan
from devbox.core.services.planner.base import Planner
from devbox.core.services.planner.compiled import DartPlanner, GoPlanner, JavaPlanner, RustPlanner
from devbox.core.services.planner.node import NodePlanner
from devbox.core.services.planner.python import PipPlanner, PoetryPlanner
from devbox.core.services.planner.web import NginxPlanner, PhpPlanner, RubyPlanner

logger = logging.getLogger(__name__)

PLANNERS: tuple[Planner, ...] = (
    PoetryPlanner(),
    PipPlanner(),
    NodePlanner(),
    GoPlanner(),
    RustPlanner(),
    JavaPlanner(),
    DartPlanner(),
    PhpPlanner(),
    RubyPlanner(),
    NginxPlanner(),
)


def find_planner(src_dir: Path, planners: Sequence[Planner] = PLANNERS) -> Planner | None:
    """Return the first planner that detects ``src_dir``, or None."""
    if not src_dir.is_dir():
        logger.debug("Source directory %s does not exist", src_dir)
        return None

    for planner in planners:
        try:
            if planner.detect(src_dir):
                return planner
        except (OSError, ValueError) as e:
            logger.debug("Planner %s could not inspect %s: %s", planner.name, src_dir, e)
    return None


def get_build_plan(src_dir: Path, planners: Sequence[Planner] = PLANNERS) -> Plan:
    """Infer the build plan for ``src_dir``.

    Returns an empty Plan when no planner matches; that is not an error.
    """
    planner = find_planner(src_dir, planners)
    if planner is None:
        logger.info("No known project type detected in %s", src_dir)
        return Plan()

    logger.info("Detected %s project in %s", planner.name, src_dir)
    return planner.build_plan(src_dir)


__all__ = [
    "PLANNERS",
    "Planner",
    "find_planner",
    "get_build_plan",
]
