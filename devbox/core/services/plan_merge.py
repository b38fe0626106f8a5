"""
Plan merge — combine the user's plan with the inferred one.

Merge rules:
    dev_packages / runtime_packages
                    UNION — user order first, then inferred extras,
                    duplicates dropped
    install / build / start stage
                    user stage wins whole when declared, otherwise the
                    inferred stage is used as-is (never merged line by line)
    shell_init_hook user's if set, else inferred

Inferred-plan issues:
    conflict on a slot the user declares     → PlanConflictError
    conflict on a slot the user leaves empty → satisfied, dropped
    stage issue on a slot the user declares  → downgraded to a warning
    plan-wide issue, user declares all stages → downgraded to a warning
    anything else                            → kept; merged plan is invalid

Pure logic — no I/O.
"""

from __future__ import annotations

import logging

from devbox.core.errors import PlanConflictError
from devbox.core.models.plan import STAGE_NAMES, Plan, PlanIssue

logger = logging.getLogger(__name__)

NO_ECOSYSTEM_WARNING = "No project type detected; using the plan from devbox.json only."


def union_packages(first: tuple[str, ...], second: tuple[str, ...]) -> tuple[str, ...]:
    """Ordered union: everything in ``first``, then new entries from ``second``."""
    return tuple(dict.fromkeys((*first, *second)))


def merge_user_plan(user: Plan, inferred: Plan) -> Plan:
    """Merge a user-declared plan over an inferred plan.

    Returns a new Plan; neither input is modified.  The result may be
    invalid (``plan.invalid()``) if the inferred plan had issues the
    user's stages don't cover.

    Raises:
        PlanConflictError: If the user declares a stage the planner
            marked as conflicting.
    """
    _check_conflicts(user, inferred)

    warnings: list[str] = list(user.warnings)
    issues: list[PlanIssue] = []

    if inferred.empty and not inferred.issues:
        warnings.append(NO_ECOSYSTEM_WARNING)
    elif inferred.planner and user.declares_all_stages():
        warnings.append(
            f"Detected a {inferred.planner} project, but devbox.json overrides "
            "every stage; the detected defaults are not used."
        )

    for issue in inferred.issues:
        if issue.conflict:
            continue  # user left the slot alone (checked above)
        if issue.stage is not None and not user.stage(issue.stage).absent:
            warnings.append(issue.message)
        elif issue.stage is None and user.declares_all_stages():
            warnings.append(issue.message)
        else:
            issues.append(issue)

    stages = {
        f"{name}_stage": (
            user.stage(name) if not user.stage(name).absent else inferred.stage(name)
        )
        for name in STAGE_NAMES
    }

    merged = Plan(
        planner=inferred.planner,
        dev_packages=union_packages(user.dev_packages, inferred.dev_packages),
        runtime_packages=union_packages(user.runtime_packages, inferred.runtime_packages),
        shell_init_hook=user.shell_init_hook or inferred.shell_init_hook,
        issues=tuple(issues),
        warnings=tuple(dict.fromkeys(warnings)),
        **stages,
    )
    logger.debug("Merged plan: %s", merged)
    return merged


def _check_conflicts(user: Plan, inferred: Plan) -> None:
    for issue in inferred.issues:
        if not issue.conflict or issue.stage is None:
            continue
        if not user.stage(issue.stage).absent:
            raise PlanConflictError(
                f"devbox.json declares {issue.stage}_stage, which conflicts with "
                f"the detected {inferred.planner or 'project'} plan: {issue.message}"
            )
