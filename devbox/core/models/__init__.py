"""
Domain models — Pydantic types for devbox.

All models are re-exported here for convenient access:

    from devbox.core.models import Config, Plan, PlanStage, Receipt
"""

from devbox.core.models.action import Action, Receipt
from devbox.core.models.config import Config, ShellConfig, Stage
from devbox.core.models.plan import STAGE_NAMES, Plan, PlanIssue, PlanStage, StageName
from devbox.core.models.session import SyncSessionSpec
from devbox.core.models.template import GeneratedFile

__all__ = [
    # action.py
    "Action",
    # config.py
    "Config",
    # template.py
    "GeneratedFile",
    # plan.py
    "Plan",
    "PlanIssue",
    "PlanStage",
    "Receipt",
    "STAGE_NAMES",
    "ShellConfig",
    "Stage",
    "StageName",
    # session.py
    "SyncSessionSpec",
]
