"""
Change plan configuration for docshift.

Key exports:
    - load_plan: Load and validate a YAML change plan
    - build_changes: Turn a plan into Change units
    - MigrationPlan, ChangeSpec, PlanSettings: Pydantic models
"""

from .loader import build_changes, load_plan
from .schema import ChangeSpec, MigrationPlan, PlanSettings

__all__ = [
    "ChangeSpec",
    "MigrationPlan",
    "PlanSettings",
    "build_changes",
    "load_plan",
]
