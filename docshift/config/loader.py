"""
Change plan loader for docshift.

This module loads YAML change plans, validates them with Pydantic models,
and turns each entry into a Change ready to resolve.

Functions:
    load_plan: Load and validate a change plan file
    build_changes: Create Change units from a validated plan
"""

from pathlib import Path

import yaml
from pydantic import ValidationError

from docshift.change import Change, Command
from docshift.database import DatabaseClient
from docshift.exceptions import ConfigFileNotFoundError, ConfigValidationError
from docshift.serialization import deserialize

from .schema import MigrationPlan


def load_plan(plan_path: str | Path) -> MigrationPlan:
    """
    Load a change plan YAML file and validate its structure.

    Args:
        plan_path: Path to the plan file (relative or absolute)

    Returns:
        MigrationPlan with validated change entries

    Raises:
        ConfigFileNotFoundError: If the file doesn't exist
        ConfigValidationError: If YAML is invalid or validation fails

    Example:
        >>> plan = load_plan("examples/plan.yaml")
        >>> plan.changes[0].doc_path
        'users/alice'
    """
    plan_path = Path(plan_path)

    if not plan_path.exists():
        raise ConfigFileNotFoundError(f"Change plan not found: {plan_path}")

    try:
        with plan_path.open(encoding="utf-8") as f:
            raw_plan = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML syntax in {plan_path}: {e}") from e
    except OSError as e:
        raise ConfigValidationError(f"Failed to read change plan {plan_path}: {e}") from e

    if raw_plan is None:
        raise ConfigValidationError(f"Change plan is empty: {plan_path}")

    try:
        return MigrationPlan.model_validate(raw_plan)
    except ValidationError as e:
        error_messages = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            msg = error["msg"]
            error_messages.append(f"  - {loc}: {msg}" if loc else f"  - {msg}")

        raise ConfigValidationError(
            f"Change plan validation failed in {plan_path}:\n" + "\n".join(error_messages)
        ) from e


def build_changes(
    plan: MigrationPlan, database: DatabaseClient | None = None
) -> list[Change]:
    """
    Create one Change per plan entry.

    Sentinel strings in before/patch are unwrapped into rich values so that
    plans can express document references and delete markers.

    Args:
        plan: Validated plan from load_plan()
        database: Optional client attached to every Change for execute()

    Returns:
        Unresolved Change units in plan order
    """
    changes = []
    for spec in plan.changes:
        changes.append(
            Change(
                spec.doc_path,
                before=deserialize(spec.before) if spec.before is not None else None,
                patch=deserialize(spec.patch) if spec.patch is not None else None,
                command=Command.from_label(spec.command),
                instruction=spec.instruction,
                database=database,
            )
        )
    return changes
