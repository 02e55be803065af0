"""
Change plan schema models for docshift.

This module defines Pydantic models for validating and parsing change plan
YAML files. A plan lists the document changes to preview, each with
whatever inputs are known; resolution fills in the rest.

Models:
    ChangeSpec: One change entry (doc_path, command, before, patch, instruction)
    PlanSettings: Presentation settings for the plan
    MigrationPlan: Root model (validates entire YAML)

Example plan:
    settings:
      show_rollback: true
    changes:
      - doc_path: users/alice
        before: {name: Alice, plan: free}
        patch: {plan: pro}
      - doc_path: users/bob
        command: delete
        before: {name: Bob}
"""

from typing import Any, Literal

from pydantic import BaseModel, field_validator

CommandLabel = Literal["unknown", "update", "set", "add", "delete"]


class ChangeSpec(BaseModel):
    """
    One change entry from a plan file.

    Attributes:
        doc_path: Target document path (e.g., "users/alice")
        command: Command label; "unknown" lets resolution infer it
        before: Known prior document state, or None
        patch: Fields to write, or None
        instruction: Raw patch text (merge patch object or RFC 6902 array),
                     used only when patch is empty

    Values inside before/patch may use sentinel strings such as
    "<ref>users/bob<ref>"; YAML timestamps arrive as datetime already.
    """

    doc_path: str
    command: CommandLabel = "unknown"
    before: dict[str, Any] | None = None
    patch: dict[str, Any] | None = None
    instruction: str = ""

    @field_validator("doc_path")
    @classmethod
    def validate_doc_path(cls, v: str) -> str:
        """Validate doc_path is non-empty."""
        if not v or v.isspace():
            raise ValueError("doc_path cannot be empty")
        return v.strip()

    @field_validator("command", mode="before")
    @classmethod
    def normalize_command(cls, v: Any) -> Any:
        """Accept command labels in any case."""
        if isinstance(v, str):
            return v.strip().lower()
        return v


class PlanSettings(BaseModel):
    """
    Presentation settings for a plan.

    Attributes:
        color: Render diffs with syntax highlighting
        show_rollback: Print rollback patch text under each preview
    """

    color: bool = True
    show_rollback: bool = False


class MigrationPlan(BaseModel):
    """
    Root model for a change plan file.

    Attributes:
        settings: Presentation settings
        changes: Non-empty list of change entries
    """

    settings: PlanSettings = PlanSettings()
    changes: list[ChangeSpec]

    @field_validator("changes")
    @classmethod
    def validate_changes(cls, v: list[ChangeSpec]) -> list[ChangeSpec]:
        """Validate at least one change is listed."""
        if not v:
            raise ValueError("changes must contain at least one entry")
        return v
