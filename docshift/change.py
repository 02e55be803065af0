"""
Change resolution engine.

A Change is one unit of migration work against one document. It is built
with whatever is known (before state, patch fields, raw patch instruction,
command) and resolve() derives the rest:

    after       - document state once the change is applied
    command     - inferred from after when not supplied
    pretty_diff - human readable before -> after rendering
    rollback    - patch text that turns after back into before
    patch       - filled in from after when it was not supplied

Typical inputs:
    Fresh stage:    Change(path, before={}, patch=fields, command=Command.ADD)
    Edit:           Change(path, before=snapshot, patch=changed_fields)
    Rollback load:  Change(path, before=snapshot, instruction=rollback_text)

Every diff and patch runs on serialized (JSON-safe) copies of the documents;
see docshift.serialization and docshift.patching.

Example:
    >>> change = Change("users/alice", before={"foo": "bar"}, patch={"foo": "baz"})
    >>> change.resolve()
    >>> change.command
    <Command.SET: 2>
    >>> change.rollback
    '{"foo":"bar"}'
"""

import json
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from rich.markup import escape

from docshift import patching
from docshift.database import DatabaseClient
from docshift.exceptions import (
    ChangeError,
    ChangeNotResolvedError,
    DatabaseNotConfiguredError,
    DiffApplyError,
    MissingAfterError,
    MissingBeforeError,
    MissingPatchOrInstructionError,
)
from docshift.serialization import deserialize, serialize, strip_sentinels
from docshift.utils.logging import log_with_context

logger = logging.getLogger(__name__)

Fields = dict[str, Any]


class Command(Enum):
    """Supported change commands. UNKNOWN means "infer from before/after"."""

    UNKNOWN = 0
    UPDATE = 1
    SET = 2
    ADD = 3
    DELETE = 4

    @property
    def label(self) -> str:
        """Lowercase name, e.g. 'set'."""
        return self.name.lower()

    @classmethod
    def from_label(cls, label: str) -> "Command":
        """Look up a command by its label (case-insensitive)."""
        try:
            return cls[label.strip().upper()]
        except KeyError as e:
            raise ValueError(f"Unknown command: {label!r}") from e


class Change:
    """
    One resolvable change on one document.

    Attributes:
        doc_path: Target document path (read-only)
        before: Prior document state, or None if unknown
        patch: Fields to write, or None if unknown
        instruction: Raw patch text, used only when patch is empty
        after: Derived document state
        command: Supplied or inferred Command
        pretty_diff: Derived display diff
        rollback: Derived patch text turning after back into before
        error_state: None once resolved, otherwise the blocking error

    A Change is not safe to share between threads.
    """

    def __init__(
        self,
        doc_path: str,
        before: Fields | None = None,
        patch: Fields | None = None,
        command: Command = Command.UNKNOWN,
        instruction: str = "",
        database: DatabaseClient | None = None,
    ):
        if not doc_path or doc_path.isspace():
            raise ValueError("doc_path cannot be empty")

        self._doc_path = doc_path
        self.before = before
        self.patch = patch
        self.command = command
        self.instruction = instruction or ""
        self.database = database

        self.after: Fields | None = None
        self.pretty_diff = ""
        self.rollback = ""
        self.error_state: ChangeError | None = ChangeNotResolvedError(
            "Change has not yet been resolved.", doc_path=doc_path
        )
        self._cache: dict[str, Any] = {}

    @property
    def doc_path(self) -> str:
        return self._doc_path

    def __repr__(self) -> str:
        state = "resolved" if self.error_state is None else "unresolved"
        return f"Change({self._doc_path!r}, command={self.command.label}, {state})"

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self) -> None:
        """
        Derive after, command, pretty_diff, rollback and patch.

        Steps run in a fixed order and the first failure stops the rest.
        The failure is stored in error_state and raised. Fields derived
        before the failure keep their values, so check error_state before
        trusting any of them.

        May be called again after fixing inputs; derived values are
        recomputed from scratch.

        Raises:
            MissingBeforeError: before is needed but absent
            MissingAfterError: after could not be derived
            MissingPatchOrInstructionError: nothing to apply to before
            DiffApplyError: patch text is malformed or does not fit before
            SerializationError: a value has an unsupported type
            ChangeNotResolvedError: any other failure, chained to the original
        """
        self.error_state = ChangeNotResolvedError("Change resolution did not complete.")
        self._cache.clear()

        try:
            self._infer_after()
            self._infer_command()
            self._infer_pretty_diff()
            self._infer_rollback()
        except ChangeError as e:
            self._record_failure(e)
            raise
        except Exception as e:
            failure = ChangeNotResolvedError(f"Unexpected {type(e).__name__} while resolving: {e}")
            self._record_failure(failure)
            raise failure from e

        self._infer_patch()
        self.error_state = None
        log_with_context(
            logger,
            logging.DEBUG,
            "Resolved change",
            context={"command": self.command.label, "fields": len(self.after or {})},
            doc_path=self._doc_path,
        )

    def _record_failure(self, error: ChangeError) -> None:
        if error.doc_path is None:
            error.doc_path = self._doc_path
        self.error_state = error
        log_with_context(
            logger,
            logging.WARNING,
            f"Failed to resolve change: {error}",
            context={"error_type": type(error).__name__, "command": self.command.label},
            doc_path=self._doc_path,
        )

    def _infer_after(self) -> None:
        if self.command in (Command.SET, Command.ADD):
            self.after = self.patch
            return

        if self.command == Command.DELETE:
            self.after = {}
            return

        if self.before is None:
            raise MissingBeforeError("Need before and patch/instruction to infer after.")
        if not self.patch and not self.instruction:
            raise MissingPatchOrInstructionError(
                "Need before and patch/instruction to infer after."
            )

        serial_before = self._serialized("before", self.before)
        if self.patch:
            payload = json.dumps(self._serialized("patch", self.patch))
        else:
            payload = self.instruction

        result = patching.apply_patch(serial_before, payload)
        if not isinstance(result, dict):
            raise DiffApplyError(
                f"Patch produced a {type(result).__name__}, expected a document"
            )
        self.after = deserialize(result)

    def _infer_command(self) -> None:
        if self.command != Command.UNKNOWN:
            return

        if self.after is None:
            raise MissingAfterError("Need after value to infer command.")

        # {} -> {...} and {...} -> {...} are sets, {...} -> {} is a delete
        self.command = Command.SET if self.after else Command.DELETE

    def _infer_pretty_diff(self) -> None:
        self._require_before_after("pretty diff")
        serial_before, serial_after = self._serialized_before_after()
        self.pretty_diff = patching.pretty_diff(serial_before, serial_after)

    def _infer_rollback(self) -> None:
        self._require_before_after("rollback")
        serial_before, serial_after = self._serialized_before_after()
        self.rollback = patching.create_patch(serial_after, serial_before)

    def _infer_patch(self) -> None:
        # rollbacks only carry before + instruction, execution needs fields
        if not self.patch and self.command in (Command.ADD, Command.SET, Command.UPDATE):
            self.patch = self.after

    def _require_before_after(self, target: str) -> None:
        if self.before is None:
            raise MissingBeforeError(f"Need before and after value to infer {target}.")
        if self.after is None:
            raise MissingAfterError(f"Need before and after value to infer {target}.")

    def _serialized(self, key: str, data: Fields) -> Any:
        if key not in self._cache:
            self._cache[key] = serialize(data)
        return self._cache[key]

    def _serialized_before_after(self) -> tuple[Any, Any]:
        return self._serialized("before", self.before), self._serialized("after", self.after)

    # ------------------------------------------------------------------
    # Presentation and execution
    # ------------------------------------------------------------------

    def present(self) -> tuple[list[str], str]:
        """
        Format the change for display.

        Returns:
            (header, body): header lines carry Rich markup; body is the
            error block, "< no changes >", or the diff with sentinel
            tokens stripped.
        """
        header = [
            f"Target: [blue]{escape(self._doc_path)}[/blue]",
            f" >> [{self.command.label.upper()}]\n\n",
        ]

        if self.error_state is not None:
            return header, f"< !!! ERROR STATE !!! >\n{self.error_state}\n"

        if not self.pretty_diff:
            return header, "< no changes >\n"

        return header, strip_sentinels(self.pretty_diff) + "\n"

    def execute(self, transformer: Callable[[Fields], Fields] | None = None) -> None:
        """
        Push the resolved change to the database client.

        Dispatches exactly one call: UPDATE -> update_doc, SET/ADD -> set_doc,
        anything else -> delete_doc. Client errors propagate unchanged.

        Args:
            transformer: Optional function applied to patch right before
                dispatch, e.g. to encode values for a storage backend

        Raises:
            ChangeNotResolvedError: resolve() has not succeeded
            DatabaseNotConfiguredError: no database client was given
        """
        if self.error_state is not None:
            raise ChangeNotResolvedError(
                f"Refusing to execute unresolved change: {self.error_state}",
                doc_path=self._doc_path,
            )
        if self.database is None:
            raise DatabaseNotConfiguredError(
                f"No database client configured for {self._doc_path}"
            )

        fields = self.patch if self.patch is not None else {}
        if transformer is not None:
            fields = transformer(fields)

        log_with_context(
            logger,
            logging.INFO,
            f"Executing {self.command.label}",
            context={"fields": sorted(fields)},
            doc_path=self._doc_path,
        )

        if self.command == Command.UPDATE:
            self.database.update_doc(self._doc_path, fields)
        elif self.command in (Command.SET, Command.ADD):
            self.database.set_doc(self._doc_path, fields)
        else:
            self.database.delete_doc(self._doc_path)
