"""
Database client interface used by Change.execute().

docshift never talks to a database directly. A Change dispatches exactly one
call to an object implementing DatabaseClient; retries, batching and the
underlying wire protocol belong to that client. Errors raised by the client
propagate to the caller of execute() unchanged.

InMemoryDatabase implements the same protocol over a plain dict. It is used
for dry runs and tests without needing a live database.

Example:
    >>> from docshift.change import Change, Command
    >>> from docshift.database import InMemoryDatabase
    >>> db = InMemoryDatabase(documents={"users/alice": {"name": "Alice"}})
    >>> change = Change("users/alice", before={"name": "Alice"},
    ...                 patch={"name": "Alicia"}, database=db)
    >>> change.resolve()
    >>> change.execute()
    >>> db.get_doc("users/alice")
    {'name': 'Alicia'}
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from docshift.exceptions import DocumentNotFoundError
from docshift.serialization import DeleteMarker

logger = logging.getLogger(__name__)


class DatabaseClient(Protocol):
    """
    Protocol for the three document operations a Change can dispatch.

    All methods receive fields in rich form (datetime, DocumentReference,
    DELETE_FIELD values intact). Encoding for the storage protocol is the
    client's responsibility. Failures are raised as exceptions.
    """

    def update_doc(self, path: str, fields: dict[str, Any]) -> None:
        """Merge-update the named fields on an existing document."""
        ...

    def set_doc(self, path: str, fields: dict[str, Any]) -> None:
        """Overwrite the document at path with exactly these fields."""
        ...

    def delete_doc(self, path: str) -> None:
        """Remove the document at path entirely."""
        ...


@dataclass
class InMemoryDatabase:
    """
    Dict-backed DatabaseClient for dry runs and tests.

    Attributes:
        documents: Mapping of document path to stored fields
        calls: Log of (operation, path) tuples in call order
    """

    documents: dict[str, dict[str, Any]] = field(default_factory=dict)
    calls: list[tuple[str, str]] = field(default_factory=list)

    def get_doc(self, path: str) -> dict[str, Any] | None:
        """Return a copy of the stored document, or None if it is absent."""
        document = self.documents.get(path)
        return copy.deepcopy(document) if document is not None else None

    def update_doc(self, path: str, fields: dict[str, Any]) -> None:
        self.calls.append(("update", path))
        if path not in self.documents:
            raise DocumentNotFoundError(f"No document to update at {path}")

        document = self.documents[path]
        for name, value in fields.items():
            if isinstance(value, DeleteMarker):
                document.pop(name, None)
            else:
                document[name] = copy.deepcopy(value)

        logger.debug(f"Updated {len(fields)} field(s) on {path}")

    def set_doc(self, path: str, fields: dict[str, Any]) -> None:
        self.calls.append(("set", path))
        self.documents[path] = {
            name: copy.deepcopy(value)
            for name, value in fields.items()
            if not isinstance(value, DeleteMarker)
        }
        logger.debug(f"Set document {path} with {len(self.documents[path])} field(s)")

    def delete_doc(self, path: str) -> None:
        self.calls.append(("delete", path))
        self.documents.pop(path, None)
        logger.debug(f"Deleted document {path}")
