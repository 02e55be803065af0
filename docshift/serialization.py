"""
Type-preserving serialization between rich document values and plain JSON.

The diff/patch machinery in docshift.patching only understands JSON values:
strings, numbers, booleans, null, lists and string-keyed dicts. Documents in a
schema-less database also hold timestamps, references to other documents and
"delete this field" markers. This module wraps those three kinds in tagged
string sentinels on the way in and unwraps them on the way out, so that

    deserialize(serialize(value)) == value

holds for every representable value.

Sentinel formats:
    datetime            <time>2024-05-01T12:00:00Z<time>
    DocumentReference   <ref>users/alice<ref>
    DELETE_FIELD        <delete>!delete<delete>

Limitation:
    A user string that already looks exactly like a sentinel (for example the
    literal text "<ref>users/alice<ref>") is indistinguishable from one and is
    deserialized into the rich type.

Memoizing serialized forms is the caller's job; every function here is pure.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from docshift.exceptions import SerializationError
from docshift.utils.time import format_rfc3339, parse_rfc3339

TIME_TOKEN = "<time>"
REF_TOKEN = "<ref>"
DELETE_TOKEN = "<delete>"
DELETE_PAYLOAD = "!delete"

SENTINEL_TOKENS = (TIME_TOKEN, REF_TOKEN, DELETE_TOKEN)


@dataclass(frozen=True)
class DocumentReference:
    """
    Reference to another document, identified by its path.

    Kept distinct from a plain string so that it survives a round trip
    through JSON as a reference rather than as text.

    Attributes:
        path: Document path, e.g. "users/alice"
    """

    path: str

    def __str__(self) -> str:
        return self.path


class DeleteMarker:
    """Sentinel value meaning "remove this field" in a patch."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __eq__(self, other: object) -> bool:
        return isinstance(other, DeleteMarker)

    def __hash__(self) -> int:
        return hash(DeleteMarker)

    def __repr__(self) -> str:
        return "DELETE_FIELD"


DELETE_FIELD = DeleteMarker()


def _wrap(token: str, payload: str) -> str:
    return f"{token}{payload}{token}"


def _unwrap(token: str, text: str) -> str | None:
    """Return the payload if text is wrapped in token on both sides."""
    if len(text) >= 2 * len(token) and text.startswith(token) and text.endswith(token):
        return text[len(token) : -len(token)]
    return None


def serialize(value: Any) -> Any:
    """
    Convert a rich document value into its canonical JSON-safe form.

    Args:
        value: Primitive, datetime, DocumentReference, DELETE_FIELD, or a
            list/tuple/dict nesting of those

    Returns:
        JSON-safe equivalent. Tuples become lists.

    Raises:
        SerializationError: If the value (or a nested value or key) has an
            unsupported type

    Examples:
        >>> serialize({"owner": DocumentReference("users/alice")})
        {'owner': '<ref>users/alice<ref>'}
        >>> serialize([DELETE_FIELD, 1])
        ['<delete>!delete<delete>', 1]
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value

    if isinstance(value, datetime):
        return _wrap(TIME_TOKEN, format_rfc3339(value))

    if isinstance(value, DocumentReference):
        return _wrap(REF_TOKEN, value.path)

    if isinstance(value, DeleteMarker):
        return _wrap(DELETE_TOKEN, DELETE_PAYLOAD)

    if isinstance(value, dict):
        serialized = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise SerializationError(
                    f"Field names must be strings, got {type(key).__name__}: {key!r}"
                )
            serialized[key] = serialize(item)
        return serialized

    if isinstance(value, (list, tuple)):
        return [serialize(item) for item in value]

    raise SerializationError(
        f"Cannot serialize value of type {type(value).__name__}: {value!r}"
    )


def deserialize(value: Any) -> Any:
    """
    Convert a canonical JSON-safe value back into rich document values.

    Sentinel strings are unwrapped into datetime, DocumentReference or
    DELETE_FIELD. A string that carries sentinel tokens but an unparseable
    payload (e.g. "<time>soon<time>") is returned unchanged. Everything else
    is returned as-is, recursing through lists and dicts.

    Examples:
        >>> deserialize("<delete>!delete<delete>")
        DELETE_FIELD
        >>> deserialize({"n": 1, "tags": ["a"]})
        {'n': 1, 'tags': ['a']}
    """
    if isinstance(value, str):
        return _deserialize_string(value)

    if isinstance(value, dict):
        return {key: deserialize(item) for key, item in value.items()}

    if isinstance(value, list):
        return [deserialize(item) for item in value]

    return value


def _deserialize_string(text: str) -> Any:
    payload = _unwrap(TIME_TOKEN, text)
    if payload is not None:
        try:
            return parse_rfc3339(payload)
        except ValueError:
            return text

    payload = _unwrap(REF_TOKEN, text)
    if payload is not None:
        return DocumentReference(payload)

    if _unwrap(DELETE_TOKEN, text) == DELETE_PAYLOAD:
        return DELETE_FIELD

    return text


def strip_sentinels(text: str) -> str:
    """
    Remove sentinel wrapper tokens from rendered text.

    Quotes directly around a sentinel are dropped as well, so a diff line like
    '"at": "<time>2024-05-01T12:00:00Z<time>"' displays as
    '"at": 2024-05-01T12:00:00Z'.
    """
    for token in SENTINEL_TOKENS:
        text = text.replace(f'"{token}', "").replace(f'{token}"', "")
        text = text.replace(token, "")
    return text
