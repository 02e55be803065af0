"""
Generic structural diff/patch over plain JSON values.

This module knows nothing about timestamps or document references; it only
sees the canonical values produced by docshift.serialization. Two patch
formats are understood:

JSON Merge Patch (RFC 7386) - the primary format:
    A JSON object whose keys overwrite the target, where null removes a key
    and nested objects merge recursively:

        {"name": "Bob", "nickname": null, "address": {"city": "Oslo"}}

JSON Patch (RFC 6902) - the fallback format:
    A JSON array of operations addressed by JSON pointer:

        [{"op": "replace", "path": "/name", "value": "Bob"}]

create_patch() emits a merge patch whenever one reproduces the target
exactly. A merge patch cannot write a null value, and cannot describe a
document that is not an object, so in those cases create_patch() emits an
operation list instead. apply_patch() picks the format from the top-level
JSON type, which keeps every patch produced here replayable.

Functions:
    apply_patch: Apply merge patch or operation list text to a document
    create_patch: Compute patch text turning source into target
    pretty_diff: Line-based human readable diff of two documents
"""

import copy
import json
import logging
from difflib import SequenceMatcher
from typing import Any

from docshift.exceptions import DiffApplyError

logger = logging.getLogger(__name__)


# ============================================================================
# Comparison
# ============================================================================


def json_equal(left: Any, right: Any) -> bool:
    """
    Compare two JSON values the way their JSON text would compare.

    Unlike ==, this keeps True distinct from 1 and 1 distinct from 1.0.
    """
    if type(left) is not type(right):
        return False

    if isinstance(left, dict):
        if left.keys() != right.keys():
            return False
        return all(json_equal(left[key], right[key]) for key in left)

    if isinstance(left, list):
        if len(left) != len(right):
            return False
        return all(json_equal(a, b) for a, b in zip(left, right, strict=True))

    return left == right


def _dumps(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


# ============================================================================
# JSON Merge Patch (RFC 7386)
# ============================================================================


def _merge(target: Any, patch: Any) -> Any:
    if not isinstance(patch, dict):
        return copy.deepcopy(patch)

    result = copy.deepcopy(target) if isinstance(target, dict) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = _merge(result.get(key), value)
    return result


def _create_merge(source: dict, target: dict) -> dict:
    patch: dict[str, Any] = {}

    for key in source:
        if key not in target:
            patch[key] = None

    for key, value in target.items():
        if key not in source:
            patch[key] = copy.deepcopy(value)
        elif json_equal(source[key], value):
            continue
        elif isinstance(source[key], dict) and isinstance(value, dict):
            patch[key] = _create_merge(source[key], value)
        else:
            patch[key] = copy.deepcopy(value)

    return patch


# ============================================================================
# JSON Patch (RFC 6902)
# ============================================================================


def escape_pointer_token(token: str) -> str:
    """Escape one reference token for use in a JSON pointer (RFC 6901)."""
    return token.replace("~", "~0").replace("/", "~1")


def _parse_pointer(pointer: Any) -> list[str]:
    if not isinstance(pointer, str):
        raise DiffApplyError(f"JSON pointer must be a string, got: {pointer!r}")
    if pointer == "":
        return []
    if not pointer.startswith("/"):
        raise DiffApplyError(f"JSON pointer must start with '/': {pointer!r}")
    return [
        token.replace("~1", "/").replace("~0", "~") for token in pointer[1:].split("/")
    ]


def _list_index(container: list, token: str, allow_end: bool) -> int:
    if allow_end and token == "-":
        return len(container)
    if not (token.isascii() and token.isdigit()) or (len(token) > 1 and token.startswith("0")):
        raise DiffApplyError(f"Invalid array index in JSON pointer: {token!r}")

    index = int(token)
    limit = len(container) if allow_end else len(container) - 1
    if index > limit:
        raise DiffApplyError(f"Array index out of range: {index}")
    return index


def _resolve_parent(document: Any, tokens: list[str]) -> Any:
    node = document
    for token in tokens[:-1]:
        if isinstance(node, dict):
            if token not in node:
                raise DiffApplyError(f"Path segment not found: {token!r}")
            node = node[token]
        elif isinstance(node, list):
            node = node[_list_index(node, token, allow_end=False)]
        else:
            raise DiffApplyError(f"Cannot traverse into scalar at segment {token!r}")
    return node


def _get(document: Any, tokens: list[str]) -> Any:
    if not tokens:
        return document
    parent = _resolve_parent(document, tokens)
    last = tokens[-1]
    if isinstance(parent, dict):
        if last not in parent:
            raise DiffApplyError(f"Path not found: {last!r}")
        return parent[last]
    if isinstance(parent, list):
        return parent[_list_index(parent, last, allow_end=False)]
    raise DiffApplyError(f"Cannot read from scalar at segment {last!r}")


def _add(document: Any, tokens: list[str], value: Any) -> Any:
    if not tokens:
        return value
    parent = _resolve_parent(document, tokens)
    last = tokens[-1]
    if isinstance(parent, dict):
        parent[last] = value
    elif isinstance(parent, list):
        parent.insert(_list_index(parent, last, allow_end=True), value)
    else:
        raise DiffApplyError(f"Cannot add to scalar at segment {last!r}")
    return document


def _remove(document: Any, tokens: list[str]) -> Any:
    if not tokens:
        raise DiffApplyError("Cannot remove the document root")
    parent = _resolve_parent(document, tokens)
    last = tokens[-1]
    if isinstance(parent, dict):
        if last not in parent:
            raise DiffApplyError(f"Cannot remove missing path: {last!r}")
        del parent[last]
    elif isinstance(parent, list):
        del parent[_list_index(parent, last, allow_end=False)]
    else:
        raise DiffApplyError(f"Cannot remove from scalar at segment {last!r}")
    return document


def _apply_operations(document: Any, operations: list) -> Any:
    result = copy.deepcopy(document)

    for position, operation in enumerate(operations):
        if not isinstance(operation, dict) or "op" not in operation:
            raise DiffApplyError(f"Operation {position} must be an object with 'op'")

        op = operation["op"]
        tokens = _parse_pointer(operation.get("path"))

        if op in ("add", "replace", "test") and "value" not in operation:
            raise DiffApplyError(f"Operation {position} ({op}) is missing 'value'")

        if op == "add":
            result = _add(result, tokens, copy.deepcopy(operation["value"]))
        elif op == "remove":
            result = _remove(result, tokens)
        elif op == "replace":
            _get(result, tokens)
            if tokens:
                result = _remove(result, tokens)
            result = _add(result, tokens, copy.deepcopy(operation["value"]))
        elif op in ("move", "copy"):
            source = _parse_pointer(operation.get("from"))
            value = copy.deepcopy(_get(result, source))
            if op == "move":
                if tokens[: len(source)] == source and len(tokens) > len(source):
                    raise DiffApplyError("Cannot move a value into its own child")
                result = _remove(result, source)
            result = _add(result, tokens, value)
        elif op == "test":
            if not json_equal(_get(result, tokens), operation["value"]):
                raise DiffApplyError(
                    f"Test operation {position} failed at {operation.get('path')!r}"
                )
        else:
            raise DiffApplyError(f"Unsupported patch operation: {op!r}")

    return result


def _create_operations(source: Any, target: Any, path: str, ops: list) -> None:
    if json_equal(source, target):
        return

    if isinstance(source, dict) and isinstance(target, dict):
        for key in sorted(source):
            if key not in target:
                ops.append({"op": "remove", "path": f"{path}/{escape_pointer_token(key)}"})
        for key in sorted(target):
            child = f"{path}/{escape_pointer_token(key)}"
            if key in source:
                _create_operations(source[key], target[key], child, ops)
            else:
                ops.append({"op": "add", "path": child, "value": copy.deepcopy(target[key])})
        return

    ops.append({"op": "replace", "path": path, "value": copy.deepcopy(target)})


# ============================================================================
# Public API
# ============================================================================


def apply_patch(document: Any, patch_text: str | bytes) -> Any:
    """
    Apply patch text to a JSON document and return the patched copy.

    A JSON object is applied as a merge patch, a JSON array as an RFC 6902
    operation list. The input document is never mutated.

    Args:
        document: Canonical JSON value (usually a dict)
        patch_text: Patch serialized as JSON text

    Returns:
        Patched document

    Raises:
        DiffApplyError: If the text is not valid JSON, is neither an object
            nor an array, or an operation cannot be applied

    Examples:
        >>> apply_patch({"foo": "bar", "n": 1}, '{"foo": "baz", "n": null}')
        {'foo': 'baz'}
        >>> apply_patch({"tags": ["a"]}, '[{"op": "add", "path": "/tags/-", "value": "b"}]')
        {'tags': ['a', 'b']}
    """
    try:
        patch = json.loads(patch_text)
    except (TypeError, ValueError, RecursionError) as e:
        raise DiffApplyError(f"Patch text is not valid JSON: {e}") from e

    try:
        if isinstance(patch, dict):
            return _merge(document, patch)
        if isinstance(patch, list):
            return _apply_operations(document, patch)
    except RecursionError as e:
        raise DiffApplyError("Patch is nested too deeply to apply") from e

    raise DiffApplyError(
        f"Patch must be a JSON object or array, got {type(patch).__name__}"
    )


def create_patch(source: Any, target: Any) -> str:
    """
    Compute patch text that turns source into target.

    Returns a merge patch when one is exact, otherwise an RFC 6902
    operation list. Output is compact, key-sorted JSON so equal inputs
    always produce identical text.

    Examples:
        >>> create_patch({"foo": "baz"}, {"foo": "bar"})
        '{"foo":"bar"}'
        >>> create_patch({"foo": 1}, {"foo": None})
        '[{"op":"replace","path":"/foo","value":null}]'
    """
    if isinstance(source, dict) and isinstance(target, dict):
        merge = _create_merge(source, target)
        if json_equal(_merge(source, merge), target):
            return _dumps(merge)
        logger.debug("Merge patch cannot express target, emitting operation list")

    operations: list[dict] = []
    _create_operations(source, target, "", operations)
    return _dumps(operations)


def pretty_diff(source: Any, target: Any) -> str:
    """
    Render a line-based, human readable diff between two documents.

    Both documents are printed as indented, key-sorted JSON. Lines only in
    source are prefixed with '-', lines only in target with '+', shared
    lines with a space. Returns an empty string when the documents match.

    This is for display only; use create_patch() for anything replayable.
    """
    if json_equal(source, target):
        return ""

    source_lines = json.dumps(source, indent=2, sort_keys=True, ensure_ascii=False).splitlines()
    target_lines = json.dumps(target, indent=2, sort_keys=True, ensure_ascii=False).splitlines()

    matcher = SequenceMatcher(None, source_lines, target_lines, autojunk=False)
    out: list[str] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            out.extend(f" {line}" for line in source_lines[i1:i2])
            continue
        if tag in ("delete", "replace"):
            out.extend(f"-{line}" for line in source_lines[i1:i2])
        if tag in ("insert", "replace"):
            out.extend(f"+{line}" for line in target_lines[j1:j2])

    return "\n".join(out)
