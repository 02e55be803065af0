"""
Tests for patching module - structural diff/patch over JSON values.

This module tests:
- JSON Merge Patch application and generation
- RFC 6902 operation lists (apply and fallback generation)
- JSON pointer handling and error reporting
- Deterministic patch text
- Display diffs
"""

import json

import pytest

from docshift.exceptions import DiffApplyError
from docshift.patching import (
    apply_patch,
    create_patch,
    escape_pointer_token,
    json_equal,
    pretty_diff,
)


class TestJsonEqual:
    """Tests for json_equal()."""

    def test_distinguishes_bool_and_int(self):
        assert not json_equal(True, 1)
        assert not json_equal({"a": 0}, {"a": False})

    def test_distinguishes_int_and_float(self):
        assert not json_equal(1, 1.0)

    def test_nested_equality(self):
        assert json_equal({"a": [1, {"b": None}]}, {"a": [1, {"b": None}]})
        assert not json_equal({"a": [1]}, {"a": [1, 2]})
        assert not json_equal({"a": 1}, {"b": 1})


class TestApplyMergePatch:
    """Tests for apply_patch() with merge patch text."""

    def test_replaces_and_adds_fields(self):
        result = apply_patch({"foo": "bar"}, '{"foo": "baz", "new": 1}')
        assert result == {"foo": "baz", "new": 1}

    def test_null_removes_field(self):
        assert apply_patch({"a": 1, "b": 2}, '{"b": null}') == {"a": 1}

    def test_removing_missing_field_is_a_no_op(self):
        assert apply_patch({"a": 1}, '{"zzz": null}') == {"a": 1}

    def test_nested_objects_merge(self):
        document = {"address": {"city": "Oslo", "zip": "0150"}}
        result = apply_patch(document, '{"address": {"zip": null, "street": "Main"}}')
        assert result == {"address": {"city": "Oslo", "street": "Main"}}

    def test_arrays_are_replaced(self):
        assert apply_patch({"tags": [1, 2, 3]}, '{"tags": [4]}') == {"tags": [4]}

    def test_object_replaces_scalar(self):
        assert apply_patch({"a": 1}, '{"a": {"b": 2}}') == {"a": {"b": 2}}

    def test_does_not_mutate_document(self):
        document = {"a": {"b": 1}}
        apply_patch(document, '{"a": {"b": 2}}')
        assert document == {"a": {"b": 1}}

    def test_accepts_bytes(self):
        assert apply_patch({}, b'{"a": 1}') == {"a": 1}


class TestApplyOperations:
    """Tests for apply_patch() with RFC 6902 operation lists."""

    def test_add_replace_remove(self):
        ops = [
            {"op": "add", "path": "/b", "value": 2},
            {"op": "replace", "path": "/a", "value": "x"},
            {"op": "remove", "path": "/c"},
        ]
        result = apply_patch({"a": 1, "c": 3}, json.dumps(ops))
        assert result == {"a": "x", "b": 2}

    def test_array_insert_and_append(self):
        ops = [
            {"op": "add", "path": "/list/0", "value": "first"},
            {"op": "add", "path": "/list/-", "value": "last"},
        ]
        assert apply_patch({"list": ["mid"]}, json.dumps(ops)) == {
            "list": ["first", "mid", "last"]
        }

    def test_move_and_copy(self):
        ops = [
            {"op": "copy", "from": "/a", "path": "/b"},
            {"op": "move", "from": "/a", "path": "/c"},
        ]
        assert apply_patch({"a": {"x": 1}}, json.dumps(ops)) == {
            "b": {"x": 1},
            "c": {"x": 1},
        }

    def test_escaped_pointer_tokens(self):
        ops = [{"op": "add", "path": "/a~1b/c~0d", "value": 1}]
        assert apply_patch({"a/b": {}}, json.dumps(ops)) == {"a/b": {"c~d": 1}}

    def test_test_operation(self):
        ops = [{"op": "test", "path": "/a", "value": 1}, {"op": "remove", "path": "/a"}]
        assert apply_patch({"a": 1}, json.dumps(ops)) == {}

    def test_failed_test_operation(self):
        ops = [{"op": "test", "path": "/a", "value": True}]
        with pytest.raises(DiffApplyError, match="Test operation 0 failed"):
            apply_patch({"a": 1}, json.dumps(ops))

    def test_add_null_value(self):
        ops = [{"op": "add", "path": "/a", "value": None}]
        assert apply_patch({}, json.dumps(ops)) == {"a": None}

    @pytest.mark.parametrize(
        "ops, message",
        [
            ([{"op": "remove", "path": "/missing"}], "Cannot remove missing path"),
            ([{"op": "replace", "path": "/missing", "value": 1}], "Path not found"),
            ([{"op": "add", "path": "a", "value": 1}], "must start with '/'"),
            ([{"op": "add", "path": "/x/y", "value": 1}], "Path segment not found"),
            ([{"op": "add", "path": "/list/5", "value": 1}], "out of range"),
            ([{"op": "add", "path": "/list/01", "value": 1}], "Invalid array index"),
            ([{"op": "remove", "path": "/list/²"}], "Invalid array index"),
            ([{"op": "remove", "path": ""}], "Cannot remove the document root"),
            ([{"op": "frobnicate", "path": "/a"}], "Unsupported patch operation"),
            ([{"op": "add", "path": "/a"}], "missing 'value'"),
            (["not an object"], "must be an object"),
            ([{"op": "move", "from": "/list", "path": "/list/0"}], "its own child"),
        ],
    )
    def test_invalid_operations(self, ops, message):
        with pytest.raises(DiffApplyError, match=message):
            apply_patch({"list": [1]}, json.dumps(ops))

    def test_does_not_mutate_document(self):
        document = {"list": [1]}
        apply_patch(document, '[{"op": "add", "path": "/list/-", "value": 2}]')
        assert document == {"list": [1]}


class TestApplyErrors:
    """Tests for malformed patch text."""

    def test_invalid_json(self):
        with pytest.raises(DiffApplyError, match="not valid JSON"):
            apply_patch({}, "{oops")

    @pytest.mark.parametrize("text", ['"string"', "42", "null"])
    def test_scalar_payload(self, text):
        with pytest.raises(DiffApplyError, match="JSON object or array"):
            apply_patch({}, text)

    def test_deeply_nested_payload(self):
        depth = 100_000
        with pytest.raises(DiffApplyError, match="not valid JSON"):
            apply_patch({}, "[" * depth + "]" * depth)


class TestCreatePatch:
    """Tests for create_patch()."""

    @pytest.mark.parametrize(
        "source, target",
        [
            ({}, {}),
            ({"foo": "baz"}, {"foo": "bar"}),
            ({"a": 1, "b": 2}, {"a": 1}),
            ({}, {"a": {"b": [1, 2]}}),
            ({"a": {"x": 1, "y": 2}}, {"a": {"x": 1}}),
            ({"a": 1}, {"a": 1.0}),
            ({"a": 1}, {"a": None}),
            ({"a": {"b": 1}}, {"a": {"b": None, "c": 1}}),
            ({"a": None}, {}),
            ({"a": None}, {"b": None}),
            ({"list": [1]}, {"list": [1, None]}),
            ({"a~b/c": 1}, {"a~b/c": None}),
        ],
    )
    def test_patch_reproduces_target(self, source, target):
        """Applying the created patch to source yields target exactly."""
        result = apply_patch(source, create_patch(source, target))
        assert json_equal(result, target)

    def test_prefers_merge_patch(self):
        assert create_patch({"a": 1, "b": 2}, {"a": 3}) == '{"a":3,"b":null}'

    def test_nested_merge_patch(self):
        patch = create_patch({"a": {"x": 1, "y": 2}}, {"a": {"x": 1, "y": 3}})
        assert patch == '{"a":{"y":3}}'

    def test_equal_documents(self):
        assert create_patch({"a": [1]}, {"a": [1]}) == "{}"

    def test_null_values_use_operation_list(self):
        patch = json.loads(create_patch({"a": 1}, {"a": None, "b": 2}))
        assert patch == [
            {"op": "replace", "path": "/a", "value": None},
            {"op": "add", "path": "/b", "value": 2},
        ]

    def test_non_object_documents_use_operation_list(self):
        patch = json.loads(create_patch([1], {"a": 1}))
        assert patch == [{"op": "replace", "path": "", "value": {"a": 1}}]

    def test_deterministic_key_order(self):
        first = create_patch({}, {"b": 1, "a": 2})
        second = create_patch({}, {"a": 2, "b": 1})
        assert first == second == '{"a":2,"b":1}'


class TestPrettyDiff:
    """Tests for pretty_diff()."""

    def test_equal_documents_give_empty_string(self):
        assert pretty_diff({"a": 1}, {"a": 1}) == ""

    def test_changed_value(self):
        diff = pretty_diff({"foo": "bar"}, {"foo": "baz"})
        assert diff.splitlines() == [" {", '-  "foo": "bar"', '+  "foo": "baz"', " }"]

    def test_added_document(self):
        diff = pretty_diff({}, {"x": 1})
        assert "-{}" in diff.splitlines()
        assert '+  "x": 1' in diff.splitlines()

    def test_keys_are_sorted(self):
        diff = pretty_diff({}, {"b": 1, "a": 2})
        lines = diff.splitlines()
        assert lines.index('+  "a": 2,') < lines.index('+  "b": 1')

    def test_unchanged_lines_have_space_prefix(self):
        diff = pretty_diff({"a": 1, "b": 2}, {"a": 1, "b": 3})
        assert ' {' in diff.splitlines()
        assert '   "a": 1,' in diff.splitlines()


def test_escape_pointer_token():
    assert escape_pointer_token("a~b/c") == "a~0b~1c"
