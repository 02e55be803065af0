"""
Tests for CLI module - preview, rollback and validate commands.

Output Modes:
    - Human mode (--format text): Rich panels with diffs
    - Agent mode (--format json): Valid JSON on stdout

Exit Codes:
    - 0: Success
    - 1: Configuration error
    - 3: Partial failure (some changes failed to resolve)
    - 4: Complete failure (all changes failed to resolve)
"""

import json

import pytest
import yaml
from typer.testing import CliRunner

from docshift.cli import (
    EXIT_COMPLETE_FAILURE,
    EXIT_CONFIG_ERROR,
    EXIT_PARTIAL_FAILURE,
    EXIT_SUCCESS,
    app,
)
from docshift.utils.console import output_mode

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def cli_runner():
    """Return CliRunner for testing Typer apps."""
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_output_mode():
    """Reset global output_mode between CLI invocations."""
    original_format = output_mode.format
    output_mode._json_buffer.clear()
    yield
    output_mode.format = original_format
    output_mode._json_buffer.clear()


@pytest.fixture
def write_plan(tmp_path):
    """Write a plan dict as YAML and return its path as a string."""

    def _write(changes, settings=None):
        data = {"changes": changes}
        if settings is not None:
            data["settings"] = settings
        path = tmp_path / "plan.yaml"
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return str(path)

    return _write


def _payload(result):
    """Parse the indented JSON document the CLI flushes to stdout."""
    text = result.stdout
    return json.loads(text[text.index("{\n") :])


GOOD_CHANGE = {"doc_path": "users/alice", "before": {"foo": "bar"}, "patch": {"foo": "baz"}}
BAD_CHANGE = {"doc_path": "users/bob", "patch": {"y": 2}}


# ============================================================================
# preview
# ============================================================================


class TestPreview:
    """Tests for the preview command."""

    def test_success_text_mode(self, cli_runner, write_plan):
        plan = write_plan([GOOD_CHANGE])

        result = cli_runner.invoke(app, ["preview", "--plan", plan, "--no-color"])

        assert result.exit_code == EXIT_SUCCESS
        assert "users/alice" in result.stdout
        assert "[SET]" in result.stdout
        assert '"foo": "baz"' in result.stdout

    def test_json_mode(self, cli_runner, write_plan):
        plan = write_plan([GOOD_CHANGE])

        result = cli_runner.invoke(app, ["preview", "--plan", plan, "--format", "json"])

        assert result.exit_code == EXIT_SUCCESS
        payload = _payload(result)
        assert payload["resolved_count"] == 1
        assert payload["failed_count"] == 0
        change = payload["changes"][0]
        assert change["target"] == "users/alice"
        assert change["command"] == "set"
        assert change["errored"] is False
        assert '+  "foo": "baz"' in change["body"]

    def test_partial_failure_renders_error_inline(self, cli_runner, write_plan):
        plan = write_plan([GOOD_CHANGE, BAD_CHANGE])

        result = cli_runner.invoke(app, ["preview", "--plan", plan, "--format", "json"])

        assert result.exit_code == EXIT_PARTIAL_FAILURE
        payload = _payload(result)
        assert payload["failed_count"] == 1
        errored = payload["changes"][1]
        assert errored["errored"] is True
        assert "ERROR STATE" in errored["body"]

    def test_complete_failure(self, cli_runner, write_plan):
        plan = write_plan([BAD_CHANGE])

        result = cli_runner.invoke(app, ["preview", "--plan", plan, "--format", "json"])

        assert result.exit_code == EXIT_COMPLETE_FAILURE

    def test_bad_array_index_does_not_stop_the_batch(self, cli_runner, write_plan):
        bad_index = {
            "doc_path": "users/carol",
            "before": {"tags": ["a", "b"]},
            "instruction": '[{"op": "remove", "path": "/tags/²"}]',
        }
        plan = write_plan([bad_index, GOOD_CHANGE])

        result = cli_runner.invoke(app, ["preview", "--plan", plan, "--format", "json"])

        assert result.exit_code == EXIT_PARTIAL_FAILURE
        payload = _payload(result)
        assert [c["errored"] for c in payload["changes"]] == [True, False]
        assert "Invalid array index" in payload["changes"][0]["body"]

    def test_bracketed_doc_path_text_mode(self, cli_runner, write_plan):
        plan = write_plan([{"doc_path": "logs/[/x]", "before": {}, "patch": {"a": 1}}])

        result = cli_runner.invoke(app, ["preview", "--plan", plan, "--no-color"])

        assert result.exit_code == EXIT_SUCCESS
        assert "logs/[/x]" in result.stdout

    def test_show_rollback_setting(self, cli_runner, write_plan):
        plan = write_plan([GOOD_CHANGE], settings={"show_rollback": True})

        result = cli_runner.invoke(app, ["preview", "--plan", plan, "--format", "json"])

        payload = _payload(result)
        assert payload["rollbacks"] == [{"target": "users/alice", "rollback": '{"foo":"bar"}'}]

    def test_missing_plan(self, cli_runner, tmp_path):
        result = cli_runner.invoke(
            app, ["preview", "--plan", str(tmp_path / "nope.yaml"), "--format", "json"]
        )

        assert result.exit_code == EXIT_CONFIG_ERROR
        payload = _payload(result)
        assert payload["status"] == "error"
        assert payload["error_type"] == "ConfigFileNotFoundError"


# ============================================================================
# rollback
# ============================================================================


class TestRollback:
    """Tests for the rollback command."""

    def test_prints_rollback_patches(self, cli_runner, write_plan):
        plan = write_plan([GOOD_CHANGE])

        result = cli_runner.invoke(app, ["rollback", "--plan", plan, "--format", "json"])

        assert result.exit_code == EXIT_SUCCESS
        payload = _payload(result)
        assert payload["rollbacks"][0]["rollback"] == '{"foo":"bar"}'

    def test_skips_failed_changes(self, cli_runner, write_plan):
        plan = write_plan([GOOD_CHANGE, BAD_CHANGE])

        result = cli_runner.invoke(app, ["rollback", "--plan", plan, "--format", "json"])

        assert result.exit_code == EXIT_PARTIAL_FAILURE
        payload = _payload(result)
        assert [entry["target"] for entry in payload["rollbacks"]] == ["users/alice"]
        assert "users/bob" in payload["warning"]


# ============================================================================
# validate and callback
# ============================================================================


class TestValidate:
    """Tests for the validate command."""

    def test_valid_plan(self, cli_runner, write_plan):
        plan = write_plan([GOOD_CHANGE, BAD_CHANGE])

        result = cli_runner.invoke(app, ["validate", "--plan", plan, "--format", "json"])

        assert result.exit_code == EXIT_SUCCESS
        payload = _payload(result)
        assert payload["valid"] is True
        assert payload["changes_count"] == 2

    def test_invalid_plan(self, cli_runner, write_plan):
        plan = write_plan([{"doc_path": "a/b", "command": "upsert"}])

        result = cli_runner.invoke(app, ["validate", "--plan", plan])

        assert result.exit_code == EXIT_CONFIG_ERROR


class TestMainCallback:
    """Tests for the app callback."""

    def test_version(self, cli_runner):
        result = cli_runner.invoke(app, ["--version"])

        assert result.exit_code == EXIT_SUCCESS
        assert "docshift" in result.stdout

    def test_no_command_shows_hint(self, cli_runner):
        result = cli_runner.invoke(app, [])

        assert "--help" in result.stdout
