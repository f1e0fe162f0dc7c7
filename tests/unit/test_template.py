"""
Unit tests for placeholder resolution in step configuration values.
"""

import pytest

from workflow_plugin_github.utils.template import lookup_ref, resolve_field


TRIGGER = {"commit": "abc123", "repository": "octo/hello", "number": 7, "draft": False}
STEPS = {"trigger": {"run_id": 99, "ref": "main"}, "build": {"sha": "def456"}}
CURRENT = {"owner": "octo", "ratio": 2.0, "missing": None}


def _resolve(value: str) -> str:
    return resolve_field(value, TRIGGER, STEPS, CURRENT)


class TestResolveField:
    """Tests for resolve_field."""

    def test_literal_unchanged(self):
        assert _resolve("plain-sha") == "plain-sha"

    def test_trigger_field(self):
        assert _resolve("{{.commit}}") == "abc123"

    def test_step_output(self):
        assert _resolve("{{.steps.build.sha}}") == "def456"

    def test_current_field(self):
        assert _resolve("{{.current.owner}}") == "octo"

    def test_whitespace_inside_braces(self):
        assert _resolve("{{ .commit }}") == "abc123"

    def test_embedded_in_text(self):
        assert _resolve("sha-{{.commit}}-end") == "sha-abc123-end"

    def test_multiple_placeholders(self):
        assert _resolve("{{.current.owner}}/{{.steps.trigger.ref}}") == "octo/main"

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("{{.number}}", "7"),
            ("{{.draft}}", "false"),
            ("{{.current.ratio}}", "2"),
            ("{{.current.missing}}", "<nil>"),
            ("{{.steps.trigger.run_id}}", "99"),
        ],
    )
    def test_value_rendering(self, value, expected):
        assert _resolve(value) == expected

    def test_unresolved_left_verbatim(self):
        assert _resolve("{{.nope}}") == "{{.nope}}"

    def test_resolution_stops_at_first_unresolved(self):
        value = "{{.commit}}-{{.nope}}-{{.current.owner}}"
        assert _resolve(value) == "abc123-{{.nope}}-{{.current.owner}}"

    def test_unterminated_placeholder(self):
        assert _resolve("{{.commit}} and {{.commit") == "abc123 and {{.commit"

    def test_no_pipeline_data(self):
        assert resolve_field("{{.commit}}") == "{{.commit}}"

    def test_unknown_step(self):
        assert _resolve("{{.steps.deploy.sha}}") == "{{.steps.deploy.sha}}"


class TestLookupRef:
    """Tests for single reference lookup."""

    def test_trigger_key_with_dots(self):
        found, value = lookup_ref(".a.b", {"a.b": 1}, None, None)
        assert found is True
        assert value == 1

    def test_steps_requires_field(self):
        assert lookup_ref(".steps.build", None, STEPS, None) == (False, None)

    def test_current_requires_key(self):
        assert lookup_ref(".current", None, None, CURRENT) == (False, None)

    def test_none_value_is_found(self):
        assert lookup_ref(".current.missing", None, None, CURRENT) == (True, None)
