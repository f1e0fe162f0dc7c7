"""Unit tests for the plugin registry and the command-line entry point."""

import json
from unittest.mock import patch

import pytest

from workflow_plugin_github import __main__ as cli
from workflow_plugin_github.plugin import GitHubPlugin, PluginError
from workflow_plugin_github.steps import ActionStatusStep, ActionTriggerStep, CreateCheckStep
from workflow_plugin_github.utils.validation import ValidationError
from workflow_plugin_github.webhook.module import WebhookModule


@pytest.fixture
def plugin():
    return GitHubPlugin()


class TestManifest:
    """Tests for plugin metadata."""

    def test_manifest(self, plugin):
        manifest = plugin.manifest()

        assert manifest.name == "workflow-plugin-github"
        assert manifest.version == "1.0.0"
        assert manifest.author == "GoCodeAlone"
        assert "webhook" in manifest.description


class TestModules:
    """Tests for module creation."""

    def test_module_types(self, plugin):
        assert plugin.module_types() == ["git.webhook"]

    def test_create_module(self, plugin):
        module = plugin.create_module("git.webhook", "hooks", {"events": ["push"]})

        assert isinstance(module, WebhookModule)
        assert module.name == "hooks"
        assert module.config.events == ["push"]

    def test_unknown_module_type(self, plugin):
        with pytest.raises(PluginError, match="github plugin: unknown module type 'git.poller'"):
            plugin.create_module("git.poller", "p", {})

    def test_invalid_module_config(self, plugin):
        with pytest.raises(ValidationError, match='git.webhook "hooks": config.provider'):
            plugin.create_module("git.webhook", "hooks", {"provider": "gitlab"})


class TestSteps:
    """Tests for step creation."""

    def test_step_types(self, plugin):
        assert plugin.step_types() == [
            "step.gh_action_trigger",
            "step.gh_action_status",
            "step.gh_create_check",
        ]

    @pytest.mark.parametrize(
        "type_name,config,expected",
        [
            ("step.gh_action_trigger", {"owner": "o", "repo": "r", "workflow": "ci.yml"}, ActionTriggerStep),
            ("step.gh_action_status", {"owner": "o", "repo": "r", "run_id": 1}, ActionStatusStep),
            ("step.gh_create_check", {"owner": "o", "repo": "r", "sha": "s", "name": "n"}, CreateCheckStep),
        ],
    )
    def test_create_step(self, plugin, type_name, config, expected):
        client = object()

        step = plugin.create_step(type_name, "my-step", config, client=client)

        assert isinstance(step, expected)
        assert step.name == "my-step"
        assert step.client is client

    def test_unknown_step_type(self, plugin):
        with pytest.raises(PluginError, match="github plugin: unknown step type 'step.gh_merge'"):
            plugin.create_step("step.gh_merge", "m", {})


class TestCommandLine:
    """Tests for the workflow-plugin-github command."""

    def test_manifest_command(self, capsys):
        assert cli.main(["manifest"]) == 0

        printed = json.loads(capsys.readouterr().out)
        assert printed["name"] == "workflow-plugin-github"
        assert printed["version"] == "1.0.0"

    def test_serve_is_default(self):
        with patch.object(cli.uvicorn, "run") as mock_run:
            assert cli.main([]) == 0

        args, kwargs = mock_run.call_args
        assert args == ("workflow_plugin_github.api.main:create_app",)
        assert kwargs["factory"] is True

    def test_serve_overrides(self):
        with patch.object(cli.uvicorn, "run") as mock_run:
            cli.main(["serve", "--host", "127.0.0.1", "--port", "9000"])

        _, kwargs = mock_run.call_args
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 9000
