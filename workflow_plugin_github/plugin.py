"""
Plugin registry exposing the GitHub module and step types to the engine.

The engine asks the plugin for its manifest and the type names it provides,
then creates instances by type name with the raw configuration mapping from
the pipeline definition.

Usage:
    plugin = GitHubPlugin()
    module = plugin.create_module("git.webhook", "hooks", {"secret": "..."})
    step = plugin.create_step("step.gh_create_check", "check", {...})
"""

from typing import Any, Mapping, Optional

from pydantic import BaseModel

from workflow_plugin_github import __version__
from workflow_plugin_github.integrations.github_client import GitHubClient
from workflow_plugin_github.steps import (
    ActionStatusStep,
    ActionTriggerStep,
    BaseStep,
    CreateCheckStep,
)
from workflow_plugin_github.webhook.module import MODULE_TYPE, WebhookModule


class PluginError(Exception):
    """Raised when the plugin is asked for a type it does not provide."""

    pass


class PluginManifest(BaseModel):
    """Plugin metadata reported to the engine."""

    name: str
    version: str
    author: str
    description: str


# ==================
# Step Type Registry
# ==================

STEP_TYPE_MAP: dict[str, type[BaseStep]] = {
    ActionTriggerStep.step_type: ActionTriggerStep,
    ActionStatusStep.step_type: ActionStatusStep,
    CreateCheckStep.step_type: CreateCheckStep,
}


class GitHubPlugin:
    """Provides the git.webhook module and the GitHub Actions/Checks steps."""

    def manifest(self) -> PluginManifest:
        return PluginManifest(
            name="workflow-plugin-github",
            version=__version__,
            author="GoCodeAlone",
            description=(
                "GitHub integration plugin: webhook handling and "
                "GitHub Actions workflow management"
            ),
        )

    def module_types(self) -> list[str]:
        return [MODULE_TYPE]

    def create_module(
        self, type_name: str, name: str, config: Mapping[str, Any]
    ) -> WebhookModule:
        """
        Create a module instance.

        Raises:
            PluginError: If ``type_name`` is not a module type of this plugin
            ValidationError: If the configuration is invalid
        """
        if type_name != MODULE_TYPE:
            raise PluginError(f"github plugin: unknown module type {type_name!r}")
        return WebhookModule(name, config)

    def step_types(self) -> list[str]:
        return list(STEP_TYPE_MAP)

    def create_step(
        self,
        type_name: str,
        name: str,
        config: Mapping[str, Any],
        client: Optional[GitHubClient] = None,
    ) -> BaseStep:
        """
        Create a step instance.

        Args:
            type_name: Registered step type
            name: Step instance name
            config: Raw step configuration
            client: GitHub client override (the shared client by default)

        Raises:
            PluginError: If ``type_name`` is not a step type of this plugin
            ValidationError: If the configuration is invalid
        """
        step_cls = STEP_TYPE_MAP.get(type_name)
        if step_cls is None:
            raise PluginError(f"github plugin: unknown step type {type_name!r}")
        return step_cls(name, config, client=client)
