"""Pipeline steps calling the GitHub Actions and Checks APIs."""

from workflow_plugin_github.steps.base import BaseStep, StepResult, error_result
from workflow_plugin_github.steps.action_trigger import ActionTriggerConfig, ActionTriggerStep
from workflow_plugin_github.steps.action_status import ActionStatusConfig, ActionStatusStep
from workflow_plugin_github.steps.create_check import CreateCheckConfig, CreateCheckStep

__all__ = [
    "BaseStep",
    "StepResult",
    "error_result",
    "ActionTriggerConfig",
    "ActionTriggerStep",
    "ActionStatusConfig",
    "ActionStatusStep",
    "CreateCheckConfig",
    "CreateCheckStep",
]
