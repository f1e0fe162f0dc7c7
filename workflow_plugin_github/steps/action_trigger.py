"""
step.gh_action_trigger: dispatch a GitHub Actions workflow.

Configuration:

    owner:    "GoCodeAlone"
    repo:     "workflow"
    workflow: "ci.yml"          # workflow file name or id
    ref:      "main"            # branch or tag, defaults to main
    inputs:                     # optional workflow_dispatch inputs
      environment: "staging"
    token: "${GITHUB_TOKEN}"
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from workflow_plugin_github.steps.base import (
    TOKEN_NOT_CONFIGURED,
    BaseStep,
    StepOutputs,
    StepResult,
    TriggerData,
    error_result,
)
from workflow_plugin_github.utils.validation import (
    expand_env,
    get_str,
    get_str_map,
    require_str,
)

DEFAULT_REF = "main"


@dataclass
class ActionTriggerConfig:
    owner: str
    repo: str
    workflow: str
    ref: str = DEFAULT_REF
    inputs: dict[str, str] = field(default_factory=dict)
    token: str = field(default="", repr=False)


class ActionTriggerStep(BaseStep[ActionTriggerConfig]):
    """Triggers a workflow run through the workflow_dispatch event."""

    step_type = "step.gh_action_trigger"

    @classmethod
    def parse_config(cls, raw: Mapping[str, Any]) -> ActionTriggerConfig:
        return ActionTriggerConfig(
            owner=require_str(raw, "owner"),
            repo=require_str(raw, "repo"),
            workflow=require_str(raw, "workflow"),
            ref=get_str(raw, "ref") or DEFAULT_REF,
            inputs=get_str_map(raw, "inputs"),
            token=expand_env(get_str(raw, "token")),
        )

    async def execute(
        self,
        trigger_data: TriggerData,
        step_outputs: StepOutputs,
        current: Mapping[str, Any],
        config: Optional[Mapping[str, Any]] = None,
    ) -> StepResult:
        cfg = self.config
        if not cfg.token:
            return error_result(TOKEN_NOT_CONFIGURED)

        try:
            await asyncio.to_thread(
                self.client.trigger_workflow,
                cfg.owner,
                cfg.repo,
                cfg.workflow,
                cfg.ref,
                cfg.inputs,
                cfg.token,
            )
        except Exception as e:
            self._logger.warning("workflow_trigger_failed", error=str(e))
            return error_result(f"failed to trigger workflow: {e}")

        self._logger.info(
            "workflow_triggered",
            repository=f"{cfg.owner}/{cfg.repo}",
            workflow=cfg.workflow,
            ref=cfg.ref,
        )
        return StepResult(
            output={
                "triggered": True,
                "owner": cfg.owner,
                "repo": cfg.repo,
                "workflow": cfg.workflow,
                "ref": cfg.ref,
            }
        )
