"""
step.gh_create_check: create a check run on a commit.

Configuration:

    owner:      "GoCodeAlone"
    repo:       "workflow"
    sha:        "{{.commit}}"
    name:       "workflow-ci"
    status:     "completed"     # queued, in_progress, completed
    conclusion: "success"       # required when status is completed
    title:      "CI Pipeline"
    summary:    "All tests passed"
    token:      "${GITHUB_TOKEN}"

``owner``, ``repo`` and ``sha`` may reference pipeline data with
placeholders, resolved on every execution.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from workflow_plugin_github.models.github import (
    CHECK_RUN_CONCLUSIONS,
    CHECK_RUN_STATUSES,
    RUN_STATUS_COMPLETED,
    CheckRunOutput,
    CreateCheckRunRequest,
)
from workflow_plugin_github.steps.base import (
    TOKEN_NOT_CONFIGURED,
    BaseStep,
    StepOutputs,
    StepResult,
    TriggerData,
    error_result,
)
from workflow_plugin_github.utils.template import resolve_field
from workflow_plugin_github.utils.validation import (
    ValidationError,
    choice,
    expand_env,
    get_str,
    require_str,
)

DEFAULT_STATUS = "queued"


@dataclass
class CreateCheckConfig:
    owner: str
    repo: str
    sha: str
    name: str
    status: str = DEFAULT_STATUS
    conclusion: str = ""
    title: str = ""
    summary: str = ""
    token: str = field(default="", repr=False)


class CreateCheckStep(BaseStep[CreateCheckConfig]):
    """Creates a GitHub check run (commit status check)."""

    step_type = "step.gh_create_check"

    @classmethod
    def parse_config(cls, raw: Mapping[str, Any]) -> CreateCheckConfig:
        owner = require_str(raw, "owner")
        repo = require_str(raw, "repo")
        sha = require_str(raw, "sha")
        name = require_str(raw, "name")

        status = choice(get_str(raw, "status") or DEFAULT_STATUS, CHECK_RUN_STATUSES, "status")

        conclusion = get_str(raw, "conclusion")
        if status == RUN_STATUS_COMPLETED and not conclusion:
            raise ValidationError(
                "config.conclusion is required when status=completed", field="conclusion"
            )
        if conclusion and conclusion not in CHECK_RUN_CONCLUSIONS:
            raise ValidationError(
                f"config.conclusion {conclusion!r} is invalid", field="conclusion"
            )

        return CreateCheckConfig(
            owner=owner,
            repo=repo,
            sha=sha,
            name=name,
            status=status,
            conclusion=conclusion,
            title=get_str(raw, "title"),
            summary=get_str(raw, "summary"),
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

        owner = resolve_field(cfg.owner, trigger_data, step_outputs, current)
        repo = resolve_field(cfg.repo, trigger_data, step_outputs, current)
        sha = resolve_field(cfg.sha, trigger_data, step_outputs, current)

        output = None
        if cfg.title or cfg.summary:
            output = CheckRunOutput(title=cfg.title, summary=cfg.summary)

        request = CreateCheckRunRequest(
            name=cfg.name,
            head_sha=sha,
            status=cfg.status,
            conclusion=cfg.conclusion or None,
            output=output,
        )

        try:
            check = await asyncio.to_thread(
                self.client.create_check_run, owner, repo, request, cfg.token
            )
        except Exception as e:
            self._logger.warning("check_run_create_failed", repository=f"{owner}/{repo}", error=str(e))
            return error_result(f"failed to create check run: {e}")

        self._logger.info(
            "check_run_created",
            repository=f"{owner}/{repo}",
            check_run_id=check.id,
            status=check.status,
        )
        return StepResult(
            output={
                "check_run_id": check.id,
                "status": check.status,
                "url": check.html_url,
            }
        )
