"""
step.gh_action_status: read, and optionally wait for, a workflow run.

Configuration:

    owner:         "GoCodeAlone"
    repo:          "workflow"
    run_id:        "{{.steps.trigger.run_id}}"
    token:         "${GITHUB_TOKEN}"
    wait:          true      # poll until the run completes (default false)
    poll_interval: "10s"
    timeout:       "30m"

Polling state machine
---------------------
With ``wait`` enabled the step loops until one of four outcomes:

    completed   the run reached status "completed"; its data is returned
    failed      a fetch raised; the error is returned, nothing is retried
    timed out   the deadline passed after a non-terminal fetch
    cancelled   the cancel event was set before a fetch or during the wait

The deadline is checked right after each fetch and before sleeping, so a
slow API call cannot push the step far past its timeout. The sleep itself
races the poll interval against the cancel event.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Mapping, Optional

from workflow_plugin_github.models.github import WorkflowRun
from workflow_plugin_github.steps.base import (
    TOKEN_NOT_CONFIGURED,
    BaseStep,
    StepOutputs,
    StepResult,
    TriggerData,
    error_result,
)
from workflow_plugin_github.utils.validation import (
    ValidationError,
    expand_env,
    format_duration,
    get_bool,
    get_str,
    parse_duration,
    parse_run_id,
    require_str,
)

DEFAULT_POLL_INTERVAL = "10s"
DEFAULT_TIMEOUT = "30m"

CANCELLED_MESSAGE = "context cancelled while waiting for workflow run"


@dataclass
class ActionStatusConfig:
    owner: str
    repo: str
    run_id: int
    token: str = field(default="", repr=False)
    wait: bool = False
    poll_interval: timedelta = timedelta(seconds=10)
    timeout: timedelta = timedelta(minutes=30)


class ActionStatusStep(BaseStep[ActionStatusConfig]):
    """Reports the status of a workflow run, polling until it completes if asked."""

    step_type = "step.gh_action_status"

    @classmethod
    def parse_config(cls, raw: Mapping[str, Any]) -> ActionStatusConfig:
        owner = require_str(raw, "owner")
        repo = require_str(raw, "repo")

        run_id = parse_run_id(raw.get("run_id"))
        if run_id == 0:
            raise ValidationError("config.run_id is required", field="run_id")

        return ActionStatusConfig(
            owner=owner,
            repo=repo,
            run_id=run_id,
            token=expand_env(get_str(raw, "token")),
            wait=get_bool(raw, "wait"),
            poll_interval=parse_duration(
                get_str(raw, "poll_interval") or DEFAULT_POLL_INTERVAL, "poll_interval"
            ),
            timeout=parse_duration(get_str(raw, "timeout") or DEFAULT_TIMEOUT, "timeout"),
        )

    async def execute(
        self,
        trigger_data: TriggerData,
        step_outputs: StepOutputs,
        current: Mapping[str, Any],
        config: Optional[Mapping[str, Any]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> StepResult:
        """
        Fetch the run status, waiting for completion when ``wait`` is set.

        Args:
            trigger_data: Data the pipeline was triggered with (unused)
            step_outputs: Outputs of earlier steps (unused)
            current: Current pipeline context (unused)
            config: Runtime configuration overrides (unused)
            cancel_event: Set by the caller to abandon the wait

        Returns:
            The run's ``run_id``, ``status``, ``conclusion`` and ``url``, or an
            error result on failure, timeout or cancellation
        """
        cfg = self.config
        if not cfg.token:
            return error_result(TOKEN_NOT_CONFIGURED)

        if not cfg.wait:
            result, _ = await self._fetch_status(cfg.token)
            return result

        deadline = time.monotonic() + cfg.timeout.total_seconds()
        polls = 0
        while True:
            if cancel_event is not None and cancel_event.is_set():
                return self._cancelled(polls)

            result, run = await self._fetch_status(cfg.token)
            polls += 1
            if run is None or run.is_completed:
                return result

            if time.monotonic() > deadline:
                self._logger.warning(
                    "workflow_run_wait_timeout",
                    run_id=cfg.run_id,
                    polls=polls,
                    last_status=run.status,
                )
                return error_result(
                    f"timeout waiting for workflow run {cfg.run_id} "
                    f"after {format_duration(cfg.timeout)}"
                )

            if await self._sleep(cancel_event):
                return self._cancelled(polls)

    async def _fetch_status(self, token: str) -> tuple[StepResult, Optional[WorkflowRun]]:
        """Query the run once; the run is ``None`` when the query failed."""
        cfg = self.config
        try:
            run = await asyncio.to_thread(
                self.client.get_workflow_run, cfg.owner, cfg.repo, cfg.run_id, token
            )
        except Exception as e:
            self._logger.warning("workflow_run_fetch_failed", run_id=cfg.run_id, error=str(e))
            return error_result(f"failed to get workflow run: {e}"), None

        self._logger.debug(
            "workflow_run_polled",
            run_id=run.id,
            status=run.status,
            conclusion=run.conclusion,
        )
        output = {
            "run_id": run.id,
            "status": run.status,
            "conclusion": run.conclusion,
            "url": run.html_url,
        }
        return StepResult(output=output), run

    async def _sleep(self, cancel_event: Optional[asyncio.Event]) -> bool:
        """Wait one poll interval. Returns True if cancelled first."""
        interval = self.config.poll_interval.total_seconds()
        if cancel_event is None:
            await asyncio.sleep(interval)
            return False
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            return False
        return True

    def _cancelled(self, polls: int) -> StepResult:
        self._logger.info("workflow_run_wait_cancelled", run_id=self.config.run_id, polls=polls)
        return error_result(CANCELLED_MESSAGE)
