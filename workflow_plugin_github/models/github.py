"""
Pydantic models for the GitHub REST API resources used by the steps.

These cover the small slice of the Actions and Checks APIs the plugin
talks to: workflow runs (status polling) and check runs (commit status).
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

RUN_STATUS_COMPLETED = "completed"

CHECK_RUN_STATUSES = ("queued", "in_progress", "completed")

CHECK_RUN_CONCLUSIONS = frozenset({
    "success",
    "failure",
    "neutral",
    "cancelled",
    "skipped",
    "timed_out",
    "action_required",
})


class WorkflowRun(BaseModel):
    """A GitHub Actions workflow run."""

    id: int = Field(..., description="Workflow run id")
    status: str = Field("", description="queued, in_progress, completed, ...")
    conclusion: str = Field("", description="Set once the run is completed")
    html_url: str = Field("", description="Link to the run in the GitHub UI")

    @field_validator("status", "conclusion", "html_url", mode="before")
    @classmethod
    def none_as_empty(cls, v: Optional[str]) -> str:
        return v or ""

    @property
    def is_completed(self) -> bool:
        """Whether the run reached the terminal status."""
        return self.status == RUN_STATUS_COMPLETED


class CheckRunOutput(BaseModel):
    """Title and summary shown on a check run."""

    title: str = ""
    summary: str = ""


class CreateCheckRunRequest(BaseModel):
    """Parameters for creating a GitHub check run on a commit."""

    name: str
    head_sha: str
    status: str = "queued"
    conclusion: Optional[str] = None
    output: Optional[CheckRunOutput] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "workflow-ci",
                    "head_sha": "ce587453ced02b1526dfb4cb910479d431683101",
                    "status": "completed",
                    "conclusion": "success",
                    "output": {"title": "CI Pipeline", "summary": "All tests passed"},
                }
            ]
        }
    }


class CheckRun(BaseModel):
    """A check run returned by the GitHub API."""

    id: int
    status: str = ""
    html_url: str = ""

    @field_validator("status", "html_url", mode="before")
    @classmethod
    def none_as_empty(cls, v: Optional[str]) -> str:
        return v or ""
