"""
Pydantic models for the GitHub workflow plugin.

Provides data models for:
- Normalized git events published to the message broker
- GitHub Actions workflow runs and check runs
"""

from workflow_plugin_github.models.events import NormalizedEvent
from workflow_plugin_github.models.github import (
    CHECK_RUN_CONCLUSIONS,
    CHECK_RUN_STATUSES,
    RUN_STATUS_COMPLETED,
    CheckRun,
    CheckRunOutput,
    CreateCheckRunRequest,
    WorkflowRun,
)

__all__ = [
    "NormalizedEvent",
    "CHECK_RUN_CONCLUSIONS",
    "CHECK_RUN_STATUSES",
    "RUN_STATUS_COMPLETED",
    "CheckRun",
    "CheckRunOutput",
    "CreateCheckRunRequest",
    "WorkflowRun",
]
