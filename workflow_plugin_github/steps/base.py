"""
Base step class for the GitHub pipeline steps.

This module defines the StepResult returned by every step and the abstract
BaseStep interface the concrete steps inherit from. A step is constructed
once from its raw configuration mapping and then executed any number of
times with the pipeline data of the current run.

Each step must implement:
- parse_config(): Turn the raw configuration mapping into a typed config
- execute(): Run the step against the current pipeline data

The base class provides:
- Configuration error wrapping (``step.<type> "<name>": ...``)
- Lazy access to the shared GitHub client
- Common logging infrastructure

Execution never raises for remote or per-run problems: those become an
error result that stops the pipeline. Only configuration errors raise, and
only at construction.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Generic, Mapping, Optional, TypeVar

from workflow_plugin_github.integrations.github_client import (
    GitHubClient,
    get_github_client,
)
from workflow_plugin_github.utils.logging import get_logger
from workflow_plugin_github.utils.validation import ValidationError

TOKEN_NOT_CONFIGURED = "GITHUB_TOKEN is not configured"

ConfigT = TypeVar("ConfigT")

TriggerData = Mapping[str, Any]
StepOutputs = Mapping[str, Mapping[str, Any]]


@dataclass
class StepResult:
    """Outcome of a step execution."""

    output: dict[str, Any] = field(default_factory=dict)
    stop_pipeline: bool = False


def error_result(message: str) -> StepResult:
    """
    Build a result that stops the pipeline and reports ``message``.

    The output mirrors an HTTP 500 response so pipelines that end in an
    HTTP response step can return it unchanged.
    """
    return StepResult(
        stop_pipeline=True,
        output={
            "response_status": 500,
            "response_body": json.dumps({"error": message}, separators=(",", ":")),
            "response_headers": {"Content-Type": "application/json"},
            "error": message,
        },
    )


class BaseStep(ABC, Generic[ConfigT]):
    """
    Abstract base class for all GitHub steps.

    Attributes:
        step_type: Registered step type name (e.g. ``step.gh_action_trigger``)
        name: Step instance name from the pipeline definition
        config: Parsed step configuration
    """

    step_type: ClassVar[str]

    def __init__(
        self,
        name: str,
        config: Mapping[str, Any],
        client: Optional[GitHubClient] = None,
    ) -> None:
        """
        Initialize a step from its raw configuration.

        Args:
            name: Step instance name
            config: Raw configuration mapping from the pipeline definition
            client: GitHub client; the shared settings-configured client is
                used when omitted

        Raises:
            ValidationError: If the configuration is invalid
        """
        try:
            self._config = self.parse_config(config)
        except ValidationError as e:
            raise ValidationError(
                f'{self.step_type} "{name}": {e}', field=e.field
            ) from e

        self._name = name
        self._client = client
        self._logger = get_logger(__name__, step=name, step_type=self.step_type)

    @property
    def name(self) -> str:
        return self._name

    @property
    def config(self) -> ConfigT:
        return self._config

    @property
    def client(self) -> GitHubClient:
        """GitHub client used by this step."""
        if self._client is None:
            self._client = get_github_client()
        return self._client

    @classmethod
    @abstractmethod
    def parse_config(cls, raw: Mapping[str, Any]) -> ConfigT:
        """
        Parse the raw configuration mapping.

        Raises:
            ValidationError: If a required option is missing or invalid
        """

    @abstractmethod
    async def execute(
        self,
        trigger_data: TriggerData,
        step_outputs: StepOutputs,
        current: Mapping[str, Any],
        config: Optional[Mapping[str, Any]] = None,
    ) -> StepResult:
        """
        Run the step.

        Args:
            trigger_data: Data the pipeline was triggered with
            step_outputs: Outputs of earlier steps keyed by step name
            current: Current pipeline context
            config: Runtime configuration overrides (unused by the GitHub steps)

        Returns:
            The step result; failures are reported as error results
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r})"
