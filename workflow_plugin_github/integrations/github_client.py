"""
GitHub REST client used by the workflow steps.

Provides a small interface around PyGithub for the three Actions/Checks
operations the steps need: dispatching a workflow, reading a workflow run
and creating a check run. Transient failures (5xx responses, dropped
connections) are retried with exponential backoff; client errors (4xx) are
raised immediately.

Tokens are supplied per call because each step instance carries its own
credential. One PyGithub ``Github`` instance is kept per token so repeated
calls reuse the same connection pool.

Usage:
    from workflow_plugin_github.integrations.github_client import get_github_client

    client = get_github_client()
    run = client.get_workflow_run("octo-org", "octo-repo", 42, token="ghp_...")
"""

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol, TypeVar

import requests
from github import Auth, Github, GithubException
from github.Repository import Repository as GithubRepository
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from workflow_plugin_github.config.settings import get_settings
from workflow_plugin_github.models.github import (
    CheckRun,
    CreateCheckRunRequest,
    WorkflowRun,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Github instances kept open at once; the least recently used is closed first
MAX_POOLED_CLIENTS = 32


class GitHubAPIError(RuntimeError):
    """Raised when a GitHub API call fails."""

    def __init__(self, operation: str, message: str, status: Optional[int] = None):
        self.operation = operation
        self.status = status
        detail = f"unexpected status {status}: {message}" if status else message
        super().__init__(f"{operation}: {detail}")


class GitHubClient(Protocol):
    """Operations the steps need from GitHub; tests substitute fakes."""

    def trigger_workflow(
        self,
        owner: str,
        repo: str,
        workflow: str,
        ref: str,
        inputs: dict[str, str],
        token: str,
    ) -> None: ...

    def get_workflow_run(
        self, owner: str, repo: str, run_id: int, token: str
    ) -> WorkflowRun: ...

    def create_check_run(
        self, owner: str, repo: str, request: CreateCheckRunRequest, token: str
    ) -> CheckRun: ...


@dataclass
class ClientStats:
    """Tracks client usage statistics."""

    api_calls: int = 0
    errors: int = 0
    retries: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def _is_transient(error: BaseException) -> bool:
    """Server errors and connection problems are worth retrying."""
    if isinstance(error, GithubException):
        return error.status is None or error.status >= 500
    return isinstance(error, requests.exceptions.RequestException)


def _describe(error: GithubException) -> str:
    data = error.data
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return str(data) if data else str(error)


class PyGithubClient:
    """
    PyGithub-backed implementation of the GitHubClient protocol.

    Args:
        base_url: GitHub REST API base URL.
        timeout: Per-request timeout in seconds.
        max_retries: Retries on transient failures.
        retry_delay: Base delay between retries in seconds (doubles each attempt).
        max_clients: Distinct tokens whose connections are kept open.
    """

    def __init__(
        self,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        max_clients: int = MAX_POOLED_CLIENTS,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._stats = ClientStats()
        self._max_clients = max_clients
        self._clients: OrderedDict[str, Github] = OrderedDict()
        self._lock = threading.Lock()

        logger.info(
            "PyGithubClient initialized (base_url=%s, max_retries=%d)",
            self._base_url,
            max_retries,
        )

    # ========================
    # Connection management
    # ========================

    def _github(self, token: str) -> Github:
        """Return the Github instance for ``token``, creating it on first use."""
        evicted: list[Github] = []
        with self._lock:
            client = self._clients.get(token)
            if client is not None:
                self._clients.move_to_end(token)
                return client

            client = Github(
                auth=Auth.Token(token),
                base_url=self._base_url,
                timeout=int(self._timeout),
                retry=None,
            )
            self._clients[token] = client
            while len(self._clients) > self._max_clients:
                _, oldest = self._clients.popitem(last=False)
                evicted.append(oldest)

        for oldest in evicted:
            oldest.close()
        return client

    def _repo(self, owner: str, repo: str, token: str) -> GithubRepository:
        return self._github(token).get_repo(f"{owner}/{repo}", lazy=True)

    # ========================
    # Actions
    # ========================

    def trigger_workflow(
        self,
        owner: str,
        repo: str,
        workflow: str,
        ref: str,
        inputs: dict[str, str],
        token: str,
    ) -> None:
        """
        Trigger a workflow via the workflow_dispatch event.

        Args:
            owner: Repository owner.
            repo: Repository name.
            workflow: Workflow file name (``ci.yml``) or numeric id.
            ref: Branch or tag to run the workflow on.
            inputs: workflow_dispatch inputs.
            token: GitHub token.

        Raises:
            GitHubAPIError: If GitHub did not accept the dispatch.
        """

        def _dispatch() -> bool:
            target = self._repo(owner, repo, token).get_workflow(
                int(workflow) if workflow.isdigit() else workflow
            )
            if inputs:
                return target.create_dispatch(ref, inputs)
            return target.create_dispatch(ref)

        accepted = self._call("trigger workflow", _dispatch)
        if not accepted:
            raise GitHubAPIError("trigger workflow", "dispatch was not accepted")

        logger.info("Dispatched workflow %s on %s/%s@%s", workflow, owner, repo, ref)

    def get_workflow_run(
        self, owner: str, repo: str, run_id: int, token: str
    ) -> WorkflowRun:
        """
        Fetch the current state of a workflow run.

        Raises:
            GitHubAPIError: If the run could not be read.
        """
        run = self._call(
            "get workflow run",
            lambda: self._repo(owner, repo, token).get_workflow_run(run_id),
        )
        return WorkflowRun(
            id=run.id,
            status=run.status,
            conclusion=run.conclusion,
            html_url=run.html_url,
        )

    # ========================
    # Checks
    # ========================

    def create_check_run(
        self, owner: str, repo: str, request: CreateCheckRunRequest, token: str
    ) -> CheckRun:
        """
        Create a check run on a commit.

        Raises:
            GitHubAPIError: If the check run could not be created.
        """
        kwargs: dict[str, Any] = {"status": request.status}
        if request.conclusion:
            kwargs["conclusion"] = request.conclusion
        if request.output is not None:
            kwargs["output"] = request.output.model_dump()

        check = self._call(
            "create check run",
            lambda: self._repo(owner, repo, token).create_check_run(
                request.name, request.head_sha, **kwargs
            ),
        )
        logger.info(
            "Created check run %r on %s/%s@%s (id=%d)",
            request.name,
            owner,
            repo,
            request.head_sha[:12],
            check.id,
        )
        return CheckRun(id=check.id, status=check.status, html_url=check.html_url)

    # ========================
    # Retry Logic
    # ========================

    def _call(self, operation: str, fn: Callable[[], T]) -> T:
        """
        Execute an API operation with retries for transient failures.

        Raises:
            GitHubAPIError: Wrapping the last failure.
        """

        def _before_sleep(retry_state: Any) -> None:
            self._count("retries")
            logger.warning(
                "%s: transient GitHub failure (attempt %d/%d): %s",
                operation,
                retry_state.attempt_number,
                self._max_retries + 1,
                retry_state.outcome.exception(),
            )

        retrying = Retrying(
            stop=stop_after_attempt(self._max_retries + 1),
            wait=wait_exponential(multiplier=self._retry_delay, max=30),
            retry=retry_if_exception(_is_transient),
            before_sleep=_before_sleep,
            reraise=True,
        )

        try:
            for attempt in retrying:
                with attempt:
                    self._count("api_calls")
                    return fn()
        except GithubException as e:
            self._count("errors")
            logger.error("%s: GitHub API error %s: %s", operation, e.status, _describe(e))
            raise GitHubAPIError(operation, _describe(e), status=e.status) from e
        except requests.exceptions.RequestException as e:
            self._count("errors")
            logger.error("%s: request failed: %s", operation, e)
            raise GitHubAPIError(operation, f"execute request: {e}") from e

        raise GitHubAPIError(operation, "no attempt was made")  # pragma: no cover

    # ========================
    # Client Management
    # ========================

    def _count(self, counter: str) -> None:
        with self._lock:
            setattr(self._stats, counter, getattr(self._stats, counter) + 1)


    @property
    def stats(self) -> ClientStats:
        """Get client usage statistics."""
        return self._stats

    def close(self) -> None:
        """Close every pooled GitHub connection."""
        with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()
        for client in clients:
            client.close()
        logger.info(
            "PyGithubClient closed (api_calls=%d, errors=%d, retries=%d)",
            self._stats.api_calls,
            self._stats.errors,
            self._stats.retries,
        )

    def __repr__(self) -> str:
        return (
            f"PyGithubClient(base_url={self._base_url!r}, "
            f"api_calls={self._stats.api_calls})"
        )


# ========================
# Module-level convenience
# ========================


_global_client: Optional[PyGithubClient] = None
_global_lock = threading.Lock()


def get_github_client() -> PyGithubClient:
    """Get or create the shared client configured from settings."""
    global _global_client

    with _global_lock:
        if _global_client is None:
            settings = get_settings()
            _global_client = PyGithubClient(
                base_url=settings.github_api_url,
                timeout=settings.github_timeout_seconds,
                max_retries=settings.github_max_retries,
            )
        return _global_client


def close_github_client() -> None:
    """Close the shared client."""
    global _global_client

    with _global_lock:
        client, _global_client = _global_client, None
    if client is not None:
        client.close()
