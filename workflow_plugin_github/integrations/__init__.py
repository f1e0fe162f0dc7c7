"""
Integrations module for external service clients.

Provides the GitHub REST client used by the Actions and Checks steps.
"""

from workflow_plugin_github.integrations.github_client import (
    ClientStats,
    GitHubAPIError,
    GitHubClient,
    PyGithubClient,
    close_github_client,
    get_github_client,
)

__all__ = [
    "ClientStats",
    "GitHubAPIError",
    "GitHubClient",
    "PyGithubClient",
    "close_github_client",
    "get_github_client",
]
