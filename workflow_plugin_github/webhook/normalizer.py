"""
GitHub webhook payload normalization.

Converts a raw delivery body plus its ``X-GitHub-Event`` value into a
NormalizedEvent. Only a body that is not a JSON object is an error; every
field extraction after that is best effort and falls back to an empty
string.

Known event types each have an extraction strategy; anything else goes
through the generic strategy, which only resolves the sender.
"""

from enum import Enum
from typing import Callable

from workflow_plugin_github.models.events import NormalizedEvent
from workflow_plugin_github.webhook.payload import (
    MalformedPayloadError,
    PayloadDocument,
    first_non_empty,
)

PROVIDER_GITHUB = "github"

BRANCH_REF_PREFIX = "refs/heads/"


class EventKind(str, Enum):
    """GitHub event types with a dedicated extraction strategy."""

    PUSH = "push"
    PULL_REQUEST = "pull_request"
    RELEASE = "release"
    CREATE = "create"
    DELETE = "delete"
    GENERIC = "*"

    @classmethod
    def from_header(cls, event_type: str) -> "EventKind":
        """Map an ``X-GitHub-Event`` value to its kind, defaulting to GENERIC."""
        try:
            kind = cls(event_type)
        except ValueError:
            return cls.GENERIC
        return kind


EventFields = dict[str, str]


def _push_fields(payload: PayloadDocument) -> EventFields:
    # Only branch refs are shortened; tag refs keep their full name
    fields: EventFields = {
        "branch": payload.get_str("ref").removeprefix(BRANCH_REF_PREFIX),
    }

    head_commit = payload.get_object("head_commit")
    if payload.has_object("head_commit"):
        fields["commit"] = head_commit.get_str("id")
        fields["message"] = head_commit.get_str("message")
        fields["url"] = head_commit.get_str("url")
    else:
        fields["commit"] = payload.get_str("after")

    commit_author = head_commit.get_object("author")
    fields["author"] = first_non_empty(
        lambda: commit_author.get_str("username"),
        lambda: commit_author.get_str("name"),
        lambda: payload.get_path("pusher", "name"),
        lambda: payload.get_path("sender", "login"),
    )
    return fields


def _pull_request_fields(payload: PayloadDocument) -> EventFields:
    pull_request = payload.get_object("pull_request")
    return {
        "message": pull_request.get_str("title"),
        "url": pull_request.get_str("html_url"),
        "branch": pull_request.get_path("head", "ref"),
        "commit": pull_request.get_path("head", "sha"),
        "author": pull_request.get_path("user", "login"),
    }


def _release_fields(payload: PayloadDocument) -> EventFields:
    release = payload.get_object("release")
    tag_name = release.get_str("tag_name")
    return {
        "message": tag_name,
        "branch": tag_name,
        "url": release.get_str("html_url"),
        "author": release.get_path("author", "login"),
    }


def _ref_fields(payload: PayloadDocument) -> EventFields:
    # create/delete refs are already short names ("main", "v2.0.0")
    return {
        "branch": payload.get_str("ref"),
        "author": payload.get_path("sender", "login"),
    }


def _generic_fields(payload: PayloadDocument) -> EventFields:
    return {"author": payload.get_path("sender", "login")}


_STRATEGIES: dict[EventKind, Callable[[PayloadDocument], EventFields]] = {
    EventKind.PUSH: _push_fields,
    EventKind.PULL_REQUEST: _pull_request_fields,
    EventKind.RELEASE: _release_fields,
    EventKind.CREATE: _ref_fields,
    EventKind.DELETE: _ref_fields,
    EventKind.GENERIC: _generic_fields,
}


def normalize_github_event(event_type: str, body: bytes) -> NormalizedEvent:
    """
    Convert a raw GitHub webhook payload into a NormalizedEvent.

    Args:
        event_type: Value of the X-GitHub-Event header
        body: Raw request body

    Returns:
        NormalizedEvent stamped with the current time

    Raises:
        MalformedPayloadError: If the body is not a JSON object
    """
    payload = PayloadDocument.parse(body)
    fields = _STRATEGIES[EventKind.from_header(event_type)](payload)

    return NormalizedEvent(
        provider=PROVIDER_GITHUB,
        event_type=event_type,
        repository=payload.get_path("repository", "full_name"),
        raw_payload=body,
        **fields,
    )


__all__ = [
    "BRANCH_REF_PREFIX",
    "EventKind",
    "MalformedPayloadError",
    "PROVIDER_GITHUB",
    "normalize_github_event",
]
