"""
Normalized git event published to the message broker.

Every accepted webhook delivery becomes exactly one NormalizedEvent,
whatever the shape of the provider payload. Consumers that need fields the
schema does not surface can parse ``raw_payload`` themselves.
"""

import json
import re
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator

# A JSON string literal, or a run of insignificant whitespace
_STRING_OR_WHITESPACE = re.compile(rb'("(?:[^"\\]|\\.)*")|[ \t\r\n]+', re.DOTALL)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NormalizedEvent(BaseModel):
    """
    A provider-independent git event.

    ``provider``, ``event_type`` and ``timestamp`` are always populated.
    All other fields default to an empty string when the payload does not
    carry them.
    """

    provider: str = Field("github", description="Source platform identifier")
    event_type: str = Field(..., description="Value of the event-type header")
    repository: str = Field("", description="Repository full name (owner/repo)")
    branch: str = Field("", description="Short ref name; meaning depends on event type")
    commit: str = Field("", description="Commit SHA")
    author: str = Field("", description="Best-effort author identity")
    message: str = Field("", description="Commit message, PR title or tag name")
    url: str = Field("", description="Link to the commit, pull request or release")
    raw_payload: bytes = Field(b"", repr=False, description="Original payload bytes")
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="Capture time at normalization (not taken from the payload)",
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "provider": "github",
                    "event_type": "push",
                    "repository": "octo-org/octo-repo",
                    "branch": "main",
                    "commit": "6113728f27ae82c7b1a177c8d03f9e96e0adf246",
                    "author": "octocat",
                    "message": "Fix the build",
                    "url": "https://github.com/octo-org/octo-repo/commit/6113728",
                    "raw_payload": {"ref": "refs/heads/main"},
                    "timestamp": "2026-01-01T12:00:00Z",
                }
            ]
        }
    }

    @field_validator("raw_payload", mode="before")
    @classmethod
    def accept_embedded_payload(cls, v: Any) -> Any:
        """Accept the embedded JSON document produced by ``to_json``."""
        if isinstance(v, (dict, list)):
            return json.dumps(v).encode("utf-8")
        if isinstance(v, str):
            return v.encode("utf-8")
        if v is None:
            return b""
        return v

    def to_json(self) -> bytes:
        """
        Serialize the event for publishing.

        The original payload is embedded as a JSON document, byte for byte
        apart from insignificant whitespace, so number formatting and
        duplicate keys survive. An empty payload is embedded as ``null``.
        """
        fields = self.model_dump(mode="json", exclude={"raw_payload"})
        members = []
        for name in type(self).model_fields:
            if name == "raw_payload":
                value = compact_json(self.raw_payload) if self.raw_payload else b"null"
            else:
                value = json.dumps(fields[name]).encode("ascii")
            members.append(json.dumps(name).encode("ascii") + b":" + value)
        return b"{" + b",".join(members) + b"}"

    def routing_metadata(self) -> dict[str, str]:
        """Metadata tags attached to the broker message for routing/filtering."""
        return {
            "event_type": self.event_type,
            "provider": self.provider,
            "repository": self.repository,
        }


def compact_json(document: bytes) -> bytes:
    """Strip whitespace outside string literals from a valid JSON document."""
    return _STRING_OR_WHITESPACE.sub(lambda m: m.group(1) or b"", document)
