"""
git.webhook module: receives GitHub deliveries and publishes normalized events.

A delivery moves through a fixed sequence of checks. The first one that
fails determines the response:

    1. method is POST                              else 405
    2. body within the size limit                  else 400
    3. signature valid (only if a secret is set)   else 401
    4. X-GitHub-Event present                      else 400
    5. event type in the allow-list (if any)       else 200 "ignored"
    6. payload normalizes                          else 400
    7. event serializes and publishes              else 500
    8. 200 "accepted"

Usage:
    module = WebhookModule("github-hooks", {"secret": "...", "events": ["push"]})
    module.set_message_publisher(publisher)
    response = await module.handle_delivery("POST", headers, body)
"""

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from workflow_plugin_github.models.events import NormalizedEvent
from workflow_plugin_github.queue.base import MessagePublisher
from workflow_plugin_github.utils.logging import get_logger
from workflow_plugin_github.utils.validation import (
    MAX_WEBHOOK_PAYLOAD_BYTES,
    ValidationError,
    get_str,
    get_str_list,
)
from workflow_plugin_github.utils.webhook import (
    SIGNATURE_HEADER,
    validate_github_signature,
)
from workflow_plugin_github.webhook.normalizer import (
    PROVIDER_GITHUB,
    normalize_github_event,
)
from workflow_plugin_github.webhook.payload import MalformedPayloadError

MODULE_TYPE = "git.webhook"
EVENT_HEADER = "X-GitHub-Event"
DELIVERY_HEADER = "X-GitHub-Delivery"
DEFAULT_TOPIC = "git.events"

JSON_MEDIA_TYPE = "application/json"
TEXT_MEDIA_TYPE = "text/plain; charset=utf-8"

_ACCEPTED_BODY = json.dumps({"status": "accepted"}, separators=(",", ":")).encode()
_IGNORED_BODY = json.dumps({"status": "ignored"}, separators=(",", ":")).encode()


@dataclass(frozen=True)
class WebhookResponse:
    """HTTP response produced for one delivery."""

    status_code: int
    body: bytes
    media_type: str = TEXT_MEDIA_TYPE

    @classmethod
    def error(cls, status_code: int, message: str) -> "WebhookResponse":
        return cls(status_code, message.encode("utf-8"))

    @classmethod
    def json_ok(cls, body: bytes) -> "WebhookResponse":
        return cls(200, body, JSON_MEDIA_TYPE)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")


@dataclass
class WebhookConfig:
    """Parsed git.webhook configuration."""

    provider: str = PROVIDER_GITHUB
    secret: str = field(default="", repr=False)
    events: list[str] = field(default_factory=list)
    topic: str = DEFAULT_TOPIC

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "WebhookConfig":
        """
        Build the config from a raw mapping.

        Raises:
            ValidationError: If the provider is not supported.
        """
        provider = get_str(raw, "provider") or PROVIDER_GITHUB
        if provider != PROVIDER_GITHUB:
            raise ValidationError(
                f"config.provider {provider!r} is not supported; must be: {PROVIDER_GITHUB}",
                field="provider",
            )
        return cls(
            provider=provider,
            secret=get_str(raw, "secret"),
            events=get_str_list(raw, "events"),
            topic=get_str(raw, "topic") or DEFAULT_TOPIC,
        )

    def accepts(self, event_type: str) -> bool:
        """Whether the allow-list admits ``event_type`` (an empty list admits all)."""
        return not self.events or event_type in self.events


class WebhookModule:
    """
    Receives GitHub webhook deliveries and publishes normalized events.

    Attributes:
        name: Module instance name
        config: Parsed module configuration
    """

    module_type = MODULE_TYPE

    def __init__(self, name: str, config: Mapping[str, Any]) -> None:
        """
        Raises:
            ValidationError: If the configuration is invalid.
        """
        try:
            self.config = WebhookConfig.from_mapping(config)
        except ValidationError as e:
            raise ValidationError(f'{MODULE_TYPE} "{name}": {e}', field=e.field) from e

        self._name = name
        self._publisher: Optional[MessagePublisher] = None
        self._logger = get_logger(__name__, module=name)

        if not self.config.secret:
            self._logger.warning("webhook_signature_validation_disabled")

    # ==================
    # Lifecycle
    # ==================

    @property
    def name(self) -> str:
        return self._name

    def init(self) -> None:
        """Nothing to prepare; the module is ready after construction."""

    async def start(self) -> None:
        """The delivery route is mounted by the host application."""

    async def stop(self) -> None:
        pass

    def set_message_publisher(self, publisher: Optional[MessagePublisher]) -> None:
        """Attach the broker publisher accepted events are sent to."""
        self._publisher = publisher

    def set_message_subscriber(self, subscriber: Any) -> None:
        """This module only publishes."""

    @property
    def publisher(self) -> Optional[MessagePublisher]:
        return self._publisher

    # ==================
    # Delivery handling
    # ==================

    async def handle_delivery(
        self,
        method: str,
        headers: Mapping[str, str],
        body: Optional[bytes],
    ) -> WebhookResponse:
        """
        Process one webhook delivery.

        Args:
            method: HTTP method of the request
            headers: Request headers (looked up case-insensitively)
            body: Raw request body, or None if it could not be read within
                the size limit

        Returns:
            The response to send back to GitHub
        """
        if method.upper() != "POST":
            return WebhookResponse.error(405, "method not allowed")

        if body is None or len(body) > MAX_WEBHOOK_PAYLOAD_BYTES:
            self._logger.warning("webhook_body_rejected")
            return WebhookResponse.error(400, "failed to read body")

        lookup = {key.lower(): value for key, value in headers.items()}

        if self.config.secret:
            signature = lookup.get(SIGNATURE_HEADER.lower(), "")
            if not signature:
                self._logger.warning("webhook_signature_missing")
                return WebhookResponse.error(401, f"missing {SIGNATURE_HEADER} header")
            if not validate_github_signature(body, signature, self.config.secret):
                self._logger.warning("webhook_signature_invalid")
                return WebhookResponse.error(401, "invalid signature")

        event_type = lookup.get(EVENT_HEADER.lower(), "")
        if not event_type:
            return WebhookResponse.error(400, f"missing {EVENT_HEADER} header")

        if not self.config.accepts(event_type):
            self._logger.info("webhook_ignored", event_type=event_type)
            return WebhookResponse.json_ok(_IGNORED_BODY)

        try:
            event = normalize_github_event(event_type, body)
        except MalformedPayloadError as e:
            self._logger.warning("webhook_payload_malformed", event_type=event_type, error=str(e))
            return WebhookResponse.error(400, f"failed to normalize event: {e}")

        if self._publisher is not None:
            failure = await self._publish(event)
            if failure is not None:
                return failure

        self._logger.info(
            "webhook_accepted",
            event_type=event.event_type,
            repository=event.repository,
            branch=event.branch,
            published=self._publisher is not None,
        )
        return WebhookResponse.json_ok(_ACCEPTED_BODY)

    async def _publish(self, event: NormalizedEvent) -> Optional[WebhookResponse]:
        """Publish ``event``; returns an error response on failure."""
        try:
            payload = event.to_json()
        except ValueError as e:
            self._logger.error("webhook_event_marshal_failed", error=str(e))
            return WebhookResponse.error(500, "failed to marshal event")

        try:
            message_id = await self._publisher.publish(
                self.config.topic, payload, event.routing_metadata()
            )
        except Exception as e:
            self._logger.error(
                "webhook_publish_failed",
                topic=self.config.topic,
                event_type=event.event_type,
                error=str(e),
            )
            return WebhookResponse.error(500, f"failed to publish event: {e}")

        self._logger.debug("webhook_event_published", topic=self.config.topic, message_id=message_id)
        return None

    def __repr__(self) -> str:
        return f"WebhookModule(name={self._name!r}, topic={self.config.topic!r})"
