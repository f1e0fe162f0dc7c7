"""GitHub webhook reception and event normalization."""

from workflow_plugin_github.webhook.module import (
    MODULE_TYPE,
    WebhookConfig,
    WebhookModule,
    WebhookResponse,
)
from workflow_plugin_github.webhook.normalizer import EventKind, normalize_github_event
from workflow_plugin_github.webhook.payload import MalformedPayloadError, PayloadDocument

__all__ = [
    "MODULE_TYPE",
    "WebhookConfig",
    "WebhookModule",
    "WebhookResponse",
    "EventKind",
    "normalize_github_event",
    "MalformedPayloadError",
    "PayloadDocument",
]
