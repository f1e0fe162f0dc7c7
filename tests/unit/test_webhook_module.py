"""
Unit tests for the git.webhook module.

Covers every terminal state of a delivery:
  - 405 for non-POST methods
  - 400 for unreadable/oversized bodies, missing event header and
    malformed payloads
  - 401 for missing or invalid signatures
  - 200 ignored (allow-list) and 200 accepted
  - 500 for serialization and publish failures
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from workflow_plugin_github.queue import MemoryPublisher, PublishError
from workflow_plugin_github.utils.validation import MAX_WEBHOOK_PAYLOAD_BYTES, ValidationError
from workflow_plugin_github.utils.webhook import compute_signature
from workflow_plugin_github.webhook.module import WebhookConfig, WebhookModule

SECRET = "webhook-secret"

PUSH_BODY = json.dumps({
    "ref": "refs/heads/main",
    "repository": {"full_name": "GoCodeAlone/workflow"},
    "head_commit": {"id": "abc123", "message": "msg", "author": {"username": "octocat"}},
}).encode()


def _headers(event: str = "push", body: bytes = PUSH_BODY, secret: str = SECRET) -> dict[str, str]:
    return {
        "X-GitHub-Event": event,
        "X-Hub-Signature-256": "sha256=" + compute_signature(body, secret),
    }


@pytest.fixture
def publisher():
    return MemoryPublisher()


@pytest.fixture
def module(publisher):
    webhook = WebhookModule("hooks", {"secret": SECRET})
    webhook.set_message_publisher(publisher)
    return webhook


class TestWebhookConfig:
    """Tests for module configuration parsing."""

    def test_defaults(self):
        config = WebhookConfig.from_mapping({})
        assert config.provider == "github"
        assert config.secret == ""
        assert config.events == []
        assert config.topic == "git.events"

    def test_values(self):
        config = WebhookConfig.from_mapping({
            "provider": "github",
            "secret": "s",
            "events": ["push", 5, "release"],
            "topic": "ci.events",
        })
        assert config.secret == "s"
        assert config.events == ["push", "release"]
        assert config.topic == "ci.events"

    def test_secret_not_in_repr(self):
        assert "hunter2" not in repr(WebhookConfig(secret="hunter2"))

    def test_accepts(self):
        assert WebhookConfig().accepts("anything") is True
        assert WebhookConfig(events=["push"]).accepts("push") is True
        assert WebhookConfig(events=["push"]).accepts("release") is False

    def test_unsupported_provider(self):
        with pytest.raises(ValidationError, match=r'^git\.webhook "hooks": config\.provider \'gitlab\' is not supported'):
            WebhookModule("hooks", {"provider": "gitlab"})


class TestLifecycle:
    """Tests for the module lifecycle surface."""

    async def test_lifecycle_noops(self, module):
        module.init()
        await module.start()
        await module.stop()
        module.set_message_subscriber(object())
        assert module.name == "hooks"

    def test_publisher_attachment(self, publisher):
        webhook = WebhookModule("hooks", {})
        assert webhook.publisher is None
        webhook.set_message_publisher(publisher)
        assert webhook.publisher is publisher


class TestHandleDelivery:
    """Tests for the delivery state machine."""

    async def test_accepted_and_published(self, module, publisher):
        response = await module.handle_delivery("POST", _headers(), PUSH_BODY)

        assert response.status_code == 200
        assert response.media_type == "application/json"
        assert json.loads(response.body) == {"status": "accepted"}

        messages = await publisher.messages()
        assert len(messages) == 1
        message = messages[0]
        assert message.topic == "git.events"
        assert message.metadata == {
            "event_type": "push",
            "provider": "github",
            "repository": "GoCodeAlone/workflow",
        }
        published = json.loads(message.payload)
        assert published["branch"] == "main"
        assert published["commit"] == "abc123"
        assert published["author"] == "octocat"
        assert published["raw_payload"]["ref"] == "refs/heads/main"

    async def test_lone_surrogate_in_payload_accepted(self, publisher):
        webhook = WebhookModule("hooks", {})
        webhook.set_message_publisher(publisher)
        body = (
            b'{"ref": "refs/heads/main", "repository": {"full_name": "o/r"},'
            b' "head_commit": {"id": "abc", "message": "trunc \\ud83d", "timestamp": 1.10}}'
        )

        response = await webhook.handle_delivery("POST", {"X-GitHub-Event": "push"}, body)

        assert response.status_code == 200
        payload = (await publisher.messages())[0].payload
        assert json.loads(payload)["message"] == "trunc ?"
        assert b'"message":"trunc \\ud83d","timestamp":1.10' in payload

    async def test_custom_topic(self, publisher):
        webhook = WebhookModule("hooks", {"topic": "ci.events"})
        webhook.set_message_publisher(publisher)

        await webhook.handle_delivery("POST", {"X-GitHub-Event": "push"}, PUSH_BODY)

        assert [m.topic for m in await publisher.messages()] == ["ci.events"]

    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
    async def test_method_not_allowed(self, module, publisher, method):
        response = await module.handle_delivery(method, _headers(), PUSH_BODY)

        assert response.status_code == 405
        assert response.text == "method not allowed"
        assert await publisher.get_message_count() == 0

    async def test_unreadable_body(self, module):
        response = await module.handle_delivery("POST", _headers(), None)

        assert response.status_code == 400
        assert response.text == "failed to read body"

    async def test_oversized_body(self, module):
        body = b" " * (MAX_WEBHOOK_PAYLOAD_BYTES + 1)
        response = await module.handle_delivery("POST", _headers(body=body), body)

        assert response.status_code == 400
        assert response.text == "failed to read body"

    async def test_missing_signature(self, module, publisher):
        response = await module.handle_delivery("POST", {"X-GitHub-Event": "push"}, PUSH_BODY)

        assert response.status_code == 401
        assert response.text == "missing X-Hub-Signature-256 header"
        assert await publisher.get_message_count() == 0

    async def test_invalid_signature(self, module, publisher):
        headers = _headers(secret="other-secret")
        response = await module.handle_delivery("POST", headers, PUSH_BODY)

        assert response.status_code == 401
        assert response.text == "invalid signature"
        assert await publisher.get_message_count() == 0

    async def test_signature_checked_before_event_header(self, module):
        response = await module.handle_delivery("POST", {"X-Hub-Signature-256": "sha256=00"}, PUSH_BODY)
        assert response.status_code == 401

    async def test_no_secret_skips_validation(self, publisher):
        webhook = WebhookModule("hooks", {})
        webhook.set_message_publisher(publisher)

        response = await webhook.handle_delivery(
            "POST", {"X-GitHub-Event": "push", "X-Hub-Signature-256": "sha256=bogus"}, PUSH_BODY
        )

        assert response.status_code == 200
        assert await publisher.get_message_count() == 1

    async def test_missing_event_header(self, module):
        headers = _headers()
        del headers["X-GitHub-Event"]

        response = await module.handle_delivery("POST", headers, PUSH_BODY)

        assert response.status_code == 400
        assert response.text == "missing X-GitHub-Event header"

    async def test_empty_event_header(self, module):
        headers = _headers()
        headers["X-GitHub-Event"] = ""

        response = await module.handle_delivery("POST", headers, PUSH_BODY)
        assert response.status_code == 400

    async def test_headers_case_insensitive(self, module, publisher):
        headers = {key.lower(): value for key, value in _headers().items()}

        response = await module.handle_delivery("POST", headers, PUSH_BODY)

        assert response.status_code == 200
        assert await publisher.get_message_count() == 1

    async def test_event_not_in_allow_list_ignored(self, publisher):
        webhook = WebhookModule("hooks", {"events": ["push"]})
        webhook.set_message_publisher(publisher)

        with patch("workflow_plugin_github.webhook.module.normalize_github_event") as normalize:
            response = await webhook.handle_delivery(
                "POST", {"X-GitHub-Event": "pull_request"}, b"{}"
            )

        assert response.status_code == 200
        assert response.body == b'{"status":"ignored"}'
        assert await publisher.get_message_count() == 0
        normalize.assert_not_called()

    async def test_event_in_allow_list_accepted(self, publisher):
        webhook = WebhookModule("hooks", {"events": ["push", "release"]})
        webhook.set_message_publisher(publisher)

        response = await webhook.handle_delivery("POST", {"X-GitHub-Event": "release"}, b"{}")

        assert response.body == b'{"status":"accepted"}'
        assert await publisher.get_message_count() == 1

    async def test_malformed_payload(self, module, publisher):
        body = b"not json"
        response = await module.handle_delivery("POST", _headers(body=body), body)

        assert response.status_code == 400
        assert response.text.startswith("failed to normalize event: unmarshal payload")
        assert await publisher.get_message_count() == 0

    async def test_without_publisher_still_accepted(self):
        webhook = WebhookModule("hooks", {})

        response = await webhook.handle_delivery("POST", {"X-GitHub-Event": "push"}, PUSH_BODY)

        assert response.status_code == 200
        assert json.loads(response.body) == {"status": "accepted"}

    async def test_publish_failure(self, module):
        failing = AsyncMock()
        failing.publish.side_effect = PublishError("broker down")
        module.set_message_publisher(failing)

        response = await module.handle_delivery("POST", _headers(), PUSH_BODY)

        assert response.status_code == 500
        assert response.text == "failed to publish event: broker down"
        failing.publish.assert_awaited_once()

    async def test_marshal_failure(self, module, publisher):
        with patch(
            "workflow_plugin_github.models.events.NormalizedEvent.to_json",
            side_effect=ValueError("cannot serialize"),
        ):
            response = await module.handle_delivery("POST", _headers(), PUSH_BODY)

        assert response.status_code == 500
        assert response.text == "failed to marshal event"
        assert await publisher.get_message_count() == 0

    async def test_exactly_one_publish_per_delivery(self, module):
        recorder = AsyncMock()
        recorder.publish.return_value = "id-1"
        module.set_message_publisher(recorder)

        await module.handle_delivery("POST", _headers(), PUSH_BODY)

        assert recorder.publish.await_count == 1
        topic, payload, metadata = recorder.publish.await_args.args
        assert topic == "git.events"
        assert json.loads(payload)["event_type"] == "push"
        assert metadata["provider"] == "github"
