"""
Unit tests for webhook signature utilities.
"""

import hmac
import hashlib

from workflow_plugin_github.utils.webhook import (
    SIGNATURE_PREFIX,
    compute_signature,
    validate_github_signature,
)


def _sign(payload: bytes, secret: str) -> str:
    mac = hmac.new(secret.encode(), msg=payload, digestmod=hashlib.sha256)
    return f"sha256={mac.hexdigest()}"


class TestComputeSignature:
    """Tests for HMAC-SHA256 digest computation."""

    def test_matches_hmac_hexdigest(self):
        payload = b'{"ref": "refs/heads/main"}'
        assert compute_signature(payload, "s3cret") == _sign(payload, "s3cret")[len(SIGNATURE_PREFIX):]

    def test_is_lowercase_hex(self):
        digest = compute_signature(b"body", "key")
        assert len(digest) == 64
        assert digest == digest.lower()
        int(digest, 16)

    def test_empty_body(self):
        expected = hmac.new(b"key", b"", hashlib.sha256).hexdigest()
        assert compute_signature(b"", "key") == expected


class TestValidateGitHubSignature:
    """Tests for GitHub webhook signature validation."""

    def test_valid_signature(self):
        """Test that valid signature passes validation."""
        payload = b'{"action": "opened", "repository": {"full_name": "o/r"}}'
        secret = "test-secret"

        assert validate_github_signature(payload, _sign(payload, secret), secret) is True

    def test_invalid_signature(self):
        """Test that invalid signature fails validation."""
        payload = b'{"action": "opened"}'
        assert validate_github_signature(payload, "sha256=invalid_signature_here", "test-secret") is False

    def test_wrong_secret(self):
        """Test that wrong secret fails validation."""
        payload = b'{"action": "opened"}'
        signature = _sign(payload, "correct-secret")

        assert validate_github_signature(payload, signature, "wrong-secret") is False

    def test_missing_signature(self):
        """Test that missing signature fails validation."""
        payload = b'{"action": "opened"}'

        assert validate_github_signature(payload, "", "test-secret") is False
        assert validate_github_signature(payload, None, "test-secret") is False

    def test_missing_prefix(self):
        """A bare hex digest without "sha256=" is rejected."""
        payload = b'{"action": "opened"}'
        bare = compute_signature(payload, "test-secret")

        assert validate_github_signature(payload, bare, "test-secret") is False

    def test_sha1_header_rejected(self):
        """The legacy sha1= scheme is not accepted."""
        payload = b"{}"
        mac = hmac.new(b"test-secret", payload, hashlib.sha1).hexdigest()

        assert validate_github_signature(payload, f"sha1={mac}", "test-secret") is False

    def test_prefix_check_skips_digest(self, monkeypatch):
        """No digest is computed for a header with an unknown scheme."""
        calls = []
        monkeypatch.setattr(
            "workflow_plugin_github.utils.webhook.compute_signature",
            lambda *args: calls.append(args) or "",
        )

        assert validate_github_signature(b"{}", "md5=abc", "secret") is False
        assert calls == []

    def test_tampered_payload(self):
        """Test that tampered payload fails validation."""
        original = b'{"after": "abc"}'
        tampered = b'{"after": "abd"}'
        signature = _sign(original, "test-secret")

        assert validate_github_signature(tampered, signature, "test-secret") is False

    def test_uppercase_hex_rejected(self):
        """Digests are compared exactly; GitHub always sends lowercase hex."""
        payload = b"{}"
        signature = "sha256=" + compute_signature(payload, "k").upper()

        assert validate_github_signature(payload, signature, "k") is False

    def test_non_ascii_header_is_false(self):
        assert validate_github_signature(b"{}", "sha256=éé", "k") is False
