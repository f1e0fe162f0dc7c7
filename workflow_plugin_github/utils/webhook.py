"""
Webhook signature utilities for GitHub webhook processing.

GitHub signs every delivery with an HMAC-SHA256 digest of the raw request
body, keyed by the webhook secret, and sends it in the X-Hub-Signature-256
header as "sha256=<hex_digest>".
"""

import hashlib
import hmac
from typing import Optional

SIGNATURE_HEADER = "X-Hub-Signature-256"
SIGNATURE_PREFIX = "sha256="


def compute_signature(payload_body: bytes, secret: str) -> str:
    """
    Return the hex-encoded HMAC-SHA256 digest of a payload.

    Args:
        payload_body: Raw webhook payload body as bytes
        secret: Webhook secret configured in GitHub

    Returns:
        Hex digest without the "sha256=" prefix
    """
    mac = hmac.new(
        secret.encode("utf-8"),
        msg=payload_body,
        digestmod=hashlib.sha256,
    )
    return mac.hexdigest()


def validate_github_signature(
    payload_body: bytes,
    signature_header: Optional[str],
    secret: str,
) -> bool:
    """
    Validate GitHub webhook signature using HMAC SHA-256.

    Args:
        payload_body: Raw webhook payload body as bytes
        signature_header: Value of X-Hub-Signature-256 header
        secret: Webhook secret configured in GitHub

    Returns:
        True if signature is valid, False otherwise

    Example:
        >>> body = b'{"ref": "refs/heads/main"}'
        >>> header = "sha256=" + compute_signature(body, "my-webhook-secret")
        >>> validate_github_signature(body, header, "my-webhook-secret")
        True
    """
    if not signature_header:
        return False

    # Unknown algorithms are rejected before any digest is computed
    if not signature_header.startswith(SIGNATURE_PREFIX):
        return False

    expected_signature = signature_header[len(SIGNATURE_PREFIX):]
    computed_signature = compute_signature(payload_body, secret)

    # Use timing-safe comparison to prevent timing attacks
    return hmac.compare_digest(
        computed_signature.encode("ascii"),
        expected_signature.encode("utf-8", errors="surrogateescape"),
    )
