"""
GitHub webhook endpoint.

Hands every request on the webhook path to the git.webhook module, whatever
its method, so non-POST requests get the module's 405 response rather than
a routing error.
"""

from typing import Optional

from fastapi import APIRouter, Request, Response
from starlette.requests import ClientDisconnect

from workflow_plugin_github.utils.logging import get_logger
from workflow_plugin_github.utils.validation import (
    MAX_WEBHOOK_PAYLOAD_BYTES,
    InputTooLongError,
    read_limited_body,
)
from workflow_plugin_github.webhook.module import WebhookModule

logger = get_logger(__name__)

WEBHOOK_PATH = "/webhooks/github"

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

# Router for webhook endpoints
router = APIRouter(tags=["Webhooks"])


def get_webhook_module(request: Request) -> WebhookModule:
    """Get the webhook module attached to the application."""
    module = getattr(request.app.state, "webhook_module", None)
    if module is None:
        raise RuntimeError("Webhook module not initialized")
    return module


async def _read_body(request: Request) -> Optional[bytes]:
    """Read the body within the size limit; None if it is too large or cut off."""
    try:
        return await read_limited_body(request.stream(), MAX_WEBHOOK_PAYLOAD_BYTES)
    except InputTooLongError as e:
        logger.warning("webhook_body_too_large", error=str(e))
    except ClientDisconnect:
        logger.warning("webhook_client_disconnected")
    return None


@router.api_route(WEBHOOK_PATH, methods=ALL_METHODS, include_in_schema=False)
async def github_webhook(request: Request) -> Response:
    """
    Receive a GitHub webhook delivery.

    Returns:
        200 with ``{"status": "accepted"}`` or ``{"status": "ignored"}``;
        a plain-text 400, 401, 405 or 500 otherwise
    """
    module = get_webhook_module(request)

    body: Optional[bytes] = b""
    if request.method == "POST":
        body = await _read_body(request)

    result = await module.handle_delivery(request.method, request.headers, body)
    return Response(
        content=result.body,
        status_code=result.status_code,
        media_type=result.media_type,
    )
