"""
FastAPI application hosting the GitHub webhook receiver.

The workflow engine normally mounts the git.webhook module on its own HTTP
server. This application serves the same module standalone, which is how
the plugin is run in development and in single-purpose deployments.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional
import time

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from workflow_plugin_github import __version__
from workflow_plugin_github.api.middleware import RequestLoggingMiddleware
from workflow_plugin_github.api.webhooks import router as webhooks_router
from workflow_plugin_github.config.settings import get_settings
from workflow_plugin_github.integrations.github_client import close_github_client
from workflow_plugin_github.plugin import GitHubPlugin, PluginManifest
from workflow_plugin_github.queue.base import MessagePublisher
from workflow_plugin_github.queue.factory import create_publisher
from workflow_plugin_github.utils.logging import setup_logging, get_logger
from workflow_plugin_github.webhook.module import MODULE_TYPE, WebhookModule

logger = get_logger(__name__)

SERVICE_NAME = "workflow-plugin-github"


# Response models
class PublisherStatus(BaseModel):
    """Status of the broker publisher."""

    status: str  # "healthy", "unhealthy"
    backend: Optional[str] = None
    response_time_ms: Optional[float] = None


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    timestamp: str
    service: str
    module: str
    publisher: PublisherStatus


async def _check_publisher(publisher: Optional[MessagePublisher]) -> PublisherStatus:
    """Check broker connectivity."""
    if publisher is None:
        return PublisherStatus(status="unhealthy", backend=None)

    start = time.perf_counter()
    healthy = await publisher.health_check()
    elapsed = (time.perf_counter() - start) * 1000
    return PublisherStatus(
        status="healthy" if healthy else "unhealthy",
        backend=type(publisher).__name__,
        response_time_ms=round(elapsed, 1),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application startup and shutdown.

    On startup:
    - Configures structured logging
    - Validates and logs configuration
    - Creates the broker publisher (Redis or memory fallback) unless the
      webhook module already has one
    - Starts the webhook module

    On shutdown the module is stopped and the publisher and GitHub client
    connections are closed.
    """
    app_settings = get_settings()
    setup_logging(
        log_level=app_settings.log_level,
        environment=app_settings.environment,
    )

    logger.info("app_starting", version=__version__)

    warnings = app_settings.validate_for_startup()
    for warning in warnings:
        logger.warning("config_warning", message=warning)
    app_settings.log_configuration_summary()

    module: WebhookModule = app.state.webhook_module
    owned_publisher: Optional[MessagePublisher] = None
    if module.publisher is None:
        owned_publisher = await create_publisher(
            redis_url=app_settings.redis_url,
            fallback_to_memory=app_settings.publisher_fallback_to_memory,
        )
        module.set_message_publisher(owned_publisher)

    module.init()
    await module.start()
    logger.info("app_started", module=module.name, topic=module.config.topic)

    try:
        yield
    finally:
        logger.info("app_shutting_down")
        await module.stop()
        if owned_publisher is not None:
            await owned_publisher.close()
            module.set_message_publisher(None)
            logger.info("publisher_closed")
        close_github_client()
        logger.info("app_shutdown_complete")


def create_app(module: Optional[WebhookModule] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        module: Webhook module to serve; built from settings when omitted

    Returns:
        The configured application
    """
    plugin = GitHubPlugin()
    if module is None:
        module = plugin.create_module(
            MODULE_TYPE, "github-webhook", get_settings().webhook_module_config()
        )

    app = FastAPI(
        title="workflow-plugin-github",
        description=plugin.manifest().description,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.webhook_module = module
    app.state.plugin = plugin

    app.add_middleware(RequestLoggingMiddleware)
    app.include_router(webhooks_router)

    @app.get("/", response_model=PluginManifest, tags=["Info"])
    async def root() -> PluginManifest:
        """Get the plugin manifest."""
        return plugin.manifest()

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["Health"],
        responses={
            200: {"description": "Service is healthy"},
            503: {"description": "Publisher is unavailable"},
        },
    )
    async def health_check(response: Response) -> HealthResponse:
        """
        Liveness health check endpoint.

        Returns 200 when the broker publisher is reachable, 503 otherwise.
        """
        publisher_status = await _check_publisher(module.publisher)
        if publisher_status.status != "healthy":
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

        return HealthResponse(
            status=publisher_status.status,
            version=__version__,
            timestamp=datetime.now(timezone.utc).isoformat(),
            service=SERVICE_NAME,
            module=module.name,
            publisher=publisher_status,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Log uncaught exceptions and return a JSON 500."""
        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=str(request.url.path),
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error",
                "type": type(exc).__name__,
            },
        )

    return app
