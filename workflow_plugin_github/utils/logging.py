"""
Structured logging for the GitHub workflow plugin.

Structlog renders every record, including records emitted through the
standard library by uvicorn and PyGithub. Production and staging get one
JSON object per line; development gets a colored console layout.

Tokens, webhook secrets and delivery signatures pass through this process
constantly, so every event is scrubbed before rendering: values that look
like a credential and keys that name one are replaced with a marker.

Usage:
    from workflow_plugin_github.utils.logging import setup_logging, get_logger

    setup_logging(log_level="INFO", environment="production")

    logger = get_logger(__name__, step="wait-for-ci")
    logger.info("workflow_run_polled", run_id=42, status="in_progress")
"""

import logging
import re
import sys
import uuid
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger


SERVICE_NAME = "workflow-plugin-github"

REDACTED = "***REDACTED***"

_SENSITIVE_PATTERNS = [
    re.compile(r"(ghp_[a-zA-Z0-9]{36,})"),           # classic PAT
    re.compile(r"(ghs_[a-zA-Z0-9]{36,})"),           # installation token
    re.compile(r"(gho_[a-zA-Z0-9]{36,})"),           # OAuth token
    re.compile(r"(github_pat_[a-zA-Z0-9_]{22,})"),   # fine-grained PAT
    re.compile(r"(sha256=[a-f0-9]{64})"),            # X-Hub-Signature-256
    re.compile(r"(Bearer\s+[a-zA-Z0-9\-_.]+)"),
]

# Matched as substrings of the lowercased key
_SENSITIVE_KEYS = frozenset({
    "token", "secret", "password", "api_key", "apikey",
    "authorization", "auth", "credentials", "private_key",
    "signature",
})

_LIBRARY_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _sanitize_value(value: Any) -> Any:
    if isinstance(value, str) and any(p.search(value) for p in _SENSITIVE_PATTERNS):
        return REDACTED
    return value


def _sanitize_event_dict(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Structlog processor replacing credentials by key name or by value shape."""
    return {
        key: REDACTED
        if any(sensitive in key.lower() for sensitive in _SENSITIVE_KEYS)
        else _sanitize_value(value)
        for key, value in event_dict.items()
    }


def _add_app_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _drop_color_message_key(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Uvicorn duplicates its message under ``color_message``; drop it."""
    event_dict.pop("color_message", None)
    return event_dict


def _shared_processors() -> list[Processor]:
    """Processors applied to structlog and standard library records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        _add_app_context,
        _drop_color_message_key,
        _sanitize_event_dict,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _build_handler(json_output: bool, level: int) -> logging.Handler:
    if json_output:
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True, pad_event_to=40)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
            foreign_pre_chain=_shared_processors(),
        )
    )
    return handler


def setup_logging(
    log_level: str = "INFO",
    environment: str = "development",
    json_output: Optional[bool] = None,
) -> None:
    """
    Configure structlog and route standard library logging through it.

    Safe to call more than once; the root handler is replaced each time.

    Args:
        log_level: Logging level name; unknown names fall back to INFO
        environment: Deployment environment; production and staging log JSON
        json_output: Force JSON (True) or console (False) output
    """
    if json_output is None:
        json_output = environment in ("production", "staging")
    level = getattr(logging, log_level.upper(), logging.INFO)

    handler = _build_handler(json_output, level)
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    for name in _LIBRARY_LOGGERS:
        library_logger = logging.getLogger(name)
        library_logger.handlers = [handler]
        library_logger.propagate = False

    # PyGithub logs every request at DEBUG
    logging.getLogger("github").setLevel(max(level, logging.INFO))

    logging.captureWarnings(True)


def get_logger(name: Optional[str] = None, **initial_context: Any) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, optionally with context bound to every event."""
    log = structlog.get_logger(name)
    if initial_context:
        log = log.bind(**initial_context)
    return log


def bind_contextvars(**kwargs: Any) -> None:
    """Bind values to every log event emitted in the current async context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_contextvars(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_contextvars() -> None:
    structlog.contextvars.clear_contextvars()


def generate_request_id() -> str:
    """Short unique id of the form ``req-<12 hex chars>``."""
    return f"req-{uuid.uuid4().hex[:12]}"
