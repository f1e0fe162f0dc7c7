"""
Input validation and configuration coercion utilities.

The workflow engine hands modules and steps their configuration as loosely
typed mappings (decoded YAML). The helpers here turn those mappings into
typed values with the same lenient rules everywhere:

  - a value of the wrong type is treated as absent
  - absent optional values fall back to their defaults
  - absent required values raise ValidationError at construction time

They also cover the request-side limits applied to webhook deliveries.

Usage:
    from workflow_plugin_github.utils.validation import (
        get_str,
        require_str,
        parse_duration,
        ValidationError,
    )

    owner = require_str(raw, "owner")
    timeout = parse_duration(get_str(raw, "timeout") or "30m", "timeout")
"""

import math
import os
import re
from datetime import timedelta
from typing import Any, AsyncIterable, Collection, Mapping, Optional


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MAX_WEBHOOK_PAYLOAD_BYTES = 25 * 1024 * 1024  # 25 MiB

_ENV_VAR_RE = re.compile(r"\$\{([^}]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)")

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")

# Go-style duration strings: "300ms", "1.5s", "1h30m"
_DURATION_RE = re.compile(r"([0-9]*(?:\.[0-9]*)?)(ns|us|µs|μs|ms|s|m|h)")

# Unit sizes in seconds
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ValidationError(ValueError):
    """Base class for configuration and input validation errors."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class InputTooLongError(ValidationError):
    """Raised when input exceeds maximum allowed length."""

    def __init__(self, field: str, length: int, max_length: int):
        self.length = length
        self.max_length = max_length
        super().__init__(
            f"Input for '{field}' is too long ({length} bytes, max {max_length})",
            field=field,
        )


# ---------------------------------------------------------------------------
# Config mapping accessors
# ---------------------------------------------------------------------------


def get_str(raw: Mapping[str, Any], key: str) -> str:
    """Return ``raw[key]`` if it is a string, otherwise an empty string."""
    value = raw.get(key)
    return value if isinstance(value, str) else ""


def require_str(raw: Mapping[str, Any], key: str) -> str:
    """
    Return a required, non-empty string option.

    Raises:
        ValidationError: If the option is absent, empty or not a string.
    """
    value = get_str(raw, key)
    if not value:
        raise ValidationError(f"config.{key} is required", field=key)
    return value


def get_bool(raw: Mapping[str, Any], key: str, default: bool = False) -> bool:
    value = raw.get(key)
    return value if isinstance(value, bool) else default


def get_str_list(raw: Mapping[str, Any], key: str) -> list[str]:
    """Return the string entries of a list option; other entries are dropped."""
    value = raw.get(key)
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, str)]


def get_str_map(raw: Mapping[str, Any], key: str) -> dict[str, str]:
    """Return the string-valued entries of a mapping option."""
    value = raw.get(key)
    if not isinstance(value, Mapping):
        return {}
    return {
        str(k): v for k, v in value.items() if isinstance(v, str)
    }


def choice(value: str, allowed: Collection[str], field: str) -> str:
    """
    Ensure a string option is one of a fixed set of values.

    Raises:
        ValidationError: If the value is not allowed.
    """
    if value not in allowed:
        raise ValidationError(
            f"config.{field} {value!r} is invalid; must be one of: "
            f"{', '.join(_ordered(allowed))}",
            field=field,
        )
    return value


def _ordered(values: Collection[str]) -> list[str]:
    if isinstance(values, (set, frozenset)):
        return sorted(values)
    return list(values)


# ---------------------------------------------------------------------------
# Typed parsers
# ---------------------------------------------------------------------------


def expand_env(value: str) -> str:
    """
    Replace ``$VAR`` and ``${VAR}`` references with environment values.

    Unset variables expand to an empty string, so a token configured as
    ``${GITHUB_TOKEN}`` becomes empty when the variable is missing.
    """
    if "$" not in value:
        return value

    def _lookup(match: re.Match) -> str:
        name = match.group(1) if match.group(1) is not None else match.group(2)
        return os.environ.get(name, "")

    return _ENV_VAR_RE.sub(_lookup, value)


def parse_run_id(value: Any) -> int:
    """
    Coerce a workflow run id given as int, float or numeric string.

    Returns 0 when the value is absent or of an unsupported type; callers
    treat 0 as "not configured".

    Raises:
        ValidationError: If a string value is not a base-10 integer.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValidationError(
                f"config.run_id is not a valid integer: {value!r}",
                field="run_id",
            )
        return int(value)
    if isinstance(value, str) and value:
        if not _INTEGER_RE.fullmatch(value):
            raise ValidationError(
                f"config.run_id is not a valid integer: {value!r}",
                field="run_id",
            )
        return int(value)
    return 0


def parse_duration(value: str, field: str) -> timedelta:
    """
    Parse a Go-style duration string such as ``"10s"``, ``"1m30s"`` or ``"250ms"``.

    Raises:
        ValidationError: If the string is not a valid duration.
    """
    text = value.strip()
    sign = 1
    if text[:1] in ("+", "-"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    if text == "0":
        return timedelta(0)

    total = 0.0
    position = 0
    for match in _DURATION_RE.finditer(text):
        number = match.group(1)
        if match.start() != position or number in ("", "."):
            break
        total += _DURATION_UNITS[match.group(2)] * float(number)
        position = match.end()
    else:
        if position == len(text) and position > 0:
            try:
                return timedelta(seconds=total * sign)
            except (OverflowError, ValueError):
                pass

    raise ValidationError(
        f"config.{field} is invalid: time: invalid duration {value!r}",
        field=field,
    )


def format_duration(duration: timedelta) -> str:
    """Render a duration the way it is written in configuration (``30m0s``, ``50ms``)."""
    micros = round(duration / timedelta(microseconds=1))
    sign = "-" if micros < 0 else ""
    micros = abs(micros)
    if micros == 0:
        return "0s"
    if micros < 1_000:
        return f"{sign}{micros}µs"
    if micros < 1_000_000:
        return f"{sign}{_trim(micros / 1_000)}ms"

    hours, rest = divmod(micros, 3_600_000_000)
    minutes, rest = divmod(rest, 60_000_000)
    seconds = _trim(rest / 1_000_000)
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{sign}{minutes}m{seconds}s"
    return f"{sign}{seconds}s"


def _trim(number: float) -> str:
    return f"{number:.6f}".rstrip("0").rstrip(".")


# ---------------------------------------------------------------------------
# Request limits
# ---------------------------------------------------------------------------


def validate_webhook_payload_size(
    body: bytes,
    max_bytes: int = MAX_WEBHOOK_PAYLOAD_BYTES,
) -> bytes:
    """
    Validate that a webhook payload is not oversized.

    Raises:
        InputTooLongError: If the payload exceeds ``max_bytes``.
    """
    if len(body) > max_bytes:
        raise InputTooLongError("webhook_payload", len(body), max_bytes)
    return body


async def read_limited_body(
    chunks: AsyncIterable[bytes],
    max_bytes: int = MAX_WEBHOOK_PAYLOAD_BYTES,
) -> bytes:
    """
    Read a streamed request body, stopping once it exceeds ``max_bytes``.

    At most ``max_bytes + 1`` bytes are buffered, enough to tell an exact-size
    body from an oversized one.

    Raises:
        InputTooLongError: If the body is larger than ``max_bytes``.
    """
    buffer = bytearray()
    async for chunk in chunks:
        remaining = max_bytes + 1 - len(buffer)
        buffer.extend(chunk[:remaining])
        if len(buffer) > max_bytes:
            break
    return validate_webhook_payload_size(bytes(buffer), max_bytes)
