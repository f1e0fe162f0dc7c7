"""
Partial document model over decoded webhook payloads.

GitHub payloads are large, loosely specified and change shape between event
types. Rather than validating them against a schema, the normalizer reads
them through PayloadDocument, whose accessors never raise: a missing key or
a value of the wrong type simply reads as "absent" (an empty string or an
empty document).
"""

import json
from typing import Any, Callable, Mapping, Optional


class MalformedPayloadError(ValueError):
    """Raised when a webhook body is not a JSON object."""


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


class PayloadDocument:
    """Read-only view over a JSON object with typed, non-failing accessors."""

    __slots__ = ("_data",)

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        self._data: Mapping[str, Any] = data if data is not None else {}

    @classmethod
    def parse(cls, body: bytes) -> "PayloadDocument":
        """
        Decode a raw body into a document.

        A JSON ``null`` body decodes to an empty document.

        Raises:
            MalformedPayloadError: If the body is not UTF-8 encoded JSON or
                its top level value is not an object.
        """
        try:
            data = json.loads(body.decode("utf-8"), parse_constant=_reject_constant)
        except (ValueError, RecursionError) as e:
            raise MalformedPayloadError(f"unmarshal payload: {e}") from e

        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise MalformedPayloadError(
                f"unmarshal payload: expected a JSON object, got {type(data).__name__}"
            )
        return cls(data)

    def get_str(self, key: str) -> str:
        """Return the string at ``key``, or ``""`` if absent or not a string."""
        value = self._data.get(key)
        if not isinstance(value, str):
            return ""
        # Lone surrogates become "?" so the value always encodes as UTF-8
        return value.encode("utf-8", "replace").decode("utf-8")

    def has_object(self, key: str) -> bool:
        """Whether ``key`` holds a nested JSON object."""
        return isinstance(self._data.get(key), Mapping)

    def get_object(self, key: str) -> "PayloadDocument":
        """Return the nested object at ``key``, or an empty document."""
        value = self._data.get(key)
        if isinstance(value, Mapping):
            return PayloadDocument(value)
        return _EMPTY

    def get_path(self, *keys: str) -> str:
        """
        Follow nested objects and return the string at the end of the path.

        ``doc.get_path("pull_request", "head", "sha")`` reads
        ``payload["pull_request"]["head"]["sha"]``.
        """
        *parents, leaf = keys
        document = self
        for key in parents:
            document = document.get_object(key)
        return document.get_str(leaf)

    def __bool__(self) -> bool:
        return bool(self._data)

    def __repr__(self) -> str:
        return f"PayloadDocument(keys={sorted(self._data)!r})"


_EMPTY = PayloadDocument()


Lookup = Callable[[], str]


def first_non_empty(*lookups: Lookup) -> str:
    """
    Evaluate lookups in order and return the first non-empty result.

    Lookups are evaluated lazily, so later fallbacks are only read when
    every earlier one came back empty.
    """
    for lookup in lookups:
        value = lookup()
        if value:
            return value
    return ""
