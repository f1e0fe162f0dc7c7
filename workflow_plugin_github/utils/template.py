"""
Placeholder resolution for step configuration values.

Step options such as ``sha`` may reference data produced earlier in the
pipeline instead of holding a literal value:

    {{.field}}                  looked up in the trigger data
    {{.steps.<step>.<field>}}   looked up in the named step's outputs
    {{.current.<field>}}        looked up in the current pipeline context

Placeholders are resolved left to right. Resolution stops at the first
placeholder that cannot be resolved, which is left in the output verbatim
so a misconfigured pipeline shows the raw reference rather than an empty
value.
"""

from typing import Any, Mapping, Optional

_OPEN = "{{"
_CLOSE = "}}"


def resolve_field(
    value: str,
    trigger_data: Optional[Mapping[str, Any]] = None,
    step_outputs: Optional[Mapping[str, Mapping[str, Any]]] = None,
    current: Optional[Mapping[str, Any]] = None,
) -> str:
    """
    Replace ``{{...}}`` references in ``value`` with pipeline data.

    Args:
        value: Raw configuration value, possibly containing placeholders
        trigger_data: Data the pipeline was triggered with
        step_outputs: Outputs of previously executed steps, keyed by step name
        current: Current pipeline context

    Returns:
        The value with every resolvable placeholder substituted
    """
    if _OPEN not in value:
        return value

    parts: list[str] = []
    position = 0
    while True:
        start = value.find(_OPEN, position)
        if start < 0:
            break
        end = value.find(_CLOSE, start + len(_OPEN))
        if end < 0:
            break

        reference = value[start + len(_OPEN):end].strip()
        found, resolved = lookup_ref(reference, trigger_data, step_outputs, current)
        if not found:
            break

        parts.append(value[position:start])
        parts.append(_render(resolved))
        position = end + len(_CLOSE)

    parts.append(value[position:])
    return "".join(parts)


def lookup_ref(
    reference: str,
    trigger_data: Optional[Mapping[str, Any]],
    step_outputs: Optional[Mapping[str, Mapping[str, Any]]],
    current: Optional[Mapping[str, Any]],
) -> tuple[bool, Any]:
    """
    Resolve a single reference (the text between the braces).

    Returns:
        ``(True, value)`` when the reference resolves, ``(False, None)`` otherwise
    """
    reference = reference.removeprefix(".")
    namespace, _, remainder = reference.partition(".")

    if namespace == "steps":
        step_name, _, field = remainder.partition(".")
        if not step_name or not field or not step_outputs:
            return False, None
        outputs = step_outputs.get(step_name)
        if outputs is None or field not in outputs:
            return False, None
        return True, outputs[field]

    if namespace == "current":
        if not remainder or not current or remainder not in current:
            return False, None
        return True, current[remainder]

    if not trigger_data or reference not in trigger_data:
        return False, None
    return True, trigger_data[reference]


def _render(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
