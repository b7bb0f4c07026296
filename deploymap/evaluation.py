"""
Reference resolution.

``evaluate`` turns a parameter value into text for one of two modes:

  RUN      concrete values from an already running application; used by the
           checksum, so the result is quoted and references must be resolvable.
  PUBLISH  symbolic expressions that the deployment engine resolves later;
           never needs the referenced resource to have produced anything.
"""
import json
from enum import Enum
from typing import Any, Tuple

from deploymap.errors import CyclicReferenceError, MissingValueError
from deploymap.models.parameters import (
    ConnectionReference,
    JsonValue,
    Literal,
    OutputReference,
    ParameterReference,
    StringList,
)


class Mode(str, Enum):
    RUN = "run"
    PUBLISH = "publish"


def _quote(s: str) -> str:
    return f'"{s}"'


def _single_quote(s: str) -> str:
    return f"'{s}'"


def _render_string_list(items) -> str:
    # inner items single-quoted, whole list double-quoted
    return _quote("[" + ", ".join(_single_quote(i) for i in items) + "]")


def _connection_string(ref: ConnectionReference, graph) -> str:
    target = graph.get(ref.resource_name)
    getter = getattr(target, "get_connection_string", None)
    value = getter() if getter is not None else None
    if value is None:
        raise MissingValueError(f"Missing connection string for '{ref.resource_name}'")
    return value


def _parameter_value(ref: ParameterReference, graph) -> str:
    param = graph.get(ref.parameter_name)
    value = getattr(param, "value", None)
    if value is None:
        raise MissingValueError(f"Parameter '{ref.parameter_name}' has no value")
    return value


def evaluate(value: Any, mode: Mode, graph, _chain: Tuple[str, ...] = ()) -> str:
    """Evaluate a parameter value against ``graph`` in the given mode."""
    if value is None:
        return ""

    if isinstance(value, Literal):
        if value.value is None:
            return ""
        text = str(value.value)
        return _quote(text) if mode == Mode.RUN else text

    if isinstance(value, StringList):
        return _render_string_list(value.items)

    if isinstance(value, JsonValue):
        return _quote(json.dumps(value.value, separators=(",", ":"), sort_keys=True))

    if isinstance(value, ConnectionReference):
        if mode == Mode.PUBLISH:
            return value.value_expression
        return _quote(_connection_string(value, graph))

    if isinstance(value, OutputReference):
        if mode == Mode.PUBLISH:
            return value.value_expression
        if value.resource_name in _chain:
            raise CyclicReferenceError(_chain + (value.resource_name,))
        value.resolve(graph)
        from deploymap.checksum import checksum
        target = graph.get(value.resource_name)
        return _quote(f"{value.resource_name}={checksum(target, graph, _chain=_chain)}")

    if isinstance(value, ParameterReference):
        if mode == Mode.PUBLISH:
            return value.value_expression
        return _quote(_parameter_value(value, graph))

    return _quote(str(value))


def manifest_value(value: Any, graph) -> Any:
    """JSON-ready manifest value: native structure for JSON and lists, else text."""
    if isinstance(value, JsonValue):
        return value.value
    if isinstance(value, StringList):
        return list(value.items)
    return evaluate(value, Mode.PUBLISH, graph)
