"""
Parameter values accepted by a Bicep resource.

Every value stored in ``BicepResource.parameters`` is exactly one of the
variants below. Cross-resource variants hold the target's *name* only and are
resolved against a ResourceGraph when evaluated.
"""
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from deploymap.errors import MissingValueError


@dataclass(frozen=True)
class Literal:
    value: Any = None      # str, int, float, bool or None


@dataclass(frozen=True)
class StringList:
    items: Tuple[str, ...] = ()


@dataclass(frozen=True)
class JsonValue:
    value: Any = None


@dataclass(frozen=True)
class OutputReference:
    resource_name: str
    name: str

    @property
    def value_expression(self) -> str:
        return f"{{{self.resource_name}.outputs.{self.name}}}"

    def resolve(self, graph) -> Optional[str]:
        """Return the output value produced by a previous run of the target."""
        target = graph.get(self.resource_name)
        outputs = getattr(target, "outputs", {})
        if self.name not in outputs:
            raise MissingValueError(
                f"No output '{self.name}' for resource '{self.resource_name}'"
            )
        return outputs[self.name]


@dataclass(frozen=True)
class ConnectionReference:
    resource_name: str

    @property
    def value_expression(self) -> str:
        return f"{{{self.resource_name}.connectionString}}"


@dataclass(frozen=True)
class ParameterReference:
    parameter_name: str

    @property
    def value_expression(self) -> str:
        return f"{{{self.parameter_name}.value}}"


ParameterValue = Union[
    Literal, StringList, JsonValue, OutputReference, ConnectionReference, ParameterReference
]

PARAMETER_VALUE_TYPES = (
    Literal, StringList, JsonValue, OutputReference, ConnectionReference, ParameterReference
)


def to_parameter_value(raw: Any) -> ParameterValue:
    """Coerce a plain Python value into its ParameterValue variant."""
    if isinstance(raw, PARAMETER_VALUE_TYPES):
        return raw
    if raw is None or isinstance(raw, (str, int, float, bool)):
        return Literal(raw)
    if isinstance(raw, (list, tuple)) and all(isinstance(i, str) for i in raw):
        return StringList(tuple(raw))
    if isinstance(raw, (dict, list, tuple)):
        return JsonValue(raw)
    raise TypeError(f"Unsupported parameter value type: {type(raw).__name__}")
