"""
Application definition loader.

Builds a ResourceGraph from a YAML file such as:

    parameters:
      adminPassword: {value: s3cret, secret: true}
    resources:
      db:
        template: db.bicep
        connectionStringOutput: connectionString
        params:
          password: {parameter: adminPassword}
          tags: [a, b]
    outputs:
      db: {connectionString: "Server=..."}
"""
import json
import os
from typing import Any, Dict

import yaml
from rich.console import Console

from deploymap.errors import ConfigurationError
from deploymap.graph import ResourceGraph
from deploymap.models.parameters import (
    ConnectionReference,
    JsonValue,
    OutputReference,
    ParameterReference,
    ParameterValue,
    to_parameter_value,
)
from deploymap.models.resource import DEFAULT_ASSET_PACKAGE, BicepResource

console = Console(stderr=True)

_TOP_LEVEL_KEYS = {"parameters", "resources", "outputs", "secretOutputs"}
_RESOURCE_KEYS = {
    "template", "inline", "asset", "assetPackage", "connectionStringOutput", "params",
}
_REFERENCE_TAGS = {"output", "connection", "parameter", "json"}


def _warn_unknown(where: str, keys, known) -> None:
    for k in sorted(set(keys) - known):
        console.print(f"[yellow]Warning:[/yellow] unknown key '{k}' in {where}, ignoring.")


def _parse_param(resource_name: str, key: str, raw: Any) -> ParameterValue:
    if isinstance(raw, dict) and len(raw) == 1 and next(iter(raw)) in _REFERENCE_TAGS:
        tag, target = next(iter(raw.items()))
        if tag == "json":
            return JsonValue(target)
        if not isinstance(target, str) or not target:
            raise ConfigurationError(
                f"Parameter '{key}' of '{resource_name}': '{tag}' expects a name"
            )
        if tag == "output":
            name, sep, output = target.partition(".")
            if not sep or not output:
                raise ConfigurationError(
                    f"Parameter '{key}' of '{resource_name}': output reference "
                    f"must look like '<resource>.<output>', got '{target}'"
                )
            return OutputReference(name, output)
        if tag == "connection":
            return ConnectionReference(target)
        return ParameterReference(target)
    try:
        return to_parameter_value(raw)
    except TypeError as exc:
        raise ConfigurationError(f"Parameter '{key}' of '{resource_name}': {exc}") from exc


def _parse_resource(name: str, definition: Dict[str, Any], base_dir: str) -> BicepResource:
    if not isinstance(definition, dict):
        raise ConfigurationError(f"Resource '{name}' must be a mapping")
    _warn_unknown(f"resource '{name}'", definition.keys(), _RESOURCE_KEYS)

    template_file = definition.get("template")
    if template_file is not None:
        template_file = os.path.normpath(os.path.join(base_dir, str(template_file)))

    resource = BicepResource(
        name=name,
        template_file=template_file,
        template_string=definition.get("inline"),
        template_asset=definition.get("asset"),
        connection_string_output=definition.get("connectionStringOutput"),
        asset_package=definition.get("assetPackage", DEFAULT_ASSET_PACKAGE),
    )
    params = definition.get("params") or {}
    if not isinstance(params, dict):
        raise ConfigurationError(f"'params' of resource '{name}' must be a mapping")
    for key, raw in params.items():
        resource.parameters[str(key)] = _parse_param(name, str(key), raw)
    return resource


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    section = data.get(key)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"'{key}' must be a mapping")
    return section


def _apply_outputs(graph: ResourceGraph, data: Dict[str, Any], secret: bool) -> None:
    for name, values in _section(data, "secretOutputs" if secret else "outputs").items():
        if not isinstance(values, dict):
            raise ConfigurationError(f"Outputs of '{name}' must be a mapping")
        resource = graph.get(name)
        if not isinstance(resource, BicepResource):
            raise ConfigurationError(f"'{name}' is not a Bicep resource and has no outputs")
        target = resource.secret_outputs if secret else resource.outputs
        for k, v in values.items():
            target[str(k)] = None if v is None else str(v)


def build_graph(data: Dict[str, Any], base_dir: str = ".") -> ResourceGraph:
    """Build a graph from an already-parsed definition document."""
    if not isinstance(data, dict):
        raise ConfigurationError("Application definition must be a mapping")
    _warn_unknown("application definition", data.keys(), _TOP_LEVEL_KEYS)

    graph = ResourceGraph()
    for name, definition in _section(data, "parameters").items():
        if isinstance(definition, dict):
            value = definition.get("value")
            graph.add_parameter(
                str(name),
                value=None if value is None else str(value),
                secret=bool(definition.get("secret", False)),
            )
        else:
            graph.add_parameter(str(name), value=None if definition is None else str(definition))

    for name, definition in _section(data, "resources").items():
        graph.add(_parse_resource(str(name), definition, base_dir))

    _apply_outputs(graph, data, secret=False)
    _apply_outputs(graph, data, secret=True)
    return graph


def _read_document(path: str) -> Any:
    _, ext = os.path.splitext(path.lower())
    try:
        with open(path, encoding="utf-8") as fh:
            if ext == ".json":
                return json.load(fh)
            return yaml.safe_load(fh)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Failed to parse {path}: {exc}") from exc


def load_file(path: str) -> ResourceGraph:
    data = _read_document(path)
    return build_graph(data or {}, base_dir=os.path.dirname(os.path.abspath(path)))


def load_outputs(path: str, graph: ResourceGraph) -> None:
    """Merge a run-outputs file ({outputs: ..., secretOutputs: ...}) into ``graph``."""
    data = _read_document(path) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Outputs file {path} must be a mapping")
    _apply_outputs(graph, data, secret=False)
    _apply_outputs(graph, data, secret=True)
