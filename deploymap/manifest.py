"""
Deployment manifest serialization.

The manifest is a JSON document with one entry per resource under
``resources``, in declaration order. Parameter values that can only be known
at deployment time are written as ``{<resource>.outputs.<output>}`` style
placeholders.
"""
import json
import os
from typing import Any, Dict, Optional

from deploymap.evaluation import Mode, manifest_value
from deploymap.models.parameters import OutputReference
from deploymap.models.resource import BicepResource, ParameterResource
from deploymap.templates import resolve_template


class ManifestPublishingContext:
    def __init__(self, manifest_path: str, graph):
        self.manifest_path = os.path.abspath(manifest_path)
        self.graph = graph
        self.document: Dict[str, Any] = {"resources": {}}

    @property
    def manifest_directory(self) -> str:
        return os.path.dirname(self.manifest_path)

    def get_manifest_relative_path(self, path: str) -> str:
        rel = os.path.relpath(os.path.abspath(path), self.manifest_directory)
        return rel.replace(os.sep, "/")


def _write_bicep(resource: BicepResource, context: ManifestPublishingContext) -> Dict[str, Any]:
    fragment: Dict[str, Any] = {"type": resource.resource_type}

    # kept on disk: the manifest points at it
    with resolve_template(
        resource, context.manifest_directory, delete_temporary_file_on_close=False
    ) as template:
        path = template.path

    connection_string = resource.connection_string_expression
    if connection_string is not None:
        fragment["connectionString"] = connection_string

    fragment["path"] = context.get_manifest_relative_path(path)

    if resource.parameters:
        fragment["params"] = {
            key: manifest_value(value, context.graph)
            for key, value in resource.sorted_parameters()
        }
    return fragment


def _write_parameter(resource: ParameterResource) -> Dict[str, Any]:
    value_input: Dict[str, Any] = {"type": "string"}
    if resource.secret:
        value_input["secret"] = True
    return {
        "type": resource.resource_type,
        "value": f"{{{resource.name}.inputs.value}}",
        "inputs": {"value": value_input},
    }


def write_resource(resource, context: ManifestPublishingContext) -> Dict[str, Any]:
    """Serialize one resource and store it in the context's document."""
    if isinstance(resource, BicepResource):
        fragment = _write_bicep(resource, context)
    elif isinstance(resource, ParameterResource):
        fragment = _write_parameter(resource)
    else:
        raise TypeError(f"Cannot write {type(resource).__name__} to a manifest")

    # only complete fragments reach the document
    context.document["resources"][resource.name] = fragment
    return fragment


def build_manifest(graph, manifest_path: str) -> Dict[str, Any]:
    context = ManifestPublishingContext(manifest_path, graph)
    for resource in graph:
        resource.write_to_manifest(context)
    return context.document


def write_manifest(graph, manifest_path: str) -> Dict[str, Any]:
    """Build the manifest for ``graph`` and write it to ``manifest_path``."""
    directory = os.path.dirname(os.path.abspath(manifest_path))
    os.makedirs(directory, exist_ok=True)
    document = build_manifest(graph, manifest_path)
    with open(manifest_path, "w", encoding="utf-8", newline="\n") as fh:
        fh.write(json.dumps(document, indent=2))
        fh.write("\n")
    return document


def publish_environment(reference: OutputReference, mode: Mode, graph) -> Optional[str]:
    """Value an environment variable bound to an output receives in ``mode``."""
    if mode == Mode.PUBLISH:
        return reference.value_expression
    return reference.resolve(graph)
