"""
JSON overview report of an application graph.
"""
import json
from datetime import datetime, timezone
from typing import Dict, Optional

from deploymap import __version__
from deploymap.evaluation import manifest_value
from deploymap.graph import ResourceGraph
from deploymap.models.resource import BicepResource


def _source(r: BicepResource) -> Dict[str, Optional[str]]:
    for kind, value in r.template_sources.items():
        if value is not None:
            return {"kind": kind, "value": value if kind != "inline" else None}
    return {"kind": None, "value": None}


def build_report(graph: ResourceGraph, checksums: Dict[str, Optional[str]], source_path: str) -> str:
    report = {
        "meta": {
            "generated": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "source": source_path,
            "tool": "deploymap",
            "version": __version__,
        },
        "parameters": [
            {"name": p.name, "secret": p.secret, "has_value": p.value is not None}
            for p in graph.parameters()
        ],
        "resources": [
            {
                "name": r.name,
                "type": r.resource_type,
                "template": _source(r),
                "connection_string": r.connection_string_expression,
                "params": {k: manifest_value(v, graph) for k, v in r.sorted_parameters()},
                "outputs": sorted(r.outputs),
                "checksum": checksums.get(r.name),
            }
            for r in graph.bicep_resources()
        ],
    }
    return json.dumps(report, indent=2)
