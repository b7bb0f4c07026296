"""
Markdown overview report of an application graph.
"""
import json
from datetime import datetime, timezone
from typing import Dict, List, Optional

from jinja2 import Environment

from deploymap import __version__
from deploymap.evaluation import manifest_value
from deploymap.graph import ResourceGraph
from deploymap.models.resource import BicepResource

_SOURCE_LABELS = {"file": "file", "inline": "inline", "asset": "bundled asset"}


def _source_label(r: BicepResource) -> str:
    for kind, value in r.template_sources.items():
        if value is not None:
            if kind == "inline":
                return "inline"
            return f"{_SOURCE_LABELS[kind]} `{value}`"
    return "none"


def _param_rows(r: BicepResource, graph: ResourceGraph) -> List[Dict[str, str]]:
    rows = []
    for key, value in r.sorted_parameters():
        v = manifest_value(value, graph)
        rows.append({"key": key, "value": v if isinstance(v, str) else json.dumps(v)})
    return rows


_TEMPLATE = """\
# Deployment Overview

**Generated:** {{ generated }}
**Source:** {{ source }}
**Tool:** deploymap v{{ version }}

---

## Resources

| # | Resource | Type | Template | Checksum |
|---|----------|------|----------|----------|
{% for r in resources %}| {{ loop.index }} | `{{ r.name }}` | `{{ r.resource_type }}` | {{ source_label(r) }} | {{ checksums.get(r.name) or "n/a" }} |
{% endfor %}
{% if parameters %}
## Parameters

| Name | Secret | Value set |
|------|--------|-----------|
{% for p in parameters %}| `{{ p.name }}` | {{ "yes" if p.secret else "no" }} | {{ "yes" if p.value is not none else "no" }} |
{% endfor %}
{% endif %}
---
{% for r in resources %}
### {{ r.name }}
{% if r.connection_string_expression %}
**Connection string:** `{{ r.connection_string_expression }}`
{% endif %}{% set rows = param_rows(r) %}{% if rows %}
| Parameter | Publish value |
|-----------|---------------|
{% for row in rows %}| `{{ row.key }}` | `{{ row.value }}` |
{% endfor %}{% else %}
_No parameters._
{% endif %}{% endfor %}
"""


def build_report(graph: ResourceGraph, checksums: Dict[str, Optional[str]], source_path: str) -> str:
    env = Environment(autoescape=False)
    template = env.from_string(_TEMPLATE)

    return template.render(
        generated=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC"),
        source=source_path,
        version=__version__,
        resources=graph.bicep_resources(),
        parameters=graph.parameters(),
        checksums=checksums,
        source_label=_source_label,
        param_rows=lambda r: _param_rows(r, graph),
    )
