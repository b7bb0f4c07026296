"""
Change-detection checksum for Bicep resources.

CRC-32 over ``key=<run value>;...`` (parameters sorted by key) followed by the
raw template content. Not a security primitive: it only tells incremental
deployment logic whether a resource's effective definition changed.
"""
import zlib
from typing import Dict, Optional, Tuple

from deploymap.errors import MissingValueError
from deploymap.evaluation import Mode, evaluate
from deploymap.models.resource import BicepResource
from deploymap.templates import read_template_text


def checksum_input(resource: BicepResource, graph, _chain: Tuple[str, ...] = ()) -> str:
    chain = _chain + (resource.name,)
    combined = ";".join(
        f"{key}={evaluate(value, Mode.RUN, graph, _chain=chain)}"
        for key, value in resource.sorted_parameters()
    )
    return combined + read_template_text(resource)


def checksum(resource: BicepResource, graph, _chain: Tuple[str, ...] = ()) -> str:
    """Lowercase hex CRC-32 of the resource's parameters and template."""
    crc = zlib.crc32(checksum_input(resource, graph, _chain).encode("utf-8"))
    # hash bytes are emitted little-endian
    return crc.to_bytes(4, "little").hex()


def checksums(graph, missing_ok: bool = False) -> Dict[str, Optional[str]]:
    """
    Checksum every Bicep resource in declaration order.

    With ``missing_ok`` a resource whose upstream has not run yet maps to None
    instead of raising MissingValueError.
    """
    result: Dict[str, Optional[str]] = {}
    for r in graph.bicep_resources():
        try:
            result[r.name] = checksum(r, graph)
        except MissingValueError:
            if not missing_ok:
                raise
            result[r.name] = None
    return result
