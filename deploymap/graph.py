"""
The resource graph: the single owner of every resource in an application.

Resources refer to each other by name; lookups go through the graph.
"""
from typing import Dict, Iterator, List, Union

from deploymap.errors import ConfigurationError, MissingValueError
from deploymap.models.resource import BicepResource, ParameterResource

GraphResource = Union[BicepResource, ParameterResource]


class ResourceGraph:
    def __init__(self) -> None:
        self._resources: Dict[str, GraphResource] = {}

    def add(self, resource: GraphResource) -> GraphResource:
        if resource.name in self._resources:
            raise ConfigurationError(f"Duplicate resource name '{resource.name}'")
        self._resources[resource.name] = resource
        return resource

    def add_bicep_template(self, name: str, template_file: str, **kwargs) -> BicepResource:
        return self.add(BicepResource(name, template_file=template_file, **kwargs))

    def add_bicep_template_string(self, name: str, content: str, **kwargs) -> BicepResource:
        return self.add(BicepResource(name, template_string=content, **kwargs))

    def add_parameter(self, name: str, value=None, secret: bool = False) -> ParameterResource:
        return self.add(ParameterResource(name, value=value, secret=secret))

    def get(self, name: str) -> GraphResource:
        try:
            return self._resources[name]
        except KeyError:
            raise MissingValueError(f"Unknown resource '{name}'") from None

    def __contains__(self, name: str) -> bool:
        return name in self._resources

    def __iter__(self) -> Iterator[GraphResource]:
        return iter(self._resources.values())

    def __len__(self) -> int:
        return len(self._resources)

    def bicep_resources(self) -> List[BicepResource]:
        return [r for r in self if isinstance(r, BicepResource)]

    def parameters(self) -> List[ParameterResource]:
        return [r for r in self if isinstance(r, ParameterResource)]
