from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from deploymap.models.parameters import OutputReference, ParameterValue, to_parameter_value

BICEP_RESOURCE_TYPE = "azure.bicep.v0"
PARAMETER_RESOURCE_TYPE = "parameter.v0"
DEFAULT_ASSET_PACKAGE = "deploymap.assets"


class KnownParameters:
    """Parameter names with a conventional meaning for deployment tooling."""

    PRINCIPAL_ID = "principalId"
    PRINCIPAL_NAME = "principalName"
    PRINCIPAL_TYPE = "principalType"
    KEY_VAULT_NAME = "keyVaultName"


@dataclass
class BicepResource:
    name: str                                   # deployment name
    template_file: Optional[str] = None         # path on disk
    template_string: Optional[str] = None       # inline bicep snippet
    template_asset: Optional[str] = None        # bundled asset id
    connection_string_output: Optional[str] = None
    asset_package: str = DEFAULT_ASSET_PACKAGE
    parameters: Dict[str, ParameterValue] = field(default_factory=dict)
    outputs: Dict[str, Optional[str]] = field(default_factory=dict)
    secret_outputs: Dict[str, Optional[str]] = field(default_factory=dict)

    resource_type = BICEP_RESOURCE_TYPE

    def add_parameter(self, name: str, value: Any = None) -> "BicepResource":
        self.parameters[name] = to_parameter_value(value)
        return self

    def get_output(self, name: str) -> OutputReference:
        return OutputReference(self.name, name)

    def sorted_parameters(self) -> List[Tuple[str, ParameterValue]]:
        # ordinal key order, shared by the checksum and the manifest
        return sorted(self.parameters.items(), key=lambda kv: kv[0])

    def bicep_resource_name(self) -> str:
        return self.name.lower()

    @property
    def template_sources(self) -> Dict[str, Optional[str]]:
        return {
            "file": self.template_file,
            "inline": self.template_string,
            "asset": self.template_asset,
        }

    @property
    def connection_string_expression(self) -> Optional[str]:
        if self.connection_string_output is None:
            return None
        return f"{{{self.name}.outputs.{self.connection_string_output}}}"

    def get_connection_string(self) -> Optional[str]:
        """Concrete connection string produced by a run, or None."""
        key = self.connection_string_output
        if key is None:
            return None
        if self.outputs.get(key) is not None:
            return self.outputs[key]
        return self.secret_outputs.get(key)

    def write_to_manifest(self, context) -> Dict[str, Any]:
        from deploymap.manifest import write_resource
        return write_resource(self, context)


@dataclass
class ParameterResource:
    """A value supplied by the user when the application runs or deploys."""

    name: str
    value: Optional[str] = None
    secret: bool = False

    resource_type = PARAMETER_RESOURCE_TYPE

    def write_to_manifest(self, context) -> Dict[str, Any]:
        from deploymap.manifest import write_resource
        return write_resource(self, context)
