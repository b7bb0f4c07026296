"""
Error taxonomy raised by the resource graph, evaluation and manifest code.
"""


class DeploymapError(Exception):
    """Base class for every error raised by deploymap."""


class ConfigurationError(DeploymapError):
    """The application definition is invalid (e.g. ambiguous template source)."""


class AssetNotFoundError(DeploymapError):
    def __init__(self, asset_id: str, package: str):
        super().__init__(f"Could not find asset '{asset_id}' in package '{package}'")
        self.asset_id = asset_id
        self.package = package


class MissingValueError(DeploymapError):
    """A Run-mode reference points at a value that has not been produced yet."""


class CyclicReferenceError(DeploymapError):
    def __init__(self, chain):
        self.chain = list(chain)
        super().__init__("Cyclic reference: " + " -> ".join(self.chain))
