"""
Template source resolution.

A Bicep resource declares exactly one template source: a file on disk, an
inline snippet, or an asset bundled in a Python package. Downstream tooling
needs a real path, so inline and bundled templates are materialized to disk.
"""
import os
import tempfile
from importlib import resources
from typing import Optional

from rich.console import Console

from deploymap.errors import AssetNotFoundError, ConfigurationError
from deploymap.models.resource import BicepResource

console = Console(stderr=True)

TEMPLATE_EXTENSION = ".bicep"


class TemplateFile:
    """A materialized template path; deletes the file on close when asked to."""

    def __init__(self, path: str, delete_on_close: bool = False):
        self.path = path
        self.delete_on_close = delete_on_close

    def close(self) -> None:
        if self.delete_on_close and os.path.exists(self.path):
            os.remove(self.path)

    def __enter__(self) -> "TemplateFile":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"TemplateFile({self.path!r}, delete_on_close={self.delete_on_close})"


def _check_single_source(resource: BicepResource) -> str:
    given = [kind for kind, v in resource.template_sources.items() if v is not None]
    if len(given) != 1:
        raise ConfigurationError(
            f"Resource '{resource.name}' has multiple or zero template sources"
            + (f" ({', '.join(given)})" if given else "")
        )
    return given[0]


def _check_template_file(resource: BicepResource) -> None:
    if not os.path.isfile(resource.template_file):
        raise ConfigurationError(
            f"Template file for '{resource.name}' not found: {resource.template_file}"
        )


def _asset_ref(resource: BicepResource):
    try:
        ref = resources.files(resource.asset_package).joinpath(resource.template_asset)
    except ModuleNotFoundError:
        raise AssetNotFoundError(resource.template_asset, resource.asset_package) from None
    if not ref.is_file():
        raise AssetNotFoundError(resource.template_asset, resource.asset_package)
    return ref


def _new_temp_path(resource: BicepResource) -> str:
    # mkstemp gives a process-unique name, safe for concurrent publishes
    fd, path = tempfile.mkstemp(
        prefix=f"{resource.bicep_resource_name()}-",
        suffix=TEMPLATE_EXTENSION,
    )
    os.close(fd)
    return path


def resolve_template(
    resource: BicepResource,
    directory: Optional[str] = None,
    delete_temporary_file_on_close: bool = True,
) -> TemplateFile:
    """
    Return a TemplateFile pointing at the resource's template on disk.

    When ``directory`` is given the materialized file belongs to the caller
    and is never flagged temporary.
    """
    kind = _check_single_source(resource)

    if kind == "file":
        _check_template_file(resource)
        return TemplateFile(resource.template_file, delete_on_close=False)

    if directory is not None:
        os.makedirs(directory, exist_ok=True)
    is_temp = directory is None

    if kind == "inline":
        if directory is None:
            path = _new_temp_path(resource)
        else:
            # stable name so repeated publishes produce the same manifest
            path = os.path.join(directory, resource.bicep_resource_name() + TEMPLATE_EXTENSION)
        with open(path, "w", encoding="utf-8", newline="") as fh:
            fh.write(resource.template_string)
    else:
        ref = _asset_ref(resource)
        if directory is None:
            path = _new_temp_path(resource)
        else:
            path = os.path.join(directory, resource.template_asset.lower())
        with open(path, "wb") as fh:
            fh.write(ref.read_bytes())

    if is_temp:
        console.print(f"[dim]Materialized template for {resource.name}:[/dim] {path}")
    return TemplateFile(path, delete_on_close=is_temp and delete_temporary_file_on_close)


def read_template_text(resource: BicepResource) -> str:
    """Read the raw template content, fresh from its source on every call."""
    kind = _check_single_source(resource)
    if kind == "file":
        _check_template_file(resource)
        with open(resource.template_file, encoding="utf-8-sig", newline="") as fh:
            return fh.read()
    if kind == "inline":
        return resource.template_string
    return _asset_ref(resource).read_bytes().decode("utf-8-sig")
