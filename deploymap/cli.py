"""
deploymap CLI entry point.
"""
import json
import sys
from typing import Dict, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from deploymap import __version__
from deploymap.checksum import checksum
from deploymap.checksum import checksums as checksums_for
from deploymap.errors import ConfigurationError, DeploymapError
from deploymap.graph import ResourceGraph
from deploymap.loader import load_file, load_outputs
from deploymap.manifest import write_manifest
from deploymap.models.resource import BicepResource
from deploymap.reporters import json_reporter, markdown

_BANNER = r"""
     _            _
  __| | ___ _ __ | | ___  _   _ _ __ ___   __ _ _ __
 / _` |/ _ \ '_ \| |/ _ \| | | | '_ ` _ \ / _` | '_ \
| (_| |  __/ |_) | | (_) | |_| | | | | | | (_| | |_) |
 \__,_|\___| .__/|_|\___/ \__, |_| |_| |_|\__,_| .__/
           |_|            |___/                |_|
"""


def _print_banner(no_color: bool = False) -> None:
    c = Console(stderr=True, no_color=no_color)
    c.print(f"[bold blue]{_BANNER}[/bold blue]")
    c.print(f"  [dim]v{__version__}[/dim]\n")


def _load(app_file: str, outputs_file: Optional[str], stderr: Console) -> ResourceGraph:
    try:
        graph = load_file(app_file)
        if outputs_file:
            load_outputs(outputs_file, graph)
    except DeploymapError as exc:
        stderr.print(f"[red]Definition error:[/red] {exc}")
        sys.exit(2)
    return graph


def _print_manifest_table(document: dict, no_color: bool) -> None:
    tbl = Table(title="Manifest", show_header=True, header_style="bold")
    tbl.add_column("Resource", width=24)
    tbl.add_column("Type", width=16)
    tbl.add_column("Path")
    tbl.add_column("Params", justify="right")
    for name, fragment in document["resources"].items():
        tbl.add_row(
            name,
            fragment["type"],
            fragment.get("path", ""),
            str(len(fragment.get("params", {}))),
        )
    Console(stderr=True, no_color=no_color).print(tbl)


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.version_option(__version__)
@click.pass_context
def cli(ctx):
    """deploymap: compile resource graphs into deployment manifests."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit()


@cli.command()
@click.argument("app_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False),
    default="manifest.json",
    show_default=True,
    help="Manifest file to write. Template paths are relative to its directory.",
)
@click.option(
    "--summary",
    is_flag=True,
    default=False,
    help="Print a terminal summary table of the written manifest.",
)
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable rich terminal color output.",
)
def publish(app_file: str, output: str, summary: bool, no_color: bool) -> None:
    """
    Write the deployment manifest for APP_FILE.
    """
    _print_banner(no_color)
    stderr = Console(stderr=True, no_color=no_color)

    graph = _load(app_file, None, stderr)
    stderr.print(f"Loaded [bold]{len(graph)}[/bold] resources.")

    with stderr.status("[bold]Writing manifest…"):
        try:
            document = write_manifest(graph, output)
        except DeploymapError as exc:
            stderr.print(f"[red]Publish error:[/red] {exc}")
            sys.exit(2)

    if summary:
        _print_manifest_table(document, no_color)

    stderr.print(f"Manifest written to [bold]{output}[/bold]")
    sys.exit(0)


@cli.command(name="checksum")
@click.argument("app_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("resources", nargs=-1)
@click.option(
    "--outputs",
    "outputs_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Run outputs file (JSON or YAML) with 'outputs' / 'secretOutputs' sections.",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON to stdout.")
@click.option("--no-color", is_flag=True, default=False, help="Disable rich terminal color output.")
def checksum_cmd(
    app_file: str,
    resources: Tuple[str, ...],
    outputs_file: Optional[str],
    as_json: bool,
    no_color: bool,
) -> None:
    """
    Compute change-detection checksums.

    RESOURCES restricts the output to the named resources (default: all).
    """
    stderr = Console(stderr=True, no_color=no_color)
    graph = _load(app_file, outputs_file, stderr)

    names = list(resources) or [r.name for r in graph.bicep_resources()]
    result: Dict[str, str] = {}
    try:
        for name in names:
            resource = graph.get(name)
            if not isinstance(resource, BicepResource):
                raise ConfigurationError(f"'{name}' is not a Bicep resource")
            result[name] = checksum(resource, graph)
    except DeploymapError as exc:
        stderr.print(f"[red]Checksum error:[/red] {exc}")
        sys.exit(2)

    if as_json:
        click.echo(json.dumps(result, indent=2))
    else:
        tbl = Table(title="Checksums", show_header=True, header_style="bold")
        tbl.add_column("Resource")
        tbl.add_column("Checksum", style="cyan")
        for name, value in result.items():
            tbl.add_row(name, value)
        Console(no_color=no_color).print(tbl)
    sys.exit(0)


@cli.command()
@click.argument("app_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format", "output_format",
    type=click.Choice(["markdown", "json"], case_sensitive=False),
    default="markdown",
    show_default=True,
    help="Report format.",
)
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write report to this file (default: stdout).",
)
@click.option(
    "--outputs",
    "outputs_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Run outputs file used when computing checksums.",
)
def inspect(app_file: str, output_format: str, output: Optional[str], outputs_file: Optional[str]) -> None:
    """
    Describe the resources, parameters and checksums of APP_FILE.
    """
    stderr = Console(stderr=True)
    graph = _load(app_file, outputs_file, stderr)

    try:
        checksums = checksums_for(graph, missing_ok=True)
        if output_format.lower() == "json":
            content = json_reporter.build_report(graph, checksums, app_file)
        else:
            content = markdown.build_report(graph, checksums, app_file)
    except DeploymapError as exc:
        stderr.print(f"[red]Inspect error:[/red] {exc}")
        sys.exit(2)

    if output:
        with open(output, "w", encoding="utf-8", newline="\n") as fh:
            fh.write(content)
        stderr.print(f"Report written to [bold]{output}[/bold]")
    else:
        click.echo(content)
    sys.exit(0)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
