"""
tfdrift CLI entry point.
"""
import logging
import sys
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from tfdrift import __version__
from tfdrift.config import Config, load_config
from tfdrift.engine import TerraformParser
from tfdrift.errors import TfDriftError
from tfdrift.hierarchy import load_hierarchy
from tfdrift.models.iam import AssetIAM, ResourceType
from tfdrift.reporters import json_reporter
from tfdrift.storage import GCSStorage, LocalStorage, Storage

console = Console(stderr=True)

_TYPE_COLORS = {
    ResourceType.ORGANIZATION.value: "bold magenta",
    ResourceType.FOLDER.value: "cyan",
    ResourceType.PROJECT.value: "green",
    ResourceType.UNKNOWN.value: "yellow",
}


def _setup_logging(verbose: bool, no_color: bool) -> None:
    handler = RichHandler(
        console=Console(stderr=True, no_color=no_color),
        show_path=False,
        markup=False,
    )
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )


def _make_storage(local_root: Optional[str]) -> Storage:
    if local_root:
        return LocalStorage(local_root)
    return GCSStorage()


def _load_config(config_path: Optional[str], **overrides) -> Config:
    try:
        return load_config(config_path).merge(**overrides)
    except TfDriftError as exc:
        console.print(f"[red]Config error:[/red] {exc}")
        sys.exit(2)


def _print_table(iams: List[AssetIAM], no_color: bool, file=None) -> None:
    tbl = Table(title="IAM grants from Terraform state", show_header=True, header_style="bold")
    tbl.add_column("Member")
    tbl.add_column("Role")
    tbl.add_column("Resource ID")
    tbl.add_column("Resource Type", width=20)

    for i in iams:
        color = _TYPE_COLORS.get(i.resource_type.value, "") if not no_color else ""
        rtype = i.resource_type.value
        tbl.add_row(
            i.member,
            i.role,
            i.resource_id,
            f"[{color}]{rtype}[/{color}]" if color else rtype,
        )

    Console(file=file, no_color=no_color or file is not None).print(tbl)


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.version_option(__version__)
@click.pass_context
def cli(ctx):
    """tfdrift — extract IAM grants from Terraform state for drift detection."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit()


_config_option = click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML config file (default: ./tfdrift.yaml if present).",
)
_bucket_option = click.option(
    "--bucket", "buckets",
    multiple=True,
    help="Bucket to search for state files. Repeatable.",
)
_local_root_option = click.option(
    "--local-root",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    help="Serve buckets from sub-directories of this path instead of GCS.",
)
_verbose_option = click.option("--verbose", "-v", is_flag=True, default=False, help="Debug logging.")
_no_color_option = click.option(
    "--no-color", is_flag=True, default=False, help="Disable rich terminal color output."
)


@cli.command()
@click.argument("uris", nargs=-1)
@_config_option
@click.option("--org-id", default=None, help="Organization ID for organization-level grants.")
@click.option(
    "--hierarchy",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML/JSON snapshot of folders and projects.",
)
@_bucket_option
@_local_root_option
@click.option("--max-bytes", type=int, default=None, help="Per-file read limit in bytes.")
@click.option(
    "--format", "output_format",
    type=click.Choice(["json", "table"], case_sensitive=False),
    default="json",
    show_default=True,
    help="Output format.",
)
@click.option(
    "--output", "-o",
    type=click.Path(),
    default=None,
    help="Write report to this file (default: stdout).",
)
@_verbose_option
@_no_color_option
def scan(
    uris: Tuple[str, ...],
    config_path: Optional[str],
    org_id: Optional[str],
    hierarchy: Optional[str],
    buckets: Tuple[str, ...],
    local_root: Optional[str],
    max_bytes: Optional[int],
    output_format: str,
    output: Optional[str],
    verbose: bool,
    no_color: bool,
) -> None:
    """
    Extract IAM grants from Terraform state files.

    URIS are gs://bucket/path state file URIs. Without URIS, every state file
    in the configured buckets is scanned.
    """
    _setup_logging(verbose, no_color)
    stderr = Console(stderr=True, no_color=no_color)
    cfg = _load_config(
        config_path,
        organization_id=org_id,
        hierarchy_file=hierarchy,
        buckets=list(buckets) or None,
        max_state_bytes=max_bytes,
    )

    if not cfg.organization_id:
        stderr.print("[red]No organization ID:[/red] pass --org-id or set TFDRIFT_ORGANIZATION_ID.")
        sys.exit(2)

    try:
        parser = TerraformParser(_make_storage(local_root), cfg.organization_id, cfg.max_state_bytes)
        if cfg.hierarchy_file:
            folders, projects = load_hierarchy(cfg.hierarchy_file)
            parser.set_assets(folders, projects)
        else:
            stderr.print("[yellow]Warning:[/yellow] no hierarchy snapshot; folder and project parents resolve as unknown.")

        targets = list(uris)
        if not targets:
            with stderr.status("[bold]Listing state files…"):
                targets = parser.state_file_uris(cfg.buckets, cfg.state_file_name)

        if not targets:
            stderr.print("[red]No state files found.[/red]")
            sys.exit(2)

        with stderr.status(f"[bold]Processing {len(targets)} state file(s)…"):
            iams = parser.process_states(targets)
    except TfDriftError as exc:
        stderr.print(f"[red]Error:[/red] {exc}")
        sys.exit(2)

    stderr.print(f"Extracted [bold]{len(iams)}[/bold] IAM grant(s) from {len(targets)} state file(s).")

    fmt = output_format.lower()
    if output:
        with open(output, "w", encoding="utf-8", newline="\n") as fh:
            if fmt == "table":
                _print_table(iams, no_color, file=fh)
            else:
                fh.write(json_reporter.build_report(iams, targets, cfg.organization_id))
        stderr.print(f"Report written to [bold]{output}[/bold]")
    elif fmt == "table":
        _print_table(iams, no_color)
    else:
        click.echo(json_reporter.build_report(iams, targets, cfg.organization_id))

    sys.exit(0)


@cli.command("list-states")
@_config_option
@_bucket_option
@_local_root_option
@click.option("--state-file-name", default=None, help="Object base name to look for.")
@_verbose_option
@_no_color_option
def list_states(
    config_path: Optional[str],
    buckets: Tuple[str, ...],
    local_root: Optional[str],
    state_file_name: Optional[str],
    verbose: bool,
    no_color: bool,
) -> None:
    """List Terraform state file URIs found in the configured buckets."""
    _setup_logging(verbose, no_color)
    stderr = Console(stderr=True, no_color=no_color)
    cfg = _load_config(config_path, buckets=list(buckets) or None, state_file_name=state_file_name)

    if not cfg.buckets:
        stderr.print("[red]No buckets:[/red] pass --bucket or set TFDRIFT_BUCKETS.")
        sys.exit(2)

    parser = TerraformParser(_make_storage(local_root), cfg.organization_id or "")
    try:
        found = parser.state_file_uris(cfg.buckets, cfg.state_file_name)
    except TfDriftError as exc:
        stderr.print(f"[red]Error:[/red] {exc}")
        sys.exit(2)

    for uri in found:
        click.echo(uri)
    sys.exit(0)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
