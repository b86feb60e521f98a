"""CLI entry point: depscan.

Examples:
    depscan                                   # DotnetTool packages using System.CommandLine
    depscan --prefix Spectre.Console          # a different library
    depscan --stop never --json               # exhaustive scan, JSON summary at the end
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import sys

import click

from depscan.core.config import ScanConfig, StopPolicy
from depscan.core.logging import setup_logging
from depscan.engines.package_scanner.coordinator import Coordinator
from depscan.engines.package_scanner.models import MatchReport, ScanSummary
from depscan.exceptions import DepScanError


def _build_config(**overrides: object) -> ScanConfig:
    """Environment-derived config with explicitly passed CLI options on top."""
    base = ScanConfig.from_env()
    changes = {k: v for k, v in overrides.items() if v is not None}
    return dataclasses.replace(base, **changes)


async def _run(config: ScanConfig) -> ScanSummary:
    prefix = config.target_prefix

    def echo_match(report: MatchReport) -> None:
        click.echo(f"{report.package_id} uses {prefix}")

    return await Coordinator(config, on_match=echo_match).run()


@click.command()
@click.option("--prefix", "target_prefix", default=None, help="Library name prefix to look for")
@click.option("--package-type", default=None, help="Registry package type filter (default: DotnetTool)")
@click.option("-w", "--workers", "pool_size", type=int, default=None, help="Concurrent scanners")
@click.option("--queue-capacity", type=int, default=None, help="Work queue capacity")
@click.option("--page-size", type=int, default=None, help="Search results per page")
@click.option(
    "--stop",
    "stop_policy",
    type=click.Choice([p.value for p in StopPolicy]),
    default=None,
    help="all: stop everything on first match; worker: stop only that worker; never: scan everything",
)
@click.option("--search-url", default=None, help="Search service URL (default: registry search)")
@click.option("--content-url", default=None, help="Package content base URL")
@click.option("--json", "as_json", is_flag=True, help="Print the aggregated summary as JSON")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
def main(
    target_prefix: str | None,
    package_type: str | None,
    pool_size: int | None,
    queue_capacity: int | None,
    page_size: int | None,
    stop_policy: str | None,
    search_url: str | None,
    content_url: str | None,
    as_json: bool,
    verbose: bool,
) -> None:
    """Find registry packages whose .deps.json manifests reference a library."""
    setup_logging("INFO" if verbose else None)

    try:
        config = _build_config(
            target_prefix=target_prefix,
            package_type=package_type,
            pool_size=pool_size,
            queue_capacity=queue_capacity,
            page_size=page_size,
            stop_policy=StopPolicy(stop_policy) if stop_policy else None,
            search_url=search_url,
            content_url=content_url,
        )
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)

    try:
        summary = asyncio.run(_run(config))
    except DepScanError as e:
        click.echo(f"Error: {type(e).__name__}: {e}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(summary.to_dict(), indent=2))
    click.echo("Done")
