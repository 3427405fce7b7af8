"""Verify Weaviate RBAC enforcement for the admin and viewer keys.

This script checks, in order:
1. An unauthenticated GET /v1/meta is rejected
2. The admin key can create the collection (twice), write and read
3. The viewer key can read but cannot write or create collections

Exit code is 0 only when every observed outcome matches the policy.

Usage:
    python -m scripts.verify_rbac
    python -m scripts.verify_rbac --collection Note --verbose
    python -m scripts.verify_rbac --json > report.json
"""

from __future__ import annotations

import json
import logging

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from src.rbac_verification.config import ConfigError, VerifierConfig
from src.rbac_verification.models import Observation, VerificationReport
from src.rbac_verification.runner import PermissionVerificationRunner

console = Console()

_OBSERVATION_COLORS = {
    Observation.ALLOWED: "green",
    Observation.DENIED: "yellow",
    Observation.AMBIGUOUS: "magenta",
}


def build_config(
    host: str | None,
    port: int | None,
    collection: str | None,
    read_limit: int | None,
    skip_idempotence: bool,
) -> VerifierConfig:
    """Environment configuration with command line overrides applied."""
    config = VerifierConfig.from_env()
    if host:
        config.host = host
    if port:
        config.port = port
    if collection:
        config.collection = collection
    if read_limit:
        config.read_limit = read_limit
    config.verify_idempotence = not skip_idempotence
    return config


def display_report(report: VerificationReport) -> None:
    """Print the outcome table and summary."""
    table = Table(title=f"RBAC checks against {report.base_url}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Identity", style="cyan")
    table.add_column("Operation")
    table.add_column("Expected", justify="center")
    table.add_column("Observed", justify="center")
    table.add_column("Status", justify="center")
    table.add_column("Detail", overflow="fold")

    for index, outcome in enumerate(report.outcomes, start=1):
        color = _OBSERVATION_COLORS[outcome.observed]
        status = "[green]✓[/green]" if outcome.passed else "[red]✗[/red]"
        table.add_row(
            str(index),
            f"{outcome.identity} ({outcome.role.value})",
            outcome.operation.value,
            outcome.expected.value,
            f"[{color}]{outcome.observed.value}[/{color}]",
            status,
            Text(outcome.detail),
        )

    console.print(table)
    console.print()

    if report.aborted:
        console.print(f"[bold red]✗ Run aborted: {escape(report.aborted_reason or '')}[/bold red]\n")
    elif report.all_passed:
        console.print("[bold green]✓ All RBAC checks passed![/bold green]\n")
    else:
        console.print("[bold yellow]⚠ Some RBAC checks failed:[/bold yellow]")
        for failure in report.failures:
            console.print(
                f"  - {failure.identity} {failure.operation.value}: expected "
                f"{failure.expected.value}, observed {failure.observed.value}"
            )
        console.print()


@click.command()
@click.option("--host", type=str, default=None, help="Weaviate host (overrides WEAVIATE_HOST)")
@click.option("--port", type=int, default=None, help="Weaviate HTTP port (overrides WEAVIATE_PORT)")
@click.option(
    "--collection",
    type=str,
    default=None,
    help="Collection used for the checks (overrides RBAC_COLLECTION)",
)
@click.option("--read-limit", type=int, default=None, help="Records fetched per read check")
@click.option(
    "--skip-idempotence",
    is_flag=True,
    default=False,
    help="Create the collection only once as admin",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the report as JSON")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging")
def main(
    host: str | None,
    port: int | None,
    collection: str | None,
    read_limit: int | None,
    skip_idempotence: bool,
    as_json: bool,
    verbose: bool,
) -> None:
    """Verify that Weaviate enforces the admin/viewer policy."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.INFO)

    try:
        config = build_config(host, port, collection, read_limit, skip_idempotence)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1) from e

    if not as_json:
        console.print(f"\n[bold blue]Verifying RBAC on {config.base_url}...[/bold blue]\n")

    report = PermissionVerificationRunner(config).run()

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        display_report(report)

    if not report.all_passed:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
