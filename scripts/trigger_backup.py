"""Trigger a Weaviate backup and optionally wait for it to finish.

The backup itself is done by the server's backup module; this only calls
the API and reports the status.

Usage:
    python -m scripts.trigger_backup --id course-backup-1 --wait
"""

from __future__ import annotations

import logging

import click
from rich.console import Console

from src.rbac_verification.client import WeaviateClient, WeaviateError
from src.rbac_verification.config import ConfigError, VerifierConfig
from src.rbac_verification.transfer import (
    DEFAULT_BACKUP_BACKEND,
    DEFAULT_BACKUP_TIMEOUT,
    TransferError,
    trigger_backup,
    wait_for_backup,
)

console = Console()


@click.command()
@click.option("--id", "backup_id", type=str, required=True, help="Backup identifier")
@click.option("--backend", type=str, default=DEFAULT_BACKUP_BACKEND, help="Backup backend module")
@click.option(
    "--include",
    type=str,
    multiple=True,
    help="Collection to include (repeatable; default: all)",
)
@click.option("--wait", is_flag=True, default=False, help="Poll until the backup finishes")
@click.option(
    "--timeout",
    type=float,
    default=DEFAULT_BACKUP_TIMEOUT,
    help="Seconds to wait with --wait",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging")
def main(
    backup_id: str,
    backend: str,
    include: tuple[str, ...],
    wait: bool,
    timeout: float,
    verbose: bool,
) -> None:
    """Start a backup through the Weaviate API."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)

    try:
        config = VerifierConfig.from_env()

        with WeaviateClient(config.base_url, config.admin.token, config.timeout) as client:
            started = trigger_backup(client, backup_id, backend, list(include) or None)
            console.print(f"  ✓ Backup {backup_id}: {started.get('status', 'unknown')}")

            if not wait:
                return

            final = wait_for_backup(client, backup_id, backend, timeout=timeout)

    except (ConfigError, TransferError, WeaviateError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1) from e

    if final.get("status") != "SUCCESS":
        console.print(f"[bold red]✗ Backup {backup_id} failed: {final.get('error', '')}[/bold red]")
        raise SystemExit(1)

    console.print(f"[bold green]✓ Backup {backup_id} complete ({final.get('path', '')})[/bold green]")


if __name__ == "__main__":
    main()
