"""Import a collection export file into Weaviate.

The file is validated against the export schema before anything is sent.
Writes need the admin key.

Usage:
    python -m scripts.import_data exports/Note.json
    python -m scripts.import_data exports/Note.json --collection NoteCopy --recreate
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.console import Console

from src.rbac_verification.client import WeaviateClient, WeaviateError
from src.rbac_verification.config import ConfigError, VerifierConfig
from src.rbac_verification.transfer import (
    DEFAULT_BATCH_SIZE,
    TransferError,
    import_collection,
)

console = Console()

MAX_ERRORS_SHOWN = 10


@click.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--collection",
    type=str,
    default=None,
    help="Target collection (default: the one recorded in the file)",
)
@click.option("--batch-size", type=int, default=DEFAULT_BATCH_SIZE, help="Objects per batch")
@click.option(
    "--recreate",
    is_flag=True,
    default=False,
    help="Delete and recreate the target collection first",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging")
def main(
    file_path: Path,
    collection: str | None,
    batch_size: int,
    recreate: bool,
    verbose: bool,
) -> None:
    """Import objects from an export file."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)
    console.print(f"\n[bold blue]Importing {file_path}...[/bold blue]\n")

    try:
        config = VerifierConfig.from_env()
        admin = config.admin

        with WeaviateClient(config.base_url, admin.token, config.timeout) as client:
            stats = import_collection(
                client,
                file_path,
                collection=collection,
                batch_size=batch_size,
                recreate=recreate,
            )

    except (ConfigError, TransferError, WeaviateError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1) from e

    if stats.collection_recreated:
        console.print(f"  ✓ Recreated collection: {stats.collection}")
    console.print(
        f"  ✓ Imported {stats.objects_imported} objects into {stats.collection} "
        f"in {stats.batches_sent} batch(es)"
    )

    if stats.objects_failed:
        console.print(f"[bold yellow]⚠ {stats.objects_failed} object(s) failed:[/bold yellow]")
        for error in stats.errors[:MAX_ERRORS_SHOWN]:
            console.print(f"  - {error}")
        raise SystemExit(1)

    console.print("\n[bold green]Import complete![/bold green]")


if __name__ == "__main__":
    main()
