"""Export a Weaviate collection to a JSON file.

Reads are allowed for both keys, so the export can run as the viewer.

Usage:
    python -m scripts.export_data --collection Note --output exports/Note.json
    python -m scripts.export_data --as viewer
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.console import Console

from src.rbac_verification.client import WeaviateClient, WeaviateError
from src.rbac_verification.config import DEFAULT_COLLECTION, ConfigError, VerifierConfig
from src.rbac_verification.models import Role
from src.rbac_verification.transfer import DEFAULT_PAGE_SIZE, export_collection

console = Console()

DEFAULT_EXPORT_DIR = Path("exports")


@click.command()
@click.option("--collection", type=str, default=DEFAULT_COLLECTION, help="Collection to export")
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output file (default: exports/<collection>.json)",
)
@click.option("--page-size", type=int, default=DEFAULT_PAGE_SIZE, help="Objects per request")
@click.option(
    "--as",
    "role",
    type=click.Choice([Role.ADMIN.value, Role.VIEWER.value]),
    default=Role.ADMIN.value,
    help="Which key to authenticate with",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging")
def main(
    collection: str,
    output: Path | None,
    page_size: int,
    role: str,
    verbose: bool,
) -> None:
    """Export every object of a collection to JSON."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)
    path = output or DEFAULT_EXPORT_DIR / f"{collection}.json"

    try:
        config = VerifierConfig.from_env()
        identity = config.identity_for(Role(role))
        console.print(f"\n[bold blue]Exporting {collection} as {identity.name}...[/bold blue]\n")

        with WeaviateClient(config.base_url, identity.token, config.timeout) as client:
            stats = export_collection(client, collection, path, page_size=page_size)

    except (ConfigError, WeaviateError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1) from e

    console.print(
        f"  ✓ Exported {stats.objects_exported} objects "
        f"in {stats.pages_fetched} page(s) to {stats.path}"
    )
    console.print("\n[bold green]Export complete![/bold green]")


if __name__ == "__main__":
    main()
