"""JSON schema validation for collection export files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click
from jsonschema import Draft7Validator, SchemaError
from rich.console import Console

console = Console()

EXPORT_SCHEMA_PATH = Path(__file__).parent / "schemas" / "collection_export.schema.json"


def load_schema(schema_path: Path = EXPORT_SCHEMA_PATH) -> dict[str, Any]:
    """Load a JSON schema from file."""
    with open(schema_path, encoding="utf-8") as f:
        return json.load(f)


def validate_data(data: Any, schema: dict[str, Any]) -> list[str]:
    """Validate already-parsed data against a schema.

    Returns:
        List of validation errors (empty if valid), one per violation
    """
    try:
        Draft7Validator.check_schema(schema)
    except SchemaError as e:
        return [f"Invalid schema: {e.message}"]

    validator = Draft7Validator(schema)
    errors = sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path))
    return [
        f"Schema validation error at /{'/'.join(str(p) for p in e.absolute_path)}: {e.message}"
        for e in errors
    ]


def validate_file(file_path: Path, schema: dict[str, Any]) -> list[str]:
    """Validate a JSON file against a schema.

    Returns:
        List of validation errors (empty if valid)
    """
    try:
        with open(file_path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        return [f"Invalid JSON: {e}"]

    return validate_data(data, schema)


def validate_directory(
    directory: Path,
    schema: dict[str, Any],
    pattern: str = "*.json",
) -> dict[str, list[str]]:
    """Validate all JSON files in a directory.

    Returns:
        Dict mapping file paths to their validation errors
    """
    results: dict[str, list[str]] = {}

    for file_path in sorted(directory.glob(pattern)):
        errors = validate_file(file_path, schema)
        if errors:
            results[str(file_path)] = errors

    return results


@click.command()
@click.argument("file_path", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--schema",
    type=click.Path(exists=True, path_type=Path),
    default=EXPORT_SCHEMA_PATH,
    help="Path to JSON schema (defaults to the collection export schema)",
)
def main(file_path: Path, schema: Path) -> None:
    """Validate an export file (or a directory of them) against a schema."""
    console.print(f"[bold blue]Validating {file_path}...[/bold blue]")

    schema_data = load_schema(schema)

    if file_path.is_dir():
        results = validate_directory(file_path, schema_data)
        if results:
            for path, errors in results.items():
                console.print(f"[red]✗ {path}[/red]")
                for error in errors:
                    console.print(f"    {error}")
            console.print(f"\n[red]{len(results)} file(s) failed validation[/red]")
            raise SystemExit(1)
        console.print("[green]✓ All files valid[/green]")
    else:
        errors = validate_file(file_path, schema_data)
        if errors:
            console.print("[red]✗ Validation failed[/red]")
            for error in errors:
                console.print(f"    {error}")
            raise SystemExit(1)
        console.print("[green]✓ Valid[/green]")


if __name__ == "__main__":
    main()
