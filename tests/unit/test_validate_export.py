"""Unit tests for export file schema validation."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from jsonschema import Draft7Validator

from src.validators.validate import (
    EXPORT_SCHEMA_PATH,
    load_schema,
    main,
    validate_data,
    validate_directory,
    validate_file,
)


@pytest.fixture
def schema() -> dict[str, Any]:
    return load_schema()


@pytest.fixture
def valid_export() -> dict[str, Any]:
    return {
        "collection": "Note",
        "exported_at": "2026-10-16T00:00:00+00:00",
        "count": 1,
        "objects": [
            {"id": "6f1c1d2e-1111-4a4a-9b9b-000000000001", "properties": {"text": "a"}},
        ],
    }


class TestExportSchema:
    """schemas/collection_export.schema.json."""

    def test_schema_file_exists(self) -> None:
        assert EXPORT_SCHEMA_PATH.exists()

    def test_schema_is_valid_draft7(self, schema: dict[str, Any]) -> None:
        Draft7Validator.check_schema(schema)

    def test_valid_export_passes(self, schema: dict[str, Any], valid_export: dict[str, Any]) -> None:
        assert validate_data(valid_export, schema) == []

    def test_objects_without_id_allowed(
        self, schema: dict[str, Any], valid_export: dict[str, Any]
    ) -> None:
        valid_export["objects"] = [{"properties": {"text": "a"}}]
        assert validate_data(valid_export, schema) == []

    @pytest.mark.parametrize(
        ("mutation", "fragment"),
        [
            (lambda d: d.pop("objects"), "'objects' is a required property"),
            (lambda d: d.update(collection="note"), "does not match"),
            (lambda d: d["objects"][0].update(id="not-a-uuid"), "does not match"),
            (lambda d: d["objects"][0].pop("properties"), "'properties' is a required property"),
            (lambda d: d.update(count=-1), "less than the minimum"),
        ],
    )
    def test_invalid_exports(
        self,
        schema: dict[str, Any],
        valid_export: dict[str, Any],
        mutation: Any,
        fragment: str,
    ) -> None:
        mutation(valid_export)
        errors = validate_data(valid_export, schema)
        assert any(fragment in e for e in errors), errors

    def test_all_violations_reported(self, schema: dict[str, Any]) -> None:
        errors = validate_data({"collection": 1, "objects": [{}]}, schema)
        assert len(errors) == 2

    def test_invalid_schema_reported(self) -> None:
        errors = validate_data({}, {"type": "nonsense"})
        assert errors and errors[0].startswith("Invalid schema")


class TestFileValidation:
    """validate_file() / validate_directory() and the CLI."""

    def test_invalid_json(self, tmp_path: Path, schema: dict[str, Any]) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{")
        errors = validate_file(path, schema)
        assert errors[0].startswith("Invalid JSON")

    def test_directory(
        self, tmp_path: Path, schema: dict[str, Any], valid_export: dict[str, Any]
    ) -> None:
        (tmp_path / "good.json").write_text(json.dumps(valid_export))
        (tmp_path / "bad.json").write_text(json.dumps({"collection": "Note"}))

        results = validate_directory(tmp_path, schema)

        assert list(results) == [str(tmp_path / "bad.json")]

    def test_cli_valid(self, tmp_path: Path, valid_export: dict[str, Any]) -> None:
        path = tmp_path / "Note.json"
        path.write_text(json.dumps(valid_export))

        result = CliRunner().invoke(main, [str(path)])

        assert result.exit_code == 0
        assert "Valid" in result.output

    def test_cli_invalid(self, tmp_path: Path) -> None:
        path = tmp_path / "Note.json"
        path.write_text(json.dumps({"collection": "Note"}))

        result = CliRunner().invoke(main, [str(path)])

        assert result.exit_code == 1
        assert "Validation failed" in result.output
