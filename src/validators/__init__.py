"""JSON schema validation utilities."""

from .validate import EXPORT_SCHEMA_PATH, load_schema, validate_data, validate_file

__all__ = ["EXPORT_SCHEMA_PATH", "load_schema", "validate_data", "validate_file"]
