"""
Schema validation for agentdeck.

Validates provider output and config files with JSON Schema.
Fails hard with clear errors when data doesn't match schema.
"""

import json
import threading
from pathlib import Path
from typing import Any

import jsonschema


class ValidationError(Exception):
    """Schema validation failed."""

    def __init__(self, schema_name: str, message: str, path: str = None):
        self.schema_name = schema_name
        self.path = path
        super().__init__(f"[{schema_name}] {message}" + (f" at {path}" if path else ""))


# Cache loaded schemas (provider threads validate concurrently)
_schema_cache: dict[str, dict] = {}
_schema_lock = threading.Lock()


def _get_schemas_dir() -> Path:
    """Get path to schemas directory."""
    return Path(__file__).parent.parent / "schemas"


def _load_schema(schema_name: str) -> dict:
    """Load schema by name, with caching."""
    with _schema_lock:
        if schema_name not in _schema_cache:
            schema_path = _get_schemas_dir() / f"{schema_name}.schema.json"
            if not schema_path.exists():
                raise ValidationError(schema_name, f"Schema file not found: {schema_path}")
            _schema_cache[schema_name] = json.loads(schema_path.read_text())
        return _schema_cache[schema_name]


def validate(data: Any, schema_name: str) -> None:
    """
    Validate data against named schema.

    Args:
        data: Parsed JSON/YAML document to validate
        schema_name: Schema name (e.g., "provider_result", "project_config")

    Raises:
        ValidationError: If validation fails
    """
    schema = _load_schema(schema_name)

    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        # Report the deepest failing path, not just the root
        path = ".".join(str(p) for p in e.absolute_path) if e.absolute_path else "(root)"
        raise ValidationError(schema_name, e.message, path) from None


def validate_json(text: str, schema_name: str) -> Any:
    """
    Parse JSON text and validate against schema.

    Args:
        text: Raw JSON text
        schema_name: Schema name to validate against

    Returns:
        Parsed and validated data

    Raises:
        ValidationError: If text is not JSON or doesn't match schema
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(schema_name, f"Invalid JSON: {e}") from None

    validate(data, schema_name)
    return data
