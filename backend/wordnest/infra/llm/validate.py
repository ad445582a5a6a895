"""Schema validation of structured model output."""

from __future__ import annotations

from typing import Any

import jsonschema


class SchemaValidationError(Exception):
    """Raised when model output does not match the requested response schema."""


def validate_llm_output(data: Any, schema: dict[str, Any], schema_name: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise SchemaValidationError(f"Expected a JSON object for {schema_name}, got {type(data).__name__}")
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as exc:
        raise SchemaValidationError(f"JSON Schema validation failed ({schema_name}): {exc.message}") from exc
    return data
