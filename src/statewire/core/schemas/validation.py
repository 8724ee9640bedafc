"""Shared schema validation utilities.

Schemas are stored as YAML files under ``statewire.data/schemas/`` and are
applied with JSON Schema (Draft 2020-12).
"""
from __future__ import annotations

from typing import Any, Dict, List

import jsonschema
from jsonschema import Draft202012Validator

from statewire.core.exceptions import ConfigError
from statewire.data import read_yaml


def load_schema(schema_name: str) -> Dict[str, Any]:
    """Load a bundled schema by file name (``.yaml`` suffix optional)."""
    filename = schema_name if schema_name.endswith(".yaml") else f"{schema_name}.yaml"
    try:
        return read_yaml("schemas", filename)
    except FileNotFoundError as exc:
        raise ConfigError(f"Schema not found: {filename}") from exc


def _format_errors(errors: List[jsonschema.ValidationError]) -> str:
    lines = []
    for err in errors:
        location = "/".join(str(p) for p in err.path) or "<root>"
        lines.append(f"{location}: {err.message}")
    return "; ".join(lines)


def validate_payload(payload: Any, schema_name: str) -> None:
    """Validate ``payload`` against a bundled schema.

    Raises:
        ConfigError: listing every violation found.
    """
    schema = load_schema(schema_name)
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(payload), key=lambda e: list(e.path))
    if errors:
        raise ConfigError(
            f"Configuration does not match schema '{schema_name}': {_format_errors(errors)}",
            context={"schema": schema_name},
        )


__all__ = ["load_schema", "validate_payload"]
