"""
Schema Validation Utilities

Validates persisted and archived JSON records against the schemas that
ship next to this module.

Records:
- manifest: the document manifest (Manifest Store file, archive root)
- page_config: one page's questions inside an archive
- answers: one page's answers inside an archive
- page_blob: one page's cached content in the Page Cache

Validation only checks record shape. Model invariants (option counts,
answer cardinality) are checked when the models are constructed.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema

from ..errors import ValidationError


# Bumped when an archived record changes shape incompatibly
ARCHIVE_SCHEMA_VERSION = 2  # v2 adds answersFile to page order entries


# Load schemas lazily
_VALIDATORS: dict[str, jsonschema.Draft7Validator] = {}


def _load_schema(name: str) -> dict:
    """Load a schema from the schemas directory."""
    schema_path = Path(__file__).parent / f"{name}.schema.json"
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema not found: {schema_path}")
    with open(schema_path, "r", encoding="utf-8") as f:
        return json.load(f)


def _get_validator(name: str) -> jsonschema.Draft7Validator:
    if name not in _VALIDATORS:
        schema = _load_schema(name)
        jsonschema.Draft7Validator.check_schema(schema)
        _VALIDATORS[name] = jsonschema.Draft7Validator(schema)
    return _VALIDATORS[name]


def validate_record(data: Any, schema_name: str) -> None:
    """
    Validate ``data`` against the named schema.

    Args:
        data: Decoded JSON value
        schema_name: One of "manifest", "page_config", "answers", "page_blob"

    Raises:
        ValidationError: With every schema violation listed in ``errors``
    """
    validator = _get_validator(schema_name)
    errors = sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path))
    if errors:
        first = errors[0]
        raise ValidationError(
            f"Invalid {schema_name} record: {first.message}",
            path=".".join(str(p) for p in first.absolute_path),
            errors=[e.message for e in errors],
        )


def validate_manifest_record(data: Any) -> None:
    validate_record(data, "manifest")


def validate_page_config(data: Any) -> None:
    validate_record(data, "page_config")


def validate_answers_record(data: Any) -> None:
    validate_record(data, "answers")


def validate_page_blob(data: Any) -> None:
    validate_record(data, "page_blob")
