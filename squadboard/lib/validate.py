"""
JSON Schema checks for cards and agent artifacts.

Cards are checked before every write; artifacts mined from transcripts
(issue plan, build result, AI review) are checked before the board accepts
them. Schemas live in schemas/<name>.schema.json.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

from jsonschema.exceptions import best_match
from jsonschema.validators import validator_for

SCHEMAS_DIR = Path(__file__).resolve().parent.parent.parent / "schemas"


class ValidationError(Exception):
    """Data doesn't match its schema."""

    def __init__(self, schema_name: str, message: str, path: str | None = None):
        self.schema_name = schema_name
        self.path = path
        super().__init__(f"[{schema_name}] {message}" + (f" at {path}" if path else ""))


@lru_cache(maxsize=None)
def _validator(schema_name: str):
    schema_path = SCHEMAS_DIR / f"{schema_name}.schema.json"
    if not schema_path.exists():
        raise ValidationError(schema_name, f"Schema file not found: {schema_path}")
    schema = json.loads(schema_path.read_text())
    cls = validator_for(schema)
    cls.check_schema(schema)
    return cls(schema)


def validate(data: Any, schema_name: str) -> None:
    """
    Raises:
        ValidationError: With the most relevant schema violation
    """
    error = best_match(_validator(schema_name).iter_errors(data))
    if error is not None:
        path = ".".join(str(p) for p in error.absolute_path) or "(root)"
        raise ValidationError(schema_name, error.message, path)


def is_valid(data: Any, schema_name: str) -> bool:
    return _validator(schema_name).is_valid(data)


def validate_before_write(data: dict, schema_name: str, filepath: Path) -> None:
    """Refuse to persist invalid data.

    Raises:
        ValidationError: If data doesn't match schema
    """
    try:
        validate(data, schema_name)
    except ValidationError as e:
        raise ValidationError(schema_name, f"Refusing to write {filepath.name}: {e}") from None
