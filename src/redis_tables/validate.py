"""Schema validation and wire coercion.

Redis stores every hash field as a string. ``process_keys`` enforces the
write-time contract of a model's fields, ``parse_to_string`` encodes one value
for the wire and ``parse_from_string`` turns a whole stored record back into
native values using the field map.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from redis_tables.errors import ValidationError
from redis_tables.types import FieldSpec, FieldType


class _Unset:
    """Marker for a value that was never given, distinct from None."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset()

NULL_TEXT = "null"
UNDEFINED_TEXT = "undefined"


def is_absent(value: Any) -> bool:
    """Return whether a value counts as missing."""
    return value is None or value is UNSET


def _check_type(field_type: FieldType, value: Any) -> bool:
    if field_type is FieldType.STRING:
        return isinstance(value, str)
    if field_type is FieldType.NUMBER:
        # bool is an int subclass but never a number here
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if field_type is FieldType.BOOLEAN:
        return isinstance(value, bool)
    if field_type is FieldType.OBJECT:
        return isinstance(value, (dict, list))
    return True


def _check_bounds(name: str, spec: FieldSpec, value: Any) -> str | None:
    """Return an error message when the value is outside min/max, else None."""
    if isinstance(value, str):
        size, unit = len(value), " characters"
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        size, unit = value, ""
    else:
        return None

    if spec.min is not None and size < spec.min:
        return f"{name} must be at least {spec.min}{unit}"
    if spec.max is not None and size > spec.max:
        return f"{name} must be at most {spec.max}{unit}"
    return None


def process_keys(
    fields: Mapping[str, FieldSpec],
    data: Mapping[str, Any],
    partial: bool = False,
) -> dict[str, Any]:
    """Validate a record against a field map.

    Args:
        fields: The model's field map.
        data: Caller-supplied values. Undeclared keys are dropped.
        partial: When True only the supplied fields are checked and required
            fields may be missing. Fields flagged ``always`` are processed
            either way.

    Returns:
        The validated record with defaults applied.

    Raises:
        ValidationError: Listing every offending field, not just the first.
    """
    result: dict[str, Any] = {}
    errors: list[dict[str, str]] = []

    for name, spec in fields.items():
        value = data.get(name, UNSET)

        # Relation-only fields are resolved on load, never written
        if spec.is_relation and spec.type is None:
            continue

        if partial and not spec.always and is_absent(value):
            continue

        if is_absent(value):
            if spec.has_default:
                result[name] = spec.default_value()
            elif spec.is_required:
                errors.append({"key": name, "message": f"{name} is required"})
            continue

        if spec.type is not None and not _check_type(spec.type, value):
            errors.append(
                {"key": name, "message": f"{name} is not of type {spec.type.value}"}
            )
            continue

        bounds_error = _check_bounds(name, spec, value)
        if bounds_error:
            errors.append({"key": name, "message": bounds_error})
            continue

        result[name] = value

    if errors:
        raise ValidationError(errors)

    return result


def _parse_number(text: str) -> int | float:
    try:
        return int(text)
    except ValueError:
        return float(text)


def parse_from_string(
    fields: Mapping[str, FieldSpec], record: Mapping[str, str]
) -> dict[str, Any]:
    """Convert a stored record back to native values.

    Number, boolean and object fields are parsed from their wire text; string
    fields and fields missing from the map pass through unchanged.
    """
    result: dict[str, Any] = {}

    for name, text in record.items():
        spec = fields.get(name)
        field_type = spec.type if spec is not None else None

        if field_type is None or field_type is FieldType.STRING:
            result[name] = text
        elif text == NULL_TEXT:
            result[name] = None
        elif field_type is FieldType.NUMBER:
            result[name] = _parse_number(text)
        elif field_type is FieldType.BOOLEAN:
            result[name] = text == "true"
        elif field_type is FieldType.OBJECT:
            result[name] = json.loads(text)

    return result


def parse_to_string(value: Any) -> str:
    """Encode one value as wire text."""
    if value is UNSET:
        return UNDEFINED_TEXT
    if value is None:
        return NULL_TEXT
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"))
    if isinstance(value, str):
        return value
    return str(value)
