"""Helpers shared by the Pydantic DTO layer.

The ``clean_*`` functions wrap ``modules.core.validation`` for use inside
``field_validator``s: they raise ``ValueError`` with the user-facing
message and return the cleaned value.
"""

from __future__ import annotations

from typing import Dict

from pydantic import ValidationError

from modules.core.phone import normalize_phone_number
from modules.core.validation import (
    CATALOG_NAME_MAX_LENGTH,
    sanitize_input,
    validate_email,
    validate_name,
    validate_phone,
    validate_text,
)

_VALUE_ERROR_PREFIX = "Value error, "


def _as_text(value: object) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def field_errors(exc: ValidationError) -> Dict[str, str]:
    """Flatten a Pydantic error into ``{field: first message}``.

    Validator messages are already user-facing; only Pydantic's
    ``"Value error, "`` prefix is removed.
    """
    errors: Dict[str, str] = {}
    for error in exc.errors():
        loc = error.get("loc") or ("__all__",)
        errors.setdefault(
            str(loc[0]), str(error.get("msg", "")).removeprefix(_VALUE_ERROR_PREFIX)
        )
    return errors


def clean_nombre(value: object) -> str:
    value = sanitize_input(_as_text(value))
    result = validate_name(value)
    if not result.is_valid:
        raise ValueError(result.error)
    return value


def clean_telefono(value: object) -> str:
    value = sanitize_input(_as_text(value))
    result = validate_phone(value)
    if not result.is_valid:
        raise ValueError(result.error)
    return normalize_phone_number(value)


def clean_email(value: object) -> str:
    value = _as_text(value).strip()
    result = validate_email(value)
    if not result.is_valid:
        raise ValueError(result.error)
    return value


def clean_text(
    value: object,
    field_name: str,
    required: bool = False,
    max_length: int = CATALOG_NAME_MAX_LENGTH,
) -> str:
    value = sanitize_input(_as_text(value))
    result = validate_text(value, field_name, required, max_length)
    if not result.is_valid:
        raise ValueError(result.error)
    return value
