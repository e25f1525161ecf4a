"""Field validation and input sanitisation.

Pure, synchronous functions with no I/O, no ORM access.  Each validator
returns a ``ValidationResult`` whose ``error`` is the user-facing
(Spanish) message shown next to the field.  Form validators compose the
field validators into a ``FormValidationResult``; fields are validated
independently, cross-entity rules live in the services.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from django.utils import timezone
from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
PHONE_MIN_LENGTH = 6
PHONE_MAX_LENGTH = 20
AMOUNT_MAX = Decimal("999999.99")
CATALOG_NAME_MAX_LENGTH = 255
NOTES_MAX_LENGTH = 1000

_NAME_RE = re.compile(r"^[a-zA-ZÀ-ÿñÑ\s\-'.]+$")
_PHONE_SEPARATORS_RE = re.compile(r"[\s\-()]")
_PHONE_RE = re.compile(r"^\+?\d+$")

_EMAIL_ADAPTER = TypeAdapter(EmailStr)


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class FormValidationResult:
    is_valid: bool
    errors: Dict[str, str] = field(default_factory=dict)


_VALID = ValidationResult(is_valid=True)


def _invalid(message: str) -> ValidationResult:
    return ValidationResult(is_valid=False, error=message)


# ---------------------------------------------------------------------------
# Field validators
# ---------------------------------------------------------------------------


def validate_name(name: Optional[str]) -> ValidationResult:
    if not name or not name.strip():
        return _invalid("El nombre es obligatorio")

    trimmed = name.strip()
    if len(trimmed) < NAME_MIN_LENGTH:
        return _invalid("El nombre debe tener al menos 2 caracteres")
    if len(trimmed) > NAME_MAX_LENGTH:
        return _invalid("El nombre es demasiado largo (máximo 100 caracteres)")
    if not _NAME_RE.match(trimmed):
        return _invalid("El nombre contiene caracteres no válidos")
    return _VALID


def validate_phone(phone: Optional[str]) -> ValidationResult:
    """Accept international formats; separators are ignored when counting."""
    if not phone or not phone.strip():
        return _invalid("El teléfono es obligatorio")

    cleaned = _PHONE_SEPARATORS_RE.sub("", phone.strip())
    if len(cleaned) < PHONE_MIN_LENGTH:
        return _invalid("El teléfono debe tener al menos 6 dígitos")
    if len(cleaned) > PHONE_MAX_LENGTH:
        return _invalid("El teléfono es demasiado largo")
    if not _PHONE_RE.match(cleaned):
        return _invalid(
            "El teléfono solo puede contener números, espacios, guiones y paréntesis"
        )
    return _VALID


def validate_email(email: Optional[str]) -> ValidationResult:
    """Optional field; a supplied address must pass Pydantic's ``EmailStr``."""
    if not email or not email.strip():
        return _VALID
    try:
        _EMAIL_ADAPTER.validate_python(email.strip())
    except PydanticValidationError:
        return _invalid("Formato de email inválido")
    return _VALID


def validate_amount(amount: Union[str, int, float, Decimal, None]) -> ValidationResult:
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        return _invalid("Debe ser un número válido")
    if not value.is_finite():
        return _invalid("Debe ser un número válido")
    if value < 0:
        return _invalid("El monto no puede ser negativo")
    if value > AMOUNT_MAX:
        return _invalid("El monto es demasiado alto")
    return _VALID


def _shift_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # 29 February on a non-leap target year.
        return day.replace(year=day.year + years, day=28)


def parse_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """Coerce an ISO string / date / datetime to a ``date`` (``None`` if invalid)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def validate_date(
    value: Union[str, date, datetime, None], today: Optional[date] = None
) -> ValidationResult:
    parsed = parse_date(value)
    if parsed is None:
        return _invalid("Fecha inválida")

    today = today or timezone.localdate()
    if parsed < _shift_years(today, -1):
        return _invalid("La fecha no puede ser anterior al año pasado")
    if parsed > _shift_years(today, 1):
        return _invalid("La fecha no puede ser posterior al próximo año")
    return _VALID


def validate_text(
    text: Optional[str],
    field_name: str,
    required: bool = False,
    max_length: int = 500,
) -> ValidationResult:
    if required and (not text or not text.strip()):
        return _invalid(f"{field_name} es obligatorio")
    if text and len(text) > max_length:
        return _invalid(
            f"{field_name} es demasiado largo (máximo {max_length} caracteres)"
        )
    return _VALID


def sanitize_input(value: Optional[str]) -> str:
    """Strip angle brackets and surrounding whitespace.

    A minimal mitigation for markup injection, not a full HTML sanitiser.
    """
    if not value:
        return ""
    return re.sub(r"[<>]", "", value).strip()


# ---------------------------------------------------------------------------
# Form validators
# ---------------------------------------------------------------------------


def _collect(checks: Iterable[tuple[str, ValidationResult]]) -> FormValidationResult:
    errors = {name: result.error for name, result in checks if not result.is_valid}
    return FormValidationResult(is_valid=not errors, errors=errors)


def validate_persona_form(data: Mapping[str, Any]) -> FormValidationResult:
    checks = [
        ("nombre", validate_name(data.get("nombre"))),
        ("telefono", validate_phone(data.get("telefono"))),
    ]
    if data.get("email"):
        checks.append(("email", validate_email(data.get("email"))))
    return _collect(checks)


def validate_encargo_form(
    data: Mapping[str, Any], today: Optional[date] = None
) -> FormValidationResult:
    checks = [
        ("fecha", validate_date(data.get("fecha"), today=today)),
        (
            "producto",
            validate_text(
                data.get("producto"), "Producto", True, CATALOG_NAME_MAX_LENGTH
            ),
        ),
        (
            "laboratorio",
            validate_text(
                data.get("laboratorio"), "Laboratorio", False, CATALOG_NAME_MAX_LENGTH
            ),
        ),
        (
            "almacen",
            validate_text(
                data.get("almacen"), "Almacén", False, CATALOG_NAME_MAX_LENGTH
            ),
        ),
        ("persona", validate_name(data.get("persona"))),
        ("telefono", validate_phone(data.get("telefono"))),
        ("pagado", validate_amount(data.get("pagado", 0))),
    ]
    if data.get("observaciones"):
        checks.append(
            (
                "observaciones",
                validate_text(
                    data.get("observaciones"),
                    "Observaciones",
                    False,
                    NOTES_MAX_LENGTH,
                ),
            )
        )
    return _collect(checks)


# ---------------------------------------------------------------------------
# Duplicate heuristic
# ---------------------------------------------------------------------------


def _get(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def check_potential_duplicate(new_order: Any, existing_orders: Iterable[Any]) -> bool:
    """Return ``True`` when an existing order looks like the same request.

    Same customer (phone **or** name) + same product + same calendar day.
    Records may be mappings or objects exposing ``fecha``, ``producto``,
    ``persona`` and ``telefono``.  Never raises; the caller decides whether
    to ask for confirmation.
    """
    new_date = parse_date(_get(new_order, "fecha"))
    for order in existing_orders:
        same_person = _get(order, "persona") == _get(new_order, "persona") or _get(
            order, "telefono"
        ) == _get(new_order, "telefono")
        same_product = _get(order, "producto") == _get(new_order, "producto")
        same_date = new_date is not None and parse_date(_get(order, "fecha")) == new_date
        if same_person and same_product and same_date:
            return True
    return False
