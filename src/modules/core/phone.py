"""Spanish phone number helpers.

Phones are stored in their national form (``600111222``) whenever they
are recognisable Spanish numbers, so that the same customer typed as
``+34 600 11 12 22`` or ``600-111-222`` resolves to one identity.
Anything else is kept as typed.
"""

from __future__ import annotations

import re

SPAIN_PREFIX = "+34"

_SEPARATORS_RE = re.compile(r"[\s\-()]")
_SPANISH_NUMBER_RE = re.compile(r"^[679]\d{8}$")


def _strip_separators(phone: str) -> str:
    return _SEPARATORS_RE.sub("", phone)


def _national(cleaned: str) -> str:
    if cleaned.startswith(SPAIN_PREFIX):
        return cleaned[len(SPAIN_PREFIX):]
    return cleaned


def normalize_phone_number(phone: str) -> str:
    if not phone:
        return phone
    national = _national(_strip_separators(phone))
    if _SPANISH_NUMBER_RE.match(national):
        return national
    return phone.strip()


def format_phone_number(phone: str) -> str:
    """Render a Spanish number as ``XXX XXX XXX``; others are returned untouched."""
    if not phone:
        return phone
    national = _national(_strip_separators(phone))
    if _SPANISH_NUMBER_RE.match(national):
        return f"{national[:3]} {national[3:6]} {national[6:]}"
    return phone


def is_spanish_phone_number(phone: str) -> bool:
    if not phone:
        return False
    return bool(_SPANISH_NUMBER_RE.match(_national(_strip_separators(phone))))


def to_international_digits(phone: str) -> str:
    """Digits-only international form used by ``wa.me`` links.

    9-digit national numbers get the ``34`` country code; numbers already
    carrying it (11 digits starting with ``34``) are kept as they are.
    """
    digits = re.sub(r"\D", "", phone)
    if digits.startswith("34") and len(digits) == 11:
        return digits
    if len(digits) == 9:
        return "34" + digits
    if phone.strip().startswith("+"):
        return digits
    return "34" + digits
