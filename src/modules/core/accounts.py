"""Static selling-point accounts.

Each account is one shop (``selling_point``) sharing a single login.
The list comes from ``settings.TENANT_ACCOUNTS``:

    {"farmacia1": {"password": "...", "display_name": "Farmacia Centro"}}

There is no per-user permission model; any authenticated account has
full access to its own selling point and nothing else.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from django.conf import settings


@dataclass(frozen=True)
class TenantAccount:
    username: str
    selling_point: str
    display_name: str


def _accounts() -> Mapping[str, Mapping[str, str]]:
    return getattr(settings, "TENANT_ACCOUNTS", {}) or {}


def get_account(username: str) -> Optional[TenantAccount]:
    entry = _accounts().get(username)
    if entry is None:
        return None
    return TenantAccount(
        username=username,
        selling_point=entry.get("selling_point", username),
        display_name=entry.get("display_name", username),
    )


def authenticate_account(username: str, password: str) -> Optional[TenantAccount]:
    """Return the account when the credentials match, ``None`` otherwise."""
    entry = _accounts().get(username or "")
    if entry is None:
        return None
    expected = entry.get("password", "")
    if not expected or not hmac.compare_digest(str(expected), str(password or "")):
        return None
    return get_account(username)


def list_selling_points() -> Dict[str, str]:
    """``{selling_point: display_name}`` for every configured account."""
    result: Dict[str, str] = {}
    for username in _accounts():
        account = get_account(username)
        if account is not None:
            result[account.selling_point] = account.display_name
    return result
