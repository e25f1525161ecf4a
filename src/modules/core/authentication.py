"""JWT authentication bound to a selling point.

Tokens are issued by ``LoginView`` with SimpleJWT's ``AccessToken`` and
carry the ``selling_point``, ``username`` and ``display_name`` claims.
No local Django ``User`` row backs them; the authenticated principal is
a ``TenantUser`` built straight from the validated claims.

Security decisions
------------------
* **Fail Closed**: a malformed header or an invalid/expired token is a 401.
* A token whose account was removed from ``TENANT_ACCOUNTS`` is refused.
"""

from __future__ import annotations

from typing import Optional, Tuple

import structlog
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

from modules.core.accounts import TenantAccount, get_account

logger = structlog.get_logger(__name__)


class TenantUser:
    """Lightweight principal for a selling-point account.

    Views read ``request.user.selling_point`` to bind their repositories.
    """

    is_authenticated = True
    is_active = True
    is_anonymous = False

    def __init__(self, username: str, selling_point: str, display_name: str = "") -> None:
        self.username = username
        self.selling_point = selling_point
        self.display_name = display_name or username

    @classmethod
    def from_account(cls, account: TenantAccount) -> "TenantUser":
        return cls(
            username=account.username,
            selling_point=account.selling_point,
            display_name=account.display_name,
        )

    def __str__(self) -> str:  # pragma: no cover
        return self.username


def issue_access_token(account: TenantAccount) -> str:
    token = AccessToken()
    token["username"] = account.username
    token["selling_point"] = account.selling_point
    token["display_name"] = account.display_name
    return str(token)


class TenantJWTAuthentication(BaseAuthentication):
    """DRF authentication class validating tenant Bearer tokens."""

    keyword = "Bearer"

    def authenticate(self, request) -> Optional[Tuple[TenantUser, str]]:
        header = request.META.get("HTTP_AUTHORIZATION", "")
        if not header:
            return None

        raw = self._extract_token(header)
        try:
            token = AccessToken(raw)
        except TokenError as exc:
            logger.warning("jwt_validation_failed", error=str(exc))
            raise AuthenticationFailed("Token inválido o caducado.") from exc

        account = get_account(token.get("username", ""))
        if account is None or account.selling_point != token.get("selling_point"):
            logger.warning("jwt_unknown_account")
            raise AuthenticationFailed("Cuenta no reconocida.")

        user = TenantUser.from_account(account)
        structlog.contextvars.bind_contextvars(selling_point=user.selling_point)
        return (user, raw)

    def authenticate_header(self, request) -> str:
        return f'{self.keyword} realm="api"'

    @staticmethod
    def _extract_token(header: str) -> str:
        parts = header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            raise AuthenticationFailed("Invalid Authorization header format.")
        return parts[1]
