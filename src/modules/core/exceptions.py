"""Error taxonomy shared by every bounded context.

Module-level exceptions (``PersonaNotFound``, ``PhoneAlreadyInUse`` …)
subclass these so the API layer can translate whole families at once.
Views catch the domain exceptions they expect; anything that escapes is
handled by ``api_exception_handler``, which logs the technical detail
and answers with a localised, non-technical message.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from django.db import DatabaseError, OperationalError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = structlog.get_logger(__name__)


class DomainError(Exception):
    """Base class for business-rule violations."""


class DomainValidationError(DomainError):
    """User input failed one or more field rules.

    ``errors`` maps field names to user-facing messages.
    """

    def __init__(self, errors: Dict[str, str], message: str = "Datos inválidos.") -> None:
        super().__init__(message)
        self.errors = errors


class ConflictError(DomainError):
    """The change would break an identity rule or a workflow precondition."""


class EntityNotFound(DomainError):
    """The referenced entity does not exist in the current selling point."""


class GuardedDeletion(DomainError):
    """Deletion blocked by records that still reference the entity."""

    def __init__(self, message: str, blocking_count: int) -> None:
        super().__init__(message)
        self.blocking_count = blocking_count


class TransientError(DomainError):
    """A network/connection failure that survived every retry."""


# ---------------------------------------------------------------------------
# User-facing translation
# ---------------------------------------------------------------------------

_STATUS_MESSAGES = {
    400: "Datos inválidos. Verifica la información e inténtalo de nuevo.",
    401: "No tienes autorización para realizar esta acción.",
    403: "Acceso denegado.",
    404: "Recurso no encontrado.",
    429: "Demasiadas solicitudes. Espera un momento e inténtalo de nuevo.",
    500: "Error del servidor. Inténtalo de nuevo más tarde.",
    502: "El servicio no está disponible temporalmente. Inténtalo de nuevo.",
    503: "El servicio no está disponible temporalmente. Inténtalo de nuevo.",
    504: "El servicio no está disponible temporalmente. Inténtalo de nuevo.",
}

GENERIC_MESSAGE = "Error inesperado. Por favor, inténtalo de nuevo."


def get_user_friendly_message(
    error: Optional[BaseException], status_code: Optional[int] = None
) -> str:
    """Map a raw exception to a short Spanish message safe to show to staff."""
    if error is None:
        return "Error desconocido"

    if isinstance(error, (DomainValidationError, ConflictError, GuardedDeletion)):
        return str(error)

    message = str(error)
    lowered = message.lower()

    if "network" in lowered or "fetch" in lowered or "connection" in lowered:
        return "Error de conexión. Verifica tu conexión a internet."
    if "timeout" in lowered or "timed out" in lowered:
        return "La operación tardó demasiado tiempo. Inténtalo de nuevo."
    if "already exists" in lowered:
        return "Ya existe un registro con estos datos."
    if "not found" in lowered:
        return "No se encontró el registro solicitado."

    status_code = status_code or getattr(error, "status_code", None)
    if status_code:
        return _STATUS_MESSAGES.get(
            status_code,
            f"Error del servidor ({status_code}). Inténtalo de nuevo.",
        )
    return GENERIC_MESSAGE


# ---------------------------------------------------------------------------
# DRF integration
# ---------------------------------------------------------------------------


def api_exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    """DRF ``EXCEPTION_HANDLER``: DRF errors as usual, the rest translated."""
    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get("view")
    log = logger.bind(
        view=view.__class__.__name__ if view else None,
        error_type=exc.__class__.__name__,
    )

    if isinstance(exc, DomainValidationError):
        return Response(
            {"detail": str(exc), "errors": exc.errors},
            status=status.HTTP_400_BAD_REQUEST,
        )
    if isinstance(exc, EntityNotFound):
        return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
    if isinstance(exc, GuardedDeletion):
        return Response(
            {"detail": str(exc), "blocking_count": exc.blocking_count},
            status=status.HTTP_409_CONFLICT,
        )
    if isinstance(exc, ConflictError):
        return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
    if isinstance(exc, (TransientError, OperationalError)):
        log.error("api.transient_failure", error=str(exc))
        return Response(
            {"detail": get_user_friendly_message(exc, 503)},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    if isinstance(exc, DatabaseError):
        log.error("api.database_failure", error=str(exc))
        return Response(
            {"detail": get_user_friendly_message(exc, 500)},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    # Unknown failure: let Django's 500 machinery take over.
    log.exception("api.unhandled_exception")
    return None
