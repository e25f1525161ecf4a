"""Persona domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import ConflictError, EntityNotFound, GuardedDeletion


class PersonaNotFound(EntityNotFound):
    """The requested persona does not exist in this selling point."""


class PhoneAlreadyInUse(ConflictError):
    """Another persona of the selling point already has this phone."""


class PersonaHasEncargos(GuardedDeletion):
    """Encargos still reference the persona by name or phone."""
