"""Persona repository interface.

Extends ``IRepository[Persona]`` with the contact look-ups used by the
identity resolver and the phone-uniqueness checks.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.personas.models import Persona


class IPersonaRepository(IRepository["Persona"]):
    """Repository contract for the Persona aggregate."""

    @abstractmethod
    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[Persona]":
        """List personas ordered by ``nombre``."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional["Persona"]:
        """Retrieve a persona with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def find_by_contact(
        self, telefono: Optional[str] = None, nombre: Optional[str] = None
    ) -> Optional["Persona"]:
        """Oldest persona matching every given field (exact match)."""

    @abstractmethod
    def phone_taken_by_other(self, telefono: str, exclude_id: Optional[str] = None) -> bool:
        """Whether a persona other than ``exclude_id`` holds ``telefono``."""

    @abstractmethod
    def duplicate_phone_count(self) -> int:
        """Number of phone values held by more than one persona."""
