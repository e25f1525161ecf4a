"""Django ORM implementation of the Persona repository.

Every query goes through ``_scoped()`` so a repository never sees
another selling point's customers.  Missing rows are reported as
``None``; the service decides what that means.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Count

from modules.core.repositories.interfaces import TenantScopedRepository
from modules.personas.models import Persona
from modules.personas.repositories.interfaces import IPersonaRepository

logger = structlog.get_logger(__name__)


class PersonaDjangoRepository(TenantScopedRepository, IPersonaRepository):
    """Concrete Persona repository backed by Django ORM."""

    model = Persona

    def get_by_id(self, id: str) -> Optional[Persona]:
        try:
            return self._scoped().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Persona]:
        try:
            return self._scoped().select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[Persona]":
        queryset = self._scoped().order_by("nombre", "created_at")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def save(self, entity: Persona) -> Persona:
        self._bind(entity)
        entity.save()
        logger.info("persona.saved", persona_id=str(entity.id))
        return entity

    def delete(self, id: str) -> bool:
        persona = self.get_by_id(id)
        if not persona:
            return False
        persona.delete()
        return True

    # ------------------------------------------------------------------
    # Contact look-ups
    # ------------------------------------------------------------------

    def find_by_contact(
        self, telefono: Optional[str] = None, nombre: Optional[str] = None
    ) -> Optional[Persona]:
        lookups: Dict[str, str] = {}
        if telefono:
            lookups["telefono"] = telefono
        if nombre:
            lookups["nombre"] = nombre
        if not lookups:
            return None
        return self._scoped().filter(**lookups).order_by("created_at", "id").first()

    def phone_taken_by_other(self, telefono: str, exclude_id: Optional[str] = None) -> bool:
        queryset = self._scoped().filter(telefono=telefono)
        if exclude_id is not None:
            queryset = queryset.exclude(id=exclude_id)
        return queryset.exists()

    def duplicate_phone_count(self) -> int:
        return (
            self._scoped()
            .values("telefono")
            .annotate(holders=Count("id"))
            .filter(holders__gt=1)
            .count()
        )
