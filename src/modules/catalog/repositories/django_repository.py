"""Django ORM implementations of the catalog repositories.

Methods return ``None`` for missing entries; the service layer decides
how to surface them.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import structlog
from django.core.exceptions import ValidationError
from django.db import models

from modules.catalog.models import Almacen, CatalogEntry, Laboratorio, Producto
from modules.catalog.repositories.interfaces import ICatalogRepository
from modules.core.repositories.interfaces import TenantScopedRepository

logger = structlog.get_logger(__name__)


class CatalogDjangoRepository(TenantScopedRepository, ICatalogRepository):
    """Tenant-bound repository for one reference list (set ``model``)."""

    model: type[CatalogEntry]

    def get_by_id(self, id: str) -> Optional[CatalogEntry]:
        try:
            return self._scoped().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[CatalogEntry]":
        queryset = self._scoped().order_by("nombre")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def save(self, entity: CatalogEntry) -> CatalogEntry:
        self._bind(entity)
        entity.save()
        return entity

    def delete(self, id: str) -> bool:
        entry = self.get_by_id(id)
        if not entry:
            return False
        entry.delete()
        return True

    def get_by_nombre(self, nombre: str) -> Optional[CatalogEntry]:
        return self._scoped().filter(nombre=nombre).order_by("created_at").first()

    def get_or_create_by_nombre(self, nombre: str) -> Tuple[CatalogEntry, bool]:
        existing = self.get_by_nombre(nombre)
        if existing is not None:
            return existing, False
        entry = self.save(self.model(nombre=nombre))
        logger.info(
            f"{self.model._meta.model_name}.created",
            entry_id=str(entry.id),
        )
        return entry, True


class ProductoDjangoRepository(CatalogDjangoRepository):
    model = Producto


class LaboratorioDjangoRepository(CatalogDjangoRepository):
    model = Laboratorio


class AlmacenDjangoRepository(CatalogDjangoRepository):
    model = Almacen
