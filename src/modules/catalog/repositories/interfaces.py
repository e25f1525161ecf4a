"""Catalog repository interface.

One contract serves the three reference lists; each Django
implementation is bound to its model and to a selling point.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, Dict, Optional, Tuple

from django.db import models

from modules.catalog.models import CatalogEntry
from modules.core.repositories.interfaces import IRepository


class ICatalogRepository(IRepository[CatalogEntry]):
    """Repository contract for Producto / Laboratorio / Almacen."""

    @abstractmethod
    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[CatalogEntry]":
        """List entries ordered by ``nombre``."""

    @abstractmethod
    def get_by_nombre(self, nombre: str) -> Optional[CatalogEntry]:
        """Exact-name look-up; oldest entry wins when names repeat."""

    @abstractmethod
    def get_or_create_by_nombre(self, nombre: str) -> Tuple[CatalogEntry, bool]:
        """Return ``(entry, created)`` for ``nombre``."""
