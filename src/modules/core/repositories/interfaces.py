"""Generic repository interface (Dependency Inversion Principle).

Provides ``IRepository[T]``, the base abstract class that all
domain-specific repository interfaces extend, and
``TenantScopedRepository``, the mixin every Django implementation uses
to bind itself to a single selling point.  Service-layer code depends on
these abstractions, never on Django ORM directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Optional, Protocol, TypeVar

from django.db import models

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


class Queryable(Protocol[T_co]):
    def filter(self, **kwargs: Any) -> models.QuerySet: ...


class IRepository(ABC, Generic[T]):
    """Base generic repository contract.

    Type parameter ``T`` represents the domain entity managed by the
    repository (e.g. ``Persona``, ``Encargo``).  Implementations are
    bound to one tenant; no method ever crosses selling points.
    """

    selling_point: str

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Retrieve an entity by its primary key."""

    @abstractmethod
    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> Queryable[T]:
        """List entities with optional filters."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Persist (create or update) an entity."""

    @abstractmethod
    def delete(self, id: str) -> bool:
        """Remove an entity by ID."""


class TenantScopedRepository:
    """Mixin that binds a Django repository to one selling point.

    Subclasses set ``model`` and read through ``_scoped()``, which is the
    only entry point to the table, so every query is filtered by tenant.
    """

    model: type[models.Model]

    def __init__(self, selling_point: str) -> None:
        if not selling_point:
            raise ValueError("A selling point is required to build a repository.")
        self.selling_point = selling_point

    def _scoped(self) -> models.QuerySet:
        return self.model.objects.filter(selling_point=self.selling_point)

    def _bind(self, entity: models.Model) -> models.Model:
        """Stamp the tenant key on a new entity, refuse foreign ones."""
        current = getattr(entity, "selling_point", "")
        if not current:
            entity.selling_point = self.selling_point
        elif current != self.selling_point:
            raise ValueError("Entity belongs to another selling point.")
        return entity
