"""Encargo repository interface.

Besides CRUD, exposes the bulk primitives the personas cascades and the
consistency audit are built from.  Implementations are bound to one
selling point; no method crosses tenants.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import date
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.encargos.models import Encargo


class IEncargoRepository(IRepository["Encargo"]):
    """Repository contract for the Encargo aggregate."""

    @abstractmethod
    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[Encargo]":
        """List encargos, newest ``fecha`` first, then newest created."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional["Encargo"]:
        """Retrieve an encargo with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def update_fields(self, entity: "Encargo", fields: Iterable[str]) -> "Encargo":
        """Persist only ``fields`` of ``entity``."""

    @abstractmethod
    def search(self, query: str) -> "models.QuerySet[Encargo]":
        """Case-insensitive substring search across the text fields."""

    @abstractmethod
    def on_date(self, fecha: date) -> "models.QuerySet[Encargo]":
        """Encargos placed on ``fecha`` (duplicate heuristic candidates)."""

    # ------------------------------------------------------------------
    # Cascade primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def rename_persona(self, old: str, new: str) -> int:
        """Set ``persona=new`` wherever it equals ``old``; returns rows changed."""

    @abstractmethod
    def replace_telefono(self, old: str, new: str) -> int:
        """Set ``telefono=new`` wherever it equals ``old``; returns rows changed."""

    @abstractmethod
    def count_referencing(self, nombre: str, telefono: str) -> int:
        """Encargos whose ``persona`` is ``nombre`` or ``telefono`` is ``telefono``."""

    # ------------------------------------------------------------------
    # Consistency audit
    # ------------------------------------------------------------------

    @abstractmethod
    def orphaned_count(self) -> int:
        """Encargos with no persona matching their name nor their phone."""

    @abstractmethod
    def inconsistent(self) -> "models.QuerySet[Encargo]":
        """Encargos whose name differs from the canonical persona of their phone.

        Rows are annotated with ``canonical_nombre``.
        """

    @abstractmethod
    def summary(self) -> Dict[str, Any]:
        """Aggregate counters for the dashboard."""
