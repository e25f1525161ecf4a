"""Django ORM implementation of the Encargo repository.

Satisfies ``IEncargoRepository`` using Django's QuerySet API.  Cascade
primitives are single ``UPDATE`` statements; the service wraps them in
``transaction.atomic`` together with the persona write.

Row locks use ``select_for_update()``; no version column exists, so
concurrent edits are last-writer-wins.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Count, Exists, OuterRef, Q, Subquery, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from modules.core.repositories.interfaces import TenantScopedRepository
from modules.encargos.constants import SEARCH_FIELDS
from modules.encargos.models import Encargo
from modules.encargos.repositories.interfaces import IEncargoRepository
from modules.personas.models import Persona

logger = structlog.get_logger(__name__)


class EncargoDjangoRepository(TenantScopedRepository, IEncargoRepository):
    """Concrete Encargo repository backed by Django ORM."""

    model = Encargo

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Encargo]:
        try:
            return self._scoped().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Encargo]:
        try:
            return self._scoped().select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[Encargo]":
        """List encargos with optional Django ORM look-ups.

        Examples of valid filters::

            {"telefono": "600111222"}
            {"entregado": False}
        """
        queryset = self._scoped().order_by("-fecha", "-created_at")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def search(self, query: str) -> "models.QuerySet[Encargo]":
        condition = Q()
        for field in SEARCH_FIELDS:
            condition |= Q(**{f"{field}__icontains": query})
        return self.list().filter(condition)

    def on_date(self, fecha: date) -> "models.QuerySet[Encargo]":
        return self._scoped().filter(fecha=fecha)

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def save(self, entity: Encargo) -> Encargo:
        self._bind(entity)
        entity.save()
        logger.info("encargo.saved", encargo_id=str(entity.id))
        return entity

    def update_fields(self, entity: Encargo, fields: Iterable[str]) -> Encargo:
        self._bind(entity)
        entity.save(update_fields=list(fields))
        return entity

    def delete(self, id: str) -> bool:
        encargo = self.get_by_id(id)
        if not encargo:
            return False
        encargo.delete()
        return True

    # ------------------------------------------------------------------
    # Cascade primitives
    # ------------------------------------------------------------------

    def rename_persona(self, old: str, new: str) -> int:
        return self._scoped().filter(persona=old).update(
            persona=new, updated_at=timezone.now()
        )

    def replace_telefono(self, old: str, new: str) -> int:
        return self._scoped().filter(telefono=old).update(
            telefono=new, updated_at=timezone.now()
        )

    def count_referencing(self, nombre: str, telefono: str) -> int:
        return self._scoped().filter(Q(persona=nombre) | Q(telefono=telefono)).count()

    # ------------------------------------------------------------------
    # Consistency audit
    # ------------------------------------------------------------------

    def _personas(self) -> "models.QuerySet[Persona]":
        return Persona.objects.filter(selling_point=self.selling_point)

    def orphaned_count(self) -> int:
        matching = self._personas().filter(
            Q(nombre=OuterRef("persona")) | Q(telefono=OuterRef("telefono"))
        )
        return self._scoped().filter(~Exists(matching)).count()

    def inconsistent(self) -> "models.QuerySet[Encargo]":
        canonical = (
            self._personas()
            .filter(telefono=OuterRef("telefono"))
            .order_by("created_at", "id")
            .values("nombre")[:1]
        )
        return (
            self._scoped()
            .annotate(canonical_nombre=Subquery(canonical))
            .filter(canonical_nombre__isnull=False)
            .exclude(persona=models.F("canonical_nombre"))
            .order_by("-fecha", "-created_at")
        )

    def summary(self) -> Dict[str, Any]:
        today = timezone.localdate()
        return self._scoped().aggregate(
            total=Count("id"),
            pedidos=Count("id", filter=Q(pedido=True)),
            recibidos=Count("id", filter=Q(recibido=True)),
            entregados=Count("id", filter=Q(entregado=True)),
            pendientes=Count("id", filter=Q(entregado=False)),
            por_avisar=Count("id", filter=Q(recibido=True, avisado=False)),
            este_mes=Count(
                "id", filter=Q(fecha__year=today.year, fecha__month=today.month)
            ),
            total_pagado=Coalesce(
                Sum("pagado"),
                Decimal("0.00"),
                output_field=models.DecimalField(max_digits=12, decimal_places=2),
            ),
        )
