"""Encargo model.

Business rules implemented:
- The customer is stored as denormalised ``persona``/``telefono`` strings,
  kept in step with the ``Persona`` record by the personas cascades.
- Product, laboratory and warehouse are stored by name, not by FK.
- ``entregado ⇒ recibido ⇒ pedido`` is enforced when flags are edited
  (``modules.encargos.workflow``), not by a DB constraint: inconsistent
  rows may exist when the operator chose to apply only the requested flag.
- ``avisado`` can be toggled freely, with no stage requirement.
- ``pagado`` is non-negative.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import TenantModel
from modules.encargos.workflow import StageFlags


class Encargo(TenantModel):
    """A customer special order."""

    fecha = models.DateField()
    producto = models.CharField(max_length=255)
    laboratorio = models.CharField(max_length=255, blank=True, default="")
    almacen = models.CharField(max_length=255, blank=True, default="")
    pedido = models.BooleanField(default=False)
    recibido = models.BooleanField(default=False)
    entregado = models.BooleanField(default=False)
    persona = models.CharField(max_length=100)
    telefono = models.CharField(max_length=20)
    avisado = models.BooleanField(default=False)
    pagado = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    observaciones = models.TextField(blank=True, default="")

    class Meta:
        db_table = "encargos"
        ordering = ["-fecha", "-created_at"]
        indexes = [
            models.Index(fields=["selling_point", "fecha"], name="encargos_sp_fecha_idx"),
            models.Index(
                fields=["selling_point", "telefono"], name="encargos_sp_telefono_idx"
            ),
            models.Index(
                fields=["selling_point", "persona"], name="encargos_sp_persona_idx"
            ),
        ]

    @property
    def flags(self) -> StageFlags:
        return StageFlags.of(self)

    def __str__(self) -> str:
        return f"{self.fecha} - {self.producto} ({self.persona})"
