"""Reference lists used to fill in orders.

Business rules implemented:
- Orders store the *name* of a product, laboratory or warehouse, never a
  foreign key; these tables only feed autocomplete and inline creation.
- Names are unique per selling point at the application level
  (``get_or_create_by_nombre``), not through a DB constraint.
"""

from __future__ import annotations

from django.db import models

from modules.core.models import TenantModel


class CatalogEntry(TenantModel):
    """Abstract named entry of a tenant reference list."""

    nombre = models.CharField(max_length=255)

    class Meta:
        abstract = True
        ordering = ["nombre"]

    def __str__(self) -> str:
        return self.nombre


class Producto(CatalogEntry):
    class Meta(CatalogEntry.Meta):
        db_table = "productos"
        indexes = [
            models.Index(
                fields=["selling_point", "nombre"], name="productos_sp_nombre_idx"
            ),
        ]


class Laboratorio(CatalogEntry):
    class Meta(CatalogEntry.Meta):
        db_table = "laboratorios"
        indexes = [
            models.Index(
                fields=["selling_point", "nombre"], name="laboratorios_sp_nombre_idx"
            ),
        ]


class Almacen(CatalogEntry):
    class Meta(CatalogEntry.Meta):
        db_table = "almacenes"
        verbose_name_plural = "almacenes"
        indexes = [
            models.Index(
                fields=["selling_point", "nombre"], name="almacenes_sp_nombre_idx"
            ),
        ]
