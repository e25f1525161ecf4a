"""Persona model: the canonical customer identity.

Business rules implemented:
- ``telefono`` is unique per selling point at the application level
  (checked by the service before any write), not by a DB constraint, so
  legacy duplicates can be detected and reported.
- ``email_notifications`` requires a non-empty ``email`` (service layer).
- Orders reference a persona by name and phone strings; renames and
  phone changes are cascaded onto them by ``PersonaService``.
"""

from __future__ import annotations

from django.db import models

from modules.core.models import TenantModel


class Persona(TenantModel):
    nombre = models.CharField(max_length=100)
    telefono = models.CharField(max_length=20)
    email = models.CharField(max_length=254, blank=True, default="")
    phone_notifications = models.BooleanField(default=False)
    email_notifications = models.BooleanField(default=False)

    class Meta:
        db_table = "personas"
        ordering = ["nombre"]
        indexes = [
            models.Index(
                fields=["selling_point", "telefono"], name="personas_sp_telefono_idx"
            ),
            models.Index(
                fields=["selling_point", "nombre"], name="personas_sp_nombre_idx"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.nombre} ({self.telefono})"
