"""Base abstract models shared by every bounded context.

Provides:
- ``BaseModel``: UUIDv7 primary key + created_at / updated_at timestamps.
- ``TenantModel``: Extends BaseModel with the ``selling_point`` partition key.

Design decisions:
- Every concrete entity carries ``selling_point``; repositories are bound to
  one selling point and filter every query by it.  There is no ambient
  "current tenant"; the key travels explicitly with the repository.
- ``save()`` guard ensures ``updated_at`` is included when ``update_fields``
  is specified (Django skips ``auto_now`` fields otherwise).
"""

from __future__ import annotations

import uuid6
from django.db import models

# ---------------------------------------------------------------------------
# BaseModel
# ---------------------------------------------------------------------------


class BaseModel(models.Model):
    """Abstract base with UUIDv7 PK and timestamp bookkeeping."""

    id = models.UUIDField(
        primary_key=True,
        default=uuid6.uuid7,
        editable=False,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        """Ensure ``updated_at`` is refreshed even when ``update_fields`` is passed."""
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "updated_at" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["updated_at"]
        super().save(*args, **kwargs)


# ---------------------------------------------------------------------------
# Tenant partitioning
# ---------------------------------------------------------------------------


class TenantModel(BaseModel):
    """Abstract model partitioned by selling point (tenant)."""

    selling_point = models.CharField(max_length=64, db_index=True)

    class Meta:
        abstract = True
