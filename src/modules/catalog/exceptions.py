"""Catalog domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import EntityNotFound


class CatalogEntryNotFound(EntityNotFound):
    """The reference entry does not exist in this selling point."""
