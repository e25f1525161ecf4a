"""Catalog service layer.

Creation is idempotent by name: asking for an existing ``nombre``
returns the stored entry instead of adding a twin.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Tuple

import structlog
from django.db import transaction

from modules.catalog.exceptions import CatalogEntryNotFound
from modules.core.retry import retry_on_transient

if TYPE_CHECKING:
    from modules.catalog.dtos import CreateCatalogEntryDTO
    from modules.catalog.models import CatalogEntry
    from modules.catalog.repositories.interfaces import ICatalogRepository

logger = structlog.get_logger(__name__)


class CatalogService:
    """Use-cases shared by the three reference lists."""

    def __init__(self, repository: ICatalogRepository) -> None:
        self._repo = repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_entry(self, dto: CreateCatalogEntryDTO) -> Tuple[CatalogEntry, bool]:
        return self._repo.get_or_create_by_nombre(dto.nombre)

    @transaction.atomic
    def delete_entry(self, id: str) -> None:
        """Delete an entry; orders keep their copy of the name.

        Raises:
            CatalogEntryNotFound: if the entry does not exist.
        """
        if not self._repo.delete(id):
            raise CatalogEntryNotFound(f"Entrada {id} no encontrada.")
        logger.info("catalog.entry_deleted", entry_id=str(id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @retry_on_transient
    def list_entries(self) -> List[CatalogEntry]:
        return list(self._repo.list())
