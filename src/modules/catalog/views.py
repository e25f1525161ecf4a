"""Catalog API views.

One base ViewSet exposes list / create / delete; each reference list
plugs in its repository class.
"""

from __future__ import annotations

from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import ViewSet

from modules.catalog.dtos import CreateCatalogEntryDTO
from modules.catalog.exceptions import CatalogEntryNotFound
from modules.catalog.repositories.django_repository import (
    AlmacenDjangoRepository,
    CatalogDjangoRepository,
    LaboratorioDjangoRepository,
    ProductoDjangoRepository,
)
from modules.catalog.serializers import CatalogEntrySerializer
from modules.catalog.services import CatalogService
from modules.core.dtos import field_errors


class CatalogViewSet(ViewSet):
    repository_class: type[CatalogDjangoRepository]

    def get_service(self) -> CatalogService:
        return CatalogService(self.repository_class(self.request.user.selling_point))

    def list(self, request: Request) -> Response:
        entries = self.get_service().list_entries()
        return Response(CatalogEntrySerializer(entries, many=True).data)

    def create(self, request: Request) -> Response:
        """Returns 201 for a new name, 200 when the name already existed."""
        try:
            dto = CreateCatalogEntryDTO(nombre=request.data.get("nombre", ""))
        except PydanticValidationError as exc:
            return Response(
                {"detail": "Datos inválidos.", "errors": field_errors(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        entry, created = self.get_service().create_entry(dto)
        return Response(
            CatalogEntrySerializer(entry).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        try:
            self.get_service().delete_entry(pk)
        except CatalogEntryNotFound:
            return Response(
                {"detail": "Entrada no encontrada."},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(status=status.HTTP_204_NO_CONTENT)


class ProductoViewSet(CatalogViewSet):
    repository_class = ProductoDjangoRepository


class LaboratorioViewSet(CatalogViewSet):
    repository_class = LaboratorioDjangoRepository


class AlmacenViewSet(CatalogViewSet):
    repository_class = AlmacenDjangoRepository
