"""Persona API views.

Exposes the ``PersonaService`` via HTTP.  Every request builds its
service against the repositories of the caller's selling point.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.mixins import ListModelMixin
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.dtos import field_errors
from modules.core.exceptions import DomainValidationError
from modules.encargos.repositories.django_repository import EncargoDjangoRepository
from modules.encargos.serializers import EncargoHistorySerializer
from modules.personas.dtos import CreatePersonaDTO, UpdatePersonaDTO
from modules.personas.exceptions import (
    PersonaHasEncargos,
    PersonaNotFound,
    PhoneAlreadyInUse,
)
from modules.personas.filters import PersonaFilter
from modules.personas.models import Persona
from modules.personas.repositories.django_repository import PersonaDjangoRepository
from modules.personas.serializers import (
    ConsistencyReportSerializer,
    NotificationPreferencesSerializer,
    PersonaSerializer,
    RepairReportSerializer,
)
from modules.personas.services import PersonaService

NOT_FOUND = {"detail": "Cliente no encontrado."}


def build_persona_service(selling_point: str) -> PersonaService:
    return PersonaService(
        persona_repository=PersonaDjangoRepository(selling_point),
        encargo_repository=EncargoDjangoRepository(selling_point),
    )


def _bad_request(errors: dict) -> Response:
    return Response(
        {"detail": "Datos inválidos.", "errors": errors},
        status=status.HTTP_400_BAD_REQUEST,
    )


class PersonaViewSet(ListModelMixin, GenericViewSet):
    """ViewSet for Persona operations.

    List goes through ``ListModelMixin`` (filtered, ordered, paginated);
    every other action calls ``PersonaService`` and maps its domain
    exceptions onto status codes.
    """

    queryset = Persona.objects.none()
    serializer_class = PersonaSerializer
    filterset_class = PersonaFilter
    ordering_fields = ["nombre", "created_at"]
    ordering = ["nombre"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]

    def get_service(self) -> PersonaService:
        return build_persona_service(self.request.user.selling_point)

    def get_queryset(self):
        return self.get_service().list_personas()

    # ------------------------------------------------------------------
    # Retrieve / Create / Update / Destroy
    # ------------------------------------------------------------------

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/personas/{pk}/"""
        try:
            persona = self.get_service().get_persona(pk)
        except PersonaNotFound:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response(PersonaSerializer(persona).data)

    def create(self, request: Request) -> Response:
        """POST /api/v1/personas/"""
        data = request.data
        try:
            dto = CreatePersonaDTO(
                nombre=data.get("nombre", ""),
                telefono=data.get("telefono", ""),
                email=data.get("email") or "",
                phone_notifications=data.get("phone_notifications", False),
                email_notifications=data.get("email_notifications", False),
            )
        except PydanticValidationError as exc:
            return _bad_request(field_errors(exc))

        try:
            persona = self.get_service().create_persona(dto)
        except PhoneAlreadyInUse as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        except DomainValidationError as exc:
            return _bad_request(exc.errors)

        return Response(PersonaSerializer(persona).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/personas/{pk}/

        A new name or phone is copied onto every encargo carrying the old one.
        """
        data = request.data
        try:
            dto = UpdatePersonaDTO(
                **{
                    name: data[name]
                    for name in UpdatePersonaDTO.model_fields
                    if name in data
                }
            )
        except PydanticValidationError as exc:
            return _bad_request(field_errors(exc))

        try:
            persona = self.get_service().update_persona(pk, dto)
        except PersonaNotFound:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except PhoneAlreadyInUse as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        except DomainValidationError as exc:
            return _bad_request(exc.errors)

        return Response(PersonaSerializer(persona).data)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/personas/{pk}/

        Refused with 409 while any encargo references the persona.
        """
        try:
            self.get_service().delete_persona(pk)
        except PersonaNotFound:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except PersonaHasEncargos as exc:
            return Response(
                {"detail": str(exc), "blocking_count": exc.blocking_count},
                status=status.HTTP_409_CONFLICT,
            )
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ------------------------------------------------------------------
    # Custom actions
    # ------------------------------------------------------------------

    @action(detail=True, methods=["get"], url_path="encargos")
    def encargos(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/personas/{pk}/encargos/"""
        try:
            history = self.get_service().persona_history(pk)
        except PersonaNotFound:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response(EncargoHistorySerializer(history, many=True).data)

    @action(detail=True, methods=["patch"], url_path="notifications")
    def notifications(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/personas/{pk}/notifications/"""
        serializer = NotificationPreferencesSerializer(data=request.data)
        if not serializer.is_valid():
            return _bad_request(serializer.errors)
        preferences = serializer.validated_data

        service = self.get_service()
        try:
            current = service.get_persona(pk)
            persona = service.update_notification_preferences(
                pk,
                phone_notifications=preferences.get(
                    "phone_notifications", current.phone_notifications
                ),
                email_notifications=preferences.get(
                    "email_notifications", current.email_notifications
                ),
            )
        except PersonaNotFound:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except DomainValidationError as exc:
            return _bad_request(exc.errors)
        return Response(PersonaSerializer(persona).data)

    @action(detail=True, methods=["patch"], url_path="email")
    def email(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/personas/{pk}/email/

        An empty email also switches email notifications off.
        """
        try:
            persona = self.get_service().update_email(pk, request.data.get("email") or "")
        except PersonaNotFound:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except DomainValidationError as exc:
            return _bad_request(exc.errors)
        return Response(PersonaSerializer(persona).data)

    @action(detail=False, methods=["get"], url_path="consistency")
    def consistency(self, request: Request) -> Response:
        """GET /api/v1/personas/consistency/"""
        report = self.get_service().check_data_consistency()
        return Response(
            ConsistencyReportSerializer(
                {**report.model_dump(), "is_consistent": report.is_consistent}
            ).data
        )

    @action(detail=False, methods=["post"], url_path="repair")
    def repair(self, request: Request) -> Response:
        """POST /api/v1/personas/repair/"""
        report = self.get_service().repair_data_inconsistencies()
        return Response(RepairReportSerializer(report.model_dump()).data)
