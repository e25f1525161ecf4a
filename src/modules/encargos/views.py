"""Encargo API views.

Exposes the ``EncargoService`` via HTTP using DRF ViewSets.  Services
are built per request, bound to the caller's selling point.
Domain exceptions are caught and translated into appropriate
HTTP status codes; the view never swallows generic exceptions.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.catalog.repositories.django_repository import (
    AlmacenDjangoRepository,
    LaboratorioDjangoRepository,
    ProductoDjangoRepository,
)
from modules.core.dtos import field_errors
from modules.core.pagination import StandardResultsSetPagination
from modules.encargos.constants import STAGE_ORDER
from modules.encargos.dtos import ChangeStageDTO, CreateEncargoDTO, UpdateEncargoDTO
from modules.encargos.exceptions import (
    EncargoNotFound,
    InconsistentStages,
    InvalidStageDecision,
    PotentialDuplicate,
    StageChangedConcurrently,
)
from modules.encargos.filters import EncargoFilter
from modules.encargos.models import Encargo
from modules.encargos.repositories.django_repository import EncargoDjangoRepository
from modules.encargos.serializers import (
    EncargoSerializer,
    SummarySerializer,
    serialize_transition,
)
from modules.encargos.services import (
    ConfirmationRequired,
    EncargoService,
    NotificationRequired,
    StageChangeCancelled,
)
from modules.notifications.exceptions import (
    NotificationChannelUnavailable,
    NotificationDeliveryFailed,
)
from modules.notifications.services import NotificationTrigger
from modules.personas.exceptions import PhoneAlreadyInUse
from modules.personas.serializers import PersonaSerializer
from modules.personas.views import build_persona_service

NOT_FOUND = {"detail": "Encargo no encontrado."}


def build_encargo_service(selling_point: str) -> EncargoService:
    persona_service = build_persona_service(selling_point)
    return EncargoService(
        encargo_repository=EncargoDjangoRepository(selling_point),
        persona_service=persona_service,
        producto_repository=ProductoDjangoRepository(selling_point),
        laboratorio_repository=LaboratorioDjangoRepository(selling_point),
        almacen_repository=AlmacenDjangoRepository(selling_point),
        notification_trigger=NotificationTrigger(persona_service),
    )


def _invalid(exc: PydanticValidationError) -> Response:
    return Response(
        {"detail": "Datos inválidos.", "errors": field_errors(exc)},
        status=status.HTTP_400_BAD_REQUEST,
    )


class EncargoViewSet(GenericViewSet):
    """ViewSet for Encargo operations.

    Does **not** extend ``ModelViewSet``; all ORM access goes through
    the service/repository layer.
    """

    queryset = Encargo.objects.none()
    serializer_class = EncargoSerializer
    filterset_class = EncargoFilter
    ordering_fields = ["fecha", "created_at", "pagado", "persona", "producto"]
    ordering = ["-fecha", "-created_at"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]

    def get_service(self) -> EncargoService:
        return build_encargo_service(self.request.user.selling_point)

    def get_queryset(self):
        return self.get_service().list_encargos()

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/encargos/

        Filtering is handled by ``EncargoFilter``, ordering by
        ``OrderingFilter``.  Results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = EncargoSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/encargos/{pk}/"""
        try:
            encargo = self.get_service().get_encargo(pk)
        except EncargoNotFound:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response(EncargoSerializer(encargo).data)

    @action(detail=False, methods=["get"], url_path="search")
    def search(self, request: Request) -> Response:
        """GET /api/v1/encargos/search/?q=

        Unpaginated; matches persona, telefono, producto, laboratorio and
        observaciones (case-insensitive substring).
        """
        results = self.get_service().search_encargos(request.query_params.get("q", ""))
        return Response(EncargoSerializer(results, many=True).data)

    @action(detail=False, methods=["get"], url_path="summary")
    def summary(self, request: Request) -> Response:
        """GET /api/v1/encargos/summary/"""
        return Response(SummarySerializer(self.get_service().summary()).data)

    # ------------------------------------------------------------------
    # Create / Update / Destroy
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/encargos/

        Unknown product, laboratory, warehouse and customer names are
        registered on the fly.  A likely duplicate answers 409 unless the
        request carries ``allow_duplicate: true``.
        """
        try:
            dto = CreateEncargoDTO(**_pick(request.data, CreateEncargoDTO.model_fields))
        except PydanticValidationError as exc:
            return _invalid(exc)

        try:
            encargo = self.get_service().create_encargo(dto)
        except InconsistentStages as exc:
            return Response(
                {"detail": str(exc), "errors": exc.errors},
                status=status.HTTP_400_BAD_REQUEST,
            )
        except PotentialDuplicate as exc:
            return Response(
                {"detail": str(exc), "code": "potential_duplicate"},
                status=status.HTTP_409_CONFLICT,
            )

        return Response(EncargoSerializer(encargo).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/encargos/{pk}/

        Workflow flags are refused here, use ``POST /encargos/{id}/stage/``.
        """
        stage_fields = [name for name in STAGE_ORDER if name in request.data]
        if stage_fields:
            return Response(
                {
                    "detail": "Las etapas se cambian con /stage/.",
                    "errors": {
                        name: "Campo no editable directamente." for name in stage_fields
                    },
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            dto = UpdateEncargoDTO(**_pick(request.data, UpdateEncargoDTO.model_fields))
        except PydanticValidationError as exc:
            return _invalid(exc)

        try:
            encargo = self.get_service().update_encargo(pk, dto)
        except EncargoNotFound:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except PhoneAlreadyInUse as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)

        return Response(EncargoSerializer(encargo).data)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/encargos/{pk}/"""
        try:
            self.get_service().delete_encargo(pk)
        except EncargoNotFound:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"], url_path="stage")
    def stage(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/encargos/{pk}/stage/

        Body: ``{"stage", "value", "decision"?, "notify"?}``.

        - 200: applied (``whatsapp_url`` set when WhatsApp was chosen) or
          cancelled (``cancelled: true``).
        - 409 ``confirmation_required``: repeat with a ``decision``.
        - 202 ``notification_required``: repeat with ``notify``.
        - 502: the email could not be sent; nothing was written.
        - 409 ``stage_changed``: the flags moved while the change was being
          prepared; nothing was written.
        """
        try:
            dto = ChangeStageDTO(**_pick(request.data, ChangeStageDTO.model_fields))
        except PydanticValidationError as exc:
            return _invalid(exc)

        try:
            outcome = self.get_service().change_stage(
                pk, dto.stage, dto.value, decision=dto.decision, notify=dto.notify
            )
        except EncargoNotFound:
            return Response(NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except InvalidStageDecision as exc:
            return Response(
                {"detail": str(exc), "errors": exc.errors},
                status=status.HTTP_400_BAD_REQUEST,
            )
        except NotificationChannelUnavailable as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        except StageChangedConcurrently as exc:
            return Response(
                {"detail": str(exc), "code": "stage_changed"},
                status=status.HTTP_409_CONFLICT,
            )
        except NotificationDeliveryFailed as exc:
            return Response(
                {"detail": str(exc), "code": "notification_failed"},
                status=status.HTTP_502_BAD_GATEWAY,
            )

        if isinstance(outcome, ConfirmationRequired):
            payload = serialize_transition(outcome.transition)
            return Response(
                {
                    "detail": payload["message"],
                    "code": "confirmation_required",
                    "transition": payload,
                },
                status=status.HTTP_409_CONFLICT,
            )
        if isinstance(outcome, NotificationRequired):
            return Response(
                {
                    "detail": "Elige cómo avisar al cliente antes de marcarlo como recibido.",
                    "code": "notification_required",
                    "channels": list(outcome.prompt.channels),
                    "persona": PersonaSerializer(outcome.prompt.persona).data,
                    "pending_fields": outcome.pending_fields,
                },
                status=status.HTTP_202_ACCEPTED,
            )
        if isinstance(outcome, StageChangeCancelled):
            return Response(
                {"cancelled": True, "encargo": EncargoSerializer(outcome.encargo).data}
            )
        return Response(
            {
                "cancelled": False,
                "encargo": EncargoSerializer(outcome.encargo).data,
                "whatsapp_url": outcome.whatsapp_url,
            }
        )


def _pick(data, fields) -> dict:
    """Keep only the keys a DTO declares, so unknown input is ignored."""
    return {name: data[name] for name in fields if name in data}
