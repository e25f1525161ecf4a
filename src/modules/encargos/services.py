"""Encargo service layer (Use Cases).

Orchestrates order recording, editing and the fulfilment workflow.
All write operations are atomic; the service defines the unit-of-work
boundary.

Business rules enforced:
- Stage flags change one at a time through ``change_stage``; ordering
  violations need an explicit operator decision (``workflow.resolve``).
- Setting ``recibido`` on may require choosing a notification channel
  first (``NotificationTrigger``); an email that cannot be sent aborts
  the whole change.
- A likely duplicate (same customer, product and day) is refused unless
  acknowledged.
- Product / laboratory / warehouse names and the customer are created
  on the fly when first used.
- Editing the customer of an encargo goes through the personas cascade.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from django.db import transaction

from modules.core.retry import retry_on_transient
from modules.core.validation import check_potential_duplicate
from modules.encargos.constants import NotifyChoice, Stage
from modules.encargos.exceptions import (
    EncargoNotFound,
    InconsistentStages,
    InvalidStageDecision,
    PotentialDuplicate,
    StageChangedConcurrently,
)
from modules.encargos.models import Encargo
from modules.encargos.workflow import (
    InvalidDecision,
    StageFlags,
    Transition,
    classify_transition,
    requires_confirmation,
    resolve,
)
from modules.notifications.services import NotificationPrompt

if TYPE_CHECKING:
    from modules.catalog.repositories.interfaces import ICatalogRepository
    from modules.encargos.dtos import CreateEncargoDTO, UpdateEncargoDTO
    from modules.encargos.repositories.interfaces import IEncargoRepository
    from modules.notifications.services import NotificationTrigger
    from modules.personas.services import PersonaService

logger = structlog.get_logger(__name__)

INCONSISTENT_STAGES_MESSAGE = (
    "Un encargo solo puede estar entregado si está recibido, y recibido si está pedido."
)


# ---------------------------------------------------------------------------
# change_stage outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StageApplied:
    encargo: Encargo
    whatsapp_url: Optional[str] = None


@dataclass(frozen=True)
class ConfirmationRequired:
    transition: Transition


@dataclass(frozen=True)
class NotificationRequired:
    prompt: NotificationPrompt
    pending_fields: Dict[str, bool] = field(default_factory=dict)


@dataclass(frozen=True)
class StageChangeCancelled:
    encargo: Encargo


class EncargoService:
    """Application service for Encargo use-cases.

    Receives repositories and collaborators via constructor injection
    (DIP); all of them must be bound to the same selling point.
    """

    def __init__(
        self,
        encargo_repository: IEncargoRepository,
        persona_service: PersonaService,
        producto_repository: ICatalogRepository,
        laboratorio_repository: ICatalogRepository,
        almacen_repository: ICatalogRepository,
        notification_trigger: NotificationTrigger,
    ) -> None:
        self._repo = encargo_repository
        self._personas = persona_service
        self._productos = producto_repository
        self._laboratorios = laboratorio_repository
        self._almacenes = almacen_repository
        self._notifications = notification_trigger

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_encargo(self, dto: CreateEncargoDTO) -> Encargo:
        """Record a new encargo.

        Steps:
        1. Check the initial flags respect the stage ordering.
        2. Refuse a potential duplicate unless ``allow_duplicate``.
        3. Create missing catalog entries and the customer.
        4. Persist the encargo.

        Raises:
            InconsistentStages: initial flags out of order.
            PotentialDuplicate: same customer, product and day already exist.
        """
        log = logger.bind(fecha=str(dto.fecha))

        flags = StageFlags(pedido=dto.pedido, recibido=dto.recibido, entregado=dto.entregado)
        if not flags.is_consistent:
            raise InconsistentStages({"recibido": INCONSISTENT_STAGES_MESSAGE})

        if not dto.allow_duplicate and check_potential_duplicate(
            dto, self._repo.on_date(dto.fecha)
        ):
            log.warning("encargo.potential_duplicate")
            raise PotentialDuplicate(
                "Ya existe un encargo del mismo cliente para este producto en esta fecha."
            )

        self._register_catalog_names(dto.producto, dto.laboratorio, dto.almacen)
        self._personas.ensure_persona(dto.persona, dto.telefono)

        encargo = Encargo(
            fecha=dto.fecha,
            producto=dto.producto,
            laboratorio=dto.laboratorio,
            almacen=dto.almacen,
            pedido=dto.pedido,
            recibido=dto.recibido,
            entregado=dto.entregado,
            persona=dto.persona,
            telefono=dto.telefono,
            avisado=dto.avisado,
            pagado=dto.pagado,
            observaciones=dto.observaciones,
        )
        encargo = self._repo.save(encargo)
        log.info("encargo.created", encargo_id=str(encargo.id))
        return encargo

    @transaction.atomic
    def update_encargo(self, id: str, dto: UpdateEncargoDTO) -> Encargo:
        """Patch the non-workflow fields of an encargo.

        ``persona`` / ``telefono`` edits are delegated to
        ``PersonaService.update_encargo_with_persona_cascade``.

        Raises:
            EncargoNotFound: if the encargo does not exist.
            PhoneAlreadyInUse: the new phone belongs to another persona.
        """
        encargo = self._repo.get_for_update(id)
        if not encargo:
            raise EncargoNotFound(f"Encargo {id} no encontrado.")

        changes = dto.changes()
        customer = {
            name: changes.pop(name) for name in ("persona", "telefono") if name in changes
        }

        if changes:
            self._register_catalog_names(
                changes.get("producto"), changes.get("laboratorio"), changes.get("almacen")
            )
            for name, value in changes.items():
                setattr(encargo, name, value)
            self._repo.update_fields(encargo, list(changes))

        if customer:
            encargo = self._personas.update_encargo_with_persona_cascade(
                str(encargo.id),
                persona=customer.get("persona"),
                telefono=customer.get("telefono"),
            )

        logger.info("encargo.updated", encargo_id=str(id), fields=sorted({*changes, *customer}))
        return encargo

    def change_stage(
        self,
        id: str,
        stage: str,
        value: bool,
        decision: Optional[str] = None,
        notify: Optional[str] = None,
    ) -> StageApplied | ConfirmationRequired | NotificationRequired | StageChangeCancelled:
        """Apply one workflow flag change.

        A first call without ``decision`` / ``notify`` may come back as
        ``ConfirmationRequired`` or ``NotificationRequired``; nothing has
        been written in that case, and the caller repeats the request with
        the operator's answer.

        The change is planned on an unlocked read and the notification is
        delivered before any row lock is taken.  The write then locks the
        row and only goes ahead if the flags are still the planned ones.

        Raises:
            EncargoNotFound: if the encargo does not exist.
            InvalidStageDecision: decision not allowed for the transition.
            NotificationChannelUnavailable: channel not enabled.
            NotificationDeliveryFailed: the email could not be sent.
            StageChangedConcurrently: the flags moved before the write.
        """
        encargo = self._repo.get_by_id(id)
        if not encargo:
            raise EncargoNotFound(f"Encargo {id} no encontrado.")

        log = logger.bind(encargo_id=str(id), stage=stage, value=value)
        planned_from = encargo.flags
        transition = classify_transition(planned_from, stage, value)

        if requires_confirmation(transition) and decision is None:
            log.info("encargo.stage_confirmation_required", kind=type(transition).__name__)
            return ConfirmationRequired(transition=transition)

        try:
            fields = resolve(transition, decision)
        except InvalidDecision as exc:
            raise InvalidStageDecision({"decision": str(exc)}) from exc

        if fields is None:
            log.info("encargo.stage_change_cancelled")
            return StageChangeCancelled(encargo=encargo)

        fields = {str(name): flag for name, flag in fields.items()}
        whatsapp_url = None

        if fields.get(Stage.RECIBIDO) is True and not encargo.recibido:
            prompt = self._notifications.prompt_for(encargo)
            if prompt is not None:
                if notify is None:
                    log.info("encargo.notification_required", channels=prompt.channels)
                    return NotificationRequired(prompt=prompt, pending_fields=fields)
                if notify != NotifyChoice.NONE:
                    whatsapp_url = self._notifications.deliver(notify, encargo, prompt.persona)
                    fields["avisado"] = True

        encargo = self._write_stage_fields(id, planned_from, fields)
        log.info("encargo.stage_changed", fields=fields)
        return StageApplied(encargo=encargo, whatsapp_url=whatsapp_url)

    @transaction.atomic
    def _write_stage_fields(
        self, id: str, planned_from: StageFlags, fields: Dict[str, bool]
    ) -> Encargo:
        encargo = self._repo.get_for_update(id)
        if not encargo:
            raise EncargoNotFound(f"Encargo {id} no encontrado.")
        if encargo.flags != planned_from:
            logger.warning(
                "encargo.stage_changed_concurrently",
                encargo_id=str(id),
                planned=fields,
            )
            raise StageChangedConcurrently(
                "El encargo ha cambiado mientras tanto. Recarga y vuelve a intentarlo."
            )
        for name, flag in fields.items():
            setattr(encargo, name, flag)
        return self._repo.update_fields(encargo, list(fields))

    @transaction.atomic
    def delete_encargo(self, id: str) -> None:
        """Hard-delete an encargo.

        Raises:
            EncargoNotFound: if the encargo does not exist.
        """
        if not self._repo.delete(id):
            raise EncargoNotFound(f"Encargo {id} no encontrado.")
        logger.info("encargo.deleted", encargo_id=str(id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_encargo(self, id: str) -> Encargo:
        """Retrieve a single encargo.

        Raises:
            EncargoNotFound: if the encargo does not exist.
        """
        encargo = self._repo.get_by_id(id)
        if not encargo:
            raise EncargoNotFound(f"Encargo {id} no encontrado.")
        return encargo

    def list_encargos(self, filters: Optional[Dict[str, Any]] = None):
        return self._repo.list(filters)

    @retry_on_transient
    def search_encargos(self, query: str) -> List[Encargo]:
        """Unpaginated search; an empty query returns nothing."""
        query = (query or "").strip()
        if not query:
            return []
        return list(self._repo.search(query))

    @retry_on_transient
    def summary(self) -> Dict[str, Any]:
        return self._repo.summary()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _register_catalog_names(
        self,
        producto: Optional[str],
        laboratorio: Optional[str],
        almacen: Optional[str],
    ) -> None:
        for repository, nombre in (
            (self._productos, producto),
            (self._laboratorios, laboratorio),
            (self._almacenes, almacen),
        ):
            if nombre:
                repository.get_or_create_by_nombre(nombre)
