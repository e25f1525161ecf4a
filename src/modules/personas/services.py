"""Persona service layer: the contact identity resolver.

Orders carry a copy of the customer's name and phone instead of a
foreign key.  This service keeps those copies in step with the
``Persona`` record.  Every multi-row change runs in one transaction so
that a failure leaves no partial cascade behind.

Business rules enforced:
- A phone belongs to at most one persona per selling point.
- Renaming a persona renames every encargo carrying the old name.
- Changing a persona's phone rewrites every encargo carrying the old phone.
- A persona referenced by any encargo (name or phone) cannot be deleted.
- ``email_notifications`` requires an email.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

import structlog
from django.db import DatabaseError, transaction

from modules.core.exceptions import DomainValidationError
from modules.core.phone import normalize_phone_number
from modules.core.retry import retry_on_transient
from modules.core.validation import validate_email
from modules.encargos.exceptions import EncargoNotFound
from modules.personas.dtos import ConsistencyReport, RepairReport
from modules.personas.exceptions import (
    PersonaHasEncargos,
    PersonaNotFound,
    PhoneAlreadyInUse,
)
from modules.personas.models import Persona

if TYPE_CHECKING:
    from modules.encargos.models import Encargo
    from modules.encargos.repositories.interfaces import IEncargoRepository
    from modules.personas.dtos import CreatePersonaDTO, UpdatePersonaDTO
    from modules.personas.repositories.interfaces import IPersonaRepository

logger = structlog.get_logger(__name__)

EMAIL_REQUIRED_MESSAGE = "Para activar las notificaciones por email se necesita un email."


class PersonaService:
    """Application service for Persona use-cases.

    Receives both repositories via constructor injection (DIP); they must
    be bound to the same selling point.
    """

    def __init__(
        self,
        persona_repository: IPersonaRepository,
        encargo_repository: IEncargoRepository,
    ) -> None:
        self._persona_repo = persona_repository
        self._encargo_repo = encargo_repository

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @retry_on_transient
    def find_persona_by_contact(
        self, telefono: Optional[str], nombre: Optional[str] = None
    ) -> Optional[Persona]:
        """Best persona for a contact.

        With both fields: exact match on both, then phone, then name.
        With the phone only: phone match.  Ties go to the oldest record.
        """
        return self._resolve(telefono, nombre)

    def _resolve(self, telefono: Optional[str], nombre: Optional[str] = None) -> Optional[Persona]:
        telefono = normalize_phone_number(telefono or "")
        if telefono and nombre:
            exact = self._persona_repo.find_by_contact(telefono=telefono, nombre=nombre)
            if exact is not None:
                return exact
        if telefono:
            by_phone = self._persona_repo.find_by_contact(telefono=telefono)
            if by_phone is not None:
                return by_phone
        if nombre:
            return self._persona_repo.find_by_contact(nombre=nombre)
        return None

    def get_persona(self, id: str) -> Persona:
        """Retrieve a single persona.

        Raises:
            PersonaNotFound: if the persona does not exist.
        """
        persona = self._persona_repo.get_by_id(id)
        if not persona:
            raise PersonaNotFound(f"Persona {id} no encontrada.")
        return persona

    def list_personas(self, filters: Optional[Dict[str, Any]] = None):
        return self._persona_repo.list(filters)

    @retry_on_transient
    def persona_history(self, id: str) -> List[Encargo]:
        """Encargos of a persona, matched by phone."""
        persona = self.get_persona(id)
        return list(self._encargo_repo.list({"telefono": persona.telefono}))

    @retry_on_transient
    def check_data_consistency(self) -> ConsistencyReport:
        """Read-only audit of the persona/encargo cross references."""
        report = ConsistencyReport(
            orphaned_encargos=self._encargo_repo.orphaned_count(),
            inconsistent_personas=self._encargo_repo.inconsistent().count(),
            duplicate_phones=self._persona_repo.duplicate_phone_count(),
        )
        logger.info("persona.consistency_checked", **report.model_dump())
        return report

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_persona(self, dto: CreatePersonaDTO) -> Persona:
        """Create a persona after checking phone uniqueness.

        Raises:
            PhoneAlreadyInUse: another persona already has the phone.
            DomainValidationError: email notifications without an email.
        """
        if self._persona_repo.phone_taken_by_other(dto.telefono):
            raise PhoneAlreadyInUse(
                f"El teléfono {dto.telefono} ya pertenece a otro cliente."
            )
        persona = Persona(
            nombre=dto.nombre,
            telefono=dto.telefono,
            email=dto.email,
            phone_notifications=dto.phone_notifications,
            email_notifications=dto.email_notifications,
        )
        self._check_email_rule(persona)
        persona = self._persona_repo.save(persona)
        logger.info("persona.created", persona_id=str(persona.id))
        return persona

    @transaction.atomic
    def ensure_persona(self, nombre: str, telefono: str) -> Tuple[Persona, bool]:
        """Return the persona holding ``telefono``, creating it when missing.

        Used when an encargo is recorded for a customer typed inline.
        """
        telefono = normalize_phone_number(telefono)
        existing = self._persona_repo.find_by_contact(telefono=telefono)
        if existing is not None:
            return existing, False
        persona = self._persona_repo.save(Persona(nombre=nombre, telefono=telefono))
        logger.info("persona.auto_created", persona_id=str(persona.id))
        return persona, True

    @transaction.atomic
    def update_persona(self, id: str, dto: UpdatePersonaDTO) -> Persona:
        """Patch a persona and cascade name/phone changes onto its encargos.

        Raises:
            PersonaNotFound: if the persona does not exist.
            PhoneAlreadyInUse: the new phone belongs to another persona.
            DomainValidationError: email notifications without an email.
        """
        persona = self._persona_repo.get_for_update(id)
        if not persona:
            raise PersonaNotFound(f"Persona {id} no encontrada.")

        if dto.telefono is not None and dto.telefono != persona.telefono:
            self._change_telefono(persona, dto.telefono)
        if dto.nombre is not None and dto.nombre != persona.nombre:
            self._change_nombre(persona, dto.nombre)

        if dto.email is not None:
            persona.email = dto.email
        if dto.phone_notifications is not None:
            persona.phone_notifications = dto.phone_notifications
        if dto.email_notifications is not None:
            persona.email_notifications = dto.email_notifications

        self._check_email_rule(persona)
        persona = self._persona_repo.save(persona)
        logger.info("persona.updated", persona_id=str(id))
        return persona

    @transaction.atomic
    def update_notification_preferences(
        self, id: str, phone_notifications: bool, email_notifications: bool
    ) -> Persona:
        persona = self._persona_repo.get_for_update(id)
        if not persona:
            raise PersonaNotFound(f"Persona {id} no encontrada.")
        persona.phone_notifications = phone_notifications
        persona.email_notifications = email_notifications
        self._check_email_rule(persona)
        persona = self._persona_repo.save(persona)
        logger.info(
            "persona.notifications_updated",
            persona_id=str(id),
            phone_notifications=phone_notifications,
            email_notifications=email_notifications,
        )
        return persona

    @transaction.atomic
    def update_email(self, id: str, email: str) -> Persona:
        """Set or clear the email; clearing it also disables email notifications."""
        email = (email or "").strip()
        result = validate_email(email)
        if not result.is_valid:
            raise DomainValidationError({"email": result.error})

        persona = self._persona_repo.get_for_update(id)
        if not persona:
            raise PersonaNotFound(f"Persona {id} no encontrada.")
        persona.email = email
        if not email:
            persona.email_notifications = False
        persona = self._persona_repo.save(persona)
        logger.info("persona.email_updated", persona_id=str(id))
        return persona

    @transaction.atomic
    def update_encargo_with_persona_cascade(
        self,
        encargo_id: str,
        persona: Optional[str] = None,
        telefono: Optional[str] = None,
    ) -> Encargo:
        """Edit an encargo's customer and keep the persona graph consistent.

        Steps:
        1. Locate the persona holding the encargo's *current* phone.
        2. If found, push the edited name/phone onto that persona and onto
           every encargo still carrying its old value.
        3. If none is found and both values are present, create a persona.
        4. If the new phone belongs to a different persona, fail before
           writing anything.

        Raises:
            EncargoNotFound: if the encargo does not exist.
            PhoneAlreadyInUse: step 4.
        """
        encargo = self._encargo_repo.get_for_update(encargo_id)
        if not encargo:
            raise EncargoNotFound(f"Encargo {encargo_id} no encontrado.")

        new_nombre = persona if persona is not None else encargo.persona
        new_telefono = (
            normalize_phone_number(telefono) if telefono is not None else encargo.telefono
        )
        log = logger.bind(encargo_id=str(encargo_id))

        current = self._persona_repo.find_by_contact(telefono=encargo.telefono)

        if new_telefono != encargo.telefono:
            owner = self._persona_repo.find_by_contact(telefono=new_telefono)
            if owner is not None and (current is None or owner.id != current.id):
                log.warning("encargo.phone_conflict")
                raise PhoneAlreadyInUse(
                    f"El teléfono {new_telefono} ya pertenece a otro cliente."
                )

        if current is not None:
            locked = self._persona_repo.get_for_update(str(current.id))
            changed = False
            # Only the edited fields reach the persona; a stale copy on this
            # encargo must not overwrite it.
            if telefono is not None and new_telefono != locked.telefono:
                self._change_telefono(locked, new_telefono)
                changed = True
            if persona is not None and new_nombre != locked.nombre:
                self._change_nombre(locked, new_nombre)
                changed = True
            if changed:
                self._persona_repo.save(locked)
        elif new_nombre and new_telefono:
            created = self._persona_repo.save(
                Persona(nombre=new_nombre, telefono=new_telefono)
            )
            log.info("persona.auto_created", persona_id=str(created.id))

        encargo.refresh_from_db(fields=["persona", "telefono", "updated_at"])
        encargo.persona = new_nombre
        encargo.telefono = new_telefono
        encargo = self._encargo_repo.update_fields(encargo, ["persona", "telefono"])
        log.info("encargo.customer_updated")
        return encargo

    @transaction.atomic
    def delete_persona(self, id: str) -> None:
        """Hard-delete a persona nobody references.

        Raises:
            PersonaNotFound: if the persona does not exist.
            PersonaHasEncargos: encargos still reference it, with their count.
        """
        persona = self._persona_repo.get_for_update(id)
        if not persona:
            raise PersonaNotFound(f"Persona {id} no encontrada.")

        blocking = self._encargo_repo.count_referencing(persona.nombre, persona.telefono)
        if blocking:
            logger.warning(
                "persona.delete_blocked", persona_id=str(id), blocking_count=blocking
            )
            raise PersonaHasEncargos(
                f"No se puede eliminar el cliente: tiene {blocking} encargo(s) asociados.",
                blocking_count=blocking,
            )
        self._persona_repo.delete(id)
        logger.info("persona.deleted", persona_id=str(id))

    def repair_data_inconsistencies(self) -> RepairReport:
        """Rename every inconsistent encargo after its canonical persona.

        All-or-nothing: a database failure rolls the whole repair back and
        is reported in ``errors``.  Orphans and duplicate phones are left
        untouched.
        """
        try:
            fixed = self._apply_repairs()
        except DatabaseError as exc:
            logger.error("persona.repair_failed", error=str(exc))
            return RepairReport(fixed=0, errors=[str(exc)])
        logger.info("persona.repair_completed", fixed=fixed)
        return RepairReport(fixed=fixed, errors=[])

    @transaction.atomic
    def _apply_repairs(self) -> int:
        fixed = 0
        for encargo in list(self._encargo_repo.inconsistent().select_for_update()):
            encargo.persona = encargo.canonical_nombre
            self._encargo_repo.update_fields(encargo, ["persona"])
            fixed += 1
        return fixed

    # ------------------------------------------------------------------
    # Cascades
    # ------------------------------------------------------------------

    def _change_nombre(self, persona: Persona, nombre: str) -> None:
        old = persona.nombre
        persona.nombre = nombre
        cascaded = self._encargo_repo.rename_persona(old, nombre)
        logger.info(
            "persona.name_cascaded", persona_id=str(persona.id), encargos=cascaded
        )

    def _change_telefono(self, persona: Persona, telefono: str) -> None:
        if self._persona_repo.phone_taken_by_other(telefono, exclude_id=str(persona.id)):
            logger.warning("persona.phone_conflict", persona_id=str(persona.id))
            raise PhoneAlreadyInUse(f"El teléfono {telefono} ya pertenece a otro cliente.")
        old = persona.telefono
        persona.telefono = telefono
        cascaded = self._encargo_repo.replace_telefono(old, telefono)
        logger.info(
            "persona.phone_cascaded", persona_id=str(persona.id), encargos=cascaded
        )

    @staticmethod
    def _check_email_rule(persona: Persona) -> None:
        if persona.email_notifications and not persona.email:
            raise DomainValidationError({"email_notifications": EMAIL_REQUIRED_MESSAGE})
