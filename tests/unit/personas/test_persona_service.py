"""Unit tests for PersonaService.

Covers:
- contact resolution priority (exact > phone > name).
- create_persona: phone uniqueness, email rule.
- update_persona: name/phone cascades and phone conflicts.
- delete_persona: deletion guard with the blocking count.
- update_email / repair_data_inconsistencies.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from django.db import DatabaseError

from modules.core.exceptions import DomainValidationError
from modules.encargos.exceptions import EncargoNotFound
from modules.encargos.models import Encargo
from modules.personas.dtos import CreatePersonaDTO, UpdatePersonaDTO
from modules.personas.exceptions import (
    PersonaHasEncargos,
    PersonaNotFound,
    PhoneAlreadyInUse,
)
from modules.personas.models import Persona
from modules.personas.services import PersonaService

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def persona_repo():
    repo = MagicMock()
    repo.save.side_effect = lambda p: p
    repo.phone_taken_by_other.return_value = False
    return repo


@pytest.fixture()
def encargo_repo():
    return MagicMock()


@pytest.fixture()
def service(persona_repo, encargo_repo):
    return PersonaService(persona_repository=persona_repo, encargo_repository=encargo_repo)


def _persona(**overrides) -> Persona:
    defaults = {"selling_point": "farmacia1", "nombre": "Ana", "telefono": "600111222"}
    defaults.update(overrides)
    return Persona(**defaults)


# ===========================================================================
# find_persona_by_contact
# ===========================================================================


class TestFindPersonaByContact:
    def test_exact_match_wins(self, service, persona_repo):
        exact = _persona()
        persona_repo.find_by_contact.return_value = exact

        assert service.find_persona_by_contact("600111222", "Ana") is exact
        persona_repo.find_by_contact.assert_called_once_with(telefono="600111222", nombre="Ana")

    def test_falls_back_to_phone_then_name(self, service, persona_repo):
        by_name = _persona(telefono="699999999")
        persona_repo.find_by_contact.side_effect = [None, None, by_name]

        assert service.find_persona_by_contact("600111222", "Ana") is by_name
        assert persona_repo.find_by_contact.call_args_list[1].kwargs == {"telefono": "600111222"}
        assert persona_repo.find_by_contact.call_args_list[2].kwargs == {"nombre": "Ana"}

    def test_phone_is_normalized(self, service, persona_repo):
        persona_repo.find_by_contact.return_value = None
        service.find_persona_by_contact("+34 600 111 222")
        persona_repo.find_by_contact.assert_called_once_with(telefono="600111222")

    def test_nothing_to_look_for(self, service, persona_repo):
        assert service.find_persona_by_contact(None) is None
        persona_repo.find_by_contact.assert_not_called()


# ===========================================================================
# create_persona
# ===========================================================================


class TestCreatePersona:
    def test_success(self, service, persona_repo):
        persona = service.create_persona(CreatePersonaDTO(nombre="Ana", telefono="600111222"))
        assert persona.nombre == "Ana"
        persona_repo.save.assert_called_once()

    def test_phone_in_use(self, service, persona_repo):
        persona_repo.phone_taken_by_other.return_value = True
        with pytest.raises(PhoneAlreadyInUse):
            service.create_persona(CreatePersonaDTO(nombre="Ana", telefono="600111222"))
        persona_repo.save.assert_not_called()

    def test_email_notifications_need_an_email(self, service, persona_repo):
        dto = CreatePersonaDTO(nombre="Ana", telefono="600111222", email_notifications=True)
        with pytest.raises(DomainValidationError) as exc_info:
            service.create_persona(dto)
        assert "email_notifications" in exc_info.value.errors
        persona_repo.save.assert_not_called()


class TestEnsurePersona:
    def test_reuses_phone_holder(self, service, persona_repo):
        existing = _persona(nombre="Ana García")
        persona_repo.find_by_contact.return_value = existing

        persona, created = service.ensure_persona("Ana", "600111222")

        assert (persona, created) == (existing, False)
        persona_repo.save.assert_not_called()

    def test_creates_when_missing(self, service, persona_repo):
        persona_repo.find_by_contact.return_value = None
        persona, created = service.ensure_persona("Ana", "+34600111222")
        assert created is True
        assert persona.telefono == "600111222"


# ===========================================================================
# update_persona
# ===========================================================================


class TestUpdatePersona:
    def test_not_found(self, service, persona_repo):
        persona_repo.get_for_update.return_value = None
        with pytest.raises(PersonaNotFound):
            service.update_persona("missing", UpdatePersonaDTO(nombre="Ana"))

    def test_rename_cascades_to_encargos(self, service, persona_repo, encargo_repo):
        persona_repo.get_for_update.return_value = _persona()
        encargo_repo.rename_persona.return_value = 4

        persona = service.update_persona("id", UpdatePersonaDTO(nombre="Ana García"))

        assert persona.nombre == "Ana García"
        encargo_repo.rename_persona.assert_called_once_with("Ana", "Ana García")
        encargo_repo.replace_telefono.assert_not_called()

    def test_phone_change_cascades_to_encargos(self, service, persona_repo, encargo_repo):
        persona_repo.get_for_update.return_value = _persona()

        persona = service.update_persona("id", UpdatePersonaDTO(telefono="611 222 333"))

        assert persona.telefono == "611222333"
        encargo_repo.replace_telefono.assert_called_once_with("600111222", "611222333")

    def test_phone_of_another_persona_changes_nothing(self, service, persona_repo, encargo_repo):
        persona_repo.get_for_update.return_value = _persona()
        persona_repo.phone_taken_by_other.return_value = True

        with pytest.raises(PhoneAlreadyInUse):
            service.update_persona(
                "id", UpdatePersonaDTO(nombre="Ana García", telefono="611222333")
            )

        encargo_repo.replace_telefono.assert_not_called()
        encargo_repo.rename_persona.assert_not_called()
        persona_repo.save.assert_not_called()

    def test_unchanged_values_do_not_cascade(self, service, persona_repo, encargo_repo):
        persona_repo.get_for_update.return_value = _persona()
        service.update_persona("id", UpdatePersonaDTO(nombre="Ana", telefono="600111222"))
        encargo_repo.rename_persona.assert_not_called()
        encargo_repo.replace_telefono.assert_not_called()


class TestNotificationSettings:
    def test_enable_email_without_address(self, service, persona_repo):
        persona_repo.get_for_update.return_value = _persona()
        with pytest.raises(DomainValidationError):
            service.update_notification_preferences("id", True, True)

    def test_clearing_email_disables_email_notifications(self, service, persona_repo):
        persona_repo.get_for_update.return_value = _persona(
            email="ana@example.com", email_notifications=True
        )
        persona = service.update_email("id", "")
        assert persona.email == ""
        assert persona.email_notifications is False

    def test_invalid_email(self, service, persona_repo):
        with pytest.raises(DomainValidationError) as exc_info:
            service.update_email("id", "not-an-email")
        assert exc_info.value.errors == {"email": "Formato de email inválido"}
        persona_repo.get_for_update.assert_not_called()


# ===========================================================================
# delete_persona
# ===========================================================================


class TestDeletePersona:
    def test_blocked_with_exact_count(self, service, persona_repo, encargo_repo):
        persona_repo.get_for_update.return_value = _persona()
        encargo_repo.count_referencing.return_value = 3

        with pytest.raises(PersonaHasEncargos) as exc_info:
            service.delete_persona("id")

        assert exc_info.value.blocking_count == 3
        encargo_repo.count_referencing.assert_called_once_with("Ana", "600111222")
        persona_repo.delete.assert_not_called()

    def test_success(self, service, persona_repo, encargo_repo):
        persona_repo.get_for_update.return_value = _persona()
        encargo_repo.count_referencing.return_value = 0
        service.delete_persona("id")
        persona_repo.delete.assert_called_once_with("id")

    def test_not_found(self, service, persona_repo):
        persona_repo.get_for_update.return_value = None
        with pytest.raises(PersonaNotFound):
            service.delete_persona("missing")


# ===========================================================================
# Combined cascade from an encargo edit
# ===========================================================================


class TestUpdateEncargoWithPersonaCascade:
    def test_encargo_not_found(self, service, encargo_repo):
        encargo_repo.get_for_update.return_value = None
        with pytest.raises(EncargoNotFound):
            service.update_encargo_with_persona_cascade("missing", persona="Ana")

    def test_new_phone_owned_by_someone_else(self, service, persona_repo, encargo_repo):
        encargo_repo.get_for_update.return_value = Encargo(
            selling_point="farmacia1", persona="Ana", telefono="600111222"
        )
        current = _persona()
        other = _persona(nombre="Luis", telefono="611222333")
        persona_repo.find_by_contact.side_effect = [current, other]

        with pytest.raises(PhoneAlreadyInUse):
            service.update_encargo_with_persona_cascade("id", telefono="611222333")

        encargo_repo.replace_telefono.assert_not_called()
        encargo_repo.update_fields.assert_not_called()

    def test_phone_edit_does_not_rename_persona(self, service, persona_repo, encargo_repo):
        encargo = MagicMock(persona="Ana", telefono="600111222")
        encargo_repo.get_for_update.return_value = encargo
        current = _persona(nombre="Ana García")
        persona_repo.find_by_contact.side_effect = [current, None]
        persona_repo.get_for_update.return_value = current

        service.update_encargo_with_persona_cascade("id", telefono="600999888")

        assert (current.nombre, current.telefono) == ("Ana García", "600999888")
        encargo_repo.rename_persona.assert_not_called()
        encargo_repo.replace_telefono.assert_called_once_with("600111222", "600999888")

    def test_name_edit_does_not_touch_phone(self, service, persona_repo, encargo_repo):
        encargo = MagicMock(persona="Ana", telefono="600111222")
        encargo_repo.get_for_update.return_value = encargo
        current = _persona()
        persona_repo.find_by_contact.return_value = current
        persona_repo.get_for_update.return_value = current

        service.update_encargo_with_persona_cascade("id", persona="Ana López")

        assert current.nombre == "Ana López"
        encargo_repo.rename_persona.assert_called_once_with("Ana", "Ana López")
        encargo_repo.replace_telefono.assert_not_called()


# ===========================================================================
# Consistency
# ===========================================================================


class TestConsistency:
    def test_report(self, service, persona_repo, encargo_repo):
        encargo_repo.orphaned_count.return_value = 2
        encargo_repo.inconsistent.return_value.count.return_value = 1
        persona_repo.duplicate_phone_count.return_value = 0

        report = service.check_data_consistency()

        assert report.orphaned_encargos == 2
        assert report.inconsistent_personas == 1
        assert not report.is_consistent

    def test_repair_failure_is_reported(self, service, encargo_repo):
        encargo_repo.inconsistent.side_effect = DatabaseError("disk I/O error")

        report = service.repair_data_inconsistencies()

        assert report.fixed == 0
        assert report.errors == ["disk I/O error"]
