"""Unit tests for EncargoService.

Covers:
- create_encargo: stage ordering, duplicate heuristic, on-the-fly
  catalog and persona registration.
- change_stage: confirmation, cancellation, invalid decisions and the
  notification prompt on ``recibido``.
- search_encargos with an empty query.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from modules.encargos.dtos import CreateEncargoDTO, UpdateEncargoDTO
from modules.encargos.exceptions import (
    EncargoNotFound,
    InconsistentStages,
    InvalidStageDecision,
    PotentialDuplicate,
    StageChangedConcurrently,
)
from modules.encargos.models import Encargo
from modules.encargos.services import (
    ConfirmationRequired,
    EncargoService,
    NotificationRequired,
    StageApplied,
    StageChangeCancelled,
)
from modules.encargos.workflow import ReceivedOn
from modules.notifications.exceptions import NotificationDeliveryFailed
from modules.notifications.services import NotificationPrompt
from modules.personas.models import Persona

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def repo():
    repo = MagicMock()
    repo.save.side_effect = lambda e: e
    repo.update_fields.side_effect = lambda e, fields: e
    repo.on_date.return_value = []
    return repo


@pytest.fixture()
def persona_service():
    return MagicMock()


@pytest.fixture()
def catalogs():
    return {"producto": MagicMock(), "laboratorio": MagicMock(), "almacen": MagicMock()}


@pytest.fixture()
def trigger():
    trigger = MagicMock()
    trigger.prompt_for.return_value = None
    return trigger


@pytest.fixture()
def service(repo, persona_service, catalogs, trigger):
    return EncargoService(
        encargo_repository=repo,
        persona_service=persona_service,
        producto_repository=catalogs["producto"],
        laboratorio_repository=catalogs["laboratorio"],
        almacen_repository=catalogs["almacen"],
        notification_trigger=trigger,
    )


def _dto(today, **overrides) -> CreateEncargoDTO:
    data = {
        "fecha": today,
        "producto": "Ibuprofeno",
        "persona": "Ana",
        "telefono": "600111222",
    }
    data.update(overrides)
    return CreateEncargoDTO(**data)


def _encargo(today, **overrides) -> Encargo:
    data = {
        "selling_point": "farmacia1",
        "fecha": today,
        "producto": "Ibuprofeno",
        "persona": "Ana",
        "telefono": "600111222",
    }
    data.update(overrides)
    return Encargo(**data)


def _stored(repo, encargo):
    """Serve ``encargo`` to both the planning read and the locked write."""
    repo.get_by_id.return_value = encargo
    repo.get_for_update.return_value = encargo
    return encargo


# ===========================================================================
# create_encargo
# ===========================================================================


class TestCreateEncargo:
    def test_registers_catalog_names_and_persona(self, service, repo, persona_service, catalogs, today):
        encargo = service.create_encargo(_dto(today, laboratorio="Cinfa"))

        assert encargo.producto == "Ibuprofeno"
        catalogs["producto"].get_or_create_by_nombre.assert_called_once_with("Ibuprofeno")
        catalogs["laboratorio"].get_or_create_by_nombre.assert_called_once_with("Cinfa")
        catalogs["almacen"].get_or_create_by_nombre.assert_not_called()
        persona_service.ensure_persona.assert_called_once_with("Ana", "600111222")
        repo.save.assert_called_once()

    def test_out_of_order_flags(self, service, repo, today):
        with pytest.raises(InconsistentStages):
            service.create_encargo(_dto(today, recibido=True))
        repo.save.assert_not_called()

    def test_potential_duplicate(self, service, repo, persona_service, today):
        repo.on_date.return_value = [_encargo(today, persona="Ana María")]

        with pytest.raises(PotentialDuplicate):
            service.create_encargo(_dto(today))

        repo.save.assert_not_called()
        persona_service.ensure_persona.assert_not_called()

    def test_acknowledged_duplicate(self, service, repo, today):
        repo.on_date.return_value = [_encargo(today)]
        service.create_encargo(_dto(today, allow_duplicate=True))
        repo.save.assert_called_once()


class TestUpdateEncargo:
    def test_plain_fields(self, service, repo, persona_service, catalogs, today):
        repo.get_for_update.return_value = _encargo(today)

        encargo = service.update_encargo("id", UpdateEncargoDTO(producto="Paracetamol"))

        assert encargo.producto == "Paracetamol"
        repo.update_fields.assert_called_once_with(encargo, ["producto"])
        catalogs["producto"].get_or_create_by_nombre.assert_called_once_with("Paracetamol")
        persona_service.update_encargo_with_persona_cascade.assert_not_called()

    def test_customer_fields_go_through_the_cascade(self, service, repo, persona_service, today):
        encargo = _encargo(today)
        repo.get_for_update.return_value = encargo

        service.update_encargo("id", UpdateEncargoDTO(persona="Ana García"))

        persona_service.update_encargo_with_persona_cascade.assert_called_once_with(
            str(encargo.id), persona="Ana García", telefono=None
        )
        repo.update_fields.assert_not_called()

    def test_not_found(self, service, repo):
        repo.get_for_update.return_value = None
        with pytest.raises(EncargoNotFound):
            service.update_encargo("missing", UpdateEncargoDTO(producto="X"))


# ===========================================================================
# change_stage
# ===========================================================================


class TestChangeStage:
    def test_valid_transition_is_applied(self, service, repo, today):
        _stored(repo, _encargo(today))

        outcome = service.change_stage("id", "pedido", True)

        assert isinstance(outcome, StageApplied)
        assert outcome.encargo.pedido is True
        repo.update_fields.assert_called_once_with(outcome.encargo, ["pedido"])

    def test_invalid_transition_asks_first(self, service, repo, today):
        _stored(repo, _encargo(today))

        outcome = service.change_stage("id", "recibido", True)

        assert isinstance(outcome, ConfirmationRequired)
        assert outcome.transition == ReceivedOn(ordered=False)
        repo.update_fields.assert_not_called()

    def test_cascade_sets_both_flags(self, service, repo, today):
        _stored(repo, _encargo(today))

        outcome = service.change_stage("id", "recibido", True, decision="cascade")

        assert outcome.encargo.pedido is True
        assert outcome.encargo.recibido is True
        assert sorted(repo.update_fields.call_args.args[1]) == ["pedido", "recibido"]

    def test_cancel_leaves_the_encargo_untouched(self, service, repo, today):
        encargo = _encargo(today)
        _stored(repo, encargo)

        outcome = service.change_stage("id", "recibido", True, decision="cancel")

        assert isinstance(outcome, StageChangeCancelled)
        assert (encargo.pedido, encargo.recibido) == (False, False)
        repo.update_fields.assert_not_called()

    def test_turn_off_cascade_clears_later_stages(self, service, repo, today):
        _stored(repo, _encargo(today, pedido=True, recibido=True, entregado=True))

        outcome = service.change_stage("id", "pedido", False, decision="cascade")

        encargo = outcome.encargo
        assert (encargo.pedido, encargo.recibido, encargo.entregado) == (False, False, False)

    def test_requested_only_refused_on_turn_off(self, service, repo, today):
        _stored(repo, _encargo(today, pedido=True, recibido=True))

        with pytest.raises(InvalidStageDecision) as exc_info:
            service.change_stage("id", "pedido", False, decision="requested_only")

        assert "decision" in exc_info.value.errors
        repo.update_fields.assert_not_called()

    def test_not_found(self, service, repo):
        _stored(repo, None)
        with pytest.raises(EncargoNotFound):
            service.change_stage("missing", "pedido", True)


class TestChangeStageNotification:
    @pytest.fixture()
    def persona(self):
        return Persona(nombre="Ana", telefono="600111222", phone_notifications=True)

    @pytest.fixture()
    def ordered(self, repo, today):
        encargo = _encargo(today, pedido=True)
        _stored(repo, encargo)
        return encargo

    def test_prompt_when_a_channel_is_enabled(self, service, repo, trigger, persona, ordered):
        trigger.prompt_for.return_value = NotificationPrompt(persona=persona, channels=("whatsapp",))

        outcome = service.change_stage("id", "recibido", True)

        assert isinstance(outcome, NotificationRequired)
        assert outcome.pending_fields == {"recibido": True}
        repo.update_fields.assert_not_called()

    def test_no_prompt_without_channels(self, service, repo, trigger, ordered):
        outcome = service.change_stage("id", "recibido", True)
        assert isinstance(outcome, StageApplied)
        assert ordered.avisado is False

    def test_whatsapp_marks_notified(self, service, repo, trigger, persona, ordered):
        trigger.prompt_for.return_value = NotificationPrompt(persona=persona, channels=("whatsapp",))
        trigger.deliver.return_value = "https://wa.me/34600111222?text=hola"

        outcome = service.change_stage("id", "recibido", True, notify="whatsapp")

        assert outcome.whatsapp_url == "https://wa.me/34600111222?text=hola"
        assert ordered.recibido is True
        assert ordered.avisado is True
        trigger.deliver.assert_called_once_with("whatsapp", ordered, persona)

    def test_declining_skips_delivery(self, service, repo, trigger, persona, ordered):
        trigger.prompt_for.return_value = NotificationPrompt(persona=persona, channels=("email",))

        outcome = service.change_stage("id", "recibido", True, notify="none")

        assert isinstance(outcome, StageApplied)
        assert ordered.recibido is True
        assert ordered.avisado is False
        trigger.deliver.assert_not_called()

    def test_email_failure_writes_nothing(self, service, repo, trigger, persona, ordered):
        trigger.prompt_for.return_value = NotificationPrompt(persona=persona, channels=("email",))
        trigger.deliver.side_effect = NotificationDeliveryFailed("smtp down")

        with pytest.raises(NotificationDeliveryFailed):
            service.change_stage("id", "recibido", True, notify="email")

        repo.update_fields.assert_not_called()

    def test_email_is_sent_before_the_row_is_locked(self, service, repo, trigger, persona, ordered):
        trigger.prompt_for.return_value = NotificationPrompt(persona=persona, channels=("email",))
        trigger.deliver.side_effect = lambda *args: repo.get_for_update.assert_not_called()

        outcome = service.change_stage("id", "recibido", True, notify="email")

        assert isinstance(outcome, StageApplied)
        assert ordered.avisado is True
        repo.get_for_update.assert_called_once_with("id")

    def test_flags_moved_while_notifying(self, service, repo, trigger, persona, today):
        planned = _encargo(today, pedido=True)
        repo.get_by_id.return_value = planned
        repo.get_for_update.return_value = _encargo(today, pedido=True, recibido=True)
        trigger.prompt_for.return_value = NotificationPrompt(persona=persona, channels=("email",))

        with pytest.raises(StageChangedConcurrently):
            service.change_stage("id", "recibido", True, notify="email")

        repo.update_fields.assert_not_called()

    def test_already_received_never_prompts(self, service, repo, trigger, today):
        _stored(repo, _encargo(today, pedido=True, recibido=True))
        service.change_stage("id", "recibido", True)
        trigger.prompt_for.assert_not_called()


class TestQueries:
    def test_empty_search(self, service, repo):
        assert service.search_encargos("   ") == []
        repo.search.assert_not_called()

    def test_search_strips_query(self, service, repo):
        repo.search.return_value = ["hit"]
        assert service.search_encargos(" ana ") == ["hit"]
        repo.search.assert_called_once_with("ana")

    def test_get_missing(self, service, repo):
        repo.get_by_id.return_value = None
        with pytest.raises(EncargoNotFound):
            service.get_encargo("missing")
