from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError

from modules.core.dtos import field_errors
from modules.encargos.dtos import ChangeStageDTO, CreateEncargoDTO, UpdateEncargoDTO

pytestmark = pytest.mark.unit


def _payload(today, **overrides):
    data = {
        "fecha": today.isoformat(),
        "producto": "Ibuprofeno 600mg",
        "persona": "Ana García",
        "telefono": "+34 600 111 222",
    }
    data.update(overrides)
    return data


class TestCreateEncargoDTO:
    def test_cleans_and_normalizes(self, today):
        dto = CreateEncargoDTO(**_payload(today, pagado="12.5", observaciones=" <b>ok</b> "))
        assert dto.fecha == today
        assert dto.telefono == "600111222"
        assert dto.pagado == Decimal("12.50")
        assert dto.observaciones == "bok/b"
        assert dto.laboratorio == ""
        assert dto.allow_duplicate is False

    def test_blank_amount_is_zero(self, today):
        assert CreateEncargoDTO(**_payload(today, pagado="")).pagado == Decimal("0.00")

    def test_errors_are_user_facing(self, today):
        with pytest.raises(ValidationError) as exc_info:
            CreateEncargoDTO(
                **_payload(
                    today,
                    fecha=(today - timedelta(days=400)).isoformat(),
                    producto="",
                    telefono="abc",
                    pagado="-3",
                )
            )
        errors = field_errors(exc_info.value)
        assert errors == {
            "fecha": "La fecha no puede ser anterior al año pasado",
            "producto": "Producto es obligatorio",
            "telefono": "El teléfono debe tener al menos 6 dígitos",
            "pagado": "El monto no puede ser negativo",
        }

    def test_missing_required_field(self, today):
        data = _payload(today)
        del data["persona"]
        with pytest.raises(ValidationError) as exc_info:
            CreateEncargoDTO(**data)
        assert "persona" in field_errors(exc_info.value)

    def test_frozen(self, today):
        dto = CreateEncargoDTO(**_payload(today))
        with pytest.raises(ValidationError):
            dto.producto = "Otro"


class TestUpdateEncargoDTO:
    def test_changes_only_contains_supplied_fields(self):
        dto = UpdateEncargoDTO(producto="Paracetamol", avisado=False)
        assert dto.changes() == {"producto": "Paracetamol", "avisado": False}

    def test_empty_laboratorio_is_a_change(self):
        assert UpdateEncargoDTO(laboratorio="").changes() == {"laboratorio": ""}

    def test_invalid_phone(self):
        with pytest.raises(ValidationError):
            UpdateEncargoDTO(telefono="12")


class TestChangeStageDTO:
    def test_valid(self):
        dto = ChangeStageDTO(stage="recibido", value=True, decision="cascade", notify="email")
        assert dto.stage == "recibido"

    @pytest.mark.parametrize(
        ("field", "payload", "message"),
        [
            ("stage", {"stage": "avisado", "value": True}, "Etapa desconocida."),
            ("decision", {"stage": "pedido", "value": True, "decision": "maybe"}, "Decisión desconocida."),
            ("notify", {"stage": "pedido", "value": True, "notify": "sms"}, "Canal de aviso desconocido."),
        ],
    )
    def test_unknown_choices(self, field, payload, message):
        with pytest.raises(ValidationError) as exc_info:
            ChangeStageDTO(**payload)
        assert field_errors(exc_info.value) == {field: message}
