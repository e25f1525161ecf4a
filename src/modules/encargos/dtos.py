"""Encargo DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateEncargoDTO``: input for encargo creation.
- ``UpdateEncargoDTO``: partial edit of the non-workflow fields.
- ``ChangeStageDTO``: one workflow flag change plus the operator's
  answers to a previous confirmation / notification prompt.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from modules.core.dtos import clean_nombre, clean_telefono, clean_text
from modules.core.validation import (
    NOTES_MAX_LENGTH,
    parse_date,
    validate_amount,
    validate_date,
)
from modules.encargos.constants import CascadeDecision, NotifyChoice, Stage

_CENTS = Decimal("0.01")


def clean_fecha(value: Any) -> date:
    result = validate_date(value)
    if not result.is_valid:
        raise ValueError(result.error)
    return parse_date(value)


def clean_pagado(value: Any) -> Decimal:
    result = validate_amount(value)
    if not result.is_valid:
        raise ValueError(result.error)
    return Decimal(str(value).strip()).quantize(_CENTS)


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateEncargoDTO(BaseModel):
    """Immutable DTO for encargo creation requests.

    ``allow_duplicate`` acknowledges a potential duplicate (same customer,
    product and day); without it such a request is refused.
    """

    model_config = ConfigDict(frozen=True)

    fecha: date
    producto: str
    persona: str
    telefono: str
    laboratorio: str = ""
    almacen: str = ""
    pagado: Decimal = Decimal("0.00")
    observaciones: str = ""
    pedido: bool = False
    recibido: bool = False
    entregado: bool = False
    avisado: bool = False
    allow_duplicate: bool = False

    @field_validator("fecha", mode="before")
    @classmethod
    def fecha_must_be_valid(cls, v: Any) -> date:
        return clean_fecha(v)

    @field_validator("producto", mode="before")
    @classmethod
    def producto_must_be_valid(cls, v: Any) -> str:
        return clean_text(v, "Producto", required=True)

    @field_validator("laboratorio", mode="before")
    @classmethod
    def laboratorio_must_be_valid(cls, v: Any) -> str:
        return clean_text(v, "Laboratorio")

    @field_validator("almacen", mode="before")
    @classmethod
    def almacen_must_be_valid(cls, v: Any) -> str:
        return clean_text(v, "Almacén")

    @field_validator("persona", mode="before")
    @classmethod
    def persona_must_be_valid(cls, v: Any) -> str:
        return clean_nombre(v)

    @field_validator("telefono", mode="before")
    @classmethod
    def telefono_must_be_valid(cls, v: Any) -> str:
        return clean_telefono(v)

    @field_validator("pagado", mode="before")
    @classmethod
    def pagado_must_be_valid(cls, v: Any) -> Decimal:
        return clean_pagado(0 if v in (None, "") else v)

    @field_validator("observaciones", mode="before")
    @classmethod
    def observaciones_must_be_valid(cls, v: Any) -> str:
        return clean_text(v, "Observaciones", max_length=NOTES_MAX_LENGTH)


class UpdateEncargoDTO(BaseModel):
    """Partial edit; ``None`` means "leave unchanged".

    Workflow flags are not part of this DTO: they only change through
    ``EncargoService.change_stage``.  ``avisado`` is a free toggle.
    """

    model_config = ConfigDict(frozen=True)

    fecha: Optional[date] = None
    producto: Optional[str] = None
    laboratorio: Optional[str] = None
    almacen: Optional[str] = None
    persona: Optional[str] = None
    telefono: Optional[str] = None
    pagado: Optional[Decimal] = None
    observaciones: Optional[str] = None
    avisado: Optional[bool] = None

    @field_validator("fecha", mode="before")
    @classmethod
    def fecha_must_be_valid(cls, v: Any) -> Optional[date]:
        return None if v is None else clean_fecha(v)

    @field_validator("producto", mode="before")
    @classmethod
    def producto_must_be_valid(cls, v: Any) -> Optional[str]:
        return None if v is None else clean_text(v, "Producto", required=True)

    @field_validator("laboratorio", mode="before")
    @classmethod
    def laboratorio_must_be_valid(cls, v: Any) -> Optional[str]:
        return None if v is None else clean_text(v, "Laboratorio")

    @field_validator("almacen", mode="before")
    @classmethod
    def almacen_must_be_valid(cls, v: Any) -> Optional[str]:
        return None if v is None else clean_text(v, "Almacén")

    @field_validator("persona", mode="before")
    @classmethod
    def persona_must_be_valid(cls, v: Any) -> Optional[str]:
        return None if v is None else clean_nombre(v)

    @field_validator("telefono", mode="before")
    @classmethod
    def telefono_must_be_valid(cls, v: Any) -> Optional[str]:
        return None if v is None else clean_telefono(v)

    @field_validator("pagado", mode="before")
    @classmethod
    def pagado_must_be_valid(cls, v: Any) -> Optional[Decimal]:
        return None if v is None else clean_pagado(v)

    @field_validator("observaciones", mode="before")
    @classmethod
    def observaciones_must_be_valid(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        return clean_text(v, "Observaciones", max_length=NOTES_MAX_LENGTH)

    def changes(self) -> dict:
        """Only the fields that were supplied."""
        return {name: value for name, value in self if value is not None}


class ChangeStageDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    stage: str
    value: bool
    decision: Optional[str] = None
    notify: Optional[str] = None

    @field_validator("stage")
    @classmethod
    def stage_must_be_known(cls, v: str) -> str:
        if v not in Stage.values:
            raise ValueError("Etapa desconocida.")
        return v

    @field_validator("decision")
    @classmethod
    def decision_must_be_known(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in CascadeDecision.values:
            raise ValueError("Decisión desconocida.")
        return v

    @field_validator("notify")
    @classmethod
    def notify_must_be_known(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in NotifyChoice.values:
            raise ValueError("Canal de aviso desconocido.")
        return v
