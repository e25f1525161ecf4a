"""Catalog DTOs (Pydantic v2, immutable)."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from modules.core.dtos import clean_text


class CreateCatalogEntryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    nombre: str

    @field_validator("nombre")
    @classmethod
    def nombre_must_be_valid(cls, v: str) -> str:
        return clean_text(v, "Nombre", required=True)
