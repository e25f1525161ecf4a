"""Persona DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2, immutable
(``frozen=True``).  Field validators reuse ``modules.core.validation``
so the API and the services share one set of rules and messages;
phones leave the DTO already normalised.  Emails are typed as
``EmailStr``; an empty string means "no email".

- ``CreatePersonaDTO`` / ``UpdatePersonaDTO``: inputs.
- ``ConsistencyReport`` / ``RepairReport``: audit outputs.
"""

from __future__ import annotations

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator

from modules.core.dtos import clean_email, clean_nombre, clean_telefono


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreatePersonaDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    nombre: str
    telefono: str
    email: Union[EmailStr, Literal[""]] = ""
    phone_notifications: bool = False
    email_notifications: bool = False

    @field_validator("nombre")
    @classmethod
    def nombre_must_be_valid(cls, v: str) -> str:
        return clean_nombre(v)

    @field_validator("telefono")
    @classmethod
    def telefono_must_be_valid(cls, v: str) -> str:
        return clean_telefono(v)

    @field_validator("email", mode="before")
    @classmethod
    def email_must_be_valid(cls, v: object) -> str:
        return clean_email(v)


class UpdatePersonaDTO(BaseModel):
    """All fields are optional; only supplied fields will be updated."""

    model_config = ConfigDict(frozen=True)

    nombre: Optional[str] = None
    telefono: Optional[str] = None
    email: Optional[Union[EmailStr, Literal[""]]] = None
    phone_notifications: Optional[bool] = None
    email_notifications: Optional[bool] = None

    @field_validator("nombre")
    @classmethod
    def nombre_must_be_valid(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else clean_nombre(v)

    @field_validator("telefono")
    @classmethod
    def telefono_must_be_valid(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else clean_telefono(v)

    @field_validator("email", mode="before")
    @classmethod
    def email_must_be_valid(cls, v: object) -> Optional[str]:
        return None if v is None else clean_email(v)


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class ConsistencyReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    orphaned_encargos: int
    inconsistent_personas: int
    duplicate_phones: int

    @property
    def is_consistent(self) -> bool:
        return not (
            self.orphaned_encargos or self.inconsistent_personas or self.duplicate_phones
        )


class RepairReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    fixed: int
    errors: List[str] = []
