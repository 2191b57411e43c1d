"""
Schemas Pydantic per il Listino Prestazioni
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ServiceDefinitionCreate(BaseModel):
    """Nuova voce di listino. Il prezzo è quello suggerito nelle prestazioni."""
    name: str = Field(..., min_length=2, max_length=150)
    description: Optional[str] = Field(None, max_length=5000)
    unit_price: Decimal = Field(..., ge=Decimal("0"), decimal_places=2)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Il nome della prestazione deve avere almeno 2 caratteri")
        return v

    @field_validator("description")
    @classmethod
    def blank_description_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return v.strip() or None


class ServiceDefinitionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    unit_price: Decimal
    is_active: bool
    created_at: datetime.datetime
    updated_at: datetime.datetime
