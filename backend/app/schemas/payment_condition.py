"""
Schemas Pydantic per le Condizioni di Pagamento
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)
"""

import datetime
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PaymentConditionPayload(BaseModel):
    """
    Dati di una condizione di pagamento (creazione e sostituzione).

    term_days è il termine della prima rata dalla data della prestazione;
    installments è il numero di rate in cui viene diviso il conto.
    """
    name: str = Field(..., min_length=1, max_length=100)
    term_days: int = Field(..., ge=0)
    installments: int = Field(..., gt=0)
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Indicare un nome per la condizione di pagamento")
        return v


class PaymentConditionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    term_days: int
    installments: int
    notes: Optional[str] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime
