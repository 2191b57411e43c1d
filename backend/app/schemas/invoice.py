"""
Schemas Pydantic per i Conti
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Definisce gli schemi di validazione e serializzazione per l'API.
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# -------------------------------------------------------------------
# Enum
# -------------------------------------------------------------------

class InvoiceStatusSlug(str, Enum):
    """Slug stabili degli stati del conto."""
    OPEN = "open"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    BLOCKED = "blocked"


class PaymentMethod(str, Enum):
    """Metodi di pagamento accettati."""
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"
    INSTANT_TRANSFER = "instant_transfer"
    OTHER = "other"


# -------------------------------------------------------------------
# Schemas di input
# -------------------------------------------------------------------

class InvoiceGenerate(BaseModel):
    """
    Richiesta di generazione (o risincronizzazione) del conto.

    Indicare la prestazione oppure un appuntamento completato
    che ne porta il riferimento.
    """
    attendance_id: Optional[uuid.UUID] = None
    appointment_id: Optional[uuid.UUID] = None
    due_date: Optional[datetime.date] = None
    responsible_id: Optional[uuid.UUID] = None
    payment_condition_id: Optional[uuid.UUID] = None

    @model_validator(mode="after")
    def validate_source(self) -> "InvoiceGenerate":
        if (self.attendance_id is None) == (self.appointment_id is None):
            raise ValueError("Indicare una prestazione oppure un appuntamento")
        return self


class InvoiceManualItemCreate(BaseModel):
    """Riga manuale. Se collegata a un prodotto scarica il magazzino."""
    description: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(default=1, gt=0)
    unit_price: Decimal = Field(..., ge=Decimal("0"), decimal_places=2)
    product_id: Optional[uuid.UUID] = None

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("La descrizione non può essere vuota")
        return v


class InvoicePayment(BaseModel):
    """Saldo del conto."""
    paid_at: Optional[datetime.datetime] = None
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = Field(None, max_length=2000)


class InstallmentPayment(BaseModel):
    """Pagamento di una singola rata."""
    paid_at: Optional[datetime.datetime] = None
    payment_method: Optional[PaymentMethod] = None


# -------------------------------------------------------------------
# Schemas di lettura
# -------------------------------------------------------------------

class InvoiceStatusRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    slug: str
    name: str


class InvoiceItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    description: str
    quantity: int
    unit_price: Decimal
    total: Decimal
    attendance_id: Optional[uuid.UUID] = None
    product_id: Optional[uuid.UUID] = None
    is_manual: bool


class InvoiceInstallmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    number: int
    due_date: datetime.date
    amount: Decimal
    paid_at: Optional[datetime.datetime] = None


class InvoiceRead(BaseModel):
    """Conto con righe, rate e stato."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    owner_id: uuid.UUID
    status: InvoiceStatusRead
    total: Decimal
    due_date: datetime.date
    paid_at: Optional[datetime.datetime] = None
    responsible_id: Optional[uuid.UUID] = None
    payment_condition_id: Optional[uuid.UUID] = None
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None
    items: list[InvoiceItemRead] = Field(default_factory=list)
    installments: list[InvoiceInstallmentRead] = Field(default_factory=list)
    created_at: datetime.datetime
    updated_at: datetime.datetime


class InvoiceSummary(BaseModel):
    """Totali aperti/saldati sul filtro corrente."""
    open_total: Decimal = Decimal("0.00")
    open_count: int = 0
    paid_total: Decimal = Decimal("0.00")
    paid_count: int = 0


class InvoiceList(BaseModel):
    items: list[InvoiceRead]
    total: int
    page: int
    per_page: int
    summary: InvoiceSummary
