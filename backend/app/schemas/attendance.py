"""
Schemas Pydantic per le Prestazioni
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
# Enum per i tipi di prestazione
# -------------------------------------------------------------------

class AttendanceKind(str, Enum):
    """Enum che definisce i tipi di prestazione."""
    CONSULTATION = "consultation"
    EXAM = "exam"
    VACCINATION = "vaccination"
    SURGERY = "surgery"
    OTHER = "other"


# Etichette usate nelle righe di conto
ATTENDANCE_KIND_LABELS: dict[str, str] = {
    AttendanceKind.CONSULTATION.value: "Visita",
    AttendanceKind.EXAM.value: "Esame",
    AttendanceKind.VACCINATION.value: "Vaccinazione",
    AttendanceKind.SURGERY.value: "Chirurgia",
    AttendanceKind.OTHER.value: "Altro",
}


# -------------------------------------------------------------------
# Funzioni di validazione standalone
# -------------------------------------------------------------------

def ensure_unique_references(values: list[uuid.UUID], label: str) -> None:
    """
    Verifica che ogni riferimento compaia una sola volta.

    La ripetizione si esprime con la quantità, non con righe duplicate.

    Raises:
        ValueError: Se un riferimento è duplicato
    """
    seen: set[uuid.UUID] = set()
    for value in values:
        if value in seen:
            raise ValueError(f"{label} duplicato nella prestazione: {value}")
        seen.add(value)


# -------------------------------------------------------------------
# Schemas per le voci della prestazione
# -------------------------------------------------------------------

class CatalogItemInput(BaseModel):
    """
    Voce di listino richiesta.

    Se unit_price manca si usa il prezzo di listino della definizione.
    """
    definition_id: uuid.UUID
    quantity: int = Field(default=1, gt=0, description="Quantità")
    unit_price: Optional[Decimal] = Field(None, ge=Decimal("0"), decimal_places=2)


class ProductItemInput(BaseModel):
    """
    Prodotto consumato richiesto.

    Se unit_price manca si usa il prezzo di vendita del prodotto.
    """
    product_id: uuid.UUID
    quantity: int = Field(default=1, gt=0, description="Quantità")
    unit_price: Optional[Decimal] = Field(None, ge=Decimal("0"), decimal_places=2)


class AttendanceItemsInput(BaseModel):
    """Voci e opzioni di fatturazione comuni a creazione e completamento."""
    price: Optional[Decimal] = Field(
        None,
        ge=Decimal("0"),
        decimal_places=2,
        description="Prezzo esplicito; se assente è la somma delle voci di listino",
    )
    notes: Optional[str] = Field(None, max_length=5000)
    catalog_items: list[CatalogItemInput] = Field(default_factory=list)
    product_items: list[ProductItemInput] = Field(default_factory=list)
    due_date: Optional[datetime.date] = Field(None, description="Scadenza del conto")
    responsible_id: Optional[uuid.UUID] = Field(None, description="Responsabile del conto")
    payment_condition_id: Optional[uuid.UUID] = None

    @field_validator("catalog_items")
    @classmethod
    def validate_unique_definitions(cls, v: list[CatalogItemInput]) -> list[CatalogItemInput]:
        ensure_unique_references([item.definition_id for item in v], "Voce di listino")
        return v

    @field_validator("product_items")
    @classmethod
    def validate_unique_products(cls, v: list[ProductItemInput]) -> list[ProductItemInput]:
        ensure_unique_references([item.product_id for item in v], "Prodotto")
        return v


class AttendanceCreate(AttendanceItemsInput):
    """Schema per la creazione di una prestazione."""
    animal_id: uuid.UUID
    kind: AttendanceKind = AttendanceKind.CONSULTATION
    date: datetime.date


class AttendanceUpdate(BaseModel):
    """
    Schema per l'aggiornamento di una prestazione.

    Tutti i campi sono opzionali; le liste, se presenti, sostituiscono
    integralmente quelle esistenti.
    """
    animal_id: Optional[uuid.UUID] = None
    kind: Optional[AttendanceKind] = None
    date: Optional[datetime.date] = None
    price: Optional[Decimal] = Field(None, ge=Decimal("0"), decimal_places=2)
    notes: Optional[str] = Field(None, max_length=5000)
    catalog_items: Optional[list[CatalogItemInput]] = None
    product_items: Optional[list[ProductItemInput]] = None
    due_date: Optional[datetime.date] = None
    responsible_id: Optional[uuid.UUID] = None
    payment_condition_id: Optional[uuid.UUID] = None

    @field_validator("catalog_items")
    @classmethod
    def validate_unique_definitions(cls, v: Optional[list[CatalogItemInput]]) -> Optional[list[CatalogItemInput]]:
        if v is not None:
            ensure_unique_references([item.definition_id for item in v], "Voce di listino")
        return v

    @field_validator("product_items")
    @classmethod
    def validate_unique_products(cls, v: Optional[list[ProductItemInput]]) -> Optional[list[ProductItemInput]]:
        if v is not None:
            ensure_unique_references([item.product_id for item in v], "Prodotto")
        return v

    @model_validator(mode="after")
    def validate_not_empty(self) -> "AttendanceUpdate":
        """Richiede almeno un campo da aggiornare."""
        if not self.model_fields_set:
            raise ValueError("Indicare almeno un campo da aggiornare")
        for field in ("animal_id", "kind", "date"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"Il campo {field} non può essere nullo")
        return self


# -------------------------------------------------------------------
# Schemas di lettura
# -------------------------------------------------------------------

class CatalogItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    definition_id: uuid.UUID
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class ProductItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class AttendanceRead(BaseModel):
    """Schema per la lettura di una prestazione con le sue voci."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    animal_id: uuid.UUID
    kind: AttendanceKind
    date: datetime.date
    price: Decimal
    notes: Optional[str] = None
    catalog_items: list[CatalogItemRead] = Field(default_factory=list)
    product_items: list[ProductItemRead] = Field(default_factory=list)
    created_at: datetime.datetime
    updated_at: datetime.datetime


class AttendanceList(BaseModel):
    """Risposta paginata delle prestazioni."""
    items: list[AttendanceRead]
    total: int
    page: int
    per_page: int
    total_pages: int = 0

    @model_validator(mode="after")
    def compute_total_pages(self) -> "AttendanceList":
        """Calcola automaticamente il numero totale di pagine."""
        if self.per_page > 0:
            self.total_pages = (self.total + self.per_page - 1) // self.per_page
        return self
