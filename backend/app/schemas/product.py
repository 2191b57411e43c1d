"""
Schemas Pydantic per Prodotti e Magazzino
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator


class MovementType(str, Enum):
    """Tipi di movimento di magazzino."""
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"


class ProductCreate(BaseModel):
    """
    Schema per la creazione di un prodotto.

    La giacenza iniziale viene caricata tramite un movimento "in".
    """
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=5000)
    cost_price: Decimal = Field(default=Decimal("0"), ge=Decimal("0"), decimal_places=2)
    sale_price: Decimal = Field(default=Decimal("0"), ge=Decimal("0"), decimal_places=2)
    min_stock_level: int = Field(default=0, ge=0)
    initial_stock: int = Field(default=0, ge=0)
    is_active: bool = True
    is_sellable: bool = True

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Il nome del prodotto non può essere vuoto")
        return v


class ProductUpdate(BaseModel):
    """
    Aggiornamento parziale di un prodotto.

    La giacenza non è modificabile qui: si usano carico e rettifica.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=5000)
    cost_price: Optional[Decimal] = Field(None, ge=Decimal("0"), decimal_places=2)
    sale_price: Optional[Decimal] = Field(None, ge=Decimal("0"), decimal_places=2)
    min_stock_level: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    is_sellable: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Il nome del prodotto non può essere vuoto")
        return v

    @model_validator(mode="after")
    def validate_not_empty(self) -> "ProductUpdate":
        if not self.model_fields_set:
            raise ValueError("Indicare almeno un campo da aggiornare")
        for field in ("name", "cost_price", "sale_price", "min_stock_level", "is_active", "is_sellable"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"Il campo {field} non può essere nullo")
        return self


class StockLoad(BaseModel):
    """Carico di magazzino."""
    quantity: int = Field(..., gt=0)
    reference: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=2000)


class StockAdjustment(BaseModel):
    """Rettifica inventariale: positiva aumenta, negativa diminuisce la giacenza."""
    amount: int
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: int) -> int:
        if v == 0:
            raise ValueError("La rettifica non può essere nulla")
        return v


class ProductRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    cost_price: Decimal
    sale_price: Decimal
    stock_quantity: int
    min_stock_level: int
    is_active: bool
    is_sellable: bool
    created_at: datetime.datetime
    updated_at: datetime.datetime

    @computed_field
    @property
    def is_below_minimum(self) -> bool:
        return self.stock_quantity < self.min_stock_level


class ProductList(BaseModel):
    items: list[ProductRead]
    total: int
    page: int
    per_page: int


class StockMovementRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    movement_type: MovementType
    quantity: int
    reference: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime.datetime
