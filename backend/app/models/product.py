"""
Modelli SQLAlchemy per Prodotti e Magazzino
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Contiene:
- Product: Anagrafica prodotti (farmaci, materiali, articoli in vendita)
- StockMovement: Movimenti di magazzino
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import List

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import TimestampMixin, UUIDMixin


class Product(Base, UUIDMixin, TimestampMixin):
    """
    Modello per l'anagrafica prodotti.

    La giacenza viene modificata esclusivamente dallo StockLedger,
    sempre nella stessa transazione dell'operazione che la motiva.

    Attributes:
        id: UUID primary key, generato automaticamente
        name: Nome del prodotto
        description: Descrizione estesa
        cost_price: Costo di acquisto unitario
        sale_price: Prezzo di vendita unitario
        stock_quantity: Giacenza attuale (mai negativa)
        min_stock_level: Livello minimo giacenza per alert
        is_active: Prodotto utilizzabile in nuove operazioni
        is_sellable: Prodotto vendibile come voce manuale di un conto

    Relationships:
        stock_movements: Storico movimenti di magazzino

    Properties:
        is_below_minimum: True se stock < min_stock_level
    """

    __tablename__ = "products"

    # ------------------------------------------------------------
    # Colonne
    # ------------------------------------------------------------
    name: Mapped[str] = mapped_column(
        String(150),
        nullable=False,
        index=True,
        doc="Nome del prodotto",
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        doc="Descrizione estesa",
    )

    cost_price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        doc="Costo di acquisto",
    )

    sale_price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        doc="Prezzo di vendita",
    )

    stock_quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Giacenza attuale",
    )

    min_stock_level: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Livello minimo giacenza per alert",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        index=True,
        doc="Indica se il prodotto è attivo",
    )

    is_sellable: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        doc="Indica se il prodotto può essere venduto direttamente",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    stock_movements: Mapped[List["StockMovement"]] = relationship(
        "StockMovement",
        back_populates="product",
        lazy="noload",
        doc="Storico movimenti di magazzino",
    )

    # ------------------------------------------------------------
    # Indici e Vincoli
    # ------------------------------------------------------------
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        Index("ix_products_active_stock", "is_active", "stock_quantity"),
    )

    @property
    def is_below_minimum(self) -> bool:
        """True se la giacenza è sotto il livello minimo."""
        return self.stock_quantity < self.min_stock_level

    def __repr__(self) -> str:
        return f"Product(name={self.name!r}, stock={self.stock_quantity})"


class StockMovement(Base, UUIDMixin, TimestampMixin):
    """
    Modello per i movimenti di magazzino.

    Attributes:
        product_id: UUID del prodotto
        movement_type: Tipo di movimento (in, out, adjustment)
        quantity: Quantità con segno (positiva = carico, negativa = scarico)
        reference: Riferimento (es. prestazione, conto)
        notes: Note aggiuntive
    """

    __tablename__ = "stock_movements"

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        doc="UUID del prodotto",
    )

    movement_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
        doc="Tipo di movimento: in, out, adjustment",
    )

    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Quantità del movimento (positiva o negativa)",
    )

    reference: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        doc="Riferimento (es. prestazione, conto)",
    )

    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        doc="Note aggiuntive",
    )

    product: Mapped["Product"] = relationship(
        "Product",
        back_populates="stock_movements",
        lazy="noload",
        doc="Prodotto movimentato",
    )

    __table_args__ = (
        CheckConstraint(
            "movement_type IN ('in', 'out', 'adjustment')",
            name="ck_stock_movements_type",
        ),
    )

    def __repr__(self) -> str:
        return f"StockMovement(product_id={self.product_id}, type={self.movement_type}, quantity={self.quantity})"
