"""
Modelli SQLAlchemy per le Prestazioni
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Contiene:
- ServiceDefinition: Listino delle prestazioni
- Attendance: Prestazione erogata a un animale
- AttendanceCatalogItem: Voce di listino usata nella prestazione
- AttendanceProductItem: Prodotto consumato nella prestazione
"""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDMixin
from app.utils.money import line_total

if TYPE_CHECKING:
    from app.models.appointment import Appointment
    from app.models.invoice import InvoiceItem
    from app.models.owner import Animal
    from app.models.product import Product


class ServiceDefinition(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Voce del listino prestazioni (es. "Visita clinica", "Vaccino trivalente").

    Il prezzo di listino è solo un suggerimento: ogni voce usata
    in una prestazione conserva il proprio prezzo unitario.
    """

    __tablename__ = "service_definitions"

    name: Mapped[str] = mapped_column(String(150), nullable=False, unique=True, doc="Nome")
    description: Mapped[str | None] = mapped_column(Text, nullable=True, doc="Descrizione")
    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        doc="Prezzo di listino",
    )

    def __repr__(self) -> str:
        return f"ServiceDefinition(name={self.name!r})"


class Attendance(Base, UUIDMixin, TimestampMixin):
    """
    Modello per la prestazione erogata (visita, esame, vaccinazione...).

    Il prezzo è indicato esplicitamente oppure calcolato come somma
    delle voci di listino. Ogni modifica alle voci avviene nella stessa
    transazione dei movimenti di magazzino e della sincronizzazione del conto.

    Attributes:
        animal_id: UUID dell'animale
        kind: Tipo di prestazione
        date: Data della prestazione
        price: Prezzo della prestazione
        notes: Note cliniche/amministrative

    Relationships:
        catalog_items: Voci di listino
        product_items: Prodotti consumati
        invoice_items: Righe di conto generate dalla prestazione
    """

    __tablename__ = "attendances"

    # ------------------------------------------------------------
    # Colonne
    # ------------------------------------------------------------
    animal_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("animals.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        doc="UUID dell'animale",
    )

    kind: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="consultation",
        doc="Tipo: consultation, exam, vaccination, surgery, other",
    )

    date: Mapped[datetime.date] = mapped_column(
        Date,
        nullable=False,
        index=True,
        doc="Data della prestazione",
    )

    price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        doc="Prezzo della prestazione",
    )

    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        doc="Note",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    animal: Mapped["Animal"] = relationship(
        "Animal",
        back_populates="attendances",
        lazy="joined",
        doc="Animale trattato",
    )

    catalog_items: Mapped[List["AttendanceCatalogItem"]] = relationship(
        "AttendanceCatalogItem",
        back_populates="attendance",
        cascade="all, delete-orphan",
        lazy="selectin",
        doc="Voci di listino",
    )

    product_items: Mapped[List["AttendanceProductItem"]] = relationship(
        "AttendanceProductItem",
        back_populates="attendance",
        cascade="all, delete-orphan",
        lazy="selectin",
        doc="Prodotti consumati",
    )

    invoice_items: Mapped[List["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="attendance",
        passive_deletes=True,
        lazy="noload",
        doc="Righe di conto collegate",
    )

    appointment: Mapped[Optional["Appointment"]] = relationship(
        "Appointment",
        back_populates="attendance",
        uselist=False,
        lazy="noload",
        doc="Appuntamento da cui è nata la prestazione",
    )

    __table_args__ = (
        CheckConstraint(
            "kind IN ('consultation', 'exam', 'vaccination', 'surgery', 'other')",
            name="ck_attendances_kind",
        ),
        CheckConstraint("price >= 0", name="ck_attendances_price"),
    )

    @property
    def catalog_total(self) -> Decimal:
        """Somma dei totali delle voci di listino."""
        return sum((item.line_total for item in self.catalog_items), Decimal("0.00"))

    @property
    def products_total(self) -> Decimal:
        """Somma dei totali dei prodotti consumati."""
        return sum((item.line_total for item in self.product_items), Decimal("0.00"))

    def __repr__(self) -> str:
        return f"Attendance(animal_id={self.animal_id}, kind={self.kind!r}, date={self.date})"


class AttendanceCatalogItem(Base, UUIDMixin, TimestampMixin):
    """Voce di listino usata in una prestazione (una sola riga per definizione)."""

    __tablename__ = "attendance_catalog_items"

    attendance_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("attendances.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    definition_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("service_definitions.id", ondelete="RESTRICT"),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    attendance: Mapped["Attendance"] = relationship(
        "Attendance",
        back_populates="catalog_items",
        lazy="noload",
    )
    definition: Mapped["ServiceDefinition"] = relationship(
        "ServiceDefinition",
        lazy="joined",
    )

    __table_args__ = (
        UniqueConstraint("attendance_id", "definition_id", name="uq_attendance_catalog_definition"),
        CheckConstraint("quantity > 0", name="ck_attendance_catalog_items_quantity"),
    )

    @property
    def line_total(self) -> Decimal:
        """Totale riga: quantity * unit_price."""
        return line_total(self.quantity, self.unit_price)

    def __repr__(self) -> str:
        return f"AttendanceCatalogItem(definition_id={self.definition_id}, quantity={self.quantity})"


class AttendanceProductItem(Base, UUIDMixin, TimestampMixin):
    """Prodotto consumato in una prestazione (una sola riga per prodotto)."""

    __tablename__ = "attendance_product_items"

    attendance_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("attendances.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    attendance: Mapped["Attendance"] = relationship(
        "Attendance",
        back_populates="product_items",
        lazy="noload",
    )
    product: Mapped["Product"] = relationship(
        "Product",
        lazy="joined",
    )

    __table_args__ = (
        UniqueConstraint("attendance_id", "product_id", name="uq_attendance_product"),
        CheckConstraint("quantity > 0", name="ck_attendance_product_items_quantity"),
        Index("ix_attendance_product_items_product", "product_id"),
    )

    @property
    def line_total(self) -> Decimal:
        """Totale riga: quantity * unit_price."""
        return line_total(self.quantity, self.unit_price)

    def __repr__(self) -> str:
        return f"AttendanceProductItem(product_id={self.product_id}, quantity={self.quantity})"
