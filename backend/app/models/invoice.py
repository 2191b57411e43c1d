"""
Modelli SQLAlchemy per i Conti (fatturazione)
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Contiene:
- InvoiceStatus: Stati del conto identificati da slug stabile
- PaymentCondition: Condizioni di pagamento (termini e numero rate)
- Invoice: Conto intestato al tutore
- InvoiceItem: Righe del conto (da prestazione o manuali)
- InvoiceInstallment: Rate del conto
"""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.attendance import Attendance
    from app.models.collaborator import Collaborator
    from app.models.owner import Owner
    from app.models.product import Product

# Slug stabili degli stati (righe create dal seed)
OPEN_STATUS_SLUG = "open"
PARTIALLY_PAID_STATUS_SLUG = "partially_paid"
PAID_STATUS_SLUG = "paid"
BLOCKED_STATUS_SLUG = "blocked"


class InvoiceStatus(Base, UUIDMixin, TimestampMixin):
    """Stato del conto. Le righe sono dati di base creati in fase di deploy."""

    __tablename__ = "invoice_statuses"

    slug: Mapped[str] = mapped_column(String(30), nullable=False, unique=True, doc="Slug stabile")
    name: Mapped[str] = mapped_column(String(100), nullable=False, doc="Etichetta")

    def __repr__(self) -> str:
        return f"InvoiceStatus(slug={self.slug!r})"


class PaymentCondition(Base, UUIDMixin, TimestampMixin):
    """Condizione di pagamento: giorni di termine e numero di rate."""

    __tablename__ = "payment_conditions"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    term_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    installments: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("term_days >= 0", name="ck_payment_conditions_term_days"),
        CheckConstraint("installments >= 1", name="ck_payment_conditions_installments"),
    )

    def __repr__(self) -> str:
        return f"PaymentCondition(name={self.name!r}, installments={self.installments})"


class Invoice(Base, UUIDMixin, TimestampMixin):
    """
    Modello per i conti.

    Il totale non viene mai modificato a mano: è ricalcolato dal
    sincronizzatore o dalle operazioni sulle righe manuali.
    Un conto in stato "paid" è immutabile.

    Attributes:
        owner_id: UUID del tutore intestatario
        status_id: UUID dello stato
        responsible_id: Collaboratore responsabile (opzionale)
        payment_condition_id: Condizione di pagamento (opzionale)
        total: Totale del conto
        due_date: Data scadenza
        paid_at: Data/ora di saldo
        payment_method: Metodo di pagamento registrato al saldo
        notes: Note

    Relationships:
        status: Stato del conto
        items: Righe
        installments: Rate
    """

    __tablename__ = "invoices"

    # ------------------------------------------------------------
    # Colonne
    # ------------------------------------------------------------
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("owners.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        doc="UUID del tutore",
    )

    status_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoice_statuses.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        doc="UUID dello stato",
    )

    responsible_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("collaborators.id", ondelete="SET NULL"),
        nullable=True,
        doc="Collaboratore responsabile",
    )

    payment_condition_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("payment_conditions.id", ondelete="SET NULL"),
        nullable=True,
        doc="Condizione di pagamento",
    )

    total: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0.00"),
        doc="Totale del conto",
    )

    due_date: Mapped[datetime.date] = mapped_column(
        Date,
        nullable=False,
        index=True,
        doc="Data scadenza",
    )

    paid_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Data/ora di saldo",
    )

    payment_method: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
        doc="Metodo di pagamento",
    )

    notes: Mapped[str | None] = mapped_column(Text, nullable=True, doc="Note")

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    status: Mapped["InvoiceStatus"] = relationship(
        "InvoiceStatus",
        lazy="joined",
        doc="Stato del conto",
    )

    owner: Mapped["Owner"] = relationship("Owner", lazy="noload")

    responsible: Mapped[Optional["Collaborator"]] = relationship("Collaborator", lazy="noload")

    payment_condition: Mapped[Optional["PaymentCondition"]] = relationship(
        "PaymentCondition",
        lazy="noload",
    )

    items: Mapped[List["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        doc="Righe del conto",
    )

    installments: Mapped[List["InvoiceInstallment"]] = relationship(
        "InvoiceInstallment",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceInstallment.number",
        lazy="selectin",
        doc="Rate del conto",
    )

    __table_args__ = (
        CheckConstraint("total >= 0", name="ck_invoices_total_positive"),
    )

    # ------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------
    @property
    def status_slug(self) -> str | None:
        return self.status.slug if self.status is not None else None

    @property
    def is_paid(self) -> bool:
        """True se il conto è saldato (stato terminale)."""
        return self.status_slug == PAID_STATUS_SLUG

    def __repr__(self) -> str:
        return f"Invoice(owner_id={self.owner_id}, total={self.total}, status={self.status_slug!r})"


class InvoiceItem(Base, UUIDMixin, TimestampMixin):
    """
    Riga del conto.

    attendance_id valorizzato = riga derivata da una prestazione, gestita dal
    sincronizzatore. attendance_id nullo = riga manuale, mai cancellata
    automaticamente. Le righe con product_id movimentano il magazzino.
    """

    __tablename__ = "invoice_items"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    attendance_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("attendances.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    product_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
    )
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    invoice: Mapped["Invoice"] = relationship(
        "Invoice",
        back_populates="items",
        lazy="noload",
    )
    attendance: Mapped[Optional["Attendance"]] = relationship(
        "Attendance",
        back_populates="invoice_items",
        lazy="noload",
    )
    product: Mapped[Optional["Product"]] = relationship("Product", lazy="noload")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_invoice_items_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_invoice_items_unit_price_positive"),
        Index("ix_invoice_items_invoice_attendance", "invoice_id", "attendance_id"),
    )

    @property
    def is_manual(self) -> bool:
        return self.attendance_id is None

    def __repr__(self) -> str:
        return f"InvoiceItem(description={self.description!r}, total={self.total})"


class InvoiceInstallment(Base, UUIDMixin, TimestampMixin):
    """Rata del conto: la somma degli importi coincide sempre con il totale."""

    __tablename__ = "invoice_installments"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    due_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    paid_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    invoice: Mapped["Invoice"] = relationship(
        "Invoice",
        back_populates="installments",
        lazy="noload",
    )

    @property
    def is_paid(self) -> bool:
        return self.paid_at is not None

    def __repr__(self) -> str:
        return f"InvoiceInstallment(number={self.number}, due_date={self.due_date}, amount={self.amount})"
