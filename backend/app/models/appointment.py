"""
Modello SQLAlchemy per gli Appuntamenti
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Un appuntamento occupa l'intervallo semiaperto [scheduled_start, scheduled_end)
per il veterinario e, se presente, per l'assistente.
"""

from __future__ import annotations

import datetime
import uuid
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.attendance import Attendance
    from app.models.collaborator import Collaborator
    from app.models.owner import Animal, Owner


class Appointment(Base, UUIDMixin, TimestampMixin):
    """
    Modello per gli appuntamenti in agenda.

    Ciclo di vita:
        scheduled → confirmed → completed
        Riprogrammare riporta a scheduled e azzera confirmed_at.
        Completare crea (o riusa) la prestazione collegata, una sola volta.

    Attributes:
        animal_id: UUID dell'animale
        owner_id: UUID del tutore (deve coincidere con quello dell'animale)
        veterinarian_id: UUID del veterinario (collaboratore principale)
        assistant_id: UUID dell'assistente (opzionale)
        scheduled_start: Inizio (incluso)
        scheduled_end: Fine (esclusa)
        status: scheduled, confirmed, completed
        confirmed_at: Data/ora di conferma
        completed_at: Data/ora di completamento
        attendance_id: Prestazione generata al completamento
        notes: Note libere
    """

    __tablename__ = "appointments"

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

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("owners.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        doc="UUID del tutore",
    )

    veterinarian_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("collaborators.id", ondelete="RESTRICT"),
        nullable=False,
        doc="UUID del veterinario",
    )

    assistant_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("collaborators.id", ondelete="SET NULL"),
        nullable=True,
        doc="UUID dell'assistente",
    )

    scheduled_start: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="Inizio appuntamento (incluso)",
    )

    scheduled_end: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="Fine appuntamento (esclusa)",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="scheduled",
        index=True,
        doc="Stato: scheduled, confirmed, completed",
    )

    confirmed_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Data/ora di conferma",
    )

    completed_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Data/ora di completamento",
    )

    attendance_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("attendances.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
        doc="Prestazione collegata",
    )

    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        doc="Note",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    animal: Mapped["Animal"] = relationship("Animal", lazy="noload")
    owner: Mapped["Owner"] = relationship("Owner", lazy="noload")
    veterinarian: Mapped["Collaborator"] = relationship(
        "Collaborator",
        back_populates="appointments",
        foreign_keys=[veterinarian_id],
        lazy="noload",
    )
    assistant: Mapped[Optional["Collaborator"]] = relationship(
        "Collaborator",
        back_populates="assisted_appointments",
        foreign_keys=[assistant_id],
        lazy="noload",
    )
    attendance: Mapped[Optional["Attendance"]] = relationship(
        "Attendance",
        back_populates="appointment",
        lazy="noload",
    )

    # ------------------------------------------------------------
    # Indici e Vincoli
    # ------------------------------------------------------------
    __table_args__ = (
        CheckConstraint(
            "scheduled_end > scheduled_start",
            name="ck_appointments_interval",
        ),
        CheckConstraint(
            "status IN ('scheduled', 'confirmed', 'completed')",
            name="ck_appointments_status",
        ),
        Index("ix_appointments_vet_start", "veterinarian_id", "scheduled_start"),
        Index("ix_appointments_assistant_start", "assistant_id", "scheduled_start"),
    )

    def __repr__(self) -> str:
        return (
            f"Appointment(veterinarian_id={self.veterinarian_id}, "
            f"start={self.scheduled_start}, status={self.status!r})"
        )
