from __future__ import annotations

from typing import TYPE_CHECKING, List

from sqlalchemy import JSON, CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.appointment import Appointment


class Collaborator(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Modello per il personale dell'ambulatorio (veterinari, assistenti, segreteria).

    shifts contiene i nomi dei turni coperti (es. ["MORNING", "AFTERNOON"]),
    usati per calcolare la capienza dell'agenda.
    """
    __tablename__ = "collaborators"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    surname: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="veterinarian")
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    shifts: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    # Relationships
    appointments: Mapped[List["Appointment"]] = relationship(
        "Appointment",
        back_populates="veterinarian",
        foreign_keys="Appointment.veterinarian_id",
        lazy="noload",
    )
    assisted_appointments: Mapped[List["Appointment"]] = relationship(
        "Appointment",
        back_populates="assistant",
        foreign_keys="Appointment.assistant_id",
        lazy="noload",
    )

    __table_args__ = (
        CheckConstraint(
            "role IN ('veterinarian', 'assistant', 'reception')",
            name="ck_collaborators_role",
        ),
    )

    @property
    def is_veterinarian(self) -> bool:
        return self.role == "veterinarian"

    def __repr__(self) -> str:
        return f"Collaborator(name={self.name!r}, surname={self.surname!r}, role={self.role!r})"
