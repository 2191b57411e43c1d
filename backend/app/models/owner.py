"""
Modelli SQLAlchemy per Tutori e Animali
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)
"""

from __future__ import annotations

import datetime
import uuid
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Date, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.attendance import Attendance


class Owner(Base, UUIDMixin, TimestampMixin):
    """
    Tutore (proprietario) di uno o più animali.

    Relationships:
        animals: Animali del tutore
    """

    __tablename__ = "owners"

    name: Mapped[str] = mapped_column(String(100), nullable=False, doc="Nome")
    surname: Mapped[str] = mapped_column(String(100), nullable=False, index=True, doc="Cognome")
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True, doc="Telefono")
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, doc="Email")
    address: Mapped[str | None] = mapped_column(Text, nullable=True, doc="Indirizzo completo")

    animals: Mapped[List["Animal"]] = relationship(
        "Animal",
        back_populates="owner",
        lazy="noload",
        doc="Animali del tutore",
    )

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.surname}"

    def __repr__(self) -> str:
        return f"Owner(name={self.name!r}, surname={self.surname!r})"


class Animal(Base, UUIDMixin, TimestampMixin):
    """
    Animale in cura presso l'ambulatorio.

    Attributes:
        owner_id: UUID del tutore
        name: Nome dell'animale
        species: Specie (cane, gatto, ...)
        breed: Razza
        birth_date: Data di nascita (anche presunta)
    """

    __tablename__ = "animals"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("owners.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        doc="UUID del tutore",
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False, doc="Nome dell'animale")
    species: Mapped[str] = mapped_column(String(50), nullable=False, doc="Specie")
    breed: Mapped[str | None] = mapped_column(String(100), nullable=True, doc="Razza")
    birth_date: Mapped[Optional[datetime.date]] = mapped_column(
        Date,
        nullable=True,
        doc="Data di nascita",
    )

    owner: Mapped["Owner"] = relationship(
        "Owner",
        back_populates="animals",
        lazy="joined",
        doc="Tutore dell'animale",
    )
    attendances: Mapped[List["Attendance"]] = relationship(
        "Attendance",
        back_populates="animal",
        lazy="noload",
        doc="Prestazioni erogate all'animale",
    )

    def __repr__(self) -> str:
        return f"Animal(name={self.name!r}, species={self.species!r})"
