"""
Schemas Pydantic per l'Agenda
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Appuntamenti, flag di disponibilità e riepilogo calendario con capienza.
"""

import datetime
import uuid
from enum import Enum
from typing import ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.schemas.attendance import AttendanceItemsInput, AttendanceKind


# -------------------------------------------------------------------
# Enum
# -------------------------------------------------------------------

class AppointmentStatus(str, Enum):
    """Stati di un appuntamento."""
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"


class CalendarView(str, Enum):
    """Granularità della vista calendario."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


# -------------------------------------------------------------------
# Funzioni di validazione standalone
# -------------------------------------------------------------------

def ensure_aware(v: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
    """I datetime senza fuso sono interpretati come UTC."""
    if v is not None and v.tzinfo is None:
        return v.replace(tzinfo=datetime.timezone.utc)
    return v


def validate_interval(
    start: Optional[datetime.datetime],
    end: Optional[datetime.datetime],
) -> None:
    """
    Raises:
        ValueError: Se la fine non è successiva all'inizio
    """
    if start is not None and end is not None and end <= start:
        raise ValueError("La fine dell'appuntamento deve essere successiva all'inizio")


# -------------------------------------------------------------------
# Schemas di input
# -------------------------------------------------------------------

class AppointmentCreate(BaseModel):
    """
    Schema per la creazione di un appuntamento.

    Attributes:
        animal_id: Animale da visitare
        owner_id: Tutore (deve essere il tutore dell'animale)
        veterinarian_id: Veterinario
        assistant_id: Assistente (opzionale, diverso dal veterinario)
        scheduled_start: Inizio
        scheduled_end: Fine (esclusa)
        notes: Note libere
    """
    animal_id: uuid.UUID
    owner_id: uuid.UUID
    veterinarian_id: uuid.UUID
    assistant_id: Optional[uuid.UUID] = None
    scheduled_start: datetime.datetime
    scheduled_end: datetime.datetime
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("scheduled_start", "scheduled_end")
    @classmethod
    def normalize_timezone(cls, v: datetime.datetime) -> datetime.datetime:
        return ensure_aware(v)

    @model_validator(mode="after")
    def validate_appointment(self) -> "AppointmentCreate":
        validate_interval(self.scheduled_start, self.scheduled_end)
        if self.assistant_id is not None and self.assistant_id == self.veterinarian_id:
            raise ValueError("L'assistente deve essere diverso dal veterinario")
        return self


class AppointmentUpdate(BaseModel):
    """Aggiornamento parziale. Lo stato cambia solo tramite confirm/reschedule/complete."""

    # Campi obbligatori sul record: se indicati non possono essere null
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = (
        "animal_id",
        "owner_id",
        "veterinarian_id",
        "scheduled_start",
        "scheduled_end",
    )

    animal_id: Optional[uuid.UUID] = None
    owner_id: Optional[uuid.UUID] = None
    veterinarian_id: Optional[uuid.UUID] = None
    assistant_id: Optional[uuid.UUID] = None
    scheduled_start: Optional[datetime.datetime] = None
    scheduled_end: Optional[datetime.datetime] = None
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("scheduled_start", "scheduled_end")
    @classmethod
    def normalize_timezone(cls, v: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
        return ensure_aware(v)

    @model_validator(mode="after")
    def validate_appointment(self) -> "AppointmentUpdate":
        if not self.model_fields_set:
            raise ValueError("Indicare almeno un campo da aggiornare")
        for field in self.REQUIRED_FIELDS:
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"Il campo {field} non può essere nullo")
        validate_interval(self.scheduled_start, self.scheduled_end)
        return self


class AppointmentReschedule(BaseModel):
    """Nuovo intervallo: l'appuntamento torna in stato scheduled."""
    scheduled_start: datetime.datetime
    scheduled_end: datetime.datetime
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("scheduled_start", "scheduled_end")
    @classmethod
    def normalize_timezone(cls, v: datetime.datetime) -> datetime.datetime:
        return ensure_aware(v)

    @model_validator(mode="after")
    def validate_appointment(self) -> "AppointmentReschedule":
        validate_interval(self.scheduled_start, self.scheduled_end)
        return self


class AppointmentComplete(AttendanceItemsInput):
    """
    Dati della prestazione da creare (o aggiornare) al completamento.

    kind assente: si usa il tipo predefinito da configurazione.
    """
    kind: Optional[AttendanceKind] = None


# -------------------------------------------------------------------
# Schemas di lettura
# -------------------------------------------------------------------

class AppointmentRead(BaseModel):
    """Appuntamento con i flag di sovrapposizione calcolati al momento della lettura."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    animal_id: uuid.UUID
    owner_id: uuid.UUID
    veterinarian_id: uuid.UUID
    assistant_id: Optional[uuid.UUID] = None
    scheduled_start: datetime.datetime
    scheduled_end: datetime.datetime
    status: AppointmentStatus
    confirmed_at: Optional[datetime.datetime] = None
    completed_at: Optional[datetime.datetime] = None
    attendance_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime
    primary_collaborator_conflict: bool = False
    assistant_collaborator_conflict: bool = False


class AppointmentList(BaseModel):
    items: list[AppointmentRead]
    total: int


class CalendarRange(BaseModel):
    start: datetime.datetime
    end: datetime.datetime


class CalendarCapacity(BaseModel):
    """
    Capienza dell'agenda nel range.

    Senza collaboratore total_slots e available_slots sono None.
    """
    total_slots: Optional[int] = None
    booked_slots: int = 0
    available_slots: Optional[int] = None


class CalendarSummary(BaseModel):
    total: int = 0
    confirmed: int = 0
    completed: int = 0
    pending: int = 0


class CalendarRead(BaseModel):
    view: CalendarView
    reference_date: datetime.date
    collaborator_id: Optional[uuid.UUID] = None
    range: CalendarRange
    capacity: CalendarCapacity
    summary: CalendarSummary
    appointments: list[AppointmentRead] = Field(default_factory=list)
