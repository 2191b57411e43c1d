"""
Service Layer per il Calendario
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Calcola range della vista (giorno/settimana/mese), capienza in posti
per collaboratore in base ai turni e riepilogo degli appuntamenti.
"""

import datetime
import logging
import uuid
from typing import Iterable, Mapping, Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.models.appointment import Appointment
from app.models.collaborator import Collaborator
from app.schemas.appointment import (
    AppointmentRead,
    AppointmentStatus,
    CalendarCapacity,
    CalendarRange,
    CalendarRead,
    CalendarSummary,
    CalendarView,
)
from app.services.schedule_conflicts import NO_CONFLICT, detect_conflicts
from app.utils.time_range import DateLike, TimeRange, range_for_view

logger = logging.getLogger(__name__)


# ------------------------------------------------------------
# Calcoli puri
# ------------------------------------------------------------

def compute_range(view: CalendarView | str, reference: DateLike) -> TimeRange:
    """Range UTC della vista richiesta."""
    return range_for_view(getattr(view, "value", view), reference)


def slots_per_day(
    shifts: Iterable[str],
    shift_capacity: Optional[Mapping[str, int]] = None,
    default_slots: Optional[int] = None,
) -> int:
    """
    Posti prenotabili al giorno per l'insieme di turni indicato.

    I nomi dei turni sono confrontati in maiuscolo; un turno non censito
    vale default_slots.
    """
    capacity = settings.shift_capacity if shift_capacity is None else shift_capacity
    fallback = settings.default_shift_slots if default_slots is None else default_slots
    return sum(capacity.get(shift.strip().upper(), fallback) for shift in shifts)


def _is_booked(appointment) -> bool:
    status = getattr(appointment.status, "value", appointment.status)
    return status != AppointmentStatus.COMPLETED.value


def compute_capacity(
    appointments: Sequence,
    time_range: TimeRange,
    shifts: Optional[Iterable[str]] = None,
    *,
    shift_capacity: Optional[Mapping[str, int]] = None,
    default_slots: Optional[int] = None,
) -> CalendarCapacity:
    """
    Capienza dell'agenda nel range.

    Args:
        appointments: Appuntamenti del range (già filtrati per collaboratore se indicato)
        time_range: Range della vista
        shifts: Turni del collaboratore; None = nessun collaboratore selezionato

    Returns:
        CalendarCapacity: senza collaboratore solo booked_slots è valorizzato
    """
    booked = sum(1 for appointment in appointments if _is_booked(appointment))

    if shifts is None:
        return CalendarCapacity(total_slots=None, booked_slots=booked, available_slots=None)

    per_day = slots_per_day(shifts, shift_capacity, default_slots)
    total = per_day * time_range.days_spanned
    return CalendarCapacity(
        total_slots=total,
        booked_slots=booked,
        available_slots=max(total - booked, 0),
    )


def summarize(appointments: Sequence) -> CalendarSummary:
    """Conteggi per stato degli appuntamenti del range."""
    counts = {status.value: 0 for status in AppointmentStatus}
    for appointment in appointments:
        counts[getattr(appointment.status, "value", appointment.status)] += 1
    return CalendarSummary(
        total=len(appointments),
        confirmed=counts[AppointmentStatus.CONFIRMED.value],
        completed=counts[AppointmentStatus.COMPLETED.value],
        pending=counts[AppointmentStatus.SCHEDULED.value],
    )


# ------------------------------------------------------------
# Service
# ------------------------------------------------------------

class CalendarService:
    """
    Service per la vista calendario.

    Sola lettura: può essere eseguito fuori da transazioni di scrittura.
    """

    async def get_calendar(
        self,
        db: AsyncSession,
        view: CalendarView,
        reference_date: Optional[datetime.date] = None,
        collaborator_id: Optional[uuid.UUID] = None,
        status_filter: Optional[AppointmentStatus] = None,
    ) -> CalendarRead:
        """
        Recupera gli appuntamenti del range con flag, capienza e riepilogo.

        Args:
            db: Sessione database
            view: Granularità (day, week, month)
            reference_date: Data di riferimento (default: oggi UTC)
            collaborator_id: Veterinario o assistente da filtrare
            status_filter: Filtro opzionale per stato

        Raises:
            NotFoundError: Se il collaboratore non esiste
        """
        if reference_date is None:
            reference_date = datetime.datetime.now(datetime.timezone.utc).date()
        time_range = compute_range(view, reference_date)

        shifts: Optional[list[str]] = None
        if collaborator_id is not None:
            collaborator = await db.get(Collaborator, collaborator_id)
            if collaborator is None:
                logger.warning("Collaboratore non trovato: %s", collaborator_id)
                raise NotFoundError(f"Collaboratore non trovato: {collaborator_id}")
            shifts = list(collaborator.shifts or [])

        query = (
            select(Appointment)
            .where(Appointment.scheduled_start < time_range.end)
            .where(Appointment.scheduled_end > time_range.start)
            .order_by(Appointment.scheduled_start.asc())
        )
        if status_filter is not None:
            query = query.where(Appointment.status == status_filter.value)
        if collaborator_id is not None:
            query = query.where(
                or_(
                    Appointment.veterinarian_id == collaborator_id,
                    Appointment.assistant_id == collaborator_id,
                )
            )

        result = await db.execute(query)
        appointments = list(result.scalars().all())
        availability = detect_conflicts(appointments)

        return CalendarRead(
            view=view,
            reference_date=reference_date,
            collaborator_id=collaborator_id,
            range=CalendarRange(start=time_range.start, end=time_range.end),
            capacity=compute_capacity(appointments, time_range, shifts),
            summary=summarize(appointments),
            appointments=[
                AppointmentRead.model_validate(appointment).model_copy(
                    update=availability.get(appointment.id, NO_CONFLICT).as_dict()
                )
                for appointment in appointments
            ],
        )


# Istanza singleton del service
calendar_service = CalendarService()
