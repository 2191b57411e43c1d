"""
Router FastAPI per l'Agenda
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Definisce gli endpoint API per appuntamenti e calendario.
"""

import datetime
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import require_permission
from app.core.database import get_db, transaction
from app.schemas.appointment import (
    AppointmentComplete,
    AppointmentCreate,
    AppointmentList,
    AppointmentRead,
    AppointmentReschedule,
    AppointmentStatus,
    AppointmentUpdate,
    CalendarRead,
    CalendarView,
)
from app.services.appointment_service import appointment_service
from app.services.calendar_service import calendar_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/appointments",
    tags=["Agenda"],
    dependencies=[Depends(require_permission("appointments:read"))],
)


# -------------------------------------------------------------------
# Endpoints di lettura
# -------------------------------------------------------------------

@router.get(
    "/",
    name="appuntamenti_lista",
    summary="Lista appuntamenti",
    description="Appuntamenti che si sovrappongono all'intervallo indicato, con flag di sovrapposizione.",
    response_model=AppointmentList,
    status_code=status.HTTP_200_OK,
)
async def get_appointments(
    date_from: Optional[datetime.datetime] = Query(None, description="Inizio intervallo"),
    date_to: Optional[datetime.datetime] = Query(None, description="Fine intervallo (esclusa)"),
    veterinarian_id: Optional[uuid.UUID] = Query(None, description="Filtro per veterinario"),
    assistant_id: Optional[uuid.UUID] = Query(None, description="Filtro per assistente"),
    status_filter: Optional[AppointmentStatus] = Query(None, description="Filtro per stato"),
    db: AsyncSession = Depends(get_db),
) -> AppointmentList:
    items = await appointment_service.get_all(
        db,
        date_from=date_from,
        date_to=date_to,
        veterinarian_id=veterinarian_id,
        assistant_id=assistant_id,
        status_filter=status_filter,
    )
    return AppointmentList(items=items, total=len(items))


@router.get(
    "/calendar",
    name="calendario",
    summary="Calendario",
    description="Vista giornaliera, settimanale o mensile con capienza e riepilogo.",
    response_model=CalendarRead,
    status_code=status.HTTP_200_OK,
)
async def get_calendar(
    view: CalendarView = Query(CalendarView.WEEK, description="Granularità della vista"),
    reference_date: Optional[datetime.date] = Query(None, description="Data di riferimento (default: oggi)"),
    collaborator_id: Optional[uuid.UUID] = Query(None, description="Veterinario o assistente"),
    status_filter: Optional[AppointmentStatus] = Query(None, description="Filtro per stato"),
    db: AsyncSession = Depends(get_db),
) -> CalendarRead:
    """
    Recupera il calendario.

    Senza collaboratore la capienza totale e disponibile è null;
    con collaboratore è calcolata dai suoi turni.
    """
    return await calendar_service.get_calendar(
        db,
        view,
        reference_date=reference_date,
        collaborator_id=collaborator_id,
        status_filter=status_filter,
    )


@router.get(
    "/{appointment_id}",
    name="appuntamento_dettaglio",
    summary="Dettaglio appuntamento",
    response_model=AppointmentRead,
    status_code=status.HTTP_200_OK,
)
async def get_appointment(
    appointment_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> AppointmentRead:
    return await appointment_service.get_by_id(db, appointment_id)


# -------------------------------------------------------------------
# Endpoints di scrittura
# -------------------------------------------------------------------

@router.post(
    "/",
    dependencies=[Depends(require_permission("appointments:write"))],
    name="appuntamento_crea",
    summary="Crea appuntamento",
    description="Crea un appuntamento in stato scheduled.",
    response_model=AppointmentRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_appointment(
    data: AppointmentCreate,
    db: AsyncSession = Depends(get_db),
) -> AppointmentRead:
    async with transaction(db):
        return await appointment_service.create(db, data)


@router.put(
    "/{appointment_id}",
    dependencies=[Depends(require_permission("appointments:write"))],
    name="appuntamento_aggiorna",
    summary="Aggiorna appuntamento",
    response_model=AppointmentRead,
    status_code=status.HTTP_200_OK,
)
async def update_appointment(
    appointment_id: uuid.UUID,
    data: AppointmentUpdate,
    db: AsyncSession = Depends(get_db),
) -> AppointmentRead:
    async with transaction(db):
        return await appointment_service.update(db, appointment_id, data)


@router.post(
    "/{appointment_id}/confirm",
    dependencies=[Depends(require_permission("appointments:write"))],
    name="appuntamento_conferma",
    summary="Conferma appuntamento",
    response_model=AppointmentRead,
    status_code=status.HTTP_200_OK,
)
async def confirm_appointment(
    appointment_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> AppointmentRead:
    async with transaction(db):
        return await appointment_service.confirm(db, appointment_id)


@router.post(
    "/{appointment_id}/reschedule",
    dependencies=[Depends(require_permission("appointments:write"))],
    name="appuntamento_riprogramma",
    summary="Riprogramma appuntamento",
    description="Sposta l'appuntamento: torna in stato scheduled e perde la conferma.",
    response_model=AppointmentRead,
    status_code=status.HTTP_200_OK,
)
async def reschedule_appointment(
    appointment_id: uuid.UUID,
    data: AppointmentReschedule,
    db: AsyncSession = Depends(get_db),
) -> AppointmentRead:
    async with transaction(db):
        return await appointment_service.reschedule(db, appointment_id, data)


@router.post(
    "/{appointment_id}/complete",
    dependencies=[Depends(require_permission("appointments:write"))],
    name="appuntamento_completa",
    summary="Completa appuntamento",
    description="Registra la prestazione collegata e ne genera il conto in un'unica transazione.",
    response_model=AppointmentRead,
    status_code=status.HTTP_200_OK,
)
async def complete_appointment(
    appointment_id: uuid.UUID,
    data: AppointmentComplete,
    db: AsyncSession = Depends(get_db),
) -> AppointmentRead:
    async with transaction(db):
        return await appointment_service.complete(db, appointment_id, data)


@router.delete(
    "/{appointment_id}",
    dependencies=[Depends(require_permission("appointments:write"))],
    name="appuntamento_elimina",
    summary="Elimina appuntamento",
    description="Consentito solo se l'appuntamento non ha una prestazione collegata.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_appointment(
    appointment_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    async with transaction(db):
        await appointment_service.delete(db, appointment_id)
