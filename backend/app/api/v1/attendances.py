"""
Router FastAPI per le Prestazioni
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Definisce gli endpoint API per la gestione delle prestazioni.
"""

import datetime
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import require_permission
from app.core.database import get_db, transaction
from app.schemas.attendance import (
    AttendanceCreate,
    AttendanceKind,
    AttendanceList,
    AttendanceRead,
    AttendanceUpdate,
)
from app.services.attendance_service import attendance_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/attendances",
    tags=["Prestazioni"],
    dependencies=[Depends(require_permission("attendances:read"))],
)


@router.get(
    "/",
    name="prestazioni_lista",
    summary="Lista prestazioni",
    description="Recupera la lista paginata delle prestazioni con eventuali filtri.",
    response_model=AttendanceList,
    status_code=status.HTTP_200_OK,
)
async def get_attendances(
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(20, ge=1, le=100, description="Elementi per pagina"),
    animal_id: Optional[uuid.UUID] = Query(None, description="Filtro per animale"),
    kind: Optional[AttendanceKind] = Query(None, description="Filtro per tipo"),
    date_from: Optional[datetime.date] = Query(None, description="Data iniziale (inclusa)"),
    date_to: Optional[datetime.date] = Query(None, description="Data finale (inclusa)"),
    db: AsyncSession = Depends(get_db),
) -> AttendanceList:
    items, total = await attendance_service.get_all(
        db,
        animal_id=animal_id,
        kind=kind,
        date_from=date_from,
        date_to=date_to,
        page=page,
        per_page=per_page,
    )
    return AttendanceList(
        items=[AttendanceRead.model_validate(a) for a in items],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/{attendance_id}",
    name="prestazione_dettaglio",
    summary="Dettaglio prestazione",
    response_model=AttendanceRead,
    status_code=status.HTTP_200_OK,
)
async def get_attendance(
    attendance_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> AttendanceRead:
    attendance = await attendance_service.get_by_id(db, attendance_id)
    return AttendanceRead.model_validate(attendance)


@router.post(
    "/",
    dependencies=[Depends(require_permission("attendances:write"))],
    name="prestazione_crea",
    summary="Crea prestazione",
    description="Registra una prestazione, scarica i prodotti consumati e genera il conto.",
    response_model=AttendanceRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_attendance(
    data: AttendanceCreate,
    db: AsyncSession = Depends(get_db),
) -> AttendanceRead:
    async with transaction(db):
        attendance = await attendance_service.create(db, data)
    return AttendanceRead.model_validate(attendance)


@router.put(
    "/{attendance_id}",
    dependencies=[Depends(require_permission("attendances:write"))],
    name="prestazione_aggiorna",
    summary="Aggiorna prestazione",
    description="Le liste indicate sostituiscono quelle esistenti; il conto viene risincronizzato.",
    response_model=AttendanceRead,
    status_code=status.HTTP_200_OK,
)
async def update_attendance(
    attendance_id: uuid.UUID,
    data: AttendanceUpdate,
    db: AsyncSession = Depends(get_db),
) -> AttendanceRead:
    async with transaction(db):
        attendance = await attendance_service.update(db, attendance_id, data)
    return AttendanceRead.model_validate(attendance)


@router.delete(
    "/{attendance_id}",
    dependencies=[Depends(require_permission("attendances:write"))],
    name="prestazione_elimina",
    summary="Elimina prestazione",
    description="Ripristina il magazzino; le righe del conto restano come righe manuali.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_attendance(
    attendance_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    async with transaction(db):
        await attendance_service.delete(db, attendance_id)
