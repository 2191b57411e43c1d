"""
Router FastAPI per i Conti
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Definisce gli endpoint API per la gestione dei conti:
generazione, righe manuali, pagamenti e riepilogo.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import require_permission
from app.core.database import get_db, transaction
from app.schemas.attendance import AttendanceRead
from app.schemas.invoice import (
    InstallmentPayment,
    InvoiceGenerate,
    InvoiceList,
    InvoiceManualItemCreate,
    InvoicePayment,
    InvoiceRead,
    InvoiceStatusRead,
    InvoiceStatusSlug,
)
from app.services.invoice_service import invoice_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/invoices",
    tags=["Conti"],
    dependencies=[Depends(require_permission("invoices:read"))],
)


# -------------------------------------------------------------------
# Endpoints di lettura
# -------------------------------------------------------------------

@router.get(
    "/",
    name="conti_lista",
    summary="Lista conti",
    description="Recupera la lista paginata dei conti con il riepilogo aperti/saldati.",
    response_model=InvoiceList,
    status_code=status.HTTP_200_OK,
)
async def get_invoices(
    owner_id: Optional[uuid.UUID] = Query(None, description="Filtro per tutore"),
    status_filter: Optional[InvoiceStatusSlug] = Query(None, description="Filtro per stato"),
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(20, ge=1, le=100, description="Elementi per pagina"),
    db: AsyncSession = Depends(get_db),
) -> InvoiceList:
    items, total, summary = await invoice_service.get_all(
        db,
        owner_id=owner_id,
        status_slug=status_filter,
        page=page,
        per_page=per_page,
    )
    return InvoiceList(
        items=[InvoiceRead.model_validate(i) for i in items],
        total=total,
        page=page,
        per_page=per_page,
        summary=summary,
    )


@router.get(
    "/candidates",
    name="conti_candidati",
    summary="Prestazioni da fatturare",
    description="Prestazioni che non hanno ancora righe di conto.",
    response_model=list[AttendanceRead],
    status_code=status.HTTP_200_OK,
)
async def get_candidates(
    owner_id: Optional[uuid.UUID] = Query(None, description="Filtro per tutore"),
    db: AsyncSession = Depends(get_db),
) -> list[AttendanceRead]:
    attendances = await invoice_service.list_candidates(db, owner_id=owner_id)
    return [AttendanceRead.model_validate(a) for a in attendances]


@router.get(
    "/statuses",
    name="conti_stati",
    summary="Stati del conto",
    response_model=list[InvoiceStatusRead],
    status_code=status.HTTP_200_OK,
)
async def get_statuses(
    db: AsyncSession = Depends(get_db),
) -> list[InvoiceStatusRead]:
    statuses = await invoice_service.list_statuses(db)
    return [InvoiceStatusRead.model_validate(s) for s in statuses]


@router.get(
    "/{invoice_id}",
    name="conto_dettaglio",
    summary="Dettaglio conto",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def get_invoice(
    invoice_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    invoice = await invoice_service.get_by_id(db, invoice_id)
    return InvoiceRead.model_validate(invoice)


# -------------------------------------------------------------------
# Endpoints di scrittura
# -------------------------------------------------------------------

@router.post(
    "/generate",
    dependencies=[Depends(require_permission("invoices:write"))],
    name="conto_genera",
    summary="Genera conto",
    description=(
        "Genera o risincronizza il conto di una prestazione, indicata direttamente "
        "o tramite l'appuntamento completato."
    ),
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def generate_invoice(
    data: InvoiceGenerate,
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    """
    Genera il conto.

    Operazione idempotente: ripeterla senza modifiche alla prestazione
    restituisce lo stesso conto con lo stesso totale.
    Un conto saldato viene restituito invariato.
    """
    async with transaction(db):
        invoice = await invoice_service.generate(db, data)
    return InvoiceRead.model_validate(invoice)


@router.post(
    "/{invoice_id}/items",
    dependencies=[Depends(require_permission("invoices:write"))],
    name="conto_aggiungi_riga",
    summary="Aggiungi riga manuale",
    description="Aggiunge una riga manuale; se collegata a un prodotto scarica il magazzino.",
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_manual_item(
    invoice_id: uuid.UUID,
    data: InvoiceManualItemCreate,
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    async with transaction(db):
        invoice = await invoice_service.add_manual_item(db, invoice_id, data)
    return InvoiceRead.model_validate(invoice)


@router.delete(
    "/{invoice_id}/items/{item_id}",
    dependencies=[Depends(require_permission("invoices:write"))],
    name="conto_rimuovi_riga",
    summary="Rimuovi riga manuale",
    description="Rimuove una riga manuale; le righe generate da una prestazione non sono rimovibili.",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def remove_manual_item(
    invoice_id: uuid.UUID,
    item_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    async with transaction(db):
        invoice = await invoice_service.remove_manual_item(db, invoice_id, item_id)
    return InvoiceRead.model_validate(invoice)


@router.post(
    "/{invoice_id}/pay",
    dependencies=[Depends(require_permission("cashier:manage"))],
    name="conto_salda",
    summary="Salda conto",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def register_payment(
    invoice_id: uuid.UUID,
    data: InvoicePayment,
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    async with transaction(db):
        invoice = await invoice_service.register_payment(db, invoice_id, data)
    return InvoiceRead.model_validate(invoice)


@router.post(
    "/{invoice_id}/installments/{installment_id}/pay",
    dependencies=[Depends(require_permission("cashier:manage"))],
    name="conto_paga_rata",
    summary="Paga rata",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def pay_installment(
    invoice_id: uuid.UUID,
    installment_id: uuid.UUID,
    data: InstallmentPayment,
    db: AsyncSession = Depends(get_db),
) -> InvoiceRead:
    async with transaction(db):
        invoice = await invoice_service.pay_installment(db, invoice_id, installment_id, data)
    return InvoiceRead.model_validate(invoice)
