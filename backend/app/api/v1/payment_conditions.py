"""
Router FastAPI per le Condizioni di Pagamento
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)
"""

import logging
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import require_permission
from app.core.database import get_db, transaction
from app.schemas.payment_condition import PaymentConditionPayload, PaymentConditionRead
from app.services.payment_condition_service import payment_condition_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/payment-conditions",
    tags=["Condizioni di pagamento"],
    dependencies=[Depends(require_permission("invoices:read"))],
)


@router.get(
    "/",
    name="condizioni_lista",
    summary="Lista condizioni di pagamento",
    response_model=list[PaymentConditionRead],
    status_code=status.HTTP_200_OK,
)
async def get_payment_conditions(
    db: AsyncSession = Depends(get_db),
) -> list[PaymentConditionRead]:
    conditions = await payment_condition_service.get_all(db)
    return [PaymentConditionRead.model_validate(c) for c in conditions]


@router.post(
    "/",
    dependencies=[Depends(require_permission("catalog:write"))],
    name="condizione_crea",
    summary="Crea condizione di pagamento",
    response_model=PaymentConditionRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_payment_condition(
    data: PaymentConditionPayload,
    db: AsyncSession = Depends(get_db),
) -> PaymentConditionRead:
    async with transaction(db):
        condition = await payment_condition_service.create(db, data)
    return PaymentConditionRead.model_validate(condition)


@router.put(
    "/{condition_id}",
    dependencies=[Depends(require_permission("catalog:write"))],
    name="condizione_aggiorna",
    summary="Aggiorna condizione di pagamento",
    description="I conti già pianificati non vengono ricalcolati.",
    response_model=PaymentConditionRead,
    status_code=status.HTTP_200_OK,
)
async def update_payment_condition(
    condition_id: uuid.UUID,
    data: PaymentConditionPayload,
    db: AsyncSession = Depends(get_db),
) -> PaymentConditionRead:
    async with transaction(db):
        condition = await payment_condition_service.update(db, condition_id, data)
    return PaymentConditionRead.model_validate(condition)


@router.delete(
    "/{condition_id}",
    dependencies=[Depends(require_permission("catalog:write"))],
    name="condizione_elimina",
    summary="Elimina condizione di pagamento",
    description="Rifiutata se la condizione è usata da almeno un conto.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_payment_condition(
    condition_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    async with transaction(db):
        await payment_condition_service.delete(db, condition_id)
