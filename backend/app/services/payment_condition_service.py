"""
Service Layer per le Condizioni di Pagamento
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Le condizioni determinano termine e numero di rate dei conti
generati dalle prestazioni (vedi InvoiceSynchronizer).
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError
from app.models.invoice import Invoice, PaymentCondition
from app.schemas.payment_condition import PaymentConditionPayload

logger = logging.getLogger(__name__)


class PaymentConditionService:
    """Service per l'anagrafica delle condizioni di pagamento."""

    async def get_all(self, db: AsyncSession) -> list[PaymentCondition]:
        result = await db.execute(select(PaymentCondition).order_by(PaymentCondition.name.asc()))
        return list(result.scalars().all())

    async def get_by_id(self, db: AsyncSession, condition_id: uuid.UUID) -> PaymentCondition:
        """
        Raises:
            NotFoundError: Se la condizione non esiste
        """
        condition = await db.get(PaymentCondition, condition_id)
        if condition is None:
            logger.warning("Condizione di pagamento non trovata: %s", condition_id)
            raise NotFoundError(f"Condizione di pagamento non trovata: {condition_id}")
        return condition

    async def create(self, db: AsyncSession, data: PaymentConditionPayload) -> PaymentCondition:
        """
        Raises:
            ConflictError: Se il nome è già usato
        """
        await self._check_unique_name(db, data.name)

        condition = PaymentCondition(**data.model_dump())
        db.add(condition)
        await db.flush()
        await db.refresh(condition)

        logger.info(
            "Creata condizione di pagamento: %s (%s giorni, %s rate)",
            condition.name,
            condition.term_days,
            condition.installments,
        )
        return condition

    async def update(
        self,
        db: AsyncSession,
        condition_id: uuid.UUID,
        data: PaymentConditionPayload,
    ) -> PaymentCondition:
        """
        Sostituisce i dati della condizione.

        I conti già pianificati non vengono ricalcolati.

        Raises:
            NotFoundError: Se la condizione non esiste
            ConflictError: Se il nome è già usato da un'altra condizione
        """
        condition = await self.get_by_id(db, condition_id)
        await self._check_unique_name(db, data.name, exclude_id=condition.id)

        for field, value in data.model_dump().items():
            setattr(condition, field, value)

        await db.flush()
        logger.info("Aggiornata condizione di pagamento: %s", condition.name)
        return condition

    async def delete(self, db: AsyncSession, condition_id: uuid.UUID) -> None:
        """
        Raises:
            NotFoundError: Se la condizione non esiste
            ConflictError: Se la condizione è usata da almeno un conto
        """
        condition = await self.get_by_id(db, condition_id)

        in_use = (
            await db.execute(
                select(func.count(Invoice.id)).where(Invoice.payment_condition_id == condition_id)
            )
        ).scalar() or 0
        if in_use:
            logger.warning("Condizione %s usata da %s conti: eliminazione rifiutata", condition.name, in_use)
            raise ConflictError(
                "La condizione è già usata da alcuni conti: crearne una nuova "
                "e aggiornare i conti prima di eliminarla",
                error_code="PAYMENT_CONDITION_IN_USE",
            )

        await db.delete(condition)
        await db.flush()
        logger.info("Eliminata condizione di pagamento: %s", condition.name)

    async def _check_unique_name(
        self,
        db: AsyncSession,
        name: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(PaymentCondition).where(func.lower(PaymentCondition.name) == name.lower())
        if exclude_id is not None:
            query = query.where(PaymentCondition.id != exclude_id)
        existing = (await db.execute(query)).scalar_one_or_none()
        if existing is not None:
            raise ConflictError(
                f"Esiste già una condizione di pagamento con nome '{name}'",
                error_code="DUPLICATE_PAYMENT_CONDITION",
            )


# Istanza singleton del service
payment_condition_service = PaymentConditionService()
