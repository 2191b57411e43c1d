"""
Service Layer per il Listino Prestazioni
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError
from app.models.attendance import ServiceDefinition
from app.schemas.service_definition import ServiceDefinitionCreate

logger = logging.getLogger(__name__)


class ServiceDefinitionService:
    """Service per le voci del listino prestazioni."""

    async def get_all(self, db: AsyncSession) -> list[ServiceDefinition]:
        """Voci attive in ordine alfabetico."""
        result = await db.execute(
            select(ServiceDefinition)
            .where(ServiceDefinition.is_active.is_(True))
            .order_by(ServiceDefinition.name.asc())
        )
        return list(result.scalars().all())

    async def create(self, db: AsyncSession, data: ServiceDefinitionCreate) -> ServiceDefinition:
        """
        Crea una voce di listino.

        Raises:
            ConflictError: Se esiste già una voce con lo stesso nome
        """
        existing = await db.execute(
            select(ServiceDefinition).where(func.lower(ServiceDefinition.name) == data.name.lower())
        )
        if existing.scalar_one_or_none() is not None:
            logger.warning("Voce di listino duplicata: %s", data.name)
            raise ConflictError(
                f"Esiste già una prestazione a listino con nome '{data.name}'",
                error_code="DUPLICATE_SERVICE_DEFINITION",
            )

        definition = ServiceDefinition(
            name=data.name,
            description=data.description,
            unit_price=data.unit_price,
            is_active=True,
        )
        db.add(definition)
        await db.flush()
        await db.refresh(definition)

        logger.info("Creata voce di listino: %s (%s)", definition.name, definition.unit_price)
        return definition


# Istanza singleton del service
service_definition_service = ServiceDefinitionService()
