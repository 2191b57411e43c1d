"""
Router FastAPI per il Listino Prestazioni
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import require_permission
from app.core.database import get_db, transaction
from app.schemas.service_definition import ServiceDefinitionCreate, ServiceDefinitionRead
from app.services.service_definition_service import service_definition_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/service-definitions",
    tags=["Listino"],
    dependencies=[Depends(require_permission("catalog:read"))],
)


@router.get(
    "/",
    name="listino_lista",
    summary="Listino prestazioni",
    description="Voci di listino attive in ordine alfabetico.",
    response_model=list[ServiceDefinitionRead],
    status_code=status.HTTP_200_OK,
)
async def get_service_definitions(
    db: AsyncSession = Depends(get_db),
) -> list[ServiceDefinitionRead]:
    definitions = await service_definition_service.get_all(db)
    return [ServiceDefinitionRead.model_validate(d) for d in definitions]


@router.post(
    "/",
    dependencies=[Depends(require_permission("catalog:write"))],
    name="listino_crea",
    summary="Crea voce di listino",
    response_model=ServiceDefinitionRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_service_definition(
    data: ServiceDefinitionCreate,
    db: AsyncSession = Depends(get_db),
) -> ServiceDefinitionRead:
    async with transaction(db):
        definition = await service_definition_service.create(db, data)
    return ServiceDefinitionRead.model_validate(definition)
