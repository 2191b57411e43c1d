"""
Router FastAPI per il Magazzino
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Definisce gli endpoint API per prodotti, carichi e storico movimenti.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import require_permission
from app.core.database import get_db, transaction
from app.schemas.product import (
    MovementType,
    ProductCreate,
    ProductList,
    ProductRead,
    ProductUpdate,
    StockAdjustment,
    StockLoad,
    StockMovementRead,
)
from app.services.product_service import product_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Router con prefix e tag
router = APIRouter(
    prefix="/products",
    tags=["Magazzino"],
    dependencies=[Depends(require_permission("products:read"))],
)


@router.get(
    "/",
    name="prodotti_lista",
    summary="Lista prodotti",
    description="Recupera la lista paginata dei prodotti con filtri.",
    response_model=ProductList,
    status_code=status.HTTP_200_OK,
)
async def get_products(
    search: Optional[str] = Query(None, description="Ricerca su nome e descrizione"),
    is_active: Optional[bool] = Query(None, description="Filtro per stato attivo"),
    below_minimum: bool = Query(False, description="Solo prodotti sotto scorta minima"),
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(20, ge=1, le=100, description="Elementi per pagina"),
    db: AsyncSession = Depends(get_db),
) -> ProductList:
    items, total = await product_service.get_all(
        db,
        search=search,
        is_active=is_active,
        below_minimum=below_minimum,
        page=page,
        per_page=per_page,
    )
    return ProductList(
        items=[ProductRead.model_validate(p) for p in items],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/alerts/low-stock",
    name="prodotti_sotto_scorta",
    summary="Alert scorte basse",
    description="Prodotti attivi con giacenza sotto il livello minimo.",
    response_model=list[ProductRead],
    status_code=status.HTTP_200_OK,
)
async def get_low_stock_alerts(
    db: AsyncSession = Depends(get_db),
) -> list[ProductRead]:
    products = await product_service.get_low_stock_alerts(db)
    return [ProductRead.model_validate(p) for p in products]


@router.get(
    "/{product_id}",
    name="prodotto_dettaglio",
    summary="Dettaglio prodotto",
    response_model=ProductRead,
    status_code=status.HTTP_200_OK,
)
async def get_product(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> ProductRead:
    product = await product_service.get_by_id(db, product_id)
    return ProductRead.model_validate(product)


@router.get(
    "/{product_id}/movements",
    name="prodotto_movimenti",
    summary="Storico movimenti",
    response_model=list[StockMovementRead],
    status_code=status.HTTP_200_OK,
)
async def get_movements(
    product_id: uuid.UUID,
    movement_type: Optional[MovementType] = Query(None, description="Filtro per tipo movimento"),
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(20, ge=1, le=100, description="Elementi per pagina"),
    db: AsyncSession = Depends(get_db),
) -> list[StockMovementRead]:
    movements, _ = await product_service.get_movements(
        db,
        product_id,
        movement_type=movement_type,
        page=page,
        per_page=per_page,
    )
    return [StockMovementRead.model_validate(m) for m in movements]


@router.post(
    "/",
    dependencies=[Depends(require_permission("products:write"))],
    name="prodotto_crea",
    summary="Crea prodotto",
    description="Crea un prodotto; la giacenza iniziale è registrata come carico.",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_product(
    data: ProductCreate,
    db: AsyncSession = Depends(get_db),
) -> ProductRead:
    async with transaction(db):
        product = await product_service.create(db, data)
    return ProductRead.model_validate(product)


@router.post(
    "/{product_id}/load",
    dependencies=[Depends(require_permission("products:write"))],
    name="prodotto_carico",
    summary="Carico di magazzino",
    response_model=ProductRead,
    status_code=status.HTTP_200_OK,
)
async def load_stock(
    product_id: uuid.UUID,
    data: StockLoad,
    db: AsyncSession = Depends(get_db),
) -> ProductRead:
    async with transaction(db):
        product = await product_service.load_stock(db, product_id, data)
    return ProductRead.model_validate(product)


@router.put(
    "/{product_id}",
    dependencies=[Depends(require_permission("products:write"))],
    name="prodotto_aggiorna",
    summary="Aggiorna prodotto",
    description="Aggiorna i dati anagrafici; la giacenza si modifica con carico o rettifica.",
    response_model=ProductRead,
    status_code=status.HTTP_200_OK,
)
async def update_product(
    product_id: uuid.UUID,
    data: ProductUpdate,
    db: AsyncSession = Depends(get_db),
) -> ProductRead:
    async with transaction(db):
        product = await product_service.update(db, product_id, data)
    return ProductRead.model_validate(product)


@router.patch(
    "/{product_id}/stock",
    dependencies=[Depends(require_permission("products:write"))],
    name="prodotto_rettifica",
    summary="Rettifica inventariale",
    description="Rettifica con segno; rifiutata se la giacenza andrebbe sotto zero.",
    response_model=ProductRead,
    status_code=status.HTTP_200_OK,
)
async def adjust_stock(
    product_id: uuid.UUID,
    data: StockAdjustment,
    db: AsyncSession = Depends(get_db),
) -> ProductRead:
    async with transaction(db):
        product = await product_service.adjust_stock(db, product_id, data)
    return ProductRead.model_validate(product)


@router.delete(
    "/{product_id}",
    dependencies=[Depends(require_permission("products:write"))],
    name="prodotto_elimina",
    summary="Elimina prodotto",
    description="Elimina un prodotto senza movimenti né consumi registrati.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_product(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    async with transaction(db):
        await product_service.delete(db, product_id)
