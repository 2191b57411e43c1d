"""
Servizi per la gestione dei Prodotti e del Magazzino
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Contiene le funzioni di business logic per:
- Anagrafica prodotti (creazione, modifica, eliminazione)
- Carichi, rettifiche inventariali e storico movimenti
- Alert scorte basse
"""

import logging
import uuid
from typing import Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError
from app.models.attendance import AttendanceProductItem
from app.models.product import Product, StockMovement
from app.schemas.product import MovementType, ProductCreate, ProductUpdate, StockAdjustment, StockLoad
from app.services.stock_ledger import stock_ledger

logger = logging.getLogger(__name__)


class ProductService:
    """Service per la gestione dei prodotti e del magazzino."""

    # ------------------------------------------------------------
    # Anagrafica
    # ------------------------------------------------------------

    async def get_all(
        self,
        db: AsyncSession,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        below_minimum: bool = False,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[list[Product], int]:
        """
        Recupera i prodotti con filtri e paginazione.

        Args:
            db: Sessione database
            search: Termine di ricerca su nome e descrizione
            is_active: Filtro per stato attivo
            below_minimum: Se True, solo prodotti sotto il livello minimo
            page: Numero pagina (1-based)
            per_page: Elementi per pagina

        Returns:
            Tuple (lista prodotti, totale)
        """
        query = select(Product)
        count_query = select(func.count(Product.id))

        if search:
            search_term = f"%{search}%"
            condition = Product.name.ilike(search_term) | Product.description.ilike(search_term)
            query = query.filter(condition)
            count_query = count_query.filter(condition)

        if is_active is not None:
            query = query.filter(Product.is_active == is_active)
            count_query = count_query.filter(Product.is_active == is_active)

        if below_minimum:
            query = query.filter(Product.stock_quantity < Product.min_stock_level)
            count_query = count_query.filter(Product.stock_quantity < Product.min_stock_level)

        query = query.order_by(Product.name.asc()).offset((page - 1) * per_page).limit(per_page)

        result = await db.execute(query)
        items = list(result.scalars().all())

        total = (await db.execute(count_query)).scalar() or 0
        return items, total

    async def get_by_id(self, db: AsyncSession, product_id: uuid.UUID) -> Product:
        """
        Raises:
            NotFoundError: Se il prodotto non esiste
        """
        result = await db.execute(select(Product).where(Product.id == product_id))
        product = result.scalar_one_or_none()

        if not product:
            logger.warning("Prodotto non trovato: %s", product_id)
            raise NotFoundError(f"Prodotto non trovato: {product_id}")
        return product

    async def create(self, db: AsyncSession, data: ProductCreate) -> Product:
        """
        Crea un nuovo prodotto a giacenza zero e carica la giacenza iniziale.

        Returns:
            Il prodotto creato
        """
        product = Product(
            name=data.name,
            description=data.description,
            cost_price=data.cost_price,
            sale_price=data.sale_price,
            stock_quantity=0,
            min_stock_level=data.min_stock_level,
            is_active=data.is_active,
            is_sellable=data.is_sellable,
        )
        db.add(product)
        await db.flush()

        if data.initial_stock > 0:
            await stock_ledger.increment(
                db,
                product.id,
                data.initial_stock,
                reference="Giacenza iniziale",
            )
            await db.flush()
            await db.refresh(product)

        logger.info("Creato nuovo prodotto: %s (giacenza=%s)", product.name, product.stock_quantity)
        return product

    async def update(
        self,
        db: AsyncSession,
        product_id: uuid.UUID,
        data: ProductUpdate,
    ) -> Product:
        """
        Aggiorna i campi anagrafici di un prodotto.

        Raises:
            NotFoundError: Se il prodotto non esiste
        """
        product = await self.get_by_id(db, product_id)

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(product, field, value)

        await db.flush()
        logger.info("Aggiornato prodotto: %s", product.name)
        return product

    async def delete(self, db: AsyncSession, product_id: uuid.UUID) -> None:
        """
        Elimina un prodotto senza storico.

        Un prodotto con movimenti o consumi registrati va disattivato.

        Raises:
            NotFoundError: Se il prodotto non esiste
            ConflictError: Se il prodotto ha movimenti o consumi
        """
        product = await self.get_by_id(db, product_id)

        movements = (
            await db.execute(
                select(func.count(StockMovement.id)).where(StockMovement.product_id == product_id)
            )
        ).scalar() or 0
        usages = (
            await db.execute(
                select(func.count(AttendanceProductItem.id)).where(
                    AttendanceProductItem.product_id == product_id
                )
            )
        ).scalar() or 0

        if movements or usages:
            raise ConflictError(
                f"Il prodotto '{product.name}' ha uno storico di magazzino: disattivarlo invece di eliminarlo",
                error_code="PRODUCT_IN_USE",
            )

        await db.delete(product)
        await db.flush()
        logger.info("Eliminato prodotto: %s", product.name)

    # ------------------------------------------------------------
    # Magazzino
    # ------------------------------------------------------------

    async def load_stock(
        self,
        db: AsyncSession,
        product_id: uuid.UUID,
        data: StockLoad,
    ) -> Product:
        """
        Carica il magazzino registrando un movimento "in".

        Raises:
            NotFoundError: Se il prodotto non esiste
        """
        await stock_ledger.increment(
            db,
            product_id,
            data.quantity,
            reference=data.reference,
            notes=data.notes,
        )
        await db.flush()
        return await self.get_by_id(db, product_id)

    async def adjust_stock(
        self,
        db: AsyncSession,
        product_id: uuid.UUID,
        data: StockAdjustment,
    ) -> Product:
        """
        Rettifica inventariale registrando un movimento "adjustment".

        Raises:
            NotFoundError: Se il prodotto non esiste
            BusinessValidationError: Se la giacenza andrebbe sotto zero
        """
        await stock_ledger.adjust(db, product_id, data.amount, notes=data.notes)
        await db.flush()
        return await self.get_by_id(db, product_id)

    async def get_movements(
        self,
        db: AsyncSession,
        product_id: uuid.UUID,
        movement_type: Optional[MovementType] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[list[StockMovement], int]:
        """
        Recupera lo storico movimenti di un prodotto, più recenti prima.

        Raises:
            NotFoundError: Se il prodotto non esiste
        """
        await self.get_by_id(db, product_id)

        query = select(StockMovement).where(StockMovement.product_id == product_id)
        count_query = select(func.count(StockMovement.id)).where(StockMovement.product_id == product_id)

        if movement_type:
            query = query.filter(StockMovement.movement_type == movement_type.value)
            count_query = count_query.filter(StockMovement.movement_type == movement_type.value)

        query = (
            query.order_by(StockMovement.created_at.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )

        result = await db.execute(query)
        items = list(result.scalars().all())

        total = (await db.execute(count_query)).scalar() or 0
        return items, total

    async def get_low_stock_alerts(self, db: AsyncSession) -> list[Product]:
        """
        Recupera i prodotti attivi sotto il livello minimo.

        Returns:
            Lista ordinata per deficit decrescente
        """
        query = (
            select(Product)
            .where(Product.is_active.is_(True))
            .where(Product.stock_quantity < Product.min_stock_level)
            .order_by((Product.min_stock_level - Product.stock_quantity).desc())
        )

        result = await db.execute(query)
        items = list(result.scalars().all())

        logger.info("Trovati %s prodotti sotto il livello minimo", len(items))
        return items


# Istanza singleton del service
product_service = ProductService()
