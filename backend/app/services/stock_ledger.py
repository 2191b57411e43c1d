"""
Registro di magazzino (Stock Ledger)
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Unico punto in cui la giacenza dei prodotti viene modificata.
Ogni operazione gira nella transazione del chiamante: un errore in qualsiasi
punto dell'operazione logica annulla anche i movimenti già applicati.

Lo scarico è un UPDATE condizionale (stock >= quantità) con verifica
delle righe aggiornate, quindi due scarichi concorrenti non possono
portare la giacenza sotto zero.
"""

import logging
import uuid
from typing import Iterable, Mapping, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BusinessValidationError, InsufficientStockError, NotFoundError
from app.models.product import Product, StockMovement

logger = logging.getLogger(__name__)


def check_availability(
    products: Mapping[uuid.UUID, Product],
    previous: Mapping[uuid.UUID, int],
    desired: Mapping[uuid.UUID, int],
) -> None:
    """
    Valida le nuove quantità contro la giacenza ripristinata.

    La giacenza disponibile per ogni prodotto è quella attuale più quanto
    era già stato consumato dalla versione precedente dell'operazione.

    Args:
        products: Prodotti coinvolti, per id
        previous: Quantità consumate in precedenza, per prodotto
        desired: Nuove quantità richieste, per prodotto

    Raises:
        NotFoundError: Se un prodotto richiesto non è tra quelli caricati
        InsufficientStockError: Al primo prodotto con giacenza insufficiente
    """
    for product_id, quantity in desired.items():
        product = products.get(product_id)
        if product is None:
            raise NotFoundError(f"Prodotto non trovato: {product_id}")
        available = product.stock_quantity + previous.get(product_id, 0)
        if quantity > available:
            logger.warning(
                "Giacenza insufficiente per %s: disponibili=%s, richiesti=%s",
                product.name,
                available,
                quantity,
            )
            raise InsufficientStockError(product.name, available, quantity, product_id=product.id)


class StockLedger:
    """
    Carichi e scarichi atomici di magazzino.

    Non esegue commit: il chiamante gestisce la transazione.
    """

    async def lock_products(
        self,
        db: AsyncSession,
        product_ids: Iterable[uuid.UUID],
    ) -> dict[uuid.UUID, Product]:
        """
        Carica i prodotti bloccando le righe (SELECT ... FOR UPDATE).

        Raises:
            NotFoundError: Se uno dei prodotti non esiste
        """
        ids = set(product_ids)
        if not ids:
            return {}

        result = await db.execute(
            select(Product)
            .where(Product.id.in_(ids))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        products = {product.id: product for product in result.scalars().all()}

        missing = ids - products.keys()
        if missing:
            logger.warning("Prodotti non trovati: %s", ", ".join(str(m) for m in missing))
            raise NotFoundError(f"Prodotto non trovato: {sorted(missing, key=str)[0]}")
        return products

    async def decrement(
        self,
        db: AsyncSession,
        product_id: uuid.UUID,
        quantity: int,
        reference: Optional[str] = None,
    ) -> None:
        """
        Scarica la quantità indicata.

        Raises:
            BusinessValidationError: Se la quantità non è positiva
            NotFoundError: Se il prodotto non esiste
            InsufficientStockError: Se la giacenza è inferiore alla quantità
                (la giacenza resta invariata)
        """
        if quantity <= 0:
            raise BusinessValidationError("La quantità da scaricare deve essere positiva")

        result = await db.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock_quantity >= quantity)
            .values(stock_quantity=Product.stock_quantity - quantity)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            product = await self._get_product(db, product_id)
            logger.warning(
                "Scarico rifiutato per %s: disponibili=%s, richiesti=%s",
                product.name,
                product.stock_quantity,
                quantity,
            )
            raise InsufficientStockError(
                product.name, product.stock_quantity, quantity, product_id=product.id
            )

        db.add(
            StockMovement(
                product_id=product_id,
                movement_type="out",
                quantity=-quantity,
                reference=reference,
            )
        )
        logger.info("Scaricate %s unità del prodotto %s", quantity, product_id)

    async def increment(
        self,
        db: AsyncSession,
        product_id: uuid.UUID,
        quantity: int,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        """
        Carica la quantità indicata.

        Raises:
            BusinessValidationError: Se la quantità non è positiva
            NotFoundError: Se il prodotto non esiste
        """
        if quantity <= 0:
            raise BusinessValidationError("La quantità da caricare deve essere positiva")

        result = await db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock_quantity=Product.stock_quantity + quantity)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            logger.warning("Prodotto non trovato: %s", product_id)
            raise NotFoundError(f"Prodotto non trovato: {product_id}")

        db.add(
            StockMovement(
                product_id=product_id,
                movement_type="in",
                quantity=quantity,
                reference=reference,
                notes=notes,
            )
        )
        logger.info("Caricate %s unità del prodotto %s", quantity, product_id)

    async def adjust(
        self,
        db: AsyncSession,
        product_id: uuid.UUID,
        amount: int,
        notes: Optional[str] = None,
    ) -> None:
        """
        Rettifica inventariale con segno (positiva o negativa).

        Raises:
            BusinessValidationError: Se la rettifica è nulla o porterebbe
                la giacenza sotto zero
            NotFoundError: Se il prodotto non esiste
        """
        if amount == 0:
            raise BusinessValidationError("La rettifica non può essere nulla")

        result = await db.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock_quantity + amount >= 0)
            .values(stock_quantity=Product.stock_quantity + amount)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            product = await self._get_product(db, product_id)
            logger.warning(
                "Rettifica rifiutata per %s: giacenza=%s, rettifica=%s",
                product.name,
                product.stock_quantity,
                amount,
            )
            raise BusinessValidationError(
                f"La rettifica porterebbe la giacenza di '{product.name}' sotto zero "
                f"(giacenza: {product.stock_quantity}, rettifica: {amount})",
                error_code="NEGATIVE_STOCK",
            )

        db.add(
            StockMovement(
                product_id=product_id,
                movement_type="adjustment",
                quantity=amount,
                notes=notes,
            )
        )
        logger.info("Rettifica di %s unità del prodotto %s", amount, product_id)

    async def replace_consumption(
        self,
        db: AsyncSession,
        products: Mapping[uuid.UUID, Product],
        previous: Mapping[uuid.UUID, int],
        desired: Mapping[uuid.UUID, int],
        reference: Optional[str] = None,
    ) -> None:
        """
        Sostituisce un consumo precedente con uno nuovo.

        Steps:
        1. Ripristina la giacenza di ogni prodotto consumato in precedenza
        2. Valida le nuove quantità contro la giacenza ripristinata
        3. Scarica le nuove quantità

        Ridurre il prodotto A e aumentare il prodotto B nella stessa modifica
        non fallisce per giacenze non aggiornate.

        Args:
            db: Sessione database
            products: Prodotti già bloccati con lock_products
            previous: Quantità consumate prima della modifica
            desired: Quantità richieste dopo la modifica
            reference: Riferimento riportato nei movimenti

        Raises:
            InsufficientStockError: Se un prodotto non ha giacenza sufficiente
        """
        check_availability(products, previous, desired)

        for product_id, quantity in previous.items():
            if quantity > 0:
                await self.increment(db, product_id, quantity, reference, notes="Ripristino consumo")

        for product_id, quantity in desired.items():
            if quantity > 0:
                await self.decrement(db, product_id, quantity, reference)

    async def _get_product(self, db: AsyncSession, product_id: uuid.UUID) -> Product:
        result = await db.execute(
            select(Product)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )
        product = result.scalar_one_or_none()
        if product is None:
            logger.warning("Prodotto non trovato: %s", product_id)
            raise NotFoundError(f"Prodotto non trovato: {product_id}")
        return product


# Istanza singleton del service
stock_ledger = StockLedger()
