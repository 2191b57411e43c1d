"""
Service Layer per le Prestazioni
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Definisce la logica di business per la gestione delle prestazioni:
voci di listino, prodotti consumati (con scarico di magazzino)
e sincronizzazione del conto collegato.
"""

import datetime
import logging
import uuid
from typing import Iterable, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import BusinessValidationError, ConflictError, NotFoundError
from app.models.attendance import (
    Attendance,
    AttendanceCatalogItem,
    AttendanceProductItem,
    ServiceDefinition,
)
from app.models.invoice import InvoiceItem
from app.models.owner import Animal
from app.models.product import Product
from app.schemas.attendance import (
    AttendanceCreate,
    AttendanceKind,
    AttendanceUpdate,
    CatalogItemInput,
    ProductItemInput,
    ensure_unique_references,
)
from app.services.invoice_sync import find_linked_invoice, invoice_synchronizer
from app.services.stock_ledger import stock_ledger
from app.utils.money import sum_money, to_money

# Logger per questo modulo
logger = logging.getLogger(__name__)


def check_duplicate_items(
    catalog_items: Optional[list[CatalogItemInput]],
    product_items: Optional[list[ProductItemInput]],
) -> None:
    """
    Secondo controllo sui duplicati, indipendente dalla validazione dello schema.

    Raises:
        BusinessValidationError: Voce di listino o prodotto ripetuti
    """
    try:
        if catalog_items:
            ensure_unique_references([i.definition_id for i in catalog_items], "Voce di listino")
        if product_items:
            ensure_unique_references([i.product_id for i in product_items], "Prodotto")
    except ValueError as e:
        raise BusinessValidationError(str(e)) from e


def billing_fields_changed(attendance: Attendance, data: AttendanceUpdate) -> bool:
    """
    True se la modifica tocca dati che compaiono nel conto.

    Con conto saldato restano modificabili solo note e opzioni di fatturazione.
    """
    if data.price is not None or data.catalog_items is not None or data.product_items is not None:
        return True
    if data.animal_id is not None and data.animal_id != attendance.animal_id:
        return True
    if data.kind is not None and data.kind.value != attendance.kind:
        return True
    return data.date is not None and data.date != attendance.date


class AttendanceService:
    """
    Service per la gestione delle prestazioni.

    I metodi non eseguono commit: la transazione è del chiamante.
    """

    # ------------------------------------------------------------
    # Lettura
    # ------------------------------------------------------------

    async def get_all(
        self,
        db: AsyncSession,
        animal_id: Optional[uuid.UUID] = None,
        kind: Optional[AttendanceKind] = None,
        date_from: Optional[datetime.date] = None,
        date_to: Optional[datetime.date] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[list[Attendance], int]:
        """
        Recupera la lista paginata delle prestazioni, più recenti prima.

        Returns:
            Tuple di (lista prestazioni, totale count)
        """
        conditions = []
        if animal_id:
            conditions.append(Attendance.animal_id == animal_id)
        if kind:
            conditions.append(Attendance.kind == kind.value)
        if date_from:
            conditions.append(Attendance.date >= date_from)
        if date_to:
            conditions.append(Attendance.date <= date_to)

        query = select(Attendance)
        count_query = select(func.count()).select_from(Attendance)
        if conditions:
            query = query.where(and_(*conditions))
            count_query = count_query.where(and_(*conditions))

        query = (
            query.order_by(Attendance.date.desc(), Attendance.created_at.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        result = await db.execute(query)
        attendances = list(result.unique().scalars().all())

        total = (await db.execute(count_query)).scalar() or 0

        logger.debug("Recuperate %d prestazioni su %d totali", len(attendances), total)
        return attendances, total

    async def get_by_id(
        self,
        db: AsyncSession,
        attendance_id: uuid.UUID,
        for_update: bool = False,
    ) -> Attendance:
        """
        Recupera una prestazione con voci, prodotti e righe di conto collegate.

        Raises:
            NotFoundError: Se la prestazione non esiste
        """
        query = (
            select(Attendance)
            .where(Attendance.id == attendance_id)
            .options(selectinload(Attendance.invoice_items).selectinload(InvoiceItem.invoice))
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update(of=Attendance)

        result = await db.execute(query)
        attendance = result.unique().scalar_one_or_none()

        if not attendance:
            logger.warning("Prestazione non trovata: %s", attendance_id)
            raise NotFoundError(f"Prestazione con ID {attendance_id} non trovata")
        return attendance

    # ------------------------------------------------------------
    # Scrittura
    # ------------------------------------------------------------

    async def create(self, db: AsyncSession, data: AttendanceCreate) -> Attendance:
        """
        Crea una prestazione e ne genera il conto.

        Steps:
        1. Rifiuta voci o prodotti duplicati
        2. Verifica animale, voci di listino attive e prodotti attivi
        3. Prezzo = esplicito oppure somma delle voci di listino
        4. Scarica i prodotti consumati
        5. Sincronizza il conto con scadenza, responsabile e condizione indicati

        Raises:
            NotFoundError: Animale, voce di listino o prodotto non trovati
            BusinessValidationError: Duplicati, voce o prodotto disattivati
            InsufficientStockError: Giacenza insufficiente
        """
        check_duplicate_items(data.catalog_items, data.product_items)

        animal = await db.get(Animal, data.animal_id)
        if animal is None:
            logger.warning("Animale non trovato: %s", data.animal_id)
            raise NotFoundError(f"Animale con ID {data.animal_id} non trovato")

        definitions = await self._load_definitions(db, data.catalog_items)
        products = await self._lock_products(
            db, [i.product_id for i in data.product_items], [i.product_id for i in data.product_items]
        )

        catalog_items = self._build_catalog_items(data.catalog_items, definitions)
        product_items = self._build_product_items(data.product_items, products)
        price = data.price if data.price is not None else sum_money(i.line_total for i in catalog_items)

        attendance = Attendance(
            animal_id=animal.id,
            kind=data.kind.value,
            date=data.date,
            price=to_money(price),
            notes=data.notes,
            catalog_items=catalog_items,
            product_items=product_items,
        )
        db.add(attendance)
        await db.flush()

        await stock_ledger.replace_consumption(
            db,
            products,
            previous={},
            desired={i.product_id: i.quantity for i in data.product_items},
            reference=f"Prestazione {attendance.id}",
        )
        await db.flush()

        await invoice_synchronizer.sync_for_attendance(
            db,
            attendance.id,
            due_date=data.due_date,
            responsible_id=data.responsible_id,
            payment_condition_id=data.payment_condition_id,
        )

        logger.info("Creata prestazione %s per l'animale %s: prezzo=%s", attendance.id, animal.id, attendance.price)
        return await self.get_by_id(db, attendance.id)

    async def update(
        self,
        db: AsyncSession,
        attendance_id: uuid.UUID,
        data: AttendanceUpdate,
    ) -> Attendance:
        """
        Aggiorna una prestazione e risincronizza il conto.

        Le liste indicate sostituiscono integralmente quelle esistenti; per i
        prodotti la giacenza viene ripristinata e poi riscaricata.
        Con conto saldato sono ammesse solo modifiche alle note (o valori invariati).

        Raises:
            NotFoundError: Prestazione, voce di listino o prodotto non trovati
            ConflictError: Modifica economica con conto saldato
            BusinessValidationError: Duplicati, voce o prodotto disattivati
            InsufficientStockError: Giacenza insufficiente
        """
        check_duplicate_items(data.catalog_items, data.product_items)
        attendance = await self.get_by_id(db, attendance_id, for_update=True)

        catalog_changed = data.catalog_items is not None
        products_changed = data.product_items is not None
        price_changed = data.price is not None

        invoice = find_linked_invoice(attendance)
        if invoice is not None and invoice.is_paid and billing_fields_changed(attendance, data):
            logger.warning("Modifica rifiutata: la prestazione %s ha un conto saldato", attendance_id)
            raise ConflictError(
                "Il conto della prestazione è saldato: animale, tipo, data, prezzo e voci non sono modificabili",
                error_code="INVOICE_PAID",
            )

        if data.animal_id is not None and data.animal_id != attendance.animal_id:
            animal = await db.get(Animal, data.animal_id)
            if animal is None:
                logger.warning("Animale non trovato: %s", data.animal_id)
                raise NotFoundError(f"Animale con ID {data.animal_id} non trovato")
            attendance.animal_id = animal.id
            attendance.animal = animal

        if data.kind is not None:
            attendance.kind = data.kind.value
        if data.date is not None:
            attendance.date = data.date
        if "notes" in data.model_fields_set:
            attendance.notes = data.notes

        if catalog_changed:
            definitions = await self._load_definitions(db, data.catalog_items)
            attendance.catalog_items.clear()
            await db.flush()
            attendance.catalog_items.extend(self._build_catalog_items(data.catalog_items, definitions))

        if products_changed:
            previous = {i.product_id: i.quantity for i in attendance.product_items}
            desired = {i.product_id: i.quantity for i in data.product_items}
            products = await self._lock_products(db, set(previous) | set(desired), desired)
            await stock_ledger.replace_consumption(
                db,
                products,
                previous=previous,
                desired=desired,
                reference=f"Prestazione {attendance.id}",
            )
            attendance.product_items.clear()
            await db.flush()
            attendance.product_items.extend(self._build_product_items(data.product_items, products))

        if price_changed:
            attendance.price = to_money(data.price)
        elif catalog_changed:
            attendance.price = sum_money(i.line_total for i in attendance.catalog_items)

        await db.flush()
        await invoice_synchronizer.sync_for_attendance(
            db,
            attendance.id,
            due_date=data.due_date,
            responsible_id=data.responsible_id,
            payment_condition_id=data.payment_condition_id,
        )

        logger.info("Aggiornata prestazione %s", attendance_id)
        return await self.get_by_id(db, attendance.id)

    async def delete(self, db: AsyncSession, attendance_id: uuid.UUID) -> None:
        """
        Elimina una prestazione ripristinando il magazzino.

        Le righe del conto restano come righe manuali.

        Raises:
            NotFoundError: Se la prestazione non esiste
            ConflictError: Se il conto collegato è saldato
        """
        attendance = await self.get_by_id(db, attendance_id, for_update=True)

        invoice = find_linked_invoice(attendance)
        if invoice is not None and invoice.is_paid:
            logger.warning("Eliminazione rifiutata: la prestazione %s ha un conto saldato", attendance_id)
            raise ConflictError(
                "Impossibile eliminare una prestazione con conto saldato",
                error_code="INVOICE_PAID",
            )

        consumed = {i.product_id: i.quantity for i in attendance.product_items}
        if consumed:
            await stock_ledger.lock_products(db, consumed)
            for product_id, quantity in consumed.items():
                await stock_ledger.increment(
                    db,
                    product_id,
                    quantity,
                    reference=f"Prestazione {attendance.id}",
                    notes="Ripristino per eliminazione prestazione",
                )

        await db.delete(attendance)
        await db.flush()

        logger.info("Eliminata prestazione %s", attendance_id)

    # ------------------------------------------------------------
    # Helper
    # ------------------------------------------------------------

    async def _load_definitions(
        self,
        db: AsyncSession,
        items: list[CatalogItemInput],
    ) -> dict[uuid.UUID, ServiceDefinition]:
        ids = [i.definition_id for i in items]
        if not ids:
            return {}

        result = await db.execute(select(ServiceDefinition).where(ServiceDefinition.id.in_(ids)))
        definitions = {d.id: d for d in result.scalars().all()}

        for definition_id in ids:
            definition = definitions.get(definition_id)
            if definition is None:
                raise NotFoundError(f"Voce di listino non trovata: {definition_id}")
            if not definition.is_active:
                raise BusinessValidationError(f"La voce di listino {definition.name} non è attiva")
        return definitions

    async def _lock_products(
        self,
        db: AsyncSession,
        product_ids: Iterable[uuid.UUID],
        required_active: Iterable[uuid.UUID],
    ) -> dict[uuid.UUID, Product]:
        """Blocca i prodotti; quelli richiesti devono essere attivi."""
        products = await stock_ledger.lock_products(db, product_ids)
        for product_id in required_active:
            product = products[product_id]
            if not product.is_active:
                raise BusinessValidationError(f"Il prodotto {product.name} non è attivo")
        return products

    @staticmethod
    def _build_catalog_items(
        items: list[CatalogItemInput],
        definitions: dict[uuid.UUID, ServiceDefinition],
    ) -> list[AttendanceCatalogItem]:
        built = []
        for item in items:
            definition = definitions[item.definition_id]
            unit_price = item.unit_price if item.unit_price is not None else definition.unit_price
            built.append(
                AttendanceCatalogItem(
                    definition_id=definition.id,
                    definition=definition,
                    quantity=item.quantity,
                    unit_price=to_money(unit_price),
                )
            )
        return built

    @staticmethod
    def _build_product_items(
        items: list[ProductItemInput],
        products: dict[uuid.UUID, Product],
    ) -> list[AttendanceProductItem]:
        built = []
        for item in items:
            product = products[item.product_id]
            unit_price = item.unit_price if item.unit_price is not None else product.sale_price
            built.append(
                AttendanceProductItem(
                    product_id=product.id,
                    product=product,
                    quantity=item.quantity,
                    unit_price=to_money(unit_price),
                )
            )
        return built


# Istanza singleton del service
attendance_service = AttendanceService()
