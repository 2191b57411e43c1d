"""
Service Layer per i Conti
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Definisce la logica di business per la gestione dei conti:
generazione da prestazione o appuntamento, righe manuali,
saldo e pagamento rate, elenco con riepilogo.
"""

import datetime
import logging
import uuid
from typing import Optional, Tuple

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import BusinessValidationError, ConflictError, NotFoundError, SeedDataMissingError
from app.models.appointment import Appointment
from app.models.attendance import Attendance
from app.models.invoice import (
    PAID_STATUS_SLUG,
    PARTIALLY_PAID_STATUS_SLUG,
    Invoice,
    InvoiceItem,
    InvoiceStatus,
)
from app.models.owner import Animal
from app.schemas.invoice import (
    InstallmentPayment,
    InvoiceGenerate,
    InvoiceManualItemCreate,
    InvoicePayment,
    InvoiceStatusSlug,
    InvoiceSummary,
)
from app.services.installment_reconciler import installment_reconciler
from app.services.invoice_sync import invoice_synchronizer
from app.services.stock_ledger import stock_ledger
from app.utils.money import line_total, sum_money

# Logger per questo modulo
logger = logging.getLogger(__name__)


def ensure_editable(invoice: Invoice) -> None:
    """
    Raises:
        ConflictError: Se il conto è saldato
    """
    if invoice.is_paid:
        logger.warning("Tentativo di modifica del conto saldato %s", invoice.id)
        raise ConflictError(
            "Il conto è già saldato e non può essere modificato",
            error_code="INVOICE_PAID",
        )


def recalculate_total(invoice: Invoice) -> None:
    """Totale = somma delle righe presenti sul conto."""
    invoice.total = sum_money(item.total for item in invoice.items)


class InvoiceService:
    """
    Service per la gestione delle operazioni sui conti.

    I metodi di scrittura non eseguono commit: il router li racchiude
    nella guardia transazionale.
    """

    # ------------------------------------------------------------
    # Lettura
    # ------------------------------------------------------------

    async def get_by_id(
        self,
        db: AsyncSession,
        invoice_id: uuid.UUID,
        for_update: bool = False,
    ) -> Invoice:
        """
        Recupera un conto con righe, rate e stato.

        Args:
            db: Sessione database
            invoice_id: UUID del conto
            for_update: Se True blocca la riga del conto

        Raises:
            NotFoundError: Conto non trovato
        """
        stmt = (
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update(of=Invoice)
        result = await db.execute(stmt)
        invoice = result.unique().scalar_one_or_none()

        if not invoice:
            logger.warning("Conto non trovato: %s", invoice_id)
            raise NotFoundError(f"Conto {invoice_id} non trovato")

        return invoice

    async def get_all(
        self,
        db: AsyncSession,
        owner_id: Optional[uuid.UUID] = None,
        status_slug: Optional[InvoiceStatusSlug] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[list[Invoice], int, InvoiceSummary]:
        """
        Recupera i conti con filtri, paginazione e riepilogo aperti/saldati.

        Returns:
            Tuple (lista conti, totale, riepilogo)
        """
        filters = []
        if owner_id is not None:
            filters.append(Invoice.owner_id == owner_id)
        if status_slug is not None:
            filters.append(InvoiceStatus.slug == status_slug.value)

        query = (
            select(Invoice)
            .join(InvoiceStatus, Invoice.status_id == InvoiceStatus.id)
            .where(*filters)
            .order_by(Invoice.due_date.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        result = await db.execute(query)
        items = list(result.unique().scalars().all())

        is_paid = InvoiceStatus.slug == PAID_STATUS_SLUG
        summary_query = (
            select(
                func.count(Invoice.id),
                func.coalesce(func.sum(case((~is_paid, Invoice.total), else_=0)), 0),
                func.count(case((~is_paid, Invoice.id))),
                func.coalesce(func.sum(case((is_paid, Invoice.total), else_=0)), 0),
                func.count(case((is_paid, Invoice.id))),
            )
            .select_from(Invoice)
            .join(InvoiceStatus, Invoice.status_id == InvoiceStatus.id)
            .where(*filters)
        )
        row = (await db.execute(summary_query)).one()
        total, open_total, open_count, paid_total, paid_count = row

        summary = InvoiceSummary(
            open_total=sum_money([open_total]),
            open_count=open_count,
            paid_total=sum_money([paid_total]),
            paid_count=paid_count,
        )
        return items, total, summary

    async def list_candidates(
        self,
        db: AsyncSession,
        owner_id: Optional[uuid.UUID] = None,
    ) -> list[Attendance]:
        """
        Prestazioni ancora senza righe di conto, più recenti prima.

        Args:
            owner_id: Filtro opzionale per tutore
        """
        query = (
            select(Attendance)
            .where(~Attendance.invoice_items.any())
            .order_by(Attendance.date.desc())
        )
        if owner_id is not None:
            query = query.join(Animal, Attendance.animal_id == Animal.id).where(
                Animal.owner_id == owner_id
            )
        result = await db.execute(query)
        return list(result.unique().scalars().all())

    # ------------------------------------------------------------
    # Generazione
    # ------------------------------------------------------------

    async def generate(self, db: AsyncSession, data: InvoiceGenerate) -> Invoice:
        """
        Genera (o risincronizza) il conto di una prestazione.

        La prestazione è indicata direttamente oppure tramite un appuntamento
        completato che ne porta il riferimento.

        Raises:
            NotFoundError: Appuntamento o prestazione non trovati
            BusinessValidationError: Appuntamento senza prestazione collegata
        """
        attendance_id = data.attendance_id
        if attendance_id is None:
            appointment = await db.get(Appointment, data.appointment_id)
            if appointment is None:
                logger.warning("Appuntamento non trovato: %s", data.appointment_id)
                raise NotFoundError(f"Appuntamento non trovato: {data.appointment_id}")
            if appointment.attendance_id is None:
                raise BusinessValidationError(
                    "L'appuntamento non ha ancora una prestazione collegata: completarlo prima"
                )
            attendance_id = appointment.attendance_id

        invoice = await invoice_synchronizer.sync_for_attendance(
            db,
            attendance_id,
            due_date=data.due_date,
            responsible_id=data.responsible_id,
            payment_condition_id=data.payment_condition_id,
        )
        return await self.get_by_id(db, invoice.id)

    # ------------------------------------------------------------
    # Righe manuali
    # ------------------------------------------------------------

    async def add_manual_item(
        self,
        db: AsyncSession,
        invoice_id: uuid.UUID,
        data: InvoiceManualItemCreate,
    ) -> Invoice:
        """
        Aggiunge una riga manuale al conto.

        Steps:
        1. Verifica che il conto non sia saldato
        2. Se collegata a un prodotto: attivo, vendibile, giacenza sufficiente; scarico
        3. Crea la riga (attendance_id nullo)
        4. Totale = somma delle righe
        5. Riconcilia le rate

        Raises:
            NotFoundError: Conto o prodotto non trovati
            ConflictError: Conto saldato
            BusinessValidationError: Prodotto non disponibile alla vendita
            InsufficientStockError: Giacenza insufficiente
        """
        invoice = await self.get_by_id(db, invoice_id, for_update=True)
        ensure_editable(invoice)

        if data.product_id is not None:
            products = await stock_ledger.lock_products(db, [data.product_id])
            product = products[data.product_id]
            if not product.is_active or not product.is_sellable:
                logger.warning("Prodotto non vendibile: %s", product.name)
                raise BusinessValidationError(f"Il prodotto {product.name} non è disponibile per la vendita")
            await stock_ledger.decrement(
                db,
                product.id,
                data.quantity,
                reference=f"Conto {invoice.id}",
            )

        invoice.items.append(
            InvoiceItem(
                attendance_id=None,
                product_id=data.product_id,
                description=data.description,
                quantity=data.quantity,
                unit_price=data.unit_price,
                total=line_total(data.quantity, data.unit_price),
            )
        )
        recalculate_total(invoice)
        await installment_reconciler.reconcile(db, invoice, invoice.total, invoice.due_date)

        logger.info("Aggiunta riga manuale al conto %s: nuovo totale=%s", invoice.id, invoice.total)
        return invoice

    async def remove_manual_item(
        self,
        db: AsyncSession,
        invoice_id: uuid.UUID,
        item_id: uuid.UUID,
    ) -> Invoice:
        """
        Rimuove una riga manuale dal conto, ricaricando il magazzino se serve.

        Raises:
            NotFoundError: Conto o riga non trovati
            ConflictError: Conto saldato oppure riga collegata a una prestazione
        """
        invoice = await self.get_by_id(db, invoice_id, for_update=True)
        ensure_editable(invoice)

        item = next((i for i in invoice.items if i.id == item_id), None)
        if item is None:
            logger.warning("Riga %s non trovata nel conto %s", item_id, invoice_id)
            raise NotFoundError(f"Riga {item_id} non trovata nel conto")

        if item.attendance_id is not None:
            logger.warning("Rimozione rifiutata: riga %s collegata a una prestazione", item_id)
            raise ConflictError(
                "Le righe collegate a una prestazione non possono essere rimosse manualmente",
                error_code="INVOICE_ITEM_LINKED",
            )

        if item.product_id is not None:
            await stock_ledger.increment(
                db,
                item.product_id,
                item.quantity,
                reference=f"Conto {invoice.id}",
                notes="Rimozione riga manuale",
            )

        invoice.items.remove(item)
        recalculate_total(invoice)
        await installment_reconciler.reconcile(db, invoice, invoice.total, invoice.due_date)

        logger.info("Rimossa riga %s dal conto %s: nuovo totale=%s", item_id, invoice.id, invoice.total)
        return invoice

    # ------------------------------------------------------------
    # Pagamenti
    # ------------------------------------------------------------

    async def register_payment(
        self,
        db: AsyncSession,
        invoice_id: uuid.UUID,
        data: InvoicePayment,
    ) -> Invoice:
        """
        Salda il conto: stato "paid", paid_at e rate residue marcate come pagate.

        Raises:
            NotFoundError: Conto non trovato
            ConflictError: Conto già saldato
            SeedDataMissingError: Stato "paid" non configurato
        """
        invoice = await self.get_by_id(db, invoice_id, for_update=True)
        ensure_editable(invoice)

        paid_at = data.paid_at or datetime.datetime.now(datetime.timezone.utc)
        for installment in invoice.installments:
            if installment.paid_at is None:
                installment.paid_at = paid_at

        invoice.status = await self._get_status(db, PAID_STATUS_SLUG)
        invoice.paid_at = paid_at
        if data.payment_method is not None:
            invoice.payment_method = data.payment_method.value
        if data.notes:
            invoice.notes = data.notes
        await db.flush()

        logger.info("Conto %s saldato: totale=%s", invoice.id, invoice.total)
        return invoice

    async def pay_installment(
        self,
        db: AsyncSession,
        invoice_id: uuid.UUID,
        installment_id: uuid.UUID,
        data: InstallmentPayment,
    ) -> Invoice:
        """
        Registra il pagamento di una rata.

        Il conto passa a "paid" quando tutte le rate sono pagate,
        altrimenti a "partially_paid".

        Raises:
            NotFoundError: Conto o rata non trovati
            ConflictError: Conto saldato o rata già pagata
        """
        invoice = await self.get_by_id(db, invoice_id, for_update=True)
        ensure_editable(invoice)

        installment = next((i for i in invoice.installments if i.id == installment_id), None)
        if installment is None:
            raise NotFoundError(f"Rata {installment_id} non trovata nel conto")
        if installment.paid_at is not None:
            raise ConflictError("La rata risulta già pagata", error_code="INSTALLMENT_PAID")

        paid_at = data.paid_at or datetime.datetime.now(datetime.timezone.utc)
        installment.paid_at = paid_at
        if data.payment_method is not None:
            invoice.payment_method = data.payment_method.value

        if all(i.paid_at is not None for i in invoice.installments):
            invoice.status = await self._get_status(db, PAID_STATUS_SLUG)
            invoice.paid_at = paid_at
        else:
            invoice.status = await self._get_status(db, PARTIALLY_PAID_STATUS_SLUG)
        await db.flush()

        logger.info("Pagata rata %s del conto %s (stato=%s)", installment.number, invoice.id, invoice.status_slug)
        return invoice

    async def list_statuses(self, db: AsyncSession) -> list[InvoiceStatus]:
        """Stati del conto configurati, in ordine di slug."""
        result = await db.execute(select(InvoiceStatus).order_by(InvoiceStatus.slug.asc()))
        return list(result.scalars().all())

    async def _get_status(self, db: AsyncSession, slug: str) -> InvoiceStatus:
        result = await db.execute(select(InvoiceStatus).where(InvoiceStatus.slug == slug))
        status = result.scalar_one_or_none()
        if status is None:
            logger.critical("Stato conto '%s' assente: seed del database incompleto", slug)
            raise SeedDataMissingError(f"Stato conto '{slug}' non configurato")
        return status


# Istanza singleton del service
invoice_service = InvoiceService()
