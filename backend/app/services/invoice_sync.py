"""
Sincronizzazione conto ↔ prestazione
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Deriva (o aggiorna) il conto di una prestazione a partire dalle voci di
listino e dai prodotti consumati, preservando le righe manuali.
L'operazione è idempotente: ripeterla senza modifiche alla prestazione
non cambia totale, righe manuali o rate.
"""

import datetime
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.exceptions import NotFoundError, SeedDataMissingError
from app.models.attendance import Attendance
from app.models.invoice import OPEN_STATUS_SLUG, Invoice, InvoiceItem, InvoiceStatus, PaymentCondition
from app.schemas.attendance import ATTENDANCE_KIND_LABELS
from app.services.installment_reconciler import InstallmentReconciler, installment_reconciler
from app.utils.money import line_total, sum_money, to_money

logger = logging.getLogger(__name__)

# Prefissi delle descrizioni generate automaticamente
SERVICE_LINE_PREFIX = "Prestazione: "
PRODUCT_LINE_PREFIX = "Prodotto: "


@dataclass(frozen=True)
class DerivedLine:
    """Riga di conto derivata da una prestazione."""

    description: str
    quantity: int
    unit_price: Decimal
    total: Decimal
    product_id: Optional[uuid.UUID] = None


def derive_invoice_lines(attendance: Attendance) -> tuple[list[DerivedLine], Decimal]:
    """
    Costruisce le righe di conto della prestazione.

    Una riga per voce di listino oppure, se non ce ne sono, una riga unica
    al prezzo della prestazione; più una riga per prodotto consumato.

    Returns:
        (righe, subtotale) con subtotale = voci di listino (o prezzo) + prodotti
    """
    lines: list[DerivedLine] = []

    if attendance.catalog_items:
        for item in attendance.catalog_items:
            name = item.definition.name if item.definition is not None else "prestazione erogata"
            lines.append(
                DerivedLine(
                    description=f"{SERVICE_LINE_PREFIX}{name}",
                    quantity=item.quantity,
                    unit_price=to_money(item.unit_price),
                    total=line_total(item.quantity, item.unit_price),
                )
            )
    else:
        price = to_money(attendance.price)
        label = ATTENDANCE_KIND_LABELS.get(attendance.kind, attendance.kind)
        lines.append(
            DerivedLine(
                description=f"{SERVICE_LINE_PREFIX}{label}",
                quantity=1,
                unit_price=price,
                total=price,
            )
        )

    for item in attendance.product_items:
        name = item.product.name if item.product is not None else "prodotto utilizzato"
        lines.append(
            DerivedLine(
                description=f"{PRODUCT_LINE_PREFIX}{name}",
                quantity=item.quantity,
                unit_price=to_money(item.unit_price),
                total=line_total(item.quantity, item.unit_price),
                product_id=item.product_id,
            )
        )

    return lines, sum_money(line.total for line in lines)


def find_linked_invoice(attendance: Attendance) -> Optional[Invoice]:
    """Conto collegato tramite le righe già generate dalla prestazione."""
    for item in attendance.invoice_items:
        if item.invoice is not None:
            return item.invoice
    return None


class InvoiceSynchronizer:
    """
    Service per la sincronizzazione del conto di una prestazione.

    Non esegue commit: gira nella transazione del chiamante.
    """

    def __init__(self, reconciler: InstallmentReconciler = installment_reconciler) -> None:
        self.reconciler = reconciler

    async def sync_for_attendance(
        self,
        db: AsyncSession,
        attendance_id: uuid.UUID,
        due_date: Optional[datetime.date] = None,
        responsible_id: Optional[uuid.UUID] = None,
        payment_condition_id: Optional[uuid.UUID] = None,
    ) -> Invoice:
        """
        Restituisce il conto della prestazione, creandolo se non esiste.

        Steps:
        1. Carica prestazione, voci, prodotti e righe di conto già generate
        2. Conto saldato: lo restituisce invariato
        3. Deriva righe e subtotale dalla prestazione
        4. Nessun conto: lo crea in stato "open" con scadenza
           data prestazione + invoice_due_days (o giorni della condizione) se non indicata
        5. Conto aperto: ricollega le righe prodotto orfane, somma le righe
           manuali al subtotale, sostituisce solo le righe della prestazione
        6. Riconcilia le rate con il nuovo totale; con condizione rateale
           e nessuna rata pagata il piano è ricreato con il numero di rate indicato

        Args:
            db: Sessione database
            attendance_id: UUID della prestazione
            due_date: Scadenza esplicita
            responsible_id: Responsabile esplicito
            payment_condition_id: Condizione di pagamento esplicita

        Returns:
            Invoice: Il conto sincronizzato

        Raises:
            NotFoundError: Prestazione o condizione di pagamento non trovate
            SeedDataMissingError: Se lo stato "open" non è presente in tabella
        """
        # Step 1: Caricamento
        attendance = await self._load_attendance(db, attendance_id)
        invoice = find_linked_invoice(attendance)

        # Step 2: Conto saldato, nessuna modifica
        if invoice is not None and invoice.is_paid:
            logger.info("Conto %s già saldato: sincronizzazione saltata", invoice.id)
            return invoice

        # Step 3: Derivazione
        lines, subtotal = derive_invoice_lines(attendance)
        condition = await self._get_condition(db, payment_condition_id)
        due_days = condition.term_days if condition is not None else settings.invoice_due_days
        default_due_date = attendance.date + datetime.timedelta(days=due_days)

        if invoice is None:
            # Step 4: Creazione
            status = await self._get_status(db, OPEN_STATUS_SLUG)
            invoice = Invoice(
                owner_id=attendance.animal.owner_id,
                status=status,
                status_id=status.id,
                responsible_id=responsible_id,
                payment_condition_id=payment_condition_id,
                due_date=due_date or default_due_date,
                total=subtotal,
                items=self._build_items(attendance.id, lines),
                installments=[],
            )
            db.add(invoice)
            await db.flush()
            logger.info("Creato conto per la prestazione %s: totale=%s", attendance.id, subtotal)
        else:
            # Step 5: Aggiornamento
            consumed = {item.product_id for item in attendance.product_items}
            for item in invoice.items:
                if (
                    item.attendance_id is None
                    and item.product_id in consumed
                    and item.description.startswith(PRODUCT_LINE_PREFIX)
                ):
                    item.attendance_id = attendance.id

            manual_total = sum_money(i.total for i in invoice.items if i.attendance_id is None)

            for item in [i for i in invoice.items if i.attendance_id == attendance.id]:
                invoice.items.remove(item)
            await db.flush()

            invoice.items.extend(self._build_items(attendance.id, lines))
            invoice.owner_id = attendance.animal.owner_id
            invoice.total = to_money(subtotal + manual_total)
            invoice.due_date = due_date or invoice.due_date or default_due_date
            invoice.responsible_id = responsible_id or invoice.responsible_id
            if condition is not None:
                invoice.payment_condition_id = condition.id
                if not any(i.paid_at is not None for i in invoice.installments):
                    # Nuova condizione e nessuna rata pagata: il piano viene rifatto
                    invoice.installments.clear()
            await db.flush()
            logger.info(
                "Conto %s sincronizzato con la prestazione %s: totale=%s",
                invoice.id,
                attendance.id,
                invoice.total,
            )

        # Step 6: Rate
        installment_count = condition.installments if condition is not None else 1
        await self.reconciler.reconcile(db, invoice, invoice.total, invoice.due_date, installment_count)
        return invoice

    @staticmethod
    def _build_items(attendance_id: uuid.UUID, lines: list[DerivedLine]) -> list[InvoiceItem]:
        return [
            InvoiceItem(
                attendance_id=attendance_id,
                product_id=line.product_id,
                description=line.description,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total=line.total,
            )
            for line in lines
        ]

    async def _load_attendance(self, db: AsyncSession, attendance_id: uuid.UUID) -> Attendance:
        result = await db.execute(
            select(Attendance)
            .where(Attendance.id == attendance_id)
            .options(selectinload(Attendance.invoice_items).selectinload(InvoiceItem.invoice))
            .execution_options(populate_existing=True)
        )
        attendance = result.scalar_one_or_none()
        if attendance is None:
            logger.warning("Prestazione non trovata: %s", attendance_id)
            raise NotFoundError(f"Prestazione non trovata: {attendance_id}")
        return attendance

    async def _get_condition(
        self,
        db: AsyncSession,
        payment_condition_id: Optional[uuid.UUID],
    ) -> Optional[PaymentCondition]:
        if payment_condition_id is None:
            return None
        condition = await db.get(PaymentCondition, payment_condition_id)
        if condition is None:
            logger.warning("Condizione di pagamento non trovata: %s", payment_condition_id)
            raise NotFoundError(f"Condizione di pagamento non trovata: {payment_condition_id}")
        return condition

    async def _get_status(self, db: AsyncSession, slug: str) -> InvoiceStatus:
        result = await db.execute(select(InvoiceStatus).where(InvoiceStatus.slug == slug))
        status = result.scalar_one_or_none()
        if status is None:
            logger.critical("Stato conto '%s' assente: seed del database incompleto", slug)
            raise SeedDataMissingError(f"Stato conto '{slug}' non configurato")
        return status


# Istanza singleton del service
invoice_synchronizer = InvoiceSynchronizer()
