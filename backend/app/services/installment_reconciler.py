"""
Riconciliazione delle rate
Progetto: Vet Manager (Gestionale Ambulatorio Veterinario)

Garantisce che la somma delle rate di un conto coincida con il totale.
"""

import datetime
import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.invoice import Invoice, InvoiceInstallment
from app.utils.money import sum_money, to_money

logger = logging.getLogger(__name__)


def split_amount(total: Decimal, count: int) -> list[Decimal]:
    """
    Divide l'importo in `count` quote; l'arrotondamento finisce sull'ultima.

    >>> split_amount(Decimal("100.00"), 3)
    [Decimal('33.33'), Decimal('33.33'), Decimal('33.34')]
    """
    if count < 1:
        raise ValueError("Il numero di rate deve essere almeno 1")
    total = to_money(total)
    share = to_money(total / count)
    shares = [share] * (count - 1)
    shares.append(total - sum_money(shares))
    return shares


def plan_installments(
    total: Decimal,
    first_due_date: datetime.date,
    count: int = 1,
    interval_days: int = 30,
) -> list[InvoiceInstallment]:
    """Piano rate: `count` rate a distanza di `interval_days` dalla prima scadenza."""
    return [
        InvoiceInstallment(
            number=index + 1,
            due_date=first_due_date + datetime.timedelta(days=interval_days * index),
            amount=amount,
        )
        for index, amount in enumerate(split_amount(total, count))
    ]


def apply_total(
    invoice: Invoice,
    total: Decimal,
    fallback_due_date: datetime.date,
    installment_count: int = 1,
    interval_days: int = 30,
) -> list[InvoiceInstallment]:
    """
    Allinea le rate del conto al totale indicato.

    - Nessuna rata: crea il piano (una rata per l'intero importo salvo
      condizione di pagamento rateale) a partire da fallback_due_date.
    - Rate presenti: l'intera differenza va sull'ultima rata per scadenza,
      così importi e scadenze delle rate precedenti restano quelli già comunicati.

    Returns:
        Le rate create, lista vuota se sono state adeguate rate esistenti
    """
    total = to_money(total)

    if not invoice.installments:
        created = plan_installments(total, fallback_due_date, installment_count, interval_days)
        invoice.installments.extend(created)
        return created

    difference = total - sum_money(i.amount for i in invoice.installments)
    if difference != 0:
        last = max(invoice.installments, key=lambda i: (i.due_date, i.number))
        last.amount = to_money(last.amount + difference)
        if last.amount < 0:
            logger.warning(
                "Rata %s del conto %s con importo negativo dopo la riconciliazione: %s",
                last.number,
                invoice.id,
                last.amount,
            )
    return []


class InstallmentReconciler:
    """Service per la riconciliazione delle rate."""

    async def reconcile(
        self,
        db: AsyncSession,
        invoice: Invoice,
        total: Decimal,
        fallback_due_date: datetime.date,
        installment_count: int = 1,
    ) -> Invoice:
        """
        Riconcilia le rate del conto con il nuovo totale.

        Args:
            db: Sessione database (transazione del chiamante)
            invoice: Conto con le rate caricate
            total: Nuovo totale
            fallback_due_date: Scadenza della prima rata se non ne esistono
            installment_count: Rate da creare se non ne esistono

        Returns:
            Il conto aggiornato
        """
        created = apply_total(
            invoice,
            total,
            fallback_due_date,
            installment_count,
            settings.installment_interval_days,
        )
        await db.flush()
        if created:
            logger.info("Create %d rate per il conto %s (totale %s)", len(created), invoice.id, total)
        return invoice


# Istanza singleton del service
installment_reconciler = InstallmentReconciler()
