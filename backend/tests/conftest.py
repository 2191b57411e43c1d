"""
Pytest configuration and fixtures per i test dei service.

Le sessioni database sono mock (AsyncMock di AsyncSession); i modelli di
dominio letti dai service sono oggetti semplici, mentre conti, righe e rate
sono istanze ORM transienti con id espliciti.
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.invoice import Invoice, InvoiceInstallment, InvoiceItem, InvoiceStatus

UTC = datetime.timezone.utc


# ============================================================
# Fixtures per AsyncSession Mock
# ============================================================


@pytest.fixture
def mock_db():
    """Crea un mock di AsyncSession."""
    db = AsyncMock(spec=AsyncSession)
    db.execute = AsyncMock()
    db.get = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.delete = AsyncMock()
    return db


def scalar_result(value):
    """Risultato di db.execute con scalar_one_or_none()."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.unique.return_value = result
    return result


def rowcount_result(rowcount: int):
    """Risultato di un UPDATE con il numero di righe aggiornate."""
    result = MagicMock()
    result.rowcount = rowcount
    return result


# ============================================================
# Mock di dominio (senza stato ORM)
# ============================================================


class MockAnimal:
    """Mock di Animal."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.owner_id = kwargs.get('owner_id', uuid.uuid4())
        self.name = kwargs.get('name', 'Fido')


class MockCollaborator:
    """Mock di Collaborator."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.role = kwargs.get('role', 'veterinarian')
        self.is_active = kwargs.get('is_active', True)
        self.shifts = kwargs.get('shifts', ['MORNING'])

    @property
    def is_veterinarian(self) -> bool:
        return self.role == 'veterinarian'


class MockProduct:
    """Mock di Product."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.name = kwargs.get('name', 'Antiparassitario')
        self.stock_quantity = kwargs.get('stock_quantity', 10)
        self.sale_price = kwargs.get('sale_price', Decimal("20.00"))
        self.is_active = kwargs.get('is_active', True)
        self.is_sellable = kwargs.get('is_sellable', True)


class MockDefinition:
    """Mock di ServiceDefinition."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.name = kwargs.get('name', 'Visita clinica')
        self.unit_price = kwargs.get('unit_price', Decimal("50.00"))
        self.is_active = kwargs.get('is_active', True)


class MockCatalogItem:
    """Mock di AttendanceCatalogItem."""
    def __init__(self, **kwargs):
        self.definition = kwargs.get('definition', MockDefinition())
        self.definition_id = self.definition.id
        self.quantity = kwargs.get('quantity', 1)
        self.unit_price = kwargs.get('unit_price', self.definition.unit_price)


class MockProductItem:
    """Mock di AttendanceProductItem."""
    def __init__(self, **kwargs):
        self.product = kwargs.get('product', MockProduct())
        self.product_id = self.product.id
        self.quantity = kwargs.get('quantity', 1)
        self.unit_price = kwargs.get('unit_price', self.product.sale_price)


class MockInvoiceLink:
    """Riga di conto vista dalla prestazione (solo il riferimento al conto)."""
    def __init__(self, invoice):
        self.invoice = invoice


class MockAttendance:
    """Mock di Attendance."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.animal = kwargs.get('animal', MockAnimal())
        self.animal_id = self.animal.id
        self.kind = kwargs.get('kind', 'consultation')
        self.date = kwargs.get('date', datetime.date(2025, 3, 10))
        self.price = kwargs.get('price', Decimal("0.00"))
        self.catalog_items = kwargs.get('catalog_items', [])
        self.product_items = kwargs.get('product_items', [])
        self.invoice_items = kwargs.get('invoice_items', [])

    def link(self, invoice) -> None:
        """Simula le righe di conto già generate per questa prestazione."""
        self.invoice_items = [MockInvoiceLink(invoice)]


class MockAppointment:
    """Mock di Appointment."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.animal_id = kwargs.get('animal_id', uuid.uuid4())
        self.owner_id = kwargs.get('owner_id', uuid.uuid4())
        self.veterinarian_id = kwargs.get('veterinarian_id', uuid.uuid4())
        self.assistant_id = kwargs.get('assistant_id', None)
        self.scheduled_start = kwargs.get(
            'scheduled_start', datetime.datetime(2025, 3, 10, 9, 0, tzinfo=UTC)
        )
        self.scheduled_end = kwargs.get(
            'scheduled_end', datetime.datetime(2025, 3, 10, 9, 30, tzinfo=UTC)
        )
        self.status = kwargs.get('status', 'scheduled')
        self.confirmed_at = kwargs.get('confirmed_at', None)
        self.completed_at = kwargs.get('completed_at', None)
        self.attendance_id = kwargs.get('attendance_id', None)
        self.notes = kwargs.get('notes', None)
        self.created_at = kwargs.get('created_at', datetime.datetime(2025, 3, 1, tzinfo=UTC))
        self.updated_at = kwargs.get('updated_at', self.created_at)


# ============================================================
# Istanze ORM transienti per i conti
# ============================================================


def make_status(slug: str) -> InvoiceStatus:
    return InvoiceStatus(id=uuid.uuid4(), slug=slug, name=slug)


def make_item(
    total: str,
    attendance_id: Optional[uuid.UUID] = None,
    product_id: Optional[uuid.UUID] = None,
    description: str = "Riga manuale",
    quantity: int = 1,
) -> InvoiceItem:
    amount = Decimal(total)
    return InvoiceItem(
        id=uuid.uuid4(),
        attendance_id=attendance_id,
        product_id=product_id,
        description=description,
        quantity=quantity,
        unit_price=amount / quantity,
        total=amount,
    )


def make_installment(
    number: int,
    amount: str,
    due_date: datetime.date,
    paid_at: Optional[datetime.datetime] = None,
) -> InvoiceInstallment:
    return InvoiceInstallment(
        id=uuid.uuid4(),
        number=number,
        amount=Decimal(amount),
        due_date=due_date,
        paid_at=paid_at,
    )


def make_invoice(
    slug: str = "open",
    items: Optional[list[InvoiceItem]] = None,
    installments: Optional[list[InvoiceInstallment]] = None,
    due_date: datetime.date = datetime.date(2025, 3, 17),
) -> Invoice:
    items = items or []
    status = make_status(slug)
    return Invoice(
        id=uuid.uuid4(),
        owner_id=uuid.uuid4(),
        status=status,
        status_id=status.id,
        due_date=due_date,
        total=sum((i.total for i in items), Decimal("0.00")),
        items=items,
        installments=installments or [],
    )


@pytest.fixture
def open_status():
    return make_status("open")


@pytest.fixture
def paid_status():
    return make_status("paid")


@pytest.fixture
def partially_paid_status():
    return make_status("partially_paid")
