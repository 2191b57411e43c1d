"""
Unit tests per AttendanceService.
"""

import asyncio
import datetime
import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from conftest import MockAnimal, MockAttendance, MockProduct, MockProductItem, make_invoice
from app.core.exceptions import BusinessValidationError, ConflictError, InsufficientStockError, NotFoundError
from app.models.attendance import Attendance, ServiceDefinition
from app.models.product import Product
from app.schemas.attendance import (
    AttendanceCreate,
    AttendanceUpdate,
    CatalogItemInput,
    ProductItemInput,
)
from app.services.attendance_service import attendance_service, check_duplicate_items


def make_definition(name: str = "Visita clinica", unit_price: str = "50.00", is_active: bool = True):
    return ServiceDefinition(id=uuid.uuid4(), name=name, unit_price=Decimal(unit_price), is_active=is_active)


def make_product(name: str = "Antiparassitario", sale_price: str = "20.00", stock: int = 10):
    return Product(
        id=uuid.uuid4(),
        name=name,
        sale_price=Decimal(sale_price),
        cost_price=Decimal("8.00"),
        stock_quantity=stock,
        min_stock_level=0,
        is_active=True,
        is_sellable=True,
    )


@pytest.fixture
def ledger():
    mock = MagicMock()
    mock.lock_products = AsyncMock(return_value={})
    mock.replace_consumption = AsyncMock()
    mock.increment = AsyncMock()
    with patch("app.services.attendance_service.stock_ledger", mock):
        yield mock


@pytest.fixture
def synchronizer():
    mock = MagicMock()
    mock.sync_for_attendance = AsyncMock()
    with patch("app.services.attendance_service.invoice_synchronizer", mock):
        yield mock


class TestDuplicateItems:
    """Test controllo duplicati."""

    def test_duplicate_product_rejected(self):
        """Test prodotto ripetuto."""
        product_id = uuid.uuid4()
        items = [ProductItemInput(product_id=product_id), ProductItemInput(product_id=product_id)]

        with pytest.raises(BusinessValidationError):
            check_duplicate_items(None, items)

    def test_schema_rejects_duplicate_definitions(self):
        """Test duplicati rifiutati già dallo schema."""
        definition_id = uuid.uuid4()
        with pytest.raises(ValueError):
            AttendanceCreate(
                animal_id=uuid.uuid4(),
                date=datetime.date(2025, 3, 10),
                catalog_items=[
                    CatalogItemInput(definition_id=definition_id),
                    CatalogItemInput(definition_id=definition_id, quantity=2),
                ],
            )

    def test_distinct_items_accepted(self):
        """Test riferimenti distinti."""
        check_duplicate_items(
            [CatalogItemInput(definition_id=uuid.uuid4()), CatalogItemInput(definition_id=uuid.uuid4())],
            [ProductItemInput(product_id=uuid.uuid4())],
        )


class TestCreateAttendance:
    """Test creazione prestazione."""

    def test_price_defaults_to_catalog_total(self, mock_db, ledger, synchronizer):
        """Test 2 × 50.00 di listino → prezzo 100.00, conto sincronizzato."""
        animal = MockAnimal()
        mock_db.get.return_value = animal
        definition = make_definition()
        product = make_product()
        ledger.lock_products.return_value = {product.id: product}
        data = AttendanceCreate(
            animal_id=animal.id,
            date=datetime.date(2025, 3, 10),
            catalog_items=[CatalogItemInput(definition_id=definition.id, quantity=2)],
            product_items=[ProductItemInput(product_id=product.id)],
        )

        with patch.object(attendance_service, "_load_definitions", AsyncMock(return_value={definition.id: definition})), \
                patch.object(attendance_service, "get_by_id", AsyncMock(side_effect=lambda db, id: id)):
            asyncio.run(attendance_service.create(mock_db, data))

        attendance = mock_db.add.call_args.args[0]
        assert isinstance(attendance, Attendance)
        assert attendance.price == Decimal("100.00")
        assert attendance.kind == "consultation"
        assert attendance.catalog_items[0].unit_price == Decimal("50.00")
        assert attendance.product_items[0].unit_price == Decimal("20.00")

        kwargs = ledger.replace_consumption.await_args.kwargs
        assert kwargs["previous"] == {}
        assert kwargs["desired"] == {product.id: 1}
        synchronizer.sync_for_attendance.assert_awaited_once()

    def test_explicit_price_wins(self, mock_db, ledger, synchronizer):
        """Test prezzo esplicito."""
        animal = MockAnimal()
        mock_db.get.return_value = animal
        definition = make_definition()
        data = AttendanceCreate(
            animal_id=animal.id,
            date=datetime.date(2025, 3, 10),
            price=Decimal("80.00"),
            catalog_items=[CatalogItemInput(definition_id=definition.id)],
        )

        with patch.object(attendance_service, "_load_definitions", AsyncMock(return_value={definition.id: definition})), \
                patch.object(attendance_service, "get_by_id", AsyncMock()):
            asyncio.run(attendance_service.create(mock_db, data))

        assert mock_db.add.call_args.args[0].price == Decimal("80.00")

    def test_missing_animal(self, mock_db, ledger, synchronizer):
        """Test animale inesistente."""
        mock_db.get.return_value = None
        data = AttendanceCreate(animal_id=uuid.uuid4(), date=datetime.date(2025, 3, 10))

        with pytest.raises(NotFoundError):
            asyncio.run(attendance_service.create(mock_db, data))

        mock_db.add.assert_not_called()
        synchronizer.sync_for_attendance.assert_not_called()

    def test_inactive_product_rejected(self, mock_db, ledger, synchronizer):
        """Test prodotto disattivato."""
        mock_db.get.return_value = MockAnimal()
        product = MockProduct(is_active=False)
        ledger.lock_products.return_value = {product.id: product}
        data = AttendanceCreate(
            animal_id=uuid.uuid4(),
            date=datetime.date(2025, 3, 10),
            product_items=[ProductItemInput(product_id=product.id)],
        )

        with pytest.raises(BusinessValidationError):
            asyncio.run(attendance_service.create(mock_db, data))

        ledger.replace_consumption.assert_not_called()


class TestLoadDefinitions:
    """Test verifica voci di listino."""

    def test_inactive_definition(self, mock_db):
        """Test voce disattivata."""
        definition = make_definition(is_active=False)
        result = MagicMock()
        result.scalars.return_value.all.return_value = [definition]
        mock_db.execute.return_value = result

        with pytest.raises(BusinessValidationError):
            asyncio.run(
                attendance_service._load_definitions(mock_db, [CatalogItemInput(definition_id=definition.id)])
            )

    def test_missing_definition(self, mock_db):
        """Test voce inesistente."""
        result = MagicMock()
        result.scalars.return_value.all.return_value = []
        mock_db.execute.return_value = result

        with pytest.raises(NotFoundError):
            asyncio.run(
                attendance_service._load_definitions(mock_db, [CatalogItemInput(definition_id=uuid.uuid4())])
            )


class TestPaidInvoiceGuard:
    """Test immutabilità economica con conto saldato."""

    def test_price_change_rejected(self, mock_db, ledger, synchronizer):
        """Test modifica del prezzo rifiutata."""
        attendance = MockAttendance(price=Decimal("100.00"))
        attendance.link(make_invoice(slug="paid"))

        with patch.object(attendance_service, "get_by_id", AsyncMock(return_value=attendance)):
            with pytest.raises(ConflictError) as exc_info:
                asyncio.run(
                    attendance_service.update(mock_db, attendance.id, AttendanceUpdate(price=Decimal("90.00")))
                )

        assert exc_info.value.error_code == "INVOICE_PAID"
        assert attendance.price == Decimal("100.00")
        synchronizer.sync_for_attendance.assert_not_called()

    def test_notes_change_allowed(self, mock_db, ledger, synchronizer):
        """Test modifica delle sole note ammessa."""
        attendance = MockAttendance()
        attendance.notes = None
        attendance.link(make_invoice(slug="paid"))

        with patch.object(attendance_service, "get_by_id", AsyncMock(return_value=attendance)):
            asyncio.run(attendance_service.update(mock_db, attendance.id, AttendanceUpdate(notes="Controllo ok")))

        assert attendance.notes == "Controllo ok"
        synchronizer.sync_for_attendance.assert_awaited_once()

    @pytest.mark.parametrize(
        "changes",
        [
            {"kind": "surgery"},
            {"date": datetime.date(2025, 3, 11)},
            {"animal_id": uuid.uuid4()},
            {"product_items": []},
        ],
    )
    def test_billed_fields_rejected(self, mock_db, ledger, synchronizer, changes):
        """Test tipo, data, animale e voci non modificabili con conto saldato."""
        attendance = MockAttendance()
        attendance.link(make_invoice(slug="paid"))
        before = (attendance.kind, attendance.date, attendance.animal_id)

        with patch.object(attendance_service, "get_by_id", AsyncMock(return_value=attendance)):
            with pytest.raises(ConflictError) as exc_info:
                asyncio.run(attendance_service.update(mock_db, attendance.id, AttendanceUpdate(**changes)))

        assert exc_info.value.error_code == "INVOICE_PAID"
        assert (attendance.kind, attendance.date, attendance.animal_id) == before
        mock_db.get.assert_not_called()
        ledger.replace_consumption.assert_not_called()
        synchronizer.sync_for_attendance.assert_not_called()

    def test_unchanged_values_allowed(self, mock_db, ledger, synchronizer):
        """Test tipo e data reinviati invariati insieme alle note."""
        attendance = MockAttendance()
        attendance.notes = None
        attendance.link(make_invoice(slug="paid"))
        data = AttendanceUpdate(kind="consultation", date=attendance.date, notes="Richiamo tra un anno")

        with patch.object(attendance_service, "get_by_id", AsyncMock(return_value=attendance)):
            asyncio.run(attendance_service.update(mock_db, attendance.id, data))

        assert attendance.notes == "Richiamo tra un anno"

    def test_delete_rejected(self, mock_db, ledger, synchronizer):
        """Test eliminazione rifiutata."""
        attendance = MockAttendance()
        attendance.link(make_invoice(slug="paid"))

        with patch.object(attendance_service, "get_by_id", AsyncMock(return_value=attendance)):
            with pytest.raises(ConflictError):
                asyncio.run(attendance_service.delete(mock_db, attendance.id))

        mock_db.delete.assert_not_called()


class TestUpdateAttendance:
    """Test modifica di una prestazione con conto aperto."""

    def test_reassign_animal(self, mock_db, ledger, synchronizer):
        """Test spostamento della prestazione su un altro animale."""
        attendance = MockAttendance()
        attendance.link(make_invoice())
        other = MockAnimal(name="Micio")
        mock_db.get.return_value = other

        with patch.object(attendance_service, "get_by_id", AsyncMock(return_value=attendance)):
            asyncio.run(attendance_service.update(mock_db, attendance.id, AttendanceUpdate(animal_id=other.id)))

        assert attendance.animal_id == other.id
        assert attendance.animal is other
        synchronizer.sync_for_attendance.assert_awaited_once()

    def test_reassign_to_missing_animal(self, mock_db, ledger, synchronizer):
        attendance = MockAttendance()
        original = attendance.animal_id
        mock_db.get.return_value = None

        with patch.object(attendance_service, "get_by_id", AsyncMock(return_value=attendance)):
            with pytest.raises(NotFoundError):
                asyncio.run(
                    attendance_service.update(mock_db, attendance.id, AttendanceUpdate(animal_id=uuid.uuid4()))
                )

        assert attendance.animal_id == original

    def test_null_kind_rejected(self):
        with pytest.raises(ValueError):
            AttendanceUpdate.model_validate({"kind": None})

    def test_product_items_replaced(self, mock_db, ledger, synchronizer):
        """Test A da 2 a 1 e nuovo prodotto B: ripristino, verifica, scarico."""
        a = make_product(name="A", stock=0)
        b = make_product(name="B", stock=1)
        attendance = MockAttendance(product_items=[MockProductItem(product=a, quantity=2)])
        attendance.link(make_invoice())
        ledger.lock_products.return_value = {a.id: a, b.id: b}
        data = AttendanceUpdate(
            product_items=[
                ProductItemInput(product_id=a.id, quantity=1),
                ProductItemInput(product_id=b.id, quantity=1),
            ]
        )

        with patch.object(attendance_service, "get_by_id", AsyncMock(return_value=attendance)):
            asyncio.run(attendance_service.update(mock_db, attendance.id, data))

        assert set(ledger.lock_products.await_args.args[1]) == {a.id, b.id}
        kwargs = ledger.replace_consumption.await_args.kwargs
        assert kwargs["previous"] == {a.id: 2}
        assert kwargs["desired"] == {a.id: 1, b.id: 1}
        assert [(i.product_id, i.quantity) for i in attendance.product_items] == [(a.id, 1), (b.id, 1)]
        synchronizer.sync_for_attendance.assert_awaited_once()

    def test_insufficient_stock_keeps_items(self, mock_db, ledger, synchronizer):
        """Test giacenza insufficiente: voci invariate, conto non sincronizzato."""
        a = make_product(name="A", stock=0)
        old_item = MockProductItem(product=a, quantity=1)
        attendance = MockAttendance(product_items=[old_item])
        ledger.lock_products.return_value = {a.id: a}
        ledger.replace_consumption.side_effect = InsufficientStockError("A", 1, 5, product_id=a.id)

        with patch.object(attendance_service, "get_by_id", AsyncMock(return_value=attendance)):
            with pytest.raises(InsufficientStockError):
                asyncio.run(
                    attendance_service.update(
                        mock_db,
                        attendance.id,
                        AttendanceUpdate(product_items=[ProductItemInput(product_id=a.id, quantity=5)]),
                    )
                )

        assert attendance.product_items == [old_item]
        synchronizer.sync_for_attendance.assert_not_called()


class TestDeleteAttendance:
    """Test eliminazione prestazione."""

    def test_delete_restores_stock(self, mock_db, ledger, synchronizer):
        """Test ripristino giacenza dei prodotti consumati."""
        item = MockProductItem(quantity=3)
        attendance = MockAttendance(product_items=[item])
        attendance.link(make_invoice())

        with patch.object(attendance_service, "get_by_id", AsyncMock(return_value=attendance)):
            asyncio.run(attendance_service.delete(mock_db, attendance.id))

        ledger.increment.assert_awaited_once()
        assert ledger.increment.await_args.args[1:3] == (item.product_id, 3)
        mock_db.delete.assert_awaited_once_with(attendance)
