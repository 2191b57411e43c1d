"""
Unit tests per carichi e scarichi di magazzino.
"""

import asyncio
import uuid
from unittest.mock import AsyncMock, call, patch

import pytest

from conftest import MockProduct, rowcount_result, scalar_result
from app.core.exceptions import BusinessValidationError, InsufficientStockError, NotFoundError
from app.models.product import StockMovement
from app.services.stock_ledger import StockLedger, check_availability


class TestCheckAvailability:
    """Test validazione contro la giacenza ripristinata."""

    def test_previous_consumption_is_available_again(self):
        """Test 0 in giacenza + 2 consumati prima: 2 disponibili."""
        product = MockProduct(stock_quantity=0)
        check_availability({product.id: product}, {product.id: 2}, {product.id: 2})

    def test_insufficient_names_product_and_available(self):
        """Test messaggio con nome e disponibilità."""
        product = MockProduct(name="Vaccino trivalente", stock_quantity=3)

        with pytest.raises(InsufficientStockError) as exc_info:
            check_availability({product.id: product}, {}, {product.id: 5})

        assert "Vaccino trivalente" in exc_info.value.detail
        assert "Disponibili: 3" in exc_info.value.detail
        assert exc_info.value.extra["available"] == 3
        assert exc_info.value.extra["requested"] == 5

    def test_unloaded_product(self):
        """Test prodotto richiesto non presente tra quelli bloccati."""
        with pytest.raises(NotFoundError):
            check_availability({}, {}, {uuid.uuid4(): 1})


class TestDecrement:
    """Test scarico condizionale."""

    def test_decrement_records_out_movement(self, mock_db):
        """Test scarico riuscito."""
        product_id = uuid.uuid4()
        mock_db.execute.return_value = rowcount_result(1)

        asyncio.run(StockLedger().decrement(mock_db, product_id, 2, reference="Prestazione X"))

        movement = mock_db.add.call_args[0][0]
        assert isinstance(movement, StockMovement)
        assert movement.movement_type == "out"
        assert movement.quantity == -2
        assert movement.product_id == product_id

    def test_insufficient_stock_leaves_stock_unchanged(self, mock_db):
        """Test scarico di 5 con 3 disponibili."""
        product = MockProduct(name="Antibiotico", stock_quantity=3)
        mock_db.execute.side_effect = [rowcount_result(0), scalar_result(product)]

        with pytest.raises(InsufficientStockError) as exc_info:
            asyncio.run(StockLedger().decrement(mock_db, product.id, 5))

        assert "Antibiotico" in str(exc_info.value)
        assert "Disponibili: 3" in str(exc_info.value)
        assert product.stock_quantity == 3
        mock_db.add.assert_not_called()

    def test_decrement_missing_product(self, mock_db):
        """Test prodotto inesistente."""
        mock_db.execute.side_effect = [rowcount_result(0), scalar_result(None)]

        with pytest.raises(NotFoundError):
            asyncio.run(StockLedger().decrement(mock_db, uuid.uuid4(), 1))

    def test_non_positive_quantity(self, mock_db):
        """Test quantità zero."""
        with pytest.raises(BusinessValidationError):
            asyncio.run(StockLedger().decrement(mock_db, uuid.uuid4(), 0))
        mock_db.execute.assert_not_called()


class TestIncrement:
    """Test carico."""

    def test_increment_records_in_movement(self, mock_db):
        """Test carico riuscito."""
        mock_db.execute.return_value = rowcount_result(1)

        asyncio.run(StockLedger().increment(mock_db, uuid.uuid4(), 4, notes="Ripristino"))

        movement = mock_db.add.call_args[0][0]
        assert movement.movement_type == "in"
        assert movement.quantity == 4

    def test_increment_missing_product(self, mock_db):
        """Test prodotto inesistente."""
        mock_db.execute.return_value = rowcount_result(0)

        with pytest.raises(NotFoundError):
            asyncio.run(StockLedger().increment(mock_db, uuid.uuid4(), 1))


class TestAdjust:
    """Test rettifica inventariale."""

    def test_negative_adjustment_records_signed_movement(self, mock_db):
        """Test rettifica di -3 con giacenza sufficiente."""
        product_id = uuid.uuid4()
        mock_db.execute.return_value = rowcount_result(1)

        asyncio.run(StockLedger().adjust(mock_db, product_id, -3, notes="Inventario"))

        movement = mock_db.add.call_args[0][0]
        assert isinstance(movement, StockMovement)
        assert movement.movement_type == "adjustment"
        assert movement.quantity == -3
        assert movement.notes == "Inventario"

    def test_below_zero_rejected(self, mock_db):
        """Test rettifica di -5 con 2 in giacenza: giacenza invariata."""
        product = MockProduct(name="Garze", stock_quantity=2)
        mock_db.execute.side_effect = [rowcount_result(0), scalar_result(product)]

        with pytest.raises(BusinessValidationError) as exc_info:
            asyncio.run(StockLedger().adjust(mock_db, product.id, -5))

        assert exc_info.value.error_code == "NEGATIVE_STOCK"
        assert "Garze" in exc_info.value.detail
        assert product.stock_quantity == 2
        mock_db.add.assert_not_called()

    def test_adjust_missing_product(self, mock_db):
        """Test prodotto inesistente."""
        mock_db.execute.side_effect = [rowcount_result(0), scalar_result(None)]

        with pytest.raises(NotFoundError):
            asyncio.run(StockLedger().adjust(mock_db, uuid.uuid4(), 4))

    def test_zero_adjustment(self, mock_db):
        """Test rettifica nulla."""
        with pytest.raises(BusinessValidationError):
            asyncio.run(StockLedger().adjust(mock_db, uuid.uuid4(), 0))
        mock_db.execute.assert_not_called()


class TestReplaceConsumption:
    """Test sostituzione di un consumo."""

    def test_swap_between_products(self, mock_db):
        """Test riduzione di A e aumento di B nella stessa modifica."""
        a = MockProduct(name="A", stock_quantity=0)
        b = MockProduct(name="B", stock_quantity=1)
        ledger = StockLedger()

        with patch.object(ledger, "increment", AsyncMock()) as increment, \
                patch.object(ledger, "decrement", AsyncMock()) as decrement:
            asyncio.run(
                ledger.replace_consumption(
                    mock_db,
                    {a.id: a, b.id: b},
                    previous={a.id: 2},
                    desired={a.id: 1, b.id: 1},
                )
            )

        increment.assert_awaited_once_with(mock_db, a.id, 2, None, notes="Ripristino consumo")
        assert decrement.await_args_list == [call(mock_db, a.id, 1, None), call(mock_db, b.id, 1, None)]

    def test_fails_fast_without_writes(self, mock_db):
        """Test nuova quantità oltre la giacenza ripristinata: nessun movimento."""
        product = MockProduct(name="Siringa", stock_quantity=1)
        ledger = StockLedger()

        with patch.object(ledger, "increment", AsyncMock()) as increment, \
                patch.object(ledger, "decrement", AsyncMock()) as decrement:
            with pytest.raises(InsufficientStockError):
                asyncio.run(
                    ledger.replace_consumption(
                        mock_db,
                        {product.id: product},
                        previous={product.id: 1},
                        desired={product.id: 3},
                    )
                )

        increment.assert_not_called()
        decrement.assert_not_called()
