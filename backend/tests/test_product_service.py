"""
Unit tests per anagrafica prodotti e operazioni di magazzino.
"""

import asyncio
import uuid
from decimal import Decimal
from unittest.mock import ANY, AsyncMock, MagicMock, patch

import pytest
from pydantic import ValidationError

from conftest import MockProduct
from app.core.exceptions import BusinessValidationError, ConflictError
from app.models.product import Product
from app.schemas.product import ProductCreate, ProductUpdate, StockAdjustment, StockLoad
from app.services.product_service import ProductService


def count_result(value: int):
    """Risultato di una SELECT count(...)."""
    result = MagicMock()
    result.scalar.return_value = value
    return result


def list_result(items):
    result = MagicMock()
    result.scalars.return_value.all.return_value = items
    return result


class TestCreateProduct:
    """Test creazione prodotto con giacenza iniziale."""

    def test_initial_stock_loaded_as_movement(self, mock_db):
        """Test giacenza iniziale registrata come carico, non scritta sul prodotto."""
        ledger = AsyncMock()
        data = ProductCreate(name="  Vermifugo  ", sale_price=Decimal("12.50"), initial_stock=10)

        with patch("app.services.product_service.stock_ledger", ledger):
            product = asyncio.run(ProductService().create(mock_db, data))

        created = mock_db.add.call_args[0][0]
        assert isinstance(created, Product)
        assert created.name == "Vermifugo"
        assert created.stock_quantity == 0
        ledger.increment.assert_awaited_once_with(mock_db, ANY, 10, reference="Giacenza iniziale")
        mock_db.refresh.assert_awaited_once_with(product)

    def test_no_initial_stock_no_movement(self, mock_db):
        """Test prodotto creato senza giacenza."""
        ledger = AsyncMock()

        with patch("app.services.product_service.stock_ledger", ledger):
            asyncio.run(ProductService().create(mock_db, ProductCreate(name="Collare")))

        ledger.increment.assert_not_called()
        mock_db.refresh.assert_not_called()


class TestUpdateProduct:
    """Test modifica anagrafica."""

    def test_only_sent_fields_change(self, mock_db):
        product = MockProduct(name="Shampoo", sale_price=Decimal("8.00"))
        product.min_stock_level = 2
        service = ProductService()

        with patch.object(service, "get_by_id", AsyncMock(return_value=product)):
            result = asyncio.run(
                service.update(mock_db, product.id, ProductUpdate(sale_price=Decimal("9.50")))
            )

        assert result.sale_price == Decimal("9.50")
        assert result.name == "Shampoo"
        assert result.min_stock_level == 2
        assert result.stock_quantity == 10

    def test_empty_update_rejected(self):
        with pytest.raises(ValidationError):
            ProductUpdate()

    def test_null_name_rejected(self):
        with pytest.raises(ValidationError):
            ProductUpdate.model_validate({"name": None})

    def test_stock_not_editable(self):
        """Test giacenza ignorata nell'aggiornamento anagrafico."""
        data = ProductUpdate.model_validate({"name": "Shampoo", "stock_quantity": 99})
        assert "stock_quantity" not in data.model_dump(exclude_unset=True)


class TestDeleteProduct:
    """Test eliminazione prodotto."""

    def test_delete_without_history(self, mock_db):
        product = MockProduct()
        service = ProductService()
        mock_db.execute.side_effect = [count_result(0), count_result(0)]

        with patch.object(service, "get_by_id", AsyncMock(return_value=product)):
            asyncio.run(service.delete(mock_db, product.id))

        mock_db.delete.assert_awaited_once_with(product)

    def test_delete_with_movements_rejected(self, mock_db):
        """Test prodotto con movimenti: va disattivato."""
        product = MockProduct(name="Vermifugo")
        service = ProductService()
        mock_db.execute.side_effect = [count_result(3), count_result(0)]

        with patch.object(service, "get_by_id", AsyncMock(return_value=product)):
            with pytest.raises(ConflictError) as exc_info:
                asyncio.run(service.delete(mock_db, product.id))

        assert exc_info.value.error_code == "PRODUCT_IN_USE"
        mock_db.delete.assert_not_called()

    def test_delete_used_in_attendance_rejected(self, mock_db):
        product = MockProduct()
        service = ProductService()
        mock_db.execute.side_effect = [count_result(0), count_result(1)]

        with patch.object(service, "get_by_id", AsyncMock(return_value=product)):
            with pytest.raises(ConflictError):
                asyncio.run(service.delete(mock_db, product.id))


class TestStockOperations:
    """Test carico e rettifica tramite il registro di magazzino."""

    def test_load_stock(self, mock_db):
        product = MockProduct(stock_quantity=15)
        ledger = AsyncMock()
        service = ProductService()

        with patch("app.services.product_service.stock_ledger", ledger), \
                patch.object(service, "get_by_id", AsyncMock(return_value=product)):
            result = asyncio.run(
                service.load_stock(
                    mock_db,
                    product.id,
                    StockLoad(quantity=5, reference="DDT 12", notes="Fornitore"),
                )
            )

        ledger.increment.assert_awaited_once_with(
            mock_db, product.id, 5, reference="DDT 12", notes="Fornitore"
        )
        assert result is product

    def test_adjust_stock(self, mock_db):
        product = MockProduct(stock_quantity=7)
        ledger = AsyncMock()
        service = ProductService()

        with patch("app.services.product_service.stock_ledger", ledger), \
                patch.object(service, "get_by_id", AsyncMock(return_value=product)):
            asyncio.run(
                service.adjust_stock(mock_db, product.id, StockAdjustment(amount=-3, notes="Scaduti"))
            )

        ledger.adjust.assert_awaited_once_with(mock_db, product.id, -3, notes="Scaduti")

    def test_adjust_below_zero_propagates(self, mock_db):
        ledger = AsyncMock()
        ledger.adjust.side_effect = BusinessValidationError("sotto zero", error_code="NEGATIVE_STOCK")
        service = ProductService()

        with patch("app.services.product_service.stock_ledger", ledger), \
                patch.object(service, "get_by_id", AsyncMock()) as get_by_id:
            with pytest.raises(BusinessValidationError):
                asyncio.run(service.adjust_stock(mock_db, uuid.uuid4(), StockAdjustment(amount=-50)))

        get_by_id.assert_not_called()

    def test_zero_adjustment_rejected_by_schema(self):
        with pytest.raises(ValidationError):
            StockAdjustment(amount=0)


class TestLowStockAlerts:
    """Test alert scorte basse."""

    def test_returns_query_result(self, mock_db):
        low = MockProduct(name="Siringhe", stock_quantity=1)
        mock_db.execute.return_value = list_result([low])

        result = asyncio.run(ProductService().get_low_stock_alerts(mock_db))

        assert result == [low]
        mock_db.execute.assert_awaited_once()
