"""
Unit tests per listino prestazioni, condizioni di pagamento e stati del conto.
"""

import asyncio
import uuid
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from conftest import MockDefinition, make_status, scalar_result
from app.core.exceptions import ConflictError, NotFoundError
from app.models.attendance import ServiceDefinition
from app.models.invoice import PaymentCondition
from app.schemas.payment_condition import PaymentConditionPayload
from app.schemas.service_definition import ServiceDefinitionCreate
from app.services.invoice_service import InvoiceService
from app.services.payment_condition_service import PaymentConditionService
from app.services.service_definition_service import ServiceDefinitionService


def list_result(items):
    result = MagicMock()
    result.scalars.return_value.all.return_value = items
    return result


def count_result(value: int):
    result = MagicMock()
    result.scalar.return_value = value
    return result


def make_condition(name: str = "30 giorni", term_days: int = 30, installments: int = 1) -> PaymentCondition:
    return PaymentCondition(id=uuid.uuid4(), name=name, term_days=term_days, installments=installments)


class TestServiceDefinitions:
    """Test listino prestazioni."""

    def test_list_active(self, mock_db):
        definitions = [MockDefinition(name="Vaccino"), MockDefinition(name="Visita clinica")]
        mock_db.execute.return_value = list_result(definitions)

        result = asyncio.run(ServiceDefinitionService().get_all(mock_db))

        assert result == definitions

    def test_create(self, mock_db):
        mock_db.execute.return_value = scalar_result(None)
        data = ServiceDefinitionCreate(name=" Ecografia ", description="  ", unit_price=Decimal("60.00"))

        definition = asyncio.run(ServiceDefinitionService().create(mock_db, data))

        assert isinstance(definition, ServiceDefinition)
        assert definition.name == "Ecografia"
        assert definition.description is None
        assert definition.unit_price == Decimal("60.00")
        assert definition.is_active is True
        mock_db.add.assert_called_once_with(definition)

    def test_duplicate_name(self, mock_db):
        mock_db.execute.return_value = scalar_result(MockDefinition(name="Ecografia"))

        with pytest.raises(ConflictError) as exc_info:
            asyncio.run(
                ServiceDefinitionService().create(
                    mock_db, ServiceDefinitionCreate(name="ecografia", unit_price=Decimal("60.00"))
                )
            )

        assert exc_info.value.error_code == "DUPLICATE_SERVICE_DEFINITION"
        mock_db.add.assert_not_called()

    def test_short_name_rejected(self):
        with pytest.raises(ValidationError):
            ServiceDefinitionCreate(name=" X ", unit_price=Decimal("1.00"))

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            ServiceDefinitionCreate(name="Visita", unit_price=Decimal("-1.00"))


class TestPaymentConditions:
    """Test anagrafica condizioni di pagamento."""

    def test_list(self, mock_db):
        conditions = [make_condition("Contanti", 0), make_condition("30 giorni")]
        mock_db.execute.return_value = list_result(conditions)

        assert asyncio.run(PaymentConditionService().get_all(mock_db)) == conditions

    def test_create(self, mock_db):
        mock_db.execute.return_value = scalar_result(None)
        data = PaymentConditionPayload(name="Carta 3 rate", term_days=30, installments=3)

        condition = asyncio.run(PaymentConditionService().create(mock_db, data))

        assert condition.name == "Carta 3 rate"
        assert condition.installments == 3
        mock_db.add.assert_called_once_with(condition)

    def test_create_duplicate(self, mock_db):
        mock_db.execute.return_value = scalar_result(make_condition("Contanti", 0))

        with pytest.raises(ConflictError):
            asyncio.run(
                PaymentConditionService().create(
                    mock_db, PaymentConditionPayload(name="Contanti", term_days=0, installments=1)
                )
            )

    def test_update_replaces_fields(self, mock_db):
        condition = make_condition("60 giorni", 60)
        mock_db.get.return_value = condition
        mock_db.execute.return_value = scalar_result(None)

        result = asyncio.run(
            PaymentConditionService().update(
                mock_db,
                condition.id,
                PaymentConditionPayload(name="90 giorni", term_days=90, installments=2, notes="Clienti abituali"),
            )
        )

        assert result.name == "90 giorni"
        assert result.term_days == 90
        assert result.installments == 2
        assert result.notes == "Clienti abituali"

    def test_update_missing(self, mock_db):
        mock_db.get.return_value = None

        with pytest.raises(NotFoundError):
            asyncio.run(
                PaymentConditionService().update(
                    mock_db,
                    uuid.uuid4(),
                    PaymentConditionPayload(name="Contanti", term_days=0, installments=1),
                )
            )

    def test_delete_unused(self, mock_db):
        condition = make_condition()
        mock_db.get.return_value = condition
        mock_db.execute.return_value = count_result(0)

        asyncio.run(PaymentConditionService().delete(mock_db, condition.id))

        mock_db.delete.assert_awaited_once_with(condition)

    def test_delete_used_by_invoices(self, mock_db):
        """Test condizione già usata da un conto: eliminazione rifiutata."""
        condition = make_condition()
        mock_db.get.return_value = condition
        mock_db.execute.return_value = count_result(2)

        with pytest.raises(ConflictError) as exc_info:
            asyncio.run(PaymentConditionService().delete(mock_db, condition.id))

        assert exc_info.value.error_code == "PAYMENT_CONDITION_IN_USE"
        mock_db.delete.assert_not_called()

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": " ", "term_days": 0, "installments": 1},
            {"name": "Rate", "term_days": -1, "installments": 1},
            {"name": "Rate", "term_days": 30, "installments": 0},
        ],
    )
    def test_invalid_payload(self, payload):
        with pytest.raises(ValidationError):
            PaymentConditionPayload.model_validate(payload)


class TestInvoiceStatuses:
    """Test elenco stati del conto."""

    def test_list_statuses(self, mock_db):
        statuses = [make_status(slug) for slug in ("blocked", "open", "paid", "partially_paid")]
        mock_db.execute.return_value = list_result(statuses)

        result = asyncio.run(InvoiceService().list_statuses(mock_db))

        assert [s.slug for s in result] == ["blocked", "open", "paid", "partially_paid"]
