# tests/test_orders.py
"""
Tests for purchase orders and their conversion into draft invoices.
"""

from decimal import Decimal

import pytest

from invoicing.commands import approve_invoice, delete_invoice
from invoicing.models import Invoice, PurchaseOrder
from invoicing.order_commands import (
    convert_order_to_invoice,
    create_purchase_order,
    delete_purchase_order,
    update_purchase_order,
)
from ledger.models import LedgerEntry


def make_order(actor, supplier, product, quantity="10", **line):
    result = create_purchase_order(
        actor,
        supplier_id=supplier.pk,
        lines=[{"product_id": product.pk, "quantity": quantity, **line}],
    )
    assert result.success, result.error
    return result.data


@pytest.mark.django_db
class TestCreatePurchaseOrder:
    def test_order_has_no_stock_or_ledger_effect(self, actor_context, supplier, product):
        order = make_order(actor_context, supplier, product)

        assert order.status == PurchaseOrder.Status.OPEN
        assert order.order_number == "PO-000001"
        assert order.total_amount == Decimal("400.00")
        assert order.lines.get().unit_price == Decimal("40.00")
        product.refresh_from_db()
        supplier.refresh_from_db()
        assert product.quantity == Decimal("100")
        assert supplier.balance == Decimal("0")
        assert not LedgerEntry.objects.exists()

    def test_duplicate_number_rejected(self, actor_context, supplier, product):
        make_order(actor_context, supplier, product)

        result = create_purchase_order(
            actor_context,
            supplier_id=supplier.pk,
            lines=[{"product_id": product.pk, "quantity": "1"}],
            order_number="PO-000001",
        )

        assert not result.success
        assert result.error_code == "validation_error"

    def test_unknown_supplier_not_found(self, actor_context, supplier, product):
        result = create_purchase_order(
            actor_context,
            supplier_id=supplier.pk + 1000,
            lines=[{"product_id": product.pk, "quantity": "1"}],
        )

        assert not result.success
        assert result.error_code == "not_found"

    def test_needs_lines(self, actor_context, supplier):
        result = create_purchase_order(actor_context, supplier_id=supplier.pk, lines=[])

        assert not result.success
        assert result.error_code == "validation_error"


@pytest.mark.django_db
class TestUpdatePurchaseOrder:
    def test_replace_lines(self, actor_context, supplier, product):
        order = make_order(actor_context, supplier, product)

        result = update_purchase_order(
            actor_context,
            order.pk,
            lines=[{"product_id": product.pk, "quantity": "5", "unit_price": "38.00"}],
            notes="Rush",
        )

        assert result.success, result.error
        order.refresh_from_db()
        assert order.total_amount == Decimal("190.00")
        assert order.notes == "Rush"
        assert order.lines.count() == 1

    def test_unknown_field_rejected(self, actor_context, supplier, product):
        order = make_order(actor_context, supplier, product)

        result = update_purchase_order(actor_context, order.pk, status="delivered")

        assert not result.success
        assert result.error_code == "validation_error"


@pytest.mark.django_db
class TestConvertOrderToInvoice:
    def test_conversion_writes_draft_purchase_invoice(self, actor_context, supplier, product):
        order = make_order(actor_context, supplier, product, discount_percent="10")

        result = convert_order_to_invoice(actor_context, order.pk)

        assert result.success, result.error
        invoice = result.data
        assert invoice.type == Invoice.Type.PURCHASE
        assert invoice.status == Invoice.Status.DRAFT
        assert invoice.supplier_id == supplier.pk
        assert invoice.total_amount == order.total_amount == Decimal("360.00")
        line = invoice.lines.get()
        assert line.quantity == Decimal("10")
        assert line.discount_percent == Decimal("10")

        order.refresh_from_db()
        assert order.status == PurchaseOrder.Status.DELIVERED
        assert order.invoice_id == invoice.pk
        product.refresh_from_db()
        assert product.quantity == Decimal("100")

    def test_approving_converted_invoice_moves_stock(self, actor_context, supplier, product):
        order = make_order(actor_context, supplier, product)
        invoice = convert_order_to_invoice(actor_context, order.pk).data

        result = approve_invoice(actor_context, invoice.pk)

        assert result.success, result.error
        product.refresh_from_db()
        supplier.refresh_from_db()
        assert product.quantity == Decimal("110")
        assert supplier.balance == Decimal("400.00")

    def test_cannot_convert_twice(self, actor_context, supplier, product):
        order = make_order(actor_context, supplier, product)
        convert_order_to_invoice(actor_context, order.pk)

        result = convert_order_to_invoice(actor_context, order.pk)

        assert not result.success
        assert result.error_code == "invalid_state_transition"
        assert Invoice.objects.count() == 1

    def test_converted_order_is_not_editable(self, actor_context, supplier, product):
        order = make_order(actor_context, supplier, product)
        convert_order_to_invoice(actor_context, order.pk)

        result = update_purchase_order(actor_context, order.pk, notes="late")

        assert not result.success
        assert result.error_code == "invalid_state_transition"

    def test_deleting_draft_invoice_unlinks_order(self, actor_context, supplier, product):
        order = make_order(actor_context, supplier, product)
        invoice = convert_order_to_invoice(actor_context, order.pk).data

        delete_invoice(actor_context, invoice.pk)

        order.refresh_from_db()
        assert order.invoice_id is None

    def test_foreign_order_not_found(self, actor_context, second_actor_context, supplier, product):
        order = make_order(actor_context, supplier, product)

        result = convert_order_to_invoice(second_actor_context, order.pk)

        assert result.error_code == "not_found"


@pytest.mark.django_db
class TestDeletePurchaseOrder:
    def test_delete_keeps_converted_invoice(self, actor_context, supplier, product):
        order = make_order(actor_context, supplier, product)
        invoice = convert_order_to_invoice(actor_context, order.pk).data

        result = delete_purchase_order(actor_context, order.pk)

        assert result.success, result.error
        assert not PurchaseOrder.objects.filter(pk=order.pk).exists()
        assert Invoice.objects.filter(pk=invoice.pk).exists()

