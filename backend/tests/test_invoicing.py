# tests/test_invoicing.py
"""
Tests for the invoice lifecycle.

Tests cover:
- Approval moves stock and posts one accrual (sale and purchase)
- Insufficient stock rolls the whole approval back
- Collection and payment against posted invoices
- Cancel/delete reverse every effect
- Draft-only editing and status override
"""

from decimal import Decimal

import pytest
from django.core.exceptions import PermissionDenied
from django.db import connection

from inventory.models import StockMovement
from invoicing.commands import (
    approve_invoice,
    cancel_invoice,
    collect_on_invoice,
    create_invoice,
    delete_invoice,
    pay_invoice,
    set_invoice_status,
    update_invoice,
)
from invoicing.models import Invoice
from ledger.models import LedgerEntry
from reconciliation.account_balance import compute_account_balance
from reconciliation.models import ReconciliationRun
from reconciliation.partner_balance import compute_customer_balance, compute_supplier_balance


def make_sale(actor, customer, product, quantity="10", **line):
    result = create_invoice(
        actor,
        type=Invoice.Type.SALE,
        partner_id=customer.pk,
        lines=[{"product_id": product.pk, "quantity": quantity, **line}],
    )
    assert result.success, result.error
    return result.data


def make_purchase(actor, supplier, product, quantity="10", unit_price="40.00"):
    result = create_invoice(
        actor,
        type=Invoice.Type.PURCHASE,
        partner_id=supplier.pk,
        lines=[{"product_id": product.pk, "quantity": quantity, "unit_price": unit_price}],
    )
    assert result.success, result.error
    return result.data


def refresh(*objs):
    for obj in objs:
        obj.refresh_from_db()


# =============================================================================
# Draft invoices
# =============================================================================

@pytest.mark.django_db
class TestCreateInvoice:
    def test_draft_has_no_effects(self, actor_context, customer, product):
        invoice = make_sale(actor_context, customer, product)

        refresh(product, customer)
        assert invoice.status == Invoice.Status.DRAFT
        assert invoice.total_amount == Decimal("600.00")
        assert invoice.currency == "TRY"
        assert product.quantity == Decimal("100")
        assert customer.balance == Decimal("0")
        assert not LedgerEntry.objects.filter(related_invoice=invoice).exists()

    def test_numbers_are_assigned_per_type(self, actor_context, customer, supplier, product):
        first = make_sale(actor_context, customer, product)
        second = make_sale(actor_context, customer, product)
        purchase = make_purchase(actor_context, supplier, product)

        assert first.invoice_number == "S-000001"
        assert second.invoice_number == "S-000002"
        assert purchase.invoice_number == "P-000001"

    def test_duplicate_number_rejected(self, actor_context, customer, product):
        make_sale(actor_context, customer, product)
        result = create_invoice(
            actor_context,
            type=Invoice.Type.SALE,
            partner_id=customer.pk,
            invoice_number="S-000001",
            lines=[{"product_id": product.pk, "quantity": "1"}],
        )
        assert not result.success
        assert result.error_code == "validation_error"

    def test_line_needs_positive_quantity(self, actor_context, customer, product):
        result = create_invoice(
            actor_context,
            type=Invoice.Type.SALE,
            partner_id=customer.pk,
            lines=[{"product_id": product.pk, "quantity": "0"}],
        )
        assert not result.success
        assert result.error_code == "validation_error"
        assert not Invoice.objects.exists()

    def test_unknown_customer_not_found(self, actor_context, customer, product):
        result = create_invoice(
            actor_context,
            type=Invoice.Type.SALE,
            partner_id=customer.pk + 1000,
            lines=[{"product_id": product.pk, "quantity": "1"}],
        )
        assert not result.success
        assert result.error_code == "not_found"

    def test_discount_and_vat_totals(self, actor_context, customer, product):
        invoice = make_sale(
            actor_context, customer, product, discount_percent="10", vat_percent="20"
        )
        assert invoice.subtotal == Decimal("540.00")
        assert invoice.vat_total == Decimal("108.00")
        assert invoice.total_amount == Decimal("648.00")


@pytest.mark.django_db
class TestUpdateInvoice:
    def test_draft_lines_can_be_replaced(self, actor_context, customer, product):
        invoice = make_sale(actor_context, customer, product)

        result = update_invoice(
            actor_context,
            invoice.pk,
            lines=[{"product_id": product.pk, "quantity": "2", "unit_price": "25.00"}],
            notes="Revised",
        )

        assert result.success, result.error
        invoice.refresh_from_db()
        assert invoice.total_amount == Decimal("50.00")
        assert invoice.notes == "Revised"
        assert invoice.lines.count() == 1

    def test_approved_invoice_is_read_only(self, actor_context, customer, product):
        invoice = make_sale(actor_context, customer, product)
        approve_invoice(actor_context, invoice.pk)

        result = update_invoice(actor_context, invoice.pk, notes="Too late")

        assert not result.success
        assert result.error_code == "invalid_state_transition"


# =============================================================================
# Approval
# =============================================================================

@pytest.mark.django_db
class TestApproveInvoice:
    def test_sale_approval_moves_stock_and_accrues(self, actor_context, customer, product):
        invoice = make_sale(actor_context, customer, product)

        result = approve_invoice(actor_context, invoice.pk)

        assert result.success, result.error
        refresh(invoice, product, customer)
        assert invoice.status == Invoice.Status.APPROVED
        assert invoice.approved_by_id == actor_context.user.pk
        assert product.quantity == Decimal("90")

        accruals = LedgerEntry.objects.filter(related_invoice=invoice, kind=LedgerEntry.Kind.INVOICE_ACCRUAL)
        assert accruals.count() == 1
        accrual = accruals.get()
        assert accrual.amount == Decimal("600.00")
        assert accrual.customer_id == customer.pk
        assert accrual.source_account_id is None and accrual.target_account_id is None

        assert customer.balance == Decimal("600.00")
        assert compute_customer_balance(customer) == customer.balance

        movement = StockMovement.objects.get(invoice=invoice)
        assert movement.direction == StockMovement.Direction.OUT
        assert movement.quantity == Decimal("10")

    def test_insufficient_stock_rolls_back(self, actor_context, customer, product):
        invoice = make_sale(actor_context, customer, product, quantity="150")

        result = approve_invoice(actor_context, invoice.pk)

        assert not result.success
        assert result.error_code == "insufficient_stock"
        refresh(invoice, product, customer)
        assert invoice.status == Invoice.Status.DRAFT
        assert product.quantity == Decimal("100")
        assert customer.balance == Decimal("0")
        assert not StockMovement.objects.exists()
        assert not LedgerEntry.objects.filter(related_invoice=invoice).exists()

    def test_second_approval_is_rejected(self, actor_context, customer, product):
        invoice = make_sale(actor_context, customer, product)

        first = approve_invoice(actor_context, invoice.pk)
        second = approve_invoice(actor_context, invoice.pk)

        assert first.success
        assert not second.success
        assert second.error_code == "invalid_state_transition"
        product.refresh_from_db()
        assert product.quantity == Decimal("90")
        assert StockMovement.objects.filter(invoice=invoice).count() == 1
        assert LedgerEntry.objects.filter(related_invoice=invoice).count() == 1

    def test_purchase_approval_adds_stock(self, actor_context, supplier, product):
        invoice = make_purchase(actor_context, supplier, product, quantity="25")

        result = approve_invoice(actor_context, invoice.pk)

        assert result.success, result.error
        refresh(product, supplier)
        assert product.quantity == Decimal("125")
        assert supplier.balance == Decimal("1000.00")
        assert compute_supplier_balance(supplier) == supplier.balance

    def test_untracked_product_still_records_movement(self, actor_context, customer, service_product):
        invoice = make_sale(actor_context, customer, service_product, quantity="3")

        result = approve_invoice(actor_context, invoice.pk)

        assert result.success, result.error
        service_product.refresh_from_db()
        assert service_product.quantity == Decimal("-3")
        assert StockMovement.objects.filter(invoice=invoice, product=service_product).exists()

    def test_regular_user_cannot_approve(self, user_actor_context, actor_context, customer, product):
        invoice = make_sale(actor_context, customer, product)

        with pytest.raises(PermissionDenied):
            approve_invoice(user_actor_context, invoice.pk)

        invoice.refresh_from_db()
        assert invoice.status == Invoice.Status.DRAFT


@pytest.mark.django_db
class TestApprovalClaim:
    def test_losing_claim_is_rejected_without_moving_stock(
        self, monkeypatch, actor_context, customer, product
    ):
        invoice = make_sale(actor_context, customer, product)
        # Another approval committed after this one read the draft.
        Invoice.objects.filter(pk=invoice.pk).update(status=Invoice.Status.APPROVED)
        monkeypatch.setattr("invoicing.commands.can_approve_invoice", lambda inv: (True, ""))

        result = approve_invoice(actor_context, invoice.pk)

        assert not result.success
        assert result.error_code == "invalid_state_transition"
        assert "approved concurrently" in result.error
        product.refresh_from_db()
        assert product.quantity == Decimal("100")
        assert not StockMovement.objects.filter(invoice=invoice).exists()
        assert not LedgerEntry.objects.filter(related_invoice=invoice).exists()


@pytest.mark.django_db(transaction=True)
class TestConcurrentApproval:
    def test_only_one_concurrent_approval_wins(self, actor_context, customer, product):
        if connection.vendor != "postgresql":
            pytest.skip("Row locks need PostgreSQL")

        from concurrent.futures import ThreadPoolExecutor
        from threading import Barrier

        invoice = make_sale(actor_context, customer, product)
        barrier = Barrier(2)

        def approve():
            try:
                barrier.wait()
                return approve_invoice(actor_context, invoice.pk)
            finally:
                connection.close()

        with ThreadPoolExecutor(max_workers=2) as pool:
            results = [f.result() for f in [pool.submit(approve), pool.submit(approve)]]

        assert sorted(r.success for r in results) == [False, True]
        loser = next(r for r in results if not r.success)
        assert loser.error_code == "invalid_state_transition"
        product.refresh_from_db()
        assert product.quantity == Decimal("90")
        assert StockMovement.objects.filter(invoice=invoice).count() == 1


# =============================================================================
# Collection / payment
# =============================================================================

@pytest.mark.django_db
class TestCollectOnInvoice:
    def test_full_collection_marks_paid(self, actor_context, customer, product, cash_account):
        invoice = make_sale(actor_context, customer, product)
        approve_invoice(actor_context, invoice.pk)

        result = collect_on_invoice(actor_context, invoice.pk, Decimal("600"), cash_account.pk)

        assert result.success, result.error
        refresh(invoice, customer, cash_account)
        assert invoice.status == Invoice.Status.PAID
        assert invoice.paid_amount == Decimal("600.00")
        assert cash_account.balance == Decimal("600.00")
        assert customer.balance == Decimal("0.00")
        assert result.entry.kind == LedgerEntry.Kind.INCOME
        assert result.entry.target_account_id == cash_account.pk
        assert result.entry.customer_id == customer.pk
        assert compute_account_balance(cash_account) == cash_account.balance
        assert compute_customer_balance(customer) == customer.balance

    def test_partial_collection_keeps_approved(self, actor_context, customer, product, cash_account):
        invoice = make_sale(actor_context, customer, product)
        approve_invoice(actor_context, invoice.pk)

        collect_on_invoice(actor_context, invoice.pk, "250", cash_account.pk)

        refresh(invoice, customer)
        assert invoice.status == Invoice.Status.APPROVED
        assert invoice.outstanding == Decimal("350.00")
        assert customer.balance == Decimal("350.00")

    def test_cannot_collect_more_than_outstanding(self, actor_context, customer, product, cash_account):
        invoice = make_sale(actor_context, customer, product)
        approve_invoice(actor_context, invoice.pk)

        result = collect_on_invoice(actor_context, invoice.pk, "600.01", cash_account.pk)

        assert not result.success
        assert result.error_code == "invalid_state_transition"
        cash_account.refresh_from_db()
        assert cash_account.balance == Decimal("0")

    def test_cannot_collect_on_draft(self, actor_context, customer, product, cash_account):
        invoice = make_sale(actor_context, customer, product)

        result = collect_on_invoice(actor_context, invoice.pk, "100", cash_account.pk)

        assert not result.success
        assert result.error_code == "invalid_state_transition"

    def test_cannot_collect_on_paid_invoice(self, actor_context, customer, product, cash_account):
        invoice = make_sale(actor_context, customer, product)
        approve_invoice(actor_context, invoice.pk)
        collect_on_invoice(actor_context, invoice.pk, "600", cash_account.pk)

        result = collect_on_invoice(actor_context, invoice.pk, "1", cash_account.pk)

        assert not result.success
        assert result.error_code == "invalid_state_transition"

    def test_collect_is_for_sale_invoices(self, actor_context, supplier, product, funded_account):
        invoice = make_purchase(actor_context, supplier, product)
        approve_invoice(actor_context, invoice.pk)

        result = collect_on_invoice(actor_context, invoice.pk, "100", funded_account.pk)

        assert not result.success
        assert result.error_code == "invalid_state_transition"

    def test_non_positive_amount_rejected(self, actor_context, customer, product, cash_account):
        invoice = make_sale(actor_context, customer, product)
        approve_invoice(actor_context, invoice.pk)

        result = collect_on_invoice(actor_context, invoice.pk, "0", cash_account.pk)

        assert not result.success
        assert result.error_code == "validation_error"

    def test_regular_user_can_collect(self, actor_context, user_actor_context, customer, product, cash_account):
        invoice = make_sale(actor_context, customer, product)
        approve_invoice(actor_context, invoice.pk)

        result = collect_on_invoice(user_actor_context, invoice.pk, "100", cash_account.pk)

        assert result.success, result.error


@pytest.mark.django_db
class TestPayInvoice:
    def test_payment_debits_account_and_supplier(self, actor_context, supplier, product, funded_account):
        invoice = make_purchase(actor_context, supplier, product)
        approve_invoice(actor_context, invoice.pk)

        result = pay_invoice(actor_context, invoice.pk, "400", funded_account.pk)

        assert result.success, result.error
        refresh(invoice, supplier, funded_account)
        assert invoice.status == Invoice.Status.PAID
        assert funded_account.balance == Decimal("600.00")
        assert supplier.balance == Decimal("0.00")
        assert result.entry.kind == LedgerEntry.Kind.EXPENSE
        assert result.entry.source_account_id == funded_account.pk

    def test_payment_needs_funds(self, actor_context, supplier, product, cash_account):
        invoice = make_purchase(actor_context, supplier, product)
        approve_invoice(actor_context, invoice.pk)

        result = pay_invoice(actor_context, invoice.pk, "400", cash_account.pk)

        assert not result.success
        assert result.error_code == "insufficient_funds"
        invoice.refresh_from_db()
        assert invoice.paid_amount == Decimal("0")


# =============================================================================
# Cancel / delete
# =============================================================================

@pytest.mark.django_db
class TestCancelInvoice:
    def test_cancel_reverses_every_effect(self, actor_context, customer, product, cash_account):
        invoice = make_sale(actor_context, customer, product)
        approve_invoice(actor_context, invoice.pk)
        collect_on_invoice(actor_context, invoice.pk, "200", cash_account.pk)

        result = cancel_invoice(actor_context, invoice.pk)

        assert result.success, result.error
        refresh(invoice, product, customer, cash_account)
        assert invoice.status == Invoice.Status.CANCELED
        assert product.quantity == Decimal("100")
        assert customer.balance == Decimal("0.00")
        assert cash_account.balance == Decimal("0.00")
        assert not StockMovement.objects.filter(invoice=invoice).exists()
        assert not LedgerEntry.objects.filter(related_invoice=invoice, cancelled=False).exists()
        # Cancelled entries are kept for audit
        assert LedgerEntry.objects.filter(related_invoice=invoice, cancelled=True).count() == 2

    def test_cancel_raises_no_consistency_alarm(
        self, actor_context, customer, product, cash_account, app_logs
    ):
        invoice = make_sale(actor_context, customer, product)
        approve_invoice(actor_context, invoice.pk)
        collect_on_invoice(actor_context, invoice.pk, "200", cash_account.pk)

        result = cancel_invoice(actor_context, invoice.pk)

        assert result.success, result.error
        assert not [
            r for r in app_logs.records
            if getattr(r, "error_code", None) == "consistency_failure"
        ]
        refresh(customer, cash_account)
        assert customer.balance == compute_customer_balance(customer) == Decimal("0.00")
        assert cash_account.balance == compute_account_balance(cash_account) == Decimal("0.00")

    def test_cancel_purchase_clears_payable(self, actor_context, supplier, product, funded_account):
        invoice = make_purchase(actor_context, supplier, product)
        approve_invoice(actor_context, invoice.pk)
        pay_invoice(actor_context, invoice.pk, "150", funded_account.pk)

        result = cancel_invoice(actor_context, invoice.pk)

        assert result.success, result.error
        refresh(supplier, funded_account, product)
        assert supplier.balance == Decimal("0.00")
        assert funded_account.balance == Decimal("1000.00")
        assert product.quantity == Decimal("100")

    def test_cancel_draft_has_nothing_to_reverse(self, actor_context, customer, product):
        invoice = make_sale(actor_context, customer, product)

        result = cancel_invoice(actor_context, invoice.pk)

        assert result.success
        invoice.refresh_from_db()
        assert invoice.status == Invoice.Status.CANCELED

    def test_cannot_cancel_twice(self, actor_context, customer, product):
        invoice = make_sale(actor_context, customer, product)
        approve_invoice(actor_context, invoice.pk)
        cancel_invoice(actor_context, invoice.pk)

        result = cancel_invoice(actor_context, invoice.pk)

        assert not result.success
        assert result.error_code == "invalid_state_transition"

    def test_cannot_reverse_purchase_whose_stock_was_sold(
        self, actor_context, customer, supplier, product
    ):
        purchase = make_purchase(actor_context, supplier, product, quantity="20")
        approve_invoice(actor_context, purchase.pk)
        sale = make_sale(actor_context, customer, product, quantity="110")
        approve_invoice(actor_context, sale.pk)

        result = cancel_invoice(actor_context, purchase.pk)

        assert not result.success
        assert result.error_code == "insufficient_stock"
        refresh(purchase, product, supplier)
        assert purchase.status == Invoice.Status.APPROVED
        assert product.quantity == Decimal("10")
        assert supplier.balance == Decimal("800.00")


@pytest.mark.django_db
class TestDeleteInvoice:
    def test_delete_draft(self, actor_context, customer, product):
        invoice = make_sale(actor_context, customer, product)

        result = delete_invoice(actor_context, invoice.pk)

        assert result.success
        assert result.data["invoice_number"] == invoice.invoice_number
        assert not Invoice.objects.filter(pk=invoice.pk).exists()

    def test_approve_then_delete_restores_everything(self, actor_context, customer, product):
        invoice = make_sale(actor_context, customer, product)
        approve_invoice(actor_context, invoice.pk)

        result = delete_invoice(actor_context, invoice.pk)

        assert result.success, result.error
        refresh(product, customer)
        assert product.quantity == Decimal("100")
        assert customer.balance == Decimal("0.00")
        assert not Invoice.objects.filter(pk=invoice.pk).exists()
        assert not StockMovement.objects.exists()
        assert not LedgerEntry.objects.filter(
            kind=LedgerEntry.Kind.INVOICE_ACCRUAL, cancelled=False
        ).exists()

    def test_regular_user_cannot_delete_posted_invoice(
        self, actor_context, user_actor_context, customer, product
    ):
        invoice = make_sale(actor_context, customer, product)
        approve_invoice(actor_context, invoice.pk)

        with pytest.raises(PermissionDenied):
            delete_invoice(user_actor_context, invoice.pk)

        product.refresh_from_db()
        assert product.quantity == Decimal("90")
        assert Invoice.objects.filter(pk=invoice.pk).exists()


# =============================================================================
# Status override
# =============================================================================

@pytest.mark.django_db
class TestSetInvoiceStatus:
    def test_override_triggers_company_reconciliation(self, admin_actor_context, actor_context, customer, product):
        invoice = make_sale(actor_context, customer, product)
        approve_invoice(actor_context, invoice.pk)

        result = set_invoice_status(admin_actor_context, invoice.pk, Invoice.Status.CANCELED)

        assert result.success, result.error
        assert result.data.status == Invoice.Status.CANCELED
        customer.refresh_from_db()
        assert customer.balance == Decimal("0.00")

        run = ReconciliationRun.objects.get(company=actor_context.company)
        assert run.trigger == ReconciliationRun.Trigger.STATUS_OVERRIDE
        assert run.mismatch_count == 1
        assert run.requested_by_id == admin_actor_context.user.pk

    def test_override_is_admin_only(self, user_actor_context, actor_context, customer, product):
        invoice = make_sale(actor_context, customer, product)

        with pytest.raises(PermissionDenied):
            set_invoice_status(user_actor_context, invoice.pk, Invoice.Status.PAID)

    def test_unknown_status_rejected(self, admin_actor_context, actor_context, customer, product):
        invoice = make_sale(actor_context, customer, product)

        result = set_invoice_status(admin_actor_context, invoice.pk, "archived")

        assert not result.success
        assert result.error_code == "validation_error"
