# tests/test_ledger_commands.py
"""
Tests for ledger commands.

Tests cover:
- Account creation, opening balances and deletion rules
- Confirmed balance adjustments (accounts and partners)
- Transfers (locking, funds, currency)
- Manual income/expense create/edit/cancel
"""

from decimal import Decimal
import logging

import pytest
from django.core.exceptions import PermissionDenied
from django.utils import timezone

from invoicing.commands import approve_invoice, create_invoice
from invoicing.models import Invoice
from ledger.commands import (
    adjust_account_balance,
    adjust_partner_balance,
    create_account,
    create_manual_transaction,
    delete_account,
    delete_manual_transaction,
    transfer_between_accounts,
    update_account,
    update_manual_transaction,
)
from ledger.models import Account, Customer, LedgerEntry
from reconciliation.account_balance import compute_account_balance
from reconciliation.partner_balance import compute_customer_balance, compute_supplier_balance


# =============================================================================
# Accounts
# =============================================================================

@pytest.mark.django_db
class TestCreateAccount:
    def test_opening_balance_is_posted_as_income(self, actor_context):
        result = create_account(actor_context, name="Safe", opening_balance="250.50")

        assert result.success, result.error
        account = result.data
        assert account.balance == Decimal("250.50")
        assert account.currency == "TRY"
        assert result.entry.kind == LedgerEntry.Kind.INCOME
        assert result.entry.origin == LedgerEntry.Origin.OPENING_BALANCE
        assert result.entry.target_account_id == account.pk
        assert compute_account_balance(account) == account.balance

    def test_no_opening_balance_writes_no_entry(self, actor_context):
        result = create_account(actor_context, name="Petty Cash")

        assert result.success
        assert result.entry is None
        assert not LedgerEntry.objects.exists()

    def test_partner_account_reuses_partner_by_email(self, actor_context, customer):
        result = create_account(
            actor_context,
            name="Acme current account",
            type=Account.AccountType.PARTNER,
            partner_type="customer",
            partner_email="BUYER@acme.test",
        )

        assert result.success, result.error
        assert result.data.customer_id == customer.pk
        assert Customer.objects.count() == 1

    def test_partner_account_creates_missing_partner(self, actor_context):
        result = create_account(
            actor_context,
            name="New supplier account",
            type=Account.AccountType.PARTNER,
            partner_type="supplier",
            partner_name="Bolt Co",
            partner_email="hello@bolt.test",
        )

        assert result.success, result.error
        assert result.data.supplier.name == "Bolt Co"
        assert result.data.customer_id is None

    def test_credit_card_day_must_be_in_month(self, actor_context):
        result = create_account(
            actor_context,
            name="Corporate Card",
            type=Account.AccountType.CREDIT_CARD,
            cutoff_day=32,
        )

        assert not result.success
        assert result.error_code == "validation_error"

    def test_unknown_type_rejected(self, actor_context):
        result = create_account(actor_context, name="Mystery", type="crypto")

        assert not result.success
        assert result.error_code == "validation_error"

    def test_regular_user_cannot_manage_accounts(self, user_actor_context):
        with pytest.raises(PermissionDenied):
            create_account(user_actor_context, name="Nope")


@pytest.mark.django_db
class TestUpdateAccount:
    def test_metadata_update(self, actor_context, funded_account):
        result = update_account(actor_context, funded_account.pk, name="Main Bank TRY", iban="TR00")

        assert result.success, result.error
        funded_account.refresh_from_db()
        assert funded_account.name == "Main Bank TRY"
        assert funded_account.iban == "TR00"
        assert funded_account.balance == Decimal("1000.00")

    def test_currency_is_not_editable(self, actor_context, funded_account):
        result = update_account(actor_context, funded_account.pk, currency="USD")

        assert not result.success
        assert result.error_code == "validation_error"

    def test_balance_change_needs_confirmation(self, actor_context, funded_account):
        result = update_account(actor_context, funded_account.pk, balance="900")

        assert not result.success
        funded_account.refresh_from_db()
        assert funded_account.balance == Decimal("1000.00")

    def test_confirmed_balance_change_posts_adjustment(self, actor_context, funded_account):
        result = update_account(
            actor_context, funded_account.pk, balance="900", reason="Bank fee", confirmation=True
        )

        assert result.success, result.error
        assert result.data.balance == Decimal("900.00")
        assert result.entry.kind == LedgerEntry.Kind.EXPENSE
        assert result.entry.amount == Decimal("100.00")


@pytest.mark.django_db
class TestDeleteAccount:
    def test_unused_account_can_be_deleted(self, actor_context, cash_account):
        result = delete_account(actor_context, cash_account.pk)

        assert result.success
        assert not Account.objects.filter(pk=cash_account.pk).exists()

    def test_account_with_entries_is_kept(self, actor_context, funded_account):
        result = delete_account(actor_context, funded_account.pk)

        assert not result.success
        assert result.error_code == "invalid_state_transition"
        assert Account.objects.filter(pk=funded_account.pk).exists()

    def test_cancelled_entries_still_block_deletion(self, actor_context, cash_account):
        entry = create_manual_transaction(
            actor_context, kind="income", amount="10", account_id=cash_account.pk
        ).data
        delete_manual_transaction(actor_context, entry.pk)

        result = delete_account(actor_context, cash_account.pk)

        assert not result.success
        assert result.error_code == "invalid_state_transition"


# =============================================================================
# Balance adjustments
# =============================================================================

@pytest.mark.django_db
class TestAdjustAccountBalance:
    def test_increase_posts_income(self, actor_context, cash_account):
        result = adjust_account_balance(
            actor_context, cash_account.pk, "250", reason="Counted till", confirmation=True
        )

        assert result.success, result.error
        assert result.data.balance == Decimal("250.00")
        assert result.entry.kind == LedgerEntry.Kind.INCOME
        assert result.entry.origin == LedgerEntry.Origin.ADJUSTMENT
        assert result.entry.description == "Counted till"

    def test_decrease_posts_expense(self, actor_context, funded_account):
        result = adjust_account_balance(actor_context, funded_account.pk, "400", confirmation=True)

        assert result.success, result.error
        assert result.entry.kind == LedgerEntry.Kind.EXPENSE
        assert result.entry.amount == Decimal("600.00")
        funded_account.refresh_from_db()
        assert funded_account.balance == compute_account_balance(funded_account) == Decimal("400.00")

    def test_requires_confirmation(self, actor_context, cash_account):
        result = adjust_account_balance(actor_context, cash_account.pk, "250")

        assert not result.success
        assert result.error_code == "validation_error"
        assert not LedgerEntry.objects.exists()

    def test_same_balance_rejected(self, actor_context, funded_account):
        result = adjust_account_balance(actor_context, funded_account.pk, "1000", confirmation=True)

        assert not result.success
        assert result.error_code == "validation_error"

    def test_adjustment_is_logged_as_warning(self, actor_context, cash_account, app_logs):
        adjust_account_balance(actor_context, cash_account.pk, "75", confirmation=True)

        warnings = [
            r for r in app_logs.records
            if r.levelno == logging.WARNING and r.getMessage() == "Account balance adjusted manually"
        ]
        assert len(warnings) == 1
        assert warnings[0].account_id == cash_account.pk
        assert warnings[0].new_balance == "75.00"


@pytest.mark.django_db
class TestAdjustPartnerBalance:
    def test_increase_posts_receivable_adjustment(self, actor_context, customer):
        result = adjust_partner_balance(
            actor_context, "customer", customer.pk, "150", reason="Carried over", confirmation=True
        )

        assert result.success, result.error
        assert result.data.balance == Decimal("150.00")
        assert result.entry.kind == LedgerEntry.Kind.RECEIVABLE_ADJUSTMENT
        assert result.entry.source_account_id is None and result.entry.target_account_id is None
        assert compute_customer_balance(result.data) == Decimal("150.00")

    def test_decrease_posts_income_without_account(self, actor_context, customer):
        adjust_partner_balance(actor_context, "customer", customer.pk, "150", confirmation=True)

        result = adjust_partner_balance(actor_context, "customer", customer.pk, "100", confirmation=True)

        assert result.success, result.error
        assert result.entry.kind == LedgerEntry.Kind.INCOME
        assert result.entry.amount == Decimal("50.00")
        assert result.data.balance == Decimal("100.00")
        assert compute_customer_balance(result.data) == Decimal("100.00")

    def test_supplier_decrease_posts_expense(self, actor_context, supplier):
        result = adjust_partner_balance(actor_context, "supplier", supplier.pk, "-20", confirmation=True)

        assert result.success, result.error
        assert result.entry.kind == LedgerEntry.Kind.EXPENSE
        assert result.data.balance == Decimal("-20.00")
        assert compute_supplier_balance(result.data) == Decimal("-20.00")

    def test_unknown_partner_type(self, actor_context, customer):
        result = adjust_partner_balance(actor_context, "employee", customer.pk, "10", confirmation=True)

        assert not result.success
        assert result.error_code == "validation_error"

    def test_regular_user_cannot_adjust(self, user_actor_context, customer):
        with pytest.raises(PermissionDenied):
            adjust_partner_balance(user_actor_context, "customer", customer.pk, "10", confirmation=True)


# =============================================================================
# Transfers
# =============================================================================

@pytest.mark.django_db
class TestTransfer:
    def test_transfer_moves_money(self, actor_context, funded_account, cash_account):
        result = transfer_between_accounts(
            actor_context, funded_account.pk, cash_account.pk, Decimal("300")
        )

        assert result.success, result.error
        assert result.data["source"].balance == Decimal("700.00")
        assert result.data["target"].balance == Decimal("300.00")
        transfers = LedgerEntry.objects.filter(kind=LedgerEntry.Kind.TRANSFER)
        assert transfers.count() == 1
        entry = transfers.get()
        assert entry.source_account_id == funded_account.pk
        assert entry.target_account_id == cash_account.pk
        assert entry.amount == Decimal("300.00")

    def test_insufficient_funds(self, actor_context, funded_account, cash_account):
        result = transfer_between_accounts(actor_context, funded_account.pk, cash_account.pk, "1500")

        assert not result.success
        assert result.error_code == "insufficient_funds"
        funded_account.refresh_from_db()
        cash_account.refresh_from_db()
        assert funded_account.balance == Decimal("1000.00")
        assert cash_account.balance == Decimal("0")
        assert not LedgerEntry.objects.filter(kind=LedgerEntry.Kind.TRANSFER).exists()

    def test_same_account_rejected(self, actor_context, funded_account):
        result = transfer_between_accounts(actor_context, funded_account.pk, funded_account.pk, "10")

        assert not result.success
        assert result.error_code == "validation_error"

    def test_currency_mismatch_rejected(self, actor_context, funded_account, account_factory):
        usd = account_factory(actor_context, "USD Account", currency="USD")

        result = transfer_between_accounts(actor_context, funded_account.pk, usd.pk, "10")

        assert not result.success
        assert result.error_code == "validation_error"

    def test_amount_must_be_positive(self, actor_context, funded_account, cash_account):
        result = transfer_between_accounts(actor_context, funded_account.pk, cash_account.pk, "-5")

        assert not result.success
        assert result.error_code == "validation_error"

    def test_regular_user_can_transfer(self, user_actor_context, funded_account, cash_account):
        result = transfer_between_accounts(user_actor_context, funded_account.pk, cash_account.pk, "10")

        assert result.success, result.error


# =============================================================================
# Manual transactions
# =============================================================================

@pytest.mark.django_db
class TestManualTransactions:
    def test_income_credits_account(self, actor_context, cash_account):
        result = create_manual_transaction(
            actor_context, kind="income", amount="200", account_id=cash_account.pk, description="Tips"
        )

        assert result.success, result.error
        cash_account.refresh_from_db()
        assert cash_account.balance == Decimal("200.00")
        assert result.data.origin == LedgerEntry.Origin.MANUAL
        assert result.data.target_account_id == cash_account.pk

    def test_expense_with_supplier(self, actor_context, funded_account, supplier):
        result = create_manual_transaction(
            actor_context,
            kind="expense",
            amount="100",
            account_id=funded_account.pk,
            supplier_id=supplier.pk,
        )

        assert result.success, result.error
        funded_account.refresh_from_db()
        supplier.refresh_from_db()
        assert funded_account.balance == Decimal("900.00")
        assert supplier.balance == Decimal("-100.00")
        assert compute_supplier_balance(supplier) == supplier.balance

    def test_transfer_kind_rejected(self, actor_context, cash_account):
        result = create_manual_transaction(actor_context, kind="transfer", amount="5", account_id=cash_account.pk)

        assert not result.success
        assert result.error_code == "validation_error"

    def test_needs_account_or_partner(self, actor_context):
        result = create_manual_transaction(actor_context, kind="income", amount="5")

        assert not result.success
        assert result.error_code == "validation_error"

    def test_customer_and_supplier_are_exclusive(self, actor_context, customer, supplier):
        result = create_manual_transaction(
            actor_context, kind="income", amount="5", customer_id=customer.pk, supplier_id=supplier.pk
        )

        assert not result.success
        assert result.error_code == "validation_error"

    def test_edit_amount_recomputes_account(self, actor_context, cash_account):
        entry = create_manual_transaction(
            actor_context, kind="income", amount="200", account_id=cash_account.pk
        ).data

        result = update_manual_transaction(actor_context, entry.pk, amount="150")

        assert result.success, result.error
        cash_account.refresh_from_db()
        assert cash_account.balance == Decimal("150.00")

    def test_moving_entry_recomputes_both_accounts(self, actor_context, cash_account, funded_account):
        entry = create_manual_transaction(
            actor_context, kind="income", amount="200", account_id=cash_account.pk
        ).data

        result = update_manual_transaction(actor_context, entry.pk, account_id=funded_account.pk)

        assert result.success, result.error
        cash_account.refresh_from_db()
        funded_account.refresh_from_db()
        assert cash_account.balance == Decimal("0.00")
        assert funded_account.balance == Decimal("1200.00")

    def test_switching_partner_recomputes_both(self, actor_context, cash_account, customer):
        other = Customer.objects.create(company=customer.company, name="Other Buyer")
        entry = create_manual_transaction(
            actor_context, kind="income", amount="80", account_id=cash_account.pk, customer_id=customer.pk
        ).data

        result = update_manual_transaction(actor_context, entry.pk, customer_id=other.pk)

        assert result.success, result.error
        customer.refresh_from_db()
        other.refresh_from_db()
        assert customer.balance == Decimal("0.00")
        assert other.balance == Decimal("-80.00")

    def test_cancel_keeps_entry_for_audit(self, actor_context, cash_account):
        entry = create_manual_transaction(
            actor_context, kind="income", amount="200", account_id=cash_account.pk
        ).data

        result = delete_manual_transaction(actor_context, entry.pk)

        assert result.success, result.error
        entry.refresh_from_db()
        cash_account.refresh_from_db()
        assert entry.cancelled
        assert entry.cancelled_by_id == actor_context.user.pk
        assert cash_account.balance == Decimal("0.00")

        again = delete_manual_transaction(actor_context, entry.pk)
        assert not again.success
        assert again.error_code == "invalid_state_transition"

    def test_invoice_entries_are_not_editable(self, actor_context, customer, product):
        invoice = create_invoice(
            actor_context,
            type=Invoice.Type.SALE,
            partner_id=customer.pk,
            lines=[{"product_id": product.pk, "quantity": "1"}],
        ).data
        accrual = approve_invoice(actor_context, invoice.pk).entry

        result = update_manual_transaction(actor_context, accrual.pk, amount="1")

        assert not result.success
        assert result.error_code == "invalid_state_transition"

    def test_regular_user_cannot_edit(self, actor_context, user_actor_context, cash_account):
        entry = create_manual_transaction(
            actor_context, kind="income", amount="20", account_id=cash_account.pk
        ).data

        with pytest.raises(PermissionDenied):
            delete_manual_transaction(user_actor_context, entry.pk)


def consistency_failures(app_logs):
    return [r for r in app_logs.records if getattr(r, "error_code", None) == "consistency_failure"]


@pytest.mark.django_db
class TestManualTransactionPartners:
    def test_expense_cannot_reference_customer(self, actor_context, funded_account, customer):
        result = create_manual_transaction(
            actor_context,
            kind="expense",
            amount="100",
            account_id=funded_account.pk,
            customer_id=customer.pk,
        )

        assert not result.success
        assert result.error_code == "validation_error"
        customer.refresh_from_db()
        funded_account.refresh_from_db()
        assert customer.balance == Decimal("0")
        assert funded_account.balance == Decimal("1000.00")

    def test_income_cannot_reference_supplier(self, actor_context, cash_account, supplier):
        result = create_manual_transaction(
            actor_context,
            kind="income",
            amount="100",
            account_id=cash_account.pk,
            supplier_id=supplier.pk,
        )

        assert not result.success
        assert result.error_code == "validation_error"

    def test_edit_cannot_cross_kind_and_partner(self, actor_context, cash_account, customer):
        entry = create_manual_transaction(
            actor_context, kind="income", amount="80", account_id=cash_account.pk, customer_id=customer.pk
        ).data

        result = update_manual_transaction(actor_context, entry.pk, kind="expense")

        assert not result.success
        assert result.error_code == "validation_error"
        entry.refresh_from_db()
        customer.refresh_from_db()
        assert entry.kind == LedgerEntry.Kind.INCOME
        assert customer.balance == Decimal("-80.00")

    def test_replay_ignores_crossed_entries(self, company, cash_account, customer, supplier):
        LedgerEntry.objects.create(
            company=company,
            kind=LedgerEntry.Kind.EXPENSE,
            amount=Decimal("100.00"),
            occurred_at=timezone.now(),
            source_account=cash_account,
            customer=customer,
        )
        LedgerEntry.objects.create(
            company=company,
            kind=LedgerEntry.Kind.INCOME,
            amount=Decimal("30.00"),
            occurred_at=timezone.now(),
            target_account=cash_account,
            supplier=supplier,
        )

        assert compute_customer_balance(customer) == Decimal("0.00")
        assert compute_supplier_balance(supplier) == Decimal("0.00")
        assert compute_account_balance(cash_account) == Decimal("-70.00")


@pytest.mark.django_db
class TestManualTransactionCaches:
    def test_edit_moves_caches_without_drift(self, actor_context, cash_account, funded_account, customer, app_logs):
        entry = create_manual_transaction(
            actor_context, kind="income", amount="200", account_id=cash_account.pk, customer_id=customer.pk
        ).data

        result = update_manual_transaction(
            actor_context, entry.pk, amount="150", account_id=funded_account.pk
        )

        assert result.success, result.error
        for obj in (cash_account, funded_account, customer):
            obj.refresh_from_db()
        assert cash_account.balance == Decimal("0.00")
        assert funded_account.balance == Decimal("1150.00")
        assert customer.balance == Decimal("-150.00")
        assert consistency_failures(app_logs) == []

    def test_cancel_moves_caches_without_drift(self, actor_context, cash_account, customer, app_logs):
        entry = create_manual_transaction(
            actor_context, kind="income", amount="200", account_id=cash_account.pk, customer_id=customer.pk
        ).data

        result = delete_manual_transaction(actor_context, entry.pk)

        assert result.success, result.error
        cash_account.refresh_from_db()
        customer.refresh_from_db()
        assert cash_account.balance == Decimal("0.00")
        assert customer.balance == Decimal("0.00")
        assert consistency_failures(app_logs) == []
