# reconciliation/partner_balance.py
"""
Partner Balance Reconciler.

Customer balance = sum of approved/paid sale invoice totals
                   - income entries referencing the customer
                   + receivable_adjustment entries referencing the customer

Supplier balance = sum of approved/paid purchase invoice totals
                   - expense entries referencing the supplier
                   + receivable_adjustment entries referencing the supplier

invoice_accrual entries are skipped: the accrual and the invoice total are
the same fact and are counted once, through the invoice.
"""

from decimal import Decimal
import logging

from django.db import transaction
from django.db.models import Sum

from invoicing.models import Invoice
from ledger.effects import INVOICE_COUNTED_STATUSES, partner_delta
from ledger.models import Customer, LedgerEntry, Supplier
from ledger.money import quantize
from reconciliation.account_balance import report_drift
from reconciliation.results import BalanceCheck

logger = logging.getLogger(__name__)


def _invoiced_total(partner, invoice_type: str) -> Decimal:
    lookup = {partner.partner_type: partner}
    total = Invoice.objects.filter(
        company_id=partner.company_id,
        type=invoice_type,
        status__in=INVOICE_COUNTED_STATUSES,
        **lookup,
    ).aggregate(total=Sum("total_amount"))["total"]
    return total or Decimal("0")


def _entries_total(partner) -> Decimal:
    lookup = {partner.partner_type: partner}
    rows = LedgerEntry.objects.filter(
        company_id=partner.company_id,
        cancelled=False,
        **lookup,
    ).values_list("kind", "amount")
    return sum(
        (partner_delta(kind, amount, partner.partner_type) for kind, amount in rows),
        Decimal("0"),
    )


def compute_customer_balance(customer: Customer) -> Decimal:
    return quantize(_invoiced_total(customer, Invoice.Type.SALE) + _entries_total(customer))


def compute_supplier_balance(supplier: Supplier) -> Decimal:
    return quantize(_invoiced_total(supplier, Invoice.Type.PURCHASE) + _entries_total(supplier))


def _recompute(model, compute, pk, dry_run: bool) -> BalanceCheck:
    with transaction.atomic():
        partner = model.objects.select_for_update().get(pk=pk)
        computed = compute(partner)
        check = BalanceCheck(
            document=model.partner_type,
            pk=partner.pk,
            name=partner.name,
            cached=partner.balance,
            computed=computed,
        )
        report_drift(check, partner.company_id)

        if check.changed and not dry_run:
            model.objects.filter(pk=partner.pk).update(balance=computed)

    return check


def recompute_customer_balance(customer_id, *, dry_run: bool = False) -> BalanceCheck:
    return _recompute(Customer, compute_customer_balance, customer_id, dry_run)


def recompute_supplier_balance(supplier_id, *, dry_run: bool = False) -> BalanceCheck:
    return _recompute(Supplier, compute_supplier_balance, supplier_id, dry_run)


def recompute_partner_balance(partner, *, dry_run: bool = False) -> BalanceCheck:
    if isinstance(partner, Customer):
        return recompute_customer_balance(partner.pk, dry_run=dry_run)
    return recompute_supplier_balance(partner.pk, dry_run=dry_run)


def recompute_partners(customer_ids=(), supplier_ids=(), *, dry_run: bool = False) -> list[BalanceCheck]:
    checks = [recompute_customer_balance(pk, dry_run=dry_run) for pk in sorted(set(customer_ids))]
    checks += [recompute_supplier_balance(pk, dry_run=dry_run) for pk in sorted(set(supplier_ids))]
    return checks


def recompute_all_partner_balances(company, *, dry_run: bool = False) -> list[BalanceCheck]:
    """Full pass over every customer and supplier of a company."""
    customer_ids = Customer.objects.filter(company=company).values_list("pk", flat=True)
    supplier_ids = Supplier.objects.filter(company=company).values_list("pk", flat=True)
    checks = recompute_partners(customer_ids, supplier_ids, dry_run=dry_run)
    logger.info(
        "Partner balances recomputed",
        extra={
            "company_id": company.id,
            "partners": len(checks),
            "changed": sum(1 for c in checks if c.changed),
        },
    )
    return checks
