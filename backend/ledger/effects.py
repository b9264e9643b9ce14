# ledger/effects.py
"""
The single kind -> effect mapping.

Both the incremental path (commands updating cached balances) and the
full replay path (reconcilers) go through these functions, so the two
can never disagree about what an entry means.

Accounts:
    income                 +amount on target
    expense                -amount on source
    transfer               -amount on source, +amount on target
    invoice_accrual        no account effect
    receivable_adjustment  no account effect

Customers (receivable):
    income                 -amount (customer paid us)
    receivable_adjustment  +amount

Suppliers (payable):
    expense                -amount (we paid the supplier)
    receivable_adjustment  +amount

Everything else has no partner effect. invoice_accrual in particular is
skipped because the invoice total is counted instead.
"""

from decimal import Decimal

INCOME = "income"
EXPENSE = "expense"
TRANSFER = "transfer"
INVOICE_ACCRUAL = "invoice_accrual"
RECEIVABLE_ADJUSTMENT = "receivable_adjustment"

ALL_KINDS = (INCOME, EXPENSE, TRANSFER, INVOICE_ACCRUAL, RECEIVABLE_ADJUSTMENT)

# Invoice statuses whose total counts toward the partner balance.
INVOICE_COUNTED_STATUSES = frozenset({"approved", "paid"})

ZERO = Decimal("0")


def account_delta(kind: str, amount: Decimal, account_id, source_id, target_id) -> Decimal:
    """Signed effect of one entry on one account."""
    if kind == INCOME:
        return amount if target_id == account_id else ZERO
    if kind == EXPENSE:
        return -amount if source_id == account_id else ZERO
    if kind == TRANSFER:
        delta = ZERO
        if source_id == account_id:
            delta -= amount
        if target_id == account_id:
            delta += amount
        return delta
    return ZERO


def entry_account_deltas(kind: str, amount: Decimal, source_id, target_id) -> dict:
    """{account_id: delta} for every account an entry touches."""
    deltas = {}
    for account_id in {source_id, target_id} - {None}:
        delta = account_delta(kind, amount, account_id, source_id, target_id)
        if delta:
            deltas[account_id] = delta
    return deltas


CUSTOMER = "customer"
SUPPLIER = "supplier"

# The payment kind that settles each partner type.
PARTNER_SETTLEMENT_KIND = {CUSTOMER: INCOME, SUPPLIER: EXPENSE}


def partner_delta(kind: str, amount: Decimal, partner_type: str) -> Decimal:
    """Signed effect of one entry on the partner it references."""
    if kind == PARTNER_SETTLEMENT_KIND.get(partner_type):
        return -amount
    if kind == RECEIVABLE_ADJUSTMENT:
        return amount
    return ZERO


def invoice_partner_effect(status: str, total_amount: Decimal) -> Decimal:
    """Contribution of an invoice total to its partner's balance."""
    if status in INVOICE_COUNTED_STATUSES:
        return total_amount
    return ZERO
