# ledger/policies.py
"""
Business rules for ledger operations.

Each policy returns (allowed, reason). Commands raise the matching
LedgerError when a policy refuses.
"""

from typing import Tuple

from django.db.models import Q

from ledger.models import Account, LedgerEntry


def can_delete_account(account: Account) -> Tuple[bool, str]:
    entries = LedgerEntry.objects.filter(company_id=account.company_id).filter(
        Q(source_account=account) | Q(target_account=account)
    )
    if entries.filter(cancelled=False).exists():
        return False, "Account has ledger entries and cannot be deleted."
    # Cancelled entries keep their account reference for audit.
    if entries.exists():
        return False, "Account is referenced by cancelled entries kept for audit."
    return True, ""


def can_edit_manual_entry(entry: LedgerEntry) -> Tuple[bool, str]:
    if entry.cancelled:
        return False, "Entry is cancelled."
    if entry.related_invoice_id is not None or entry.origin == LedgerEntry.Origin.INVOICE:
        return False, "Entry belongs to an invoice; change the invoice instead."
    if entry.origin == LedgerEntry.Origin.POS:
        return False, "Entry belongs to a POS sale; cancel the sale instead."
    if entry.kind not in (LedgerEntry.Kind.INCOME, LedgerEntry.Kind.EXPENSE):
        return False, f"{entry.get_kind_display()} entries cannot be edited here."
    return True, ""


def can_transfer(source: Account, target: Account) -> Tuple[bool, str]:
    if source.pk == target.pk:
        return False, "Source and target accounts must differ."
    if source.currency != target.currency:
        return False, "Transfers between different currencies are not supported."
    return True, ""


def can_debit(account: Account, amount) -> Tuple[bool, str]:
    if account.balance < amount:
        return False, f"Insufficient funds in '{account.name}'."
    return True, ""
