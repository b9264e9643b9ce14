# ledger/posting.py
"""
Writing ledger entries and applying their effects to cached balances.

post_entry() is the only place a LedgerEntry is created. It validates
the entry, saves it and applies its incremental effect through
ledger.effects. Callers must already be inside a command unit of work.
"""

from decimal import Decimal
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import F
from django.utils import timezone

from ledger.exceptions import ValidationError
from ledger.models import Account, Customer, LedgerEntry, Supplier

logger = logging.getLogger(__name__)


def _entry_currency(actor, source_account, target_account, customer, supplier):
    for obj in (target_account, source_account, customer, supplier):
        if obj is not None:
            return obj.currency
    return actor.company.default_currency


def post_entry(
    actor,
    *,
    kind: str,
    amount: Decimal,
    origin: str,
    source_account: Account = None,
    target_account: Account = None,
    customer: Customer = None,
    supplier: Supplier = None,
    invoice=None,
    currency: str = None,
    description: str = "",
    occurred_at=None,
) -> LedgerEntry:
    entry = LedgerEntry(
        company=actor.company,
        kind=kind,
        origin=origin,
        amount=amount,
        currency=currency or _entry_currency(actor, source_account, target_account, customer, supplier),
        occurred_at=occurred_at or timezone.now(),
        description=description or "",
        source_account=source_account,
        target_account=target_account,
        customer=customer,
        supplier=supplier,
        related_invoice=invoice,
        created_by=actor.user,
    )
    try:
        entry.clean()
    except DjangoValidationError as exc:
        raise ValidationError("; ".join(exc.messages))

    entry.save()
    apply_entry_effects(entry)

    logger.info(
        "Ledger entry posted",
        extra={
            "company_id": actor.company.id,
            "entry_id": str(entry.public_id),
            "kind": kind,
            "origin": origin,
            "amount": str(amount),
        },
    )
    return entry


def apply_entry_effects(entry: LedgerEntry, sign: int = 1) -> None:
    """
    Apply (sign=1) or undo (sign=-1) one entry's effect on cached balances.

    Uses F() updates so concurrent writers never lose an increment.
    """
    for account_id, delta in entry.account_deltas().items():
        Account.objects.filter(pk=account_id).update(balance=F("balance") + sign * delta)

    partner_delta = entry.partner_delta()
    if partner_delta:
        if entry.customer_id:
            Customer.objects.filter(pk=entry.customer_id).update(
                balance=F("balance") + sign * partner_delta
            )
        elif entry.supplier_id:
            Supplier.objects.filter(pk=entry.supplier_id).update(
                balance=F("balance") + sign * partner_delta
            )


def adjust_partner_cache(partner, delta: Decimal) -> None:
    """Move a customer's or supplier's cached balance by `delta`."""
    if not delta:
        return
    type(partner).objects.filter(pk=partner.pk).update(balance=F("balance") + delta)


def cancel_entries(actor, entries) -> list[LedgerEntry]:
    """
    Mark entries cancelled and take their effect back out of the cached
    balances. They stay in the store for audit and drop out of every
    balance computation. Returns the entries that were live.
    """
    live = [e for e in entries if not e.cancelled]
    if not live:
        return []
    now = timezone.now()
    LedgerEntry.objects.filter(pk__in=[e.pk for e in live]).update(
        cancelled=True,
        cancelled_at=now,
        cancelled_by=actor.user,
    )
    for entry in live:
        entry.cancelled = True
        entry.cancelled_at = now
        entry.cancelled_by = actor.user
        apply_entry_effects(entry, sign=-1)
    return live


def affected_documents(entries):
    """Return (account_ids, customer_ids, supplier_ids) touched by entries."""
    account_ids, customer_ids, supplier_ids = set(), set(), set()
    for entry in entries:
        account_ids.update(pk for pk in (entry.source_account_id, entry.target_account_id) if pk)
        if entry.customer_id:
            customer_ids.add(entry.customer_id)
        if entry.supplier_id:
            supplier_ids.add(entry.supplier_id)
    return account_ids, customer_ids, supplier_ids
