# reconciliation/account_balance.py
"""
Account Balance Reconciler.

An account's balance is the replay of every non-cancelled ledger entry
that sources or targets it, through ledger.effects.account_delta.
"""

from decimal import Decimal
import logging

from django.db import transaction
from django.db.models import Q

from ledger.effects import account_delta
from ledger.exceptions import ConsistencyFailure
from ledger.models import Account, LedgerEntry
from ledger.money import quantize
from reconciliation.results import BalanceCheck

logger = logging.getLogger(__name__)


def compute_account_balance(account: Account) -> Decimal:
    rows = LedgerEntry.objects.filter(
        company_id=account.company_id,
        cancelled=False,
    ).filter(
        Q(source_account_id=account.pk) | Q(target_account_id=account.pk)
    ).values_list("kind", "amount", "source_account_id", "target_account_id")

    total = Decimal("0")
    for kind, amount, source_id, target_id in rows:
        total += account_delta(kind, amount, account.pk, source_id, target_id)
    return quantize(total)


def report_drift(check: BalanceCheck, company_id) -> None:
    if not check.is_mismatch:
        return
    failure = ConsistencyFailure(
        f"{check.document} {check.pk} balance drifted by {check.drift}",
    )
    logger.warning(
        "Cached balance diverged from ledger: %s",
        failure,
        extra={
            "company_id": company_id,
            "document": check.document,
            "document_id": check.pk,
            "cached": str(check.cached),
            "computed": str(check.computed),
            "drift": str(check.drift),
            "error_code": failure.code,
        },
    )


def recompute_account_balance(account_id, *, dry_run: bool = False) -> BalanceCheck:
    """
    Replay the ledger for one account and overwrite its cached balance.

    Idempotent: a second call finds nothing to change.
    """
    with transaction.atomic():
        account = Account.objects.select_for_update().get(pk=account_id)
        computed = compute_account_balance(account)
        check = BalanceCheck(
            document="account",
            pk=account.pk,
            name=account.name,
            cached=account.balance,
            computed=computed,
        )
        report_drift(check, account.company_id)

        if check.changed and not dry_run:
            Account.objects.filter(pk=account.pk).update(balance=computed)

    return check


def recompute_account_balances(account_ids, *, dry_run: bool = False) -> list[BalanceCheck]:
    """Recompute several accounts, locking them in primary-key order."""
    return [
        recompute_account_balance(pk, dry_run=dry_run)
        for pk in sorted(set(account_ids))
    ]


def recompute_company_accounts(company, *, dry_run: bool = False) -> list[BalanceCheck]:
    account_ids = Account.objects.filter(company=company).values_list("pk", flat=True)
    return recompute_account_balances(account_ids, dry_run=dry_run)
