# reconciliation/service.py
"""
Reconciliation entry points.

- reconcile_affected: per-write pass over the documents one command touched
- reconcile_company: full batch pass over every account and partner
"""

import logging

from django.utils import timezone

from ledger.write_barrier import reconciliation_writes_allowed
from reconciliation.account_balance import (
    recompute_account_balances,
    recompute_company_accounts,
)
from reconciliation.models import ReconciliationRun
from reconciliation.partner_balance import (
    recompute_all_partner_balances,
    recompute_partners,
)

logger = logging.getLogger(__name__)


def reconcile_affected(account_ids=(), customer_ids=(), supplier_ids=()):
    """Recompute only the given accounts and partners. Returns the checks."""
    with reconciliation_writes_allowed():
        checks = recompute_account_balances(account_ids)
        checks += recompute_partners(customer_ids, supplier_ids)
    return checks


def reconcile_company(
    company,
    *,
    accounts: bool = True,
    partners: bool = True,
    dry_run: bool = False,
    trigger: str = ReconciliationRun.Trigger.SCHEDULE,
    requested_by=None,
) -> ReconciliationRun:
    """
    Discard every cached balance of a company and rebuild it from the ledger.

    Drift beyond BALANCE_TOLERANCE is logged and recorded on the returned
    ReconciliationRun. With dry_run nothing is written except the run row.
    """
    if accounts and partners:
        scope = ReconciliationRun.Scope.FULL
    elif accounts:
        scope = ReconciliationRun.Scope.ACCOUNTS
    else:
        scope = ReconciliationRun.Scope.PARTNERS

    run = ReconciliationRun(
        company=company,
        scope=scope,
        trigger=trigger,
        dry_run=dry_run,
        started_at=timezone.now(),
        requested_by=requested_by,
    )

    account_checks, partner_checks = [], []
    with reconciliation_writes_allowed():
        if accounts:
            account_checks = recompute_company_accounts(company, dry_run=dry_run)
        if partners:
            partner_checks = recompute_all_partner_balances(company, dry_run=dry_run)

    checks = account_checks + partner_checks
    run.accounts_checked = len(account_checks)
    run.partners_checked = len(partner_checks)
    run.corrected = 0 if dry_run else sum(1 for c in checks if c.changed)
    run.mismatches = [c.as_dict() for c in checks if c.is_mismatch]
    run.finished_at = timezone.now()
    run.save()

    logger.info(
        "Reconciliation finished for %s",
        company.slug,
        extra={
            "company_id": company.id,
            "scope": scope,
            "trigger": trigger,
            "dry_run": dry_run,
            "accounts_checked": run.accounts_checked,
            "partners_checked": run.partners_checked,
            "corrected": run.corrected,
            "mismatches": run.mismatch_count,
        },
    )
    return run
