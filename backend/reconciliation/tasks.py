"""
Celery tasks for balance reconciliation.

Tasks:
- reconcile_company_balances: Full reconciliation pass for one company
- reconcile_all_companies: Pass over every active company (Celery beat, nightly)

Usage:
    from reconciliation.tasks import reconcile_company_balances
    reconcile_company_balances.delay(company.id)
"""
import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    retry_backoff=True,
)
def reconcile_company_balances(
    self,
    company_id: int,
    trigger: str = "schedule",
    accounts: bool = True,
    partners: bool = True,
) -> dict:
    """
    Rebuild every cached balance of one company from the ledger.

    Returns:
        Summary of the ReconciliationRun written for the pass
    """
    from accounts.models import Company
    from reconciliation.service import reconcile_company

    logger.info(f"Reconciling balances for company {company_id}")

    try:
        company = Company.objects.get(id=company_id)
    except Company.DoesNotExist:
        logger.error(f"Company {company_id} not found")
        return {"error": f"Company {company_id} not found"}

    run = reconcile_company(
        company,
        accounts=accounts,
        partners=partners,
        trigger=trigger,
    )
    return {
        "company_id": company_id,
        "run_id": run.id,
        "accounts_checked": run.accounts_checked,
        "partners_checked": run.partners_checked,
        "corrected": run.corrected,
        "mismatches": run.mismatch_count,
    }


@shared_task(bind=True)
def reconcile_all_companies(self) -> dict:
    """
    Reconcile every active company.

    A failure in one company is logged and does not stop the others.
    """
    from accounts.models import Company

    companies = list(Company.objects.filter(is_active=True).order_by("id"))
    logger.info(f"Reconciling balances for {len(companies)} companies")

    results = {}
    total_mismatches = 0

    for company in companies:
        try:
            result = reconcile_company_balances(company_id=company.id)
            results[company.slug] = result
            total_mismatches += result.get("mismatches", 0)
        except Exception as e:
            logger.exception(f"Error reconciling company {company.slug}: {e}")
            results[company.slug] = {"error": str(e)}

    logger.info(
        f"Completed reconciliation for {len(companies)} companies: "
        f"{total_mismatches} mismatches corrected"
    )

    return {
        "companies_processed": len(companies),
        "total_mismatches": total_mismatches,
        "results": results,
    }
