# reconciliation/management/commands/reconcile_balances.py
"""
Management command to rebuild cached balances from the ledger.

The ledger is the source of truth; account, customer and supplier
balances can always be rebuilt from it.

Usage:
    # Reconcile one tenant
    python manage.py reconcile_balances --tenant acme

    # Reconcile every active tenant
    python manage.py reconcile_balances --all-tenants

    # Only accounts, or only partners
    python manage.py reconcile_balances --tenant acme --accounts-only
    python manage.py reconcile_balances --tenant acme --partners-only

    # Report drift without writing
    python manage.py reconcile_balances --tenant acme --dry-run
"""

import logging

from django.core.management.base import BaseCommand, CommandError

from accounts.models import Company
from reconciliation.models import ReconciliationRun
from reconciliation.service import reconcile_company

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Rebuild cached balances from the ledger."""

    help = "Recompute account and partner balances from the ledger"

    def add_arguments(self, parser):
        parser.add_argument(
            "--tenant",
            type=str,
            help="Company slug to reconcile",
        )
        parser.add_argument(
            "--all-tenants",
            action="store_true",
            help="Reconcile all active tenants",
        )
        parser.add_argument(
            "--accounts-only",
            action="store_true",
            help="Only recompute account balances",
        )
        parser.add_argument(
            "--partners-only",
            action="store_true",
            help="Only recompute customer and supplier balances",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report drift without writing balances",
        )

    def handle(self, *args, **options):
        if options["accounts_only"] and options["partners_only"]:
            raise CommandError("--accounts-only and --partners-only are mutually exclusive.")

        companies = self._get_companies(options)
        if not companies:
            raise CommandError("No companies to reconcile.")

        accounts = not options["partners_only"]
        partners = not options["accounts_only"]
        dry_run = options["dry_run"]

        total_mismatches = 0
        for company in companies:
            run = reconcile_company(
                company,
                accounts=accounts,
                partners=partners,
                dry_run=dry_run,
                trigger=ReconciliationRun.Trigger.COMMAND,
            )
            total_mismatches += run.mismatch_count
            self._report(company, run)

        if dry_run:
            self.stdout.write(self.style.WARNING("\n[DRY RUN] No balances changed."))
        if total_mismatches:
            self.stdout.write(self.style.WARNING(f"{total_mismatches} mismatch(es) found."))
        else:
            self.stdout.write(self.style.SUCCESS("All balances consistent."))

    def _get_companies(self, options):
        if options["all_tenants"]:
            return list(Company.objects.filter(is_active=True).order_by("id"))
        slug = options.get("tenant")
        if not slug:
            raise CommandError("Specify --tenant <slug> or --all-tenants.")
        try:
            return [Company.objects.get(slug=slug)]
        except Company.DoesNotExist:
            raise CommandError(f"Company '{slug}' not found.")

    def _report(self, company, run):
        self.stdout.write(
            f"{company.slug}: {run.accounts_checked} accounts, "
            f"{run.partners_checked} partners checked, {run.corrected} corrected"
        )
        for mismatch in run.mismatches:
            self.stdout.write(
                self.style.WARNING(
                    f"  {mismatch['document']} #{mismatch['pk']} {mismatch['name']}: "
                    f"cached {mismatch['cached']} != ledger {mismatch['computed']}"
                )
            )
