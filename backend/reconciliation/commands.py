# reconciliation/commands.py

from accounts.authz import ActorContext, require
from ledger.exceptions import ValidationError
from ledger.unit_of_work import CommandResult, ledger_command
from reconciliation.models import ReconciliationRun
from reconciliation.service import reconcile_company


@ledger_command
def run_reconciliation(
    actor: ActorContext,
    accounts: bool = True,
    partners: bool = True,
    dry_run: bool = False,
) -> CommandResult:
    """Administrative full reconciliation of the actor's company."""
    require(actor, "reconciliation.run")

    if not accounts and not partners:
        raise ValidationError("Nothing to reconcile: enable accounts or partners.")

    run = reconcile_company(
        actor.company,
        accounts=accounts,
        partners=partners,
        dry_run=dry_run,
        trigger=ReconciliationRun.Trigger.API,
        requested_by=actor.user,
    )
    return CommandResult.ok(run)
