# ledger/commands.py
"""
Command layer for ledger operations.

Commands are the single point where business operations happen.
Views call commands; commands enforce rules and write ledger entries.

Pattern:
1. Validate permissions (require)
2. Load rows inside the actor's company (NotFound otherwise)
3. Apply business policies (can_*)
4. Post ledger entries and update cached balances
5. Return CommandResult

Each command body runs inside @ledger_command, so any LedgerError rolls
the whole unit of work back.
"""

from decimal import Decimal
import logging

from django.core.exceptions import ValidationError as DjangoValidationError

from accounts.authz import ActorContext, require
from ledger import effects
from ledger.exceptions import (
    InsufficientFunds,
    InvalidStateTransition,
    ValidationError,
)
from ledger.lookups import get_for_company, get_optional_for_company, lock_in_pk_order
from ledger.models import Account, Customer, LedgerEntry, Supplier
from ledger.money import quantize, to_amount, to_decimal
from ledger.policies import (
    can_debit,
    can_delete_account,
    can_edit_manual_entry,
    can_transfer,
)
from ledger.posting import (
    affected_documents,
    apply_entry_effects,
    cancel_entries,
    post_entry,
)
from ledger.unit_of_work import CommandResult, ledger_command
from reconciliation.service import reconcile_affected

logger = logging.getLogger(__name__)


ACCOUNT_METADATA_FIELDS = (
    "name",
    "bank_name",
    "iban",
    "credit_limit",
    "cutoff_day",
    "payment_day",
)

MANUAL_KINDS = (effects.INCOME, effects.EXPENSE)


# =============================================================================
# Helpers
# =============================================================================

def _resolve_partner(actor: ActorContext, customer_id=None, supplier_id=None, lock=False):
    if customer_id and supplier_id:
        raise ValidationError("Choose a customer or a supplier, not both.")
    customer = get_optional_for_company(Customer, actor, customer_id, lock=lock)
    supplier = get_optional_for_company(Supplier, actor, supplier_id, lock=lock)
    return customer, supplier


def _full_clean(instance, exclude):
    try:
        instance.full_clean(exclude=exclude)
    except DjangoValidationError as exc:
        raise ValidationError("; ".join(exc.messages))


def _find_or_create_partner(actor: ActorContext, partner_type: str, name: str, email: str, currency: str):
    if partner_type not in ("customer", "supplier"):
        raise ValidationError("partner_type must be 'customer' or 'supplier'.")
    model = Customer if partner_type == "customer" else Supplier
    email = (email or "").strip().lower()
    partner = None
    if email:
        partner = model.objects.filter(company=actor.company, email__iexact=email).first()
    if partner is None:
        if not name:
            raise ValidationError(f"A {partner_type} name is required.")
        partner = model.objects.create(
            company=actor.company,
            name=name,
            email=email,
            currency=currency,
        )
    return partner


def _post_balance_difference(actor, account: Account, difference: Decimal, origin: str, description: str):
    """Post income (difference > 0) or expense (difference < 0) on an account."""
    if difference > 0:
        return post_entry(
            actor,
            kind=effects.INCOME,
            amount=difference,
            origin=origin,
            target_account=account,
            description=description,
        )
    return post_entry(
        actor,
        kind=effects.EXPENSE,
        amount=-difference,
        origin=origin,
        source_account=account,
        description=description,
    )


def _adjust_account(actor, account_id, new_balance, reason: str, confirmation: bool):
    if not confirmation:
        raise ValidationError("Balance adjustments must be explicitly confirmed.")

    account = get_for_company(Account, actor, account_id, lock=True)
    new_balance = quantize(to_decimal(new_balance, "new_balance"))
    difference = new_balance - account.balance
    if difference == 0:
        raise ValidationError("New balance equals the current balance.")

    description = reason or f"Balance adjustment from {account.balance} to {new_balance}"
    entry = _post_balance_difference(
        actor, account, difference, LedgerEntry.Origin.ADJUSTMENT, description
    )

    logger.warning(
        "Account balance adjusted manually",
        extra={
            "company_id": actor.company.id,
            "account_id": account.pk,
            "old_balance": str(account.balance),
            "new_balance": str(new_balance),
            "user_id": actor.user.pk,
        },
    )
    account.refresh_from_db()
    return account, entry


# =============================================================================
# Account commands
# =============================================================================

@ledger_command
def create_account(
    actor: ActorContext,
    name: str,
    type: str = Account.AccountType.CASH,
    currency: str = None,
    opening_balance=Decimal("0"),
    partner_type: str = None,
    partner_name: str = None,
    partner_email: str = None,
    **metadata,
) -> CommandResult:
    """
    Create an account, optionally with an opening balance.

    A partner-linked account finds the customer or supplier by email
    within the company, creating it when none matches.
    """
    require(actor, "accounts.manage")

    if not name or not name.strip():
        raise ValidationError("Account name is required.")
    if type not in Account.AccountType.values:
        raise ValidationError(f"Unknown account type '{type}'.")
    unknown = set(metadata) - set(ACCOUNT_METADATA_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown account fields: {', '.join(sorted(unknown))}.")

    currency = (currency or actor.company.default_currency).upper()
    opening = quantize(to_decimal(opening_balance or 0, "opening_balance"))

    account = Account(company=actor.company, name=name.strip(), type=type, currency=currency, **metadata)

    if type == Account.AccountType.PARTNER:
        partner = _find_or_create_partner(
            actor, partner_type, partner_name or name, partner_email, currency
        )
        if isinstance(partner, Customer):
            account.customer = partner
        else:
            account.supplier = partner

    _full_clean(account, exclude=["company", "customer", "supplier"])
    account.save()

    entry = None
    if opening:
        entry = _post_balance_difference(
            actor, account, opening, LedgerEntry.Origin.OPENING_BALANCE, "Opening balance"
        )
        account.refresh_from_db()

    logger.info(
        "Account created",
        extra={"company_id": actor.company.id, "account_id": account.pk, "type": type},
    )
    return CommandResult.ok(account, entry=entry)


@ledger_command
def update_account(
    actor: ActorContext,
    account_id,
    balance=None,
    reason: str = "",
    confirmation: bool = False,
    **changes,
) -> CommandResult:
    """
    Update account metadata. Supplying `balance` routes through the
    adjustment path and needs `confirmation`.
    """
    require(actor, "accounts.manage")

    account = get_for_company(Account, actor, account_id, lock=True)

    unknown = set(changes) - set(ACCOUNT_METADATA_FIELDS)
    if unknown:
        raise ValidationError(f"Fields cannot be changed: {', '.join(sorted(unknown))}.")

    for field, value in changes.items():
        setattr(account, field, value)
    if changes:
        _full_clean(account, exclude=["company", "customer", "supplier", "balance"])
        account.save(update_fields=[*changes, "updated_at"])

    entry = None
    if balance is not None and quantize(to_decimal(balance, "balance")) != account.balance:
        account, entry = _adjust_account(actor, account.pk, balance, reason, confirmation)

    return CommandResult.ok(account, entry=entry)


@ledger_command
def delete_account(actor: ActorContext, account_id) -> CommandResult:
    require(actor, "accounts.manage")

    account = get_for_company(Account, actor, account_id, lock=True)

    allowed, reason = can_delete_account(account)
    if not allowed:
        raise InvalidStateTransition(reason, account_id=account.pk)

    account_pk = account.pk
    account.delete()
    logger.info(
        "Account deleted",
        extra={"company_id": actor.company.id, "account_id": account_pk},
    )
    return CommandResult.ok({"id": account_pk})


@ledger_command
def adjust_account_balance(
    actor: ActorContext,
    account_id,
    new_balance,
    reason: str = "",
    confirmation: bool = False,
) -> CommandResult:
    """Set an account's balance by posting the difference as income/expense."""
    require(actor, "accounts.manage")
    account, entry = _adjust_account(actor, account_id, new_balance, reason, confirmation)
    return CommandResult.ok(account, entry=entry)


@ledger_command
def adjust_partner_balance(
    actor: ActorContext,
    partner_type: str,
    partner_id,
    new_balance,
    reason: str = "",
    confirmation: bool = False,
) -> CommandResult:
    """
    Set a customer's or supplier's balance.

    A positive difference is posted as a receivable_adjustment; a negative
    one as income (customer) or expense (supplier) with no account.
    """
    require(actor, "partners.adjust")

    if not confirmation:
        raise ValidationError("Balance adjustments must be explicitly confirmed.")
    if partner_type == "customer":
        partner = get_for_company(Customer, actor, partner_id, lock=True)
    elif partner_type == "supplier":
        partner = get_for_company(Supplier, actor, partner_id, lock=True)
    else:
        raise ValidationError("partner_type must be 'customer' or 'supplier'.")

    new_balance = quantize(to_decimal(new_balance, "new_balance"))
    difference = new_balance - partner.balance
    if difference == 0:
        raise ValidationError("New balance equals the current balance.")

    if difference > 0:
        kind = effects.RECEIVABLE_ADJUSTMENT
    else:
        kind = effects.INCOME if partner_type == "customer" else effects.EXPENSE

    entry = post_entry(
        actor,
        kind=kind,
        amount=abs(difference),
        origin=LedgerEntry.Origin.ADJUSTMENT,
        description=reason or f"Balance adjustment from {partner.balance} to {new_balance}",
        **{partner_type: partner},
    )

    logger.warning(
        "Partner balance adjusted manually",
        extra={
            "company_id": actor.company.id,
            "partner_type": partner_type,
            "partner_id": partner.pk,
            "old_balance": str(partner.balance),
            "new_balance": str(new_balance),
            "user_id": actor.user.pk,
        },
    )
    partner.refresh_from_db()
    return CommandResult.ok(partner, entry=entry)


@ledger_command
def transfer_between_accounts(
    actor: ActorContext,
    source_account_id,
    target_account_id,
    amount,
    description: str = "",
    occurred_at=None,
) -> CommandResult:
    """
    Move money between two accounts of the same company.

    Locks both accounts in primary-key order, posts one transfer entry and
    reconciles both accounts afterwards.
    """
    require(actor, "transactions.create")

    amount = to_amount(amount)
    if str(source_account_id) == str(target_account_id):
        raise ValidationError("Source and target accounts must differ.")

    source = get_for_company(Account, actor, source_account_id, label="source account")
    target = get_for_company(Account, actor, target_account_id, label="target account")

    locked = lock_in_pk_order(Account, [source.pk, target.pk])
    source, target = locked[source.pk], locked[target.pk]

    allowed, reason = can_transfer(source, target)
    if not allowed:
        raise ValidationError(reason)

    allowed, reason = can_debit(source, amount)
    if not allowed:
        raise InsufficientFunds(source, amount)

    entry = post_entry(
        actor,
        kind=effects.TRANSFER,
        amount=amount,
        origin=LedgerEntry.Origin.TRANSFER,
        source_account=source,
        target_account=target,
        description=description or f"Transfer {source.name} -> {target.name}",
        occurred_at=occurred_at,
    )

    reconcile_affected(account_ids=[source.pk, target.pk])
    source.refresh_from_db()
    target.refresh_from_db()

    return CommandResult.ok({"source": source, "target": target}, entry=entry)


# =============================================================================
# Manual transactions
# =============================================================================

def _manual_entry_accounts(kind: str, account):
    if kind == effects.INCOME:
        return {"target_account": account, "source_account": None}
    return {"source_account": account, "target_account": None}


def _check_partner_kind(kind: str, customer, supplier):
    # Customers settle through income, suppliers through expense.
    if customer is not None and kind != effects.INCOME:
        raise ValidationError("Only income can reference a customer.")
    if supplier is not None and kind != effects.EXPENSE:
        raise ValidationError("Only expense can reference a supplier.")


@ledger_command
def create_manual_transaction(
    actor: ActorContext,
    kind: str,
    amount,
    account_id=None,
    customer_id=None,
    supplier_id=None,
    description: str = "",
    occurred_at=None,
) -> CommandResult:
    """Record a standalone income or expense not tied to any invoice."""
    require(actor, "transactions.create")

    if kind not in MANUAL_KINDS:
        raise ValidationError("Manual transactions must be income or expense.")
    amount = to_amount(amount)

    account = get_optional_for_company(Account, actor, account_id, lock=True)
    customer, supplier = _resolve_partner(actor, customer_id, supplier_id)
    if account is None and customer is None and supplier is None:
        raise ValidationError("An account or a partner is required.")
    _check_partner_kind(kind, customer, supplier)

    entry = post_entry(
        actor,
        kind=kind,
        amount=amount,
        origin=LedgerEntry.Origin.MANUAL,
        customer=customer,
        supplier=supplier,
        description=description,
        occurred_at=occurred_at,
        **_manual_entry_accounts(kind, account),
    )
    return CommandResult.ok(entry, entry=entry)


_UNSET = object()


@ledger_command
def update_manual_transaction(
    actor: ActorContext,
    entry_id,
    kind: str = None,
    amount=None,
    description: str = None,
    account_id=_UNSET,
    customer_id=_UNSET,
    supplier_id=_UNSET,
    occurred_at=None,
) -> CommandResult:
    """
    Edit a manual entry, then recompute every account and partner it
    touched before or after the edit.
    """
    require(actor, "transactions.edit")

    entry = get_for_company(LedgerEntry, actor, entry_id, lock=True, label="ledger entry")
    allowed, reason = can_edit_manual_entry(entry)
    if not allowed:
        raise InvalidStateTransition(reason, entry_id=str(entry.public_id))

    before = affected_documents([entry])
    apply_entry_effects(entry, sign=-1)

    if kind is not None:
        if kind not in MANUAL_KINDS:
            raise ValidationError("Manual transactions must be income or expense.")
        entry.kind = kind
    if amount is not None:
        entry.amount = to_amount(amount)
    if description is not None:
        entry.description = description
    if occurred_at is not None:
        entry.occurred_at = occurred_at

    account = entry.source_account or entry.target_account
    if account_id is not _UNSET:
        account = get_optional_for_company(Account, actor, account_id)
    for field, value in _manual_entry_accounts(entry.kind, account).items():
        setattr(entry, field, value)

    if customer_id is not _UNSET or supplier_id is not _UNSET:
        new_customer_id = entry.customer_id if customer_id is _UNSET else customer_id
        new_supplier_id = entry.supplier_id if supplier_id is _UNSET else supplier_id
        # Naming one partner replaces the other.
        if supplier_id is _UNSET and customer_id is not None:
            new_supplier_id = None
        if customer_id is _UNSET and supplier_id is not None:
            new_customer_id = None
        entry.customer, entry.supplier = _resolve_partner(actor, new_customer_id, new_supplier_id)

    if entry.source_account_id is None and entry.target_account_id is None \
            and entry.customer_id is None and entry.supplier_id is None:
        raise ValidationError("An account or a partner is required.")
    _check_partner_kind(entry.kind, entry.customer, entry.supplier)
    if account is not None:
        entry.currency = account.currency

    entry.save()
    apply_entry_effects(entry)

    after = affected_documents([entry])
    reconcile_affected(
        account_ids=before[0] | after[0],
        customer_ids=before[1] | after[1],
        supplier_ids=before[2] | after[2],
    )
    return CommandResult.ok(entry, entry=entry)


@ledger_command
def delete_manual_transaction(actor: ActorContext, entry_id) -> CommandResult:
    """Cancel a manual entry; it stays in the store for audit."""
    require(actor, "transactions.edit")

    entry = get_for_company(LedgerEntry, actor, entry_id, lock=True, label="ledger entry")
    allowed, reason = can_edit_manual_entry(entry)
    if not allowed:
        raise InvalidStateTransition(reason, entry_id=str(entry.public_id))

    cancel_entries(actor, [entry])
    account_ids, customer_ids, supplier_ids = affected_documents([entry])
    reconcile_affected(account_ids, customer_ids, supplier_ids)

    logger.info(
        "Manual transaction cancelled",
        extra={"company_id": actor.company.id, "entry_id": str(entry.public_id)},
    )
    return CommandResult.ok(entry, entry=entry)
