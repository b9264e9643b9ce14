# invoicing/commands.py
"""
Invoice Lifecycle Manager.

States: draft -> approved -> paid, approved|paid -> canceled, and
draft -> deleted. Every transition runs as one unit of work: stock,
ledger entries, cached balances and the invoice row move together or
not at all.

Approval is serialized twice over: the invoice row is locked with
select_for_update and the status change is claimed with a conditional
UPDATE ... WHERE status='draft', so exactly one of two concurrent
approvals wins and stock moves once.
"""

from decimal import Decimal
import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from accounts.authz import ActorContext, require, require_admin
from inventory.models import Product, StockMovement
from inventory.stock import apply_movement, reverse_invoice_movements
from invoicing.models import Invoice, InvoiceLine
from invoicing.policies import (
    can_approve_invoice,
    can_cancel_invoice,
    can_collect,
    can_edit_invoice,
    can_pay,
)
from ledger import effects
from ledger.exceptions import (
    InsufficientFunds,
    InvalidStateTransition,
    ValidationError,
)
from ledger.lookups import get_for_company
from ledger.models import Account, Customer, LedgerEntry, Supplier
from ledger.money import quantize, to_amount, to_decimal
from ledger.posting import (
    adjust_partner_cache,
    affected_documents,
    cancel_entries,
    post_entry,
)
from ledger.unit_of_work import CommandResult, ledger_command
from reconciliation.models import ReconciliationRun
from reconciliation.service import reconcile_affected, reconcile_company
from reconciliation.tasks import reconcile_company_balances

logger = logging.getLogger(__name__)

NUMBER_PREFIX = {
    Invoice.Type.SALE: "S",
    Invoice.Type.PURCHASE: "P",
}

HUNDRED = Decimal("100")


# =============================================================================
# Helpers
# =============================================================================

def _resolve_invoice_partner(actor: ActorContext, invoice_type: str, partner_id):
    if invoice_type == Invoice.Type.SALE:
        return {"customer": get_for_company(Customer, actor, partner_id), "supplier": None}
    if invoice_type == Invoice.Type.PURCHASE:
        return {"supplier": get_for_company(Supplier, actor, partner_id), "customer": None}
    raise ValidationError(f"Unknown invoice type '{invoice_type}'.")


def _next_invoice_number(actor: ActorContext, invoice_type: str) -> str:
    prefix = NUMBER_PREFIX[invoice_type]
    existing = Invoice.objects.filter(company=actor.company, type=invoice_type)
    n = existing.count() + 1
    while True:
        number = f"{prefix}-{n:06d}"
        if not existing.filter(invoice_number=number).exists():
            return number
        n += 1


def _build_lines(actor: ActorContext, invoice: Invoice, lines_data) -> list[InvoiceLine]:
    if not lines_data:
        raise ValidationError("An invoice needs at least one line.")

    lines = []
    for line_no, data in enumerate(lines_data, start=1):
        product = get_for_company(Product, actor, data.get("product_id"), label="product")
        quantity = to_decimal(data.get("quantity"), "quantity")
        if quantity <= 0:
            raise ValidationError(f"Line {line_no}: quantity must be greater than zero.")

        default_price = product.sale_price if invoice.type == Invoice.Type.SALE else product.purchase_price
        unit_price = quantize(to_decimal(data.get("unit_price", default_price), "unit_price"))
        if unit_price < 0:
            raise ValidationError(f"Line {line_no}: unit price cannot be negative.")

        discount = to_decimal(data.get("discount_percent", 0), "discount_percent")
        if not 0 <= discount <= HUNDRED:
            raise ValidationError(f"Line {line_no}: discount must be between 0 and 100.")

        vat = to_decimal(data.get("vat_percent", product.vat_rate), "vat_percent")
        if vat < 0:
            raise ValidationError(f"Line {line_no}: VAT cannot be negative.")

        line = InvoiceLine(
            invoice=invoice,
            line_no=line_no,
            product=product,
            description=data.get("description") or product.name,
            quantity=quantity,
            unit_price=unit_price,
            discount_percent=discount,
            vat_percent=vat,
        )
        line.compute_amounts()
        lines.append(line)
    return lines


def _replace_lines(actor: ActorContext, invoice: Invoice, lines_data) -> None:
    lines = _build_lines(actor, invoice, lines_data)
    invoice.lines.all().delete()
    InvoiceLine.objects.bulk_create(lines)
    invoice.recalculate_totals(lines)


def build_draft_invoice(
    actor: ActorContext,
    type: str,
    partner_id,
    lines,
    invoice_number: str = None,
    date=None,
    due_date=None,
    currency: str = None,
    notes: str = "",
) -> Invoice:
    partners = _resolve_invoice_partner(actor, type, partner_id)
    partner = partners["customer"] or partners["supplier"]

    invoice_number = (invoice_number or "").strip() or _next_invoice_number(actor, type)
    if Invoice.objects.filter(company=actor.company, type=type, invoice_number=invoice_number).exists():
        raise ValidationError(f"Invoice number {invoice_number} is already used.")

    invoice = Invoice(
        company=actor.company,
        type=type,
        status=Invoice.Status.DRAFT,
        invoice_number=invoice_number,
        date=date or timezone.localdate(),
        due_date=due_date,
        currency=(currency or partner.currency).upper(),
        notes=notes or "",
        created_by=actor.user,
        **partners,
    )
    if invoice.due_date and invoice.due_date < invoice.date:
        raise ValidationError("Due date cannot be before the invoice date.")
    invoice.save()

    _replace_lines(actor, invoice, lines)
    invoice.save(update_fields=["subtotal", "vat_total", "total_amount", "updated_at"])

    logger.info(
        "Invoice created",
        extra={
            "company_id": actor.company.id,
            "invoice_id": invoice.pk,
            "type": type,
            "total": str(invoice.total_amount),
        },
    )
    return invoice


def _reverse_invoice(actor: ActorContext, invoice: Invoice) -> list[LedgerEntry]:
    """
    Undo every effect of an approved or paid invoice.

    Restores stock, cancels the accrual and all payments, marks the invoice
    canceled, then recomputes the touched accounts and the invoice's partner.
    """
    reverse_invoice_movements(actor, invoice)

    entries = list(
        LedgerEntry.objects.select_for_update().filter(
            company=actor.company,
            related_invoice=invoice,
        )
    )
    cancelled = cancel_entries(actor, entries)

    partner = invoice.partner
    adjust_partner_cache(partner, -effects.invoice_partner_effect(invoice.status, invoice.total_amount))

    invoice.status = Invoice.Status.CANCELED
    invoice.canceled_at = timezone.now()
    invoice.canceled_by = actor.user
    invoice.save(update_fields=["status", "canceled_at", "canceled_by", "updated_at"])

    account_ids, _, _ = affected_documents(cancelled)
    reconcile_affected(
        account_ids=account_ids,
        customer_ids=[partner.pk] if invoice.type == Invoice.Type.SALE else [],
        supplier_ids=[partner.pk] if invoice.type == Invoice.Type.PURCHASE else [],
    )

    logger.info(
        "Invoice effects reversed",
        extra={
            "company_id": actor.company.id,
            "invoice_id": invoice.pk,
            "invoice_number": invoice.invoice_number,
            "entries_cancelled": len(cancelled),
        },
    )
    return cancelled


# =============================================================================
# Draft commands
# =============================================================================

@ledger_command
def create_invoice(
    actor: ActorContext,
    type: str,
    partner_id,
    lines,
    invoice_number: str = None,
    date=None,
    due_date=None,
    currency: str = None,
    notes: str = "",
) -> CommandResult:
    """Create a draft invoice. Drafts have no stock or ledger effect."""
    require(actor, "invoices.create")

    invoice = build_draft_invoice(
        actor,
        type,
        partner_id,
        lines,
        invoice_number=invoice_number,
        date=date,
        due_date=due_date,
        currency=currency,
        notes=notes,
    )
    return CommandResult.ok(invoice)


@ledger_command
def update_invoice(actor: ActorContext, invoice_id, **changes) -> CommandResult:
    """Edit a draft invoice. `lines`, when given, replaces every line."""
    require(actor, "invoices.create")

    invoice = get_for_company(Invoice, actor, invoice_id, lock=True)
    allowed, reason = can_edit_invoice(invoice)
    if not allowed:
        raise InvalidStateTransition(reason, invoice_id=invoice.pk)

    if "partner_id" in changes:
        for field, value in _resolve_invoice_partner(actor, invoice.type, changes.pop("partner_id")).items():
            setattr(invoice, field, value)

    if "invoice_number" in changes:
        number = (changes.pop("invoice_number") or "").strip()
        if not number:
            raise ValidationError("Invoice number cannot be blank.")
        clash = Invoice.objects.filter(
            company=actor.company, type=invoice.type, invoice_number=number,
        ).exclude(pk=invoice.pk)
        if clash.exists():
            raise ValidationError(f"Invoice number {number} is already used.")
        invoice.invoice_number = number

    lines = changes.pop("lines", None)
    for field in ("date", "due_date", "currency", "notes"):
        if field in changes:
            setattr(invoice, field, changes.pop(field))
    if changes:
        raise ValidationError(f"Fields cannot be changed: {', '.join(sorted(changes))}.")

    if invoice.due_date and invoice.due_date < invoice.date:
        raise ValidationError("Due date cannot be before the invoice date.")

    if lines is not None:
        _replace_lines(actor, invoice, lines)

    invoice.save()
    return CommandResult.ok(invoice)


# =============================================================================
# Lifecycle transitions
# =============================================================================

@ledger_command
def approve_invoice(actor: ActorContext, invoice_id) -> CommandResult:
    """
    Approve a draft invoice.

    Moves stock for every line (out for sales, in for purchases), posts one
    invoice_accrual entry for the total and raises the partner balance by
    the total. Insufficient stock on any line rolls everything back.
    """
    require(actor, "invoices.approve")

    invoice = get_for_company(Invoice, actor, invoice_id, lock=True)
    allowed, reason = can_approve_invoice(invoice)
    if not allowed:
        raise InvalidStateTransition(reason, invoice_id=invoice.pk)

    now = timezone.now()
    claimed = Invoice.objects.filter(pk=invoice.pk, status=Invoice.Status.DRAFT).update(
        status=Invoice.Status.APPROVED,
        approved_at=now,
        approved_by=actor.user,
        updated_at=now,
    )
    if not claimed:
        raise InvalidStateTransition(
            f"Invoice {invoice.invoice_number} was approved concurrently.",
            invoice_id=invoice.pk,
        )

    lines = list(invoice.lines.select_related("product").order_by("product_id", "line_no"))
    if not lines:
        raise ValidationError("Cannot approve an invoice without lines.")
    if invoice.total_amount <= 0:
        raise ValidationError("Cannot approve an invoice with a zero total.")

    direction = (
        StockMovement.Direction.OUT
        if invoice.type == Invoice.Type.SALE
        else StockMovement.Direction.IN
    )
    for line in lines:
        apply_movement(
            actor,
            line.product,
            direction,
            line.quantity,
            invoice=invoice,
            reason=f"Invoice {invoice.invoice_number}",
        )

    partner = invoice.partner
    entry = post_entry(
        actor,
        kind=effects.INVOICE_ACCRUAL,
        amount=invoice.total_amount,
        origin=LedgerEntry.Origin.INVOICE,
        invoice=invoice,
        currency=invoice.currency,
        description=f"Invoice {invoice.invoice_number}",
        **{partner.partner_type: partner},
    )
    adjust_partner_cache(
        partner, effects.invoice_partner_effect(Invoice.Status.APPROVED, invoice.total_amount)
    )

    invoice.refresh_from_db()
    logger.info(
        "Invoice approved",
        extra={
            "company_id": actor.company.id,
            "invoice_id": invoice.pk,
            "invoice_number": invoice.invoice_number,
            "total": str(invoice.total_amount),
        },
    )
    return CommandResult.ok(invoice, entry=entry)


def _settle(actor, invoice_id, amount, account_id, description, occurred_at, *, purchase: bool):
    amount = to_amount(amount)

    invoice = get_for_company(Invoice, actor, invoice_id, lock=True)
    allowed, reason = (can_pay if purchase else can_collect)(invoice, amount)
    if not allowed:
        raise InvalidStateTransition(reason, invoice_id=invoice.pk)

    account = get_for_company(Account, actor, account_id, lock=True)
    if account.currency != invoice.currency:
        raise ValidationError(
            f"Account currency {account.currency} does not match invoice currency {invoice.currency}."
        )

    partner = invoice.partner
    if purchase:
        if account.balance < amount:
            raise InsufficientFunds(account, amount)
        entry = post_entry(
            actor,
            kind=effects.EXPENSE,
            amount=amount,
            origin=LedgerEntry.Origin.INVOICE,
            source_account=account,
            supplier=partner,
            invoice=invoice,
            description=description or f"Payment for invoice {invoice.invoice_number}",
            occurred_at=occurred_at,
        )
    else:
        entry = post_entry(
            actor,
            kind=effects.INCOME,
            amount=amount,
            origin=LedgerEntry.Origin.INVOICE,
            target_account=account,
            customer=partner,
            invoice=invoice,
            description=description or f"Collection for invoice {invoice.invoice_number}",
            occurred_at=occurred_at,
        )

    invoice.paid_amount += amount
    if invoice.paid_amount >= invoice.total_amount:
        invoice.status = Invoice.Status.PAID
    invoice.save(update_fields=["paid_amount", "status", "updated_at"])

    logger.info(
        "Invoice %s",
        "paid" if purchase else "collected",
        extra={
            "company_id": actor.company.id,
            "invoice_id": invoice.pk,
            "amount": str(amount),
            "paid_amount": str(invoice.paid_amount),
            "status": invoice.status,
        },
    )
    account.refresh_from_db()
    return CommandResult.ok({"invoice": invoice, "account": account}, entry=entry)


@ledger_command
def collect_on_invoice(
    actor: ActorContext,
    invoice_id,
    amount,
    account_id,
    description: str = "",
    occurred_at=None,
) -> CommandResult:
    """Record money received from the customer against a sale invoice."""
    require(actor, "invoices.collect")
    return _settle(actor, invoice_id, amount, account_id, description, occurred_at, purchase=False)


@ledger_command
def pay_invoice(
    actor: ActorContext,
    invoice_id,
    amount,
    account_id,
    description: str = "",
    occurred_at=None,
) -> CommandResult:
    """Record money paid to the supplier against a purchase invoice."""
    require(actor, "invoices.collect")
    return _settle(actor, invoice_id, amount, account_id, description, occurred_at, purchase=True)


@ledger_command
def cancel_invoice(actor: ActorContext, invoice_id) -> CommandResult:
    """Cancel an invoice, reversing its effects. The row is kept."""
    require(actor, "invoices.cancel")

    invoice = get_for_company(Invoice, actor, invoice_id, lock=True)
    allowed, reason = can_cancel_invoice(invoice)
    if not allowed:
        raise InvalidStateTransition(reason, invoice_id=invoice.pk)

    cancelled = []
    if invoice.is_posted:
        cancelled = _reverse_invoice(actor, invoice)
    else:
        invoice.status = Invoice.Status.CANCELED
        invoice.canceled_at = timezone.now()
        invoice.canceled_by = actor.user
        invoice.save(update_fields=["status", "canceled_at", "canceled_by", "updated_at"])

    logger.info(
        "Invoice canceled",
        extra={"company_id": actor.company.id, "invoice_id": invoice.pk},
    )
    return CommandResult.ok(invoice, entry=cancelled[0] if cancelled else None)


@ledger_command
def delete_invoice(actor: ActorContext, invoice_id) -> CommandResult:
    """
    Delete an invoice. Drafts go straight away; approved or paid invoices
    are admin-only and are fully reversed first.
    """
    require(actor, "invoices.create")

    invoice = get_for_company(Invoice, actor, invoice_id, lock=True)
    if invoice.is_posted:
        require(actor, "invoices.cancel")
        _reverse_invoice(actor, invoice)

    invoice_pk = invoice.pk
    number = invoice.invoice_number
    invoice.delete()

    logger.info(
        "Invoice deleted",
        extra={"company_id": actor.company.id, "invoice_id": invoice_pk, "invoice_number": number},
    )
    return CommandResult.ok({"id": invoice_pk, "invoice_number": number})


@ledger_command
def set_invoice_status(actor: ActorContext, invoice_id, status: str) -> CommandResult:
    """
    Overwrite an invoice's status without moving stock or money.

    This can desynchronize partner balances from the ledger, so it is
    admin-only and always followed by a company reconciliation.
    """
    require(actor, "invoices.override_status")
    require_admin(actor)

    if status not in Invoice.Status.values:
        raise ValidationError(f"Unknown invoice status '{status}'.")

    invoice = get_for_company(Invoice, actor, invoice_id, lock=True)
    previous = invoice.status
    invoice.status = status
    invoice.save(update_fields=["status", "updated_at"])

    logger.warning(
        "Invoice status overridden manually",
        extra={
            "company_id": actor.company.id,
            "invoice_id": invoice.pk,
            "from_status": previous,
            "to_status": status,
            "user_id": actor.user.pk,
        },
    )

    if settings.RECONCILE_INLINE:
        reconcile_company(
            actor.company,
            trigger=ReconciliationRun.Trigger.STATUS_OVERRIDE,
            requested_by=actor.user,
        )
    else:
        company_id = actor.company.id
        transaction.on_commit(
            lambda: reconcile_company_balances.delay(
                company_id, trigger=ReconciliationRun.Trigger.STATUS_OVERRIDE,
            )
        )

    invoice.refresh_from_db()
    return CommandResult.ok(invoice)
