# invoicing/pos_commands.py
"""
Point-of-sale commands.

A cash sale posts income to the till account. A credit sale posts a
receivable_adjustment for the customer instead and must respect the
customer's credit limit. Stock always goes through inventory.stock, so
an oversell fails with InsufficientStock rather than clamping at zero.
"""

from decimal import Decimal
import logging

from django.utils import timezone

from accounts.authz import ActorContext, require
from inventory.models import Product, StockMovement
from inventory.stock import apply_movement
from invoicing.models import PosSale, PosSaleLine
from ledger import effects
from ledger.exceptions import InvalidStateTransition, ValidationError
from ledger.lookups import get_for_company, get_optional_for_company
from ledger.models import Account, Customer, LedgerEntry
from ledger.money import quantize, to_decimal
from ledger.posting import affected_documents, cancel_entries, post_entry
from ledger.unit_of_work import CommandResult, ledger_command
from reconciliation.service import reconcile_affected

logger = logging.getLogger(__name__)


def _build_pos_lines(actor: ActorContext, items) -> list[PosSaleLine]:
    if not items:
        raise ValidationError("A sale needs at least one item.")

    lines = []
    for index, item in enumerate(items, start=1):
        product = get_for_company(Product, actor, item.get("product_id"), label="product")
        quantity = to_decimal(item.get("quantity"), "quantity")
        if quantity <= 0:
            raise ValidationError(f"Item {index}: quantity must be greater than zero.")
        unit_price = quantize(to_decimal(item.get("unit_price", product.sale_price), "unit_price"))
        if unit_price < 0:
            raise ValidationError(f"Item {index}: price cannot be negative.")
        lines.append(
            PosSaleLine(
                product=product,
                quantity=quantity,
                unit_price=unit_price,
                line_total=quantize(quantity * unit_price),
            )
        )
    return lines


@ledger_command
def record_pos_sale(
    actor: ActorContext,
    items,
    account_id=None,
    customer_id=None,
    on_credit: bool = False,
    description: str = "",
) -> CommandResult:
    require(actor, "pos.sell")

    lines = _build_pos_lines(actor, items)
    total = sum((line.line_total for line in lines), Decimal("0.00"))
    if total <= 0:
        raise ValidationError("Sale total must be greater than zero.")

    # Products are locked before the customer, the same order approval
    # and settlement use. Cash income only moves the account through F().
    customer = get_optional_for_company(Customer, actor, customer_id)
    account = None
    if on_credit:
        if customer is None:
            raise ValidationError("A credit sale requires a customer.")
    else:
        if account_id in (None, ""):
            raise ValidationError("A cash sale requires an account.")
        account = get_for_company(Account, actor, account_id)

    currency = account.currency if account else customer.currency
    sale = PosSale.objects.create(
        company=actor.company,
        account=account,
        customer=customer,
        on_credit=on_credit,
        total_amount=total,
        currency=currency,
        created_by=actor.user,
    )
    for line in lines:
        line.sale = sale
    PosSaleLine.objects.bulk_create(lines)

    for line in sorted(lines, key=lambda l: l.product_id):
        apply_movement(
            actor,
            line.product,
            StockMovement.Direction.OUT,
            line.quantity,
            pos_sale=sale,
            reason=f"POS sale {sale.public_id}",
        )

    if on_credit:
        customer = get_for_company(Customer, actor, customer.pk, lock=True)
        if customer.has_credit_limit and customer.balance + total > customer.credit_limit:
            raise ValidationError(
                f"Credit limit exceeded for '{customer.name}': limit {customer.credit_limit}, "
                f"current balance {customer.balance}, new balance {customer.balance + total}.",
                customer_id=customer.pk,
            )
        entry = post_entry(
            actor,
            kind=effects.RECEIVABLE_ADJUSTMENT,
            amount=total,
            origin=LedgerEntry.Origin.POS,
            customer=customer,
            currency=currency,
            description=description or "POS credit sale",
        )
    else:
        # The customer, if any, stays on the sale; cash income carries no partner.
        entry = post_entry(
            actor,
            kind=effects.INCOME,
            amount=total,
            origin=LedgerEntry.Origin.POS,
            target_account=account,
            currency=currency,
            description=description or "POS sale",
        )

    sale.ledger_entry = entry
    sale.save(update_fields=["ledger_entry"])

    logger.info(
        "POS sale recorded",
        extra={
            "company_id": actor.company.id,
            "sale_id": str(sale.public_id),
            "total": str(total),
            "on_credit": on_credit,
            "items": len(lines),
        },
    )
    return CommandResult.ok(sale, entry=entry)


@ledger_command
def cancel_pos_sale(actor: ActorContext, sale_id) -> CommandResult:
    """Restore stock, cancel the sale's entry and recompute its balances."""
    require(actor, "pos.cancel")

    sale = get_for_company(PosSale, actor, sale_id, lock=True, label="POS sale")
    if sale.cancelled:
        raise InvalidStateTransition("Sale is already cancelled.", sale_id=str(sale.public_id))

    for line in sale.lines.select_related("product").order_by("product_id", "id"):
        apply_movement(
            actor,
            line.product,
            StockMovement.Direction.IN,
            line.quantity,
            pos_sale=sale,
            reason=f"POS sale cancelled: {sale.public_id}",
        )

    cancelled = []
    if sale.ledger_entry_id:
        entry = LedgerEntry.objects.select_for_update().get(pk=sale.ledger_entry_id)
        cancelled = cancel_entries(actor, [entry])
    reconcile_affected(*affected_documents(cancelled))

    sale.cancelled = True
    sale.cancelled_at = timezone.now()
    sale.cancelled_by = actor.user
    sale.save(update_fields=["cancelled", "cancelled_at", "cancelled_by"])

    logger.info(
        "POS sale cancelled",
        extra={"company_id": actor.company.id, "sale_id": str(sale.public_id)},
    )
    return CommandResult.ok(sale, entry=cancelled[0] if cancelled else None)
