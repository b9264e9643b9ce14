# invoicing/order_commands.py
"""
Purchase order commands.

An order only records what was asked of a supplier. Nothing moves until
it is converted: the conversion writes a draft purchase invoice with the
same lines and marks the order delivered. Stock and payables follow when
that invoice is approved.
"""

from decimal import Decimal
import logging

from django.utils import timezone

from accounts.authz import ActorContext, require
from inventory.models import Product
from invoicing.commands import HUNDRED, build_draft_invoice
from invoicing.models import Invoice, PurchaseOrder, PurchaseOrderLine, compute_line_amounts
from ledger.exceptions import InvalidStateTransition, ValidationError
from ledger.lookups import get_for_company
from ledger.models import Supplier
from ledger.money import quantize, to_decimal
from ledger.unit_of_work import CommandResult, ledger_command

logger = logging.getLogger(__name__)


def _next_order_number(actor: ActorContext) -> str:
    existing = PurchaseOrder.objects.filter(company=actor.company)
    n = existing.count() + 1
    while True:
        number = f"PO-{n:06d}"
        if not existing.filter(order_number=number).exists():
            return number
        n += 1


def _build_order_lines(actor: ActorContext, order: PurchaseOrder, lines_data) -> list[PurchaseOrderLine]:
    if not lines_data:
        raise ValidationError("An order needs at least one line.")

    lines = []
    for line_no, data in enumerate(lines_data, start=1):
        product = get_for_company(Product, actor, data.get("product_id"), label="product")
        quantity = to_decimal(data.get("quantity"), "quantity")
        if quantity <= 0:
            raise ValidationError(f"Line {line_no}: quantity must be greater than zero.")
        unit_price = quantize(to_decimal(data.get("unit_price", product.purchase_price), "unit_price"))
        if unit_price < 0:
            raise ValidationError(f"Line {line_no}: unit price cannot be negative.")
        discount = to_decimal(data.get("discount_percent", 0), "discount_percent")
        if not 0 <= discount <= HUNDRED:
            raise ValidationError(f"Line {line_no}: discount must be between 0 and 100.")
        vat = to_decimal(data.get("vat_percent", product.vat_rate), "vat_percent")
        if vat < 0:
            raise ValidationError(f"Line {line_no}: VAT cannot be negative.")

        _, _, total = compute_line_amounts(quantity, unit_price, discount, vat)
        lines.append(
            PurchaseOrderLine(
                order=order,
                line_no=line_no,
                product=product,
                quantity=quantity,
                unit_price=unit_price,
                discount_percent=discount,
                vat_percent=vat,
                line_total=total,
            )
        )
    return lines


def _replace_order_lines(actor: ActorContext, order: PurchaseOrder, lines_data) -> None:
    lines = _build_order_lines(actor, order, lines_data)
    order.lines.all().delete()
    PurchaseOrderLine.objects.bulk_create(lines)
    order.total_amount = sum((line.line_total for line in lines), Decimal("0.00"))


def _require_open(order: PurchaseOrder):
    if order.status != PurchaseOrder.Status.OPEN:
        raise InvalidStateTransition(
            f"Order {order.order_number} is {order.status}.", order_id=order.pk
        )


@ledger_command
def create_purchase_order(
    actor: ActorContext,
    supplier_id,
    lines,
    order_number: str = None,
    date=None,
    expected_delivery_date=None,
    currency: str = None,
    notes: str = "",
) -> CommandResult:
    require(actor, "invoices.create")

    supplier = get_for_company(Supplier, actor, supplier_id)
    order_number = (order_number or "").strip() or _next_order_number(actor)
    if PurchaseOrder.objects.filter(company=actor.company, order_number=order_number).exists():
        raise ValidationError(f"Order number {order_number} is already used.")

    order = PurchaseOrder(
        company=actor.company,
        order_number=order_number,
        supplier=supplier,
        date=date or timezone.localdate(),
        expected_delivery_date=expected_delivery_date,
        currency=(currency or supplier.currency).upper(),
        notes=notes or "",
        created_by=actor.user,
    )
    order.save()
    _replace_order_lines(actor, order, lines)
    order.save(update_fields=["total_amount", "updated_at"])

    logger.info(
        "Purchase order created",
        extra={
            "company_id": actor.company.id,
            "order_id": order.pk,
            "total": str(order.total_amount),
        },
    )
    return CommandResult.ok(order)


@ledger_command
def update_purchase_order(actor: ActorContext, order_id, **changes) -> CommandResult:
    """Edit an open order. `lines`, when given, replaces every line."""
    require(actor, "invoices.create")

    order = get_for_company(PurchaseOrder, actor, order_id, lock=True, label="purchase order")
    _require_open(order)

    if "supplier_id" in changes:
        order.supplier = get_for_company(Supplier, actor, changes.pop("supplier_id"))
    lines = changes.pop("lines", None)
    for field in ("date", "expected_delivery_date", "currency", "notes"):
        if field in changes:
            setattr(order, field, changes.pop(field))
    if changes:
        raise ValidationError(f"Fields cannot be changed: {', '.join(sorted(changes))}.")

    if lines is not None:
        _replace_order_lines(actor, order, lines)
    order.save()
    return CommandResult.ok(order)


@ledger_command
def delete_purchase_order(actor: ActorContext, order_id) -> CommandResult:
    """Delete an order. A converted order's invoice is kept."""
    require(actor, "invoices.create")

    order = get_for_company(PurchaseOrder, actor, order_id, lock=True, label="purchase order")
    order_pk, number = order.pk, order.order_number
    order.delete()

    logger.info(
        "Purchase order deleted",
        extra={"company_id": actor.company.id, "order_id": order_pk, "order_number": number},
    )
    return CommandResult.ok({"id": order_pk, "order_number": number})


@ledger_command
def convert_order_to_invoice(actor: ActorContext, order_id) -> CommandResult:
    """Write a draft purchase invoice from an open order and mark it delivered."""
    require(actor, "invoices.create")

    order = get_for_company(PurchaseOrder, actor, order_id, lock=True, label="purchase order")
    _require_open(order)

    invoice = build_draft_invoice(
        actor,
        Invoice.Type.PURCHASE,
        order.supplier_id,
        [
            {
                "product_id": line.product_id,
                "quantity": line.quantity,
                "unit_price": line.unit_price,
                "discount_percent": line.discount_percent,
                "vat_percent": line.vat_percent,
            }
            for line in order.lines.all()
        ],
        currency=order.currency,
        notes=order.notes or f"From purchase order {order.order_number}",
    )

    order.status = PurchaseOrder.Status.DELIVERED
    order.invoice = invoice
    order.save(update_fields=["status", "invoice", "updated_at"])

    logger.info(
        "Purchase order converted",
        extra={
            "company_id": actor.company.id,
            "order_id": order.pk,
            "invoice_id": invoice.pk,
            "invoice_number": invoice.invoice_number,
        },
    )
    return CommandResult.ok(invoice)
