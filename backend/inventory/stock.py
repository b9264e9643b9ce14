# inventory/stock.py
"""
Stock Movement Recorder.

apply_movement() locks the product row, changes its quantity and writes
the movement in the caller's unit of work. For tracked products an `out`
is a single conditional UPDATE (quantity >= n), so two concurrent sales
can never both take the last unit.
"""

from decimal import Decimal
import logging

from django.db.models import F
from django.utils import timezone

from inventory.models import Product, StockMovement
from ledger.exceptions import InsufficientStock, ValidationError

logger = logging.getLogger(__name__)


def apply_movement(
    actor,
    product: Product,
    direction: str,
    quantity: Decimal,
    *,
    invoice=None,
    pos_sale=None,
    reason: str = "",
) -> StockMovement:
    quantity = Decimal(quantity)
    if quantity <= 0:
        raise ValidationError("Quantity must be greater than zero.", product_id=product.pk)
    if direction not in StockMovement.Direction.values:
        raise ValidationError(f"Unknown stock direction '{direction}'.")

    locked = Product.objects.select_for_update().get(pk=product.pk, company=actor.company)
    now = timezone.now()

    if direction == StockMovement.Direction.OUT:
        qs = Product.objects.filter(pk=locked.pk)
        if locked.track_stock:
            qs = qs.filter(quantity__gte=quantity)
        updated = qs.update(quantity=F("quantity") - quantity, updated_at=now)
        if not updated:
            raise InsufficientStock(locked, quantity, locked.quantity)
    else:
        Product.objects.filter(pk=locked.pk).update(quantity=F("quantity") + quantity, updated_at=now)

    movement = StockMovement.objects.create(
        company=actor.company,
        product=locked,
        direction=direction,
        quantity=quantity,
        invoice=invoice,
        pos_sale=pos_sale,
        reason=reason,
        created_by=actor.user,
    )
    product.refresh_from_db(fields=["quantity", "updated_at"])
    return movement


def inverse_direction(direction: str) -> str:
    if direction == StockMovement.Direction.IN:
        return StockMovement.Direction.OUT
    return StockMovement.Direction.IN


def reverse_invoice_movements(actor, invoice) -> int:
    """
    Undo every movement of an invoice and delete the movements.

    Products are locked in primary-key order. Undoing a purchase whose
    stock was already sold raises InsufficientStock.
    """
    movements = list(
        StockMovement.objects.filter(company=actor.company, invoice=invoice).order_by("product_id", "pk")
    )
    now = timezone.now()
    for movement in movements:
        locked = Product.objects.select_for_update().get(pk=movement.product_id)
        qs = Product.objects.filter(pk=locked.pk)
        if movement.direction == StockMovement.Direction.IN:
            # Undoing an `in` takes stock out again.
            if locked.track_stock:
                qs = qs.filter(quantity__gte=movement.quantity)
            if not qs.update(quantity=F("quantity") - movement.quantity, updated_at=now):
                raise InsufficientStock(locked, movement.quantity, locked.quantity)
        else:
            qs.update(quantity=F("quantity") + movement.quantity, updated_at=now)

    if movements:
        StockMovement.objects.filter(pk__in=[m.pk for m in movements]).delete()

    logger.info(
        "Invoice stock movements reversed",
        extra={
            "company_id": actor.company.id,
            "invoice_id": invoice.pk,
            "movements": len(movements),
        },
    )
    return len(movements)
