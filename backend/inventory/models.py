# inventory/models.py

from decimal import Decimal
import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q

from accounts.models import Company
from ledger.models import AuditTrailModel


class Product(models.Model):
    """
    A stocked or service item.

    `quantity` is opening stock plus every `in` movement minus every `out`
    movement, stored denormalized. It never goes negative while
    `track_stock` is on.
    """

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="products")
    public_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    name = models.CharField(max_length=200)
    sku = models.CharField(max_length=64, blank=True, default="")
    unit = models.CharField(max_length=20, default="pcs")
    quantity = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal("0"))
    track_stock = models.BooleanField(default=True)
    sale_price = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    purchase_price = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    vat_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [models.Index(fields=["company", "sku"], name="inv_product_company_sku_idx")]

    def __str__(self):
        return self.name


class StockMovement(AuditTrailModel):
    """Write-once record of one quantity change."""

    class Direction(models.TextChoices):
        IN = "in", "In"
        OUT = "out", "Out"

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="stock_movements")
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="movements")
    direction = models.CharField(max_length=3, choices=Direction.choices)
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    invoice = models.ForeignKey(
        "invoicing.Invoice",
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="stock_movements",
    )
    pos_sale = models.ForeignKey(
        "invoicing.PosSale",
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="stock_movements",
    )
    reason = models.CharField(max_length=255, blank=True, default="")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                check=Q(quantity__gt=0),
                name="chk_movement_quantity_positive",
            ),
        ]
        indexes = [models.Index(fields=["company", "product"], name="inv_move_company_product_idx")]

    def __str__(self):
        return f"{self.direction} {self.quantity} x {self.product_id}"

    @property
    def signed_quantity(self) -> Decimal:
        return self.quantity if self.direction == self.Direction.IN else -self.quantity
