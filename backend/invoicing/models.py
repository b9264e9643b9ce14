# invoicing/models.py

from decimal import Decimal
import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q

from accounts.models import Company
from inventory.models import Product
from ledger.models import Account, Customer, LedgerEntry, Supplier
from ledger.money import quantize

HUNDRED = Decimal("100")


def compute_line_amounts(quantity, unit_price, discount_percent, vat_percent):
    """
    Return (net, vat, total) for one line, each quantized to cents.

    net   = quantity * unit_price * (1 - discount% / 100)
    vat   = net * vat% / 100
    total = net + vat
    """
    net = quantize(
        Decimal(quantity) * Decimal(unit_price) * (1 - Decimal(discount_percent) / HUNDRED)
    )
    vat = quantize(net * Decimal(vat_percent) / HUNDRED)
    return net, vat, net + vat


class Invoice(models.Model):
    """
    A sale invoice (to a customer) or purchase invoice (from a supplier).

    Only approved and paid invoices count toward the partner balance.
    """

    class Type(models.TextChoices):
        SALE = "sale", "Sale"
        PURCHASE = "purchase", "Purchase"

    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        APPROVED = "approved", "Approved"
        PAID = "paid", "Paid"
        CANCELED = "canceled", "Canceled"

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="invoices")
    public_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    type = models.CharField(max_length=10, choices=Type.choices)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.DRAFT)
    invoice_number = models.CharField(max_length=50)

    customer = models.ForeignKey(
        Customer, null=True, blank=True, on_delete=models.PROTECT, related_name="invoices"
    )
    supplier = models.ForeignKey(
        Supplier, null=True, blank=True, on_delete=models.PROTECT, related_name="invoices"
    )

    date = models.DateField()
    due_date = models.DateField(null=True, blank=True)
    currency = models.CharField(max_length=3, default="TRY")
    notes = models.TextField(blank=True, default="")

    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    vat_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    paid_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    canceled_at = models.DateTimeField(null=True, blank=True)
    canceled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-date", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "type", "invoice_number"],
                name="uniq_invoice_number_per_company_type",
            ),
            models.CheckConstraint(
                check=(
                    Q(type="sale", customer__isnull=False, supplier__isnull=True)
                    | Q(type="purchase", supplier__isnull=False, customer__isnull=True)
                ),
                name="chk_invoice_partner_matches_type",
            ),
            models.CheckConstraint(
                check=Q(paid_amount__gte=0),
                name="chk_invoice_paid_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "status"], name="inv_invoice_co_status_idx"),
            models.Index(fields=["company", "type", "date"], name="inv_invoice_co_type_date_idx"),
        ]

    def __str__(self):
        return f"{self.get_type_display()} #{self.invoice_number}"

    @property
    def partner(self):
        return self.customer if self.type == self.Type.SALE else self.supplier

    @property
    def outstanding(self) -> Decimal:
        return max(self.total_amount - self.paid_amount, Decimal("0.00"))

    @property
    def is_posted(self) -> bool:
        """Approved or paid: stock and ledger effects are live."""
        return self.status in (self.Status.APPROVED, self.Status.PAID)

    def recalculate_totals(self, lines=None):
        lines = list(self.lines.all()) if lines is None else lines
        self.subtotal = sum((line.net_amount for line in lines), Decimal("0.00"))
        self.vat_total = sum((line.vat_amount for line in lines), Decimal("0.00"))
        self.total_amount = sum((line.line_total for line in lines), Decimal("0.00"))


class InvoiceLine(models.Model):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="lines")
    line_no = models.PositiveIntegerField()
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="invoice_lines")
    description = models.CharField(max_length=255, blank=True, default="")
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    unit_price = models.DecimalField(max_digits=14, decimal_places=2)
    discount_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0"))
    vat_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0"))
    net_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    vat_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    line_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["invoice", "line_no"]
        constraints = [
            models.UniqueConstraint(fields=["invoice", "line_no"], name="uniq_invoice_line_no"),
            models.CheckConstraint(check=Q(quantity__gt=0), name="chk_invoice_line_quantity_positive"),
            models.CheckConstraint(check=Q(unit_price__gte=0), name="chk_invoice_line_price_non_negative"),
        ]

    def __str__(self):
        return f"{self.invoice_id} L{self.line_no}"

    def compute_amounts(self):
        self.net_amount, self.vat_amount, self.line_total = compute_line_amounts(
            self.quantity, self.unit_price, self.discount_percent, self.vat_percent
        )


class PosSale(models.Model):
    """A retail sale paid in cash (to an account) or on customer credit."""

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="pos_sales")
    public_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    account = models.ForeignKey(
        Account, null=True, blank=True, on_delete=models.PROTECT, related_name="pos_sales"
    )
    customer = models.ForeignKey(
        Customer, null=True, blank=True, on_delete=models.PROTECT, related_name="pos_sales"
    )
    on_credit = models.BooleanField(default=False)
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="TRY")
    ledger_entry = models.OneToOneField(
        LedgerEntry, null=True, blank=True, on_delete=models.PROTECT, related_name="pos_sale"
    )

    cancelled = models.BooleanField(default=False)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                check=Q(on_credit=False) | Q(customer__isnull=False),
                name="chk_pos_credit_needs_customer",
            ),
        ]
        indexes = [models.Index(fields=["company", "cancelled"], name="pos_sale_co_cancelled_idx")]

    def __str__(self):
        return f"POS {self.public_id} {self.total_amount} {self.currency}"


class PosSaleLine(models.Model):
    sale = models.ForeignKey(PosSale, on_delete=models.CASCADE, related_name="lines")
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="pos_lines")
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    unit_price = models.DecimalField(max_digits=14, decimal_places=2)
    line_total = models.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        ordering = ["sale", "id"]

    def __str__(self):
        return f"{self.product_id} x {self.quantity}"


class PurchaseOrder(models.Model):
    """
    An order placed with a supplier. It has no stock or ledger effect;
    converting it produces a draft purchase invoice.
    """

    class Status(models.TextChoices):
        OPEN = "open", "Open"
        DELIVERED = "delivered", "Delivered"

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="purchase_orders")
    public_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    order_number = models.CharField(max_length=50)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.OPEN)
    supplier = models.ForeignKey(Supplier, on_delete=models.PROTECT, related_name="purchase_orders")

    date = models.DateField()
    expected_delivery_date = models.DateField(null=True, blank=True)
    currency = models.CharField(max_length=3, default="TRY")
    notes = models.TextField(blank=True, default="")
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    invoice = models.OneToOneField(
        Invoice, null=True, blank=True, on_delete=models.SET_NULL, related_name="purchase_order"
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-date", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "order_number"],
                name="uniq_purchase_order_number_per_company",
            ),
        ]

    def __str__(self):
        return f"PO #{self.order_number}"


class PurchaseOrderLine(models.Model):
    order = models.ForeignKey(PurchaseOrder, on_delete=models.CASCADE, related_name="lines")
    line_no = models.PositiveIntegerField()
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="order_lines")
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    unit_price = models.DecimalField(max_digits=14, decimal_places=2)
    discount_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0"))
    vat_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0"))
    line_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["order", "line_no"]
        constraints = [
            models.UniqueConstraint(fields=["order", "line_no"], name="uniq_purchase_order_line_no"),
        ]

    def __str__(self):
        return f"{self.order_id} L{self.line_no}"
