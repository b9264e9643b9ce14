# invoicing/serializers.py
"""
Serializers for the invoicing and POS API.

The actual business logic happens in commands.py and pos_commands.py.
"""

from rest_framework import serializers

from .models import Invoice, InvoiceLine, PosSale, PosSaleLine, PurchaseOrder, PurchaseOrderLine


MONEY = dict(max_digits=14, decimal_places=2)
QUANTITY = dict(max_digits=12, decimal_places=3)
PERCENT = dict(max_digits=5, decimal_places=2)


# =============================================================================
# Output
# =============================================================================

class InvoiceLineSerializer(serializers.ModelSerializer):
    product_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = InvoiceLine
        fields = [
            "line_no",
            "product_id",
            "description",
            "quantity",
            "unit_price",
            "discount_percent",
            "vat_percent",
            "net_amount",
            "vat_amount",
            "line_total",
        ]
        read_only_fields = fields


class InvoiceSerializer(serializers.ModelSerializer):
    customer_id = serializers.IntegerField(read_only=True, allow_null=True)
    supplier_id = serializers.IntegerField(read_only=True, allow_null=True)
    outstanding = serializers.DecimalField(**MONEY, read_only=True)
    lines = InvoiceLineSerializer(many=True, read_only=True)

    class Meta:
        model = Invoice
        fields = [
            "id",
            "public_id",
            "type",
            "status",
            "invoice_number",
            "customer_id",
            "supplier_id",
            "date",
            "due_date",
            "currency",
            "notes",
            "subtotal",
            "vat_total",
            "total_amount",
            "paid_amount",
            "outstanding",
            "approved_at",
            "canceled_at",
            "lines",
        ]
        read_only_fields = fields


class PosSaleLineSerializer(serializers.ModelSerializer):
    product_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = PosSaleLine
        fields = ["product_id", "quantity", "unit_price", "line_total"]
        read_only_fields = fields


class PosSaleSerializer(serializers.ModelSerializer):
    account_id = serializers.IntegerField(read_only=True, allow_null=True)
    customer_id = serializers.IntegerField(read_only=True, allow_null=True)
    ledger_entry_id = serializers.IntegerField(read_only=True, allow_null=True)
    lines = PosSaleLineSerializer(many=True, read_only=True)

    class Meta:
        model = PosSale
        fields = [
            "id",
            "public_id",
            "account_id",
            "customer_id",
            "on_credit",
            "total_amount",
            "currency",
            "ledger_entry_id",
            "cancelled",
            "cancelled_at",
            "created_at",
            "lines",
        ]
        read_only_fields = fields


class PurchaseOrderLineSerializer(serializers.ModelSerializer):
    product_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = PurchaseOrderLine
        fields = [
            "line_no",
            "product_id",
            "quantity",
            "unit_price",
            "discount_percent",
            "vat_percent",
            "line_total",
        ]
        read_only_fields = fields


class PurchaseOrderSerializer(serializers.ModelSerializer):
    supplier_id = serializers.IntegerField(read_only=True)
    invoice_id = serializers.IntegerField(read_only=True, allow_null=True)
    lines = PurchaseOrderLineSerializer(many=True, read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            "id",
            "public_id",
            "order_number",
            "status",
            "supplier_id",
            "date",
            "expected_delivery_date",
            "currency",
            "notes",
            "total_amount",
            "invoice_id",
            "lines",
        ]
        read_only_fields = fields


# =============================================================================
# Input
# =============================================================================

class InvoiceLineInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.DecimalField(**QUANTITY)
    unit_price = serializers.DecimalField(**MONEY, required=False)
    discount_percent = serializers.DecimalField(**PERCENT, min_value=0, max_value=100, required=False)
    vat_percent = serializers.DecimalField(**PERCENT, min_value=0, required=False)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True)


class InvoiceCreateSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=Invoice.Type.choices)
    partner_id = serializers.IntegerField()
    lines = InvoiceLineInputSerializer(many=True, allow_empty=False)
    invoice_number = serializers.CharField(max_length=50, required=False, allow_blank=True)
    date = serializers.DateField(required=False)
    due_date = serializers.DateField(required=False, allow_null=True)
    currency = serializers.CharField(max_length=3, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class InvoiceUpdateSerializer(serializers.Serializer):
    partner_id = serializers.IntegerField(required=False)
    lines = InvoiceLineInputSerializer(many=True, allow_empty=False, required=False)
    invoice_number = serializers.CharField(max_length=50, required=False)
    date = serializers.DateField(required=False)
    due_date = serializers.DateField(required=False, allow_null=True)
    currency = serializers.CharField(max_length=3, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class SettlementSerializer(serializers.Serializer):
    amount = serializers.DecimalField(**MONEY)
    account_id = serializers.IntegerField()
    description = serializers.CharField(max_length=255, allow_blank=True, default="")
    occurred_at = serializers.DateTimeField(required=False)


class StatusOverrideSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Invoice.Status.choices)


class PosItemInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.DecimalField(**QUANTITY)
    unit_price = serializers.DecimalField(**MONEY, required=False)


class PosSaleCreateSerializer(serializers.Serializer):
    items = PosItemInputSerializer(many=True, allow_empty=False)
    account_id = serializers.IntegerField(required=False, allow_null=True)
    customer_id = serializers.IntegerField(required=False, allow_null=True)
    on_credit = serializers.BooleanField(default=False)
    description = serializers.CharField(max_length=255, allow_blank=True, default="")

    def validate(self, attrs):
        if attrs.get("on_credit") and not attrs.get("customer_id"):
            raise serializers.ValidationError({"customer_id": "Required for credit sales."})
        if not attrs.get("on_credit") and not attrs.get("account_id"):
            raise serializers.ValidationError({"account_id": "Required for cash sales."})
        return attrs


class PurchaseOrderCreateSerializer(serializers.Serializer):
    supplier_id = serializers.IntegerField()
    lines = InvoiceLineInputSerializer(many=True, allow_empty=False)
    order_number = serializers.CharField(max_length=50, required=False, allow_blank=True)
    date = serializers.DateField(required=False)
    expected_delivery_date = serializers.DateField(required=False, allow_null=True)
    currency = serializers.CharField(max_length=3, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class PurchaseOrderUpdateSerializer(serializers.Serializer):
    supplier_id = serializers.IntegerField(required=False)
    lines = InvoiceLineInputSerializer(many=True, allow_empty=False, required=False)
    date = serializers.DateField(required=False)
    expected_delivery_date = serializers.DateField(required=False, allow_null=True)
    currency = serializers.CharField(max_length=3, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
