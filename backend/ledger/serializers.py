# ledger/serializers.py
"""
Serializers for the ledger API.

Input serializers only validate shape; business rules live in
ledger.commands.
"""

from rest_framework import serializers

from .models import Account, Customer, LedgerEntry, Supplier


MONEY = dict(max_digits=14, decimal_places=2)


# =============================================================================
# Output
# =============================================================================

class AccountSerializer(serializers.ModelSerializer):
    customer_id = serializers.IntegerField(read_only=True, allow_null=True)
    supplier_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = Account
        fields = [
            "id",
            "public_id",
            "name",
            "type",
            "currency",
            "balance",
            "customer_id",
            "supplier_id",
            "bank_name",
            "iban",
            "credit_limit",
            "cutoff_day",
            "payment_day",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PartnerSerializer(serializers.ModelSerializer):
    class Meta:
        fields = [
            "id",
            "public_id",
            "name",
            "email",
            "phone",
            "currency",
            "balance",
            "credit_limit",
        ]
        read_only_fields = fields


class CustomerSerializer(PartnerSerializer):
    class Meta(PartnerSerializer.Meta):
        model = Customer


class SupplierSerializer(PartnerSerializer):
    class Meta(PartnerSerializer.Meta):
        model = Supplier


class LedgerEntrySerializer(serializers.ModelSerializer):
    source_account_id = serializers.IntegerField(read_only=True, allow_null=True)
    target_account_id = serializers.IntegerField(read_only=True, allow_null=True)
    customer_id = serializers.IntegerField(read_only=True, allow_null=True)
    supplier_id = serializers.IntegerField(read_only=True, allow_null=True)
    related_invoice_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = LedgerEntry
        fields = [
            "id",
            "public_id",
            "kind",
            "origin",
            "amount",
            "currency",
            "occurred_at",
            "description",
            "source_account_id",
            "target_account_id",
            "customer_id",
            "supplier_id",
            "related_invoice_id",
            "cancelled",
            "cancelled_at",
            "created_at",
        ]
        read_only_fields = fields


# =============================================================================
# Input
# =============================================================================

class AccountCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    type = serializers.ChoiceField(choices=Account.AccountType.choices, default=Account.AccountType.CASH)
    currency = serializers.CharField(max_length=3, required=False)
    opening_balance = serializers.DecimalField(**MONEY, default=0)
    partner_type = serializers.ChoiceField(choices=["customer", "supplier"], required=False)
    partner_name = serializers.CharField(max_length=200, required=False)
    partner_email = serializers.EmailField(required=False)
    bank_name = serializers.CharField(max_length=120, required=False)
    iban = serializers.CharField(max_length=34, required=False)
    credit_limit = serializers.DecimalField(**MONEY, required=False, allow_null=True)
    cutoff_day = serializers.IntegerField(min_value=1, max_value=31, required=False, allow_null=True)
    payment_day = serializers.IntegerField(min_value=1, max_value=31, required=False, allow_null=True)

    def validate(self, attrs):
        if attrs.get("type") == Account.AccountType.PARTNER and not attrs.get("partner_type"):
            raise serializers.ValidationError({"partner_type": "Required for partner-linked accounts."})
        return attrs


class AccountUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200, required=False)
    bank_name = serializers.CharField(max_length=120, required=False, allow_blank=True)
    iban = serializers.CharField(max_length=34, required=False, allow_blank=True)
    credit_limit = serializers.DecimalField(**MONEY, required=False, allow_null=True)
    cutoff_day = serializers.IntegerField(min_value=1, max_value=31, required=False, allow_null=True)
    payment_day = serializers.IntegerField(min_value=1, max_value=31, required=False, allow_null=True)
    balance = serializers.DecimalField(**MONEY, required=False)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)
    confirmation = serializers.BooleanField(default=False)


class BalanceAdjustSerializer(serializers.Serializer):
    new_balance = serializers.DecimalField(**MONEY)
    reason = serializers.CharField(max_length=255, allow_blank=True, default="")
    confirmation = serializers.BooleanField(default=False)


class PartnerBalanceAdjustSerializer(BalanceAdjustSerializer):
    partner_type = serializers.ChoiceField(choices=["customer", "supplier"])
    partner_id = serializers.IntegerField()


class TransferSerializer(serializers.Serializer):
    source_account_id = serializers.IntegerField()
    target_account_id = serializers.IntegerField()
    amount = serializers.DecimalField(**MONEY)
    description = serializers.CharField(max_length=255, allow_blank=True, default="")
    occurred_at = serializers.DateTimeField(required=False)


class ManualTransactionSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=[LedgerEntry.Kind.INCOME, LedgerEntry.Kind.EXPENSE])
    amount = serializers.DecimalField(**MONEY)
    account_id = serializers.IntegerField(required=False, allow_null=True)
    customer_id = serializers.IntegerField(required=False, allow_null=True)
    supplier_id = serializers.IntegerField(required=False, allow_null=True)
    description = serializers.CharField(max_length=255, allow_blank=True, default="")
    occurred_at = serializers.DateTimeField(required=False)


class ManualTransactionUpdateSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(
        choices=[LedgerEntry.Kind.INCOME, LedgerEntry.Kind.EXPENSE], required=False
    )
    amount = serializers.DecimalField(**MONEY, required=False)
    account_id = serializers.IntegerField(required=False, allow_null=True)
    customer_id = serializers.IntegerField(required=False, allow_null=True)
    supplier_id = serializers.IntegerField(required=False, allow_null=True)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True)
    occurred_at = serializers.DateTimeField(required=False)
