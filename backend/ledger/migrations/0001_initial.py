import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def _partner_fields():
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
        ("name", models.CharField(max_length=200)),
        ("email", models.EmailField(blank=True, default="", max_length=254)),
        ("phone", models.CharField(blank=True, default="", max_length=50)),
        ("currency", models.CharField(default="TRY", max_length=3)),
        ("balance", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
        ("credit_limit", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
        ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="+", to="accounts.company")),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Customer",
            fields=_partner_fields(),
            options={
                "ordering": ["name"],
                "abstract": False,
                "indexes": [models.Index(fields=["company", "email"], name="ledger_cust_company_email_idx")],
            },
        ),
        migrations.CreateModel(
            name="Supplier",
            fields=_partner_fields(),
            options={
                "ordering": ["name"],
                "abstract": False,
                "indexes": [models.Index(fields=["company", "email"], name="ledger_supp_company_email_idx")],
            },
        ),
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("name", models.CharField(max_length=200)),
                ("type", models.CharField(choices=[("cash", "Cash"), ("bank", "Bank"), ("credit_card", "Credit card"), ("personnel", "Personnel"), ("partner", "Partner-linked")], default="cash", max_length=20)),
                ("currency", models.CharField(default="TRY", max_length=3)),
                ("balance", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("bank_name", models.CharField(blank=True, default="", max_length=120)),
                ("iban", models.CharField(blank=True, default="", max_length=34)),
                ("credit_limit", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("cutoff_day", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("payment_day", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="ledger_accounts", to="accounts.company")),
                ("customer", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="accounts", to="ledger.customer")),
                ("supplier", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="accounts", to="ledger.supplier")),
            ],
            options={
                "ordering": ["name"],
                "indexes": [models.Index(fields=["company", "type"], name="ledger_acct_company_type_idx")],
                "constraints": [
                    models.CheckConstraint(
                        check=models.Q(("customer__isnull", False), ("supplier__isnull", False), _negated=True),
                        name="chk_account_single_partner",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("kind", models.CharField(choices=[("income", "Income"), ("expense", "Expense"), ("transfer", "Transfer"), ("invoice_accrual", "Invoice accrual"), ("receivable_adjustment", "Receivable adjustment")], max_length=30)),
                ("origin", models.CharField(choices=[("manual", "Manual"), ("opening_balance", "Opening balance"), ("adjustment", "Balance adjustment"), ("transfer", "Transfer"), ("invoice", "Invoice"), ("pos", "POS sale")], default="manual", max_length=20)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("currency", models.CharField(default="TRY", max_length=3)),
                ("occurred_at", models.DateTimeField()),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("cancelled", models.BooleanField(default=False)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="ledger_entries", to="accounts.company")),
                ("source_account", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="outgoing_entries", to="ledger.account")),
                ("target_account", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="incoming_entries", to="ledger.account")),
                ("customer", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="ledger_entries", to="ledger.customer")),
                ("supplier", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="ledger_entries", to="ledger.supplier")),
                ("cancelled_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name_plural": "ledger entries",
                "ordering": ["-occurred_at", "-id"],
                "indexes": [
                    models.Index(fields=["company", "cancelled"], name="ledger_entry_co_cancelled_idx"),
                    models.Index(fields=["company", "kind"], name="ledger_entry_co_kind_idx"),
                    models.Index(fields=["company", "occurred_at"], name="ledger_entry_co_occurred_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(check=models.Q(("amount__gt", 0)), name="chk_entry_amount_positive"),
                    models.CheckConstraint(
                        check=models.Q(("customer__isnull", False), ("supplier__isnull", False), _negated=True),
                        name="chk_entry_single_partner",
                    ),
                ],
            },
        ),
    ]
