import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        ("ledger", "0001_initial"),
        ("inventory", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("type", models.CharField(choices=[("sale", "Sale"), ("purchase", "Purchase")], max_length=10)),
                ("status", models.CharField(choices=[("draft", "Draft"), ("approved", "Approved"), ("paid", "Paid"), ("canceled", "Canceled")], default="draft", max_length=10)),
                ("invoice_number", models.CharField(max_length=50)),
                ("date", models.DateField()),
                ("due_date", models.DateField(blank=True, null=True)),
                ("currency", models.CharField(default="TRY", max_length=3)),
                ("notes", models.TextField(blank=True, default="")),
                ("subtotal", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("vat_total", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("total_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("paid_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("canceled_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="invoices", to="accounts.company")),
                ("customer", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="invoices", to="ledger.customer")),
                ("supplier", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="invoices", to="ledger.supplier")),
                ("approved_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("canceled_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-date", "-id"],
                "indexes": [
                    models.Index(fields=["company", "status"], name="inv_invoice_co_status_idx"),
                    models.Index(fields=["company", "type", "date"], name="inv_invoice_co_type_date_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "type", "invoice_number"), name="uniq_invoice_number_per_company_type"),
                    models.CheckConstraint(
                        check=(
                            models.Q(("type", "sale"), ("customer__isnull", False), ("supplier__isnull", True))
                            | models.Q(("type", "purchase"), ("supplier__isnull", False), ("customer__isnull", True))
                        ),
                        name="chk_invoice_partner_matches_type",
                    ),
                    models.CheckConstraint(check=models.Q(("paid_amount__gte", 0)), name="chk_invoice_paid_non_negative"),
                ],
            },
        ),
        migrations.CreateModel(
            name="InvoiceLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("line_no", models.PositiveIntegerField()),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("quantity", models.DecimalField(decimal_places=3, max_digits=12)),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=14)),
                ("discount_percent", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=5)),
                ("vat_percent", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=5)),
                ("net_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("vat_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("line_total", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("invoice", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lines", to="invoicing.invoice")),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="invoice_lines", to="inventory.product")),
            ],
            options={
                "ordering": ["invoice", "line_no"],
                "constraints": [
                    models.UniqueConstraint(fields=("invoice", "line_no"), name="uniq_invoice_line_no"),
                    models.CheckConstraint(check=models.Q(("quantity__gt", 0)), name="chk_invoice_line_quantity_positive"),
                    models.CheckConstraint(check=models.Q(("unit_price__gte", 0)), name="chk_invoice_line_price_non_negative"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PosSale",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("on_credit", models.BooleanField(default=False)),
                ("total_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("currency", models.CharField(default="TRY", max_length=3)),
                ("cancelled", models.BooleanField(default=False)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="pos_sales", to="accounts.company")),
                ("account", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="pos_sales", to="ledger.account")),
                ("customer", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="pos_sales", to="ledger.customer")),
                ("ledger_entry", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="pos_sale", to="ledger.ledgerentry")),
                ("cancelled_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [models.Index(fields=["company", "cancelled"], name="pos_sale_co_cancelled_idx")],
                "constraints": [
                    models.CheckConstraint(
                        check=models.Q(("on_credit", False), ("customer__isnull", False), _connector="OR"),
                        name="chk_pos_credit_needs_customer",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PosSaleLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity", models.DecimalField(decimal_places=3, max_digits=12)),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=14)),
                ("line_total", models.DecimalField(decimal_places=2, max_digits=14)),
                ("sale", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lines", to="invoicing.possale")),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="pos_lines", to="inventory.product")),
            ],
            options={
                "ordering": ["sale", "id"],
            },
        ),
    ]
