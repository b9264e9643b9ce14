import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("accounts", "0001_initial"),
        ("ledger", "0001_initial"),
        ("inventory", "0001_initial"),
        ("invoicing", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PurchaseOrder",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("order_number", models.CharField(max_length=50)),
                ("status", models.CharField(choices=[("open", "Open"), ("delivered", "Delivered")], default="open", max_length=10)),
                ("date", models.DateField()),
                ("expected_delivery_date", models.DateField(blank=True, null=True)),
                ("currency", models.CharField(default="TRY", max_length=3)),
                ("notes", models.TextField(blank=True, default="")),
                ("total_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="purchase_orders", to="accounts.company")),
                ("supplier", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="purchase_orders", to="ledger.supplier")),
                ("invoice", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="purchase_order", to="invoicing.invoice")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-date", "-id"],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "order_number"), name="uniq_purchase_order_number_per_company"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PurchaseOrderLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("line_no", models.PositiveIntegerField()),
                ("quantity", models.DecimalField(decimal_places=3, max_digits=12)),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=14)),
                ("discount_percent", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=5)),
                ("vat_percent", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=5)),
                ("line_total", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lines", to="invoicing.purchaseorder")),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="order_lines", to="inventory.product")),
            ],
            options={
                "ordering": ["order", "line_no"],
                "constraints": [
                    models.UniqueConstraint(fields=("order", "line_no"), name="uniq_purchase_order_line_no"),
                ],
            },
        ),
    ]
