from django.contrib import admin

from .models import Invoice, InvoiceLine, PosSale, PosSaleLine, PurchaseOrder, PurchaseOrderLine


class InvoiceLineInline(admin.TabularInline):
    model = InvoiceLine
    extra = 0
    readonly_fields = ("net_amount", "vat_amount", "line_total")


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    """Status changes go through the lifecycle commands, not the admin form."""

    list_display = ("invoice_number", "company", "type", "status", "date", "total_amount", "paid_amount")
    list_filter = ("type", "status", "company")
    search_fields = ("invoice_number", "customer__name", "supplier__name")
    readonly_fields = ("status", "total_amount", "paid_amount", "subtotal", "vat_total", "public_id")
    inlines = [InvoiceLineInline]


class PosSaleLineInline(admin.TabularInline):
    model = PosSaleLine
    extra = 0


@admin.register(PosSale)
class PosSaleAdmin(admin.ModelAdmin):
    list_display = ("public_id", "company", "total_amount", "on_credit", "cancelled", "created_at")
    list_filter = ("on_credit", "cancelled", "company")
    readonly_fields = ("ledger_entry", "total_amount", "cancelled", "cancelled_at")
    inlines = [PosSaleLineInline]


class PurchaseOrderLineInline(admin.TabularInline):
    model = PurchaseOrderLine
    extra = 0
    readonly_fields = ("line_total",)


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "company", "supplier", "status", "date", "total_amount")
    list_filter = ("status", "company")
    search_fields = ("order_number", "supplier__name")
    readonly_fields = ("status", "invoice", "total_amount", "public_id")
    inlines = [PurchaseOrderLineInline]
