from django.contrib import admin

from .models import Account, Customer, LedgerEntry, Supplier


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ("name", "company", "type", "currency", "balance")
    list_filter = ("type", "currency", "company")
    search_fields = ("name", "iban")
    readonly_fields = ("balance", "public_id", "created_at", "updated_at")


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("name", "company", "email", "balance", "credit_limit")
    search_fields = ("name", "email")
    readonly_fields = ("balance", "public_id")


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ("name", "company", "email", "balance")
    search_fields = ("name", "email")
    readonly_fields = ("balance", "public_id")


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    """Read-only: entries change only through commands."""

    list_display = ("occurred_at", "company", "kind", "origin", "amount", "currency", "cancelled")
    list_filter = ("kind", "origin", "cancelled", "company")
    search_fields = ("description",)
    readonly_fields = [f.name for f in LedgerEntry._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
