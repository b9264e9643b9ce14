from django.contrib import admin

from .models import ReconciliationRun


@admin.register(ReconciliationRun)
class ReconciliationRunAdmin(admin.ModelAdmin):
    list_display = ("company", "scope", "trigger", "dry_run", "started_at", "corrected", "mismatch_count")
    list_filter = ("scope", "trigger", "dry_run", "company")
    readonly_fields = [f.name for f in ReconciliationRun._meta.fields]

    def has_add_permission(self, request):
        return False
