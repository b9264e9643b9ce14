# reconciliation/models.py

from django.conf import settings
from django.db import models

from accounts.models import Company


class ReconciliationRun(models.Model):
    """Audit row for one batch or administrative reconciliation pass."""

    class Scope(models.TextChoices):
        FULL = "full", "Accounts and partners"
        ACCOUNTS = "accounts", "Accounts only"
        PARTNERS = "partners", "Partners only"

    class Trigger(models.TextChoices):
        SCHEDULE = "schedule", "Scheduled"
        COMMAND = "command", "Management command"
        API = "api", "API"
        STATUS_OVERRIDE = "status_override", "Invoice status override"

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="reconciliation_runs")
    scope = models.CharField(max_length=20, choices=Scope.choices, default=Scope.FULL)
    trigger = models.CharField(max_length=20, choices=Trigger.choices, default=Trigger.SCHEDULE)
    dry_run = models.BooleanField(default=False)

    started_at = models.DateTimeField()
    finished_at = models.DateTimeField(null=True, blank=True)

    accounts_checked = models.PositiveIntegerField(default=0)
    partners_checked = models.PositiveIntegerField(default=0)
    corrected = models.PositiveIntegerField(default=0)
    mismatches = models.JSONField(default=list, blank=True)

    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )

    class Meta:
        ordering = ["-started_at"]
        indexes = [models.Index(fields=["company", "started_at"], name="recon_run_co_started_idx")]

    def __str__(self):
        return f"{self.company} {self.scope} @ {self.started_at:%Y-%m-%d %H:%M}"

    @property
    def mismatch_count(self) -> int:
        return len(self.mismatches)
