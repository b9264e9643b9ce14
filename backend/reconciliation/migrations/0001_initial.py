import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ReconciliationRun",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("scope", models.CharField(choices=[("full", "Accounts and partners"), ("accounts", "Accounts only"), ("partners", "Partners only")], default="full", max_length=20)),
                ("trigger", models.CharField(choices=[("schedule", "Scheduled"), ("command", "Management command"), ("api", "API"), ("status_override", "Invoice status override")], default="schedule", max_length=20)),
                ("dry_run", models.BooleanField(default=False)),
                ("started_at", models.DateTimeField()),
                ("finished_at", models.DateTimeField(blank=True, null=True)),
                ("accounts_checked", models.PositiveIntegerField(default=0)),
                ("partners_checked", models.PositiveIntegerField(default=0)),
                ("corrected", models.PositiveIntegerField(default=0)),
                ("mismatches", models.JSONField(blank=True, default=list)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="reconciliation_runs", to="accounts.company")),
                ("requested_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-started_at"],
                "indexes": [models.Index(fields=["company", "started_at"], name="recon_run_co_started_idx")],
            },
        ),
    ]
