from rest_framework import serializers

from .models import ReconciliationRun


class ReconciliationRunSerializer(serializers.ModelSerializer):
    mismatch_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = ReconciliationRun
        fields = [
            "id",
            "scope",
            "trigger",
            "dry_run",
            "started_at",
            "finished_at",
            "accounts_checked",
            "partners_checked",
            "corrected",
            "mismatch_count",
            "mismatches",
        ]
        read_only_fields = fields


class ReconciliationRequestSerializer(serializers.Serializer):
    accounts = serializers.BooleanField(default=True)
    partners = serializers.BooleanField(default=True)
    dry_run = serializers.BooleanField(default=False)
