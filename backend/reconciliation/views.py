# reconciliation/views.py

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import require, resolve_actor
from ledger.responses import command_error_response
from .commands import run_reconciliation
from .models import ReconciliationRun
from .serializers import ReconciliationRequestSerializer, ReconciliationRunSerializer


class ReconciliationRunListCreateView(APIView):
    """
    GET /api/reconciliation/runs/ -> recent runs for the active company
    POST /api/reconciliation/runs/ -> run a full reconciliation now
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "reconciliation.run")
        runs = ReconciliationRun.objects.filter(company=actor.company)[:50]
        return Response(ReconciliationRunSerializer(runs, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = ReconciliationRequestSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = run_reconciliation(actor, **input_serializer.validated_data)
        if not result.success:
            return command_error_response(result)

        return Response(ReconciliationRunSerializer(result.data).data, status=status.HTTP_201_CREATED)
