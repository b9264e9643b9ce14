# invoicing/views.py
"""
Thin views over the Invoice Lifecycle Manager, POS and purchase order
commands.

Each endpoint resolves the actor, validates input, calls exactly one
command and maps the CommandResult onto a response.
"""

from django.http import Http404
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import require, resolve_actor
from ledger.responses import command_error_response
from ledger.serializers import LedgerEntrySerializer
from .commands import (
    approve_invoice,
    cancel_invoice,
    collect_on_invoice,
    create_invoice,
    delete_invoice,
    pay_invoice,
    set_invoice_status,
    update_invoice,
)
from .models import Invoice, PosSale, PurchaseOrder
from .order_commands import (
    convert_order_to_invoice,
    create_purchase_order,
    delete_purchase_order,
    update_purchase_order,
)
from .pos_commands import cancel_pos_sale, record_pos_sale
from .serializers import (
    InvoiceCreateSerializer,
    InvoiceSerializer,
    InvoiceUpdateSerializer,
    PosSaleCreateSerializer,
    PosSaleSerializer,
    PurchaseOrderCreateSerializer,
    PurchaseOrderSerializer,
    PurchaseOrderUpdateSerializer,
    SettlementSerializer,
    StatusOverrideSerializer,
)


def _invoice_response(result, http_status=status.HTTP_200_OK):
    if not result.success:
        return command_error_response(result)
    return Response(InvoiceSerializer(result.data).data, status=http_status)


# =============================================================================
# Invoices
# =============================================================================

class InvoiceListCreateView(APIView):
    """
    GET /api/invoicing/invoices/ -> list invoices (filters: type, status)
    POST /api/invoicing/invoices/ -> create a draft invoice
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "ledger.view")

        qs = Invoice.objects.filter(company=actor.company).prefetch_related("lines")
        for param in ("type", "status"):
            value = request.query_params.get(param)
            if value:
                qs = qs.filter(**{param: value})
        return Response(InvoiceSerializer(qs, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = InvoiceCreateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = create_invoice(actor, **input_serializer.validated_data)
        return _invoice_response(result, status.HTTP_201_CREATED)


class InvoiceDetailView(APIView):
    """
    GET /api/invoicing/invoices/<pk>/
    PATCH /api/invoicing/invoices/<pk>/ -> edit a draft
    DELETE /api/invoicing/invoices/<pk>/ -> delete (reversing first when posted)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        require(actor, "ledger.view")

        invoice = Invoice.objects.filter(company=actor.company, pk=pk).prefetch_related("lines").first()
        if not invoice:
            raise Http404
        return Response(InvoiceSerializer(invoice).data)

    def patch(self, request, pk):
        actor = resolve_actor(request)

        input_serializer = InvoiceUpdateSerializer(data=request.data, partial=True)
        input_serializer.is_valid(raise_exception=True)

        result = update_invoice(actor, pk, **input_serializer.validated_data)
        return _invoice_response(result)

    def delete(self, request, pk):
        actor = resolve_actor(request)

        result = delete_invoice(actor, pk)
        if not result.success:
            return command_error_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)


class InvoiceApproveView(APIView):
    """POST /api/invoicing/invoices/<pk>/approve/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)
        return _invoice_response(approve_invoice(actor, pk))


class InvoiceCancelView(APIView):
    """POST /api/invoicing/invoices/<pk>/cancel/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)
        return _invoice_response(cancel_invoice(actor, pk))


class _SettlementView(APIView):
    permission_classes = [IsAuthenticated]
    command = None

    def post(self, request, pk):
        actor = resolve_actor(request)

        input_serializer = SettlementSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = type(self).command(actor, pk, **input_serializer.validated_data)
        if not result.success:
            return command_error_response(result)

        return Response(
            {
                "invoice": InvoiceSerializer(result.data["invoice"]).data,
                "entry": LedgerEntrySerializer(result.entry).data,
            }
        )


class InvoiceCollectView(_SettlementView):
    """POST /api/invoicing/invoices/<pk>/collect/"""
    command = collect_on_invoice


class InvoicePayView(_SettlementView):
    """POST /api/invoicing/invoices/<pk>/pay/"""
    command = pay_invoice


class InvoiceStatusOverrideView(APIView):
    """POST /api/invoicing/invoices/<pk>/status/ (admin only)"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)

        input_serializer = StatusOverrideSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        return _invoice_response(set_invoice_status(actor, pk, **input_serializer.validated_data))


# =============================================================================
# POS
# =============================================================================

class PosSaleListCreateView(APIView):
    """
    GET /api/invoicing/pos/sales/
    POST /api/invoicing/pos/sales/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "ledger.view")
        qs = PosSale.objects.filter(company=actor.company).prefetch_related("lines")[:200]
        return Response(PosSaleSerializer(qs, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = PosSaleCreateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = record_pos_sale(actor, **input_serializer.validated_data)
        if not result.success:
            return command_error_response(result)

        return Response(PosSaleSerializer(result.data).data, status=status.HTTP_201_CREATED)


class PosSaleCancelView(APIView):
    """POST /api/invoicing/pos/sales/<pk>/cancel/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)

        result = cancel_pos_sale(actor, pk)
        if not result.success:
            return command_error_response(result)

        return Response(PosSaleSerializer(result.data).data)


# =============================================================================
# Purchase orders
# =============================================================================

def _order_response(result, http_status=status.HTTP_200_OK):
    if not result.success:
        return command_error_response(result)
    return Response(PurchaseOrderSerializer(result.data).data, status=http_status)


class PurchaseOrderListCreateView(APIView):
    """
    GET /api/invoicing/orders/ -> list orders (filter: status)
    POST /api/invoicing/orders/ -> create an open order
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "ledger.view")

        qs = PurchaseOrder.objects.filter(company=actor.company).prefetch_related("lines")
        order_status = request.query_params.get("status")
        if order_status:
            qs = qs.filter(status=order_status)
        return Response(PurchaseOrderSerializer(qs, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = PurchaseOrderCreateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = create_purchase_order(actor, **input_serializer.validated_data)
        return _order_response(result, status.HTTP_201_CREATED)


class PurchaseOrderDetailView(APIView):
    """
    GET /api/invoicing/orders/<pk>/
    PATCH /api/invoicing/orders/<pk>/ -> edit an open order
    DELETE /api/invoicing/orders/<pk>/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        require(actor, "ledger.view")

        order = PurchaseOrder.objects.filter(company=actor.company, pk=pk).prefetch_related("lines").first()
        if not order:
            raise Http404
        return Response(PurchaseOrderSerializer(order).data)

    def patch(self, request, pk):
        actor = resolve_actor(request)

        input_serializer = PurchaseOrderUpdateSerializer(data=request.data, partial=True)
        input_serializer.is_valid(raise_exception=True)

        return _order_response(update_purchase_order(actor, pk, **input_serializer.validated_data))

    def delete(self, request, pk):
        actor = resolve_actor(request)

        result = delete_purchase_order(actor, pk)
        if not result.success:
            return command_error_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)


class PurchaseOrderConvertView(APIView):
    """POST /api/invoicing/orders/<pk>/convert-to-invoice/ -> draft purchase invoice"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)
        return _invoice_response(convert_order_to_invoice(actor, pk), status.HTTP_201_CREATED)
