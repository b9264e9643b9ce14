# ledger/views.py
"""
Thin views that delegate to the commands layer.

Views handle: HTTP parsing, authentication, response formatting.
Commands handle: business logic, validation, ledger writes.

All mutations go through ledger.commands; views never call .save().
"""

from django.db.models import Q
from django.http import Http404
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import require, resolve_actor
from .commands import (
    adjust_account_balance,
    adjust_partner_balance,
    create_account,
    create_manual_transaction,
    delete_account,
    delete_manual_transaction,
    transfer_between_accounts,
    update_account,
    update_manual_transaction,
)
from .models import Account, Customer, LedgerEntry, Supplier
from .responses import command_error_response
from .serializers import (
    AccountCreateSerializer,
    AccountSerializer,
    AccountUpdateSerializer,
    BalanceAdjustSerializer,
    CustomerSerializer,
    LedgerEntrySerializer,
    ManualTransactionSerializer,
    ManualTransactionUpdateSerializer,
    PartnerBalanceAdjustSerializer,
    SupplierSerializer,
    TransferSerializer,
)


# =============================================================================
# Accounts
# =============================================================================

class AccountListCreateView(APIView):
    """
    GET /api/ledger/accounts/ -> list accounts
    POST /api/ledger/accounts/ -> create account (optionally with opening balance)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "ledger.view")

        qs = Account.objects.filter(company=actor.company)
        account_type = request.query_params.get("type")
        if account_type:
            qs = qs.filter(type=account_type)
        return Response(AccountSerializer(qs, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        # Permission check happens in command

        input_serializer = AccountCreateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = create_account(actor, **input_serializer.validated_data)
        if not result.success:
            return command_error_response(result)

        return Response(AccountSerializer(result.data).data, status=status.HTTP_201_CREATED)


class AccountDetailView(APIView):
    """
    GET /api/ledger/accounts/<pk>/ -> retrieve account
    PATCH /api/ledger/accounts/<pk>/ -> update metadata (or balance, with confirmation)
    DELETE /api/ledger/accounts/<pk>/ -> delete an unused account
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        require(actor, "ledger.view")

        account = Account.objects.filter(company=actor.company, pk=pk).first()
        if not account:
            raise Http404
        return Response(AccountSerializer(account).data)

    def patch(self, request, pk):
        actor = resolve_actor(request)

        input_serializer = AccountUpdateSerializer(data=request.data, partial=True)
        input_serializer.is_valid(raise_exception=True)

        result = update_account(actor, pk, **input_serializer.validated_data)
        if not result.success:
            return command_error_response(result)

        return Response(AccountSerializer(result.data).data)

    def delete(self, request, pk):
        actor = resolve_actor(request)

        result = delete_account(actor, pk)
        if not result.success:
            return command_error_response(result)

        return Response(status=status.HTTP_204_NO_CONTENT)


class AccountAdjustBalanceView(APIView):
    """POST /api/ledger/accounts/<pk>/adjust-balance/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)

        input_serializer = BalanceAdjustSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = adjust_account_balance(actor, pk, **input_serializer.validated_data)
        if not result.success:
            return command_error_response(result)

        return Response(
            {
                "account": AccountSerializer(result.data).data,
                "entry": LedgerEntrySerializer(result.entry).data,
            }
        )


class TransferView(APIView):
    """POST /api/ledger/transfers/"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = TransferSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = transfer_between_accounts(actor, **input_serializer.validated_data)
        if not result.success:
            return command_error_response(result)

        return Response(
            {
                "source": AccountSerializer(result.data["source"]).data,
                "target": AccountSerializer(result.data["target"]).data,
                "entry": LedgerEntrySerializer(result.entry).data,
            },
            status=status.HTTP_201_CREATED,
        )


# =============================================================================
# Partners
# =============================================================================

class CustomerListView(APIView):
    """GET /api/ledger/customers/"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "ledger.view")
        qs = Customer.objects.filter(company=actor.company)
        return Response(CustomerSerializer(qs, many=True).data)


class SupplierListView(APIView):
    """GET /api/ledger/suppliers/"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "ledger.view")
        qs = Supplier.objects.filter(company=actor.company)
        return Response(SupplierSerializer(qs, many=True).data)


class PartnerAdjustBalanceView(APIView):
    """POST /api/ledger/partners/adjust-balance/"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = PartnerBalanceAdjustSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = adjust_partner_balance(actor, **input_serializer.validated_data)
        if not result.success:
            return command_error_response(result)

        output = CustomerSerializer if isinstance(result.data, Customer) else SupplierSerializer
        return Response(
            {
                "partner": output(result.data).data,
                "entry": LedgerEntrySerializer(result.entry).data,
            }
        )


# =============================================================================
# Ledger entries / manual transactions
# =============================================================================

class LedgerEntryListCreateView(APIView):
    """
    GET /api/ledger/entries/ -> list entries (filters: account, customer, supplier, kind, include_cancelled)
    POST /api/ledger/entries/ -> create a manual income/expense
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "ledger.view")

        params = request.query_params
        qs = LedgerEntry.objects.filter(company=actor.company)
        if params.get("include_cancelled") not in ("1", "true", "True"):
            qs = qs.filter(cancelled=False)
        if params.get("account"):
            qs = qs.filter(Q(source_account_id=params["account"]) | Q(target_account_id=params["account"]))
        if params.get("customer"):
            qs = qs.filter(customer_id=params["customer"])
        if params.get("supplier"):
            qs = qs.filter(supplier_id=params["supplier"])
        if params.get("kind"):
            qs = qs.filter(kind=params["kind"])

        return Response(LedgerEntrySerializer(qs[:500], many=True).data)

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = ManualTransactionSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = create_manual_transaction(actor, **input_serializer.validated_data)
        if not result.success:
            return command_error_response(result)

        return Response(LedgerEntrySerializer(result.data).data, status=status.HTTP_201_CREATED)


class LedgerEntryDetailView(APIView):
    """
    PATCH /api/ledger/entries/<pk>/ -> edit a manual entry
    DELETE /api/ledger/entries/<pk>/ -> cancel a manual entry
    """
    permission_classes = [IsAuthenticated]

    def patch(self, request, pk):
        actor = resolve_actor(request)

        input_serializer = ManualTransactionUpdateSerializer(data=request.data, partial=True)
        input_serializer.is_valid(raise_exception=True)

        result = update_manual_transaction(actor, pk, **input_serializer.validated_data)
        if not result.success:
            return command_error_response(result)

        return Response(LedgerEntrySerializer(result.data).data)

    def delete(self, request, pk):
        actor = resolve_actor(request)

        result = delete_manual_transaction(actor, pk)
        if not result.success:
            return command_error_response(result)

        return Response(LedgerEntrySerializer(result.data).data)
