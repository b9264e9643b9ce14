# ledger/urls.py
"""
URL configuration for the ledger API.

Endpoints:
- /accounts/ - accounts, balance adjustments
- /transfers/ - inter-account transfers
- /customers/, /suppliers/ - partner balances (read-only)
- /partners/adjust-balance/ - partner balance adjustments
- /entries/ - ledger entries and manual transactions
"""

from django.urls import path

from .views import (
    AccountAdjustBalanceView,
    AccountDetailView,
    AccountListCreateView,
    CustomerListView,
    LedgerEntryDetailView,
    LedgerEntryListCreateView,
    PartnerAdjustBalanceView,
    SupplierListView,
    TransferView,
)

app_name = "ledger"

urlpatterns = [
    path("accounts/", AccountListCreateView.as_view(), name="account-list"),
    path("accounts/<int:pk>/", AccountDetailView.as_view(), name="account-detail"),
    path("accounts/<int:pk>/adjust-balance/", AccountAdjustBalanceView.as_view(), name="account-adjust-balance"),
    path("transfers/", TransferView.as_view(), name="transfer"),
    path("customers/", CustomerListView.as_view(), name="customer-list"),
    path("suppliers/", SupplierListView.as_view(), name="supplier-list"),
    path("partners/adjust-balance/", PartnerAdjustBalanceView.as_view(), name="partner-adjust-balance"),
    path("entries/", LedgerEntryListCreateView.as_view(), name="entry-list"),
    path("entries/<int:pk>/", LedgerEntryDetailView.as_view(), name="entry-detail"),
]
