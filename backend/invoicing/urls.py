# invoicing/urls.py
"""
URL configuration for the invoicing API.

Endpoints:
- /invoices/ - invoice CRUD (drafts) and lifecycle actions
- /pos/sales/ - POS sales
- /orders/ - purchase orders and conversion to draft invoices
"""

from django.urls import path

from .views import (
    InvoiceApproveView,
    InvoiceCancelView,
    InvoiceCollectView,
    InvoiceDetailView,
    InvoiceListCreateView,
    InvoicePayView,
    InvoiceStatusOverrideView,
    PosSaleCancelView,
    PosSaleListCreateView,
    PurchaseOrderConvertView,
    PurchaseOrderDetailView,
    PurchaseOrderListCreateView,
)

app_name = "invoicing"

urlpatterns = [
    path("invoices/", InvoiceListCreateView.as_view(), name="invoice-list"),
    path("invoices/<int:pk>/", InvoiceDetailView.as_view(), name="invoice-detail"),
    path("invoices/<int:pk>/approve/", InvoiceApproveView.as_view(), name="invoice-approve"),
    path("invoices/<int:pk>/cancel/", InvoiceCancelView.as_view(), name="invoice-cancel"),
    path("invoices/<int:pk>/collect/", InvoiceCollectView.as_view(), name="invoice-collect"),
    path("invoices/<int:pk>/pay/", InvoicePayView.as_view(), name="invoice-pay"),
    path("invoices/<int:pk>/status/", InvoiceStatusOverrideView.as_view(), name="invoice-status"),
    path("pos/sales/", PosSaleListCreateView.as_view(), name="pos-sale-list"),
    path("pos/sales/<int:pk>/cancel/", PosSaleCancelView.as_view(), name="pos-sale-cancel"),
    path("orders/", PurchaseOrderListCreateView.as_view(), name="order-list"),
    path("orders/<int:pk>/", PurchaseOrderDetailView.as_view(), name="order-detail"),
    path(
        "orders/<int:pk>/convert-to-invoice/",
        PurchaseOrderConvertView.as_view(),
        name="order-convert",
    ),
]
