from django.urls import path

from .views import ReconciliationRunListCreateView

app_name = "reconciliation"

urlpatterns = [
    path("runs/", ReconciliationRunListCreateView.as_view(), name="run-list"),
]
