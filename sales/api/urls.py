# sales/api/urls.py

"""
SALES API URLS

Mounted at /api/sales/ by backend/urls.py.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from sales.api.views import (
    CustomerOrderViewSet,
    CustomerViewSet,
    InvoiceViewSet,
    QuotationViewSet,
)

router = DefaultRouter()
router.register(r"customers", CustomerViewSet, basename="sales-customers")
router.register(r"quotations", QuotationViewSet, basename="sales-quotations")
router.register(r"invoices", InvoiceViewSet, basename="sales-invoices")
router.register(r"orders", CustomerOrderViewSet, basename="sales-orders")

urlpatterns = [
    path("", include(router.urls)),
]
