# purchases/api/urls.py

"""
PURCHASES API URLS

Mounted at /api/purchases/ by backend/urls.py.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from purchases.api.views import PurchaseOrderViewSet, SupplierViewSet

router = DefaultRouter()
router.register(r"suppliers", SupplierViewSet, basename="purchases-suppliers")
router.register(r"orders", PurchaseOrderViewSet, basename="purchases-orders")

urlpatterns = [
    path("", include(router.urls)),
]
