# inventory/api/urls.py

"""
INVENTORY API URLS

Mounted at /api/inventory/ by backend/urls.py.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from inventory.api.views import (
    InventoryItemViewSet,
    StockMovementViewSet,
    WarehouseViewSet,
)

router = DefaultRouter()
router.register(r"items", InventoryItemViewSet, basename="inventory-items")
router.register(r"warehouses", WarehouseViewSet, basename="inventory-warehouses")
router.register(r"movements", StockMovementViewSet, basename="inventory-movements")

urlpatterns = [
    path("", include(router.urls)),
]
