# production/api/urls.py

"""
PRODUCTION API URLS

Mounted at /api/production/ by backend/urls.py.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from production.api.views import ProductionOrderViewSet

router = DefaultRouter()
router.register(r"orders", ProductionOrderViewSet, basename="production-orders")

urlpatterns = [
    path("", include(router.urls)),
]
