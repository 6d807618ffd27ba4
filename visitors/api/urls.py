# visitors/api/urls.py

"""
VISITOR API URLS

Mounted at /api/visitors/ by backend/urls.py.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from visitors.api.views import VisitorViewSet

router = DefaultRouter()
router.register(r"", VisitorViewSet, basename="visitors")

urlpatterns = [
    path("", include(router.urls)),
]
