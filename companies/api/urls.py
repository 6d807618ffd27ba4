# companies/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from companies.api.views import CompanyViewSet

router = DefaultRouter()
router.register(r"", CompanyViewSet, basename="companies")

urlpatterns = [
    path("", include(router.urls)),
]
