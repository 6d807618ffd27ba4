# backend/urls.py
"""
PROJECT URLS

All API routes live under /api/

Operational maturity:
- /api/health/ (AllowAny) checks DB connectivity.

Security hardening:
- Django admin path is configurable (ADMIN_PATH setting) to reduce bot
  scanning noise.
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.contrib import admin
from django.db import DatabaseError, connections
from django.urls import include, path
from django.views.generic import RedirectView
from drf_spectacular.utils import extend_schema
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from core.api.responses import error_response, success_response

logger = logging.getLogger("erp.api")


# ------------------ API ROOT (PUBLIC) ------------------
@extend_schema(
    responses={
        200: {
            "type": "object",
            "properties": {
                "success": {"type": "boolean"},
                "message": {"type": "string"},
                "data": {"type": "object"},
            },
        }
    },
)
@api_view(["GET"])
@permission_classes([AllowAny])
def api_root(request):
    return success_response(
        {
            "auth": {
                "register": "/api/auth/register/",
                "login": "/api/auth/login/",
                "me": "/api/auth/me/",
                "jwt_create": "/api/auth/jwt/create/",
                "jwt_refresh": "/api/auth/jwt/refresh/",
            },
            "docs": {
                "swagger": "/api/docs/",
                "schema": "/api/schema/",
            },
            "modules": {
                "companies": "/api/companies/",
                "roles": "/api/roles/",
                "inventory": "/api/inventory/",
                "production": "/api/production/",
                "purchases": "/api/purchases/",
                "sales": "/api/sales/",
                "visitors": "/api/visitors/",
            },
        },
        "Factory ERP API is running",
    )


# ------------------ HEALTH CHECK (PUBLIC) ------------------
@extend_schema(
    responses={
        200: {"type": "object"},
        503: {"type": "object"},
    },
)
@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    """
    Liveness + DB readiness:
    - App responds
    - DB connection + simple query works
    """
    try:
        with connections["default"].cursor() as cursor:
            cursor.execute("SELECT 1;")
            cursor.fetchone()
    except DatabaseError as exc:
        logger.error("Health check: database unavailable", extra={"error": str(exc)})
        return error_response(
            "Database unavailable",
            503,
            {"code": "external_service_error", "status_code": 503, "db": "down"},
        )
    return success_response({"status": "ok", "db": "ok"}, "Healthy")


# ------------------ ADMIN PATH (HARDENED) ------------------
# Keep the trailing slash; do not publish a non-default path.
ADMIN_PATH = getattr(settings, "ADMIN_PATH", "admin/")
if not ADMIN_PATH.endswith("/"):
    ADMIN_PATH = f"{ADMIN_PATH}/"


# ------------------ API ROUTES (ALL UNDER /api/) ------------------
api_urlpatterns = [
    # Health check / root
    path("", api_root, name="api-root"),
    path("health/", health_check, name="health-check"),
    # OpenAPI / Swagger
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    # JWT (SimpleJWT)
    path("auth/jwt/create/", TokenObtainPairView.as_view(), name="jwt-create"),
    path("auth/jwt/refresh/", TokenRefreshView.as_view(), name="jwt-refresh"),
    # Auth, tenants, roles
    path("auth/", include("users.urls")),
    path("companies/", include("companies.api.urls")),
    path("roles/", include("permissions.api.urls")),
    # Business modules
    path("inventory/", include("inventory.api.urls")),
    path("production/", include("production.api.urls")),
    path("purchases/", include("purchases.api.urls")),
    path("sales/", include("sales.api.urls")),
    path("visitors/", include("visitors.api.urls")),
]

urlpatterns = [
    path(ADMIN_PATH, admin.site.urls),
    # Visiting / takes you to Swagger docs
    path("", RedirectView.as_view(url="/api/docs/", permanent=False), name="root"),
    path("api/", include(api_urlpatterns)),
]
