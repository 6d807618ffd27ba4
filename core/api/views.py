# core/api/views.py

"""
======================================================
PATH: core/api/views.py
======================================================
BASE VIEWSET FOR COMPANY-SCOPED SERVICES

Purpose:
- Resolve the caller's company (tenant) from request.user.
- Hand every CRUD call to the service named by `service_name`.
- Wrap results in the JSON envelope.

Rules:
- Views never catch service errors; the DRF exception handler does.
- Lists are filtered through the view's django-filter FilterSet, then
  paginated by the service (?page=&limit=).
- Subclasses override perform_create / perform_update when the service has
  an entity-specific create/update.
"""

from __future__ import annotations

from rest_framework import viewsets
from rest_framework.permissions import IsAuthenticated

from core.api.responses import (
    created_response,
    paginated_response,
    success_response,
)
from core.container import get_container
from core.exceptions import AuthorizationError, ValidationError
from permissions.roles import HasModulePermission, ROLE_SUPER_ADMIN


class ServiceViewMixin:
    """Gives views access to the service container built at startup."""

    @property
    def services(self):
        return get_container()

    def get_company(self):
        request = self.request
        user = request.user
        company = getattr(user, "company", None)

        # Super admins work across tenants by naming the company explicitly.
        if getattr(user, "role", None) == ROLE_SUPER_ADMIN:
            company_id = (request.headers.get("X-Company-ID") or "").strip()
            if company_id:
                from companies.models import Company

                company = Company.objects.filter(id=company_id, is_active=True).first()
                if company is None:
                    raise ValidationError("Unknown company in X-Company-ID")

        if company is None:
            raise AuthorizationError("User is not assigned to a company")
        return company


class CompanyServiceReadOnlyViewSet(ServiceViewMixin, viewsets.GenericViewSet):
    permission_classes = [IsAuthenticated, HasModulePermission]
    permission_module = None
    service_name = None
    resource_label = "Record"

    serializer_class = None
    create_serializer_class = None
    update_serializer_class = None
    filterset_class = None

    def get_service(self):
        return getattr(self.services, self.service_name)

    def get_queryset(self):
        return self.get_service().find_many(self.get_company())

    def filter_list_queryset(self, queryset):
        if self.filterset_class is None:
            return queryset
        filterset = self.filterset_class(
            self.request.query_params, queryset=queryset, request=self.request
        )
        if not filterset.is_valid():
            raise ValidationError("Invalid filters", details=filterset.errors.get_json_data())
        return filterset.qs

    def validated(self, serializer_class, *, partial=False, data=None):
        ser = serializer_class(
            data=self.request.data if data is None else data,
            partial=partial,
            context=self.get_serializer_context(),
        )
        ser.is_valid(raise_exception=True)
        return ser.validated_data

    def output(self, instance):
        return self.get_serializer(instance).data

    # --------------------------------------------------
    # Reads
    # --------------------------------------------------

    def list(self, request, *args, **kwargs):
        qs = self.filter_list_queryset(self.get_queryset())
        page = self.get_service().paginate(
            qs,
            page=request.query_params.get("page"),
            limit=request.query_params.get("limit"),
        )
        return paginated_response(
            page,
            self.get_serializer_class(),
            f"{self.resource_label} list retrieved",
            context=self.get_serializer_context(),
        )

    def retrieve(self, request, pk=None, *args, **kwargs):
        # TTL-cached; every service persist drops the entry.
        instance = self.get_service().get_cached(self.get_company(), pk)
        return success_response(self.output(instance), f"{self.resource_label} retrieved")


class CompanyServiceViewSet(CompanyServiceReadOnlyViewSet):
    """Read-only viewset plus create / update / destroy through the service."""

    def create(self, request, *args, **kwargs):
        data = self.validated(self.create_serializer_class or self.get_serializer_class())
        instance = self.perform_create(data)
        return created_response(self.output(instance), f"{self.resource_label} created")

    def update(self, request, pk=None, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        data = self.validated(
            self.update_serializer_class or self.get_serializer_class(),
            partial=partial,
        )
        instance = self.perform_update(pk, data)
        return success_response(self.output(instance), f"{self.resource_label} updated")

    def partial_update(self, request, pk=None, *args, **kwargs):
        kwargs["partial"] = True
        return self.update(request, pk, *args, **kwargs)

    def destroy(self, request, pk=None, *args, **kwargs):
        self.get_service().delete(self.get_company(), pk)
        return success_response(None, f"{self.resource_label} deleted")

    # --------------------------------------------------
    # Hooks
    # --------------------------------------------------

    def perform_create(self, data):
        return self.get_service().create(
            self.get_company(), dict(data), created_by=self.request.user
        )

    def perform_update(self, pk, data):
        return self.get_service().update(
            self.get_company(), pk, dict(data), updated_by=self.request.user
        )
