# companies/api/views.py

"""
COMPANY VIEWSET

Rules:
- super_admin manages every tenant.
- Everybody else only sees (and, with admin rights, edits) their own company.
- Companies are deactivated, never deleted.
"""

from rest_framework import viewsets
from rest_framework.permissions import IsAuthenticated

from companies.api.serializers import CompanySerializer
from companies.models import Company
from core.api.responses import created_response, success_response
from core.exceptions import AuthorizationError
from permissions.roles import MODULE_ADMIN, ROLE_SUPER_ADMIN, HasModulePermission


class CompanyViewSet(viewsets.ModelViewSet):
    serializer_class = CompanySerializer
    permission_classes = [IsAuthenticated, HasModulePermission]
    permission_module = MODULE_ADMIN

    def get_queryset(self):
        user = self.request.user
        qs = Company.objects.all().order_by("name")
        if getattr(user, "role", None) == ROLE_SUPER_ADMIN:
            return qs
        return qs.filter(id=getattr(user, "company_id", None))

    def list(self, request, *args, **kwargs):
        data = self.get_serializer(self.get_queryset(), many=True).data
        return success_response(data, "Company list retrieved")

    def retrieve(self, request, *args, **kwargs):
        return success_response(
            self.get_serializer(self.get_object()).data, "Company retrieved"
        )

    def create(self, request, *args, **kwargs):
        if getattr(request.user, "role", None) != ROLE_SUPER_ADMIN:
            raise AuthorizationError("Only a super admin can create companies")
        ser = self.get_serializer(data=request.data)
        ser.is_valid(raise_exception=True)
        company = ser.save()
        return created_response(self.get_serializer(company).data, "Company created")

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        ser = self.get_serializer(self.get_object(), data=request.data, partial=partial)
        ser.is_valid(raise_exception=True)
        company = ser.save()
        return success_response(self.get_serializer(company).data, "Company updated")

    def destroy(self, request, *args, **kwargs):
        company = self.get_object()
        company.is_active = False
        company.save(update_fields=["is_active", "updated_at"])
        return success_response(None, "Company deactivated")
