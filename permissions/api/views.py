# permissions/api/views.py

from drf_spectacular.utils import extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from core.api.responses import success_response
from permissions.roles import (
    ALL_MODULES,
    MODULE_ADMIN,
    ROLE_CHOICES,
    HasModulePermission,
    allowed_actions_for,
    get_user_role,
)


class RoleListView(APIView):
    """Read-out of the policy table, one entry per role."""

    permission_classes = [IsAuthenticated, HasModulePermission]
    permission_module = MODULE_ADMIN

    @extend_schema(tags=["roles"], responses={200: dict})
    def get(self, request):
        data = [
            {
                "role": value,
                "label": label,
                "permissions": allowed_actions_for(value),
            }
            for value, label in ROLE_CHOICES
        ]
        return success_response(
            {"modules": ALL_MODULES, "roles": data}, "Roles retrieved"
        )


class MyPermissionsView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["roles"], responses={200: dict})
    def get(self, request):
        role = get_user_role(request.user)
        return success_response(
            {"role": role, "permissions": allowed_actions_for(role)},
            "Permissions retrieved",
        )
