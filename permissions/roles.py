# permissions/roles.py

"""
ROLES + ACCESS POLICY

The permission language is an explicit policy table keyed by
(module, action) -> roles allowed. Views declare which module they belong
to; the HTTP method (or a per-action override) picks the action.

Rules:
- super_admin is allowed everything, in every company.
- Unknown (module, action) pairs are denied.
- A view without `permission_module` is denied (no accidental open endpoints).
"""

from __future__ import annotations

from typing import Optional

from rest_framework.permissions import BasePermission


# =========================================================
# ROLES
# =========================================================
ROLE_SUPER_ADMIN = "super_admin"
ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_PRODUCTION_MANAGER = "production_manager"
ROLE_INVENTORY_MANAGER = "inventory_manager"
ROLE_ACCOUNTANT = "accountant"
ROLE_SALES = "sales"
ROLE_SECURITY = "security"
ROLE_OPERATOR = "operator"
ROLE_VIEWER = "viewer"

ROLE_CHOICES = [
    (ROLE_SUPER_ADMIN, "Super Admin"),
    (ROLE_ADMIN, "Admin"),
    (ROLE_MANAGER, "Manager"),
    (ROLE_PRODUCTION_MANAGER, "Production Manager"),
    (ROLE_INVENTORY_MANAGER, "Inventory Manager"),
    (ROLE_ACCOUNTANT, "Accountant"),
    (ROLE_SALES, "Sales"),
    (ROLE_SECURITY, "Security"),
    (ROLE_OPERATOR, "Operator"),
    (ROLE_VIEWER, "Viewer"),
]

ALL_ROLES = {value for value, _ in ROLE_CHOICES}


# =========================================================
# MODULES + ACTIONS
# =========================================================
MODULE_INVENTORY = "inventory"
MODULE_PRODUCTION = "production"
MODULE_ORDERS = "orders"
MODULE_PURCHASES = "purchases"
MODULE_FINANCIAL = "financial"
MODULE_SECURITY = "security"
MODULE_ADMIN = "admin"

ACTION_VIEW = "view"
ACTION_CREATE = "create"
ACTION_EDIT = "edit"
ACTION_DELETE = "delete"
ACTION_APPROVE = "approve"
ACTION_ADJUST = "adjust"
ACTION_START_PROCESS = "start_process"
ACTION_QUALITY_CHECK = "quality_check"
ACTION_DISPATCH = "dispatch"
ACTION_RECORD_PAYMENT = "record_payment"

METHOD_ACTIONS = {
    "GET": ACTION_VIEW,
    "HEAD": ACTION_VIEW,
    "OPTIONS": ACTION_VIEW,
    "POST": ACTION_CREATE,
    "PUT": ACTION_EDIT,
    "PATCH": ACTION_EDIT,
    "DELETE": ACTION_DELETE,
}


def _roles(*roles: str) -> frozenset:
    return frozenset({ROLE_ADMIN, *roles})


_EVERYONE = frozenset(ALL_ROLES - {ROLE_SUPER_ADMIN})

# =========================================================
# POLICY TABLE: (module, action) -> roles
# =========================================================
POLICY: dict[tuple[str, str], frozenset] = {
    # Inventory
    (MODULE_INVENTORY, ACTION_VIEW): _EVERYONE,
    (MODULE_INVENTORY, ACTION_CREATE): _roles(ROLE_MANAGER, ROLE_INVENTORY_MANAGER),
    (MODULE_INVENTORY, ACTION_EDIT): _roles(ROLE_MANAGER, ROLE_INVENTORY_MANAGER),
    (MODULE_INVENTORY, ACTION_DELETE): _roles(ROLE_INVENTORY_MANAGER),
    (MODULE_INVENTORY, ACTION_APPROVE): _roles(ROLE_MANAGER, ROLE_INVENTORY_MANAGER),
    (MODULE_INVENTORY, ACTION_ADJUST): _roles(ROLE_INVENTORY_MANAGER),
    # Production
    (MODULE_PRODUCTION, ACTION_VIEW): _roles(
        ROLE_MANAGER,
        ROLE_PRODUCTION_MANAGER,
        ROLE_INVENTORY_MANAGER,
        ROLE_OPERATOR,
        ROLE_VIEWER,
    ),
    (MODULE_PRODUCTION, ACTION_CREATE): _roles(ROLE_MANAGER, ROLE_PRODUCTION_MANAGER),
    (MODULE_PRODUCTION, ACTION_EDIT): _roles(ROLE_MANAGER, ROLE_PRODUCTION_MANAGER),
    (MODULE_PRODUCTION, ACTION_DELETE): _roles(ROLE_PRODUCTION_MANAGER),
    (MODULE_PRODUCTION, ACTION_APPROVE): _roles(ROLE_MANAGER, ROLE_PRODUCTION_MANAGER),
    (MODULE_PRODUCTION, ACTION_START_PROCESS): _roles(ROLE_PRODUCTION_MANAGER),
    (MODULE_PRODUCTION, ACTION_QUALITY_CHECK): _roles(
        ROLE_PRODUCTION_MANAGER, ROLE_OPERATOR
    ),
    # Orders (quotations, customer orders, customers)
    (MODULE_ORDERS, ACTION_VIEW): _roles(
        ROLE_MANAGER, ROLE_SALES, ROLE_ACCOUNTANT, ROLE_PRODUCTION_MANAGER, ROLE_VIEWER
    ),
    (MODULE_ORDERS, ACTION_CREATE): _roles(ROLE_MANAGER, ROLE_SALES),
    (MODULE_ORDERS, ACTION_EDIT): _roles(ROLE_MANAGER, ROLE_SALES),
    (MODULE_ORDERS, ACTION_DELETE): _roles(ROLE_MANAGER),
    (MODULE_ORDERS, ACTION_APPROVE): _roles(ROLE_MANAGER),
    (MODULE_ORDERS, ACTION_DISPATCH): _roles(ROLE_MANAGER, ROLE_SALES),
    # Purchases
    (MODULE_PURCHASES, ACTION_VIEW): _roles(
        ROLE_MANAGER, ROLE_INVENTORY_MANAGER, ROLE_ACCOUNTANT, ROLE_VIEWER
    ),
    (MODULE_PURCHASES, ACTION_CREATE): _roles(ROLE_MANAGER, ROLE_INVENTORY_MANAGER),
    (MODULE_PURCHASES, ACTION_EDIT): _roles(ROLE_MANAGER, ROLE_INVENTORY_MANAGER),
    (MODULE_PURCHASES, ACTION_DELETE): _roles(ROLE_MANAGER),
    (MODULE_PURCHASES, ACTION_APPROVE): _roles(ROLE_MANAGER),
    # Financial (invoices, payments)
    (MODULE_FINANCIAL, ACTION_VIEW): _roles(ROLE_MANAGER, ROLE_ACCOUNTANT),
    (MODULE_FINANCIAL, ACTION_CREATE): _roles(ROLE_ACCOUNTANT),
    (MODULE_FINANCIAL, ACTION_EDIT): _roles(ROLE_ACCOUNTANT),
    (MODULE_FINANCIAL, ACTION_DELETE): _roles(),
    (MODULE_FINANCIAL, ACTION_APPROVE): _roles(ROLE_MANAGER),
    (MODULE_FINANCIAL, ACTION_RECORD_PAYMENT): _roles(ROLE_ACCOUNTANT),
    # Security (visitors)
    (MODULE_SECURITY, ACTION_VIEW): _roles(ROLE_MANAGER, ROLE_SECURITY),
    (MODULE_SECURITY, ACTION_CREATE): _roles(ROLE_MANAGER, ROLE_SECURITY),
    (MODULE_SECURITY, ACTION_EDIT): _roles(ROLE_MANAGER, ROLE_SECURITY),
    (MODULE_SECURITY, ACTION_DELETE): _roles(ROLE_MANAGER),
    (MODULE_SECURITY, ACTION_APPROVE): _roles(ROLE_MANAGER),
    # Admin (companies, roles)
    (MODULE_ADMIN, ACTION_VIEW): _EVERYONE,
    (MODULE_ADMIN, ACTION_CREATE): _roles(),
    (MODULE_ADMIN, ACTION_EDIT): _roles(),
    (MODULE_ADMIN, ACTION_DELETE): frozenset(),
}

ALL_MODULES = sorted({module for module, _ in POLICY})


# =========================================================
# Helpers
# =========================================================
def get_user_role(user) -> Optional[str]:
    return getattr(user, "role", None)


def is_allowed(role: Optional[str], module: str, action: str) -> bool:
    if role == ROLE_SUPER_ADMIN:
        return True
    if not role:
        return False
    return role in POLICY.get((module, action), frozenset())


def user_can(user, module: str, action: str) -> bool:
    if not user or not user.is_authenticated:
        return False
    if not user.is_active:
        return False
    return is_allowed(get_user_role(user), module, action)


def allowed_actions_for(role: Optional[str]) -> dict[str, list[str]]:
    """{module: [actions]} for one role, as shown on the roles endpoint."""
    out: dict[str, list[str]] = {}
    for (module, action), roles in POLICY.items():
        if role == ROLE_SUPER_ADMIN or role in roles:
            out.setdefault(module, []).append(action)
    return {module: sorted(actions) for module, actions in sorted(out.items())}


def resolve_action(request, view) -> str:
    """
    Per-action overrides win over the HTTP method:

        permission_actions = {"start": ACTION_START_PROCESS}
    """
    overrides = getattr(view, "permission_actions", None) or {}
    view_action = getattr(view, "action", None)
    if view_action and view_action in overrides:
        return overrides[view_action]
    return METHOD_ACTIONS.get(request.method, ACTION_VIEW)


# =========================================================
# DRF permission
# =========================================================
class HasModulePermission(BasePermission):
    """
    Usage:
        permission_classes = [IsAuthenticated, HasModulePermission]
        permission_module = MODULE_INVENTORY
        permission_actions = {"reserve": ACTION_EDIT}
    """

    message = "You do not have permission to perform this action."

    def has_permission(self, request, view):
        module = getattr(view, "permission_module", None)
        if not module:
            return False
        return user_can(request.user, module, resolve_action(request, view))
