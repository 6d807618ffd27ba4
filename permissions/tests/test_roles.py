# permissions/tests/test_roles.py

from types import SimpleNamespace

from django.test import SimpleTestCase, TestCase
from rest_framework.test import APIClient

from core.tests.helpers import make_company, make_user
from permissions.roles import (
    ACTION_APPROVE,
    ACTION_CREATE,
    ACTION_DELETE,
    ACTION_DISPATCH,
    ACTION_EDIT,
    ACTION_RECORD_PAYMENT,
    ACTION_START_PROCESS,
    ACTION_VIEW,
    MODULE_ADMIN,
    MODULE_FINANCIAL,
    MODULE_INVENTORY,
    MODULE_ORDERS,
    MODULE_PRODUCTION,
    MODULE_SECURITY,
    ROLE_ACCOUNTANT,
    ROLE_ADMIN,
    ROLE_MANAGER,
    ROLE_OPERATOR,
    ROLE_PRODUCTION_MANAGER,
    ROLE_SALES,
    ROLE_SECURITY,
    ROLE_SUPER_ADMIN,
    ROLE_VIEWER,
    HasModulePermission,
    allowed_actions_for,
    is_allowed,
    resolve_action,
    user_can,
)


class PolicyTableTests(SimpleTestCase):
    """
    GUARANTEES:
    - super_admin passes every check, admin every granted pair
    - unknown pairs and missing roles are denied
    """

    def test_super_admin_and_admin(self):
        self.assertTrue(is_allowed(ROLE_SUPER_ADMIN, MODULE_ADMIN, ACTION_DELETE))
        self.assertTrue(is_allowed(ROLE_SUPER_ADMIN, "unknown", "anything"))
        self.assertTrue(is_allowed(ROLE_ADMIN, MODULE_FINANCIAL, ACTION_RECORD_PAYMENT))
        self.assertFalse(is_allowed(ROLE_ADMIN, MODULE_ADMIN, ACTION_DELETE))

    def test_module_grants(self):
        self.assertTrue(is_allowed(ROLE_SECURITY, MODULE_SECURITY, ACTION_EDIT))
        self.assertFalse(is_allowed(ROLE_SECURITY, MODULE_SECURITY, ACTION_APPROVE))
        self.assertTrue(is_allowed(ROLE_MANAGER, MODULE_SECURITY, ACTION_APPROVE))

        self.assertTrue(is_allowed(ROLE_SALES, MODULE_ORDERS, ACTION_DISPATCH))
        self.assertFalse(is_allowed(ROLE_PRODUCTION_MANAGER, MODULE_ORDERS, ACTION_DISPATCH))
        self.assertTrue(is_allowed(ROLE_VIEWER, MODULE_ORDERS, ACTION_VIEW))

        self.assertTrue(is_allowed(ROLE_PRODUCTION_MANAGER, MODULE_PRODUCTION, ACTION_START_PROCESS))
        self.assertFalse(is_allowed(ROLE_OPERATOR, MODULE_PRODUCTION, ACTION_START_PROCESS))

        self.assertTrue(is_allowed(ROLE_ACCOUNTANT, MODULE_FINANCIAL, ACTION_RECORD_PAYMENT))
        self.assertFalse(is_allowed(ROLE_MANAGER, MODULE_FINANCIAL, ACTION_RECORD_PAYMENT))

    def test_denied_by_default(self):
        self.assertFalse(is_allowed(None, MODULE_INVENTORY, ACTION_VIEW))
        self.assertFalse(is_allowed(ROLE_MANAGER, MODULE_INVENTORY, "teleport"))
        self.assertFalse(is_allowed("janitor", MODULE_INVENTORY, ACTION_VIEW))

    def test_allowed_actions_for(self):
        security = allowed_actions_for(ROLE_SECURITY)
        self.assertEqual(security[MODULE_SECURITY], [ACTION_CREATE, ACTION_EDIT, ACTION_VIEW])
        self.assertNotIn(MODULE_FINANCIAL, security)

        everything = allowed_actions_for(ROLE_SUPER_ADMIN)
        self.assertIn(ACTION_DELETE, everything[MODULE_ADMIN])
        self.assertEqual(list(everything), sorted(everything))


class ResolveActionTests(SimpleTestCase):
    def test_method_mapping(self):
        view = SimpleNamespace(action="list")
        self.assertEqual(resolve_action(SimpleNamespace(method="GET"), view), ACTION_VIEW)
        self.assertEqual(resolve_action(SimpleNamespace(method="PATCH"), view), ACTION_EDIT)
        self.assertEqual(resolve_action(SimpleNamespace(method="DELETE"), view), ACTION_DELETE)

    def test_override_wins(self):
        view = SimpleNamespace(action="dispatch_order", permission_actions={"dispatch_order": ACTION_DISPATCH})
        self.assertEqual(resolve_action(SimpleNamespace(method="POST"), view), ACTION_DISPATCH)

    def test_view_without_module_is_denied(self):
        request = SimpleNamespace(
            method="GET",
            user=SimpleNamespace(is_authenticated=True, is_active=True, role=ROLE_SUPER_ADMIN),
        )
        self.assertFalse(HasModulePermission().has_permission(request, SimpleNamespace()))


class UserCanTests(TestCase):
    def setUp(self):
        self.company = make_company()

    def test_active_user(self):
        sales = make_user(self.company, role=ROLE_SALES)
        self.assertTrue(user_can(sales, MODULE_ORDERS, ACTION_CREATE))
        self.assertFalse(user_can(sales, MODULE_FINANCIAL, ACTION_VIEW))

        sales.is_active = False
        self.assertFalse(user_can(sales, MODULE_ORDERS, ACTION_CREATE))

    def test_anonymous(self):
        anonymous = SimpleNamespace(is_authenticated=False, is_active=True, role=ROLE_ADMIN)
        self.assertFalse(user_can(anonymous, MODULE_ORDERS, ACTION_VIEW))
        self.assertFalse(user_can(None, MODULE_ORDERS, ACTION_VIEW))


class RolesApiTests(TestCase):
    """
    GUARANTEES:
    - /api/roles/ lists every role with its module actions
    - /api/roles/me/ shows the caller's own grants
    """

    def setUp(self):
        self.company = make_company()
        self.client = APIClient()

    def test_role_list(self):
        self.client.force_authenticate(make_user(self.company, role=ROLE_VIEWER))
        res = self.client.get("/api/roles/")
        self.assertEqual(res.status_code, 200, res.data)

        data = res.data["data"]
        self.assertIn(MODULE_SECURITY, data["modules"])
        roles = {entry["role"]: entry for entry in data["roles"]}
        self.assertEqual(roles[ROLE_SECURITY]["label"], "Security")
        self.assertIn(ACTION_APPROVE, roles[ROLE_MANAGER]["permissions"][MODULE_SECURITY])

    def test_my_permissions(self):
        self.client.force_authenticate(make_user(self.company, role=ROLE_ACCOUNTANT))
        res = self.client.get("/api/roles/me/")
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["data"]["role"], ROLE_ACCOUNTANT)
        self.assertIn(
            ACTION_RECORD_PAYMENT, res.data["data"]["permissions"][MODULE_FINANCIAL]
        )

    def test_requires_authentication(self):
        self.assertEqual(self.client.get("/api/roles/me/").status_code, 401)
