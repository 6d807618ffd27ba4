# visitors/tests/test_visitors_api.py

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from core.tests.helpers import make_company, make_user
from permissions.roles import ROLE_MANAGER, ROLE_SALES, ROLE_SECURITY


class VisitorApiTests(TestCase):
    """
    GUARANTEES:
    - Security staff register, check in and check out visitors
    - Approve / reject need the approve permission
    - Roles outside security / management cannot see the register
    """

    def setUp(self):
        self.company = make_company()
        self.guard = make_user(self.company, role=ROLE_SECURITY)
        self.manager = make_user(self.company, role=ROLE_MANAGER)
        self.client = APIClient()
        self.client.force_authenticate(self.guard)

    def register(self, **extra):
        res = self.client.post(
            "/api/visitors/",
            {
                "first_name": "Ada",
                "last_name": "Obi",
                "phone": "+2348012345678",
                "visit_purpose": "meeting",
                "scheduled_arrival": timezone.now().isoformat(),
                **extra,
            },
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        return res.data["data"]

    def test_gate_flow(self):
        visitor = self.register()
        self.assertTrue(visitor["visitor_number"].startswith("VIS-"))
        base = f"/api/visitors/{visitor['id']}"

        res = self.client.post(f"{base}/check-in/", {"gate": "Gate 1"}, format="json")
        self.assertEqual(res.status_code, 200, res.data)
        self.assertTrue(res.data["data"]["is_inside"])

        res = self.client.get("/api/visitors/inside/")
        self.assertEqual(len(res.data["data"]), 1)

        res = self.client.post(f"{base}/check-in/", {}, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["code"], "invalid_state")

        res = self.client.post(f"{base}/check-out/", {"rating": 5}, format="json")
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["data"]["status"], "checked_out")

        res = self.client.get("/api/visitors/stats/")
        self.assertEqual(res.data["data"]["total_visitors"], 1)

    def test_approval_needs_approver(self):
        visitor = self.register(approval_required=True)
        base = f"/api/visitors/{visitor['id']}"

        res = self.client.post(f"{base}/approve/", {}, format="json")
        self.assertEqual(res.status_code, 403)

        self.client.force_authenticate(self.manager)
        res = self.client.post(f"{base}/reject/", {}, format="json")
        self.assertEqual(res.status_code, 400)

        res = self.client.post(f"{base}/approve/", {"notes": "Escort to QA"}, format="json")
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["data"]["approval_status"], "approved")

    def test_search_and_today(self):
        self.register(organisation="Harbour Logistics")
        res = self.client.get("/api/visitors/search/?q=harbour")
        self.assertEqual(res.data["data"]["pagination"]["total"], 1)

        res = self.client.get("/api/visitors/today/")
        self.assertEqual(len(res.data["data"]), 1)

    def test_sales_role_is_forbidden(self):
        self.client.force_authenticate(make_user(self.company, role=ROLE_SALES))
        self.assertEqual(self.client.get("/api/visitors/").status_code, 403)
