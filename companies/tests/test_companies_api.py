# companies/tests/test_companies_api.py

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from companies.models import Company
from core.tests.helpers import make_company, make_user
from permissions.roles import ROLE_ADMIN, ROLE_SUPER_ADMIN, ROLE_VIEWER

User = get_user_model()


class CompanyApiTests(TestCase):
    """
    GUARANTEES:
    - tenants only ever see their own company
    - only a super admin creates companies
    - delete (super admin only) deactivates the company
    """

    def setUp(self):
        self.acme = make_company()
        self.other = make_company(code="OTHER", name="Other Mills")
        self.root = User.objects.create_superuser(
            email="root@example.com", password="Looms-and-Spindles-42"
        )
        self.client = APIClient()

    def test_tenant_sees_own_company_only(self):
        self.client.force_authenticate(make_user(self.acme, role=ROLE_VIEWER))
        res = self.client.get("/api/companies/")
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual([c["code"] for c in res.data["data"]], ["ACME"])

        res = self.client.get(f"/api/companies/{self.other.id}/")
        self.assertEqual(res.status_code, 404)

    def test_super_admin_sees_all(self):
        self.client.force_authenticate(self.root)
        res = self.client.get("/api/companies/")
        self.assertEqual([c["code"] for c in res.data["data"]], ["ACME", "OTHER"])

    def test_create(self):
        self.client.force_authenticate(self.root)
        res = self.client.post(
            "/api/companies/", {"name": "Delta Weaving", "code": " delta "}, format="json"
        )
        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["data"]["code"], "DELTA")

        self.client.force_authenticate(make_user(self.acme, role=ROLE_ADMIN))
        res = self.client.post(
            "/api/companies/", {"name": "Sneaky", "code": "SNK"}, format="json"
        )
        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.data["error"]["code"], "authorization_error")

    def test_admin_edits_own_company(self):
        self.client.force_authenticate(make_user(self.acme, role=ROLE_ADMIN))
        res = self.client.patch(
            f"/api/companies/{self.acme.id}/", {"phone": "+2348000000000"}, format="json"
        )
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["data"]["phone"], "+2348000000000")

        res = self.client.delete(f"/api/companies/{self.acme.id}/")
        self.assertEqual(res.status_code, 403)

    def test_super_admin_deactivates(self):
        self.client.force_authenticate(self.root)
        res = self.client.delete(f"/api/companies/{self.other.id}/")
        self.assertEqual(res.status_code, 200, res.data)
        self.assertFalse(Company.objects.get(pk=self.other.pk).is_active)

    def test_viewer_cannot_edit(self):
        self.client.force_authenticate(make_user(self.acme, role=ROLE_VIEWER))
        res = self.client.patch(
            f"/api/companies/{self.acme.id}/", {"phone": "1"}, format="json"
        )
        self.assertEqual(res.status_code, 403)
