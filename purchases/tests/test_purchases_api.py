# purchases/tests/test_purchases_api.py

from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIClient

from core.tests.helpers import make_company, make_item, make_user
from inventory.models import InventoryItem
from permissions.roles import ROLE_INVENTORY_MANAGER, ROLE_MANAGER, ROLE_VIEWER
from purchases.models import Supplier


class PurchasesApiTests(TestCase):
    """
    GUARANTEES:
    - Suppliers and purchase orders are reachable through /api/purchases/
    - Receiving over HTTP raises stock
    - Deleting a supplier deactivates it
    - Status changes need the approve permission
    """

    def setUp(self):
        self.company = make_company()
        self.client = APIClient()
        self.client.force_authenticate(make_user(self.company, role=ROLE_MANAGER))
        self.yarn = make_item(self.company, name="Cotton Yarn", item_code="YARN001")

    def create_supplier(self, **extra):
        res = self.client.post(
            "/api/purchases/suppliers/",
            {"name": "Cotton Mills Ltd", "category": "manufacturer", **extra},
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        return res.data["data"]

    def create_po(self, supplier_id):
        res = self.client.post(
            "/api/purchases/orders/",
            {
                "supplier_id": supplier_id,
                "items": [{"item_id": str(self.yarn.pk), "quantity": "50", "rate": "12.00"}],
            },
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        return res.data["data"]

    def test_supplier_crud(self):
        supplier = self.create_supplier()
        self.assertEqual(supplier["supplier_code"], "SUPP000001")

        res = self.client.post(
            f"/api/purchases/suppliers/{supplier['id']}/rating/", {"rating": "4"}, format="json"
        )
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(Decimal(res.data["data"]["rating"]), Decimal("4"))

        res = self.client.get("/api/purchases/suppliers/search/?q=cotton")
        self.assertEqual(res.data["data"]["pagination"]["total"], 1)

        res = self.client.delete(f"/api/purchases/suppliers/{supplier['id']}/")
        self.assertEqual(res.status_code, 200)
        self.assertFalse(Supplier.objects.get(pk=supplier["id"]).is_active)

    def test_duplicate_supplier_code_is_conflict(self):
        self.create_supplier(supplier_code="MILL01")
        res = self.client.post(
            "/api/purchases/suppliers/",
            {"name": "Second", "supplier_code": "mill01"},
            format="json",
        )
        self.assertEqual(res.status_code, 409)
        self.assertFalse(res.data["success"])

    def test_order_receipt_over_http(self):
        supplier = self.create_supplier()
        po = self.create_po(supplier["id"])
        self.assertEqual(Decimal(po["grand_total"]), Decimal("600.00"))
        base = f"/api/purchases/orders/{po['id']}"

        for status in ("sent", "acknowledged"):
            res = self.client.post(f"{base}/status/", {"status": status}, format="json")
            self.assertEqual(res.status_code, 200, res.data)

        res = self.client.post(
            f"{base}/receive-items/",
            {"items": [{"line_id": po["items"][0]["id"], "received_quantity": "50"}]},
            format="json",
        )
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["data"]["status"], "received")
        self.assertEqual(
            InventoryItem.objects.get(pk=self.yarn.pk).current_stock, Decimal("50.000")
        )

        res = self.client.patch(f"{base}/", {"notes": "too late"}, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["code"], "invalid_state")

    def test_status_needs_approve_permission(self):
        supplier = self.create_supplier()
        po = self.create_po(supplier["id"])

        self.client.force_authenticate(make_user(self.company, role=ROLE_INVENTORY_MANAGER))
        res = self.client.post(
            f"/api/purchases/orders/{po['id']}/status/", {"status": "sent"}, format="json"
        )
        self.assertEqual(res.status_code, 403)

    def test_viewer_lists_orders(self):
        supplier = self.create_supplier()
        self.create_po(supplier["id"])

        self.client.force_authenticate(make_user(self.company, role=ROLE_VIEWER))
        res = self.client.get("/api/purchases/orders/?status=draft")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["data"]["pagination"]["total"], 1)

        res = self.client.get("/api/purchases/orders/stats/")
        self.assertEqual(res.data["data"]["total_orders"], 1)
