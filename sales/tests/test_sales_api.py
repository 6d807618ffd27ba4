# sales/tests/test_sales_api.py

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from core.tests.helpers import make_company, make_user
from permissions.roles import (
    ROLE_ACCOUNTANT,
    ROLE_MANAGER,
    ROLE_PRODUCTION_MANAGER,
    ROLE_SALES,
)
from sales.models import Customer


class SalesApiTestCase(TestCase):
    def setUp(self):
        self.company = make_company()
        self.manager = make_user(self.company, role=ROLE_MANAGER)
        self.sales = make_user(self.company, role=ROLE_SALES)
        self.accountant = make_user(self.company, role=ROLE_ACCOUNTANT)
        self.client = APIClient()
        self.client.force_authenticate(self.manager)
        self.today = timezone.localdate()
        self.customer = self.create_customer()

    def as_user(self, user):
        self.client.force_authenticate(user)

    def create_customer(self, **extra):
        res = self.client.post(
            "/api/sales/customers/",
            {
                "name": "Lagos Fabrics",
                "email": "buyer@lagosfabrics.com",
                "phone": "+234 800 000 0000",
                **extra,
            },
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        return res.data["data"]

    def lines(self):
        return [{"description": "Printed saree", "quantity": "4", "rate": "250.00"}]


class CustomerApiTests(SalesApiTestCase):
    """
    GUARANTEES:
    - Envelope on every response
    - Deleting a customer deactivates it
    """

    def test_customer_endpoints(self):
        self.assertEqual(self.customer["customer_code"], "CUST000001")

        res = self.client.get("/api/sales/customers/search/?q=lagos")
        self.assertTrue(res.data["success"])
        self.assertEqual(res.data["data"]["pagination"]["total"], 1)

        res = self.client.post(
            f"/api/sales/customers/{self.customer['id']}/credit-limit/",
            {"credit_limit": "25000"},
            format="json",
        )
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(Decimal(res.data["data"]["credit_limit"]), Decimal("25000.00"))

        res = self.client.delete(f"/api/sales/customers/{self.customer['id']}/")
        self.assertEqual(res.status_code, 200)
        self.assertFalse(Customer.objects.get(pk=self.customer["id"]).is_active)

    def test_missing_phone_is_400(self):
        res = self.client.post(
            "/api/sales/customers/",
            {"name": "Kano Traders", "email": "kano@example.com"},
            format="json",
        )
        self.assertEqual(res.status_code, 400)
        self.assertFalse(res.data["success"])

    def test_accountant_cannot_edit_customers(self):
        self.as_user(self.accountant)
        self.assertEqual(self.client.get("/api/sales/customers/").status_code, 200)
        res = self.client.post(
            "/api/sales/customers/",
            {"name": "X", "email": "x@example.com", "phone": "1"},
            format="json",
        )
        self.assertEqual(res.status_code, 403)


class QuotationApiTests(SalesApiTestCase):
    """
    GUARANTEES:
    - Sales staff run quotations but cannot approve them
    - convert-to-order returns the new order with 201
    """

    def create_quotation(self):
        res = self.client.post(
            "/api/sales/quotations/",
            {
                "customer_id": self.customer["id"],
                "valid_until": str(self.today + timedelta(days=10)),
                "items": self.lines(),
            },
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        return res.data["data"]

    def test_sales_flow(self):
        self.as_user(self.sales)
        quotation = self.create_quotation()
        self.assertEqual(Decimal(quotation["grand_total"]), Decimal("1000.00"))
        base = f"/api/sales/quotations/{quotation['id']}"

        for status in ("sent", "accepted"):
            res = self.client.post(f"{base}/status/", {"status": status}, format="json")
            self.assertEqual(res.status_code, 200, res.data)

        res = self.client.post(f"{base}/convert-to-order/", {"credit_days": 10}, format="json")
        self.assertEqual(res.status_code, 201, res.data)
        self.assertTrue(res.data["data"]["order_number"].startswith("CO"))
        self.assertEqual(Decimal(res.data["data"]["final_amount"]), Decimal("1000.00"))

        res = self.client.get(f"{base}/")
        self.assertEqual(res.data["data"]["status"], "converted")

    def test_sales_cannot_approve(self):
        quotation = self.create_quotation()
        base = f"/api/sales/quotations/{quotation['id']}"
        self.client.post(f"{base}/status/", {"status": "pending_approval"}, format="json")

        self.as_user(self.sales)
        res = self.client.post(f"{base}/status/", {"status": "approved"}, format="json")
        self.assertEqual(res.status_code, 403)

        self.as_user(self.manager)
        res = self.client.post(f"{base}/status/", {"status": "approved"}, format="json")
        self.assertEqual(res.status_code, 200, res.data)
        self.assertIsNotNone(res.data["data"]["approved_at"])

    def test_illegal_transition_is_400(self):
        quotation = self.create_quotation()
        res = self.client.post(
            f"/api/sales/quotations/{quotation['id']}/status/",
            {"status": "accepted"},
            format="json",
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["code"], "invalid_transition")
        self.assertEqual(res.data["error"]["details"]["from"], "draft")


class InvoiceApiTests(SalesApiTestCase):
    """
    GUARANTEES:
    - Invoices belong to the financial module
    - Payments are listed and recorded at /payments/
    """

    def create_invoice(self):
        res = self.client.post(
            "/api/sales/invoices/",
            {
                "customer_id": self.customer["id"],
                "due_date": str(self.today + timedelta(days=30)),
                "items": self.lines(),
            },
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        return res.data["data"]

    def test_payments(self):
        self.as_user(self.accountant)
        invoice = self.create_invoice()
        base = f"/api/sales/invoices/{invoice['id']}"

        res = self.client.post(f"{base}/status/", {"status": "sent"}, format="json")
        self.assertEqual(res.status_code, 200, res.data)

        res = self.client.post(
            f"{base}/payments/", {"amount": "400", "method": "cash"}, format="json"
        )
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["data"]["status"], "partially_paid")
        self.assertEqual(Decimal(res.data["data"]["outstanding_amount"]), Decimal("600.00"))

        res = self.client.post(f"{base}/payments/", {"amount": "600.01"}, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["code"], "validation_error")

        res = self.client.get(f"{base}/payments/")
        self.assertEqual(len(res.data["data"]), 1)

    def test_status_endpoint_refuses_paid(self):
        self.as_user(self.accountant)
        invoice = self.create_invoice()
        res = self.client.post(
            f"/api/sales/invoices/{invoice['id']}/status/", {"status": "paid"}, format="json"
        )
        self.assertEqual(res.status_code, 400)

    def test_sales_cannot_see_invoices(self):
        self.as_user(self.sales)
        self.assertEqual(self.client.get("/api/sales/invoices/").status_code, 403)

    def test_manager_reads_but_cannot_record_payments(self):
        self.as_user(self.accountant)
        invoice = self.create_invoice()
        self.client.post(
            f"/api/sales/invoices/{invoice['id']}/status/", {"status": "sent"}, format="json"
        )

        self.as_user(self.manager)
        self.assertEqual(self.client.get("/api/sales/invoices/stats/").status_code, 200)
        res = self.client.post(
            f"/api/sales/invoices/{invoice['id']}/payments/", {"amount": "10"}, format="json"
        )
        self.assertEqual(res.status_code, 403)


class CustomerOrderApiTests(SalesApiTestCase):
    """
    GUARANTEES:
    - Dispatch and delivery need the dispatch permission
    """

    def create_order(self):
        res = self.client.post(
            "/api/sales/orders/",
            {
                "customer_id": self.customer["id"],
                "advance_amount": "100",
                "credit_days": 7,
                "items": [
                    {
                        "description": "Cotton print",
                        "product_type": "digital_print",
                        "quantity": "10",
                        "rate": "50",
                    }
                ],
            },
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        return res.data["data"]

    def advance_to_ready(self, order_id):
        for status in ("confirmed", "in_production", "quality_check", "ready_for_dispatch"):
            res = self.client.post(
                f"/api/sales/orders/{order_id}/status/", {"status": status}, format="json"
            )
            self.assertEqual(res.status_code, 200, res.data)

    def test_order_totals(self):
        order = self.create_order()
        self.assertEqual(Decimal(order["final_amount"]), Decimal("500.00"))
        self.assertEqual(Decimal(order["balance_amount"]), Decimal("400.00"))
        self.assertEqual(order["due_date"], str(self.today + timedelta(days=7)))

    def test_dispatch_permission(self):
        order = self.create_order()
        self.advance_to_ready(order["id"])
        url = f"/api/sales/orders/{order['id']}/status/"

        self.as_user(make_user(self.company, role=ROLE_PRODUCTION_MANAGER))
        res = self.client.post(url, {"status": "dispatched"}, format="json")
        self.assertEqual(res.status_code, 403)

        self.as_user(self.sales)
        res = self.client.post(url, {"status": "dispatched"}, format="json")
        self.assertEqual(res.status_code, 200, res.data)
        self.assertIsNotNone(res.data["data"]["dispatched_at"])
