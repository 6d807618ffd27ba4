# core/tests/test_exception_handler.py

import uuid

from django.db import IntegrityError
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from core.api.exception_handler import envelope_exception_handler
from core.exceptions import BusinessLogicError, NotFoundError
from core.tests.helpers import make_company, make_user


@override_settings(ERROR_INCLUDE_STACK=False)
class ExceptionHandlerTests(TestCase):
    """
    GUARANTEES:
    - Every failure leaves as {"success": false, "message", "error": {...}}
    - AppError subclasses keep their status code and error code
    """

    def test_app_error(self):
        res = envelope_exception_handler(
            NotFoundError("Invoice", details={"id": "x"}), {"view": None}
        )
        self.assertEqual(res.status_code, 404)
        self.assertFalse(res.data["success"])
        self.assertEqual(res.data["message"], "Invoice not found")
        self.assertEqual(res.data["error"]["code"], "not_found")
        self.assertEqual(res.data["error"]["details"], {"id": "x"})
        self.assertNotIn("stack", res.data["error"])

        res = envelope_exception_handler(BusinessLogicError(), {"view": None})
        self.assertEqual(res.status_code, 422)
        self.assertEqual(res.data["message"], "Business rule violated")

    def test_integrity_error_is_conflict(self):
        res = envelope_exception_handler(IntegrityError("dup"), {"view": None})
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["error"]["code"], "conflict")

    def test_unexpected_error_is_500(self):
        with self.assertLogs("erp.api", level="ERROR"):
            res = envelope_exception_handler(RuntimeError("boom"), {"view": None})
        self.assertEqual(res.status_code, 500)
        self.assertEqual(res.data["message"], "Internal server error")

    @override_settings(ERROR_INCLUDE_STACK=True)
    def test_stack_only_when_enabled(self):
        res = envelope_exception_handler(NotFoundError(), {"view": None})
        self.assertIn("stack", res.data["error"])

    def test_over_http(self):
        client = APIClient()
        res = client.get("/api/inventory/warehouses/")
        self.assertEqual(res.status_code, 401)
        self.assertFalse(res.data["success"])

        client.force_authenticate(make_user(make_company()))
        res = client.get(f"/api/inventory/warehouses/{uuid.uuid4()}/")
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.data["error"]["code"], "not_found")

        res = client.get("/api/inventory/warehouses/?page=abc")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["code"], "validation_error")
