# purchases/tests/test_purchase_orders.py

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from core.exceptions import (
    ConflictError,
    InvalidStateError,
    InvalidTransitionError,
    ValidationError,
)
from core.tests.helpers import make_company, make_item, make_services, make_user
from inventory.models import InventoryItem, StockMovement
from purchases.models import PurchaseOrder
from purchases.services.totals import compute_purchase_order_totals


class PurchasesTestCase(TestCase):
    def setUp(self):
        self.company = make_company()
        self.user = make_user(self.company)
        self.services = make_services()
        self.orders = self.services.purchase_orders
        self.suppliers = self.services.suppliers

        self.supplier = self.suppliers.create(
            self.company, {"name": "Cotton Mills Ltd", "email": "Sales@CottonMills.com"}
        )
        self.yarn = make_item(self.company, name="Cotton Yarn", item_code="YARN001")
        self.dye = make_item(self.company, name="Reactive Dye", item_code="DYE001")

    def create_po(self, **overrides):
        data = {
            "supplier_id": self.supplier.pk,
            "items": [
                {
                    "item_id": self.yarn.pk,
                    "quantity": "100",
                    "rate": "10.00",
                    "discount_value": "10",
                    "tax_rate": "5",
                },
                {"item_id": self.dye.pk, "quantity": "20", "rate": "50.00"},
            ],
            "freight_charges": "25.00",
        }
        data.update(overrides)
        return self.orders.create_order(self.company, data, created_by=self.user)

    def acknowledged_po(self, **overrides):
        po = self.create_po(**overrides)
        self.orders.update_status(self.company, po.pk, status=PurchaseOrder.Status.SENT)
        return self.orders.update_status(
            self.company, po.pk, status=PurchaseOrder.Status.ACKNOWLEDGED
        )

    def line_for(self, po, item):
        return po.items.get(item=item)


class SupplierServiceTests(PurchasesTestCase):
    """
    GUARANTEES:
    - Codes are SUPP + 6 digits when not supplied
    - Codes and emails are unique per company
    - Ratings stay within 1..5
    """

    def test_generated_code_and_normalised_email(self):
        self.assertEqual(self.supplier.supplier_code, "SUPP000001")
        self.assertEqual(self.supplier.email, "sales@cottonmills.com")

        second = self.suppliers.create(self.company, {"name": "Dye House"})
        self.assertEqual(second.supplier_code, "SUPP000002")

    def test_duplicate_code_and_email_conflict(self):
        with self.assertRaises(ConflictError):
            self.suppliers.create(
                self.company, {"name": "Other", "supplier_code": "supp000001"}
            )
        with self.assertRaises(ConflictError) as ctx:
            self.suppliers.create(
                self.company, {"name": "Other", "email": "sales@cottonmills.com"}
            )
        self.assertEqual(ctx.exception.message, "Supplier with this email already exists")

    def test_same_code_allowed_in_another_company(self):
        other = make_company(code="GLOBEX", name="Globex")
        supplier = self.suppliers.create(other, {"name": "Globex Supplier"})
        self.assertEqual(supplier.supplier_code, "SUPP000001")

    def test_name_required(self):
        with self.assertRaises(ValidationError):
            self.suppliers.create(self.company, {"name": "  "})

    def test_rating_bounds(self):
        rated = self.suppliers.update_rating(self.company, self.supplier.pk, "4.5")
        self.assertEqual(rated.rating, Decimal("4.50"))
        self.assertIsNotNone(rated.rated_at)

        for bad in ("0", "5.5"):
            with self.assertRaises(ValidationError):
                self.suppliers.update_rating(self.company, self.supplier.pk, bad)

    def test_inactive_supplier_cannot_take_orders(self):
        self.suppliers.update(self.company, self.supplier.pk, {"is_active": False})
        with self.assertRaises(InvalidStateError):
            self.create_po()

    def test_stats(self):
        self.suppliers.update_rating(self.company, self.supplier.pk, "4")
        self.suppliers.create(self.company, {"name": "Dye House", "category": "trader"})

        stats = self.suppliers.stats(self.company)
        self.assertEqual(stats["total_suppliers"], 2)
        self.assertEqual(stats["active_suppliers"], 2)
        self.assertEqual(stats["average_rating"], Decimal("4.00"))
        self.assertEqual(stats["by_category"], {"manufacturer": 1, "trader": 1})


class PurchaseOrderTotalsTests(PurchasesTestCase):
    """
    GUARANTEES:
    - Line: amount - discount, then tax on the taxable amount
    - Header: sum of lines + freight + other charges + round off
    """

    def test_create_derives_totals(self):
        po = self.create_po()

        self.assertTrue(po.po_number.startswith(f"PO{timezone.localdate():%Y%m}"))
        self.assertEqual(po.status, PurchaseOrder.Status.DRAFT)

        yarn = self.line_for(po, self.yarn)
        self.assertEqual(yarn.amount, Decimal("1000.00"))
        self.assertEqual(yarn.discount_amount, Decimal("100.00"))
        self.assertEqual(yarn.tax_amount, Decimal("45.00"))
        self.assertEqual(yarn.line_total, Decimal("945.00"))
        self.assertEqual(yarn.pending_quantity, Decimal("100.000"))

        self.assertEqual(po.subtotal, Decimal("2000.00"))
        self.assertEqual(po.discount_total, Decimal("100.00"))
        self.assertEqual(po.tax_total, Decimal("45.00"))
        self.assertEqual(po.grand_total, Decimal("1970.00"))
        self.assertEqual(po.total_ordered, Decimal("120.000"))
        self.assertEqual(po.receiving_status, PurchaseOrder.ReceivingStatus.PENDING)

    def test_numbers_are_sequential(self):
        first = self.create_po()
        second = self.create_po()
        self.assertEqual(int(second.po_number[-4:]), int(first.po_number[-4:]) + 1)

    def test_pure_totals_without_lines(self):
        totals = compute_purchase_order_totals([], freight_charges="10", round_off="0.50")
        self.assertEqual(totals.document.grand_total, Decimal("10.50"))
        self.assertEqual(totals.receiving_status, "pending")

    def test_line_validation(self):
        with self.assertRaises(ValidationError) as ctx:
            self.create_po(items=[])
        self.assertEqual(ctx.exception.message, "Purchase order must have at least one item")

        with self.assertRaises(ValidationError) as ctx:
            self.create_po(items=[{"item_id": self.yarn.pk, "quantity": "0", "rate": "1"}])
        self.assertEqual(ctx.exception.message, "Item 1: Quantity must be greater than 0")

        with self.assertRaises(ValidationError) as ctx:
            self.create_po(items=[{"item_id": self.yarn.pk, "quantity": "1", "rate": "-1"}])
        self.assertEqual(ctx.exception.message, "Item 1: Rate must be non-negative")

    def test_supplier_required(self):
        with self.assertRaises(ValidationError) as ctx:
            self.create_po(supplier_id=None)
        self.assertEqual(ctx.exception.message, "Supplier ID is required")

    def test_update_replaces_lines_while_draft(self):
        po = self.create_po()
        po = self.orders.update_order(
            self.company,
            po.pk,
            {"items": [{"item_id": self.yarn.pk, "quantity": "10", "rate": "10.00"}]},
        )
        self.assertEqual(po.items.count(), 1)
        self.assertEqual(po.grand_total, Decimal("125.00"))

        self.orders.update_status(self.company, po.pk, status=PurchaseOrder.Status.SENT)
        with self.assertRaises(InvalidStateError):
            self.orders.update_order(self.company, po.pk, {"notes": "late"})
        with self.assertRaises(InvalidStateError):
            self.orders.delete(self.company, po.pk)


class PurchaseOrderReceivingTests(PurchasesTestCase):
    """
    GUARANTEES:
    - Only acknowledged / partially received orders receive goods
    - Accepted quantity posts an inward movement at the line rate
    - received + rejected never exceeds the pending quantity
    - Order becomes partially_received, then received
    """

    def test_status_flow_and_timestamps(self):
        po = self.create_po()
        po = self.orders.update_status(self.company, po.pk, status=PurchaseOrder.Status.SENT)
        self.assertIsNotNone(po.sent_at)

        with self.assertRaises(InvalidTransitionError):
            self.orders.update_status(self.company, po.pk, status=PurchaseOrder.Status.SENT)

        po = self.orders.update_status(
            self.company, po.pk, status=PurchaseOrder.Status.ACKNOWLEDGED
        )
        self.assertIsNotNone(po.acknowledged_at)

    def test_status_endpoint_refuses_receipt_statuses(self):
        po = self.acknowledged_po()
        with self.assertRaises(ValidationError):
            self.orders.update_status(
                self.company, po.pk, status=PurchaseOrder.Status.RECEIVED
            )

    def test_draft_cannot_receive(self):
        po = self.create_po()
        line = self.line_for(po, self.yarn)
        with self.assertRaises(InvalidStateError) as ctx:
            self.orders.receive_items(
                self.company, po.pk, [{"line_id": line.pk, "received_quantity": "10"}]
            )
        self.assertEqual(ctx.exception.message, "Only acknowledged orders can receive items")

    def test_partial_then_full_receipt(self):
        po = self.acknowledged_po()
        yarn = self.line_for(po, self.yarn)
        dye = self.line_for(po, self.dye)

        po = self.orders.receive_items(
            self.company,
            po.pk,
            [{"line_id": yarn.pk, "received_quantity": "60", "rejected_quantity": "5"}],
            user=self.user,
        )
        self.assertEqual(po.status, PurchaseOrder.Status.PARTIALLY_RECEIVED)
        self.assertEqual(po.receiving_status, PurchaseOrder.ReceivingStatus.PARTIAL)
        self.assertIsNotNone(po.first_receipt_at)
        self.assertEqual(po.total_pending, Decimal("55.000"))

        stock = InventoryItem.objects.get(pk=self.yarn.pk)
        self.assertEqual(stock.current_stock, Decimal("60.000"))
        movement = StockMovement.objects.get(item=self.yarn)
        self.assertEqual(movement.reference_number, po.po_number)
        self.assertEqual(movement.reference_type, StockMovement.ReferenceType.PURCHASE_ORDER)

        po = self.orders.receive_items(
            self.company,
            po.pk,
            [
                {"line_id": yarn.pk, "received_quantity": "35"},
                {"line_id": dye.pk, "received_quantity": "20"},
            ],
        )
        self.assertEqual(po.status, PurchaseOrder.Status.RECEIVED)
        self.assertEqual(po.receiving_status, PurchaseOrder.ReceivingStatus.COMPLETED)
        self.assertEqual(po.total_received, Decimal("115.000"))
        self.assertEqual(po.total_pending, Decimal("0.000"))
        self.assertIsNotNone(po.fully_received_at)
        self.assertEqual(
            InventoryItem.objects.get(pk=self.dye.pk).current_stock, Decimal("20.000")
        )

    def test_over_receipt_rejected(self):
        po = self.acknowledged_po()
        line = self.line_for(po, self.dye)
        with self.assertRaises(ValidationError):
            self.orders.receive_items(
                self.company,
                po.pk,
                [{"line_id": line.pk, "received_quantity": "15", "rejected_quantity": "6"}],
            )
        self.assertEqual(
            InventoryItem.objects.get(pk=self.dye.pk).current_stock, Decimal("0.000")
        )

    def test_foreign_line_rejected(self):
        po = self.acknowledged_po()
        other = self.create_po()
        foreign = self.line_for(other, self.yarn)
        with self.assertRaises(ValidationError):
            self.orders.receive_items(
                self.company, po.pk, [{"line_id": foreign.pk, "received_quantity": "1"}]
            )

    def test_received_order_is_terminal(self):
        po = self.acknowledged_po(
            items=[{"item_id": self.yarn.pk, "quantity": "5", "rate": "10"}]
        )
        line = self.line_for(po, self.yarn)
        self.orders.receive_items(
            self.company, po.pk, [{"line_id": line.pk, "received_quantity": "5"}]
        )
        with self.assertRaises(InvalidTransitionError):
            self.orders.update_status(
                self.company, po.pk, status=PurchaseOrder.Status.CANCELLED
            )


class PurchaseOrderReportTests(PurchasesTestCase):
    def test_overdue_and_stats(self):
        today = timezone.localdate()
        late = self.acknowledged_po(
            po_date=today - timedelta(days=10),
            expected_delivery_date=today - timedelta(days=2),
        )
        self.create_po(expected_delivery_date=today - timedelta(days=1), po_date=today - timedelta(days=5))

        overdue = self.orders.overdue_orders(self.company)
        self.assertEqual([po.pk for po in overdue], [late.pk])
        self.assertTrue(overdue[0].is_overdue)

        stats = self.orders.stats(self.company)
        self.assertEqual(stats["total_orders"], 2)
        self.assertEqual(stats["by_status"]["draft"]["count"], 1)
        self.assertEqual(stats["total_value"], Decimal("3940.00"))
        self.assertEqual(stats["total_spend"], Decimal("0.00"))
        self.assertEqual(stats["overdue_count"], 1)
        self.assertEqual(stats["top_suppliers"][0]["order_count"], 2)
