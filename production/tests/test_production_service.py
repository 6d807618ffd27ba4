# production/tests/test_production_service.py

from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError as ModelValidationError
from django.test import TestCase
from django.utils import timezone

from core.exceptions import InvalidStateError, InvalidTransitionError, ValidationError
from core.tests.helpers import make_company, make_item, make_services, make_user
from inventory.models import InventoryItem, StockMovement
from inventory.services.exceptions import InsufficientStockError
from production.models import ProductionOrder, ProductionStage


class ProductionTestCase(TestCase):
    def setUp(self):
        self.company = make_company()
        self.user = make_user(self.company)
        self.services = make_services()
        self.production = self.services.production

        self.material = make_item(
            self.company, name="Material A", item_code="MATA001", current_stock="200"
        )
        self.product = make_item(
            self.company,
            name="Printed Saree",
            item_code="SAREE001",
            category=InventoryItem.Category.FINISHED_GOODS,
            unit="pcs",
        )

    def create_order(self, **overrides):
        data = {
            "product_name": "Printed Saree",
            "product_type": ProductionOrder.ProductType.SAREE,
            "order_quantity": "100",
            "planned_start_date": date(2024, 1, 1),
            "planned_end_date": date(2024, 1, 10),
            "materials": [{"item_id": self.material.pk, "required_quantity": "0.5"}],
            "stages": [
                {"name": "Printing", "process_type": "printing"},
                {"name": "Washing", "process_type": "washing"},
            ],
        }
        data.update(overrides)
        return self.production.create_order(self.company, data, created_by=self.user)

    def started_order(self, **overrides):
        order = self.create_order(**overrides)
        self.production.approve_production(self.company, order.pk, user=self.user)
        return self.production.start_production(self.company, order.pk, user=self.user)

    def stock(self, item):
        return InventoryItem.objects.get(pk=item.pk)


class ProductionOrderCreationTests(ProductionTestCase):
    """
    GUARANTEES:
    - Numbers are PO-YYYYMMDD-NNNN, sequential per company and day
    - Raw materials must exist, be active and belong to the company
    - Material cost = required per unit * order quantity * rate
    """

    def test_create_numbers_and_costs(self):
        first = self.create_order()
        second = self.create_order()

        prefix = f"PO-{timezone.localdate():%Y%m%d}-"
        self.assertEqual(first.order_number, f"{prefix}0001")
        self.assertEqual(second.order_number, f"{prefix}0002")

        self.assertEqual(first.status, ProductionOrder.Status.DRAFT)
        self.assertEqual(first.pending_quantity, Decimal("100"))
        self.assertEqual(first.material_cost, Decimal("500.00"))
        self.assertEqual(first.total_production_cost, Decimal("500.00"))
        self.assertEqual(first.cost_per_unit, Decimal("5.00"))

        material = first.materials.get()
        self.assertEqual(material.rate, Decimal("10.00"))
        self.assertEqual(material.total_cost, Decimal("500.00"))
        self.assertEqual(
            list(first.stages.values_list("sequence", "status")),
            [(1, "pending"), (2, "pending")],
        )

    def test_numbers_are_per_company(self):
        self.create_order()
        other = make_company(code="OTHER", name="Other Co")
        yarn = make_item(other, name="Yarn", item_code="YARN001", current_stock="10")
        order = self.production.create_order(
            other,
            {
                "product_name": "Yarn Roll",
                "order_quantity": "5",
                "planned_start_date": date(2024, 1, 1),
                "planned_end_date": date(2024, 1, 2),
                "materials": [{"item_id": yarn.pk, "required_quantity": "1"}],
            },
        )
        self.assertTrue(order.order_number.endswith("-0001"))

    def test_inactive_material_is_rejected(self):
        self.material.is_active = False
        self.material.save()
        with self.assertRaises(ValidationError) as ctx:
            self.create_order()
        self.assertTrue(ctx.exception.message.startswith("Raw material not found or inactive"))
        self.assertFalse(ProductionOrder.objects.exists())

    def test_material_from_another_company_is_rejected(self):
        other = make_company(code="OTHER", name="Other Co")
        foreign = make_item(other, name="Dye", item_code="DYE001", current_stock="99")
        with self.assertRaises(ValidationError):
            self.create_order(
                materials=[{"item_id": foreign.pk, "required_quantity": "1"}]
            )

    def test_quantity_and_dates_are_validated(self):
        with self.assertRaises(ValidationError) as ctx:
            self.create_order(order_quantity="0")
        self.assertEqual(ctx.exception.message, "Order quantity must be greater than 0")

        with self.assertRaises(ValidationError):
            self.create_order(planned_end_date=date(2023, 12, 31))

        with self.assertRaises(ValidationError):
            self.create_order(stages=[{"name": "Dyeing", "process_type": "dyeing"}])

    def test_pending_quantity_invariant_is_enforced_on_save(self):
        order = self.create_order()
        order.pending_quantity = Decimal("7")
        with self.assertRaises(ModelValidationError):
            order.save()

    def test_update_recomputes_material_cost(self):
        order = self.create_order()
        order = self.production.update(self.company, order.pk, {"order_quantity": "40"})
        self.assertEqual(order.pending_quantity, Decimal("40"))
        self.assertEqual(order.material_cost, Decimal("200.00"))
        self.assertEqual(order.materials.get().total_cost, Decimal("200.00"))

    def test_update_rejects_lifecycle_fields(self):
        order = self.create_order()
        with self.assertRaises(ValidationError):
            self.production.update(self.company, order.pk, {"status": "completed"})


class ProductionLifecycleTests(ProductionTestCase):
    """
    GUARANTEES:
    - start requires approved, checks every material before reserving any
    - cancelling an in-progress order gives back the reservation
    - completion consumes the reservation and receives the finished goods
    """

    def test_reserve_then_cancel_restores_stock(self):
        order = self.started_order()

        item = self.stock(self.material)
        self.assertEqual(item.reserved_stock, Decimal("50.000"))
        self.assertEqual(item.available_stock, Decimal("150.000"))
        self.assertEqual(order.status, ProductionOrder.Status.IN_PROGRESS)
        self.assertIsNotNone(order.actual_start_date)
        self.assertEqual(order.materials.get().allocated_quantity, Decimal("50.000"))

        first = order.stages.get(sequence=1)
        self.assertEqual(first.status, ProductionStage.Status.IN_PROGRESS)
        self.assertEqual(first.input_quantity, Decimal("100"))

        order = self.production.cancel_production(
            self.company, order.pk, reason="Customer withdrew", user=self.user
        )
        item = self.stock(self.material)
        self.assertEqual(item.reserved_stock, Decimal("0.000"))
        self.assertEqual(item.available_stock, Decimal("200.000"))
        self.assertEqual(order.status, ProductionOrder.Status.CANCELLED)
        self.assertEqual(order.cancellation_reason, "Customer withdrew")
        self.assertEqual(order.materials.get().allocated_quantity, Decimal("0.000"))

    def test_start_requires_approval(self):
        order = self.create_order()
        with self.assertRaises(InvalidStateError) as ctx:
            self.production.start_production(self.company, order.pk)
        self.assertEqual(
            ctx.exception.message, "Production order must be approved before starting"
        )

    def test_shortage_on_one_material_reserves_nothing(self):
        scarce = make_item(
            self.company, name="Material B", item_code="MATB001", current_stock="10"
        )
        order = self.create_order(
            materials=[
                {"item_id": self.material.pk, "required_quantity": "0.5"},
                {"item_id": scarce.pk, "required_quantity": "0.5"},
            ]
        )
        self.production.approve_production(self.company, order.pk)

        with self.assertRaises(InsufficientStockError) as ctx:
            self.production.start_production(self.company, order.pk)
        self.assertEqual(ctx.exception.message, "Insufficient stock for Material B")

        self.assertEqual(self.stock(self.material).reserved_stock, Decimal("0.000"))
        self.assertEqual(self.stock(scarce).reserved_stock, Decimal("0.000"))
        self.assertEqual(
            ProductionOrder.objects.get(pk=order.pk).status, ProductionOrder.Status.APPROVED
        )

    def test_stage_cascade_completes_order(self):
        order = self.started_order(product_id=self.product.pk)

        order = self.production.complete_stage(
            self.company,
            order.pk,
            0,
            output_quantity="98",
            defect_quantity="2",
            costs={"labor_cost": "200"},
            user=self.user,
        )
        washing = order.stages.get(sequence=2)
        self.assertEqual(order.status, ProductionOrder.Status.IN_PROGRESS)
        self.assertEqual(washing.status, ProductionStage.Status.IN_PROGRESS)
        self.assertEqual(washing.input_quantity, Decimal("98.000"))
        self.assertEqual(order.labor_cost, Decimal("200.00"))

        order = self.production.complete_stage(
            self.company, order.pk, 1, output_quantity="95", defect_quantity="3"
        )
        self.assertEqual(order.status, ProductionOrder.Status.COMPLETED)
        self.assertEqual(order.completed_quantity, Decimal("95.000"))
        self.assertEqual(order.rejected_quantity, Decimal("5.000"))
        self.assertEqual(order.pending_quantity, Decimal("0"))
        self.assertEqual(order.total_production_cost, Decimal("700.00"))
        self.assertEqual(order.cost_per_unit, Decimal("7.37"))
        self.assertIsNotNone(order.actual_end_date)

        material = self.stock(self.material)
        self.assertEqual(material.current_stock, Decimal("150.000"))
        self.assertEqual(material.reserved_stock, Decimal("0.000"))
        self.assertEqual(self.stock(self.product).current_stock, Decimal("95.000"))

        movements = StockMovement.objects.filter(reference_id=order.pk)
        self.assertEqual(
            sorted(movements.values_list("movement_type", flat=True)),
            ["production_consume", "production_output"],
        )

    def test_fully_rejected_stage_yields_no_output(self):
        order = self.started_order(product_id=self.product.pk)

        order = self.production.complete_stage(
            self.company, order.pk, 0, output_quantity="0", defect_quantity="100"
        )
        washing = order.stages.get(sequence=2)
        self.assertEqual(washing.input_quantity, Decimal("0.000"))

        order = self.production.complete_stage(self.company, order.pk, 1)
        washing.refresh_from_db()
        self.assertEqual(washing.output_quantity, Decimal("0.000"))
        self.assertEqual(order.status, ProductionOrder.Status.COMPLETED)
        self.assertEqual(order.completed_quantity, Decimal("0.000"))
        self.assertEqual(order.rejected_quantity, Decimal("100.000"))
        self.assertEqual(self.stock(self.product).current_stock, Decimal("0.000"))
        self.assertFalse(
            StockMovement.objects.filter(
                reference_id=order.pk, movement_type="production_output"
            ).exists()
        )

    def test_stage_errors(self):
        order = self.started_order()
        with self.assertRaises(ValidationError) as ctx:
            self.production.complete_stage(self.company, order.pk, 5)
        self.assertEqual(ctx.exception.message, "Invalid stage index")

        self.production.complete_stage(self.company, order.pk, 0)
        with self.assertRaises(InvalidStateError) as ctx:
            self.production.complete_stage(self.company, order.pk, 0)
        self.assertEqual(ctx.exception.message, "Stage is already completed")

    def test_partial_then_full_completion(self):
        order = self.started_order(product_id=self.product.pk)

        order = self.production.complete_production(
            self.company, order.pk, completed_quantity="60", rejected_quantity="10"
        )
        self.assertEqual(order.status, ProductionOrder.Status.PARTIALLY_COMPLETED)
        self.assertEqual(order.pending_quantity, Decimal("30"))
        self.assertEqual(self.stock(self.material).reserved_stock, Decimal("0.000"))
        self.assertEqual(self.stock(self.product).current_stock, Decimal("60.000"))

        order = self.production.complete_production(
            self.company, order.pk, completed_quantity="90", rejected_quantity="10"
        )
        self.assertEqual(order.status, ProductionOrder.Status.COMPLETED)
        self.assertEqual(self.stock(self.product).current_stock, Decimal("90.000"))
        self.assertEqual(self.stock(self.material).current_stock, Decimal("150.000"))

    def test_completion_cannot_exceed_order_quantity(self):
        order = self.started_order()
        with self.assertRaises(ValidationError):
            self.production.complete_production(
                self.company, order.pk, completed_quantity="95", rejected_quantity="10"
            )

    def test_cancel_rules(self):
        order = self.started_order()
        self.production.complete_production(self.company, order.pk)
        with self.assertRaises(InvalidStateError) as ctx:
            self.production.cancel_production(self.company, order.pk)
        self.assertEqual(ctx.exception.message, "Cannot cancel completed production order")

        draft = self.create_order()
        self.production.cancel_production(self.company, draft.pk)
        with self.assertRaises(InvalidTransitionError):
            self.production.cancel_production(self.company, draft.pk)

    def test_status_endpoint_rules(self):
        order = self.create_order()
        with self.assertRaises(ValidationError):
            self.production.update_status(self.company, order.pk, status="completed")

        order = self.production.update_status(
            self.company, order.pk, status="approved", user=self.user
        )
        self.assertEqual(order.approved_by, self.user)
        self.assertIsNotNone(order.approved_at)

        self.production.start_production(self.company, order.pk)
        with self.assertRaises(InvalidTransitionError):
            self.production.update_status(self.company, order.pk, status="approved")

    def test_hold_and_resume_keeps_single_reservation(self):
        order = self.started_order()
        order = self.production.update_status(self.company, order.pk, status="on_hold")
        self.assertEqual(
            order.stages.get(sequence=1).status, ProductionStage.Status.ON_HOLD
        )

        order = self.production.start_production(self.company, order.pk)
        self.assertEqual(order.status, ProductionOrder.Status.IN_PROGRESS)
        self.assertEqual(
            order.stages.get(sequence=1).status, ProductionStage.Status.IN_PROGRESS
        )
        self.assertEqual(self.stock(self.material).reserved_stock, Decimal("50.000"))

    def test_only_draft_or_cancelled_orders_can_be_deleted(self):
        started = self.started_order()
        with self.assertRaises(InvalidStateError):
            self.production.delete(self.company, started.pk)

        draft = self.create_order()
        self.production.delete(self.company, draft.pk)
        self.assertFalse(ProductionOrder.objects.filter(pk=draft.pk).exists())

    def test_stats(self):
        done = self.started_order()
        self.production.complete_production(self.company, done.pk)
        self.create_order()

        stats = self.production.stats(self.company)
        self.assertEqual(stats["total_orders"], 2)
        self.assertEqual(stats["completed_orders"], 1)
        self.assertEqual(stats["draft_orders"], 1)
        self.assertEqual(stats["by_status"], {"completed": 1, "draft": 1})
        self.assertEqual(stats["completion_rate"], Decimal("50.00"))
        self.assertEqual(stats["efficiency"], Decimal("50.00"))
        self.assertEqual(stats["average_planned_quantity"], Decimal("100.00"))
