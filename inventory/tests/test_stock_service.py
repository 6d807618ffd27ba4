# inventory/tests/test_stock_service.py

from decimal import Decimal

from django.core.exceptions import ValidationError as ModelValidationError
from django.test import TestCase

from core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from core.tests.helpers import (
    make_company,
    make_item,
    make_services,
    make_user,
    make_warehouse,
)
from inventory.models import InventoryItem, StockMovement
from inventory.services.exceptions import InactiveItemError, InsufficientStockError
from inventory.services.stock_levels import snapshot


def _available_matches(item) -> bool:
    return item.available_stock == max(Decimal("0"), item.current_stock - item.reserved_stock)


class StockReservationTests(TestCase):
    """
    Reservation tests.

    GUARANTEES:
    - available == max(0, current - reserved) after every operation
    - Over-reservation fails and leaves reserved_stock unchanged
    - Release never drives reserved_stock below zero
    """

    def setUp(self):
        self.company = make_company()
        self.services = make_services()
        self.inventory = self.services.inventory
        self.item = make_item(self.company, current_stock="200")

    def _reload(self):
        return InventoryItem.objects.get(pk=self.item.pk)

    def test_reserve_reduces_available(self):
        item = self.inventory.reserve_stock(
            company=self.company, item_id=self.item.pk, quantity="50"
        )
        self.assertEqual(item.reserved_stock, Decimal("50.000"))
        self.assertEqual(item.available_stock, Decimal("150.000"))
        self.assertTrue(_available_matches(self._reload()))

    def test_over_reservation_fails_and_leaves_reserved_unchanged(self):
        self.inventory.reserve_stock(company=self.company, item_id=self.item.pk, quantity="150")

        with self.assertRaises(InsufficientStockError) as ctx:
            self.inventory.reserve_stock(
                company=self.company, item_id=self.item.pk, quantity="60"
            )

        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(
            ctx.exception.message, "Insufficient stock available for reservation"
        )
        item = self._reload()
        self.assertEqual(item.reserved_stock, Decimal("150.000"))
        self.assertEqual(item.available_stock, Decimal("50.000"))

    def test_release_is_floored_at_zero(self):
        self.inventory.reserve_stock(company=self.company, item_id=self.item.pk, quantity="20")
        item = self.inventory.release_reserved_stock(
            company=self.company, item_id=self.item.pk, quantity="35"
        )
        self.assertEqual(item.reserved_stock, Decimal("0.000"))
        self.assertEqual(item.available_stock, Decimal("200.000"))

    def test_available_invariant_over_sequence(self):
        steps = [
            ("reserve", "30"),
            ("reserve", "70.5"),
            ("release", "10"),
            ("reserve", "99.5"),
            ("release", "500"),
            ("reserve", "200"),
        ]
        for op, quantity in steps:
            if op == "reserve":
                self.inventory.reserve_stock(
                    company=self.company, item_id=self.item.pk, quantity=quantity
                )
            else:
                self.inventory.release_reserved_stock(
                    company=self.company, item_id=self.item.pk, quantity=quantity
                )
            self.assertTrue(_available_matches(self._reload()), f"after {op} {quantity}")

    def test_missing_item_is_not_found(self):
        other = make_company(code="OTHER", name="Other Co")
        with self.assertRaises(NotFoundError) as ctx:
            self.inventory.reserve_stock(company=other, item_id=self.item.pk, quantity="1")
        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(ctx.exception.message, "Inventory item not found")

    def test_invalid_id_is_validation_error(self):
        with self.assertRaises(ValidationError):
            self.inventory.reserve_stock(company=self.company, item_id="nope", quantity="1")

    def test_non_positive_quantity_rejected(self):
        with self.assertRaises(ValidationError):
            self.inventory.reserve_stock(company=self.company, item_id=self.item.pk, quantity="0")

    def test_inactive_item_cannot_be_reserved(self):
        self.inventory.delete(self.company, self.item.pk)
        with self.assertRaises(InactiveItemError):
            self.inventory.reserve_stock(company=self.company, item_id=self.item.pk, quantity="1")


class UpdateStockTests(TestCase):
    """
    update_stock() tests.

    GUARANTEES:
    - in adds, out subtracts (never beyond available), adjustment sets the level
    - Every change writes exactly one StockMovement with before/after snapshots
    - Unknown warehouse -> 404
    """

    def setUp(self):
        self.company = make_company()
        self.user = make_user(self.company)
        self.services = make_services()
        self.inventory = self.services.inventory
        self.main = make_warehouse(self.company)
        self.item = make_item(self.company, current_stock="100", warehouse=self.main)

    def test_inward_adds_and_records_movement(self):
        result = self.inventory.update_stock(
            company=self.company,
            item_id=self.item.pk,
            quantity="25",
            movement_type="in",
            reference_number="GRN-1",
            created_by=self.user,
        )
        self.assertEqual(result.item.current_stock, Decimal("125.000"))
        self.assertEqual(result.item.available_stock, Decimal("125.000"))

        movement = result.movement
        self.assertEqual(movement.movement_type, StockMovement.MovementType.INWARD)
        self.assertEqual(movement.stock_before, Decimal("100.000"))
        self.assertEqual(movement.stock_after, Decimal("125.000"))
        self.assertEqual(movement.to_warehouse, self.main)
        self.assertTrue(movement.movement_number.startswith("IN"))
        self.assertEqual(len(movement.movement_number), len("IN") + 6 + 4)

    def test_inward_with_rate_updates_weighted_average(self):
        result = self.inventory.update_stock(
            company=self.company,
            item_id=self.item.pk,
            quantity="100",
            movement_type="inward",
            rate="20.00",
        )
        # (100 * 10 + 100 * 20) / 200
        self.assertEqual(result.item.average_cost, Decimal("15.00"))
        self.assertEqual(result.item.total_value, Decimal("3000.00"))
        self.assertEqual(result.movement.total_value, Decimal("2000.00"))

    def test_outward_beyond_available_fails_without_change(self):
        self.inventory.reserve_stock(company=self.company, item_id=self.item.pk, quantity="80")

        with self.assertRaises(InsufficientStockError):
            self.inventory.update_stock(
                company=self.company,
                item_id=self.item.pk,
                quantity="30",
                movement_type="out",
            )

        item = InventoryItem.objects.get(pk=self.item.pk)
        self.assertEqual(item.current_stock, Decimal("100.000"))
        self.assertEqual(StockMovement.objects.filter(item=item).count(), 0)

    def test_outward_subtracts(self):
        result = self.inventory.update_stock(
            company=self.company, item_id=self.item.pk, quantity="40", movement_type="out"
        )
        self.assertEqual(result.item.current_stock, Decimal("60.000"))
        self.assertEqual(result.movement.from_warehouse, self.main)

    def test_adjustment_sets_absolute_level(self):
        result = self.inventory.update_stock(
            company=self.company,
            item_id=self.item.pk,
            quantity="70",
            movement_type="adjustment",
        )
        self.assertEqual(result.item.current_stock, Decimal("70.000"))
        self.assertEqual(result.movement.quantity, Decimal("-30.000"))
        self.assertEqual(result.movement.stock_after, Decimal("70.000"))

    def test_adjustment_to_same_level_rejected(self):
        with self.assertRaises(ValidationError):
            self.inventory.update_stock(
                company=self.company,
                item_id=self.item.pk,
                quantity="100",
                movement_type="adjustment",
            )

    def test_damage_moves_stock_to_damaged(self):
        result = self.inventory.update_stock(
            company=self.company, item_id=self.item.pk, quantity="5", movement_type="damage"
        )
        self.assertEqual(result.item.current_stock, Decimal("95.000"))
        self.assertEqual(result.item.damaged_stock, Decimal("5.000"))
        self.assertTrue(result.movement.movement_number.startswith("DMG"))

    def test_transfer_keeps_totals(self):
        annex = make_warehouse(self.company, code="ANNEX", name="Annex")
        result = self.inventory.update_stock(
            company=self.company,
            item_id=self.item.pk,
            quantity="10",
            movement_type="transfer",
            to_warehouse_id=annex.pk,
        )
        self.assertEqual(result.item.current_stock, Decimal("100.000"))
        self.assertEqual(result.movement.from_warehouse, self.main)
        self.assertEqual(result.movement.to_warehouse, annex)

    def test_unknown_warehouse_is_not_found(self):
        other = make_company(code="OTHER", name="Other Co")
        foreign = make_warehouse(other)
        with self.assertRaises(NotFoundError) as ctx:
            self.inventory.update_stock(
                company=self.company,
                item_id=self.item.pk,
                warehouse_id=foreign.pk,
                quantity="1",
                movement_type="in",
            )
        self.assertEqual(ctx.exception.message, "Warehouse not found")

    def test_unknown_movement_type_rejected(self):
        with self.assertRaises(ValidationError):
            self.inventory.update_stock(
                company=self.company, item_id=self.item.pk, quantity="1", movement_type="gift"
            )

    def test_movement_numbers_are_sequential(self):
        numbers = [
            self.inventory.update_stock(
                company=self.company, item_id=self.item.pk, quantity="1", movement_type="in"
            ).movement.movement_number
            for _ in range(3)
        ]
        self.assertEqual(len(set(numbers)), 3)
        self.assertEqual(numbers, sorted(numbers))
        self.assertTrue(numbers[0].endswith("0001"))
        self.assertTrue(numbers[2].endswith("0003"))

    def test_consume_reserved_reduces_current_and_reserved(self):
        self.inventory.reserve_stock(company=self.company, item_id=self.item.pk, quantity="30")
        result = self.inventory.consume_reserved_stock(
            company=self.company, item_id=self.item.pk, quantity="30"
        )
        self.assertEqual(result.item.current_stock, Decimal("70.000"))
        self.assertEqual(result.item.reserved_stock, Decimal("0.000"))
        self.assertEqual(result.item.available_stock, Decimal("70.000"))
        self.assertEqual(
            result.movement.movement_type, StockMovement.MovementType.PRODUCTION_CONSUME
        )


class ItemMasterDataTests(TestCase):
    """
    Item create / update tests.

    GUARANTEES:
    - name / category / unit are required, prices non-negative
    - item codes are upper-cased or generated from the name
    - stock fields cannot be written through update
    """

    def setUp(self):
        self.company = make_company()
        self.services = make_services()
        self.inventory = self.services.inventory
        self.main = make_warehouse(self.company)

    def _data(self, **overrides):
        data = {
            "name": "Reactive Dye Blue",
            "category": InventoryItem.Category.RAW_MATERIAL,
            "unit": "kg",
            "cost_price": Decimal("12.50"),
        }
        data.update(overrides)
        return data

    def test_generates_item_code_from_name(self):
        first = self.inventory.create_item(self.company, self._data())
        second = self.inventory.create_item(self.company, self._data())
        self.assertEqual(first.item_code, "REACTI001")
        self.assertEqual(second.item_code, "REACTI002")
        self.assertEqual(first.average_cost, Decimal("12.50"))

    def test_explicit_code_is_uppercased_and_unique(self):
        item = self.inventory.create_item(self.company, self._data(item_code="dye-01"))
        self.assertEqual(item.item_code, "DYE-01")
        with self.assertRaises(ConflictError):
            self.inventory.create_item(self.company, self._data(item_code="DYE-01"))

    def test_required_fields(self):
        with self.assertRaises(ValidationError):
            self.inventory.create_item(self.company, self._data(name="  "))
        with self.assertRaises(ValidationError):
            self.inventory.create_item(self.company, self._data(category="paint"))
        with self.assertRaises(ValidationError):
            self.inventory.create_item(self.company, self._data(unit=""))

    def test_negative_price_rejected(self):
        with self.assertRaises(ValidationError):
            self.inventory.create_item(self.company, self._data(cost_price=Decimal("-1")))

    def test_opening_stock_posts_inward_movement(self):
        item = self.inventory.create_item(
            self.company,
            self._data(opening_stock=Decimal("40"), warehouse_id=self.main.pk),
        )
        self.assertEqual(item.current_stock, Decimal("40.000"))
        self.assertEqual(item.total_value, Decimal("500.00"))
        movement = StockMovement.objects.get(item=item)
        self.assertEqual(movement.notes, "Opening stock")
        self.assertEqual(movement.to_warehouse, self.main)

    def test_update_rejects_stock_fields(self):
        item = self.inventory.create_item(self.company, self._data())
        with self.assertRaises(ValidationError):
            self.inventory.update_item(self.company, item.pk, {"current_stock": 5})

    def test_low_stock_and_search(self):
        make_item(self.company, name="Thread", item_code="THR001", current_stock="5", reorder_level="10")
        make_item(self.company, name="Buttons", item_code="BTN001", current_stock="50", reorder_level="10")

        low = self.inventory.low_stock_items(self.company)
        self.assertEqual([i.item_code for i in low], ["THR001"])

        page = self.inventory.search_items(self.company, "butt")
        self.assertEqual([i.item_code for i in page.results], ["BTN001"])
        self.assertEqual(page.total, 1)

    def test_stats(self):
        make_item(self.company, name="Thread", item_code="THR001", current_stock="5", reorder_level="10")
        make_item(self.company, name="Buttons", item_code="BTN001", current_stock="0")
        stats = self.inventory.stats(self.company)
        self.assertEqual(stats["total_items"], 2)
        self.assertEqual(stats["active_items"], 2)
        self.assertEqual(stats["low_stock_items"], 2)
        self.assertEqual(stats["out_of_stock_items"], 1)
        self.assertEqual(stats["total_value"], Decimal("50.00"))
        self.assertEqual(stats["average_value"], Decimal("25.00"))


class StockMovementLedgerTests(TestCase):
    """
    Ledger tests.

    GUARANTEES:
    - Movements are immutable except for the approval block
    - Movements are never deleted
    - Item history carries a running balance
    """

    def setUp(self):
        self.company = make_company()
        self.user = make_user(self.company)
        self.services = make_services()
        self.item = make_item(self.company, current_stock="0")

    def _move(self, movement_type, quantity):
        return self.services.inventory.update_stock(
            company=self.company,
            item_id=self.item.pk,
            quantity=quantity,
            movement_type=movement_type,
        ).movement

    def test_movement_cannot_be_edited_or_deleted(self):
        movement = self._move("in", "10")
        movement.notes = "tampered"
        with self.assertRaises(ModelValidationError):
            movement.save()
        with self.assertRaises(ModelValidationError):
            movement.delete()

    def test_item_history_running_balance(self):
        self._move("in", "10")
        self._move("out", "4")
        self._move("adjustment", "20")
        self._move("in", "5")

        history = self.services.movements.item_history(
            company=self.company, item_id=self.item.pk
        )
        self.assertEqual(
            [entry.running_balance for entry in history],
            [Decimal("10.000"), Decimal("6.000"), Decimal("20.000"), Decimal("25.000")],
        )

    def test_approval_only_from_pending(self):
        approved = self._move("in", "10")
        with self.assertRaises(ValidationError):
            self.services.movements.update_approval(
                company=self.company,
                movement_id=approved.pk,
                approval_status="approved_later",
            )

        with self.assertRaises(InvalidTransitionError):
            self.services.movements.update_approval(
                company=self.company,
                movement_id=approved.pk,
                approval_status=StockMovement.ApprovalStatus.REJECTED,
            )

    def test_stats_by_type(self):
        self._move("in", "10")
        self._move("in", "5")
        self._move("out", "3")
        stats = self.services.movements.stats(company=self.company)
        self.assertEqual(stats["total_movements"], 3)
        self.assertEqual(stats["by_type"]["inward"]["count"], 2)
        self.assertEqual(stats["total_inward_quantity"], Decimal("15.000"))
        self.assertEqual(stats["total_outward_quantity"], Decimal("3.000"))

    def test_pending_movement_can_be_approved_once(self):
        pending = self.services.movements.record(
            company=self.company,
            item=self.item,
            movement_type=StockMovement.MovementType.RETURN,
            quantity="2",
            before=snapshot(self.item),
            approval_status=StockMovement.ApprovalStatus.PENDING,
        )
        self.assertIsNone(pending.approved_at)

        approved = self.services.movements.update_approval(
            company=self.company,
            movement_id=pending.pk,
            approval_status=StockMovement.ApprovalStatus.APPROVED,
            user=self.user,
        )
        self.assertEqual(approved.approval_status, StockMovement.ApprovalStatus.APPROVED)
        self.assertEqual(approved.approved_by, self.user)

        with self.assertRaises(InvalidTransitionError):
            self.services.movements.update_approval(
                company=self.company,
                movement_id=pending.pk,
                approval_status=StockMovement.ApprovalStatus.REJECTED,
            )
