# inventory/services/inventory_service.py

"""
======================================================
PATH: inventory/services/inventory_service.py
======================================================
INVENTORY SERVICE (STOCK AUTHORITY)

This is the ONLY place allowed to change stock quantities.

Purpose:
- Item master data (create / update / deactivate, item code generation).
- Reserve / release stock for production orders.
- update_stock(): inward / outward / adjustment / transfer / damage ...
  with a StockMovement written for every change.
- consume_reserved_stock(): reserved quantity leaves the warehouse.
- Reports: low stock, search, stats, movement history.

GUARANTEES:
- Every mutation locks the item row (select_for_update) inside
  transaction.atomic.
- available_stock / total_value are re-derived right before every save.
- A failed check leaves the item untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, F, Q, Sum
from django.utils import timezone

from core.exceptions import ConflictError, ValidationError
from core.money import ZERO, money, qty, require_non_negative, require_positive
from core.numbering import item_code
from core.services.base import CompanyScopedService
from inventory.models import InventoryItem, StockMovement
from inventory.services.exceptions import InactiveItemError, InsufficientStockError
from inventory.services.stock_levels import (
    apply_stock_levels,
    snapshot,
    weighted_average_cost,
)

logger = logging.getLogger("erp.inventory")

MovementType = StockMovement.MovementType

MOVEMENT_ALIASES = {
    "in": MovementType.INWARD,
    "out": MovementType.OUTWARD,
}

# Quantities owned by the stock operations below; never set through update().
STOCK_FIELDS = {
    "current_stock",
    "reserved_stock",
    "available_stock",
    "in_transit_stock",
    "damaged_stock",
    "average_cost",
    "total_value",
    "last_stock_update",
}

LOW_STOCK_LIMIT = 100
HISTORY_LIMIT = 50


@dataclass(frozen=True)
class StockUpdate:
    item: InventoryItem
    movement: StockMovement


class InventoryService(CompanyScopedService):
    model = InventoryItem
    resource_name = "Inventory item"
    default_ordering = ("name",)

    def __init__(self, *, movements, warehouses, cache=None, cache_timeout=None):
        super().__init__(cache=cache, cache_timeout=cache_timeout)
        self.movements = movements
        self.warehouses = warehouses

    def get_queryset(self, company):
        return super().get_queryset(company).select_related("warehouse")

    def before_save(self, item):
        apply_stock_levels(item)

    def _locked(self, company, item_id, *, require_active=True) -> InventoryItem:
        item = self.get(company, item_id, for_update=True)
        if require_active and not item.is_active:
            raise InactiveItemError(f"Inventory item {item.item_code} is inactive")
        return item

    def _resolve_warehouse(self, company, data: dict):
        if "warehouse_id" not in data:
            return
        warehouse_id = data.pop("warehouse_id")
        data["warehouse"] = (
            self.warehouses.get_active(company, warehouse_id) if warehouse_id else None
        )

    # --------------------------------------------------
    # Item master data
    # --------------------------------------------------

    @transaction.atomic
    def create_item(self, company, data: dict, *, created_by=None) -> InventoryItem:
        data = dict(data)

        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("name is required")
        if data.get("category") not in InventoryItem.Category.values:
            raise ValidationError(
                "category is required",
                details={"allowed": InventoryItem.Category.values},
            )
        if not (data.get("unit") or "").strip():
            raise ValidationError("unit is required")

        for field in ("cost_price", "selling_price"):
            if data.get(field) is not None:
                data[field] = money(require_non_negative(data[field], field_name=field))

        for field in ("reorder_level", "min_stock_level", "max_stock_level"):
            if data.get(field) is not None:
                data[field] = qty(require_non_negative(data[field], field_name=field))

        opening_stock = data.pop("opening_stock", None)
        for field in STOCK_FIELDS - {"average_cost"}:
            data.pop(field, None)

        code = (data.pop("item_code", "") or "").strip().upper()
        if code:
            if self.exists(company, item_code=code):
                raise ConflictError(f"Item code {code} already exists")
        else:
            code = item_code(
                queryset=InventoryItem.objects.filter(company=company),
                field="item_code",
                name=name,
            )

        self._resolve_warehouse(company, data)
        data.setdefault("average_cost", data.get("cost_price") or Decimal("0.00"))

        item = InventoryItem(
            company=company,
            item_code=code,
            created_by=created_by,
            **{**data, "name": name},
        )
        self.persist(item)

        logger.info(
            "Inventory item created",
            extra={"company_id": str(company.pk), "item_code": item.item_code},
        )

        if opening_stock not in (None, "") and qty(opening_stock) > ZERO:
            result = self.update_stock(
                company=company,
                item_id=item.pk,
                quantity=opening_stock,
                movement_type=MovementType.INWARD,
                rate=item.cost_price,
                notes="Opening stock",
                created_by=created_by,
            )
            item = result.item

        return item

    def create(self, company, data: dict, *, created_by=None):
        return self.create_item(company, data, created_by=created_by)

    @transaction.atomic
    def update_item(self, company, pk, data: dict, *, updated_by=None) -> InventoryItem:
        data = dict(data)
        blocked = sorted(STOCK_FIELDS & set(data))
        if blocked:
            raise ValidationError(
                "Stock quantities change only through stock operations",
                details={"fields": blocked},
            )

        item = self.get(company, pk, for_update=True)

        if "item_code" in data:
            code = (data["item_code"] or "").strip().upper()
            if not code:
                raise ValidationError("item_code cannot be blank")
            if (
                self.get_queryset(company)
                .filter(item_code=code)
                .exclude(pk=item.pk)
                .exists()
            ):
                raise ConflictError(f"Item code {code} already exists")
            data["item_code"] = code

        if "category" in data and data["category"] not in InventoryItem.Category.values:
            raise ValidationError(f"Unknown category: {data['category']}")

        for field in ("cost_price", "selling_price"):
            if field in data:
                data[field] = money(require_non_negative(data[field], field_name=field))

        self._resolve_warehouse(company, data)

        for field, value in data.items():
            setattr(item, field, value)
        self.persist(item)

        logger.info(
            "Inventory item updated",
            extra={
                "company_id": str(company.pk),
                "item_code": item.item_code,
                "fields": sorted(data),
                "updated_by": str(getattr(updated_by, "pk", "") or ""),
            },
        )
        return item

    def update(self, company, pk, data: dict, *, updated_by=None):
        return self.update_item(company, pk, data, updated_by=updated_by)

    # --------------------------------------------------
    # Reservation
    # --------------------------------------------------

    @transaction.atomic
    def reserve_stock(
        self, *, company, item_id, quantity, reference_number: str = ""
    ) -> InventoryItem:
        quantity = qty(require_positive(quantity))
        item = self._locked(company, item_id)

        available = item.current_stock - item.reserved_stock
        if available < quantity:
            logger.warning(
                "Reservation rejected: insufficient stock",
                extra={
                    "item_code": item.item_code,
                    "requested": str(quantity),
                    "available": str(available),
                    "reference_number": reference_number,
                },
            )
            raise InsufficientStockError(
                "Insufficient stock available for reservation",
                details={
                    "item_id": str(item.pk),
                    "item_code": item.item_code,
                    "requested": str(quantity),
                    "available": str(qty(max(available, ZERO))),
                },
            )

        item.reserved_stock = item.reserved_stock + quantity
        self.persist(item)

        logger.info(
            "Stock reserved",
            extra={
                "item_code": item.item_code,
                "quantity": str(quantity),
                "reserved_stock": str(item.reserved_stock),
                "reference_number": reference_number,
            },
        )
        return item

    @transaction.atomic
    def release_reserved_stock(
        self, *, company, item_id, quantity, reference_number: str = ""
    ) -> InventoryItem:
        quantity = qty(require_positive(quantity))
        item = self._locked(company, item_id, require_active=False)

        item.reserved_stock = max(qty(ZERO), item.reserved_stock - quantity)
        self.persist(item)

        logger.info(
            "Reserved stock released",
            extra={
                "item_code": item.item_code,
                "quantity": str(quantity),
                "reserved_stock": str(item.reserved_stock),
                "reference_number": reference_number,
            },
        )
        return item

    # --------------------------------------------------
    # Stock movements
    # --------------------------------------------------

    @transaction.atomic
    def update_stock(
        self,
        *,
        company,
        item_id,
        quantity,
        movement_type: str,
        warehouse_id=None,
        to_warehouse_id=None,
        rate=None,
        reference_type: str = "",
        reference_number: str = "",
        reference_id=None,
        notes: str = "",
        created_by=None,
    ) -> StockUpdate:
        """
        inward types add, outward types subtract (never below available),
        adjustment sets the absolute level, transfer only moves location.
        """
        movement_type = MOVEMENT_ALIASES.get(movement_type, movement_type)
        if movement_type not in MovementType.values:
            raise ValidationError(f"Unknown movement type: {movement_type}")

        item = self._locked(company, item_id)

        if warehouse_id:
            warehouse = self.warehouses.get(company, warehouse_id)
        else:
            warehouse = item.warehouse

        before = snapshot(item)
        from_warehouse = to_warehouse = None

        if movement_type == MovementType.ADJUSTMENT:
            new_level = qty(require_non_negative(quantity, field_name="quantity"))
            movement_qty = new_level - item.current_stock
            if movement_qty == ZERO:
                raise ValidationError("Adjustment does not change the stock level")
            item.current_stock = new_level
            to_warehouse = warehouse

        elif movement_type == MovementType.TRANSFER:
            movement_qty = qty(require_positive(quantity))
            if not to_warehouse_id:
                raise ValidationError("to_warehouse_id is required for a transfer")
            if warehouse is None:
                raise ValidationError("warehouse_id is required for a transfer")
            to_warehouse = self.warehouses.get(company, to_warehouse_id)
            from_warehouse = warehouse
            self._require_available(item, movement_qty)

        elif movement_type in StockMovement.INWARD_TYPES:
            movement_qty = qty(require_positive(quantity))
            if rate is not None and money(rate) > ZERO:
                item.average_cost = weighted_average_cost(
                    current_stock=item.current_stock,
                    average_cost=item.average_cost,
                    quantity=movement_qty,
                    rate=rate,
                )
            item.current_stock = item.current_stock + movement_qty
            to_warehouse = warehouse

        else:
            movement_qty = qty(require_positive(quantity))
            self._require_available(item, movement_qty)
            item.current_stock = item.current_stock - movement_qty
            if movement_type == MovementType.DAMAGE:
                item.damaged_stock = item.damaged_stock + movement_qty
            from_warehouse = warehouse

        item.last_stock_update = timezone.now()
        self.persist(item)

        movement = self.movements.record(
            company=company,
            item=item,
            movement_type=movement_type,
            quantity=movement_qty,
            before=before,
            rate=rate,
            from_warehouse=from_warehouse,
            to_warehouse=to_warehouse,
            reference_type=reference_type,
            reference_number=reference_number,
            reference_id=reference_id,
            notes=notes,
            created_by=created_by,
        )

        logger.info(
            "Stock updated",
            extra={
                "company_id": str(company.pk),
                "item_code": item.item_code,
                "movement_number": movement.movement_number,
                "movement_type": movement_type,
                "quantity": str(movement_qty),
                "current_stock": str(item.current_stock),
            },
        )
        return StockUpdate(item=item, movement=movement)

    @transaction.atomic
    def consume_reserved_stock(
        self,
        *,
        company,
        item_id,
        quantity,
        reference_type: str = StockMovement.ReferenceType.PRODUCTION_ORDER,
        reference_number: str = "",
        reference_id=None,
        created_by=None,
    ) -> StockUpdate:
        """Reserved quantity physically leaves stock (production consumption)."""
        quantity = qty(require_positive(quantity))
        item = self._locked(company, item_id, require_active=False)

        if item.reserved_stock < quantity or item.current_stock < quantity:
            raise InsufficientStockError(
                "Reserved stock is lower than the quantity to consume",
                details={
                    "item_code": item.item_code,
                    "requested": str(quantity),
                    "reserved": str(item.reserved_stock),
                },
            )

        before = snapshot(item)
        item.current_stock = item.current_stock - quantity
        item.reserved_stock = item.reserved_stock - quantity
        item.last_stock_update = timezone.now()
        self.persist(item)

        movement = self.movements.record(
            company=company,
            item=item,
            movement_type=MovementType.PRODUCTION_CONSUME,
            quantity=quantity,
            before=before,
            from_warehouse=item.warehouse,
            reference_type=reference_type,
            reference_number=reference_number,
            reference_id=reference_id,
            created_by=created_by,
        )
        return StockUpdate(item=item, movement=movement)

    def _require_available(self, item, quantity):
        if item.available_stock < quantity:
            raise InsufficientStockError(
                details={
                    "item_code": item.item_code,
                    "requested": str(quantity),
                    "available": str(item.available_stock),
                }
            )

    # --------------------------------------------------
    # Reports
    # --------------------------------------------------

    def low_stock_items(self, company, *, limit: int = LOW_STOCK_LIMIT) -> list:
        return list(
            self.get_queryset(company)
            .filter(is_active=True, current_stock__lte=F("reorder_level"))
            .order_by("current_stock", "name")[:limit]
        )

    def search_items(self, company, term: str, *, page=None, limit=None):
        term = (term or "").strip()
        if not term:
            raise ValidationError("Search term is required")
        qs = self.get_queryset(company).filter(
            Q(item_code__icontains=term)
            | Q(name__icontains=term)
            | Q(description__icontains=term)
            | Q(category__icontains=term)
        )
        return self.paginate(qs.order_by("name"), page=page, limit=limit)

    def movement_history(self, company, item_id, *, limit: int = HISTORY_LIMIT) -> list:
        item = self.get(company, item_id)
        return self.movements.for_item(company=company, item_id=item.pk, limit=limit)

    def stats(self, company) -> dict:
        qs = self.get_queryset(company)
        active = Q(is_active=True)
        counts = qs.aggregate(
            total_items=Count("id"),
            active_items=Count("id", filter=active),
            inactive_items=Count("id", filter=Q(is_active=False)),
            low_stock_items=Count(
                "id", filter=active & Q(current_stock__lte=F("reorder_level"))
            ),
            out_of_stock_items=Count("id", filter=active & Q(current_stock__lte=0)),
            total_value=Sum("total_value", filter=active),
        )
        total_value = money(counts["total_value"])
        active_items = counts["active_items"]
        counts["total_value"] = total_value
        counts["average_value"] = (
            money(total_value / active_items) if active_items else Decimal("0.00")
        )
        return counts

    def require_stock_for(self, item, quantity: Decimal) -> None:
        """Non-locking availability check used before a batch of reservations."""
        if not item.is_active:
            raise InactiveItemError(f"Inventory item {item.item_code} is inactive")
        if item.current_stock - item.reserved_stock < quantity:
            raise InsufficientStockError(
                f"Insufficient stock for {item.name}",
                details={
                    "item_code": item.item_code,
                    "required": str(quantity),
                    "available": str(item.available_stock),
                },
            )

