# purchases/services/purchase_order_service.py

"""
======================================================
PATH: purchases/services/purchase_order_service.py
======================================================
PURCHASE ORDER SERVICE

Purpose:
- Create / edit purchase orders with priced lines.
- Status changes (send / acknowledge / cancel) along the allow-list.
- receive_items(): goods arrive, stock goes up through InventoryService
  (inward movement per received line), receiving summary is re-derived.
- Overdue listing + statistics.

Rules:
- Lines can only be changed while the order is a draft.
- Only acknowledged or partially received orders can receive items.
- received + rejected per line never exceeds the ordered quantity.
======================================================
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Avg, Count, Q, Sum
from django.utils import timezone

from core.exceptions import InvalidStateError, ValidationError
from core.money import (
    DISCOUNT_AMOUNT,
    DISCOUNT_PERCENTAGE,
    ZERO,
    money,
    qty,
    require_non_negative,
    to_decimal,
)
from core.numbering import monthly_number
from core.services.base import CompanyScopedService
from inventory.models import StockMovement
from purchases.models import PurchaseOrder, PurchaseOrderItem
from purchases.services.lifecycle import PURCHASE_ORDER_LIFECYCLE, STATUS_TIMESTAMPS
from purchases.services.totals import apply_line_totals, apply_purchase_order_totals

logger = logging.getLogger("erp.purchases")

Status = PurchaseOrder.Status

NUMBER_CODE = "PO"
OPEN_STATUSES = {Status.SENT, Status.ACKNOWLEDGED, Status.PARTIALLY_RECEIVED}
RECEIVABLE_STATUSES = {Status.ACKNOWLEDGED, Status.PARTIALLY_RECEIVED}

# Statuses reachable through update_status(); receipt statuses come from receive_items().
STATUS_ENDPOINT_TARGETS = {Status.SENT, Status.ACKNOWLEDGED, Status.CANCELLED}

HEADER_FIELDS = {
    "po_date",
    "expected_delivery_date",
    "priority",
    "notes",
    "terms",
    "freight_charges",
    "other_charges",
    "round_off",
}
CHARGE_FIELDS = ("freight_charges", "other_charges")
TOP_SUPPLIERS_LIMIT = 10


class PurchaseOrderService(CompanyScopedService):
    model = PurchaseOrder
    resource_name = "Purchase order"

    def __init__(self, *, suppliers, inventory, cache=None, cache_timeout=None):
        super().__init__(cache=cache, cache_timeout=cache_timeout)
        self.suppliers = suppliers
        self.inventory = inventory

    def get_queryset(self, company):
        return super().get_queryset(company).select_related("supplier", "warehouse")

    def find_many(self, company, *, filters=None, ordering=None):
        return super().find_many(company, filters=filters, ordering=ordering).prefetch_related(
            "items"
        )

    def before_save(self, order):
        if order._state.adding:
            apply_purchase_order_totals(order, [])
            return
        lines = list(order.items.all())
        apply_purchase_order_totals(order, lines)
        for line in lines:
            line.save()

    def next_po_number(self, company, *, on=None) -> str:
        return monthly_number(
            queryset=PurchaseOrder.objects.filter(company=company),
            field="po_number",
            code=NUMBER_CODE,
            on=on,
        )

    # --------------------------------------------------
    # Create / edit
    # --------------------------------------------------

    def _build_lines(self, company, rows) -> list:
        if not rows:
            raise ValidationError("Purchase order must have at least one item")

        lines = []
        for index, row in enumerate(rows, start=1):
            item = self.inventory.get(company, row.get("item_id"))
            quantity = row.get("quantity")
            if quantity in (None, "") or qty(require_non_negative(quantity)) <= ZERO:
                raise ValidationError(f"Item {index}: Quantity must be greater than 0")
            rate = row.get("rate")
            if rate in (None, "") or to_decimal(rate, field_name="rate") < ZERO:
                raise ValidationError(f"Item {index}: Rate must be non-negative")

            discount_type = row.get("discount_type") or DISCOUNT_PERCENTAGE
            if discount_type not in (DISCOUNT_PERCENTAGE, DISCOUNT_AMOUNT):
                raise ValidationError(f"Item {index}: Unknown discount type")
            tax_rate = money(require_non_negative(row.get("tax_rate") or 0, field_name="tax_rate"))
            if tax_rate > 100:
                raise ValidationError(f"Item {index}: Tax rate cannot exceed 100")

            line = PurchaseOrderItem(
                item=item,
                item_code=item.item_code,
                item_name=row.get("item_name") or item.name,
                unit=item.unit,
                quantity=qty(quantity),
                rate=money(rate),
                discount_type=discount_type,
                discount_value=money(
                    require_non_negative(row.get("discount_value") or 0, field_name="discount_value")
                ),
                tax_rate=tax_rate,
            )
            apply_line_totals(line)
            lines.append(line)
        return lines

    def _clean_header(self, company, data: dict) -> dict:
        header = {k: v for k, v in data.items() if k in HEADER_FIELDS}
        for field in CHARGE_FIELDS:
            if field in header:
                header[field] = money(require_non_negative(header[field], field_name=field))
        if "round_off" in header:
            header["round_off"] = money(header["round_off"])
        if "priority" in header and header["priority"] not in PurchaseOrder.Priority.values:
            raise ValidationError(f"Unknown priority: {header['priority']}")
        if "warehouse_id" in data:
            warehouse_id = data["warehouse_id"]
            header["warehouse"] = (
                self.inventory.warehouses.get_active(company, warehouse_id)
                if warehouse_id
                else None
            )
        return header

    @transaction.atomic
    def create_order(self, company, data: dict, *, created_by=None) -> PurchaseOrder:
        data = dict(data)
        if not data.get("supplier_id"):
            raise ValidationError("Supplier ID is required")
        supplier = self.suppliers.get_active(company, data["supplier_id"])
        lines = self._build_lines(company, data.get("items"))
        header = self._clean_header(company, data)

        order = PurchaseOrder(
            company=company,
            po_number=self.next_po_number(company),
            supplier=supplier,
            created_by=created_by,
            **header,
        )
        self.persist(order)
        for line in lines:
            line.order = order
            line.save()
        self.persist(order)

        logger.info(
            "Purchase order created",
            extra={
                "company_id": str(company.pk),
                "po_number": order.po_number,
                "supplier_code": supplier.supplier_code,
                "grand_total": str(order.grand_total),
            },
        )
        return order

    def create(self, company, data: dict, *, created_by=None):
        return self.create_order(company, data, created_by=created_by)

    @transaction.atomic
    def update_order(self, company, pk, data: dict, *, updated_by=None) -> PurchaseOrder:
        data = dict(data)
        order = self.get(company, pk, for_update=True)
        if order.status != Status.DRAFT:
            raise InvalidStateError("Only draft purchase orders can be edited")

        if "supplier_id" in data:
            order.supplier = self.suppliers.get_active(company, data["supplier_id"])
        for field, value in self._clean_header(company, data).items():
            setattr(order, field, value)

        if "items" in data:
            lines = self._build_lines(company, data["items"])
            order.items.all().delete()
            for line in lines:
                line.order = order
                line.save()

        self.persist(order)
        logger.info(
            "Purchase order updated",
            extra={
                "po_number": order.po_number,
                "fields": sorted(data),
                "updated_by": str(getattr(updated_by, "pk", "") or ""),
            },
        )
        return order

    def update(self, company, pk, data: dict, *, updated_by=None):
        return self.update_order(company, pk, data, updated_by=updated_by)

    @transaction.atomic
    def delete(self, company, pk):
        order = self.get(company, pk, for_update=True)
        if order.status != Status.DRAFT:
            raise InvalidStateError("Only draft purchase orders can be deleted")
        return super().delete(company, pk)

    # --------------------------------------------------
    # Status
    # --------------------------------------------------

    def _enter(self, order, status: str) -> None:
        PURCHASE_ORDER_LIFECYCLE.validate(order, status)
        order.status = status
        stamp = STATUS_TIMESTAMPS.get(status)
        if stamp and getattr(order, stamp) is None:
            setattr(order, stamp, timezone.now())

    @transaction.atomic
    def update_status(self, company, pk, *, status: str, user=None) -> PurchaseOrder:
        if status not in STATUS_ENDPOINT_TARGETS:
            raise ValidationError(
                "Received statuses are set by receiving items",
                details={"allowed": sorted(STATUS_ENDPOINT_TARGETS)},
            )
        order = self.get(company, pk, for_update=True)
        previous = order.status
        self._enter(order, status)
        self.persist(order)

        logger.info(
            "Purchase order status changed",
            extra={
                "po_number": order.po_number,
                "from": previous,
                "to": status,
                "user_id": str(getattr(user, "pk", "") or ""),
            },
        )
        return order

    # --------------------------------------------------
    # Receiving
    # --------------------------------------------------

    @transaction.atomic
    def receive_items(self, company, pk, received: list, *, user=None) -> PurchaseOrder:
        """
        received: [{"line_id", "received_quantity", "rejected_quantity"?}, ...]
        """
        order = self.get(company, pk, for_update=True)
        if order.status not in RECEIVABLE_STATUSES:
            raise InvalidStateError("Only acknowledged orders can receive items")
        if not received:
            raise ValidationError("At least one received line is required")

        lines = {line.pk: line for line in order.items.select_related("item")}
        for row in received:
            line_id = self.parse_id(row.get("line_id"))
            line = lines.get(line_id)
            if line is None:
                raise ValidationError(
                    "Line does not belong to this purchase order",
                    details={"line_id": str(line_id)},
                )

            accepted = qty(
                require_non_negative(row.get("received_quantity") or 0, field_name="received_quantity")
            )
            rejected = qty(
                require_non_negative(row.get("rejected_quantity") or 0, field_name="rejected_quantity")
            )
            if accepted + rejected == ZERO:
                raise ValidationError(f"Nothing received for {line.item_code}")
            if accepted + rejected > line.pending_quantity:
                raise ValidationError(
                    f"Received quantity exceeds pending quantity for {line.item_code}",
                    details={
                        "pending": str(line.pending_quantity),
                        "received": str(accepted),
                        "rejected": str(rejected),
                    },
                )

            if accepted > ZERO:
                self.inventory.update_stock(
                    company=company,
                    item_id=line.item_id,
                    quantity=accepted,
                    movement_type=StockMovement.MovementType.INWARD,
                    warehouse_id=order.warehouse_id,
                    rate=line.rate,
                    reference_type=StockMovement.ReferenceType.PURCHASE_ORDER,
                    reference_number=order.po_number,
                    reference_id=order.pk,
                    created_by=user,
                )

            line.received_quantity = line.received_quantity + accepted
            line.rejected_quantity = line.rejected_quantity + rejected
            apply_line_totals(line)
            line.save()

        totals = apply_purchase_order_totals(order, lines.values())
        target = (
            Status.RECEIVED if totals.total_pending == ZERO else Status.PARTIALLY_RECEIVED
        )
        if order.status != target:
            self._enter(order, target)
        self.persist(order)

        logger.info(
            "Purchase order items received",
            extra={
                "po_number": order.po_number,
                "lines": len(received),
                "status": order.status,
                "total_pending": str(order.total_pending),
            },
        )
        return order

    # --------------------------------------------------
    # Reports
    # --------------------------------------------------

    def overdue_orders(self, company) -> list:
        return list(
            self.get_queryset(company)
            .filter(
                status__in=OPEN_STATUSES,
                expected_delivery_date__lt=timezone.localdate(),
            )
            .order_by("expected_delivery_date")
        )

    def stats(self, company, *, date_from=None, date_to=None) -> dict:
        qs = self.get_queryset(company)
        if date_from:
            qs = qs.filter(po_date__gte=date_from)
        if date_to:
            qs = qs.filter(po_date__lte=date_to)

        agg = qs.aggregate(
            total_orders=Count("id"),
            total_value=Sum("grand_total"),
            average_order_value=Avg("grand_total"),
            total_spend=Sum(
                "grand_total",
                filter=Q(status__in=[Status.RECEIVED, Status.PARTIALLY_RECEIVED]),
            ),
        )

        by_status = {
            row["status"]: {"count": row["count"], "total_value": money(row["total_value"])}
            for row in qs.order_by()
            .values("status")
            .annotate(count=Count("id"), total_value=Sum("grand_total"))
        }

        top_suppliers = [
            {
                "supplier_id": str(row["supplier_id"]),
                "supplier_name": row["supplier__name"],
                "order_count": row["order_count"],
                "total_value": money(row["total_value"]),
            }
            for row in qs.order_by()
            .values("supplier_id", "supplier__name")
            .annotate(order_count=Count("id"), total_value=Sum("grand_total"))
            .order_by("-total_value")[:TOP_SUPPLIERS_LIMIT]
        ]

        return {
            "total_orders": agg["total_orders"],
            "by_status": by_status,
            "total_value": money(agg["total_value"]),
            "total_spend": money(agg["total_spend"]),
            "average_order_value": (
                money(agg["average_order_value"])
                if agg["average_order_value"] is not None
                else Decimal("0.00")
            ),
            "top_suppliers": top_suppliers,
            "overdue_count": len(self.overdue_orders(company)),
        }
