# production/services/production_service.py

"""
======================================================
PATH: production/services/production_service.py
======================================================
PRODUCTION SERVICE

Purpose:
- Production orders: create (raw materials + stages), edit, approve, hold.
- start_production(): checks ALL raw materials first, then reserves each.
- complete_stage() / complete_production(): stage cascade, consumption of
  the reserved materials and the finished-goods receipt.
- cancel_production(): gives back whatever is still reserved.
- Statistics.

Rules:
- Every stock change goes through InventoryService (never touches
  InventoryItem rows directly).
- Every status change is validated by PRODUCTION_LIFECYCLE.
- Totals (pending quantity + cost summary) are recomputed right before
  every persist by compute_production_totals.

GUARANTEES:
- start_production is all-or-nothing: a shortage on any material leaves
  every material unreserved.
- Cancelling returns exactly the outstanding allocation
  (allocated - consumed) of each material.
======================================================
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from core.exceptions import InvalidStateError, ValidationError
from core.money import ZERO, money, percent, qty, require_non_negative, require_positive
from core.numbering import daily_number
from core.services.base import CompanyScopedService
from inventory.models import StockMovement
from production.models import ProductionMaterial, ProductionOrder, ProductionStage
from production.services.lifecycle import PRODUCTION_LIFECYCLE
from production.services.totals import (
    STAGE_COST_FIELDS,
    apply_production_totals,
    material_line_cost,
)

logger = logging.getLogger("erp.production")

Status = ProductionOrder.Status
StageStatus = ProductionStage.Status

NUMBER_CODE = "PO"

EDITABLE_FIELDS = {
    "product_name",
    "product_type",
    "priority",
    "planned_start_date",
    "planned_end_date",
    "notes",
    "order_quantity",
}

# Statuses reachable through update_status(); the rest have their own operation.
STATUS_ENDPOINT_TARGETS = {Status.APPROVED, Status.ON_HOLD}


class ProductionService(CompanyScopedService):
    model = ProductionOrder
    resource_name = "Production order"

    def __init__(self, *, inventory, cache=None, cache_timeout=None):
        super().__init__(cache=cache, cache_timeout=cache_timeout)
        self.inventory = inventory

    def get_queryset(self, company):
        return super().get_queryset(company).select_related("product")

    def find_many(self, company, *, filters=None, ordering=None):
        return (
            super()
            .find_many(company, filters=filters, ordering=ordering)
            .prefetch_related("materials", "stages")
        )

    def before_save(self, order):
        if order._state.adding:
            apply_production_totals(order)
        else:
            apply_production_totals(
                order, materials=order.materials.all(), stages=order.stages.all()
            )

    def next_order_number(self, company, *, on=None) -> str:
        return daily_number(
            queryset=ProductionOrder.objects.filter(company=company),
            field="order_number",
            code=NUMBER_CODE,
            on=on,
        )

    # --------------------------------------------------
    # Create / edit
    # --------------------------------------------------

    def _validate_dates(self, start, end):
        if not start or not end:
            raise ValidationError("Planned start and end dates are required")
        if start >= end:
            raise ValidationError("Planned end date must be after start date")

    def _build_materials(self, company, rows) -> list:
        materials = []
        seen = set()
        for row in rows or []:
            item_id = self.inventory.parse_id(row.get("item_id"))
            item = self.inventory.find_one(company, pk=item_id, is_active=True)
            if item is None:
                raise ValidationError(
                    f"Raw material not found or inactive: {row.get('item_name') or item_id}",
                    details={"item_id": str(item_id)},
                )
            if item.pk in seen:
                raise ValidationError(f"Raw material listed twice: {item.name}")
            seen.add(item.pk)

            rate = row.get("rate")
            materials.append(
                ProductionMaterial(
                    item=item,
                    item_name=item.name,
                    unit=item.unit,
                    required_quantity=qty(
                        require_positive(
                            row.get("required_quantity"), field_name="required_quantity"
                        )
                    ),
                    waste_quantity=qty(row.get("waste_quantity") or 0),
                    rate=money(
                        require_non_negative(rate, field_name="rate")
                        if rate not in (None, "")
                        else item.cost_price
                    ),
                )
            )
        return materials

    def _build_stages(self, rows) -> list:
        stages = []
        for index, row in enumerate(rows or [], start=1):
            name = (row.get("name") or "").strip()
            if not name:
                raise ValidationError("Stage name is required", details={"sequence": index})
            process_type = row.get("process_type")
            if process_type not in ProductionStage.ProcessType.values:
                raise ValidationError(
                    f"Unknown process type: {process_type}",
                    details={"allowed": ProductionStage.ProcessType.values},
                )
            stage = ProductionStage(sequence=index, name=name, process_type=process_type)
            for field in STAGE_COST_FIELDS:
                if row.get(field) not in (None, ""):
                    setattr(stage, field, money(require_non_negative(row[field], field_name=field)))
            stages.append(stage)
        return stages

    @transaction.atomic
    def create_order(self, company, data: dict, *, created_by=None) -> ProductionOrder:
        data = dict(data)

        order_quantity = to_order_quantity(data.get("order_quantity"))

        product = None
        product_id = data.get("product_id")
        if product_id:
            product = self.inventory.get(company, product_id)

        product_name = (data.get("product_name") or "").strip() or (
            product.name if product else ""
        )
        if not product_name:
            raise ValidationError("product_name is required")

        product_type = data.get("product_type") or ProductionOrder.ProductType.CUSTOM
        if product_type not in ProductionOrder.ProductType.values:
            raise ValidationError(
                "Product type is required",
                details={"allowed": ProductionOrder.ProductType.values},
            )

        priority = data.get("priority") or ProductionOrder.Priority.MEDIUM
        if priority not in ProductionOrder.Priority.values:
            raise ValidationError(f"Unknown priority: {priority}")

        self._validate_dates(data.get("planned_start_date"), data.get("planned_end_date"))

        materials = self._build_materials(company, data.get("materials"))
        stages = self._build_stages(data.get("stages"))

        order = ProductionOrder(
            company=company,
            order_number=self.next_order_number(company),
            product=product,
            product_name=product_name,
            product_type=product_type,
            priority=priority,
            order_quantity=order_quantity,
            planned_start_date=data.get("planned_start_date"),
            planned_end_date=data.get("planned_end_date"),
            notes=data.get("notes") or "",
            created_by=created_by,
        )
        self.persist(order)

        for material in materials:
            material.order = order
            material.total_cost = material_line_cost(
                required_quantity=material.required_quantity,
                order_quantity=order_quantity,
                rate=material.rate,
            )
            material.save()
        for stage in stages:
            stage.order = order
            stage.save()

        # Second pass picks up the material + stage costs.
        self.persist(order)

        logger.info(
            "Production order created",
            extra={
                "company_id": str(company.pk),
                "order_number": order.order_number,
                "materials": len(materials),
                "stages": len(stages),
                "material_cost": str(order.material_cost),
            },
        )
        return order

    def create(self, company, data: dict, *, created_by=None):
        return self.create_order(company, data, created_by=created_by)

    @transaction.atomic
    def update_order(self, company, pk, data: dict, *, updated_by=None) -> ProductionOrder:
        data = dict(data)
        unknown = sorted(set(data) - EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(
                "These fields cannot be edited directly", details={"fields": unknown}
            )

        order = self.get(company, pk, for_update=True)
        if order.is_terminal:
            raise InvalidStateError(
                f"A {order.status} production order cannot be edited"
            )

        if "order_quantity" in data:
            if order.status not in {Status.DRAFT, Status.APPROVED}:
                raise InvalidStateError(
                    "Order quantity can only change before production starts"
                )
            data["order_quantity"] = to_order_quantity(data["order_quantity"])

        if "product_type" in data and data["product_type"] not in ProductionOrder.ProductType.values:
            raise ValidationError(f"Unknown product type: {data['product_type']}")
        if "priority" in data and data["priority"] not in ProductionOrder.Priority.values:
            raise ValidationError(f"Unknown priority: {data['priority']}")

        for field, value in data.items():
            setattr(order, field, value)
        if "planned_start_date" in data or "planned_end_date" in data:
            self._validate_dates(order.planned_start_date, order.planned_end_date)

        if "order_quantity" in data:
            for material in order.materials.all():
                material.total_cost = material_line_cost(
                    required_quantity=material.required_quantity,
                    order_quantity=order.order_quantity,
                    rate=material.rate,
                )
                material.save(update_fields=["total_cost"])

        self.persist(order)
        logger.info(
            "Production order updated",
            extra={
                "order_number": order.order_number,
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
        if order.status not in {Status.DRAFT, Status.CANCELLED}:
            raise InvalidStateError("Only draft or cancelled production orders can be deleted")
        return super().delete(company, pk)

    # --------------------------------------------------
    # Status
    # --------------------------------------------------

    @transaction.atomic
    def update_status(
        self, company, pk, *, status: str, user=None, notes: str = ""
    ) -> ProductionOrder:
        """Approve or put on hold. Start / complete / cancel have their own operations."""
        if status not in STATUS_ENDPOINT_TARGETS:
            raise ValidationError(
                "Use the start, complete or cancel operations for this status",
                details={"allowed": sorted(STATUS_ENDPOINT_TARGETS)},
            )

        order = self.get(company, pk, for_update=True)
        PRODUCTION_LIFECYCLE.validate(order, status)

        if status == Status.APPROVED:
            order.approved_by = user
            order.approved_at = timezone.now()
        elif status == Status.ON_HOLD:
            order.stages.filter(status=StageStatus.IN_PROGRESS).update(
                status=StageStatus.ON_HOLD
            )

        previous = order.status
        order.status = status
        if notes:
            order.notes = _append_note(order.notes, notes)
        self.persist(order)

        logger.info(
            "Production order status changed",
            extra={
                "order_number": order.order_number,
                "from": previous,
                "to": status,
                "user_id": str(getattr(user, "pk", "") or ""),
            },
        )
        return order

    def approve_production(self, company, pk, *, user=None) -> ProductionOrder:
        return self.update_status(company, pk, status=Status.APPROVED, user=user)

    @transaction.atomic
    def start_production(self, company, pk, *, user=None) -> ProductionOrder:
        order = self.get(company, pk, for_update=True)

        resuming = order.status == Status.ON_HOLD and order.actual_start_date is not None
        if not resuming and order.status != Status.APPROVED:
            raise InvalidStateError(
                "Production order must be approved before starting",
                details={"status": order.status},
            )
        PRODUCTION_LIFECYCLE.validate(order, Status.IN_PROGRESS)

        if not resuming:
            self._reserve_materials(order)

        now = timezone.now()
        order.status = Status.IN_PROGRESS
        if not resuming:
            order.actual_start_date = now

        current = order.stages.exclude(status=StageStatus.COMPLETED).order_by("sequence").first()
        if current is not None and current.status in {StageStatus.PENDING, StageStatus.ON_HOLD}:
            current.status = StageStatus.IN_PROGRESS
            current.started_at = current.started_at or now
            if current.input_quantity == ZERO:
                current.input_quantity = order.order_quantity
            current.save()

        self.persist(order)

        logger.info(
            "Production resumed" if resuming else "Production started",
            extra={
                "order_number": order.order_number,
                "user_id": str(getattr(user, "pk", "") or ""),
            },
        )
        return order

    def _reserve_materials(self, order) -> None:
        company = order.company
        # Fixed lock order across concurrent starts.
        materials = sorted(order.materials.all(), key=lambda m: str(m.item_id))
        required = {m.pk: qty(m.required_quantity * order.order_quantity) for m in materials}

        for material in materials:
            item = self.inventory.get(company, material.item_id, for_update=True)
            self.inventory.require_stock_for(item, required[material.pk])

        for material in materials:
            self.inventory.reserve_stock(
                company=company,
                item_id=material.item_id,
                quantity=required[material.pk],
                reference_number=order.order_number,
            )
            material.allocated_quantity = required[material.pk]
            material.save(update_fields=["allocated_quantity"])

    def _release_materials(self, order) -> Decimal:
        released = Decimal("0.000")
        for material in order.materials.all():
            outstanding = material.outstanding_allocation
            if outstanding <= ZERO:
                continue
            self.inventory.release_reserved_stock(
                company=order.company,
                item_id=material.item_id,
                quantity=outstanding,
                reference_number=order.order_number,
            )
            material.allocated_quantity = material.consumed_quantity
            material.save(update_fields=["allocated_quantity"])
            released += outstanding
        return released

    def _consume_materials(self, order, *, user=None) -> None:
        for material in order.materials.all():
            outstanding = material.outstanding_allocation
            if outstanding <= ZERO:
                continue
            self.inventory.consume_reserved_stock(
                company=order.company,
                item_id=material.item_id,
                quantity=outstanding,
                reference_type=StockMovement.ReferenceType.PRODUCTION_ORDER,
                reference_number=order.order_number,
                reference_id=order.pk,
                created_by=user,
            )
            material.consumed_quantity = material.consumed_quantity + outstanding
            material.save(update_fields=["consumed_quantity"])

    # --------------------------------------------------
    # Completion
    # --------------------------------------------------

    @transaction.atomic
    def complete_stage(
        self,
        company,
        pk,
        index,
        *,
        output_quantity=None,
        defect_quantity=None,
        quality_notes: str = "",
        costs: Optional[dict] = None,
        user=None,
    ) -> ProductionOrder:
        order = self.get(company, pk, for_update=True)
        if order.status != Status.IN_PROGRESS:
            raise InvalidStateError("Production order is not in progress")

        stages = list(order.stages.order_by("sequence"))
        try:
            index = int(index)
        except (TypeError, ValueError) as exc:
            raise ValidationError("Invalid stage index") from exc
        if not 0 <= index < len(stages):
            raise ValidationError(
                "Invalid stage index", details={"index": index, "stages": len(stages)}
            )

        stage = stages[index]
        if stage.status == StageStatus.COMPLETED:
            raise InvalidStateError("Stage is already completed")

        now = timezone.now()
        # Input is the output of the last finished stage before this one,
        # which may be zero; only an unfed stage starts from the order quantity.
        feeder = next(
            (s for s in reversed(stages[:index]) if s.status == StageStatus.COMPLETED),
            None,
        )
        if feeder is not None:
            stage.input_quantity = feeder.output_quantity
        elif stage.input_quantity == ZERO:
            stage.input_quantity = order.order_quantity
        defect = qty(
            require_non_negative(defect_quantity, field_name="defect_quantity")
            if defect_quantity not in (None, "")
            else ZERO
        )
        output = (
            qty(require_non_negative(output_quantity, field_name="output_quantity"))
            if output_quantity not in (None, "")
            else stage.input_quantity - defect
        )
        if output + defect > stage.input_quantity:
            raise ValidationError(
                "Output plus defect quantity cannot exceed the stage input",
                details={"input_quantity": str(stage.input_quantity)},
            )

        for field, value in (costs or {}).items():
            if field not in STAGE_COST_FIELDS:
                raise ValidationError(f"Unknown stage cost: {field}")
            setattr(stage, field, money(require_non_negative(value, field_name=field)))

        stage.output_quantity = output
        stage.defect_quantity = defect
        stage.quality_notes = quality_notes or stage.quality_notes
        stage.status = StageStatus.COMPLETED
        stage.started_at = stage.started_at or now
        stage.completed_at = now
        stage.completed_by = user
        stage.save()

        logger.info(
            "Production stage completed",
            extra={
                "order_number": order.order_number,
                "stage": stage.name,
                "sequence": stage.sequence,
                "output_quantity": str(output),
            },
        )

        following = next(
            (s for s in stages[index + 1 :] if s.status != StageStatus.COMPLETED), None
        )
        if following is not None:
            following.status = StageStatus.IN_PROGRESS
            following.started_at = following.started_at or now
            following.input_quantity = output
            following.save()
            self.persist(order)
            return order

        if all(s.status == StageStatus.COMPLETED for s in stages):
            total_defects = sum((s.defect_quantity for s in stages), Decimal("0.000"))
            rejected = min(total_defects, order.order_quantity - output)
            return self._finish(
                order, completed_quantity=output, rejected_quantity=rejected, user=user
            )

        self.persist(order)
        return order

    @transaction.atomic
    def complete_production(
        self,
        company,
        pk,
        *,
        completed_quantity=None,
        rejected_quantity=None,
        quality_notes: str = "",
        user=None,
    ) -> ProductionOrder:
        order = self.get(company, pk, for_update=True)
        if order.status not in {Status.IN_PROGRESS, Status.PARTIALLY_COMPLETED}:
            raise InvalidStateError("Production order is not in progress")

        rejected = (
            qty(require_non_negative(rejected_quantity, field_name="rejected_quantity"))
            if rejected_quantity not in (None, "")
            else order.rejected_quantity
        )
        completed = (
            qty(require_non_negative(completed_quantity, field_name="completed_quantity"))
            if completed_quantity not in (None, "")
            else order.order_quantity - rejected
        )
        return self._finish(
            order,
            completed_quantity=completed,
            rejected_quantity=rejected,
            user=user,
            notes=quality_notes,
        )

    def _finish(self, order, *, completed_quantity, rejected_quantity, user=None, notes=""):
        completed = qty(completed_quantity)
        rejected = qty(rejected_quantity)

        if completed + rejected > order.order_quantity:
            raise ValidationError(
                "Completed plus rejected quantity cannot exceed the order quantity",
                details={"order_quantity": str(order.order_quantity)},
            )
        if completed < order.completed_quantity:
            raise ValidationError(
                "Completed quantity cannot be lower than what was already reported"
            )

        target = (
            Status.COMPLETED
            if completed + rejected >= order.order_quantity
            else Status.PARTIALLY_COMPLETED
        )
        if not (order.status == target == Status.PARTIALLY_COMPLETED):
            PRODUCTION_LIFECYCLE.validate(order, target)

        self._consume_materials(order, user=user)

        output_delta = completed - order.completed_quantity
        now = timezone.now()

        order.completed_quantity = completed
        order.rejected_quantity = rejected
        order.status = target
        if notes:
            order.notes = _append_note(order.notes, notes)
        if target == Status.COMPLETED:
            order.actual_end_date = now
            order.stages.exclude(status=StageStatus.COMPLETED).update(
                status=StageStatus.COMPLETED, completed_at=now
            )
        self.persist(order)

        if order.product_id and output_delta > ZERO:
            self.inventory.update_stock(
                company=order.company,
                item_id=order.product_id,
                quantity=output_delta,
                movement_type=StockMovement.MovementType.PRODUCTION_OUTPUT,
                rate=order.cost_per_unit if order.cost_per_unit > ZERO else None,
                reference_type=StockMovement.ReferenceType.PRODUCTION_ORDER,
                reference_number=order.order_number,
                reference_id=order.pk,
                created_by=user,
            )

        logger.info(
            "Production order finished",
            extra={
                "order_number": order.order_number,
                "status": target,
                "completed_quantity": str(completed),
                "rejected_quantity": str(rejected),
                "total_production_cost": str(order.total_production_cost),
            },
        )
        return order

    # --------------------------------------------------
    # Cancel
    # --------------------------------------------------

    @transaction.atomic
    def cancel_production(self, company, pk, *, reason: str = "", user=None) -> ProductionOrder:
        order = self.get(company, pk, for_update=True)
        if order.status == Status.COMPLETED:
            raise InvalidStateError("Cannot cancel completed production order")
        PRODUCTION_LIFECYCLE.validate(order, Status.CANCELLED)

        released = self._release_materials(order)

        order.status = Status.CANCELLED
        order.cancellation_reason = reason or ""
        if reason:
            order.notes = _append_note(order.notes, f"Cancelled: {reason}")
        self.persist(order)

        logger.info(
            "Production order cancelled",
            extra={
                "order_number": order.order_number,
                "released_quantity": str(released),
                "user_id": str(getattr(user, "pk", "") or ""),
            },
        )
        return order

    # --------------------------------------------------
    # Reports
    # --------------------------------------------------

    def stats(self, company, *, date_from=None, date_to=None) -> dict:
        qs = self.get_queryset(company)
        if date_from:
            qs = qs.filter(created_at__date__gte=date_from)
        if date_to:
            qs = qs.filter(created_at__date__lte=date_to)

        agg = qs.aggregate(
            total_orders=Count("id"),
            completed_orders=Count("id", filter=Q(status=Status.COMPLETED)),
            in_progress_orders=Count("id", filter=Q(status=Status.IN_PROGRESS)),
            cancelled_orders=Count("id", filter=Q(status=Status.CANCELLED)),
            draft_orders=Count("id", filter=Q(status=Status.DRAFT)),
            total_planned_quantity=Sum("order_quantity"),
            total_actual_quantity=Sum("completed_quantity"),
            total_rejected_quantity=Sum("rejected_quantity"),
            total_production_cost=Sum("total_production_cost"),
        )

        total = agg["total_orders"]
        planned = qty(agg["total_planned_quantity"])
        actual = qty(agg["total_actual_quantity"])

        by_status = dict(
            qs.order_by().values_list("status").annotate(count=Count("id"))
        )

        return {
            "total_orders": total,
            "completed_orders": agg["completed_orders"],
            "in_progress_orders": agg["in_progress_orders"],
            "cancelled_orders": agg["cancelled_orders"],
            "draft_orders": agg["draft_orders"],
            "by_status": by_status,
            "total_planned_quantity": planned,
            "total_actual_quantity": actual,
            "total_rejected_quantity": qty(agg["total_rejected_quantity"]),
            "average_planned_quantity": money(planned / total) if total else Decimal("0.00"),
            "average_actual_quantity": money(actual / total) if total else Decimal("0.00"),
            "total_production_cost": money(agg["total_production_cost"]),
            "completion_rate": percent(agg["completed_orders"], total),
            "efficiency": percent(actual, planned),
        }


def to_order_quantity(value) -> Decimal:
    if value in (None, ""):
        raise ValidationError("Order quantity must be greater than 0")
    quantity = qty(require_non_negative(value, field_name="order_quantity"))
    if quantity <= ZERO:
        raise ValidationError("Order quantity must be greater than 0")
    return quantity


def _append_note(existing: str, note: str) -> str:
    return f"{existing}\n{note}".strip() if existing else note
