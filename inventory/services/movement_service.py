# inventory/services/movement_service.py

"""
======================================================
PATH: inventory/services/movement_service.py
======================================================
STOCK MOVEMENT SERVICE (LEDGER)

Purpose:
- Write ledger rows for InventoryService (record()).
- Read side: filtered lists, per-item history with running balance,
  statistics by type / day.
- Approval: the only mutable part of a movement.

Rules:
- Movement numbers: <TYPE><YYYY><MM><NNNN>, sequence per company + type + month.
- record() never changes stock; InventoryService does, then records.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.db.models import Count, Q, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone

from core.exceptions import InvalidTransitionError, ValidationError
from core.money import money, qty
from core.numbering import monthly_number
from core.services.base import CompanyScopedService
from inventory.models import StockMovement
from inventory.services.stock_levels import StockSnapshot, snapshot

logger = logging.getLogger("erp.inventory")

APPROVAL_TRANSITIONS = {
    StockMovement.ApprovalStatus.PENDING: {
        StockMovement.ApprovalStatus.APPROVED,
        StockMovement.ApprovalStatus.REJECTED,
    },
}


@dataclass(frozen=True)
class HistoryEntry:
    movement: StockMovement
    running_balance: Decimal


class StockMovementService(CompanyScopedService):
    model = StockMovement
    resource_name = "Stock movement"
    default_ordering = ("-movement_date", "-created_at")

    def get_queryset(self, company):
        return super().get_queryset(company).select_related(
            "item", "from_warehouse", "to_warehouse"
        )

    def next_movement_number(self, *, company, movement_type: str, on=None) -> str:
        return monthly_number(
            queryset=StockMovement.objects.filter(company=company),
            field="movement_number",
            code=StockMovement.NUMBER_CODES[movement_type],
            on=on,
        )

    def record(
        self,
        *,
        company,
        item,
        movement_type: str,
        quantity,
        before: StockSnapshot,
        rate=None,
        from_warehouse=None,
        to_warehouse=None,
        reference_type: str = "",
        reference_number: str = "",
        reference_id=None,
        notes: str = "",
        created_by=None,
        approval_status: str = StockMovement.ApprovalStatus.APPROVED,
    ) -> StockMovement:
        """Append one ledger row. `item` must already carry its post-change state."""
        after = snapshot(item)
        rate = money(rate if rate is not None else after.average_cost)
        quantity = qty(quantity)

        movement = StockMovement(
            company=company,
            movement_number=self.next_movement_number(
                company=company, movement_type=movement_type
            ),
            item=item,
            movement_type=movement_type,
            quantity=quantity,
            rate=rate,
            total_value=money(abs(quantity) * rate),
            from_warehouse=from_warehouse,
            to_warehouse=to_warehouse,
            reference_type=reference_type or "",
            reference_number=reference_number or "",
            reference_id=reference_id,
            notes=notes or "",
            stock_before=before.current_stock,
            stock_after=after.current_stock,
            reserved_before=before.reserved_stock,
            reserved_after=after.reserved_stock,
            available_before=before.available_stock,
            available_after=after.available_stock,
            cost_before=before.average_cost,
            cost_after=after.average_cost,
            value_before=before.total_value,
            value_after=after.total_value,
            approval_status=approval_status,
            created_by=created_by,
        )
        if approval_status == StockMovement.ApprovalStatus.APPROVED:
            movement.approved_by = created_by
            movement.approved_at = timezone.now()

        self.persist(movement)
        return movement

    # --------------------------------------------------
    # Read side
    # --------------------------------------------------

    def find_movements(
        self,
        *,
        company,
        item_id=None,
        warehouse_id=None,
        movement_type: Optional[str] = None,
        date_from=None,
        date_to=None,
    ):
        qs = self.find_many(company)
        if item_id:
            qs = qs.filter(item_id=self.parse_id(item_id))
        if warehouse_id:
            wid = self.parse_id(warehouse_id)
            qs = qs.filter(Q(from_warehouse_id=wid) | Q(to_warehouse_id=wid))
        if movement_type:
            qs = qs.filter(movement_type=movement_type)
        if date_from:
            qs = qs.filter(movement_date__date__gte=date_from)
        if date_to:
            qs = qs.filter(movement_date__date__lte=date_to)
        return qs

    def for_item(self, *, company, item_id, limit: int = 50) -> list:
        return list(self.find_movements(company=company, item_id=item_id)[:limit])

    def item_history(self, *, company, item_id, limit: Optional[int] = None) -> list:
        """
        Oldest-first history with a running balance:
        inward types add, outward types subtract, an adjustment resets the
        balance to the level it set, a transfer leaves it unchanged.
        """
        qs = self.find_movements(company=company, item_id=item_id).order_by(
            "movement_date", "created_at"
        )
        balance = Decimal("0.000")
        entries = []
        for movement in qs:
            if movement.movement_type in StockMovement.INWARD_TYPES:
                balance += movement.quantity
            elif movement.movement_type in StockMovement.OUTWARD_TYPES:
                balance -= movement.quantity
            elif movement.movement_type == StockMovement.MovementType.ADJUSTMENT:
                balance = movement.stock_after
            entries.append(HistoryEntry(movement=movement, running_balance=qty(balance)))

        if limit:
            entries = entries[-limit:]
        return entries

    def stats(self, *, company, date_from=None, date_to=None) -> dict:
        qs = self.find_movements(company=company, date_from=date_from, date_to=date_to)

        by_type = {
            row["movement_type"]: {
                "count": row["count"],
                "quantity": row["quantity"] or Decimal("0"),
                "value": row["value"] or Decimal("0"),
            }
            for row in qs.order_by()
            .values("movement_type")
            .annotate(count=Count("id"), quantity=Sum("quantity"), value=Sum("total_value"))
        }

        inward = qs.filter(movement_type__in=StockMovement.INWARD_TYPES).aggregate(
            total=Sum("quantity")
        )["total"] or Decimal("0")
        outward = qs.filter(movement_type__in=StockMovement.OUTWARD_TYPES).aggregate(
            total=Sum("quantity")
        )["total"] or Decimal("0")

        by_date = [
            {"date": row["day"], "count": row["count"], "quantity": row["quantity"]}
            for row in qs.order_by()
            .annotate(day=TruncDate("movement_date"))
            .values("day")
            .annotate(count=Count("id"), quantity=Sum("quantity"))
            .order_by("day")
        ]

        return {
            "total_movements": qs.count(),
            "by_type": by_type,
            "total_inward_quantity": qty(inward),
            "total_outward_quantity": qty(outward),
            "by_date": by_date,
        }

    # --------------------------------------------------
    # Approval
    # --------------------------------------------------

    @transaction.atomic
    def update_approval(self, *, company, movement_id, approval_status: str, user=None):
        if approval_status not in StockMovement.ApprovalStatus.values:
            raise ValidationError(f"Unknown approval status: {approval_status}")

        movement = self.get(company, movement_id, for_update=True)
        allowed = APPROVAL_TRANSITIONS.get(movement.approval_status, set())
        if approval_status not in allowed:
            raise InvalidTransitionError(
                f"Movement {movement.movement_number} cannot move from "
                f"'{movement.approval_status}' to '{approval_status}'"
            )

        movement.approval_status = approval_status
        movement.approved_by = user
        movement.approved_at = timezone.now()
        self.persist(movement, update_fields=["approval_status", "approved_by", "approved_at"])

        logger.info(
            "Stock movement approval updated",
            extra={
                "movement_number": movement.movement_number,
                "approval_status": approval_status,
            },
        )
        return movement
