# production/services/totals.py

"""
PRODUCTION ORDER TOTALS

Pure functions: quantities + costs in, derived numbers out.

Rules:
- pending = order - completed - rejected
- Raw material cost = sum(required_per_unit * order_quantity * rate)
- Cost summary = sums over stages; the material bucket falls back to the
  raw material cost while the stages carry no material cost of their own.
- cost_per_unit = total / completed once something was completed,
  otherwise total / order_quantity (planned unit cost).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from core.money import ZERO, money, qty

STAGE_COST_FIELDS = (
    "material_cost",
    "labor_cost",
    "machine_cost",
    "overhead_cost",
    "job_work_cost",
)


@dataclass(frozen=True)
class ProductionTotals:
    pending_quantity: Decimal
    material_cost: Decimal
    labor_cost: Decimal
    machine_cost: Decimal
    overhead_cost: Decimal
    job_work_cost: Decimal
    total_production_cost: Decimal
    cost_per_unit: Decimal

    def as_dict(self) -> dict:
        return {
            "pending_quantity": self.pending_quantity,
            "material_cost": self.material_cost,
            "labor_cost": self.labor_cost,
            "machine_cost": self.machine_cost,
            "overhead_cost": self.overhead_cost,
            "job_work_cost": self.job_work_cost,
            "total_production_cost": self.total_production_cost,
            "cost_per_unit": self.cost_per_unit,
        }


def material_line_cost(*, required_quantity, order_quantity, rate) -> Decimal:
    return money(
        Decimal(str(required_quantity or 0))
        * Decimal(str(order_quantity or 0))
        * Decimal(str(rate or 0))
    )


def compute_production_totals(
    *, order_quantity, completed_quantity, rejected_quantity, materials=(), stages=()
) -> ProductionTotals:
    """
    materials: iterable of objects/dicts with required_quantity + rate
    stages:    iterable of objects/dicts with the five stage cost fields
    """
    order_quantity = qty(order_quantity)
    completed_quantity = qty(completed_quantity)
    rejected_quantity = qty(rejected_quantity)

    raw_material_cost = sum(
        (
            material_line_cost(
                required_quantity=_get(m, "required_quantity"),
                order_quantity=order_quantity,
                rate=_get(m, "rate"),
            )
            for m in materials
        ),
        Decimal("0.00"),
    )

    sums = {field: Decimal("0.00") for field in STAGE_COST_FIELDS}
    for stage in stages:
        for field in STAGE_COST_FIELDS:
            sums[field] += money(_get(stage, field))

    if sums["material_cost"] == ZERO:
        sums["material_cost"] = raw_material_cost

    total = money(sum(sums.values(), Decimal("0.00")))

    if completed_quantity > ZERO:
        cost_per_unit = money(total / completed_quantity)
    elif order_quantity > ZERO:
        cost_per_unit = money(total / order_quantity)
    else:
        cost_per_unit = Decimal("0.00")

    return ProductionTotals(
        pending_quantity=order_quantity - completed_quantity - rejected_quantity,
        material_cost=money(sums["material_cost"]),
        labor_cost=money(sums["labor_cost"]),
        machine_cost=money(sums["machine_cost"]),
        overhead_cost=money(sums["overhead_cost"]),
        job_work_cost=money(sums["job_work_cost"]),
        total_production_cost=total,
        cost_per_unit=cost_per_unit,
    )


def apply_production_totals(order, *, materials=(), stages=()) -> ProductionTotals:
    totals = compute_production_totals(
        order_quantity=order.order_quantity,
        completed_quantity=order.completed_quantity,
        rejected_quantity=order.rejected_quantity,
        materials=materials,
        stages=stages,
    )
    for field, value in totals.as_dict().items():
        setattr(order, field, value)
    return totals


def _get(obj, field):
    if isinstance(obj, dict):
        return obj.get(field)
    return getattr(obj, field, None)
