# inventory/services/stock_levels.py

"""
STOCK LEVEL ARITHMETIC (pure)

available_stock = max(0, current_stock - reserved_stock)
total_value     = current_stock * average_cost

No database access, no side effects beyond apply_stock_levels() stamping
the computed values on the instance it is given.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from core.money import ZERO, money, qty


@dataclass(frozen=True)
class StockLevels:
    available_stock: Decimal
    total_value: Decimal


@dataclass(frozen=True)
class StockSnapshot:
    current_stock: Decimal
    reserved_stock: Decimal
    available_stock: Decimal
    average_cost: Decimal
    total_value: Decimal


def derive_stock_levels(*, current_stock, reserved_stock, average_cost) -> StockLevels:
    current = qty(current_stock)
    reserved = qty(reserved_stock)
    return StockLevels(
        available_stock=max(qty(ZERO), current - reserved),
        total_value=money(current * Decimal(str(average_cost or 0))),
    )


def apply_stock_levels(item):
    levels = derive_stock_levels(
        current_stock=item.current_stock,
        reserved_stock=item.reserved_stock,
        average_cost=item.average_cost,
    )
    item.current_stock = qty(item.current_stock)
    item.reserved_stock = qty(item.reserved_stock)
    item.available_stock = levels.available_stock
    item.total_value = levels.total_value
    return item


def snapshot(item) -> StockSnapshot:
    return StockSnapshot(
        current_stock=qty(item.current_stock),
        reserved_stock=qty(item.reserved_stock),
        available_stock=qty(item.available_stock),
        average_cost=money(item.average_cost),
        total_value=money(item.total_value),
    )


def weighted_average_cost(*, current_stock, average_cost, quantity, rate) -> Decimal:
    """Average cost after receiving `quantity` at `rate`."""
    current = Decimal(str(current_stock or 0))
    incoming = Decimal(str(quantity or 0))
    total_qty = current + incoming
    if total_qty <= ZERO:
        return money(rate)
    value = current * Decimal(str(average_cost or 0)) + incoming * Decimal(str(rate or 0))
    return money(value / total_qty)
