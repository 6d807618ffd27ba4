# purchases/services/totals.py

"""
PURCHASE ORDER TOTALS

Pure: line inputs in, derived amounts + receiving summary out.

- line: core.money.compute_line_totals
- pending per line = quantity - received - rejected
- header: core.money.compute_document_totals with
  charges = freight + other charges
- receiving status: completed when nothing is pending, partial once
  anything was received, pending otherwise
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from core.money import (
    DISCOUNT_PERCENTAGE,
    ZERO,
    DocumentTotals,
    LineTotals,
    compute_document_totals,
    compute_line_totals,
    money,
    qty,
)

RECEIVING_PENDING = "pending"
RECEIVING_PARTIAL = "partial"
RECEIVING_COMPLETED = "completed"


@dataclass(frozen=True)
class PurchaseOrderTotals:
    document: DocumentTotals
    total_ordered: Decimal
    total_received: Decimal
    total_pending: Decimal
    receiving_status: str


def line_totals(line) -> LineTotals:
    return compute_line_totals(
        quantity=line.quantity,
        rate=line.rate,
        discount_type=line.discount_type or DISCOUNT_PERCENTAGE,
        discount_value=line.discount_value,
        tax_rate=line.tax_rate,
    )


def apply_line_totals(line) -> LineTotals:
    totals = line_totals(line)
    line.amount = totals.amount
    line.discount_amount = totals.discount_amount
    line.taxable_amount = totals.taxable_amount
    line.tax_amount = totals.tax_amount
    line.line_total = totals.total_amount
    line.pending_quantity = (
        qty(line.quantity) - qty(line.received_quantity) - qty(line.rejected_quantity)
    )
    return totals


def compute_purchase_order_totals(
    lines, *, freight_charges=ZERO, other_charges=ZERO, round_off=ZERO
) -> PurchaseOrderTotals:
    lines = list(lines)
    document = compute_document_totals(
        [line_totals(line) for line in lines],
        charges=money(freight_charges) + money(other_charges),
        round_off=round_off,
    )

    ordered = sum((qty(line.quantity) for line in lines), Decimal("0.000"))
    received = sum((qty(line.received_quantity) for line in lines), Decimal("0.000"))
    pending = sum(
        (
            qty(line.quantity) - qty(line.received_quantity) - qty(line.rejected_quantity)
            for line in lines
        ),
        Decimal("0.000"),
    )

    if lines and pending == ZERO:
        status = RECEIVING_COMPLETED
    elif received > ZERO:
        status = RECEIVING_PARTIAL
    else:
        status = RECEIVING_PENDING

    return PurchaseOrderTotals(
        document=document,
        total_ordered=ordered,
        total_received=received,
        total_pending=pending,
        receiving_status=status,
    )


def apply_purchase_order_totals(order, lines) -> PurchaseOrderTotals:
    lines = list(lines)
    for line in lines:
        apply_line_totals(line)

    totals = compute_purchase_order_totals(
        lines,
        freight_charges=order.freight_charges,
        other_charges=order.other_charges,
        round_off=order.round_off,
    )
    doc = totals.document
    order.subtotal = doc.subtotal
    order.discount_total = doc.discount_total
    order.taxable_amount = doc.taxable_amount
    order.tax_total = doc.tax_total
    order.grand_total = doc.grand_total
    order.total_ordered = totals.total_ordered
    order.total_received = totals.total_received
    order.total_pending = totals.total_pending
    order.receiving_status = totals.receiving_status
    return totals
