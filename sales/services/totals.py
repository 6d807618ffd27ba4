# sales/services/totals.py

"""
SALES DOCUMENT TOTALS

Pure functions; the owning service calls them right before every save.

- line: core.money.compute_line_totals
- quotation / invoice header: compute_document_totals with
  charges = other_charges, grand_total includes round_off
- invoice balance: outstanding = grand - paid; payment status
  unpaid / partially_paid / paid, overdue while money is owed past the
  due date
- customer order: total = lines + other charges,
  final = total + round_off, balance = final - advance,
  due date = order date + credit days
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from core.exceptions import ValidationError
from core.money import (
    DISCOUNT_PERCENTAGE,
    ZERO,
    DocumentTotals,
    LineTotals,
    compute_document_totals,
    compute_line_totals,
    money,
)

PAYMENT_UNPAID = "unpaid"
PAYMENT_PARTIALLY_PAID = "partially_paid"
PAYMENT_PAID = "paid"
PAYMENT_OVERDUE = "overdue"

ORDER_PAYMENT_PENDING = "pending"
ORDER_PAYMENT_ADVANCE_RECEIVED = "advance_received"
ORDER_PAYMENT_PAID = "paid"


def apply_line_totals(line) -> LineTotals:
    totals = compute_line_totals(
        quantity=line.quantity,
        rate=line.rate,
        discount_type=line.discount_type or DISCOUNT_PERCENTAGE,
        discount_value=line.discount_value,
        tax_rate=line.tax_rate,
    )
    line.amount = totals.amount
    line.discount_amount = totals.discount_amount
    line.taxable_amount = totals.taxable_amount
    line.tax_amount = totals.tax_amount
    line.line_total = totals.total_amount
    return totals


def apply_document_totals(document, lines, *, include_round_off: bool = True) -> DocumentTotals:
    totals = compute_document_totals(
        [apply_line_totals(line) for line in lines],
        charges=document.other_charges,
        round_off=document.round_off if include_round_off else ZERO,
    )
    document.subtotal = totals.subtotal
    document.discount_total = totals.discount_total
    document.taxable_amount = totals.taxable_amount
    document.tax_total = totals.tax_total
    return totals


# ==========================================================
# INVOICE
# ==========================================================

@dataclass(frozen=True)
class InvoiceBalance:
    outstanding_amount: Decimal
    payment_status: str


def compute_invoice_balance(
    *, grand_total, paid_amount, due_date: Optional[date], today: date
) -> InvoiceBalance:
    grand_total = money(grand_total)
    paid = money(paid_amount)
    outstanding = grand_total - paid

    if grand_total > ZERO and outstanding <= ZERO:
        status = PAYMENT_PAID
    elif due_date and due_date < today:
        status = PAYMENT_OVERDUE
    elif paid > ZERO:
        status = PAYMENT_PARTIALLY_PAID
    else:
        status = PAYMENT_UNPAID

    return InvoiceBalance(outstanding_amount=outstanding, payment_status=status)


def apply_invoice_totals(invoice, lines, *, today: date) -> InvoiceBalance:
    totals = apply_document_totals(invoice, lines)
    invoice.grand_total = totals.grand_total
    balance = compute_invoice_balance(
        grand_total=invoice.grand_total,
        paid_amount=invoice.paid_amount,
        due_date=invoice.due_date,
        today=today,
    )
    invoice.outstanding_amount = balance.outstanding_amount
    invoice.payment_status = balance.payment_status
    return balance


# ==========================================================
# CUSTOMER ORDER
# ==========================================================

@dataclass(frozen=True)
class OrderBalance:
    total_amount: Decimal
    final_amount: Decimal
    balance_amount: Decimal
    due_date: Optional[date]
    payment_status: str


def compute_order_balance(
    *, total_amount, round_off=ZERO, advance_amount=ZERO, order_date=None, credit_days=0
) -> OrderBalance:
    total = money(total_amount)
    final = total + money(round_off)
    advance = money(advance_amount)
    if advance > final:
        raise ValidationError(
            "Advance amount cannot exceed the order value",
            details={"final_amount": str(final), "advance_amount": str(advance)},
        )
    balance = final - advance

    if final > ZERO and balance == ZERO:
        status = ORDER_PAYMENT_PAID
    elif advance > ZERO:
        status = ORDER_PAYMENT_ADVANCE_RECEIVED
    else:
        status = ORDER_PAYMENT_PENDING

    due = order_date + timedelta(days=int(credit_days or 0)) if order_date else None
    return OrderBalance(
        total_amount=total,
        final_amount=final,
        balance_amount=balance,
        due_date=due,
        payment_status=status,
    )


def apply_customer_order_totals(order, lines) -> OrderBalance:
    totals = apply_document_totals(order, lines, include_round_off=False)
    balance = compute_order_balance(
        total_amount=totals.grand_total,
        round_off=order.round_off,
        advance_amount=order.advance_amount,
        order_date=order.order_date,
        credit_days=order.credit_days,
    )
    order.total_amount = balance.total_amount
    order.final_amount = balance.final_amount
    order.balance_amount = balance.balance_amount
    order.due_date = balance.due_date
    order.payment_status = balance.payment_status
    return balance
