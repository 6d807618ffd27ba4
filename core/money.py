# core/money.py

"""
DECIMAL HELPERS + LINE ARITHMETIC

Rules:
- Money is quantized to 2 places, quantities to 3 places (kg, metres...).
- ROUND_HALF_UP everywhere.
- Pure functions only: no database access.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from core.exceptions import ValidationError

ZERO = Decimal("0")
HUNDRED = Decimal("100")
TWOPLACES = Decimal("0.01")
THREEPLACES = Decimal("0.001")

DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_AMOUNT = "amount"


def money(value) -> Decimal:
    return Decimal(str(value or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def qty(value) -> Decimal:
    return Decimal(str(value or "0")).quantize(THREEPLACES, rounding=ROUND_HALF_UP)


def to_decimal(value, *, field_name="value") -> Decimal:
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationError(f"{field_name} is required")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field_name} must be a valid decimal") from exc


def require_positive(value, *, field_name="quantity") -> Decimal:
    v = to_decimal(value, field_name=field_name)
    if v <= ZERO:
        raise ValidationError(f"{field_name} must be greater than zero")
    return v


def require_non_negative(value, *, field_name="value") -> Decimal:
    v = to_decimal(value, field_name=field_name)
    if v < ZERO:
        raise ValidationError(f"{field_name} cannot be negative")
    return v


def percent(part, whole) -> Decimal:
    """part / whole * 100, rounded to 2 places; 0 when whole is 0."""
    whole = Decimal(str(whole or 0))
    if whole == ZERO:
        return Decimal("0.00")
    return money(Decimal(str(part or 0)) * HUNDRED / whole)


def financial_year(on: date) -> str:
    """Financial years start in April: 2024-04-01 .. 2025-03-31 -> "2024-2025"."""
    start = on.year if on.month >= 4 else on.year - 1
    return f"{start}-{start + 1}"


@dataclass(frozen=True)
class LineTotals:
    amount: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal


def compute_line_totals(
    *,
    quantity,
    rate,
    discount_type: str = DISCOUNT_PERCENTAGE,
    discount_value=ZERO,
    tax_rate=ZERO,
) -> LineTotals:
    amount = money(Decimal(str(quantity or 0)) * Decimal(str(rate or 0)))

    discount_value = Decimal(str(discount_value or 0))
    if discount_value <= ZERO:
        discount = Decimal("0.00")
    elif discount_type == DISCOUNT_AMOUNT:
        discount = money(discount_value)
    else:
        discount = money(amount * discount_value / HUNDRED)

    # A flat discount larger than the line is clamped to the line amount.
    discount = min(discount, amount)

    taxable = amount - discount
    tax = money(taxable * Decimal(str(tax_rate or 0)) / HUNDRED)

    return LineTotals(
        amount=amount,
        discount_amount=discount,
        taxable_amount=taxable,
        tax_amount=tax,
        total_amount=taxable + tax,
    )


@dataclass(frozen=True)
class DocumentTotals:
    subtotal: Decimal
    discount_total: Decimal
    taxable_amount: Decimal
    tax_total: Decimal
    charges: Decimal
    round_off: Decimal
    grand_total: Decimal


def compute_document_totals(lines, *, charges=ZERO, round_off=ZERO) -> DocumentTotals:
    """Header totals from already computed LineTotals."""
    lines = list(lines)
    subtotal = sum((line.amount for line in lines), Decimal("0.00"))
    discount = sum((line.discount_amount for line in lines), Decimal("0.00"))
    taxable = sum((line.taxable_amount for line in lines), Decimal("0.00"))
    tax = sum((line.tax_amount for line in lines), Decimal("0.00"))
    charges = money(charges)
    round_off = money(round_off)

    return DocumentTotals(
        subtotal=money(subtotal),
        discount_total=money(discount),
        taxable_amount=money(taxable),
        tax_total=money(tax),
        charges=charges,
        round_off=round_off,
        grand_total=money(taxable + tax + charges + round_off),
    )
