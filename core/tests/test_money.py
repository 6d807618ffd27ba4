# core/tests/test_money.py

from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase

from core.exceptions import ValidationError
from core.money import (
    DISCOUNT_AMOUNT,
    compute_document_totals,
    compute_line_totals,
    financial_year,
    money,
    percent,
    qty,
    require_non_negative,
    require_positive,
    to_decimal,
)


class DecimalHelperTests(SimpleTestCase):
    """
    GUARANTEES:
    - money: 2 places, quantities: 3 places, ROUND_HALF_UP
    - missing / malformed numbers raise ValidationError naming the field
    """

    def test_rounding(self):
        self.assertEqual(money("2.345"), Decimal("2.35"))
        self.assertEqual(money("-0.005"), Decimal("-0.01"))
        self.assertEqual(money(None), Decimal("0.00"))
        self.assertEqual(qty("1.0005"), Decimal("1.001"))

    def test_to_decimal(self):
        self.assertEqual(to_decimal("12.5"), Decimal("12.5"))
        with self.assertRaises(ValidationError) as ctx:
            to_decimal("", field_name="rate")
        self.assertEqual(ctx.exception.message, "rate is required")
        with self.assertRaises(ValidationError) as ctx:
            to_decimal("abc", field_name="rate")
        self.assertEqual(ctx.exception.message, "rate must be a valid decimal")
        with self.assertRaises(ValidationError):
            to_decimal(True)

    def test_sign_checks(self):
        with self.assertRaises(ValidationError) as ctx:
            require_positive("0", field_name="quantity")
        self.assertEqual(ctx.exception.message, "quantity must be greater than zero")
        self.assertEqual(require_non_negative("0"), Decimal("0"))
        with self.assertRaises(ValidationError):
            require_non_negative("-1")

    def test_percent(self):
        self.assertEqual(percent(1, 3), Decimal("33.33"))
        self.assertEqual(percent(5, 0), Decimal("0.00"))

    def test_financial_year(self):
        self.assertEqual(financial_year(date(2025, 1, 15)), "2024-2025")
        self.assertEqual(financial_year(date(2025, 4, 1)), "2025-2026")


class LineTotalsTests(SimpleTestCase):
    """
    GUARANTEES:
    - amount = quantity x rate; taxable = amount - discount
    - tax = taxable x rate / 100; total = taxable + tax
    - flat discounts never exceed the line amount
    """

    def test_percentage_discount(self):
        line = compute_line_totals(
            quantity="100", rate="10", discount_value="10", tax_rate="5"
        )
        self.assertEqual(line.amount, Decimal("1000.00"))
        self.assertEqual(line.discount_amount, Decimal("100.00"))
        self.assertEqual(line.taxable_amount, Decimal("900.00"))
        self.assertEqual(line.tax_amount, Decimal("45.00"))
        self.assertEqual(line.total_amount, Decimal("945.00"))

    def test_flat_discount_is_clamped(self):
        line = compute_line_totals(
            quantity="2", rate="5", discount_type=DISCOUNT_AMOUNT, discount_value="25"
        )
        self.assertEqual(line.discount_amount, Decimal("10.00"))
        self.assertEqual(line.total_amount, Decimal("0.00"))

    def test_document_totals(self):
        lines = [
            compute_line_totals(quantity="100", rate="10", discount_value="10", tax_rate="5"),
            compute_line_totals(quantity="20", rate="50"),
        ]
        totals = compute_document_totals(lines, charges="25", round_off="-0.40")
        self.assertEqual(totals.subtotal, Decimal("2000.00"))
        self.assertEqual(totals.discount_total, Decimal("100.00"))
        self.assertEqual(totals.taxable_amount, Decimal("1900.00"))
        self.assertEqual(totals.tax_total, Decimal("45.00"))
        self.assertEqual(totals.grand_total, Decimal("1969.60"))

    def test_empty_document(self):
        totals = compute_document_totals([], charges="10")
        self.assertEqual(totals.subtotal, Decimal("0.00"))
        self.assertEqual(totals.grand_total, Decimal("10.00"))
