# core/tests/test_numbering.py

from datetime import date

from django.test import TestCase

from core.numbering import daily_number, item_code, item_code_prefix, monthly_number, next_number
from core.tests.helpers import make_company, make_warehouse
from inventory.models import Warehouse


class NumberingTests(TestCase):
    """
    GUARANTEES:
    - next suffix = highest issued suffix + 1, zero padded
    - sequences are per company and per period prefix
    """

    def setUp(self):
        self.company = make_company()
        self.other = make_company(code="OTHER", name="Other Mills")

    def codes(self, company=None):
        return Warehouse.objects.filter(company=company or self.company)

    def test_next_number_uses_highest_suffix(self):
        self.assertEqual(next_number(queryset=self.codes(), field="code", prefix="WH"), "WH0001")
        make_warehouse(self.company, code="WH0001", name="A")
        make_warehouse(self.company, code="WH0007", name="B")
        make_warehouse(self.company, code="WHX", name="C")
        self.assertEqual(next_number(queryset=self.codes(), field="code", prefix="WH"), "WH0008")
        self.assertEqual(
            next_number(queryset=self.codes(self.other), field="code", prefix="WH"), "WH0001"
        )

    def test_daily_and_monthly_formats(self):
        on = date(2024, 3, 5)
        make_warehouse(self.company, code="PO-20240305-0002", name="A")
        make_warehouse(self.company, code="PO-20240304-0009", name="B")
        self.assertEqual(
            daily_number(queryset=self.codes(), field="code", code="PO", on=on),
            "PO-20240305-0003",
        )

        make_warehouse(self.company, code="INV2024030004", name="C")
        self.assertEqual(
            monthly_number(queryset=self.codes(), field="code", code="INV", on=on),
            "INV2024030005",
        )
        self.assertEqual(
            monthly_number(queryset=self.codes(), field="code", code="INV", on=date(2024, 4, 1)),
            "INV2024040001",
        )

    def test_item_codes(self):
        self.assertEqual(item_code_prefix("Cotton Yarn 40s"), "COTTON")
        self.assertEqual(item_code_prefix("--"), "ITEM")
        make_warehouse(self.company, code="COTTON001", name="A")
        self.assertEqual(
            item_code(queryset=self.codes(), field="code", name="cotton yarn"), "COTTON002"
        )
