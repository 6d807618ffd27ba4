# sales/models/base.py

"""
Abstract building blocks shared by quotations, invoices and customer orders.

- PricedLine: one priced line; derived columns are written by
  sales.services.totals.apply_line_totals.
- PricedDocument: header amount columns; written by the owning service
  right before every save.
"""

from decimal import Decimal

from django.db import models

from core.money import DISCOUNT_AMOUNT, DISCOUNT_PERCENTAGE
from inventory.models import InventoryItem

ZERO_MONEY = Decimal("0.00")

DISCOUNT_TYPES = [
    (DISCOUNT_PERCENTAGE, "Percentage"),
    (DISCOUNT_AMOUNT, "Amount"),
]


class PricedLine(models.Model):
    item = models.ForeignKey(
        InventoryItem,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )
    description = models.CharField(max_length=255)
    unit = models.CharField(max_length=20, blank=True, default="")

    quantity = models.DecimalField(max_digits=14, decimal_places=3)
    rate = models.DecimalField(max_digits=14, decimal_places=2)
    discount_type = models.CharField(
        max_length=12, choices=DISCOUNT_TYPES, default=DISCOUNT_PERCENTAGE
    )
    discount_value = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO_MONEY)
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=ZERO_MONEY)

    # Derived
    amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    discount_amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    taxable_amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    tax_amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    line_total = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)

    class Meta:
        abstract = True

    def __str__(self):
        return f"{self.description} x {self.quantity}"


class PricedDocument(models.Model):
    subtotal = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    discount_total = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    taxable_amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    tax_total = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    other_charges = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO_MONEY)
    round_off = models.DecimalField(max_digits=8, decimal_places=2, default=ZERO_MONEY)

    notes = models.TextField(blank=True, default="")
    terms = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
