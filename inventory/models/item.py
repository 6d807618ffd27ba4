# inventory/models/item.py

"""
INVENTORY ITEM (STOCK LEDGER HEAD)

GUARANTEES:
- available_stock == max(0, current_stock - reserved_stock)
- total_value == current_stock * average_cost
- Both are derived by inventory.services.stock_levels and stamped by the
  service before every save; clean() refuses a row where they drifted.
- Never hard-deleted (is_active=False instead).
- Quantities only move through InventoryService (reserve / release /
  update_stock / consume), each leaving a StockMovement behind.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from companies.models import Company

from .warehouse import Warehouse

ZERO_QTY = Decimal("0.000")
ZERO_MONEY = Decimal("0.00")


class InventoryItem(models.Model):
    class Category(models.TextChoices):
        RAW_MATERIAL = "raw_material", "Raw Material"
        SEMI_FINISHED = "semi_finished", "Semi Finished"
        FINISHED_GOODS = "finished_goods", "Finished Goods"
        CONSUMABLES = "consumables", "Consumables"
        SPARE_PARTS = "spare_parts", "Spare Parts"

    class ValuationMethod(models.TextChoices):
        FIFO = "fifo", "FIFO"
        LIFO = "lifo", "LIFO"
        WEIGHTED_AVERAGE = "weighted_average", "Weighted Average"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        Company, on_delete=models.PROTECT, related_name="inventory_items"
    )

    item_code = models.CharField(max_length=40)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")

    category = models.CharField(max_length=20, choices=Category.choices)
    unit = models.CharField(max_length=20, help_text="kg, m, pcs, ...")

    warehouse = models.ForeignKey(
        Warehouse,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="items",
        help_text="Default stock location.",
    )

    # Pricing
    cost_price = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO_MONEY)
    selling_price = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO_MONEY)
    average_cost = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO_MONEY)
    valuation_method = models.CharField(
        max_length=20,
        choices=ValuationMethod.choices,
        default=ValuationMethod.WEIGHTED_AVERAGE,
    )

    # Stock
    current_stock = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)
    reserved_stock = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)
    available_stock = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)
    in_transit_stock = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)
    damaged_stock = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)

    reorder_level = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)
    min_stock_level = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)
    max_stock_level = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)

    total_value = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    last_stock_update = models.DateTimeField(null=True, blank=True)

    is_active = models.BooleanField(default=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="inventory_items_created",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "item_code"], name="uniq_item_code_per_company"
            ),
            models.CheckConstraint(
                condition=models.Q(current_stock__gte=0),
                name="inventory_item_current_stock_nonnegative",
            ),
            models.CheckConstraint(
                condition=models.Q(reserved_stock__gte=0),
                name="inventory_item_reserved_stock_nonnegative",
            ),
            models.CheckConstraint(
                condition=models.Q(available_stock__gte=0),
                name="inventory_item_available_stock_nonnegative",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "is_active"]),
            models.Index(fields=["company", "category"]),
            models.Index(fields=["company", "name"]),
        ]

    def clean(self):
        self.item_code = (self.item_code or "").strip().upper()

        for field in ("cost_price", "selling_price", "reorder_level", "damaged_stock"):
            if (getattr(self, field) or 0) < 0:
                raise ValidationError({field: f"{field} cannot be negative"})

        expected_available = max(
            ZERO_QTY, (self.current_stock or 0) - (self.reserved_stock or 0)
        )
        if self.available_stock != expected_available:
            raise ValidationError(
                "available_stock is out of date; recompute stock levels before saving"
            )

        if self.warehouse_id and self.company_id:
            wh_company = (
                Warehouse.objects.filter(id=self.warehouse_id)
                .values_list("company_id", flat=True)
                .first()
            )
            if wh_company is not None and wh_company != self.company_id:
                raise ValidationError("Warehouse does not belong to the item's company")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Inventory items are never deleted; deactivate instead")

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.reorder_level

    @property
    def is_out_of_stock(self) -> bool:
        return self.current_stock <= 0

    def __str__(self):
        return f"{self.item_code} | {self.name}"
