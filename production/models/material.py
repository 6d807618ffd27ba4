# production/models/material.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from inventory.models import InventoryItem

from .order import ProductionOrder

ZERO_QTY = Decimal("0.000")


class ProductionMaterial(models.Model):
    """
    Raw material line of a production order.

    required_quantity is PER UNIT of output; the order needs
    required_quantity * order_quantity in total.
    allocated_quantity is what is currently reserved in stock for the order;
    consumed_quantity is what has physically left stock.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        ProductionOrder, on_delete=models.CASCADE, related_name="materials"
    )
    item = models.ForeignKey(
        InventoryItem, on_delete=models.PROTECT, related_name="production_materials"
    )
    item_name = models.CharField(max_length=255)
    unit = models.CharField(max_length=20, blank=True, default="")

    required_quantity = models.DecimalField(max_digits=14, decimal_places=3)
    allocated_quantity = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)
    consumed_quantity = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)
    waste_quantity = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)

    rate = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_cost = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["item_name"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "item"], name="uniq_material_item_per_production_order"
            ),
        ]

    def clean(self):
        if self.required_quantity is None or self.required_quantity <= 0:
            raise ValidationError({"required_quantity": "Required quantity must be greater than 0"})
        for field in ("allocated_quantity", "consumed_quantity", "waste_quantity", "rate"):
            if (getattr(self, field) or 0) < 0:
                raise ValidationError({field: f"{field} cannot be negative"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    @property
    def outstanding_allocation(self) -> Decimal:
        """Reserved for the order but not yet consumed."""
        return max(ZERO_QTY, self.allocated_quantity - self.consumed_quantity)

    def __str__(self):
        return f"{self.item_name} x {self.required_quantity}/unit"
