# inventory/models/stock_movement.py

"""
CANONICAL INVENTORY LEDGER

Immutable ledger entry, one per stock mutation.

GUARANTEES:
- Append-only: created ONCE; the only later write allowed is the approval
  block (approval_status / approved_by / approved_at).
- Never deleted.
- quantity is non-zero; only adjustments carry a signed quantity (the
  delta applied), every other type stores a positive quantity.
- total_value = |quantity| * rate
- Before/after snapshots of stock + cost make every row auditable on its own.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from companies.models import Company

from .item import InventoryItem
from .warehouse import Warehouse


class StockMovement(models.Model):
    class MovementType(models.TextChoices):
        INWARD = "inward", "Inward"
        OUTWARD = "outward", "Outward"
        TRANSFER = "transfer", "Transfer"
        ADJUSTMENT = "adjustment", "Adjustment"
        PRODUCTION_CONSUME = "production_consume", "Production Consume"
        PRODUCTION_OUTPUT = "production_output", "Production Output"
        RETURN = "return", "Return"
        DAMAGE = "damage", "Damage"
        THEFT = "theft", "Theft"

    class ReferenceType(models.TextChoices):
        PURCHASE_ORDER = "purchase_order", "Purchase Order"
        SALES_ORDER = "sales_order", "Sales Order"
        PRODUCTION_ORDER = "production_order", "Production Order"
        TRANSFER_NOTE = "transfer_note", "Transfer Note"
        ADJUSTMENT_NOTE = "adjustment_note", "Adjustment Note"
        RETURN_NOTE = "return_note", "Return Note"

    class ApprovalStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        APPROVED = "approved", "Approved"
        REJECTED = "rejected", "Rejected"

    INWARD_TYPES = {
        MovementType.INWARD,
        MovementType.PRODUCTION_OUTPUT,
        MovementType.RETURN,
    }
    OUTWARD_TYPES = {
        MovementType.OUTWARD,
        MovementType.PRODUCTION_CONSUME,
        MovementType.DAMAGE,
        MovementType.THEFT,
    }

    # <TYPE><YYYY><MM><NNNN>
    NUMBER_CODES = {
        MovementType.INWARD: "IN",
        MovementType.OUTWARD: "OUT",
        MovementType.TRANSFER: "TRF",
        MovementType.ADJUSTMENT: "ADJ",
        MovementType.PRODUCTION_CONSUME: "PRC",
        MovementType.PRODUCTION_OUTPUT: "PRO",
        MovementType.RETURN: "RET",
        MovementType.DAMAGE: "DMG",
        MovementType.THEFT: "THF",
    }

    APPROVAL_FIELDS = {"approval_status", "approved_by", "approved_at"}

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        Company, on_delete=models.PROTECT, related_name="stock_movements"
    )
    movement_number = models.CharField(max_length=30)

    item = models.ForeignKey(
        InventoryItem, on_delete=models.PROTECT, related_name="movements"
    )
    movement_type = models.CharField(max_length=20, choices=MovementType.choices)

    quantity = models.DecimalField(max_digits=14, decimal_places=3)
    rate = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_value = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )

    from_warehouse = models.ForeignKey(
        Warehouse,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="outgoing_movements",
    )
    to_warehouse = models.ForeignKey(
        Warehouse,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="incoming_movements",
    )

    reference_type = models.CharField(
        max_length=20, choices=ReferenceType.choices, blank=True, default=""
    )
    reference_number = models.CharField(max_length=64, blank=True, default="")
    reference_id = models.UUIDField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    # Stock impact snapshots
    stock_before = models.DecimalField(max_digits=14, decimal_places=3)
    stock_after = models.DecimalField(max_digits=14, decimal_places=3)
    reserved_before = models.DecimalField(max_digits=14, decimal_places=3)
    reserved_after = models.DecimalField(max_digits=14, decimal_places=3)
    available_before = models.DecimalField(max_digits=14, decimal_places=3)
    available_after = models.DecimalField(max_digits=14, decimal_places=3)

    # Cost impact snapshots
    cost_before = models.DecimalField(max_digits=14, decimal_places=2)
    cost_after = models.DecimalField(max_digits=14, decimal_places=2)
    value_before = models.DecimalField(max_digits=18, decimal_places=2)
    value_after = models.DecimalField(max_digits=18, decimal_places=2)

    approval_status = models.CharField(
        max_length=10,
        choices=ApprovalStatus.choices,
        default=ApprovalStatus.APPROVED,
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements_approved",
    )
    approved_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements_created",
    )

    movement_date = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-movement_date", "-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "movement_number"],
                name="uniq_movement_number_per_company",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "movement_date"]),
            models.Index(fields=["company", "movement_type"]),
            models.Index(fields=["item", "movement_date"]),
        ]

    def clean(self):
        if self.quantity is None or self.quantity == 0:
            raise ValidationError("quantity must be non-zero")

        if self.movement_type != self.MovementType.ADJUSTMENT and self.quantity < 0:
            raise ValidationError(
                f"{self.movement_type} movements require a positive quantity"
            )

        if self.item_id and self.company_id:
            item_company = (
                InventoryItem.objects.filter(id=self.item_id)
                .values_list("company_id", flat=True)
                .first()
            )
            if item_company is not None and item_company != self.company_id:
                raise ValidationError("Item does not belong to the movement's company")

        if self.movement_type == self.MovementType.TRANSFER:
            if not self.from_warehouse_id or not self.to_warehouse_id:
                raise ValidationError("transfer requires from_warehouse and to_warehouse")
            if self.from_warehouse_id == self.to_warehouse_id:
                raise ValidationError("transfer source and destination must differ")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            update_fields = set(kwargs.get("update_fields") or ())
            if not update_fields or not update_fields.issubset(self.APPROVAL_FIELDS):
                raise ValidationError("StockMovement records are immutable")
            return super().save(*args, **kwargs)

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("StockMovement records are immutable and cannot be deleted")

    @property
    def is_inward(self) -> bool:
        return self.movement_type in self.INWARD_TYPES

    @property
    def is_outward(self) -> bool:
        return self.movement_type in self.OUTWARD_TYPES

    def __str__(self):
        return f"{self.movement_number} | {self.movement_type} | {self.quantity}"
