# production/models/order.py

"""
PRODUCTION ORDER (HEADER)

GUARANTEES:
- pending_quantity == order_quantity - completed_quantity - rejected_quantity
- completed_quantity + rejected_quantity never exceeds order_quantity
- Cost summary + pending quantity are derived by
  production.services.totals.compute_production_totals and stamped by the
  service before every save; clean() refuses a row where pending drifted.
- status only moves along production.services.lifecycle.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from companies.models import Company
from inventory.models import InventoryItem

ZERO_QTY = Decimal("0.000")
ZERO_MONEY = Decimal("0.00")


class ProductionOrder(models.Model):
    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        APPROVED = "approved", "Approved"
        IN_PROGRESS = "in_progress", "In Progress"
        ON_HOLD = "on_hold", "On Hold"
        PARTIALLY_COMPLETED = "partially_completed", "Partially Completed"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    class Priority(models.TextChoices):
        LOW = "low", "Low"
        MEDIUM = "medium", "Medium"
        HIGH = "high", "High"
        URGENT = "urgent", "Urgent"
        RUSH = "rush", "Rush"

    class ProductType(models.TextChoices):
        SAREE = "saree", "Saree"
        AFRICAN_COTTON = "african_cotton", "African Cotton"
        GARMENT_FABRIC = "garment_fabric", "Garment Fabric"
        DIGITAL_PRINT = "digital_print", "Digital Print"
        CUSTOM = "custom", "Custom"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        Company, on_delete=models.PROTECT, related_name="production_orders"
    )
    order_number = models.CharField(max_length=30)

    product = models.ForeignKey(
        InventoryItem,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="production_orders",
        help_text="Finished-goods item receiving the output, if tracked in stock.",
    )
    product_name = models.CharField(max_length=255)
    product_type = models.CharField(
        max_length=20, choices=ProductType.choices, default=ProductType.CUSTOM
    )

    order_quantity = models.DecimalField(max_digits=14, decimal_places=3)
    completed_quantity = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)
    rejected_quantity = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)
    pending_quantity = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    priority = models.CharField(
        max_length=10, choices=Priority.choices, default=Priority.MEDIUM
    )

    planned_start_date = models.DateField(null=True, blank=True)
    planned_end_date = models.DateField(null=True, blank=True)
    actual_start_date = models.DateTimeField(null=True, blank=True)
    actual_end_date = models.DateTimeField(null=True, blank=True)

    notes = models.TextField(blank=True, default="")
    cancellation_reason = models.TextField(blank=True, default="")

    # Cost summary (derived)
    material_cost = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    labor_cost = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    machine_cost = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    overhead_cost = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    job_work_cost = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    total_production_cost = models.DecimalField(
        max_digits=18, decimal_places=2, default=ZERO_MONEY
    )
    cost_per_unit = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO_MONEY)

    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="production_orders_approved",
    )
    approved_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="production_orders_created",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "order_number"],
                name="uniq_production_order_number_per_company",
            ),
            models.CheckConstraint(
                condition=models.Q(order_quantity__gt=0),
                name="production_order_quantity_positive",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "status", "priority"]),
            models.Index(fields=["company", "created_at"]),
        ]

    def clean(self):
        if self.order_quantity is None or self.order_quantity <= 0:
            raise ValidationError({"order_quantity": "Order quantity must be greater than 0"})

        completed = self.completed_quantity or ZERO_QTY
        rejected = self.rejected_quantity or ZERO_QTY
        if completed < 0 or rejected < 0:
            raise ValidationError("Completed and rejected quantities cannot be negative")
        if completed + rejected > self.order_quantity:
            raise ValidationError(
                "Completed plus rejected quantity cannot exceed the order quantity"
            )

        if self.pending_quantity != self.order_quantity - completed - rejected:
            raise ValidationError(
                "pending_quantity is out of date; recompute totals before saving"
            )

        if (
            self.planned_start_date
            and self.planned_end_date
            and self.planned_start_date >= self.planned_end_date
        ):
            raise ValidationError("Planned end date must be after start date")

        if self.product_id and self.company_id:
            product_company = (
                InventoryItem.objects.filter(id=self.product_id)
                .values_list("company_id", flat=True)
                .first()
            )
            if product_company is not None and product_company != self.company_id:
                raise ValidationError("Product does not belong to the order's company")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    @property
    def is_terminal(self) -> bool:
        return self.status in {self.Status.COMPLETED, self.Status.CANCELLED}

    def __str__(self):
        return f"{self.order_number} | {self.product_name} | {self.status}"
