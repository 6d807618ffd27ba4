# production/models/stage.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from .order import ProductionOrder

ZERO_QTY = Decimal("0.000")
ZERO_MONEY = Decimal("0.00")


class ProductionStage(models.Model):
    """One sequential step of a production order (printing, washing, ...)."""

    class ProcessType(models.TextChoices):
        PRINTING = "printing", "Printing"
        WASHING = "washing", "Washing"
        FIXING = "fixing", "Fixing"
        STITCHING = "stitching", "Stitching"
        FINISHING = "finishing", "Finishing"
        QUALITY_CHECK = "quality_check", "Quality Check"

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        IN_PROGRESS = "in_progress", "In Progress"
        COMPLETED = "completed", "Completed"
        ON_HOLD = "on_hold", "On Hold"
        REJECTED = "rejected", "Rejected"
        REWORK = "rework", "Rework"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        ProductionOrder, on_delete=models.CASCADE, related_name="stages"
    )
    sequence = models.PositiveIntegerField()
    name = models.CharField(max_length=120)
    process_type = models.CharField(max_length=20, choices=ProcessType.choices)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)

    input_quantity = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)
    output_quantity = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)
    defect_quantity = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)

    material_cost = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    labor_cost = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    machine_cost = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    overhead_cost = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    job_work_cost = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)

    quality_notes = models.TextField(blank=True, default="")

    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    completed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="production_stages_completed",
    )

    class Meta:
        ordering = ["sequence"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "sequence"], name="uniq_stage_sequence_per_order"
            ),
        ]

    COST_FIELDS = (
        "material_cost",
        "labor_cost",
        "machine_cost",
        "overhead_cost",
        "job_work_cost",
    )

    def clean(self):
        for field in ("input_quantity", "output_quantity", "defect_quantity", *self.COST_FIELDS):
            if (getattr(self, field) or 0) < 0:
                raise ValidationError({field: f"{field} cannot be negative"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.sequence}. {self.name} ({self.status})"
