# inventory/models/warehouse.py

import uuid

from django.db import models

from companies.models import Company


class Warehouse(models.Model):
    """
    Physical stock location of a company.
    Soft-deleted through is_active; movements keep pointing at it.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        Company, on_delete=models.PROTECT, related_name="warehouses"
    )

    code = models.CharField(max_length=30)
    name = models.CharField(max_length=200)
    address = models.TextField(blank=True, default="")

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "code"], name="uniq_warehouse_code_per_company"
            ),
        ]

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper()
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.name} ({self.code})"
