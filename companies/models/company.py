# companies/models/company.py

import uuid

from django.db import models


class Company(models.Model):
    """
    Tenant.

    Every business document carries a company FK and every service query is
    filtered by it.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255)
    code = models.CharField(
        max_length=20,
        unique=True,
        help_text="Short unique company code used on documents.",
    )

    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=50, blank=True, default="")
    address = models.TextField(blank=True, default="")
    tax_number = models.CharField(max_length=50, blank=True, default="")

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "companies"

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.name} ({self.code})"
