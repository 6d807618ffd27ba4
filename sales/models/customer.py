# sales/models/customer.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models

from companies.models import Company

User = settings.AUTH_USER_MODEL


class Customer(models.Model):
    """
    Customer master (per company).

    GUARANTEES:
    - customer_code unique per company, stored upper-case
    - outstanding_amount is moved only by InvoiceService (sent / paid / cancelled)
    """

    class CustomerType(models.TextChoices):
        INDIVIDUAL = "individual", "Individual"
        BUSINESS = "business", "Business"
        DISTRIBUTOR = "distributor", "Distributor"
        RETAILER = "retailer", "Retailer"
        EXPORT = "export", "Export"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(Company, on_delete=models.PROTECT, related_name="customers")
    customer_code = models.CharField(max_length=30)
    name = models.CharField(max_length=200)
    customer_type = models.CharField(
        max_length=20, choices=CustomerType.choices, default=CustomerType.BUSINESS
    )

    contact_person = models.CharField(max_length=120, blank=True, default="")
    email = models.EmailField()
    phone = models.CharField(max_length=50)
    billing_address = models.TextField(blank=True, default="")
    shipping_address = models.TextField(blank=True, default="")
    tax_number = models.CharField(max_length=50, blank=True, default="")

    credit_limit = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    credit_days = models.PositiveIntegerField(default=0)
    outstanding_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    last_credit_review = models.DateTimeField(null=True, blank=True)

    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "customer_code"], name="uniq_customer_code_per_company"
            ),
            models.CheckConstraint(
                condition=models.Q(credit_limit__gte=0), name="customer_credit_limit_nonnegative"
            ),
        ]
        indexes = [
            models.Index(fields=["company", "name"]),
            models.Index(fields=["company", "is_active"]),
        ]

    def save(self, *args, **kwargs):
        self.customer_code = (self.customer_code or "").strip().upper()
        self.full_clean()
        return super().save(*args, **kwargs)

    @property
    def available_credit(self) -> Decimal:
        return self.credit_limit - self.outstanding_amount

    @property
    def credit_utilization(self) -> Decimal:
        if self.credit_limit <= 0:
            return Decimal("0.00")
        return (self.outstanding_amount / self.credit_limit * 100).quantize(Decimal("0.01"))

    def __str__(self):
        return f"{self.customer_code} | {self.name}"
