# sales/models/customer_order.py

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from companies.models import Company
from .base import ZERO_MONEY, PricedDocument, PricedLine
from .customer import Customer
from .quotation import Quotation

User = settings.AUTH_USER_MODEL


class CustomerOrder(PricedDocument):
    """
    Confirmed customer demand.

    GUARANTEES:
    - final_amount == total_amount + round_off
    - balance_amount == final_amount - advance_amount (never negative)
    - due_date == order_date + credit_days
    """

    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        CONFIRMED = "confirmed", "Confirmed"
        IN_PRODUCTION = "in_production", "In Production"
        QUALITY_CHECK = "quality_check", "Quality Check"
        READY_FOR_DISPATCH = "ready_for_dispatch", "Ready for Dispatch"
        DISPATCHED = "dispatched", "Dispatched"
        DELIVERED = "delivered", "Delivered"
        CANCELLED = "cancelled", "Cancelled"

    class Priority(models.TextChoices):
        LOW = "low", "Low"
        MEDIUM = "medium", "Medium"
        HIGH = "high", "High"
        URGENT = "urgent", "Urgent"
        RUSH = "rush", "Rush"

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        ADVANCE_RECEIVED = "advance_received", "Advance Received"
        PAID = "paid", "Paid"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        Company, on_delete=models.PROTECT, related_name="customer_orders"
    )
    order_number = models.CharField(max_length=30)
    customer = models.ForeignKey(
        Customer, on_delete=models.PROTECT, related_name="orders"
    )
    quotation = models.OneToOneField(
        Quotation,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="customer_order",
    )

    order_date = models.DateField(default=timezone.localdate)
    expected_delivery_date = models.DateField(null=True, blank=True)
    delivery_address = models.TextField(blank=True, default="")

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    priority = models.CharField(max_length=10, choices=Priority.choices, default=Priority.MEDIUM)

    total_amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    final_amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    advance_amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    balance_amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    credit_days = models.PositiveIntegerField(default=0)
    due_date = models.DateField(null=True, blank=True)
    payment_status = models.CharField(
        max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )

    confirmed_at = models.DateTimeField(null=True, blank=True)
    production_started_at = models.DateTimeField(null=True, blank=True)
    dispatched_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "order_number"], name="uniq_customer_order_number_per_company"
            ),
            models.CheckConstraint(
                condition=models.Q(advance_amount__gte=0), name="customer_order_advance_nonnegative"
            ),
            models.CheckConstraint(
                condition=models.Q(balance_amount__gte=0), name="customer_order_balance_nonnegative"
            ),
        ]
        indexes = [
            models.Index(fields=["company", "status"]),
            models.Index(fields=["company", "order_date"]),
        ]

    def clean(self):
        if self.customer_id and self.company_id:
            customer_company = (
                Customer.objects.filter(id=self.customer_id)
                .values_list("company_id", flat=True)
                .first()
            )
            if customer_company is not None and customer_company != self.company_id:
                raise ValidationError("Customer does not belong to the order's company")
        if (
            self.expected_delivery_date
            and self.order_date
            and self.expected_delivery_date < self.order_date
        ):
            raise ValidationError(
                {"expected_delivery_date": "Expected delivery cannot be before the order date"}
            )

    @property
    def is_payment_overdue(self) -> bool:
        return bool(
            self.due_date
            and self.due_date < timezone.localdate()
            and self.payment_status != self.PaymentStatus.PAID
            and self.status != self.Status.CANCELLED
        )

    def __str__(self):
        return f"{self.order_number} | {self.status}"


class CustomerOrderItem(PricedLine):
    class ProductType(models.TextChoices):
        SAREE = "saree", "Saree"
        AFRICAN_COTTON = "african_cotton", "African Cotton"
        GARMENT_FABRIC = "garment_fabric", "Garment Fabric"
        DIGITAL_PRINT = "digital_print", "Digital Print"
        CUSTOM = "custom", "Custom"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(CustomerOrder, on_delete=models.CASCADE, related_name="items")
    product_type = models.CharField(
        max_length=20, choices=ProductType.choices, default=ProductType.CUSTOM
    )

    class Meta:
        ordering = ["description"]
