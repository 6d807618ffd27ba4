# purchases/models.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from companies.models import Company
from core.money import DISCOUNT_AMOUNT, DISCOUNT_PERCENTAGE
from inventory.models import InventoryItem, Warehouse

User = settings.AUTH_USER_MODEL

ZERO_MONEY = Decimal("0.00")
ZERO_QTY = Decimal("0.000")

DISCOUNT_TYPES = [
    (DISCOUNT_PERCENTAGE, "Percentage"),
    (DISCOUNT_AMOUNT, "Amount"),
]


class Supplier(models.Model):
    """
    Supplier master (per company).
    """

    class Category(models.TextChoices):
        MANUFACTURER = "manufacturer", "Manufacturer"
        TRADER = "trader", "Trader"
        DISTRIBUTOR = "distributor", "Distributor"
        AGENT = "agent", "Agent"
        SERVICE_PROVIDER = "service_provider", "Service Provider"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(Company, on_delete=models.PROTECT, related_name="suppliers")
    supplier_code = models.CharField(max_length=30)
    name = models.CharField(max_length=200)
    category = models.CharField(
        max_length=20, choices=Category.choices, default=Category.MANUFACTURER
    )

    contact_person = models.CharField(max_length=120, blank=True, default="")
    phone = models.CharField(max_length=50, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    address = models.TextField(blank=True, default="")
    tax_number = models.CharField(max_length=50, blank=True, default="")

    payment_terms_days = models.PositiveIntegerField(default=30)
    rating = models.DecimalField(max_digits=3, decimal_places=2, null=True, blank=True)
    rated_at = models.DateTimeField(null=True, blank=True)

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
                fields=["company", "supplier_code"], name="uniq_supplier_code_per_company"
            ),
        ]
        indexes = [
            models.Index(fields=["company", "name"]),
            models.Index(fields=["company", "is_active"]),
        ]

    def save(self, *args, **kwargs):
        self.supplier_code = (self.supplier_code or "").strip().upper()
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.supplier_code} | {self.name}"


class PurchaseOrder(models.Model):
    """
    Purchase order header.

    GUARANTEES:
    - Amount + receiving summary fields are derived by
      purchases.services.totals.compute_purchase_order_totals, stamped by
      PurchaseOrderService right before every save.
    - status only moves along purchases.services.lifecycle.
    """

    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        SENT = "sent", "Sent"
        ACKNOWLEDGED = "acknowledged", "Acknowledged"
        PARTIALLY_RECEIVED = "partially_received", "Partially Received"
        RECEIVED = "received", "Received"
        CANCELLED = "cancelled", "Cancelled"

    class Priority(models.TextChoices):
        LOW = "low", "Low"
        MEDIUM = "medium", "Medium"
        HIGH = "high", "High"
        URGENT = "urgent", "Urgent"

    class ReceivingStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        PARTIAL = "partial", "Partial"
        COMPLETED = "completed", "Completed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        Company, on_delete=models.PROTECT, related_name="purchase_orders"
    )
    po_number = models.CharField(max_length=30)
    supplier = models.ForeignKey(
        Supplier, on_delete=models.PROTECT, related_name="purchase_orders"
    )
    warehouse = models.ForeignKey(
        Warehouse,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="purchase_orders",
        help_text="Receiving warehouse; falls back to each item's default.",
    )

    po_date = models.DateField(default=timezone.localdate)
    expected_delivery_date = models.DateField(null=True, blank=True)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    priority = models.CharField(max_length=10, choices=Priority.choices, default=Priority.MEDIUM)
    receiving_status = models.CharField(
        max_length=10, choices=ReceivingStatus.choices, default=ReceivingStatus.PENDING
    )

    # Amounts (derived)
    subtotal = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    discount_total = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    taxable_amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    tax_total = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    freight_charges = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO_MONEY)
    other_charges = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO_MONEY)
    round_off = models.DecimalField(max_digits=8, decimal_places=2, default=ZERO_MONEY)
    grand_total = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)

    # Receiving summary (derived)
    total_ordered = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)
    total_received = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)
    total_pending = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)

    notes = models.TextField(blank=True, default="")
    terms = models.TextField(blank=True, default="")

    sent_at = models.DateTimeField(null=True, blank=True)
    acknowledged_at = models.DateTimeField(null=True, blank=True)
    first_receipt_at = models.DateTimeField(null=True, blank=True)
    fully_received_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchase_orders_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "po_number"], name="uniq_po_number_per_company"
            ),
            models.CheckConstraint(
                condition=models.Q(grand_total__gte=Decimal("0.00")),
                name="purchase_order_grand_total_nonnegative",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "status"]),
            models.Index(fields=["company", "expected_delivery_date"]),
        ]

    def clean(self):
        if self.supplier_id and self.company_id:
            supplier_company = (
                Supplier.objects.filter(id=self.supplier_id)
                .values_list("company_id", flat=True)
                .first()
            )
            if supplier_company is not None and supplier_company != self.company_id:
                raise ValidationError("Supplier does not belong to the order's company")

        if (
            self.expected_delivery_date
            and self.po_date
            and self.expected_delivery_date < self.po_date
        ):
            raise ValidationError(
                {"expected_delivery_date": "Expected delivery cannot be before the PO date"}
            )

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    @property
    def is_overdue(self) -> bool:
        return bool(
            self.expected_delivery_date
            and self.expected_delivery_date < timezone.localdate()
            and self.status
            in {self.Status.SENT, self.Status.ACKNOWLEDGED, self.Status.PARTIALLY_RECEIVED}
        )

    def __str__(self):
        return f"{self.po_number} | {self.status}"


class PurchaseOrderItem(models.Model):
    """
    One ordered line.

    GUARANTEES:
    - pending_quantity == quantity - received_quantity - rejected_quantity
    - received + rejected never exceeds the ordered quantity
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(PurchaseOrder, on_delete=models.CASCADE, related_name="items")
    item = models.ForeignKey(
        InventoryItem, on_delete=models.PROTECT, related_name="purchase_order_items"
    )
    item_code = models.CharField(max_length=40)
    item_name = models.CharField(max_length=255)
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

    received_quantity = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)
    rejected_quantity = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)
    pending_quantity = models.DecimalField(max_digits=14, decimal_places=3, default=ZERO_QTY)

    class Meta:
        ordering = ["item_name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0), name="po_item_quantity_positive"
            ),
            models.CheckConstraint(
                condition=models.Q(rate__gte=0), name="po_item_rate_nonnegative"
            ),
        ]

    def clean(self):
        received = self.received_quantity or ZERO_QTY
        rejected = self.rejected_quantity or ZERO_QTY
        if received < 0 or rejected < 0:
            raise ValidationError("Received and rejected quantities cannot be negative")
        if self.quantity is not None and received + rejected > self.quantity:
            raise ValidationError("Received plus rejected quantity exceeds the ordered quantity")
        if (
            self.quantity is not None
            and self.pending_quantity != self.quantity - received - rejected
        ):
            raise ValidationError("pending_quantity is out of date; recompute totals before saving")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.item_code} x {self.quantity}"
