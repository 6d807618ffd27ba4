# sales/models/invoice.py

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from companies.models import Company
from .base import ZERO_MONEY, PricedDocument, PricedLine
from .customer import Customer

User = settings.AUTH_USER_MODEL


class Invoice(PricedDocument):
    """
    Customer invoice.

    GUARANTEES:
    - outstanding_amount == grand_total - paid_amount
    - payment_status is derived (unpaid / partially_paid / paid / overdue)
    - financial_year follows the invoice date (April start)
    - paid / partially_paid are only entered by recording a payment
    """

    class InvoiceType(models.TextChoices):
        SALES = "sales", "Sales"
        SERVICE = "service", "Service"
        PROFORMA = "proforma", "Proforma"
        CREDIT_NOTE = "credit_note", "Credit Note"
        DEBIT_NOTE = "debit_note", "Debit Note"
        ADVANCE = "advance", "Advance"
        FINAL = "final", "Final"

    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        SENT = "sent", "Sent"
        PARTIALLY_PAID = "partially_paid", "Partially Paid"
        PAID = "paid", "Paid"
        OVERDUE = "overdue", "Overdue"
        CANCELLED = "cancelled", "Cancelled"

    class PaymentStatus(models.TextChoices):
        UNPAID = "unpaid", "Unpaid"
        PARTIALLY_PAID = "partially_paid", "Partially Paid"
        PAID = "paid", "Paid"
        OVERDUE = "overdue", "Overdue"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(Company, on_delete=models.PROTECT, related_name="invoices")
    invoice_number = models.CharField(max_length=30)
    invoice_type = models.CharField(
        max_length=20, choices=InvoiceType.choices, default=InvoiceType.SALES
    )
    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name="invoices")
    customer_order = models.ForeignKey(
        "sales.CustomerOrder",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="invoices",
    )

    invoice_date = models.DateField(default=timezone.localdate)
    due_date = models.DateField()
    financial_year = models.CharField(max_length=9, blank=True, default="")

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    payment_status = models.CharField(
        max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.UNPAID
    )

    grand_total = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    paid_amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)
    outstanding_amount = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)

    sent_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    overdue_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "invoice_number"], name="uniq_invoice_number_per_company"
            ),
            models.CheckConstraint(
                condition=models.Q(paid_amount__gte=0), name="invoice_paid_amount_nonnegative"
            ),
        ]
        indexes = [
            models.Index(fields=["company", "status"]),
            models.Index(fields=["company", "due_date"]),
            models.Index(fields=["company", "financial_year"]),
        ]

    def clean(self):
        if self.customer_id and self.company_id:
            customer_company = (
                Customer.objects.filter(id=self.customer_id)
                .values_list("company_id", flat=True)
                .first()
            )
            if customer_company is not None and customer_company != self.company_id:
                raise ValidationError("Customer does not belong to the invoice's company")
        if self.due_date and self.invoice_date and self.due_date < self.invoice_date:
            raise ValidationError({"due_date": "Due date cannot be before the invoice date"})
        if self.paid_amount is not None and self.grand_total is not None:
            if self.paid_amount > self.grand_total:
                raise ValidationError("Paid amount exceeds the invoice total")
            if self.outstanding_amount != self.grand_total - self.paid_amount:
                raise ValidationError("outstanding_amount is out of date; recompute totals before saving")

    @property
    def is_overdue(self) -> bool:
        return self.payment_status == self.PaymentStatus.OVERDUE

    def __str__(self):
        return f"{self.invoice_number} | {self.status}"


class InvoiceItem(PricedLine):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="items")

    class Meta:
        ordering = ["description"]


class InvoicePayment(models.Model):
    """One payment received against an invoice. Never edited."""

    class Method(models.TextChoices):
        CASH = "cash", "Cash"
        CHEQUE = "cheque", "Cheque"
        BANK_TRANSFER = "bank_transfer", "Bank Transfer"
        UPI = "upi", "UPI"
        CARD = "card", "Card"
        CREDIT = "credit", "Credit"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="payments")

    amount = models.DecimalField(max_digits=18, decimal_places=2)
    method = models.CharField(max_length=20, choices=Method.choices, default=Method.BANK_TRANSFER)
    payment_date = models.DateField(default=timezone.localdate)
    reference = models.CharField(max_length=100, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    recorded_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    recorded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-recorded_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0), name="invoice_payment_amount_positive"
            ),
        ]

    def __str__(self):
        return f"{self.invoice_id} | {self.amount}"
