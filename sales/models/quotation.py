# sales/models/quotation.py

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from companies.models import Company
from .base import ZERO_MONEY, PricedDocument, PricedLine
from .customer import Customer

User = settings.AUTH_USER_MODEL


class Quotation(PricedDocument):
    """
    Price offer to a customer.

    GUARANTEES:
    - status only moves along sales.services.lifecycle.QUOTATION_LIFECYCLE
    - an accepted quotation converts into exactly one CustomerOrder
    """

    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        PENDING_APPROVAL = "pending_approval", "Pending Approval"
        APPROVED = "approved", "Approved"
        SENT = "sent", "Sent"
        ACKNOWLEDGED = "acknowledged", "Acknowledged"
        NEGOTIATION = "negotiation", "Negotiation"
        ACCEPTED = "accepted", "Accepted"
        REJECTED = "rejected", "Rejected"
        EXPIRED = "expired", "Expired"
        CONVERTED = "converted", "Converted"
        CANCELLED = "cancelled", "Cancelled"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(Company, on_delete=models.PROTECT, related_name="quotations")
    quotation_number = models.CharField(max_length=30)
    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name="quotations")

    quotation_date = models.DateField(default=timezone.localdate)
    valid_until = models.DateField()
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)

    grand_total = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO_MONEY)

    sent_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    accepted_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    expired_at = models.DateTimeField(null=True, blank=True)
    converted_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "quotation_number"], name="uniq_quotation_number_per_company"
            ),
        ]
        indexes = [
            models.Index(fields=["company", "status"]),
            models.Index(fields=["company", "valid_until"]),
        ]

    def clean(self):
        if self.customer_id and self.company_id:
            customer_company = (
                Customer.objects.filter(id=self.customer_id)
                .values_list("company_id", flat=True)
                .first()
            )
            if customer_company is not None and customer_company != self.company_id:
                raise ValidationError("Customer does not belong to the quotation's company")
        if self.valid_until and self.quotation_date and self.valid_until < self.quotation_date:
            raise ValidationError({"valid_until": "Valid until date cannot be before the quotation date"})

    @property
    def is_expired(self) -> bool:
        return self.valid_until < timezone.localdate() and self.status not in {
            self.Status.ACCEPTED,
            self.Status.CONVERTED,
            self.Status.REJECTED,
            self.Status.CANCELLED,
        }

    def __str__(self):
        return f"{self.quotation_number} | {self.status}"


class QuotationItem(PricedLine):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    quotation = models.ForeignKey(Quotation, on_delete=models.CASCADE, related_name="items")

    class Meta:
        ordering = ["description"]
