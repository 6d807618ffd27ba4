# visitors/models.py

import uuid

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import models

from companies.models import Company

User = settings.AUTH_USER_MODEL


class Visitor(models.Model):
    """
    Gate register entry: one scheduled visit of one person.

    GUARANTEES:
    - visitor_number is VIS-YYYYMMDD-NNNN, unique per company.
    - status only moves along visitors.services.lifecycle.VISIT_LIFECYCLE,
      approval_status along APPROVAL_LIFECYCLE.
    - actual_arrival / actual_departure are stamped by VisitorService on
      check-in / check-out, never by the client.
    """

    class Status(models.TextChoices):
        SCHEDULED = "scheduled", "Scheduled"
        CHECKED_IN = "checked_in", "Checked In"
        CHECKED_OUT = "checked_out", "Checked Out"
        CANCELLED = "cancelled", "Cancelled"

    class ApprovalStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        APPROVED = "approved", "Approved"
        REJECTED = "rejected", "Rejected"

    class Purpose(models.TextChoices):
        BUSINESS = "business", "Business"
        INTERVIEW = "interview", "Interview"
        MEETING = "meeting", "Meeting"
        DELIVERY = "delivery", "Delivery"
        MAINTENANCE = "maintenance", "Maintenance"
        AUDIT = "audit", "Audit"
        TRAINING = "training", "Training"
        PERSONAL = "personal", "Personal"
        OFFICIAL = "official", "Official"
        OTHER = "other", "Other"

    class VisitorType(models.TextChoices):
        VIP = "vip", "VIP"
        REGULAR = "regular", "Regular"
        CONTRACTOR = "contractor", "Contractor"
        VENDOR = "vendor", "Vendor"
        GOVERNMENT = "government", "Government"
        MEDIA = "media", "Media"
        STUDENT = "student", "Student"
        OTHER = "other", "Other"

    class IdType(models.TextChoices):
        AADHAR = "aadhar", "Aadhar"
        PAN = "pan", "PAN"
        DRIVING_LICENSE = "driving_license", "Driving License"
        PASSPORT = "passport", "Passport"
        VOTER_ID = "voter_id", "Voter ID"
        COMPANY_ID = "company_id", "Company ID"
        OTHER = "other", "Other"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(Company, on_delete=models.PROTECT, related_name="visitors")
    visitor_number = models.CharField(max_length=30)

    # Person
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    phone = models.CharField(max_length=30)
    email = models.EmailField(blank=True, default="")
    organisation = models.CharField(max_length=200, blank=True, default="")
    id_type = models.CharField(max_length=20, choices=IdType.choices, blank=True, default="")
    id_number = models.CharField(max_length=50, blank=True, default="")

    # Visit
    visit_purpose = models.CharField(max_length=20, choices=Purpose.choices)
    visitor_type = models.CharField(
        max_length=20, choices=VisitorType.choices, default=VisitorType.REGULAR
    )
    host = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="hosted_visitors"
    )
    host_name = models.CharField(max_length=200, blank=True, default="")
    department = models.CharField(max_length=100, blank=True, default="")
    scheduled_arrival = models.DateTimeField()
    expected_duration_minutes = models.PositiveIntegerField(null=True, blank=True)
    vehicle_number = models.CharField(max_length=30, blank=True, default="")

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.SCHEDULED)

    # Approval
    approval_required = models.BooleanField(default=False)
    approval_status = models.CharField(
        max_length=20, choices=ApprovalStatus.choices, default=ApprovalStatus.PENDING
    )
    approved_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    approval_notes = models.TextField(blank=True, default="")
    rejected_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True, default="")

    # Gate
    actual_arrival = models.DateTimeField(null=True, blank=True)
    actual_departure = models.DateTimeField(null=True, blank=True)
    entry_gate = models.CharField(max_length=50, blank=True, default="")
    exit_gate = models.CharField(max_length=50, blank=True, default="")
    checked_in_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    checked_out_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    feedback_rating = models.PositiveSmallIntegerField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-scheduled_arrival"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "visitor_number"], name="uniq_visitor_number_per_company"
            ),
            models.CheckConstraint(
                condition=models.Q(feedback_rating__isnull=True)
                | models.Q(feedback_rating__gte=1, feedback_rating__lte=5),
                name="visitor_feedback_rating_1_to_5",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "status"]),
            models.Index(fields=["company", "scheduled_arrival"]),
            models.Index(fields=["company", "approval_status"]),
        ]

    def clean(self):
        if self.host_id and self.company_id:
            host_company = (
                get_user_model().objects.filter(id=self.host_id)
                .values_list("company_id", flat=True)
                .first()
            )
            if host_company is not None and host_company != self.company_id:
                raise ValidationError({"host": "Host must belong to the visitor's company"})
        if (
            self.actual_arrival
            and self.actual_departure
            and self.actual_departure < self.actual_arrival
        ):
            raise ValidationError({"actual_departure": "Departure cannot be before arrival"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_inside(self) -> bool:
        return self.status == self.Status.CHECKED_IN

    def __str__(self):
        return f"{self.visitor_number} | {self.full_name}"
