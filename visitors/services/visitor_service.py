# visitors/services/visitor_service.py

"""
======================================================
PATH: visitors/services/visitor_service.py
======================================================
VISITOR SERVICE

Gate register for one company.

Rules:
- Numbers: VIS-YYYYMMDD-NNNN on the day the visit is registered
- Only scheduled visits can be edited
- Check-in: scheduled only; rejected visitors never get in; visits
  flagged approval_required need an approved approval first
- Check-out: checked-in only
- Approval: pending -> approved / rejected, once
- Overstaying: inside longer than expected_duration_minutes, or
  VISITOR_MAX_STAY_HOURS when the visit has no expected duration
======================================================
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core import validators
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from core.exceptions import InvalidStateError, NotFoundError, ValidationError
from core.money import percent
from core.numbering import daily_number
from core.services.base import CompanyScopedService
from visitors.models import Visitor
from visitors.services.lifecycle import APPROVAL_LIFECYCLE, VISIT_LIFECYCLE

logger = logging.getLogger("erp.visitors")

NUMBER_CODE = "VIS"
DEFAULT_GATE = "Main Gate"

_PHONE = re.compile(r"^\+?[1-9]\d{0,15}$")
_PHONE_NOISE = re.compile(r"[\s\-()]")

REQUIRED_FIELDS = (
    ("first_name", "First name is required"),
    ("last_name", "Last name is required"),
    ("phone", "Phone number is required"),
    ("visit_purpose", "Visit purpose is required"),
    ("scheduled_arrival", "Scheduled arrival time is required"),
)

S = Visitor.Status
A = Visitor.ApprovalStatus


def stay_deadline(visitor, *, default_hours: int) -> datetime | None:
    if visitor.actual_arrival is None:
        return None
    minutes = visitor.expected_duration_minutes or default_hours * 60
    return visitor.actual_arrival + timedelta(minutes=minutes)


def is_overstaying(visitor, *, now: datetime, default_hours: int) -> bool:
    if visitor.status != S.CHECKED_IN:
        return False
    deadline = stay_deadline(visitor, default_hours=default_hours)
    return deadline is not None and now > deadline


class VisitorService(CompanyScopedService):
    model = Visitor
    resource_name = "Visitor"
    default_ordering = ("-scheduled_arrival",)

    def get_queryset(self, company):
        return super().get_queryset(company).select_related("host")

    def next_visitor_number(self, company, *, on=None) -> str:
        return daily_number(
            queryset=Visitor.objects.filter(company=company),
            field="visitor_number",
            code=NUMBER_CODE,
            on=on,
        )

    # --------------------------------------------------
    # Validation
    # --------------------------------------------------

    def _validate(self, data: dict) -> dict:
        for field, message in REQUIRED_FIELDS:
            value = data.get(field)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError(message)

        for field in ("first_name", "last_name", "phone"):
            data[field] = data[field].strip()

        if not _PHONE.match(_PHONE_NOISE.sub("", data["phone"])):
            raise ValidationError("Invalid phone format")

        email = (data.get("email") or "").strip().lower()
        if email:
            try:
                validators.validate_email(email)
            except DjangoValidationError as exc:
                raise ValidationError("Invalid email format") from exc
        data["email"] = email

        if data["visit_purpose"] not in Visitor.Purpose.values:
            raise ValidationError(f"Unknown visit purpose: {data['visit_purpose']}")
        return data

    def _host(self, company, host_id):
        host = (
            get_user_model()
            .objects.filter(company=company, id=host_id, is_active=True)
            .first()
        )
        if host is None:
            raise NotFoundError("Host", details={"host_id": str(host_id)})
        return host

    def _apply_host(self, company, visitor, data: dict) -> None:
        if "host_id" not in data:
            return
        host_id = data.pop("host_id")
        if host_id:
            host = self._host(company, host_id)
            visitor.host = host
            visitor.host_name = host.full_name or host.email
        else:
            visitor.host = None

    # --------------------------------------------------
    # Create / edit
    # --------------------------------------------------

    @transaction.atomic
    def create(self, company, data: dict, *, created_by=None) -> Visitor:
        data = self._validate(dict(data))
        for field in ("status", "approval_status", "actual_arrival", "actual_departure"):
            data.pop(field, None)
        host_id = data.pop("host_id", None)

        visitor = Visitor(
            company=company,
            visitor_number=self.next_visitor_number(company),
            created_by=created_by,
            **data,
        )
        self._apply_host(company, visitor, {"host_id": host_id})
        self.persist(visitor)

        logger.info(
            "Visitor registered",
            extra={
                "company_id": str(company.pk),
                "visitor_number": visitor.visitor_number,
                "scheduled_arrival": visitor.scheduled_arrival.isoformat(),
            },
        )
        return visitor

    @transaction.atomic
    def update(self, company, pk, data: dict, *, updated_by=None) -> Visitor:
        data = dict(data)
        visitor = self.get(company, pk, for_update=True)
        if visitor.status != S.SCHEDULED:
            raise InvalidStateError("Only scheduled visits can be edited")

        for field in ("status", "approval_status", "actual_arrival", "actual_departure"):
            data.pop(field, None)
        self._apply_host(company, visitor, data)

        merged = self._validate(
            {
                **{field: getattr(visitor, field) for field, _ in REQUIRED_FIELDS},
                "email": visitor.email,
                **data,
            }
        )
        for field, value in data.items():
            setattr(visitor, field, merged.get(field, value))
        self.persist(visitor)

        logger.info(
            "Visitor updated",
            extra={
                "visitor_number": visitor.visitor_number,
                "fields": sorted(data),
                "updated_by": str(getattr(updated_by, "pk", "") or ""),
            },
        )
        return visitor

    # --------------------------------------------------
    # Gate
    # --------------------------------------------------

    @transaction.atomic
    def check_in(self, company, pk, *, gate: str = "", notes: str = "", user=None) -> Visitor:
        visitor = self.get(company, pk, for_update=True)
        if visitor.status == S.CHECKED_IN:
            raise InvalidStateError("Visitor is already checked in")
        if visitor.approval_status == A.REJECTED:
            raise InvalidStateError("Rejected visitors cannot check in")
        if visitor.approval_required and visitor.approval_status != A.APPROVED:
            raise InvalidStateError("Visitor approval is required before check-in")

        VISIT_LIFECYCLE.validate(visitor, S.CHECKED_IN)
        visitor.status = S.CHECKED_IN
        visitor.actual_arrival = timezone.now()
        visitor.entry_gate = gate or DEFAULT_GATE
        visitor.checked_in_by = user
        if notes:
            visitor.notes = "\n".join(filter(None, [visitor.notes, notes]))
        self.persist(visitor)

        logger.info(
            "Visitor checked in",
            extra={
                "visitor_number": visitor.visitor_number,
                "gate": visitor.entry_gate,
                "user_id": str(getattr(user, "pk", "") or ""),
            },
        )
        return visitor

    @transaction.atomic
    def check_out(
        self, company, pk, *, gate: str = "", rating=None, notes: str = "", user=None
    ) -> Visitor:
        visitor = self.get(company, pk, for_update=True)
        if visitor.status != S.CHECKED_IN:
            raise InvalidStateError("Visitor is not currently checked in")
        if rating is not None and not 1 <= int(rating) <= 5:
            raise ValidationError("Rating must be between 1 and 5")

        VISIT_LIFECYCLE.validate(visitor, S.CHECKED_OUT)
        visitor.status = S.CHECKED_OUT
        visitor.actual_departure = timezone.now()
        visitor.exit_gate = gate or DEFAULT_GATE
        visitor.checked_out_by = user
        visitor.feedback_rating = int(rating) if rating is not None else None
        if notes:
            visitor.notes = "\n".join(filter(None, [visitor.notes, notes]))
        self.persist(visitor)

        logger.info(
            "Visitor checked out",
            extra={
                "visitor_number": visitor.visitor_number,
                "gate": visitor.exit_gate,
                "minutes_inside": int(
                    (visitor.actual_departure - visitor.actual_arrival).total_seconds() // 60
                ),
            },
        )
        return visitor

    @transaction.atomic
    def cancel(self, company, pk, *, user=None) -> Visitor:
        visitor = self.get(company, pk, for_update=True)
        VISIT_LIFECYCLE.validate(visitor, S.CANCELLED)
        visitor.status = S.CANCELLED
        visitor.cancelled_at = timezone.now()
        self.persist(visitor)
        logger.info(
            "Visit cancelled",
            extra={
                "visitor_number": visitor.visitor_number,
                "user_id": str(getattr(user, "pk", "") or ""),
            },
        )
        return visitor

    # --------------------------------------------------
    # Approval
    # --------------------------------------------------

    def _open_for_approval(self, company, pk) -> Visitor:
        visitor = self.get(company, pk, for_update=True)
        if visitor.status in (S.CHECKED_OUT, S.CANCELLED):
            raise InvalidStateError("Visit is already closed")
        return visitor

    @transaction.atomic
    def approve(self, company, pk, *, user=None, notes: str = "") -> Visitor:
        visitor = self._open_for_approval(company, pk)
        APPROVAL_LIFECYCLE.validate(visitor, A.APPROVED)
        visitor.approval_status = A.APPROVED
        visitor.approved_by = user
        visitor.approved_at = timezone.now()
        visitor.approval_notes = notes or ""
        self.persist(visitor)

        logger.info(
            "Visitor approved",
            extra={
                "visitor_number": visitor.visitor_number,
                "user_id": str(getattr(user, "pk", "") or ""),
            },
        )
        return visitor

    @transaction.atomic
    def reject(self, company, pk, *, reason: str, user=None) -> Visitor:
        if not (reason or "").strip():
            raise ValidationError("Rejection reason is required")
        visitor = self._open_for_approval(company, pk)
        APPROVAL_LIFECYCLE.validate(visitor, A.REJECTED)
        visitor.approval_status = A.REJECTED
        visitor.rejected_by = user
        visitor.rejected_at = timezone.now()
        visitor.rejection_reason = reason.strip()
        self.persist(visitor)

        logger.warning(
            "Visitor rejected",
            extra={
                "visitor_number": visitor.visitor_number,
                "reason": visitor.rejection_reason,
                "user_id": str(getattr(user, "pk", "") or ""),
            },
        )
        return visitor

    # --------------------------------------------------
    # Listings
    # --------------------------------------------------

    def inside(self, company) -> list:
        return list(
            self.get_queryset(company)
            .filter(status=S.CHECKED_IN, is_active=True)
            .order_by("actual_arrival")
        )

    def scheduled_today(self, company, *, today=None) -> list:
        today = today or timezone.localdate()
        return list(
            self.get_queryset(company)
            .filter(scheduled_arrival__date=today, is_active=True)
            .order_by("scheduled_arrival")
        )

    def overstaying(self, company, *, now=None) -> list:
        now = now or timezone.now()
        default_hours = settings.VISITOR_MAX_STAY_HOURS
        return [
            visitor
            for visitor in self.inside(company)
            if is_overstaying(visitor, now=now, default_hours=default_hours)
        ]

    def search(self, company, term: str, *, page=None, limit=None):
        term = (term or "").strip()
        if not term:
            raise ValidationError("Search term is required")
        qs = self.get_queryset(company).filter(is_active=True).filter(
            Q(visitor_number__icontains=term)
            | Q(first_name__icontains=term)
            | Q(last_name__icontains=term)
            | Q(phone__icontains=term)
            | Q(email__icontains=term)
            | Q(organisation__icontains=term)
            | Q(host_name__icontains=term)
        )
        return self.paginate(qs.order_by("-scheduled_arrival"), page=page, limit=limit)

    def stats(self, company, *, date_from=None, date_to=None) -> dict:
        qs = self.get_queryset(company)
        if date_from:
            qs = qs.filter(scheduled_arrival__date__gte=date_from)
        if date_to:
            qs = qs.filter(scheduled_arrival__date__lte=date_to)

        agg = qs.aggregate(
            total_visitors=Count("id"),
            checked_out=Count("id", filter=Q(status=S.CHECKED_OUT)),
            cancelled=Count("id", filter=Q(status=S.CANCELLED)),
            approved=Count("id", filter=Q(approval_status=A.APPROVED)),
            rejected=Count("id", filter=Q(approval_status=A.REJECTED)),
            pending=Count("id", filter=Q(approval_status=A.PENDING)),
        )
        by_purpose = dict(
            qs.order_by().values_list("visit_purpose").annotate(count=Count("id"))
        )

        return {
            "total_visitors": agg["total_visitors"],
            "currently_inside": len(self.inside(company)),
            "scheduled_today": len(self.scheduled_today(company)),
            "overstaying": len(self.overstaying(company)),
            "checked_out": agg["checked_out"],
            "cancelled": agg["cancelled"],
            "approved": agg["approved"],
            "rejected": agg["rejected"],
            "pending": agg["pending"],
            "approval_rate": percent(agg["approved"], agg["total_visitors"]),
            "by_purpose": by_purpose,
        }
