# sales/services/quotation_service.py

"""
======================================================
PATH: sales/services/quotation_service.py
======================================================
QUOTATION SERVICE

Purpose:
- Quotations keyed QUO<YYYY><MM><NNNN> per company.
- Status along the quotation allow-list, with timestamps.
- convert_to_order(): accepted quotation -> new CustomerOrder, quotation
  becomes converted (one atomic step).
- Expired listing + expire_overdue() sweep, statistics.

Rules:
- valid_until is required and never before the quotation date.
- Only accepted quotations convert.
======================================================
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Avg, Count, Q, Sum
from django.utils import timezone

from core.exceptions import InvalidStateError, ValidationError
from core.money import money, percent
from sales.models import Quotation, QuotationItem
from sales.services.documents import SalesDocumentService
from sales.services.lifecycle import QUOTATION_LIFECYCLE, QUOTATION_TIMESTAMPS
from sales.services.totals import apply_document_totals

logger = logging.getLogger("erp.sales")

Status = Quotation.Status

# Listed as expired once valid_until has passed.
EXPIRABLE_LISTING = {Status.DRAFT, Status.SENT, Status.ACKNOWLEDGED, Status.NEGOTIATION}
# Moved to expired by the sweep (the allow-list has no draft -> expired).
EXPIRABLE_TRANSITION = {Status.SENT, Status.ACKNOWLEDGED, Status.NEGOTIATION}

APPROVAL_STATUSES = {Status.APPROVED, Status.REJECTED}


class QuotationService(SalesDocumentService):
    model = Quotation
    resource_name = "Quotation"

    line_model = QuotationItem
    line_parent_field = "quotation"
    lifecycle = QUOTATION_LIFECYCLE
    status_timestamps = QUOTATION_TIMESTAMPS

    number_code = "QUO"
    number_field = "quotation_number"
    header_fields = frozenset(
        {"quotation_date", "valid_until", "other_charges", "round_off", "notes", "terms"}
    )
    empty_lines_message = "Quotation must have at least one item"

    status_endpoint_targets = frozenset(set(Status.values) - {Status.CONVERTED})
    status_endpoint_message = "Quotations are converted through convert-to-order"

    def __init__(self, *, customers, customer_orders, cache=None, cache_timeout=None):
        super().__init__(customers=customers, cache=cache, cache_timeout=cache_timeout)
        self.customer_orders = customer_orders

    def apply_totals(self, document, lines) -> None:
        document.grand_total = apply_document_totals(document, lines).grand_total

    def clean_header(self, company, data: dict, *, document=None) -> dict:
        header = super().clean_header(company, data, document=document)
        if document is None and not header.get("valid_until"):
            raise ValidationError("Valid until date is required")
        if "valid_until" in header and not header["valid_until"]:
            raise ValidationError("Valid until date is required")
        return header

    def create_quotation(self, company, data: dict, *, created_by=None) -> Quotation:
        return self.create_document(company, data, created_by=created_by)

    # --------------------------------------------------
    # Conversion
    # --------------------------------------------------

    @transaction.atomic
    def convert_to_order(self, company, pk, *, user=None, data=None):
        quotation = self.get(company, pk, for_update=True)
        if quotation.status != Status.ACCEPTED:
            raise InvalidStateError("Only accepted quotations can be converted to orders")

        order = self.customer_orders.create_from_quotation(
            company, quotation, created_by=user, data=data
        )
        self.enter_status(quotation, Status.CONVERTED)
        self.persist(quotation)

        logger.info(
            "Quotation converted to order",
            extra={
                "quotation_number": quotation.quotation_number,
                "order_number": order.order_number,
                "user_id": str(getattr(user, "pk", "") or ""),
            },
        )
        return order

    # --------------------------------------------------
    # Expiry
    # --------------------------------------------------

    def expired_quotations(self, company, *, today=None) -> list:
        today = today or timezone.localdate()
        return list(
            self.get_queryset(company)
            .filter(status__in=EXPIRABLE_LISTING, valid_until__lt=today)
            .order_by("valid_until")
        )

    @transaction.atomic
    def expire_overdue(self, company, *, today=None) -> int:
        today = today or timezone.localdate()
        quotations = (
            self.get_queryset(company)
            .select_for_update(of=("self",))
            .filter(status__in=EXPIRABLE_TRANSITION, valid_until__lt=today)
        )
        expired = 0
        for quotation in quotations:
            self.enter_status(quotation, Status.EXPIRED)
            self.persist(quotation)
            expired += 1
        if expired:
            logger.info(
                "Quotations expired", extra={"company_id": str(company.pk), "count": expired}
            )
        return expired

    # --------------------------------------------------
    # Reports
    # --------------------------------------------------

    def stats(self, company, *, date_from=None, date_to=None) -> dict:
        qs = self.get_queryset(company)
        if date_from:
            qs = qs.filter(quotation_date__gte=date_from)
        if date_to:
            qs = qs.filter(quotation_date__lte=date_to)

        won = Q(status__in=[Status.ACCEPTED, Status.CONVERTED])
        agg = qs.aggregate(
            total_quotations=Count("id"),
            accepted=Count("id", filter=won),
            total_value=Sum("grand_total"),
            accepted_value=Sum("grand_total", filter=won),
            average_quotation_value=Avg("grand_total"),
        )
        by_status = {
            row["status"]: {"count": row["count"], "total_value": money(row["total_value"])}
            for row in qs.order_by()
            .values("status")
            .annotate(count=Count("id"), total_value=Sum("grand_total"))
        }

        return {
            "total_quotations": agg["total_quotations"],
            "by_status": by_status,
            "total_value": money(agg["total_value"]),
            "accepted_value": money(agg["accepted_value"]),
            "acceptance_rate": percent(agg["accepted"], agg["total_quotations"]),
            "average_quotation_value": (
                money(agg["average_quotation_value"])
                if agg["average_quotation_value"] is not None
                else Decimal("0.00")
            ),
        }
