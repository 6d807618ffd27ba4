# sales/services/customer_order_service.py

"""
======================================================
PATH: sales/services/customer_order_service.py
======================================================
CUSTOMER ORDER SERVICE

Purpose:
- Orders keyed CO<YYYY><MM><NNNN> per company.
- final = total + round off, balance = final - advance,
  due date = order date + credit days (recomputed before every save).
- Status along the customer order allow-list with timestamps.
- create_from_quotation(): copies an accepted quotation's lines.
======================================================
"""

from __future__ import annotations

from decimal import Decimal

from django.db.models import Avg, Count, Q, Sum

from core.exceptions import ValidationError
from core.money import money
from sales.models import CustomerOrder, CustomerOrderItem
from sales.services.documents import SalesDocumentService, line_rows
from sales.services.lifecycle import CUSTOMER_ORDER_LIFECYCLE, CUSTOMER_ORDER_TIMESTAMPS
from sales.services.totals import apply_customer_order_totals

Status = CustomerOrder.Status

DISPATCH_STATUSES = {Status.DISPATCHED, Status.DELIVERED}


class CustomerOrderService(SalesDocumentService):
    model = CustomerOrder
    resource_name = "Customer order"

    line_model = CustomerOrderItem
    line_parent_field = "order"
    line_extra_fields = ("product_type",)
    lifecycle = CUSTOMER_ORDER_LIFECYCLE
    status_timestamps = CUSTOMER_ORDER_TIMESTAMPS

    number_code = "CO"
    number_field = "order_number"
    header_fields = frozenset(
        {
            "order_date",
            "expected_delivery_date",
            "delivery_address",
            "priority",
            "other_charges",
            "round_off",
            "advance_amount",
            "credit_days",
            "notes",
            "terms",
        }
    )
    empty_lines_message = "Order must have at least one item"

    def apply_totals(self, document, lines) -> None:
        apply_customer_order_totals(document, lines)

    def clean_header(self, company, data: dict, *, document=None) -> dict:
        header = super().clean_header(company, data, document=document)
        if "priority" in header and header["priority"] not in CustomerOrder.Priority.values:
            raise ValidationError(f"Unknown priority: {header['priority']}")
        if "credit_days" in header:
            credit_days = header["credit_days"]
            if credit_days in (None, ""):
                header["credit_days"] = 0
            elif int(credit_days) < 0:
                raise ValidationError("Credit days cannot be negative")
            else:
                header["credit_days"] = int(credit_days)
        return header

    def create_order(self, company, data: dict, *, created_by=None) -> CustomerOrder:
        return self.create_document(company, data, created_by=created_by)

    def create_from_quotation(self, company, quotation, *, created_by=None, data=None):
        """New draft order carrying the quotation's customer, lines and charges."""
        order_data = {
            "customer_id": quotation.customer_id,
            "items": line_rows(quotation.items.all()),
            "other_charges": quotation.other_charges,
            "round_off": quotation.round_off,
            "notes": quotation.notes,
            "terms": quotation.terms,
            **(data or {}),
        }
        return self.create_document(
            company, order_data, created_by=created_by, quotation=quotation
        )

    def by_status(self, company, status: str):
        if status not in Status.values:
            raise ValidationError(f"Unknown status: {status}")
        return self.find_many(company, filters={"status": status})

    def stats(self, company, *, date_from=None, date_to=None) -> dict:
        qs = self.get_queryset(company)
        if date_from:
            qs = qs.filter(order_date__gte=date_from)
        if date_to:
            qs = qs.filter(order_date__lte=date_to)
        live = ~Q(status=Status.CANCELLED)

        agg = qs.aggregate(
            total_orders=Count("id"),
            total_value=Sum("final_amount", filter=live),
            delivered_value=Sum("final_amount", filter=Q(status=Status.DELIVERED)),
            total_advance=Sum("advance_amount", filter=live),
            total_balance=Sum("balance_amount", filter=live),
            average_order_value=Avg("final_amount", filter=live),
        )
        by_status = {
            row["status"]: {"count": row["count"], "total_value": money(row["total_value"])}
            for row in qs.order_by()
            .values("status")
            .annotate(count=Count("id"), total_value=Sum("final_amount"))
        }

        return {
            "total_orders": agg["total_orders"],
            "by_status": by_status,
            "total_value": money(agg["total_value"]),
            "delivered_value": money(agg["delivered_value"]),
            "total_advance": money(agg["total_advance"]),
            "total_balance": money(agg["total_balance"]),
            "average_order_value": (
                money(agg["average_order_value"])
                if agg["average_order_value"] is not None
                else Decimal("0.00")
            ),
        }
