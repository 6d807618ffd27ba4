# sales/services/invoice_service.py

"""
======================================================
PATH: sales/services/invoice_service.py
======================================================
INVOICE SERVICE

Purpose:
- Invoices keyed INV<YYYY><MM><NNNN> per company, financial year
  stamped from the invoice date (April start).
- record_payment(): amount > 0 and <= outstanding; the invoice becomes
  partially_paid or paid.
- Overdue listing + mark_overdue() sweep, statistics.
- Keeps Customer.outstanding_amount in step: sending adds the invoice
  total, payments subtract, cancelling subtracts what was still owed.

Rules:
- paid / partially_paid are entered only by recording a payment.
- Payments are taken on sent, partially paid and overdue invoices.
======================================================
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from core.exceptions import InvalidStateError, ValidationError
from core.money import ZERO, financial_year, money, percent, to_decimal
from sales.models import CustomerOrder, Invoice, InvoiceItem, InvoicePayment
from sales.services.documents import SalesDocumentService
from sales.services.lifecycle import INVOICE_LIFECYCLE, INVOICE_TIMESTAMPS
from sales.services.totals import apply_invoice_totals

logger = logging.getLogger("erp.sales")

Status = Invoice.Status

PAYABLE_STATUSES = {Status.SENT, Status.PARTIALLY_PAID, Status.OVERDUE}


class InvoiceService(SalesDocumentService):
    model = Invoice
    resource_name = "Invoice"

    line_model = InvoiceItem
    line_parent_field = "invoice"
    lifecycle = INVOICE_LIFECYCLE
    status_timestamps = INVOICE_TIMESTAMPS

    number_code = "INV"
    number_field = "invoice_number"
    header_fields = frozenset(
        {
            "invoice_type",
            "invoice_date",
            "due_date",
            "other_charges",
            "round_off",
            "notes",
            "terms",
        }
    )
    empty_lines_message = "Invoice must have at least one item"

    status_endpoint_targets = frozenset({Status.SENT, Status.OVERDUE, Status.CANCELLED})
    status_endpoint_message = "Paid statuses are set by recording payments"

    def apply_totals(self, document, lines) -> None:
        if document.invoice_date:
            document.financial_year = financial_year(document.invoice_date)
        apply_invoice_totals(document, lines, today=timezone.localdate())

    def clean_header(self, company, data: dict, *, document=None) -> dict:
        header = super().clean_header(company, data, document=document)
        if document is None and not header.get("due_date"):
            raise ValidationError("Due date is required")
        if "due_date" in header and not header["due_date"]:
            raise ValidationError("Due date is required")
        if "invoice_type" in header and header["invoice_type"] not in Invoice.InvoiceType.values:
            raise ValidationError(f"Unknown invoice type: {header['invoice_type']}")
        if "customer_order_id" in data:
            order_id = data["customer_order_id"]
            header["customer_order"] = (
                CustomerOrder.objects.filter(company=company, id=order_id).first()
                if order_id
                else None
            )
            if order_id and header["customer_order"] is None:
                raise ValidationError("Customer order not found for this company")
        return header

    def create_invoice(self, company, data: dict, *, created_by=None) -> Invoice:
        return self.create_document(company, data, created_by=created_by)

    # --------------------------------------------------
    # Status side effects
    # --------------------------------------------------

    def on_status_change(self, document, previous: str) -> None:
        if document.status == Status.OVERDUE and not (
            document.due_date < timezone.localdate()
        ):
            raise ValidationError("Invoice is not past its due date")

        # Receivable opens when the invoice goes out, closes on cancellation.
        if previous == Status.DRAFT and document.status == Status.SENT:
            self.customers.adjust_outstanding(
                document.company, document.customer_id, document.grand_total
            )
        elif document.status == Status.CANCELLED and previous in PAYABLE_STATUSES:
            self.customers.adjust_outstanding(
                document.company, document.customer_id, -document.outstanding_amount
            )

    # --------------------------------------------------
    # Payments
    # --------------------------------------------------

    @transaction.atomic
    def record_payment(
        self,
        company,
        pk,
        *,
        amount,
        method=InvoicePayment.Method.BANK_TRANSFER,
        payment_date=None,
        reference: str = "",
        notes: str = "",
        user=None,
    ) -> Invoice:
        invoice = self.get(company, pk, for_update=True)
        if invoice.status not in PAYABLE_STATUSES:
            raise InvalidStateError(
                "Payments can only be recorded against sent invoices",
                details={"status": invoice.status},
            )

        amount = money(to_decimal(amount, field_name="amount"))
        if amount <= ZERO:
            raise ValidationError("Payment amount must be greater than 0")
        if amount > invoice.outstanding_amount:
            raise ValidationError(
                "Payment amount cannot exceed outstanding amount",
                details={"outstanding": str(invoice.outstanding_amount), "amount": str(amount)},
            )
        if method not in InvoicePayment.Method.values:
            raise ValidationError(f"Unknown payment method: {method}")

        InvoicePayment.objects.create(
            invoice=invoice,
            amount=amount,
            method=method,
            payment_date=payment_date or timezone.localdate(),
            reference=reference or "",
            notes=notes or "",
            recorded_by=user,
        )
        invoice.paid_amount = invoice.paid_amount + amount

        target = (
            Status.PAID
            if invoice.paid_amount >= invoice.grand_total
            else Status.PARTIALLY_PAID
        )
        if invoice.status != target:
            self.enter_status(invoice, target)
        self.persist(invoice)
        self.customers.adjust_outstanding(company, invoice.customer_id, -amount)

        logger.info(
            "Invoice payment recorded",
            extra={
                "invoice_number": invoice.invoice_number,
                "amount": str(amount),
                "outstanding": str(invoice.outstanding_amount),
                "user_id": str(getattr(user, "pk", "") or ""),
            },
        )
        return invoice

    def payments(self, company, pk):
        invoice = self.get(company, pk)
        return list(invoice.payments.all())

    # --------------------------------------------------
    # Overdue
    # --------------------------------------------------

    def _overdue_queryset(self, company, today):
        return self.get_queryset(company).filter(
            status__in=PAYABLE_STATUSES,
            due_date__lt=today,
            outstanding_amount__gt=0,
        )

    def overdue_invoices(self, company, *, today=None) -> list:
        today = today or timezone.localdate()
        return list(self._overdue_queryset(company, today).order_by("due_date"))

    @transaction.atomic
    def mark_overdue(self, company, *, today=None) -> int:
        today = today or timezone.localdate()
        marked = 0
        for invoice in (
            self._overdue_queryset(company, today)
            .exclude(status=Status.OVERDUE)
            .select_for_update(of=("self",))
        ):
            self.enter_status(invoice, Status.OVERDUE)
            self.persist(invoice)
            marked += 1
        if marked:
            logger.info(
                "Invoices marked overdue", extra={"company_id": str(company.pk), "count": marked}
            )
        return marked

    # --------------------------------------------------
    # Reports
    # --------------------------------------------------

    def stats(self, company, *, date_from=None, date_to=None) -> dict:
        qs = self.get_queryset(company)
        if date_from:
            qs = qs.filter(invoice_date__gte=date_from)
        if date_to:
            qs = qs.filter(invoice_date__lte=date_to)
        today = timezone.localdate()
        billed = ~Q(status__in=[Status.DRAFT, Status.CANCELLED])
        overdue = Q(status__in=PAYABLE_STATUSES, due_date__lt=today, outstanding_amount__gt=0)

        agg = qs.aggregate(
            total_invoices=Count("id"),
            total_value=Sum("grand_total", filter=billed),
            total_paid=Sum("paid_amount"),
            total_outstanding=Sum("outstanding_amount", filter=billed),
            overdue_count=Count("id", filter=overdue),
            overdue_amount=Sum("outstanding_amount", filter=overdue),
        )
        by_status = {
            row["status"]: {"count": row["count"], "total_value": money(row["total_value"])}
            for row in qs.order_by()
            .values("status")
            .annotate(count=Count("id"), total_value=Sum("grand_total"))
        }

        return {
            "total_invoices": agg["total_invoices"],
            "by_status": by_status,
            "total_value": money(agg["total_value"]),
            "total_paid": money(agg["total_paid"]),
            "total_outstanding": money(agg["total_outstanding"]),
            "overdue_count": agg["overdue_count"],
            "overdue_amount": money(agg["overdue_amount"]),
            "collection_rate": percent(agg["total_paid"], agg["total_value"]),
        }
