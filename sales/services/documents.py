# sales/services/documents.py

"""
======================================================
PATH: sales/services/documents.py
======================================================
SALES DOCUMENT SERVICE (shared by quotations, invoices, customer orders)

Purpose:
- Build priced lines from request rows (optionally linked to an
  inventory item of the same company).
- Number documents <CODE><YYYY><MM><NNNN> per company and month.
- Create / edit (drafts only) / delete (drafts only).
- Move status along the document's allow-list, stamping the matching
  timestamp field.

Subclasses declare:
- model, line_model, line_parent_field, lifecycle, status_timestamps
- number_code, number_field, header_fields, empty_lines_message
- apply_totals(document, lines)
======================================================
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from core.exceptions import InvalidStateError, NotFoundError, ValidationError
from core.money import (
    DISCOUNT_AMOUNT,
    DISCOUNT_PERCENTAGE,
    ZERO,
    money,
    qty,
    require_non_negative,
    to_decimal,
)
from core.numbering import monthly_number
from core.services.base import CompanyScopedService
from inventory.models import InventoryItem
from sales.services.totals import apply_line_totals

logger = logging.getLogger("erp.sales")

MONEY_HEADER_FIELDS = ("other_charges", "advance_amount")


def build_lines(company, rows, *, line_model, empty_message: str, extra_fields=()) -> list:
    if not rows:
        raise ValidationError(empty_message)

    lines = []
    for index, row in enumerate(rows, start=1):
        item = None
        if row.get("item_id"):
            item = InventoryItem.objects.filter(
                company=company, id=row["item_id"], is_active=True
            ).first()
            if item is None:
                raise NotFoundError(
                    "Inventory item", details={"item_id": str(row["item_id"])}
                )

        description = (row.get("description") or (item.name if item else "")).strip()
        if not description:
            raise ValidationError(f"Item {index}: Description is required")

        quantity = row.get("quantity")
        if quantity in (None, "") or to_decimal(quantity, field_name="quantity") <= ZERO:
            raise ValidationError(f"Item {index}: Quantity must be greater than 0")
        rate = row.get("rate")
        if rate in (None, "") or to_decimal(rate, field_name="rate") < ZERO:
            raise ValidationError(f"Item {index}: Rate must be non-negative")

        discount_type = row.get("discount_type") or DISCOUNT_PERCENTAGE
        if discount_type not in (DISCOUNT_PERCENTAGE, DISCOUNT_AMOUNT):
            raise ValidationError(f"Item {index}: Unknown discount type")
        tax_rate = money(require_non_negative(row.get("tax_rate") or 0, field_name="tax_rate"))
        if tax_rate > 100:
            raise ValidationError(f"Item {index}: Tax rate cannot exceed 100")

        line = line_model(
            item=item,
            description=description,
            unit=row.get("unit") or (item.unit if item else ""),
            quantity=qty(quantity),
            rate=money(rate),
            discount_type=discount_type,
            discount_value=money(
                require_non_negative(row.get("discount_value") or 0, field_name="discount_value")
            ),
            tax_rate=tax_rate,
            **{field: row[field] for field in extra_fields if row.get(field)},
        )
        apply_line_totals(line)
        lines.append(line)
    return lines


def line_rows(lines, *, extra_fields=()) -> list:
    """Priced lines back into request rows (used when one document is copied into another)."""
    return [
        {
            "item_id": line.item_id,
            "description": line.description,
            "unit": line.unit,
            "quantity": line.quantity,
            "rate": line.rate,
            "discount_type": line.discount_type,
            "discount_value": line.discount_value,
            "tax_rate": line.tax_rate,
            **{field: getattr(line, field) for field in extra_fields},
        }
        for line in lines
    ]


class SalesDocumentService(CompanyScopedService):
    line_model = None
    line_parent_field = None
    line_extra_fields = ()
    lifecycle = None
    status_timestamps: dict = {}

    number_code = None
    number_field = None
    header_fields = frozenset()
    empty_lines_message = "Document must have at least one item"

    # Statuses the generic status endpoint may set; None = any allowed move.
    status_endpoint_targets = None
    status_endpoint_message = "Status is set by another operation"

    def __init__(self, *, customers, cache=None, cache_timeout=None):
        super().__init__(cache=cache, cache_timeout=cache_timeout)
        self.customers = customers

    def get_queryset(self, company):
        return super().get_queryset(company).select_related("customer")

    def find_many(self, company, *, filters=None, ordering=None):
        return super().find_many(company, filters=filters, ordering=ordering).prefetch_related(
            "items"
        )

    def apply_totals(self, document, lines) -> None:
        raise NotImplementedError

    def before_save(self, document):
        lines = [] if document._state.adding else list(document.items.all())
        self.apply_totals(document, lines)

    def next_document_number(self, company, *, on=None) -> str:
        return monthly_number(
            queryset=self.model.objects.filter(company=company),
            field=self.number_field,
            code=self.number_code,
            on=on,
        )

    # --------------------------------------------------
    # Create / edit
    # --------------------------------------------------

    def clean_header(self, company, data: dict, *, document=None) -> dict:
        header = {k: v for k, v in data.items() if k in self.header_fields}
        for field in MONEY_HEADER_FIELDS:
            if field in header:
                header[field] = money(require_non_negative(header[field], field_name=field))
        if "round_off" in header:
            header["round_off"] = money(header["round_off"])
        return header

    def _customer(self, company, customer_id):
        if not customer_id:
            raise ValidationError("Customer ID is required")
        return self.customers.get_active(company, customer_id)

    def _build_lines(self, company, rows) -> list:
        return build_lines(
            company,
            rows,
            line_model=self.line_model,
            empty_message=self.empty_lines_message,
            extra_fields=self.line_extra_fields,
        )

    def _attach_lines(self, document, lines) -> None:
        for line in lines:
            setattr(line, self.line_parent_field, document)
            line.save()

    @transaction.atomic
    def create_document(self, company, data: dict, *, created_by=None, **attrs):
        data = dict(data)
        customer = self._customer(company, data.get("customer_id"))
        lines = self._build_lines(company, data.get("items"))
        header = self.clean_header(company, data)

        # Amounts that depend on the lines are applied once the lines exist.
        deferred = {k: header.pop(k) for k in ("advance_amount",) if k in header}

        document = self.model(
            company=company,
            customer=customer,
            created_by=created_by,
            **{self.number_field: self.next_document_number(company)},
            **header,
            **attrs,
        )
        self.persist(document)
        self._attach_lines(document, lines)
        for field, value in deferred.items():
            setattr(document, field, value)
        self.persist(document)

        logger.info(
            "%s created",
            self.resource_name,
            extra={
                "company_id": str(company.pk),
                "number": getattr(document, self.number_field),
                "customer_code": customer.customer_code,
            },
        )
        return document

    def create(self, company, data: dict, *, created_by=None):
        return self.create_document(company, data, created_by=created_by)

    @transaction.atomic
    def update_document(self, company, pk, data: dict, *, updated_by=None):
        data = dict(data)
        document = self.get(company, pk, for_update=True)
        if document.status != self.model.Status.DRAFT:
            raise InvalidStateError(f"Only draft {self.resource_name.lower()}s can be edited")

        if "customer_id" in data:
            document.customer = self._customer(company, data["customer_id"])
        for field, value in self.clean_header(company, data, document=document).items():
            setattr(document, field, value)

        if "items" in data:
            lines = self._build_lines(company, data["items"])
            document.items.all().delete()
            self._attach_lines(document, lines)

        self.persist(document)
        logger.info(
            "%s updated",
            self.resource_name,
            extra={
                "number": getattr(document, self.number_field),
                "fields": sorted(data),
                "updated_by": str(getattr(updated_by, "pk", "") or ""),
            },
        )
        return document

    def update(self, company, pk, data: dict, *, updated_by=None):
        return self.update_document(company, pk, data, updated_by=updated_by)

    @transaction.atomic
    def delete(self, company, pk):
        document = self.get(company, pk, for_update=True)
        if document.status != self.model.Status.DRAFT:
            raise InvalidStateError(f"Only draft {self.resource_name.lower()}s can be deleted")
        return super().delete(company, pk)

    # --------------------------------------------------
    # Status
    # --------------------------------------------------

    def enter_status(self, document, status: str) -> None:
        self.lifecycle.validate(document, status)
        document.status = status
        stamp = self.status_timestamps.get(status)
        if stamp and getattr(document, stamp) is None:
            setattr(document, stamp, timezone.now())

    def on_status_change(self, document, previous: str) -> None:
        """Side effects of a status change; runs before the document is saved."""

    @transaction.atomic
    def update_status(self, company, pk, *, status: str, user=None):
        if self.status_endpoint_targets is not None and status not in self.status_endpoint_targets:
            raise ValidationError(
                self.status_endpoint_message,
                details={"allowed": sorted(self.status_endpoint_targets)},
            )
        document = self.get(company, pk, for_update=True)
        previous = document.status
        self.enter_status(document, status)
        self.on_status_change(document, previous)
        self.persist(document)

        logger.info(
            "%s status changed",
            self.resource_name,
            extra={
                "number": getattr(document, self.number_field),
                "from": previous,
                "to": status,
                "user_id": str(getattr(user, "pk", "") or ""),
            },
        )
        return document

    # --------------------------------------------------
    # Reports
    # --------------------------------------------------

    def by_customer(self, company, customer_id):
        customer = self.customers.get(company, customer_id)
        return self.find_many(company, filters={"customer": customer})
