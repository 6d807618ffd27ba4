# sales/services/customer_service.py

from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Avg, Count, Q, Sum
from django.utils import timezone

from core.exceptions import ConflictError, InvalidStateError, NotFoundError, ValidationError
from core.money import ZERO, money, require_non_negative
from core.numbering import next_number
from core.services.base import CompanyScopedService
from sales.models import Customer

logger = logging.getLogger("erp.sales")

CODE_PREFIX = "CUST"


class CustomerService(CompanyScopedService):
    model = Customer
    resource_name = "Customer"
    default_ordering = ("name",)

    def next_customer_code(self, company) -> str:
        return next_number(
            queryset=Customer.objects.filter(company=company),
            field="customer_code",
            prefix=CODE_PREFIX,
            width=6,
        )

    def _check_unique(self, company, *, code=None, email=None, exclude_pk=None):
        qs = self.get_queryset(company)
        if exclude_pk is not None:
            qs = qs.exclude(pk=exclude_pk)
        if code and qs.filter(customer_code=code).exists():
            raise ConflictError("Customer code already exists")
        if email and qs.filter(email__iexact=email).exists():
            raise ConflictError("Customer with this email already exists")

    def _validate(self, data: dict) -> None:
        if not (data.get("name") or "").strip():
            raise ValidationError("Customer name is required")
        if not (data.get("email") or "").strip():
            raise ValidationError("Primary email is required")
        if not (data.get("phone") or "").strip():
            raise ValidationError("Primary phone number is required")
        if "credit_limit" in data and money(data["credit_limit"] or 0) < ZERO:
            raise ValidationError("Credit limit cannot be negative")

    @transaction.atomic
    def create(self, company, data: dict, *, created_by=None) -> Customer:
        data = dict(data)
        self._validate(data)
        data.pop("outstanding_amount", None)

        code = (data.pop("customer_code", "") or "").strip().upper()
        email = data["email"].strip().lower()
        self._check_unique(company, code=code, email=email)

        customer = Customer(
            company=company,
            customer_code=code or self.next_customer_code(company),
            created_by=created_by,
            **{**data, "name": data["name"].strip(), "email": email},
        )
        self.persist(customer)

        logger.info(
            "Customer created",
            extra={"company_id": str(company.pk), "customer_code": customer.customer_code},
        )
        return customer

    @transaction.atomic
    def update(self, company, pk, data: dict, *, updated_by=None) -> Customer:
        data = dict(data)
        data.pop("outstanding_amount", None)
        customer = self.get(company, pk, for_update=True)

        if "customer_code" in data:
            data["customer_code"] = (data["customer_code"] or "").strip().upper()
            if not data["customer_code"]:
                raise ValidationError("customer_code cannot be blank")
        if "email" in data:
            data["email"] = (data["email"] or "").strip().lower()
        self._validate(
            {
                "name": data.get("name", customer.name),
                "email": data.get("email", customer.email),
                "phone": data.get("phone", customer.phone),
                **({"credit_limit": data["credit_limit"]} if "credit_limit" in data else {}),
            }
        )
        self._check_unique(
            company,
            code=data.get("customer_code"),
            email=data.get("email"),
            exclude_pk=customer.pk,
        )

        for field, value in data.items():
            setattr(customer, field, value)
        self.persist(customer)
        return customer

    def get_active(self, company, pk) -> Customer:
        customer = self.get(company, pk)
        if not customer.is_active:
            raise InvalidStateError(f"Customer {customer.customer_code} is inactive")
        return customer

    def get_by_code(self, company, code: str) -> Customer:
        customer = self.find_one(company, customer_code=(code or "").strip().upper())
        if customer is None:
            raise NotFoundError(self.resource_name)
        return customer

    @transaction.atomic
    def update_credit_limit(self, company, pk, credit_limit, *, updated_by=None) -> Customer:
        credit_limit = money(require_non_negative(credit_limit, field_name="credit_limit"))
        customer = self.get(company, pk, for_update=True)
        customer.credit_limit = credit_limit
        customer.last_credit_review = timezone.now()
        self.persist(customer, update_fields=["credit_limit", "last_credit_review", "updated_at"])

        logger.info(
            "Customer credit limit updated",
            extra={
                "customer_code": customer.customer_code,
                "credit_limit": str(credit_limit),
                "updated_by": str(getattr(updated_by, "pk", "") or ""),
            },
        )
        return customer

    @transaction.atomic
    def adjust_outstanding(self, company, pk, delta) -> Customer:
        """Moves the receivable by delta (positive = customer owes more); floors at zero."""
        customer = self.get(company, pk, for_update=True)
        customer.outstanding_amount = max(
            Decimal("0.00"), money(customer.outstanding_amount + money(delta))
        )
        self.persist(customer, update_fields=["outstanding_amount", "updated_at"])
        return customer

    def search(self, company, term: str, *, page=None, limit=None):
        term = (term or "").strip()
        if not term:
            raise ValidationError("Search term is required")
        qs = self.get_queryset(company).filter(
            Q(name__icontains=term)
            | Q(customer_code__icontains=term)
            | Q(contact_person__icontains=term)
            | Q(email__icontains=term)
            | Q(phone__icontains=term)
        )
        return self.paginate(qs.order_by("name"), page=page, limit=limit)

    def stats(self, company) -> dict:
        qs = self.get_queryset(company)
        counts = qs.aggregate(
            total_customers=Count("id"),
            active_customers=Count("id", filter=Q(is_active=True)),
            inactive_customers=Count("id", filter=Q(is_active=False)),
        )
        financial = qs.filter(is_active=True).aggregate(
            total_credit_limit=Sum("credit_limit"),
            total_outstanding=Sum("outstanding_amount"),
            average_credit_limit=Avg("credit_limit"),
            average_outstanding=Avg("outstanding_amount"),
        )
        counts.update({key: money(value) for key, value in financial.items()})
        return counts
