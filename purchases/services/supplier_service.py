# purchases/services/supplier_service.py

from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Avg, Count, Q
from django.utils import timezone

from core.exceptions import ConflictError, InvalidStateError, ValidationError
from core.money import money, to_decimal
from core.numbering import next_number
from core.services.base import CompanyScopedService
from purchases.models import Supplier

logger = logging.getLogger("erp.purchases")

CODE_PREFIX = "SUPP"


class SupplierService(CompanyScopedService):
    model = Supplier
    resource_name = "Supplier"
    default_ordering = ("name",)

    def next_supplier_code(self, company) -> str:
        return next_number(
            queryset=Supplier.objects.filter(company=company),
            field="supplier_code",
            prefix=CODE_PREFIX,
            width=6,
        )

    def _check_unique(self, company, *, code=None, email=None, exclude_pk=None):
        qs = self.get_queryset(company)
        if exclude_pk is not None:
            qs = qs.exclude(pk=exclude_pk)
        if code and qs.filter(supplier_code=code).exists():
            raise ConflictError("Supplier code already exists")
        if email and qs.filter(email__iexact=email).exists():
            raise ConflictError("Supplier with this email already exists")

    @transaction.atomic
    def create(self, company, data: dict, *, created_by=None) -> Supplier:
        data = dict(data)
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Supplier name is required")

        code = (data.pop("supplier_code", "") or "").strip().upper()
        email = (data.get("email") or "").strip().lower()
        self._check_unique(company, code=code, email=email)

        data.pop("rating", None)
        supplier = Supplier(
            company=company,
            supplier_code=code or self.next_supplier_code(company),
            created_by=created_by,
            **{**data, "name": name, "email": email},
        )
        self.persist(supplier)

        logger.info(
            "Supplier created",
            extra={"company_id": str(company.pk), "supplier_code": supplier.supplier_code},
        )
        return supplier

    @transaction.atomic
    def update(self, company, pk, data: dict, *, updated_by=None) -> Supplier:
        data = dict(data)
        data.pop("rating", None)
        supplier = self.get(company, pk, for_update=True)

        if "supplier_code" in data:
            data["supplier_code"] = (data["supplier_code"] or "").strip().upper()
            if not data["supplier_code"]:
                raise ValidationError("supplier_code cannot be blank")
        if "email" in data:
            data["email"] = (data["email"] or "").strip().lower()
        self._check_unique(
            company,
            code=data.get("supplier_code"),
            email=data.get("email"),
            exclude_pk=supplier.pk,
        )

        for field, value in data.items():
            setattr(supplier, field, value)
        self.persist(supplier)
        return supplier

    def get_active(self, company, pk) -> Supplier:
        supplier = self.get(company, pk)
        if not supplier.is_active:
            raise InvalidStateError(f"Supplier {supplier.supplier_code} is inactive")
        return supplier

    @transaction.atomic
    def update_rating(self, company, pk, rating) -> Supplier:
        rating = to_decimal(rating, field_name="rating")
        if rating < 1 or rating > 5:
            raise ValidationError("Rating must be between 1 and 5")

        supplier = self.get(company, pk, for_update=True)
        supplier.rating = money(rating)
        supplier.rated_at = timezone.now()
        self.persist(supplier, update_fields=["rating", "rated_at", "updated_at"])
        logger.info(
            "Supplier rated",
            extra={"supplier_code": supplier.supplier_code, "rating": str(supplier.rating)},
        )
        return supplier

    def search(self, company, term: str, *, page=None, limit=None):
        term = (term or "").strip()
        if not term:
            raise ValidationError("Search term is required")
        qs = self.get_queryset(company).filter(
            Q(name__icontains=term)
            | Q(supplier_code__icontains=term)
            | Q(contact_person__icontains=term)
            | Q(email__icontains=term)
        )
        return self.paginate(qs.order_by("name"), page=page, limit=limit)

    def stats(self, company) -> dict:
        qs = self.get_queryset(company)
        counts = qs.aggregate(
            total_suppliers=Count("id"),
            active_suppliers=Count("id", filter=Q(is_active=True)),
            inactive_suppliers=Count("id", filter=Q(is_active=False)),
            average_rating=Avg("rating", filter=Q(is_active=True)),
        )
        counts["average_rating"] = (
            money(counts["average_rating"])
            if counts["average_rating"] is not None
            else Decimal("0.00")
        )
        counts["by_category"] = dict(
            qs.filter(is_active=True)
            .order_by()
            .values_list("category")
            .annotate(count=Count("id"))
        )
        return counts
