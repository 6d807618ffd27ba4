# core/services/base.py

"""
======================================================
PATH: core/services/base.py
======================================================
COMPANY-SCOPED DATA ACCESS LAYER

Purpose:
- Generic CRUD shared by every domain service:
  create / get / find / update / delete / count / exists / paginate / aggregate.
- Every read and write is filtered by company (the tenant).
- get_cached(): find-by-id through a TTL cache (django cache framework).

Rules:
- Ids are validated before hitting the database (ValidationError, 400).
- Missing rows raise NotFoundError("<resource> not found", 404).
- delete() is a soft delete when the model has `is_active`, hard otherwise.
- Subclasses hook before_save() to recompute derived fields right before
  each persist.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from django.conf import settings
from django.core.cache import caches
from django.db import IntegrityError, transaction

from core.exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger("erp.services")


@dataclass(frozen=True)
class Page:
    results: list
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def pagination(self) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "pages": self.pages,
            "has_next": self.has_next,
            "has_prev": self.has_prev,
        }


def _to_page_int(value, *, default: int, field_name: str) -> int:
    if value in (None, ""):
        return default
    try:
        v = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field_name} must be an integer") from exc
    if v < 1:
        raise ValidationError(f"{field_name} must be at least 1")
    return v


class CompanyScopedService:
    model = None
    resource_name = "Resource"
    soft_delete_field = "is_active"
    default_ordering: Iterable[str] = ("-created_at",)

    def __init__(self, *, cache=None, cache_timeout: Optional[int] = None):
        self.cache = cache if cache is not None else caches["default"]
        self.cache_timeout = (
            cache_timeout
            if cache_timeout is not None
            else getattr(settings, "FIND_BY_ID_CACHE_TIMEOUT", 300)
        )

    # --------------------------------------------------
    # Helpers
    # --------------------------------------------------

    def get_queryset(self, company):
        if company is None:
            raise ValidationError("company is required")
        return self.model.objects.filter(company=company)

    def parse_id(self, pk) -> uuid.UUID:
        if isinstance(pk, uuid.UUID):
            return pk
        try:
            return uuid.UUID(str(pk))
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid {self.resource_name.lower()} id") from exc

    def cache_key(self, company_id, pk) -> str:
        return f"{self.model._meta.label_lower}:{company_id}:{pk}"

    def invalidate(self, instance) -> None:
        self.cache.delete(self.cache_key(instance.company_id, instance.pk))

    def has_soft_delete(self) -> bool:
        return any(f.name == self.soft_delete_field for f in self.model._meta.fields)

    def before_save(self, instance) -> None:
        """Recompute derived fields. Called right before every persist."""

    def persist(self, instance, *, update_fields=None):
        self.before_save(instance)
        try:
            if update_fields:
                instance.save(update_fields=update_fields)
            else:
                instance.save()
        except IntegrityError as exc:
            raise ConflictError(
                f"{self.resource_name} conflicts with an existing record"
            ) from exc
        self.invalidate(instance)
        return instance

    # --------------------------------------------------
    # Reads
    # --------------------------------------------------

    def get(self, company, pk, *, for_update: bool = False):
        qs = self.get_queryset(company)
        if for_update:
            # of=("self",): related rows are joined in but never locked.
            qs = qs.select_for_update(of=("self",))
        try:
            return qs.get(pk=self.parse_id(pk))
        except self.model.DoesNotExist as exc:
            raise NotFoundError(self.resource_name) from exc

    def get_cached(self, company, pk):
        if company is None:
            raise ValidationError("company is required")
        pk = self.parse_id(pk)
        key = self.cache_key(company.pk, pk)
        instance = self.cache.get(key)
        if instance is None:
            instance = self.get(company, pk)
            self.cache.set(key, instance, self.cache_timeout)
        return instance

    def find_one(self, company, **filters):
        return self.get_queryset(company).filter(**filters).first()

    def find_many(self, company, *, filters: Optional[dict] = None, ordering=None):
        qs = self.get_queryset(company)
        if filters:
            qs = qs.filter(**filters)
        return qs.order_by(*(ordering or self.default_ordering))

    def count(self, company, **filters) -> int:
        return self.get_queryset(company).filter(**filters).count()

    def exists(self, company, **filters) -> bool:
        return self.get_queryset(company).filter(**filters).exists()

    def aggregate(self, company, *, filters: Optional[dict] = None, **aggregations) -> dict:
        qs = self.get_queryset(company)
        if filters:
            qs = qs.filter(**filters)
        return qs.aggregate(**aggregations)

    def paginate(self, queryset, *, page=None, limit=None) -> Page:
        page = _to_page_int(page, default=1, field_name="page")
        limit = _to_page_int(
            limit,
            default=getattr(settings, "DEFAULT_PAGE_LIMIT", 20),
            field_name="limit",
        )
        limit = min(limit, getattr(settings, "MAX_PAGE_LIMIT", 100))

        total = queryset.count()
        offset = (page - 1) * limit
        return Page(
            results=list(queryset[offset : offset + limit]),
            page=page,
            limit=limit,
            total=total,
        )

    # --------------------------------------------------
    # Writes
    # --------------------------------------------------

    @transaction.atomic
    def create(self, company, data: dict, *, created_by=None):
        instance = self.model(company=company, **data)
        if created_by is not None and hasattr(instance, "created_by_id"):
            instance.created_by = created_by
        self.persist(instance)
        logger.info(
            "%s created",
            self.resource_name,
            extra={"company_id": str(company.pk), "object_id": str(instance.pk)},
        )
        return instance

    @transaction.atomic
    def update(self, company, pk, data: dict, *, updated_by=None):
        instance = self.get(company, pk, for_update=True)
        for field, value in data.items():
            setattr(instance, field, value)
        self.persist(instance)
        logger.info(
            "%s updated",
            self.resource_name,
            extra={
                "company_id": str(company.pk),
                "object_id": str(instance.pk),
                "fields": sorted(data),
                "updated_by": str(getattr(updated_by, "pk", "") or ""),
            },
        )
        return instance

    @transaction.atomic
    def delete(self, company, pk) -> Any:
        instance = self.get(company, pk, for_update=True)
        if self.has_soft_delete():
            setattr(instance, self.soft_delete_field, False)
            self.persist(instance)
        else:
            self.invalidate(instance)
            instance.delete()
        logger.info(
            "%s deleted",
            self.resource_name,
            extra={"company_id": str(company.pk), "object_id": str(pk)},
        )
        return instance
