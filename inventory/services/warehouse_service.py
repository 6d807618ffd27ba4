# inventory/services/warehouse_service.py

from __future__ import annotations

from core.exceptions import ConflictError, ValidationError
from core.services.base import CompanyScopedService
from inventory.models import Warehouse


class WarehouseService(CompanyScopedService):
    model = Warehouse
    resource_name = "Warehouse"
    default_ordering = ("name",)

    def create(self, company, data: dict, *, created_by=None):
        code = (data.get("code") or "").strip().upper()
        if not code:
            raise ValidationError("code is required")
        if not (data.get("name") or "").strip():
            raise ValidationError("name is required")
        if self.exists(company, code=code):
            raise ConflictError(f"Warehouse code {code} already exists")
        return super().create(company, {**data, "code": code}, created_by=created_by)

    def get_active(self, company, pk) -> Warehouse:
        warehouse = self.get(company, pk)
        if not warehouse.is_active:
            raise ValidationError(f"Warehouse {warehouse.code} is inactive")
        return warehouse
