# inventory/api/filters.py

import django_filters
from django.db.models import F, Q

from inventory.models import InventoryItem, StockMovement


class InventoryItemFilter(django_filters.FilterSet):
    warehouse = django_filters.UUIDFilter(field_name="warehouse_id")
    low_stock = django_filters.BooleanFilter(method="filter_low_stock")

    class Meta:
        model = InventoryItem
        fields = ["category", "is_active", "valuation_method"]

    def filter_low_stock(self, queryset, name, value):
        low = Q(current_stock__lte=F("reorder_level"))
        return queryset.filter(low) if value else queryset.exclude(low)


class StockMovementFilter(django_filters.FilterSet):
    item = django_filters.UUIDFilter(field_name="item_id")
    warehouse = django_filters.UUIDFilter(method="filter_warehouse")
    date_from = django_filters.DateFilter(field_name="movement_date", lookup_expr="date__gte")
    date_to = django_filters.DateFilter(field_name="movement_date", lookup_expr="date__lte")

    class Meta:
        model = StockMovement
        fields = ["movement_type", "approval_status", "reference_type"]

    def filter_warehouse(self, queryset, name, value):
        return queryset.filter(Q(from_warehouse_id=value) | Q(to_warehouse_id=value))
