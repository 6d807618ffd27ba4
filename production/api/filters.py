# production/api/filters.py

import django_filters
from django.db.models import Q

from production.models import ProductionOrder


class ProductionOrderFilter(django_filters.FilterSet):
    product = django_filters.UUIDFilter(field_name="product_id")
    planned_from = django_filters.DateFilter(field_name="planned_start_date", lookup_expr="gte")
    planned_to = django_filters.DateFilter(field_name="planned_end_date", lookup_expr="lte")
    search = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = ProductionOrder
        fields = ["status", "priority", "product_type"]

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(order_number__icontains=value) | Q(product_name__icontains=value)
        )
