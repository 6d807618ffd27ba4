# purchases/api/filters.py

import django_filters

from purchases.models import PurchaseOrder, Supplier


class SupplierFilter(django_filters.FilterSet):
    class Meta:
        model = Supplier
        fields = ["category", "is_active"]


class PurchaseOrderFilter(django_filters.FilterSet):
    supplier = django_filters.UUIDFilter(field_name="supplier_id")
    date_from = django_filters.DateFilter(field_name="po_date", lookup_expr="gte")
    date_to = django_filters.DateFilter(field_name="po_date", lookup_expr="lte")

    class Meta:
        model = PurchaseOrder
        fields = ["status", "priority", "receiving_status"]
