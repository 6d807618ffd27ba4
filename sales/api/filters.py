# sales/api/filters.py

import django_filters
from django.db.models import Q

from sales.models import Customer, CustomerOrder, Invoice, Quotation


class CustomerFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = Customer
        fields = ["customer_type", "is_active"]

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(name__icontains=value)
            | Q(customer_code__icontains=value)
            | Q(email__icontains=value)
        )


class QuotationFilter(django_filters.FilterSet):
    customer = django_filters.UUIDFilter(field_name="customer_id")
    date_from = django_filters.DateFilter(field_name="quotation_date", lookup_expr="gte")
    date_to = django_filters.DateFilter(field_name="quotation_date", lookup_expr="lte")

    class Meta:
        model = Quotation
        fields = ["status"]


class InvoiceFilter(django_filters.FilterSet):
    customer = django_filters.UUIDFilter(field_name="customer_id")
    date_from = django_filters.DateFilter(field_name="invoice_date", lookup_expr="gte")
    date_to = django_filters.DateFilter(field_name="invoice_date", lookup_expr="lte")
    due_before = django_filters.DateFilter(field_name="due_date", lookup_expr="lt")

    class Meta:
        model = Invoice
        fields = ["status", "payment_status", "invoice_type", "financial_year"]


class CustomerOrderFilter(django_filters.FilterSet):
    customer = django_filters.UUIDFilter(field_name="customer_id")
    date_from = django_filters.DateFilter(field_name="order_date", lookup_expr="gte")
    date_to = django_filters.DateFilter(field_name="order_date", lookup_expr="lte")
    search = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = CustomerOrder
        fields = ["status", "priority", "payment_status"]

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(order_number__icontains=value) | Q(customer__name__icontains=value)
        )
