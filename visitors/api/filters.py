# visitors/api/filters.py

import django_filters

from visitors.models import Visitor


class VisitorFilter(django_filters.FilterSet):
    host = django_filters.UUIDFilter(field_name="host_id")
    date_from = django_filters.DateFilter(field_name="scheduled_arrival__date", lookup_expr="gte")
    date_to = django_filters.DateFilter(field_name="scheduled_arrival__date", lookup_expr="lte")

    class Meta:
        model = Visitor
        fields = ["status", "approval_status", "visit_purpose", "visitor_type", "is_active"]
