# visitors/admin.py

from django.contrib import admin

from visitors.models import Visitor


@admin.register(Visitor)
class VisitorAdmin(admin.ModelAdmin):
    list_display = (
        "visitor_number",
        "first_name",
        "last_name",
        "company",
        "visit_purpose",
        "scheduled_arrival",
        "status",
        "approval_status",
    )
    list_filter = ("company", "status", "approval_status", "visit_purpose")
    search_fields = ("visitor_number", "first_name", "last_name", "phone", "organisation")
    readonly_fields = (
        "visitor_number",
        "actual_arrival",
        "actual_departure",
        "approved_at",
        "rejected_at",
        "cancelled_at",
    )
