# users/admin.py

"""
USERS ADMIN

Staff accounts grouped by company; the tenant and role sit next to the
profile so support staff can re-home or re-role a user in one place.
"""

from __future__ import annotations

from django.contrib import admin
from django.contrib.auth import get_user_model
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

User = get_user_model()


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    ordering = ("company__name", "email")
    list_display = ("email", "full_name", "company", "role", "is_active", "created_at")
    list_filter = ("role", "company", "is_active", "is_staff")
    list_select_related = ("company",)
    search_fields = ("email", "first_name", "last_name", "phone", "company__code")
    readonly_fields = ("created_at", "updated_at", "last_login")

    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Profile", {"fields": ("first_name", "last_name", "phone")}),
        ("Tenant & role", {"fields": ("company", "role")}),
        ("Flags", {"fields": ("is_active", "is_staff", "is_superuser")}),
        ("Audit", {"fields": ("last_login", "created_at", "updated_at")}),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "password1", "password2", "company", "role"),
            },
        ),
    )
