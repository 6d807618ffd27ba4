# inventory/admin.py
"""
Admin is read-mostly for stock: quantities change only through
InventoryService, so stock columns are read-only and movements can be
neither added, edited nor deleted here.
"""

from django.contrib import admin

from inventory.models import InventoryItem, StockMovement, Warehouse


@admin.register(Warehouse)
class WarehouseAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "company", "is_active")
    list_filter = ("company", "is_active")
    search_fields = ("code", "name")


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = (
        "item_code",
        "name",
        "company",
        "category",
        "current_stock",
        "reserved_stock",
        "available_stock",
        "is_active",
    )
    list_filter = ("company", "category", "is_active")
    search_fields = ("item_code", "name")
    readonly_fields = (
        "current_stock",
        "reserved_stock",
        "available_stock",
        "in_transit_stock",
        "damaged_stock",
        "average_cost",
        "total_value",
        "last_stock_update",
    )

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = (
        "movement_number",
        "item",
        "movement_type",
        "quantity",
        "stock_after",
        "approval_status",
        "movement_date",
    )
    list_filter = ("company", "movement_type", "approval_status")
    search_fields = ("movement_number", "reference_number", "item__item_code")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
