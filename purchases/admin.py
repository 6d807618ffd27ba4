# purchases/admin.py

from django.contrib import admin

from purchases.models import PurchaseOrder, PurchaseOrderItem, Supplier


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ("supplier_code", "name", "company", "category", "rating", "is_active")
    list_filter = ("company", "category", "is_active")
    search_fields = ("supplier_code", "name", "email")


class PurchaseOrderItemInline(admin.TabularInline):
    model = PurchaseOrderItem
    extra = 0
    readonly_fields = (
        "amount",
        "discount_amount",
        "taxable_amount",
        "tax_amount",
        "line_total",
        "received_quantity",
        "rejected_quantity",
        "pending_quantity",
    )


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = (
        "po_number",
        "supplier",
        "company",
        "status",
        "receiving_status",
        "grand_total",
        "expected_delivery_date",
    )
    list_filter = ("company", "status", "receiving_status")
    search_fields = ("po_number", "supplier__name")
    readonly_fields = (
        "status",
        "subtotal",
        "discount_total",
        "taxable_amount",
        "tax_total",
        "grand_total",
        "total_ordered",
        "total_received",
        "total_pending",
    )
    inlines = [PurchaseOrderItemInline]
