# production/admin.py

from django.contrib import admin

from production.models import ProductionMaterial, ProductionOrder, ProductionStage


class ProductionMaterialInline(admin.TabularInline):
    model = ProductionMaterial
    extra = 0
    readonly_fields = ("allocated_quantity", "consumed_quantity", "total_cost")


class ProductionStageInline(admin.TabularInline):
    model = ProductionStage
    extra = 0


@admin.register(ProductionOrder)
class ProductionOrderAdmin(admin.ModelAdmin):
    list_display = (
        "order_number",
        "product_name",
        "company",
        "status",
        "priority",
        "order_quantity",
        "completed_quantity",
        "pending_quantity",
    )
    list_filter = ("company", "status", "priority", "product_type")
    search_fields = ("order_number", "product_name")
    readonly_fields = (
        "status",
        "pending_quantity",
        "material_cost",
        "labor_cost",
        "machine_cost",
        "overhead_cost",
        "job_work_cost",
        "total_production_cost",
        "cost_per_unit",
    )
    inlines = [ProductionMaterialInline, ProductionStageInline]
