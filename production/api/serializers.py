# production/api/serializers.py

"""
PRODUCTION SERIALIZERS

Input serializers type-check only; ProductionService owns the rules
(material lookup, date order, lifecycle).
"""

from decimal import Decimal

from rest_framework import serializers

from production.models import ProductionMaterial, ProductionOrder, ProductionStage


class ProductionMaterialSerializer(serializers.ModelSerializer):
    item_id = serializers.UUIDField(read_only=True)
    item_code = serializers.CharField(source="item.item_code", read_only=True)
    total_required_quantity = serializers.SerializerMethodField()

    class Meta:
        model = ProductionMaterial
        fields = [
            "id",
            "item_id",
            "item_code",
            "item_name",
            "unit",
            "required_quantity",
            "total_required_quantity",
            "allocated_quantity",
            "consumed_quantity",
            "waste_quantity",
            "rate",
            "total_cost",
        ]
        read_only_fields = fields

    def get_total_required_quantity(self, obj) -> str:
        return str(obj.required_quantity * obj.order.order_quantity)


class ProductionStageSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductionStage
        fields = [
            "id",
            "sequence",
            "name",
            "process_type",
            "status",
            "input_quantity",
            "output_quantity",
            "defect_quantity",
            "material_cost",
            "labor_cost",
            "machine_cost",
            "overhead_cost",
            "job_work_cost",
            "quality_notes",
            "started_at",
            "completed_at",
            "completed_by",
        ]
        read_only_fields = fields


class ProductionOrderSerializer(serializers.ModelSerializer):
    product_id = serializers.UUIDField(read_only=True, allow_null=True)
    materials = ProductionMaterialSerializer(many=True, read_only=True)
    stages = ProductionStageSerializer(many=True, read_only=True)

    class Meta:
        model = ProductionOrder
        fields = [
            "id",
            "order_number",
            "product_id",
            "product_name",
            "product_type",
            "order_quantity",
            "completed_quantity",
            "rejected_quantity",
            "pending_quantity",
            "status",
            "priority",
            "planned_start_date",
            "planned_end_date",
            "actual_start_date",
            "actual_end_date",
            "notes",
            "cancellation_reason",
            "material_cost",
            "labor_cost",
            "machine_cost",
            "overhead_cost",
            "job_work_cost",
            "total_production_cost",
            "cost_per_unit",
            "approved_by",
            "approved_at",
            "materials",
            "stages",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


# ==========================================================
# INPUT
# ==========================================================

class MaterialInputSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    required_quantity = serializers.DecimalField(
        max_digits=14, decimal_places=3, min_value=Decimal("0.001")
    )
    rate = serializers.DecimalField(
        max_digits=14, decimal_places=2, required=False, allow_null=True
    )
    waste_quantity = serializers.DecimalField(
        max_digits=14, decimal_places=3, required=False, min_value=Decimal("0")
    )


class StageInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=120)
    process_type = serializers.ChoiceField(choices=ProductionStage.ProcessType.choices)
    material_cost = serializers.DecimalField(max_digits=18, decimal_places=2, required=False)
    labor_cost = serializers.DecimalField(max_digits=18, decimal_places=2, required=False)
    machine_cost = serializers.DecimalField(max_digits=18, decimal_places=2, required=False)
    overhead_cost = serializers.DecimalField(max_digits=18, decimal_places=2, required=False)
    job_work_cost = serializers.DecimalField(max_digits=18, decimal_places=2, required=False)


class ProductionOrderWriteSerializer(serializers.Serializer):
    product_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    product_type = serializers.ChoiceField(
        choices=ProductionOrder.ProductType.choices, required=False
    )
    priority = serializers.ChoiceField(
        choices=ProductionOrder.Priority.choices, required=False
    )
    order_quantity = serializers.DecimalField(max_digits=14, decimal_places=3)
    planned_start_date = serializers.DateField()
    planned_end_date = serializers.DateField()
    notes = serializers.CharField(required=False, allow_blank=True)


class ProductionOrderCreateSerializer(ProductionOrderWriteSerializer):
    product_id = serializers.UUIDField(required=False, allow_null=True)
    materials = MaterialInputSerializer(many=True, required=False)
    stages = StageInputSerializer(many=True, required=False)


class ProductionStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[ProductionOrder.Status.APPROVED, ProductionOrder.Status.ON_HOLD]
    )
    notes = serializers.CharField(required=False, allow_blank=True)


class StageCompletionSerializer(serializers.Serializer):
    output_quantity = serializers.DecimalField(
        max_digits=14, decimal_places=3, required=False, min_value=Decimal("0")
    )
    defect_quantity = serializers.DecimalField(
        max_digits=14, decimal_places=3, required=False, min_value=Decimal("0")
    )
    quality_notes = serializers.CharField(required=False, allow_blank=True)
    labor_cost = serializers.DecimalField(max_digits=18, decimal_places=2, required=False)
    machine_cost = serializers.DecimalField(max_digits=18, decimal_places=2, required=False)
    overhead_cost = serializers.DecimalField(max_digits=18, decimal_places=2, required=False)
    job_work_cost = serializers.DecimalField(max_digits=18, decimal_places=2, required=False)
    material_cost = serializers.DecimalField(max_digits=18, decimal_places=2, required=False)


class ProductionCompletionSerializer(serializers.Serializer):
    completed_quantity = serializers.DecimalField(
        max_digits=14, decimal_places=3, required=False, min_value=Decimal("0")
    )
    rejected_quantity = serializers.DecimalField(
        max_digits=14, decimal_places=3, required=False, min_value=Decimal("0")
    )
    quality_notes = serializers.CharField(required=False, allow_blank=True)


class CancellationSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True)
