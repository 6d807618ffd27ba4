# inventory/api/serializers.py

"""
INVENTORY SERIALIZERS

Rules:
- Output serializers are read-only views of model rows.
- Input serializers only shape / type-check; business rules live in the
  services (InventoryService, StockMovementService).
- Stock quantities are never writable through item create/update.
"""

from decimal import Decimal

from rest_framework import serializers

from inventory.models import InventoryItem, StockMovement, Warehouse


# ==========================================================
# WAREHOUSE
# ==========================================================

class WarehouseSerializer(serializers.ModelSerializer):
    class Meta:
        model = Warehouse
        fields = ["id", "code", "name", "address", "is_active", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_code(self, value: str):
        v = (value or "").strip().upper()
        if not v:
            raise serializers.ValidationError("code cannot be blank")
        return v


# ==========================================================
# ITEMS
# ==========================================================

class InventoryItemSerializer(serializers.ModelSerializer):
    warehouse_id = serializers.UUIDField(read_only=True, allow_null=True)
    warehouse_code = serializers.CharField(
        source="warehouse.code", read_only=True, default=None
    )
    is_low_stock = serializers.BooleanField(read_only=True)
    is_out_of_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = InventoryItem
        fields = [
            "id",
            "item_code",
            "name",
            "description",
            "category",
            "unit",
            "warehouse_id",
            "warehouse_code",
            "cost_price",
            "selling_price",
            "average_cost",
            "valuation_method",
            "current_stock",
            "reserved_stock",
            "available_stock",
            "in_transit_stock",
            "damaged_stock",
            "reorder_level",
            "min_stock_level",
            "max_stock_level",
            "total_value",
            "last_stock_update",
            "is_low_stock",
            "is_out_of_stock",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class InventoryItemWriteSerializer(serializers.Serializer):
    item_code = serializers.CharField(max_length=40, required=False, allow_blank=True)
    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    category = serializers.ChoiceField(choices=InventoryItem.Category.choices)
    unit = serializers.CharField(max_length=20)
    warehouse_id = serializers.UUIDField(required=False, allow_null=True)

    cost_price = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)
    selling_price = serializers.DecimalField(
        max_digits=14, decimal_places=2, required=False
    )
    valuation_method = serializers.ChoiceField(
        choices=InventoryItem.ValuationMethod.choices, required=False
    )

    reorder_level = serializers.DecimalField(
        max_digits=14, decimal_places=3, required=False
    )
    min_stock_level = serializers.DecimalField(
        max_digits=14, decimal_places=3, required=False
    )
    max_stock_level = serializers.DecimalField(
        max_digits=14, decimal_places=3, required=False
    )


class InventoryItemCreateSerializer(InventoryItemWriteSerializer):
    opening_stock = serializers.DecimalField(
        max_digits=14,
        decimal_places=3,
        required=False,
        min_value=Decimal("0"),
    )


class InventoryItemUpdateSerializer(InventoryItemWriteSerializer):
    is_active = serializers.BooleanField(required=False)


# ==========================================================
# STOCK OPERATIONS (INPUT)
# ==========================================================

class StockUpdateSerializer(serializers.Serializer):
    MOVEMENT_CHOICES = ["in", "out", *StockMovement.MovementType.values]

    movement_type = serializers.ChoiceField(choices=MOVEMENT_CHOICES)
    quantity = serializers.DecimalField(max_digits=14, decimal_places=3)
    warehouse_id = serializers.UUIDField(required=False, allow_null=True)
    to_warehouse_id = serializers.UUIDField(required=False, allow_null=True)
    rate = serializers.DecimalField(
        max_digits=14, decimal_places=2, required=False, allow_null=True
    )
    reference_type = serializers.ChoiceField(
        choices=StockMovement.ReferenceType.choices, required=False, allow_blank=True
    )
    reference_number = serializers.CharField(
        max_length=64, required=False, allow_blank=True
    )
    notes = serializers.CharField(required=False, allow_blank=True)


class ReservationSerializer(serializers.Serializer):
    quantity = serializers.DecimalField(
        max_digits=14, decimal_places=3, min_value=Decimal("0.001")
    )
    reference_number = serializers.CharField(
        max_length=64, required=False, allow_blank=True
    )


# ==========================================================
# MOVEMENTS (OUTPUT)
# ==========================================================

class StockMovementSerializer(serializers.ModelSerializer):
    item_id = serializers.UUIDField(read_only=True)
    item_code = serializers.CharField(source="item.item_code", read_only=True)
    item_name = serializers.CharField(source="item.name", read_only=True)
    from_warehouse_id = serializers.UUIDField(read_only=True, allow_null=True)
    to_warehouse_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = StockMovement
        fields = [
            "id",
            "movement_number",
            "item_id",
            "item_code",
            "item_name",
            "movement_type",
            "quantity",
            "rate",
            "total_value",
            "from_warehouse_id",
            "to_warehouse_id",
            "reference_type",
            "reference_number",
            "reference_id",
            "notes",
            "stock_before",
            "stock_after",
            "reserved_before",
            "reserved_after",
            "available_before",
            "available_after",
            "cost_before",
            "cost_after",
            "value_before",
            "value_after",
            "approval_status",
            "approved_at",
            "movement_date",
            "created_at",
        ]
        read_only_fields = fields


class MovementApprovalSerializer(serializers.Serializer):
    approval_status = serializers.ChoiceField(
        choices=[
            StockMovement.ApprovalStatus.APPROVED,
            StockMovement.ApprovalStatus.REJECTED,
        ]
    )


class HistoryEntrySerializer(serializers.Serializer):
    movement = StockMovementSerializer(read_only=True)
    running_balance = serializers.DecimalField(
        max_digits=14, decimal_places=3, read_only=True
    )
