# purchases/api/serializers.py

"""
PURCHASES SERIALIZERS

Input serializers type-check only; SupplierService / PurchaseOrderService
own the rules.
"""

from decimal import Decimal

from rest_framework import serializers

from core.money import DISCOUNT_AMOUNT, DISCOUNT_PERCENTAGE
from purchases.models import PurchaseOrder, PurchaseOrderItem, Supplier


# ==========================================================
# SUPPLIERS
# ==========================================================

class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = [
            "id",
            "supplier_code",
            "name",
            "category",
            "contact_person",
            "phone",
            "email",
            "address",
            "tax_number",
            "payment_terms_days",
            "rating",
            "rated_at",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "rating", "rated_at", "created_at", "updated_at"]
        extra_kwargs = {"supplier_code": {"required": False, "allow_blank": True}}


class SupplierRatingSerializer(serializers.Serializer):
    rating = serializers.DecimalField(max_digits=3, decimal_places=2)


# ==========================================================
# PURCHASE ORDERS
# ==========================================================

class PurchaseOrderItemSerializer(serializers.ModelSerializer):
    item_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = PurchaseOrderItem
        fields = [
            "id",
            "item_id",
            "item_code",
            "item_name",
            "unit",
            "quantity",
            "rate",
            "discount_type",
            "discount_value",
            "tax_rate",
            "amount",
            "discount_amount",
            "taxable_amount",
            "tax_amount",
            "line_total",
            "received_quantity",
            "rejected_quantity",
            "pending_quantity",
        ]
        read_only_fields = fields


class PurchaseOrderSerializer(serializers.ModelSerializer):
    supplier_id = serializers.UUIDField(read_only=True)
    supplier_name = serializers.CharField(source="supplier.name", read_only=True)
    warehouse_id = serializers.UUIDField(read_only=True, allow_null=True)
    is_overdue = serializers.BooleanField(read_only=True)
    items = PurchaseOrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            "id",
            "po_number",
            "supplier_id",
            "supplier_name",
            "warehouse_id",
            "po_date",
            "expected_delivery_date",
            "status",
            "priority",
            "receiving_status",
            "subtotal",
            "discount_total",
            "taxable_amount",
            "tax_total",
            "freight_charges",
            "other_charges",
            "round_off",
            "grand_total",
            "total_ordered",
            "total_received",
            "total_pending",
            "is_overdue",
            "notes",
            "terms",
            "sent_at",
            "acknowledged_at",
            "first_receipt_at",
            "fully_received_at",
            "cancelled_at",
            "items",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PurchaseLineInputSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    item_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    quantity = serializers.DecimalField(
        max_digits=14, decimal_places=3, min_value=Decimal("0.001")
    )
    rate = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0"))
    discount_type = serializers.ChoiceField(
        choices=[DISCOUNT_PERCENTAGE, DISCOUNT_AMOUNT], required=False
    )
    discount_value = serializers.DecimalField(
        max_digits=14, decimal_places=2, required=False, min_value=Decimal("0")
    )
    tax_rate = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        required=False,
        min_value=Decimal("0"),
        max_value=Decimal("100"),
    )


class PurchaseOrderWriteSerializer(serializers.Serializer):
    supplier_id = serializers.UUIDField()
    warehouse_id = serializers.UUIDField(required=False, allow_null=True)
    po_date = serializers.DateField(required=False)
    expected_delivery_date = serializers.DateField(required=False, allow_null=True)
    priority = serializers.ChoiceField(choices=PurchaseOrder.Priority.choices, required=False)
    freight_charges = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)
    other_charges = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)
    round_off = serializers.DecimalField(max_digits=8, decimal_places=2, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    terms = serializers.CharField(required=False, allow_blank=True)
    items = PurchaseLineInputSerializer(many=True)


class PurchaseOrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[
            PurchaseOrder.Status.SENT,
            PurchaseOrder.Status.ACKNOWLEDGED,
            PurchaseOrder.Status.CANCELLED,
        ]
    )


class ReceivedLineSerializer(serializers.Serializer):
    line_id = serializers.UUIDField()
    received_quantity = serializers.DecimalField(
        max_digits=14, decimal_places=3, min_value=Decimal("0")
    )
    rejected_quantity = serializers.DecimalField(
        max_digits=14, decimal_places=3, required=False, min_value=Decimal("0")
    )


class ReceiveItemsSerializer(serializers.Serializer):
    items = ReceivedLineSerializer(many=True)
