# sales/api/serializers.py

"""
SALES SERIALIZERS

Output serializers mirror the models; input serializers type-check only.
CustomerService / QuotationService / InvoiceService / CustomerOrderService
own the rules.
"""

from decimal import Decimal

from rest_framework import serializers

from core.money import DISCOUNT_AMOUNT, DISCOUNT_PERCENTAGE
from sales.models import (
    Customer,
    CustomerOrder,
    CustomerOrderItem,
    Invoice,
    InvoiceItem,
    InvoicePayment,
    Quotation,
    QuotationItem,
)

LINE_FIELDS = [
    "id",
    "item_id",
    "description",
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
]

AMOUNT_FIELDS = [
    "subtotal",
    "discount_total",
    "taxable_amount",
    "tax_total",
    "other_charges",
    "round_off",
]


# ==========================================================
# CUSTOMERS
# ==========================================================

class CustomerSerializer(serializers.ModelSerializer):
    available_credit = serializers.DecimalField(
        max_digits=18, decimal_places=2, read_only=True
    )
    credit_utilization = serializers.DecimalField(
        max_digits=7, decimal_places=2, read_only=True
    )

    class Meta:
        model = Customer
        fields = [
            "id",
            "customer_code",
            "name",
            "customer_type",
            "contact_person",
            "email",
            "phone",
            "billing_address",
            "shipping_address",
            "tax_number",
            "credit_limit",
            "credit_days",
            "outstanding_amount",
            "available_credit",
            "credit_utilization",
            "last_credit_review",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "outstanding_amount",
            "last_credit_review",
            "created_at",
            "updated_at",
        ]
        extra_kwargs = {"customer_code": {"required": False, "allow_blank": True}}


class CreditLimitSerializer(serializers.Serializer):
    credit_limit = serializers.DecimalField(
        max_digits=18, decimal_places=2, min_value=Decimal("0")
    )


# ==========================================================
# LINES
# ==========================================================

class LineInputSerializer(serializers.Serializer):
    item_id = serializers.UUIDField(required=False, allow_null=True)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True)
    unit = serializers.CharField(max_length=20, required=False, allow_blank=True)
    quantity = serializers.DecimalField(max_digits=14, decimal_places=3)
    rate = serializers.DecimalField(max_digits=14, decimal_places=2)
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


class OrderLineInputSerializer(LineInputSerializer):
    product_type = serializers.ChoiceField(
        choices=CustomerOrderItem.ProductType.choices, required=False
    )


class QuotationItemSerializer(serializers.ModelSerializer):
    item_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = QuotationItem
        fields = LINE_FIELDS
        read_only_fields = LINE_FIELDS


class InvoiceItemSerializer(serializers.ModelSerializer):
    item_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = InvoiceItem
        fields = LINE_FIELDS
        read_only_fields = LINE_FIELDS


class CustomerOrderItemSerializer(serializers.ModelSerializer):
    item_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = CustomerOrderItem
        fields = LINE_FIELDS + ["product_type"]
        read_only_fields = fields


# ==========================================================
# QUOTATIONS
# ==========================================================

class QuotationSerializer(serializers.ModelSerializer):
    customer_id = serializers.UUIDField(read_only=True)
    customer_name = serializers.CharField(source="customer.name", read_only=True)
    is_expired = serializers.BooleanField(read_only=True)
    items = QuotationItemSerializer(many=True, read_only=True)

    class Meta:
        model = Quotation
        fields = [
            "id",
            "quotation_number",
            "customer_id",
            "customer_name",
            "quotation_date",
            "valid_until",
            "status",
            "is_expired",
            *AMOUNT_FIELDS,
            "grand_total",
            "notes",
            "terms",
            "sent_at",
            "approved_at",
            "accepted_at",
            "rejected_at",
            "expired_at",
            "converted_at",
            "cancelled_at",
            "items",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class QuotationWriteSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField()
    quotation_date = serializers.DateField(required=False)
    valid_until = serializers.DateField()
    other_charges = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)
    round_off = serializers.DecimalField(max_digits=8, decimal_places=2, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    terms = serializers.CharField(required=False, allow_blank=True)
    items = LineInputSerializer(many=True)


class QuotationStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Quotation.Status.choices)


class ConvertToOrderSerializer(serializers.Serializer):
    order_date = serializers.DateField(required=False)
    expected_delivery_date = serializers.DateField(required=False, allow_null=True)
    delivery_address = serializers.CharField(required=False, allow_blank=True)
    priority = serializers.ChoiceField(choices=CustomerOrder.Priority.choices, required=False)
    advance_amount = serializers.DecimalField(max_digits=18, decimal_places=2, required=False)
    credit_days = serializers.IntegerField(required=False, min_value=0)


# ==========================================================
# INVOICES
# ==========================================================

class InvoicePaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = InvoicePayment
        fields = [
            "id",
            "amount",
            "method",
            "payment_date",
            "reference",
            "notes",
            "recorded_at",
        ]
        read_only_fields = fields


class InvoiceSerializer(serializers.ModelSerializer):
    customer_id = serializers.UUIDField(read_only=True)
    customer_name = serializers.CharField(source="customer.name", read_only=True)
    customer_order_id = serializers.UUIDField(read_only=True, allow_null=True)
    items = InvoiceItemSerializer(many=True, read_only=True)

    class Meta:
        model = Invoice
        fields = [
            "id",
            "invoice_number",
            "invoice_type",
            "customer_id",
            "customer_name",
            "customer_order_id",
            "invoice_date",
            "due_date",
            "financial_year",
            "status",
            "payment_status",
            *AMOUNT_FIELDS,
            "grand_total",
            "paid_amount",
            "outstanding_amount",
            "notes",
            "terms",
            "sent_at",
            "paid_at",
            "overdue_at",
            "cancelled_at",
            "items",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class InvoiceWriteSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField()
    customer_order_id = serializers.UUIDField(required=False, allow_null=True)
    invoice_type = serializers.ChoiceField(choices=Invoice.InvoiceType.choices, required=False)
    invoice_date = serializers.DateField(required=False)
    due_date = serializers.DateField()
    other_charges = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)
    round_off = serializers.DecimalField(max_digits=8, decimal_places=2, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    terms = serializers.CharField(required=False, allow_blank=True)
    items = LineInputSerializer(many=True)


class InvoiceStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[Invoice.Status.SENT, Invoice.Status.OVERDUE, Invoice.Status.CANCELLED]
    )


class RecordPaymentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=18, decimal_places=2)
    method = serializers.ChoiceField(
        choices=InvoicePayment.Method.choices, required=False
    )
    payment_date = serializers.DateField(required=False)
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)


# ==========================================================
# CUSTOMER ORDERS
# ==========================================================

class CustomerOrderSerializer(serializers.ModelSerializer):
    customer_id = serializers.UUIDField(read_only=True)
    customer_name = serializers.CharField(source="customer.name", read_only=True)
    quotation_id = serializers.UUIDField(read_only=True, allow_null=True)
    is_payment_overdue = serializers.BooleanField(read_only=True)
    items = CustomerOrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = CustomerOrder
        fields = [
            "id",
            "order_number",
            "customer_id",
            "customer_name",
            "quotation_id",
            "order_date",
            "expected_delivery_date",
            "delivery_address",
            "status",
            "priority",
            *AMOUNT_FIELDS,
            "total_amount",
            "final_amount",
            "advance_amount",
            "balance_amount",
            "credit_days",
            "due_date",
            "payment_status",
            "is_payment_overdue",
            "notes",
            "terms",
            "confirmed_at",
            "production_started_at",
            "dispatched_at",
            "delivered_at",
            "cancelled_at",
            "items",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CustomerOrderWriteSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField()
    order_date = serializers.DateField(required=False)
    expected_delivery_date = serializers.DateField(required=False, allow_null=True)
    delivery_address = serializers.CharField(required=False, allow_blank=True)
    priority = serializers.ChoiceField(choices=CustomerOrder.Priority.choices, required=False)
    other_charges = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)
    round_off = serializers.DecimalField(max_digits=8, decimal_places=2, required=False)
    advance_amount = serializers.DecimalField(max_digits=18, decimal_places=2, required=False)
    credit_days = serializers.IntegerField(required=False, min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True)
    terms = serializers.CharField(required=False, allow_blank=True)
    items = OrderLineInputSerializer(many=True)


class CustomerOrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=CustomerOrder.Status.choices)
