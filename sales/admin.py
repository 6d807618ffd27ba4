# sales/admin.py

from django.contrib import admin

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

LINE_READONLY = ("amount", "discount_amount", "taxable_amount", "tax_amount", "line_total")


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = (
        "customer_code",
        "name",
        "company",
        "customer_type",
        "credit_limit",
        "outstanding_amount",
        "is_active",
    )
    list_filter = ("company", "customer_type", "is_active")
    search_fields = ("customer_code", "name", "email", "phone")


class QuotationItemInline(admin.TabularInline):
    model = QuotationItem
    extra = 0
    readonly_fields = LINE_READONLY


@admin.register(Quotation)
class QuotationAdmin(admin.ModelAdmin):
    list_display = ("quotation_number", "customer", "company", "status", "valid_until", "grand_total")
    list_filter = ("company", "status")
    search_fields = ("quotation_number", "customer__name")
    inlines = [QuotationItemInline]


class InvoiceItemInline(admin.TabularInline):
    model = InvoiceItem
    extra = 0
    readonly_fields = LINE_READONLY


class InvoicePaymentInline(admin.TabularInline):
    model = InvoicePayment
    extra = 0
    readonly_fields = ("amount", "method", "payment_date", "reference", "recorded_by", "recorded_at")
    can_delete = False


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = (
        "invoice_number",
        "customer",
        "company",
        "status",
        "payment_status",
        "grand_total",
        "outstanding_amount",
        "due_date",
    )
    list_filter = ("company", "status", "payment_status", "financial_year")
    search_fields = ("invoice_number", "customer__name")
    inlines = [InvoiceItemInline, InvoicePaymentInline]


class CustomerOrderItemInline(admin.TabularInline):
    model = CustomerOrderItem
    extra = 0
    readonly_fields = LINE_READONLY


@admin.register(CustomerOrder)
class CustomerOrderAdmin(admin.ModelAdmin):
    list_display = (
        "order_number",
        "customer",
        "company",
        "status",
        "priority",
        "final_amount",
        "balance_amount",
        "due_date",
    )
    list_filter = ("company", "status", "priority", "payment_status")
    search_fields = ("order_number", "customer__name")
    inlines = [CustomerOrderItemInline]
