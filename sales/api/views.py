# sales/api/views.py

"""
======================================================
PATH: sales/api/views.py
======================================================
SALES API

Endpoints (under /api/sales/):
- customers/                          CRUD (delete = deactivate)
- customers/search/?q=  customers/stats/
- customers/<id>/credit-limit/        POST
- quotations/                         CRUD (edit / delete: drafts only)
- quotations/expired/  quotations/stats/
- quotations/expire/                  POST sweep past valid_until
- quotations/<id>/status/             POST
- quotations/<id>/convert-to-order/   POST accepted -> customer order
- invoices/                           CRUD (edit / delete: drafts only)
- invoices/overdue/  invoices/stats/
- invoices/mark-overdue/              POST sweep past due date
- invoices/<id>/status/               POST send / overdue / cancel
- invoices/<id>/payments/             GET list, POST record payment
- orders/                             CRUD (edit / delete: drafts only)
- orders/stats/
- orders/<id>/status/                 POST

Security:
- customers / quotations / orders: module "orders"
- invoices: module "financial"; payments need "record_payment"
- approving a quotation needs "approve"; dispatch / delivery need
  "dispatch"
======================================================
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.decorators import action

from core.api.responses import created_response, paginated_response, success_response
from core.api.views import CompanyServiceViewSet
from core.exceptions import AuthorizationError
from permissions.roles import (
    ACTION_APPROVE,
    ACTION_CREATE,
    ACTION_DISPATCH,
    ACTION_EDIT,
    ACTION_RECORD_PAYMENT,
    MODULE_FINANCIAL,
    MODULE_ORDERS,
    user_can,
)
from sales.api.filters import (
    CustomerFilter,
    CustomerOrderFilter,
    InvoiceFilter,
    QuotationFilter,
)
from sales.api.serializers import (
    ConvertToOrderSerializer,
    CreditLimitSerializer,
    CustomerOrderSerializer,
    CustomerOrderStatusSerializer,
    CustomerOrderWriteSerializer,
    CustomerSerializer,
    InvoicePaymentSerializer,
    InvoiceSerializer,
    InvoiceStatusSerializer,
    InvoiceWriteSerializer,
    QuotationSerializer,
    QuotationStatusSerializer,
    QuotationWriteSerializer,
    RecordPaymentSerializer,
)
from sales.services.customer_order_service import DISPATCH_STATUSES
from sales.services.quotation_service import APPROVAL_STATUSES

DATE_RANGE_PARAMETERS = [
    OpenApiParameter("date_from", str),
    OpenApiParameter("date_to", str),
]


class DateRangeStatsMixin:
    stats_message = "Statistics"

    @extend_schema(parameters=DATE_RANGE_PARAMETERS)
    @action(detail=False, methods=["get"])
    def stats(self, request):
        stats = self.get_service().stats(
            self.get_company(),
            date_from=request.query_params.get("date_from") or None,
            date_to=request.query_params.get("date_to") or None,
        )
        return success_response(stats, self.stats_message)


class DocumentViewSet(CompanyServiceViewSet):
    def respond(self, document, message):
        document = self.get_service().get(self.get_company(), document.pk)
        return success_response(self.output(document), message)

    def require(self, action_name: str, message: str) -> None:
        if not user_can(self.request.user, self.permission_module, action_name):
            raise AuthorizationError(message)


# ==========================================================
# CUSTOMERS
# ==========================================================

class CustomerViewSet(CompanyServiceViewSet):
    permission_module = MODULE_ORDERS
    permission_actions = {"credit_limit": ACTION_EDIT}
    service_name = "customers"
    resource_label = "Customer"
    serializer_class = CustomerSerializer
    filterset_class = CustomerFilter

    @extend_schema(
        parameters=[OpenApiParameter("q", str, required=True)],
        responses=CustomerSerializer(many=True),
    )
    @action(detail=False, methods=["get"])
    def search(self, request):
        page = self.get_service().search(
            self.get_company(),
            request.query_params.get("q", ""),
            page=request.query_params.get("page"),
            limit=request.query_params.get("limit"),
        )
        return paginated_response(page, CustomerSerializer, "Search results")

    @action(detail=False, methods=["get"])
    def stats(self, request):
        return success_response(
            self.get_service().stats(self.get_company()), "Customer statistics"
        )

    @extend_schema(request=CreditLimitSerializer, responses=CustomerSerializer)
    @action(detail=True, methods=["post"], url_path="credit-limit")
    def credit_limit(self, request, pk=None):
        data = self.validated(CreditLimitSerializer)
        customer = self.get_service().update_credit_limit(
            self.get_company(), pk, data["credit_limit"], updated_by=request.user
        )
        return success_response(self.output(customer), "Credit limit updated")


# ==========================================================
# QUOTATIONS
# ==========================================================

class QuotationViewSet(DateRangeStatsMixin, DocumentViewSet):
    permission_module = MODULE_ORDERS
    permission_actions = {
        "status": ACTION_EDIT,
        "expire": ACTION_EDIT,
        "convert_to_order": ACTION_CREATE,
    }
    service_name = "quotations"
    resource_label = "Quotation"
    stats_message = "Quotation statistics"

    serializer_class = QuotationSerializer
    create_serializer_class = QuotationWriteSerializer
    update_serializer_class = QuotationWriteSerializer
    filterset_class = QuotationFilter

    @extend_schema(responses=QuotationSerializer(many=True))
    @action(detail=False, methods=["get"])
    def expired(self, request):
        quotations = self.get_service().expired_quotations(self.get_company())
        return success_response(
            QuotationSerializer(quotations, many=True).data, "Expired quotations"
        )

    @action(detail=False, methods=["post"])
    def expire(self, request):
        count = self.get_service().expire_overdue(self.get_company())
        return success_response({"expired": count}, "Quotations expired")

    @extend_schema(request=QuotationStatusSerializer, responses=QuotationSerializer)
    @action(detail=True, methods=["post", "patch"])
    def status(self, request, pk=None):
        data = self.validated(QuotationStatusSerializer)
        if data["status"] in APPROVAL_STATUSES:
            self.require(ACTION_APPROVE, "Only approvers can approve or reject quotations")
        quotation = self.get_service().update_status(
            self.get_company(), pk, status=data["status"], user=request.user
        )
        return self.respond(quotation, "Quotation status updated")

    @extend_schema(request=ConvertToOrderSerializer, responses=CustomerOrderSerializer)
    @action(detail=True, methods=["post"], url_path="convert-to-order")
    def convert_to_order(self, request, pk=None):
        data = self.validated(ConvertToOrderSerializer)
        order = self.get_service().convert_to_order(
            self.get_company(), pk, user=request.user, data=dict(data)
        )
        order = self.services.customer_orders.get(self.get_company(), order.pk)
        return created_response(
            CustomerOrderSerializer(order).data, "Quotation converted to order"
        )


# ==========================================================
# INVOICES
# ==========================================================

class InvoiceViewSet(DateRangeStatsMixin, DocumentViewSet):
    permission_module = MODULE_FINANCIAL
    permission_actions = {
        "status": ACTION_EDIT,
        "mark_overdue": ACTION_EDIT,
        "record_payment": ACTION_RECORD_PAYMENT,
    }
    service_name = "invoices"
    resource_label = "Invoice"
    stats_message = "Invoice statistics"

    serializer_class = InvoiceSerializer
    create_serializer_class = InvoiceWriteSerializer
    update_serializer_class = InvoiceWriteSerializer
    filterset_class = InvoiceFilter

    @extend_schema(responses=InvoiceSerializer(many=True))
    @action(detail=False, methods=["get"])
    def overdue(self, request):
        invoices = self.get_service().overdue_invoices(self.get_company())
        return success_response(InvoiceSerializer(invoices, many=True).data, "Overdue invoices")

    @action(detail=False, methods=["post"], url_path="mark-overdue")
    def mark_overdue(self, request):
        count = self.get_service().mark_overdue(self.get_company())
        return success_response({"marked": count}, "Overdue invoices marked")

    @extend_schema(request=InvoiceStatusSerializer, responses=InvoiceSerializer)
    @action(detail=True, methods=["post", "patch"])
    def status(self, request, pk=None):
        data = self.validated(InvoiceStatusSerializer)
        invoice = self.get_service().update_status(
            self.get_company(), pk, status=data["status"], user=request.user
        )
        return self.respond(invoice, "Invoice status updated")

    @extend_schema(responses=InvoicePaymentSerializer(many=True))
    @action(detail=True, methods=["get"])
    def payments(self, request, pk=None):
        payments = self.get_service().payments(self.get_company(), pk)
        return success_response(
            InvoicePaymentSerializer(payments, many=True).data, "Invoice payments"
        )

    @extend_schema(request=RecordPaymentSerializer, responses=InvoiceSerializer)
    @payments.mapping.post
    def record_payment(self, request, pk=None):
        data = self.validated(RecordPaymentSerializer)
        invoice = self.get_service().record_payment(
            self.get_company(), pk, user=request.user, **data
        )
        return self.respond(invoice, "Payment recorded")


# ==========================================================
# CUSTOMER ORDERS
# ==========================================================

class CustomerOrderViewSet(DateRangeStatsMixin, DocumentViewSet):
    permission_module = MODULE_ORDERS
    permission_actions = {"status": ACTION_EDIT}
    service_name = "customer_orders"
    resource_label = "Customer order"
    stats_message = "Customer order statistics"

    serializer_class = CustomerOrderSerializer
    create_serializer_class = CustomerOrderWriteSerializer
    update_serializer_class = CustomerOrderWriteSerializer
    filterset_class = CustomerOrderFilter

    @extend_schema(request=CustomerOrderStatusSerializer, responses=CustomerOrderSerializer)
    @action(detail=True, methods=["post", "patch"])
    def status(self, request, pk=None):
        data = self.validated(CustomerOrderStatusSerializer)
        if data["status"] in DISPATCH_STATUSES:
            self.require(ACTION_DISPATCH, "You do not have permission to dispatch orders")
        order = self.get_service().update_status(
            self.get_company(), pk, status=data["status"], user=request.user
        )
        return self.respond(order, "Customer order status updated")
