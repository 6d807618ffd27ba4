# purchases/api/views.py

"""
======================================================
PATH: purchases/api/views.py
======================================================
PURCHASES API

Endpoints (under /api/purchases/):
- suppliers/                   CRUD (delete = deactivate)
- suppliers/search/?q=
- suppliers/stats/
- suppliers/<id>/rating/       POST 1..5
- orders/                      CRUD (edit / delete: drafts only)
- orders/overdue/              open orders past expected delivery
- orders/stats/
- orders/<id>/status/          POST send / acknowledge / cancel
- orders/<id>/receive-items/   POST goods receipt -> inward stock

Security:
- Module "purchases"; status changes need "approve".
======================================================
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.decorators import action

from core.api.responses import paginated_response, success_response
from core.api.views import CompanyServiceViewSet
from permissions.roles import ACTION_APPROVE, ACTION_EDIT, MODULE_PURCHASES
from purchases.api.filters import PurchaseOrderFilter, SupplierFilter
from purchases.api.serializers import (
    PurchaseOrderSerializer,
    PurchaseOrderStatusSerializer,
    PurchaseOrderWriteSerializer,
    ReceiveItemsSerializer,
    SupplierRatingSerializer,
    SupplierSerializer,
)


class SupplierViewSet(CompanyServiceViewSet):
    permission_module = MODULE_PURCHASES
    permission_actions = {"rating": ACTION_EDIT}
    service_name = "suppliers"
    resource_label = "Supplier"
    serializer_class = SupplierSerializer
    filterset_class = SupplierFilter

    @extend_schema(
        parameters=[OpenApiParameter("q", str, required=True)],
        responses=SupplierSerializer(many=True),
    )
    @action(detail=False, methods=["get"])
    def search(self, request):
        page = self.get_service().search(
            self.get_company(),
            request.query_params.get("q", ""),
            page=request.query_params.get("page"),
            limit=request.query_params.get("limit"),
        )
        return paginated_response(page, SupplierSerializer, "Search results")

    @action(detail=False, methods=["get"])
    def stats(self, request):
        return success_response(
            self.get_service().stats(self.get_company()), "Supplier statistics"
        )

    @extend_schema(request=SupplierRatingSerializer, responses=SupplierSerializer)
    @action(detail=True, methods=["post"])
    def rating(self, request, pk=None):
        data = self.validated(SupplierRatingSerializer)
        supplier = self.get_service().update_rating(self.get_company(), pk, data["rating"])
        return success_response(self.output(supplier), "Supplier rating updated")


class PurchaseOrderViewSet(CompanyServiceViewSet):
    permission_module = MODULE_PURCHASES
    permission_actions = {
        "status": ACTION_APPROVE,
        "receive_items": ACTION_EDIT,
    }
    service_name = "purchase_orders"
    resource_label = "Purchase order"

    serializer_class = PurchaseOrderSerializer
    create_serializer_class = PurchaseOrderWriteSerializer
    update_serializer_class = PurchaseOrderWriteSerializer
    filterset_class = PurchaseOrderFilter

    def respond(self, order, message):
        order = self.get_service().get(self.get_company(), order.pk)
        return success_response(self.output(order), message)

    @extend_schema(responses=PurchaseOrderSerializer(many=True))
    @action(detail=False, methods=["get"])
    def overdue(self, request):
        orders = self.get_service().overdue_orders(self.get_company())
        return success_response(
            PurchaseOrderSerializer(orders, many=True).data, "Overdue purchase orders"
        )

    @extend_schema(
        parameters=[
            OpenApiParameter("date_from", str),
            OpenApiParameter("date_to", str),
        ]
    )
    @action(detail=False, methods=["get"])
    def stats(self, request):
        stats = self.get_service().stats(
            self.get_company(),
            date_from=request.query_params.get("date_from") or None,
            date_to=request.query_params.get("date_to") or None,
        )
        return success_response(stats, "Purchase order statistics")

    @extend_schema(request=PurchaseOrderStatusSerializer, responses=PurchaseOrderSerializer)
    @action(detail=True, methods=["post", "patch"])
    def status(self, request, pk=None):
        data = self.validated(PurchaseOrderStatusSerializer)
        order = self.get_service().update_status(
            self.get_company(), pk, status=data["status"], user=request.user
        )
        return self.respond(order, "Purchase order status updated")

    @extend_schema(request=ReceiveItemsSerializer, responses=PurchaseOrderSerializer)
    @action(detail=True, methods=["post"], url_path="receive-items")
    def receive_items(self, request, pk=None):
        data = self.validated(ReceiveItemsSerializer)
        order = self.get_service().receive_items(
            self.get_company(), pk, data["items"], user=request.user
        )
        return self.respond(order, "Items received")
