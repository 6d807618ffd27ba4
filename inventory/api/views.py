# inventory/api/views.py

"""
======================================================
PATH: inventory/api/views.py
======================================================
INVENTORY API

Endpoints (under /api/inventory/):
- items/                       CRUD (delete = deactivate)
- items/search/?q=             code / name / description / category
- items/stats/                 counts + valuation
- items/low-stock/             active items at or below reorder level
- items/<id>/stock/            POST update stock (in / out / adjustment / transfer ...)
- items/<id>/reserve/          POST reserve for an order
- items/<id>/release/          POST release a reservation
- items/<id>/movements/        last movements for one item
- warehouses/                  CRUD
- movements/                   list / retrieve (ledger is append-only)
- movements/stats/
- movements/<id>/approval/     PATCH approval status
- movements/items/<id>/history/  running balance

Security:
- Module "inventory"; adjustments additionally require the "adjust" action.
======================================================
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.decorators import action

from core.api.responses import paginated_response, success_response
from core.api.views import CompanyServiceReadOnlyViewSet, CompanyServiceViewSet
from core.exceptions import AuthorizationError
from inventory.api.filters import InventoryItemFilter, StockMovementFilter
from inventory.api.serializers import (
    HistoryEntrySerializer,
    InventoryItemCreateSerializer,
    InventoryItemSerializer,
    InventoryItemUpdateSerializer,
    MovementApprovalSerializer,
    ReservationSerializer,
    StockMovementSerializer,
    StockUpdateSerializer,
    WarehouseSerializer,
)
from inventory.models import StockMovement
from permissions.roles import (
    ACTION_ADJUST,
    ACTION_APPROVE,
    ACTION_EDIT,
    MODULE_INVENTORY,
    user_can,
)


class WarehouseViewSet(CompanyServiceViewSet):
    permission_module = MODULE_INVENTORY
    service_name = "warehouses"
    resource_label = "Warehouse"
    serializer_class = WarehouseSerializer


class InventoryItemViewSet(CompanyServiceViewSet):
    permission_module = MODULE_INVENTORY
    permission_actions = {
        "update_stock": ACTION_EDIT,
        "reserve": ACTION_EDIT,
        "release": ACTION_EDIT,
    }
    service_name = "inventory"
    resource_label = "Inventory item"

    serializer_class = InventoryItemSerializer
    create_serializer_class = InventoryItemCreateSerializer
    update_serializer_class = InventoryItemUpdateSerializer
    filterset_class = InventoryItemFilter

    @extend_schema(
        parameters=[OpenApiParameter("q", str, required=True)],
        responses=InventoryItemSerializer(many=True),
    )
    @action(detail=False, methods=["get"])
    def search(self, request):
        page = self.get_service().search_items(
            self.get_company(),
            request.query_params.get("q", ""),
            page=request.query_params.get("page"),
            limit=request.query_params.get("limit"),
        )
        return paginated_response(page, InventoryItemSerializer, "Search results")

    @action(detail=False, methods=["get"])
    def stats(self, request):
        return success_response(
            self.get_service().stats(self.get_company()), "Inventory statistics"
        )

    @extend_schema(responses=InventoryItemSerializer(many=True))
    @action(detail=False, methods=["get"], url_path="low-stock")
    def low_stock(self, request):
        items = self.get_service().low_stock_items(self.get_company())
        return success_response(
            InventoryItemSerializer(items, many=True).data, "Low stock items"
        )

    @extend_schema(request=StockUpdateSerializer, responses=StockMovementSerializer)
    @action(detail=True, methods=["post"], url_path="stock")
    def update_stock(self, request, pk=None):
        data = self.validated(StockUpdateSerializer)

        if data["movement_type"] == StockMovement.MovementType.ADJUSTMENT and not user_can(
            request.user, MODULE_INVENTORY, ACTION_ADJUST
        ):
            raise AuthorizationError("Stock adjustments require the adjust permission")

        result = self.get_service().update_stock(
            company=self.get_company(),
            item_id=pk,
            created_by=request.user,
            **data,
        )
        return success_response(
            {
                "item": InventoryItemSerializer(result.item).data,
                "movement": StockMovementSerializer(result.movement).data,
            },
            "Stock updated",
        )

    @extend_schema(request=ReservationSerializer, responses=InventoryItemSerializer)
    @action(detail=True, methods=["post"])
    def reserve(self, request, pk=None):
        data = self.validated(ReservationSerializer)
        item = self.get_service().reserve_stock(
            company=self.get_company(), item_id=pk, **data
        )
        return success_response(InventoryItemSerializer(item).data, "Stock reserved")

    @extend_schema(request=ReservationSerializer, responses=InventoryItemSerializer)
    @action(detail=True, methods=["post"])
    def release(self, request, pk=None):
        data = self.validated(ReservationSerializer)
        item = self.get_service().release_reserved_stock(
            company=self.get_company(), item_id=pk, **data
        )
        return success_response(InventoryItemSerializer(item).data, "Reserved stock released")

    @extend_schema(responses=StockMovementSerializer(many=True))
    @action(detail=True, methods=["get"])
    def movements(self, request, pk=None):
        history = self.get_service().movement_history(self.get_company(), pk)
        return success_response(
            StockMovementSerializer(history, many=True).data, "Movement history"
        )


class StockMovementViewSet(CompanyServiceReadOnlyViewSet):
    permission_module = MODULE_INVENTORY
    permission_actions = {"approval": ACTION_APPROVE}
    service_name = "movements"
    resource_label = "Stock movement"
    serializer_class = StockMovementSerializer
    filterset_class = StockMovementFilter

    @extend_schema(
        parameters=[
            OpenApiParameter("date_from", str),
            OpenApiParameter("date_to", str),
        ]
    )
    @action(detail=False, methods=["get"])
    def stats(self, request):
        stats = self.get_service().stats(
            company=self.get_company(),
            date_from=request.query_params.get("date_from") or None,
            date_to=request.query_params.get("date_to") or None,
        )
        return success_response(stats, "Movement statistics")

    @extend_schema(request=MovementApprovalSerializer, responses=StockMovementSerializer)
    @action(detail=True, methods=["patch", "post"])
    def approval(self, request, pk=None):
        data = self.validated(MovementApprovalSerializer)
        movement = self.get_service().update_approval(
            company=self.get_company(),
            movement_id=pk,
            approval_status=data["approval_status"],
            user=request.user,
        )
        return success_response(
            StockMovementSerializer(movement).data, "Approval status updated"
        )

    @extend_schema(responses=HistoryEntrySerializer(many=True))
    @action(
        detail=False,
        methods=["get"],
        url_path=r"items/(?P<item_id>[^/.]+)/history",
    )
    def item_history(self, request, item_id=None):
        company = self.get_company()
        item = self.services.inventory.get(company, item_id)
        entries = self.get_service().item_history(company=company, item_id=item.pk)
        return success_response(
            {
                "item_id": str(item.pk),
                "item_code": item.item_code,
                "current_stock": item.current_stock,
                "history": HistoryEntrySerializer(entries, many=True).data,
            },
            "Item history",
        )
