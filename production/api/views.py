# production/api/views.py

"""
======================================================
PATH: production/api/views.py
======================================================
PRODUCTION API

Endpoints (under /api/production/):
- orders/                              CRUD (delete: draft / cancelled only)
- orders/stats/                        counts, planned vs actual, efficiency
- orders/<id>/status/                  POST approve / hold
- orders/<id>/start/                   POST reserve materials + start
- orders/<id>/stages/<index>/complete/ POST finish one stage
- orders/<id>/complete/                POST finish the order
- orders/<id>/cancel/                  POST cancel + release materials

Security:
- Module "production"; start needs "start_process", stage / order
  completion need "quality_check".
======================================================
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.decorators import action

from core.api.responses import success_response
from core.api.views import CompanyServiceViewSet
from permissions.roles import (
    ACTION_APPROVE,
    ACTION_EDIT,
    ACTION_QUALITY_CHECK,
    ACTION_START_PROCESS,
    MODULE_PRODUCTION,
)
from production.api.filters import ProductionOrderFilter
from production.api.serializers import (
    CancellationSerializer,
    ProductionCompletionSerializer,
    ProductionOrderCreateSerializer,
    ProductionOrderSerializer,
    ProductionOrderWriteSerializer,
    ProductionStatusSerializer,
    StageCompletionSerializer,
)
from production.services.totals import STAGE_COST_FIELDS


class ProductionOrderViewSet(CompanyServiceViewSet):
    permission_module = MODULE_PRODUCTION
    permission_actions = {
        "status": ACTION_APPROVE,
        "start": ACTION_START_PROCESS,
        "complete_stage": ACTION_QUALITY_CHECK,
        "complete": ACTION_QUALITY_CHECK,
        "cancel": ACTION_EDIT,
    }
    service_name = "production"
    resource_label = "Production order"

    serializer_class = ProductionOrderSerializer
    create_serializer_class = ProductionOrderCreateSerializer
    update_serializer_class = ProductionOrderWriteSerializer
    filterset_class = ProductionOrderFilter

    def respond(self, order, message):
        # Reload so nested materials / stages reflect the committed state.
        order = self.get_service().get(self.get_company(), order.pk)
        return success_response(self.output(order), message)

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
        return success_response(stats, "Production statistics")

    @extend_schema(request=ProductionStatusSerializer, responses=ProductionOrderSerializer)
    @action(detail=True, methods=["post", "patch"])
    def status(self, request, pk=None):
        data = self.validated(ProductionStatusSerializer)
        order = self.get_service().update_status(
            self.get_company(),
            pk,
            status=data["status"],
            notes=data.get("notes", ""),
            user=request.user,
        )
        return self.respond(order, "Production order status updated")

    @extend_schema(request=None, responses=ProductionOrderSerializer)
    @action(detail=True, methods=["post"])
    def start(self, request, pk=None):
        order = self.get_service().start_production(
            self.get_company(), pk, user=request.user
        )
        return self.respond(order, "Production started")

    @extend_schema(request=StageCompletionSerializer, responses=ProductionOrderSerializer)
    @action(
        detail=True,
        methods=["post"],
        url_path=r"stages/(?P<index>\d+)/complete",
    )
    def complete_stage(self, request, pk=None, index=None):
        data = self.validated(StageCompletionSerializer)
        costs = {field: data[field] for field in STAGE_COST_FIELDS if field in data}
        order = self.get_service().complete_stage(
            self.get_company(),
            pk,
            index,
            output_quantity=data.get("output_quantity"),
            defect_quantity=data.get("defect_quantity"),
            quality_notes=data.get("quality_notes", ""),
            costs=costs,
            user=request.user,
        )
        return self.respond(order, "Production stage completed")

    @extend_schema(request=ProductionCompletionSerializer, responses=ProductionOrderSerializer)
    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):
        data = self.validated(ProductionCompletionSerializer)
        order = self.get_service().complete_production(
            self.get_company(),
            pk,
            completed_quantity=data.get("completed_quantity"),
            rejected_quantity=data.get("rejected_quantity"),
            quality_notes=data.get("quality_notes", ""),
            user=request.user,
        )
        return self.respond(order, "Production order completed")

    @extend_schema(request=CancellationSerializer, responses=ProductionOrderSerializer)
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        data = self.validated(CancellationSerializer)
        order = self.get_service().cancel_production(
            self.get_company(), pk, reason=data.get("reason", ""), user=request.user
        )
        return self.respond(order, "Production order cancelled")
