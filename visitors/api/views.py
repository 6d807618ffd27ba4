# visitors/api/views.py

"""
======================================================
PATH: visitors/api/views.py
======================================================
VISITOR API

Endpoints (under /api/visitors/):
- /                       CRUD (edit: scheduled only, delete = deactivate)
- inside/ today/ overstaying/ search/?q= stats/
- <id>/check-in/          POST
- <id>/check-out/         POST
- <id>/cancel/            POST
- <id>/approve/           POST
- <id>/reject/            POST

Security: module "security"; approve / reject need "approve".
======================================================
"""

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.decorators import action

from core.api.responses import paginated_response, success_response
from core.api.views import CompanyServiceViewSet
from permissions.roles import ACTION_APPROVE, ACTION_EDIT, MODULE_SECURITY
from visitors.api.filters import VisitorFilter
from visitors.api.serializers import (
    ApproveSerializer,
    CheckInSerializer,
    CheckOutSerializer,
    RejectSerializer,
    VisitorSerializer,
    VisitorWriteSerializer,
)


class VisitorViewSet(CompanyServiceViewSet):
    permission_module = MODULE_SECURITY
    permission_actions = {
        "check_in": ACTION_EDIT,
        "check_out": ACTION_EDIT,
        "cancel": ACTION_EDIT,
        "approve": ACTION_APPROVE,
        "reject": ACTION_APPROVE,
    }
    service_name = "visitors"
    resource_label = "Visitor"

    serializer_class = VisitorSerializer
    create_serializer_class = VisitorWriteSerializer
    update_serializer_class = VisitorWriteSerializer
    filterset_class = VisitorFilter

    def listing(self, visitors, message):
        return success_response(VisitorSerializer(visitors, many=True).data, message)

    # --------------------------------------------------
    # Listings
    # --------------------------------------------------

    @extend_schema(responses=VisitorSerializer(many=True))
    @action(detail=False, methods=["get"])
    def inside(self, request):
        return self.listing(self.get_service().inside(self.get_company()), "Visitors inside")

    @extend_schema(responses=VisitorSerializer(many=True))
    @action(detail=False, methods=["get"])
    def today(self, request):
        return self.listing(
            self.get_service().scheduled_today(self.get_company()), "Visitors scheduled today"
        )

    @extend_schema(responses=VisitorSerializer(many=True))
    @action(detail=False, methods=["get"])
    def overstaying(self, request):
        return self.listing(
            self.get_service().overstaying(self.get_company()), "Overstaying visitors"
        )

    @extend_schema(
        parameters=[OpenApiParameter("q", str, required=True)],
        responses=VisitorSerializer(many=True),
    )
    @action(detail=False, methods=["get"])
    def search(self, request):
        page = self.get_service().search(
            self.get_company(),
            request.query_params.get("q", ""),
            page=request.query_params.get("page"),
            limit=request.query_params.get("limit"),
        )
        return paginated_response(page, VisitorSerializer, "Search results")

    @extend_schema(
        parameters=[OpenApiParameter("date_from", str), OpenApiParameter("date_to", str)]
    )
    @action(detail=False, methods=["get"])
    def stats(self, request):
        stats = self.get_service().stats(
            self.get_company(),
            date_from=request.query_params.get("date_from") or None,
            date_to=request.query_params.get("date_to") or None,
        )
        return success_response(stats, "Visitor statistics")

    # --------------------------------------------------
    # Gate
    # --------------------------------------------------

    @extend_schema(request=CheckInSerializer, responses=VisitorSerializer)
    @action(detail=True, methods=["post"], url_path="check-in")
    def check_in(self, request, pk=None):
        data = self.validated(CheckInSerializer)
        visitor = self.get_service().check_in(
            self.get_company(), pk, user=request.user, **data
        )
        return success_response(self.output(visitor), "Visitor checked in")

    @extend_schema(request=CheckOutSerializer, responses=VisitorSerializer)
    @action(detail=True, methods=["post"], url_path="check-out")
    def check_out(self, request, pk=None):
        data = self.validated(CheckOutSerializer)
        visitor = self.get_service().check_out(
            self.get_company(), pk, user=request.user, **data
        )
        return success_response(self.output(visitor), "Visitor checked out")

    @extend_schema(request=None, responses=VisitorSerializer)
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        visitor = self.get_service().cancel(self.get_company(), pk, user=request.user)
        return success_response(self.output(visitor), "Visit cancelled")

    # --------------------------------------------------
    # Approval
    # --------------------------------------------------

    @extend_schema(request=ApproveSerializer, responses=VisitorSerializer)
    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):
        data = self.validated(ApproveSerializer)
        visitor = self.get_service().approve(
            self.get_company(), pk, user=request.user, notes=data.get("notes", "")
        )
        return success_response(self.output(visitor), "Visitor approved")

    @extend_schema(request=RejectSerializer, responses=VisitorSerializer)
    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        data = self.validated(RejectSerializer)
        visitor = self.get_service().reject(
            self.get_company(), pk, user=request.user, reason=data["reason"]
        )
        return success_response(self.output(visitor), "Visitor rejected")
