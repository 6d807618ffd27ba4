# visitors/api/serializers.py

from rest_framework import serializers

from visitors.models import Visitor


class VisitorSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)
    is_inside = serializers.BooleanField(read_only=True)

    class Meta:
        model = Visitor
        fields = [
            "id",
            "visitor_number",
            "first_name",
            "last_name",
            "full_name",
            "phone",
            "email",
            "organisation",
            "id_type",
            "id_number",
            "visit_purpose",
            "visitor_type",
            "host",
            "host_name",
            "department",
            "scheduled_arrival",
            "expected_duration_minutes",
            "vehicle_number",
            "status",
            "is_inside",
            "approval_required",
            "approval_status",
            "approved_by",
            "approved_at",
            "approval_notes",
            "rejected_by",
            "rejected_at",
            "rejection_reason",
            "actual_arrival",
            "actual_departure",
            "entry_gate",
            "exit_gate",
            "checked_in_by",
            "checked_out_by",
            "feedback_rating",
            "cancelled_at",
            "notes",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class VisitorWriteSerializer(serializers.Serializer):
    first_name = serializers.CharField(max_length=100)
    last_name = serializers.CharField(max_length=100)
    phone = serializers.CharField(max_length=30)
    email = serializers.EmailField(required=False, allow_blank=True)
    organisation = serializers.CharField(max_length=200, required=False, allow_blank=True)
    id_type = serializers.ChoiceField(
        choices=Visitor.IdType.choices, required=False, allow_blank=True
    )
    id_number = serializers.CharField(max_length=50, required=False, allow_blank=True)
    visit_purpose = serializers.ChoiceField(choices=Visitor.Purpose.choices)
    visitor_type = serializers.ChoiceField(choices=Visitor.VisitorType.choices, required=False)
    host_id = serializers.UUIDField(required=False, allow_null=True)
    department = serializers.CharField(max_length=100, required=False, allow_blank=True)
    scheduled_arrival = serializers.DateTimeField()
    expected_duration_minutes = serializers.IntegerField(
        required=False, allow_null=True, min_value=1
    )
    vehicle_number = serializers.CharField(max_length=30, required=False, allow_blank=True)
    approval_required = serializers.BooleanField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class CheckInSerializer(serializers.Serializer):
    gate = serializers.CharField(max_length=50, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class CheckOutSerializer(serializers.Serializer):
    gate = serializers.CharField(max_length=50, required=False, allow_blank=True)
    rating = serializers.IntegerField(
        required=False, allow_null=True, min_value=1, max_value=5
    )
    notes = serializers.CharField(required=False, allow_blank=True)


class ApproveSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True)


class RejectSerializer(serializers.Serializer):
    reason = serializers.CharField()
