# users/serializers.py

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers

from permissions.roles import ROLE_CHOICES, ROLE_SUPER_ADMIN

User = get_user_model()

ASSIGNABLE_ROLES = [(v, label) for v, label in ROLE_CHOICES if v != ROLE_SUPER_ADMIN]


# ---------------- REGISTER ----------------
class RegisterSerializer(serializers.Serializer):
    """
    Staff registration inside the caller's company.
    Company comes from the registering admin, never from the payload.
    """

    email = serializers.EmailField()
    password = serializers.CharField(
        write_only=True,
        validators=[validate_password],
        style={"input_type": "password"},
    )
    first_name = serializers.CharField(required=False, allow_blank=True, default="")
    last_name = serializers.CharField(required=False, allow_blank=True, default="")
    phone = serializers.CharField(required=False, allow_blank=True, default="")
    role = serializers.ChoiceField(choices=ASSIGNABLE_ROLES)

    def validate_email(self, value):
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("A user with this email already exists")
        return value


# ---------------- LOGIN (INPUT ONLY) ----------------
class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, style={"input_type": "password"})


# ---------------- USER OUTPUT ----------------
class UserSerializer(serializers.ModelSerializer):
    company_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "first_name",
            "last_name",
            "phone",
            "role",
            "company_id",
            "is_active",
        ]
