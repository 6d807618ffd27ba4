# users/views/auth.py

import logging

from django.contrib.auth import authenticate, get_user_model
from drf_spectacular.utils import extend_schema
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from core.api.responses import created_response, success_response
from core.exceptions import AuthenticationError
from permissions.roles import MODULE_ADMIN, HasModulePermission
from users.serializers import LoginSerializer, RegisterSerializer, UserSerializer

User = get_user_model()

logger = logging.getLogger("erp.auth")


def _tokens_for(user) -> dict:
    refresh = RefreshToken.for_user(user)
    return {"access": str(refresh.access_token), "refresh": str(refresh)}


class RegisterView(APIView):
    """Company admins add staff to their own company."""

    permission_classes = [IsAuthenticated, HasModulePermission]
    permission_module = MODULE_ADMIN
    serializer_class = RegisterSerializer

    @extend_schema(
        request=RegisterSerializer,
        responses={201: UserSerializer},
        description="Register a staff user in the caller's company",
    )
    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        user = User.objects.create_user(
            email=data["email"],
            password=data["password"],
            first_name=data["first_name"],
            last_name=data["last_name"],
            phone=data["phone"],
            role=data["role"],
            company=request.user.company,
        )
        logger.info(
            "User registered",
            extra={"user_id": str(user.id), "company_id": str(user.company_id)},
        )
        return created_response(UserSerializer(user).data, "User registered successfully")


class LoginAnonThrottle(AnonRateThrottle):
    """Brute-force guard on login. Rate: DEFAULT_THROTTLE_RATES["login"]."""

    scope = "login"


class LoginView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [LoginAnonThrottle]
    serializer_class = LoginSerializer

    @extend_schema(
        request=LoginSerializer,
        responses={200: dict},
        description="Authenticate with email + password and receive JWT tokens",
    )
    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = authenticate(
            request=request,
            email=serializer.validated_data["email"],
            password=serializer.validated_data["password"],
        )
        if not user:
            logger.warning(
                "Login failed", extra={"email": serializer.validated_data["email"]}
            )
            raise AuthenticationError("Invalid credentials")

        return success_response(
            {"user": UserSerializer(user).data, "tokens": _tokens_for(user)},
            "Login successful",
        )
