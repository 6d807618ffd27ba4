# users/views/me.py

from drf_spectacular.utils import extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from core.api.responses import success_response
from users.serializers import UserSerializer


class MeView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = UserSerializer

    @extend_schema(
        responses={200: UserSerializer},
        description="Get current authenticated user profile",
    )
    def get(self, request):
        return success_response(UserSerializer(request.user).data, "Profile retrieved")
