# accounts/views.py
"""
Authentication endpoints. Every body uses the envelope from minierp_backend.api.
"""

from rest_framework import permissions, status
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenRefreshView

from accounts.authz import resolve_actor
from minierp_backend.api import result_error_response, success_response
from .commands import register_user
from .serializers import LoginSerializer, RegistrationSerializer, UserSerializer, tokens_for
from .throttles import LoginThrottle, RegistrationThrottle


class RegisterView(APIView):
    """POST /api/auth/registro -> create user, seed defaults, issue tokens"""
    permission_classes = [permissions.AllowAny]
    authentication_classes = []
    throttle_classes = [RegistrationThrottle]

    def post(self, request):
        serializer = RegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = register_user(**serializer.validated_data)
        if not result.success:
            return result_error_response(result)

        user = result.data
        return success_response(
            {"usuario": UserSerializer(user).data, "tokens": tokens_for(user)},
            mensaje="Usuario creado exitosamente",
            http_status=status.HTTP_201_CREATED,
        )


class LoginView(APIView):
    """POST /api/auth/login -> tokens for valid credentials, 401 otherwise"""
    permission_classes = [permissions.AllowAny]
    authentication_classes = []
    throttle_classes = [LoginThrottle]

    def post(self, request):
        serializer = LoginSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)

        user = serializer.validated_data["user"]
        return success_response(
            {"usuario": UserSerializer(user).data, "tokens": tokens_for(user)},
            mensaje="Login exitoso",
        )


class RefreshView(TokenRefreshView):
    """POST /api/auth/refresh -> new access token for a valid refresh token"""

    def post(self, request, *args, **kwargs):
        response = super().post(request, *args, **kwargs)
        return success_response({"tokens": response.data})


class VerifyView(APIView):
    """GET /api/auth/verificar -> the user behind the Bearer token"""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        return success_response(
            {"usuario": UserSerializer(actor.user).data, "valido": True},
            mensaje="Token válido",
        )
