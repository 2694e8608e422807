from django.contrib.auth import authenticate
from django.core.validators import RegexValidator
from rest_framework import serializers
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.tokens import RefreshToken

from .models import User


NAME_VALIDATOR = RegexValidator(
    r"^[a-zA-ZáéíóúÁÉÍÓÚñÑüÜ\s]+$",
    "El nombre solo puede contener letras y espacios",
)
PASSWORD_VALIDATOR = RegexValidator(
    r"^(?=.*[A-Za-z])(?=.*\d)",
    "La contraseña debe contener al menos una letra y un número",
)


def tokens_for(user) -> dict:
    refresh = RefreshToken.for_user(user)
    return {"access": str(refresh.access_token), "refresh": str(refresh)}


class UserSerializer(serializers.ModelSerializer):
    nombre = serializers.CharField(source="name")
    creadoEn = serializers.DateTimeField(source="date_joined")

    class Meta:
        model = User
        fields = ("id", "nombre", "email", "creadoEn")


class RegistrationSerializer(serializers.Serializer):
    nombre = serializers.CharField(
        source="name",
        min_length=2,
        max_length=100,
        validators=[NAME_VALIDATOR],
        error_messages={
            "min_length": "El nombre debe tener al menos 2 caracteres",
            "max_length": "El nombre no puede exceder 100 caracteres",
        },
    )
    email = serializers.EmailField(error_messages={"invalid": "Email inválido"})
    password = serializers.CharField(
        min_length=6,
        max_length=100,
        write_only=True,
        trim_whitespace=False,
        validators=[PASSWORD_VALIDATOR],
        error_messages={"min_length": "La contraseña debe tener al menos 6 caracteres"},
    )

    def validate_nombre(self, value: str):
        return value.strip()

    def validate_email(self, value: str):
        return value.lower()


class LoginSerializer(serializers.Serializer):
    """Checks the credentials; ``validated_data["user"]`` is the authenticated user."""

    email = serializers.EmailField(error_messages={"invalid": "Email inválido"})
    password = serializers.CharField(write_only=True, trim_whitespace=False)

    def validate(self, attrs):
        user = authenticate(
            request=self.context.get("request"),
            email=attrs["email"].lower(),
            password=attrs["password"],
        )
        if not user:
            raise AuthenticationFailed("Email o contraseña incorrectos")
        return {"user": user}
