# accounts/urls.py
"""
URL configuration for the auth API (mounted under /api/auth/).

Endpoints:
- /registro - Create a user (seeds default categories and a cash account)
- /login - Exchange email and password for a token pair
- /refresh - Exchange a refresh token for a new access token
- /verificar - Check the Bearer token and return its user

The trailing slash is optional on every route.
"""

from django.urls import re_path

from .views import LoginView, RefreshView, RegisterView, VerifyView

app_name = "accounts"

urlpatterns = [
    re_path(r"^registro/?$", RegisterView.as_view(), name="register"),
    re_path(r"^login/?$", LoginView.as_view(), name="login"),
    re_path(r"^refresh/?$", RefreshView.as_view(), name="token-refresh"),
    re_path(r"^verificar/?$", VerifyView.as_view(), name="verify"),
]
