"""
Operations endpoints (mounted under /_health/ and /_metrics/).

No authentication; protect them at network level in production.
"""
from django.urls import re_path

from ops.health import LivenessView, ReadinessView, FullHealthView
from ops.metrics import MetricsView

urlpatterns = [
    re_path(r"^live/?$", LivenessView.as_view(), name="health-live"),
    re_path(r"^ready/?$", ReadinessView.as_view(), name="health-ready"),
    re_path(r"^full/?$", FullHealthView.as_view(), name="health-full"),
]

# Included separately by minierp_backend/urls.py
metrics_patterns = [
    re_path(r"^$", MetricsView.as_view(), name="metrics"),
]
