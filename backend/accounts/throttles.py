# accounts/throttles.py
"""
Rate limits for the anonymous auth endpoints.

Rates live in settings.REST_FRAMEWORK['DEFAULT_THROTTLE_RATES'] under the
scopes below, keyed by client IP.
"""

from rest_framework.throttling import AnonRateThrottle


class RegistrationThrottle(AnonRateThrottle):
    """POST /api/auth/registro"""
    scope = 'registration'


class LoginThrottle(AnonRateThrottle):
    """POST /api/auth/login"""
    scope = 'login'
