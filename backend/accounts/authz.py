# accounts/authz.py
"""
Authorization utilities for Mini ERP.

Provides:
- ActorContext: Immutable context for the current request
- resolve_actor: Extract actor context from request

Ownership is the only authorization rule: an actor sees and mutates
nothing but the records whose ``user`` is the actor's user. Commands
receive the ActorContext and scope every lookup by ``actor.user_id``.
"""

from dataclasses import dataclass

from rest_framework.exceptions import NotAuthenticated


@dataclass(frozen=True)
class ActorContext:
    """
    Immutable context for the current actor.

    Attributes:
        user: The authenticated user (owner of every record touched)
    """
    user: object  # User model

    @property
    def user_id(self) -> int:
        return self.user.pk

    @property
    def is_authenticated(self) -> bool:
        """Mirror Django's user.is_authenticated for compatibility."""
        return bool(getattr(self.user, "is_authenticated", False))


def resolve_actor(request) -> ActorContext:
    """
    Extract ActorContext from the current request.

    Raises:
        NotAuthenticated: If user is not authenticated
    """
    user = getattr(request, "user", None)

    if not user or not user.is_authenticated:
        raise NotAuthenticated("Token de autenticación requerido")

    return ActorContext(user=user)
