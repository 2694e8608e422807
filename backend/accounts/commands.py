# accounts/commands.py
"""
Command layer for user registration.

Registration creates the user and seeds the starter catalog (default
categories and a cash account) in the same transaction, so a user never
exists without them.
"""

import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction

from finance.commands import CommandResult, seed_user_defaults
from minierp_backend.api import ErrorCode

User = get_user_model()

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL = "Ya existe un usuario con este email"


@transaction.atomic
def register_user(name: str, email: str, password: str) -> CommandResult:
    """
    Create a user with a usable password and the default catalog.

    Returns:
        CommandResult with the new User or a CONFLICTO error
    """
    email = User.objects.normalize_email(email).lower()
    if User.objects.filter(email__iexact=email).exists():
        return CommandResult.fail(ErrorCode.CONFLICT, DUPLICATE_EMAIL)

    try:
        with transaction.atomic():
            user = User.objects.create_user(email=email, name=name, password=password)
    except IntegrityError:
        return CommandResult.fail(ErrorCode.CONFLICT, DUPLICATE_EMAIL)

    seed_user_defaults(user)
    logger.info("user.registered", extra={"user_id": user.pk})
    return CommandResult.ok(user)
