# tests/conftest.py
"""
Pytest fixtures for Mini ERP tests.

- ActorContext requires: user
- Commands take the actor as first arg and return CommandResult
- API tests authenticate with a real Bearer token
"""

import pytest
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.authz import ActorContext
from accounts.serializers import tokens_for
from finance.models import Account, Category, Item


User = get_user_model()


@pytest.fixture(autouse=True)
def _clear_throttle_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()
    yield
    cache.clear()


# =============================================================================
# User & Actor Fixtures
# =============================================================================

@pytest.fixture
def user(db):
    """Create a test user."""
    return User.objects.create_user(
        email="owner@test.com",
        password="testpass123",
        name="Test Owner",
    )


@pytest.fixture
def other_user(db):
    """Create a second user to check ownership isolation."""
    return User.objects.create_user(
        email="other@test.com",
        password="testpass123",
        name="Other User",
    )


@pytest.fixture
def actor(user):
    return ActorContext(user=user)


@pytest.fixture
def other_actor(other_user):
    return ActorContext(user=other_user)


# =============================================================================
# API Client Fixtures
# =============================================================================

@pytest.fixture
def anon_client():
    return APIClient()


@pytest.fixture
def api_client(user):
    """APIClient carrying the user's Bearer access token."""
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens_for(user)['access']}")
    return client


@pytest.fixture
def other_client(other_user):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens_for(other_user)['access']}")
    return client


# =============================================================================
# Finance Fixtures
# =============================================================================
# Balances and stock are set with QuerySet.update so fixtures never go
# through Model.save, which leaves those columns alone on existing rows.

def _set_balance(account, amount) -> Account:
    Account.objects.filter(pk=account.pk).update(balance=Decimal(amount))
    account.refresh_from_db()
    return account


def _set_stock(item, stock: int) -> Item:
    Item.objects.filter(pk=item.pk).update(stock=stock)
    item.refresh_from_db()
    return item


@pytest.fixture
def set_balance():
    return _set_balance


@pytest.fixture
def set_stock():
    return _set_stock


@pytest.fixture
def account(db, user):
    """Cash account with a zero balance."""
    return Account.objects.create(
        user=user,
        name="Caja",
        account_type=Account.AccountType.CASH,
        currency=Account.Currency.ARS,
    )


@pytest.fixture
def funded_account(account):
    """The cash account with 1000.00 on it."""
    return _set_balance(account, "1000.00")


@pytest.fixture
def usd_account(db, user):
    return Account.objects.create(
        user=user,
        name="Banco USD",
        account_type=Account.AccountType.BANK,
        currency=Account.Currency.USD,
    )


@pytest.fixture
def product_category(db, user):
    return Category.objects.create(user=user, name="Electrónicos", kind=Category.Kind.PRODUCT)


@pytest.fixture
def service_category(db, user):
    return Category.objects.create(user=user, name="Consultoría", kind=Category.Kind.SERVICE)


@pytest.fixture
def expense_category(db, user):
    return Category.objects.create(user=user, name="Servicios públicos", kind=Category.Kind.EXPENSE)


@pytest.fixture
def product(db, user, product_category):
    """Product with 5 units in stock and a minimum of 2."""
    return Item.objects.create(
        user=user,
        category=product_category,
        name="Auriculares",
        item_type=Item.ItemType.PRODUCT,
        price=Decimal("150.00"),
        cost=Decimal("90.00"),
        stock=5,
        min_stock=2,
    )


@pytest.fixture
def service(db, user, service_category):
    return Item.objects.create(
        user=user,
        category=service_category,
        name="Asesoría",
        item_type=Item.ItemType.SERVICE,
        price=Decimal("300.00"),
    )


@pytest.fixture
def other_account(db, other_user):
    """Account owned by other_user."""
    return _set_balance(
        Account.objects.create(
            user=other_user,
            name="Caja ajena",
            account_type=Account.AccountType.CASH,
        ),
        "500.00",
    )


@pytest.fixture
def today():
    return timezone.localdate()
