# tests/test_ledger.py
"""
Tests for the balance ledger and stock tracker.

Tests cover:
- Signed delta per transaction kind
- Which transactions move stock
- Storage-level increments and the zero-row guard
"""

import pytest
from decimal import Decimal

from finance.ledger import (
    LedgerWriteError,
    adjust_stock,
    apply_balance_delta,
    balance_delta,
    sells_stock,
)
from finance.models import Account, Item, Transaction


class TestBalanceDelta:
    def test_income_adds(self):
        assert balance_delta(Transaction.Kind.INCOME, Decimal("250.00")) == Decimal("250.00")

    def test_expense_subtracts(self):
        assert balance_delta(Transaction.Kind.EXPENSE, Decimal("80.50")) == Decimal("-80.50")

    def test_transfer_is_an_outflow(self):
        assert balance_delta(Transaction.Kind.TRANSFER, Decimal("40.00")) == Decimal("-40.00")

    def test_accepts_string_amounts(self):
        assert balance_delta(Transaction.Kind.INCOME, "10.10") == Decimal("10.10")


@pytest.mark.django_db
class TestSellsStock:
    def test_income_with_product_sells(self, product):
        assert sells_stock(Transaction.Kind.INCOME, product) is True

    def test_expense_with_product_does_not_sell(self, product):
        assert sells_stock(Transaction.Kind.EXPENSE, product) is False

    def test_income_with_service_does_not_sell(self, service):
        assert sells_stock(Transaction.Kind.INCOME, service) is False

    def test_no_item(self):
        assert sells_stock(Transaction.Kind.INCOME, None) is False


@pytest.mark.django_db
class TestApplyBalanceDelta:
    def test_increments_from_stored_value(self, funded_account):
        apply_balance_delta(funded_account.pk, Decimal("-150.25"))
        apply_balance_delta(funded_account.pk, Decimal("50.00"))

        funded_account.refresh_from_db()
        assert funded_account.balance == Decimal("899.75")

    def test_ignores_stale_instances(self, funded_account):
        """The increment is computed by the database, not from the Python object."""
        stale = Account.objects.get(pk=funded_account.pk)
        apply_balance_delta(funded_account.pk, Decimal("100.00"))
        apply_balance_delta(stale.pk, Decimal("100.00"))

        funded_account.refresh_from_db()
        assert funded_account.balance == Decimal("1200.00")

    def test_zero_delta_is_noop(self, account):
        before = Account.objects.get(pk=account.pk).updated_at
        apply_balance_delta(account.pk, Decimal("0"))
        assert Account.objects.get(pk=account.pk).updated_at == before

    def test_missing_account_raises(self, db):
        with pytest.raises(LedgerWriteError):
            apply_balance_delta(999999, Decimal("1.00"))

    def test_save_does_not_overwrite_balance(self, funded_account):
        stale = Account.objects.get(pk=funded_account.pk)
        apply_balance_delta(funded_account.pk, Decimal("-300.00"))

        stale.name = "Caja chica"
        stale.save()

        funded_account.refresh_from_db()
        assert funded_account.name == "Caja chica"
        assert funded_account.balance == Decimal("700.00")


@pytest.mark.django_db
class TestAdjustStock:
    def test_decrement_and_increment(self, product):
        adjust_stock(product.pk, -1)
        adjust_stock(product.pk, -1)
        adjust_stock(product.pk, 1)

        product.refresh_from_db()
        assert product.stock == 4

    def test_missing_item_raises(self, db):
        with pytest.raises(LedgerWriteError):
            adjust_stock(999999, -1)

    def test_save_does_not_overwrite_stock(self, product):
        stale = Item.objects.get(pk=product.pk)
        adjust_stock(product.pk, -3)

        stale.price = Decimal("175.00")
        stale.save()

        product.refresh_from_db()
        assert product.price == Decimal("175.00")
        assert product.stock == 2
