# finance/ledger.py
"""
Balance ledger and stock tracker.

These are the only code paths that write Account.balance and Item.stock.
Both are applied as storage-level increments (``F("balance") + delta``)
so concurrent writers never lose each other's updates. Callers run them
inside the unit of work opened by the command layer; a write that matches
no row raises LedgerWriteError so the whole unit rolls back.
"""

from decimal import Decimal
import logging

from django.db.models import F
from django.utils import timezone

from finance.models import Account, Item, Transaction


logger = logging.getLogger(__name__)


class LedgerWriteError(Exception):
    """Raised when a balance or stock increment did not hit exactly one row."""


def balance_delta(kind: str, amount: Decimal) -> Decimal:
    """
    Signed effect of a transaction on its account balance.

    INGRESO adds the amount. GASTO and TRANSFERENCIA subtract it; a transfer
    is an outflow from the account it references.
    """
    amount = Decimal(amount)
    if kind == Transaction.Kind.INCOME:
        return amount
    return -amount


def sells_stock(kind: str, item) -> bool:
    """True when a transaction of ``kind`` linked to ``item`` is a one-unit product sale."""
    return (
        item is not None
        and kind == Transaction.Kind.INCOME
        and item.item_type == Item.ItemType.PRODUCT
    )


def apply_balance_delta(account_id: int, delta: Decimal) -> None:
    """Atomically add ``delta`` to the account balance."""
    if not delta:
        return
    updated = Account.objects.filter(pk=account_id).update(
        balance=F("balance") + delta,
        updated_at=timezone.now(),
    )
    if updated != 1:
        raise LedgerWriteError(f"Account {account_id} not found while applying balance delta")
    logger.debug(f"Applied balance delta {delta} to account {account_id}")


def adjust_stock(item_id: int, delta: int) -> None:
    """Atomically add ``delta`` units to the item stock."""
    if not delta:
        return
    updated = Item.objects.filter(pk=item_id).update(
        stock=F("stock") + delta,
        updated_at=timezone.now(),
    )
    if updated != 1:
        raise LedgerWriteError(f"Item {item_id} not found while adjusting stock")
    logger.debug(f"Adjusted stock of item {item_id} by {delta}")
