# finance/policies.py
"""
Business policy functions for finance operations.

Policies answer: "Is this action allowed given the current state?"
They do NOT perform the action; that's the command's job.

Usage:
    from finance.policies import can_spend, fetch_owned

    account = fetch_owned(Account, actor, account_id, lock=True)
    allowed, reason = can_spend(account, amount)
    if not allowed:
        return CommandResult.fail(ErrorCode.INSUFFICIENT_BALANCE, reason)

Design Principles:
1. Policies are pure functions (no side effects)
2. Policies return (bool, str) tuples for clear error messages
3. Ownership is checked in one place, for every entity type
"""

from decimal import Decimal

from finance.models import Account, Category, Item, Transaction


# =============================================================================
# Ownership
# =============================================================================

NOT_FOUND_MESSAGES = {
    Account: "Cuenta no encontrada",
    Category: "Categoría no encontrada",
    Item: "Artículo no encontrado",
    Transaction: "Transacción no encontrada",
}

INACTIVE_MESSAGES = {
    Account: "La cuenta está inactiva",
    Category: "La categoría está inactiva",
    Item: "El artículo está inactivo",
}


def check_ownership(actor, entity) -> bool:
    """Verify entity belongs to the acting user."""
    return entity is not None and entity.user_id == actor.user_id


def fetch_owned(model, actor, pk, *, lock=False, related=()):
    """
    Fetch a row of ``model`` owned by the actor, or None.

    Rows that do not exist and rows that belong to another user are
    indistinguishable to the caller. With ``lock=True`` the row is locked
    with SELECT ... FOR UPDATE until the surrounding transaction ends.
    """
    if pk in (None, ""):
        return None
    qs = model.objects.filter(user_id=actor.user_id)
    if lock:
        qs = qs.select_for_update()
    if related:
        qs = qs.select_related(*related)
    try:
        return qs.get(pk=pk)
    except (model.DoesNotExist, ValueError, TypeError):
        return None


def not_found_message(model) -> str:
    return NOT_FOUND_MESSAGES.get(model, "Registro no encontrado")


def can_reference(entity) -> tuple[bool, str]:
    """An account, category or item can be referenced by new data only while active."""
    if not entity.is_active:
        return False, INACTIVE_MESSAGES.get(type(entity), "Registro inactivo")
    return True, ""


# =============================================================================
# Transaction Policies
# =============================================================================

def can_spend(account, amount: Decimal) -> tuple[bool, str]:
    """An expense may not exceed the account's current balance."""
    if account.balance < amount:
        return False, "Saldo insuficiente en la cuenta"
    return True, ""


def can_sell_item(item) -> tuple[bool, str]:
    if item.stock <= 0:
        return False, "Stock insuficiente para este producto"
    return True, ""


def is_valid_amount(amount) -> tuple[bool, str]:
    if amount is None or Decimal(amount) <= 0:
        return False, "El monto debe ser mayor a 0"
    return True, ""


# =============================================================================
# Account Policies
# =============================================================================

def can_delete_account(actor, account) -> tuple[bool, str]:
    """
    Check if an account can be deleted.

    Returns:
        (True, "") if allowed
        (False, reason) if not allowed
    """
    if not check_ownership(actor, account):
        return False, not_found_message(Account)
    if account.transactions.exists():
        return False, "No se puede eliminar la cuenta porque tiene transacciones asociadas"
    return True, ""


# =============================================================================
# Item Policies
# =============================================================================

def can_categorize_item(category, item_type: str) -> tuple[bool, str]:
    """An item's category must be active and of the same kind as the item."""
    if category is None or not category.is_active or category.kind != item_type:
        return False, f"Categoría no encontrada o no es del tipo {item_type}"
    return True, ""


def normalize_item_fields(item_type: str, data: dict) -> dict:
    """
    Reset the fields that do not apply to ``item_type``.

    Services and expense types never carry stock or a barcode. Only expense
    types may recur. Values sent by the client are overwritten.
    """
    data = dict(data)
    if item_type == Item.ItemType.SERVICE:
        data.update(stock=0, min_stock=0, barcode=None, is_recurring=False, frequency=None)
    elif item_type == Item.ItemType.EXPENSE:
        data.update(stock=0, min_stock=0, barcode=None)
        if not data.get("is_recurring"):
            data["frequency"] = None
    elif item_type == Item.ItemType.PRODUCT:
        data.update(is_recurring=False, frequency=None)
    return data


def validate_recurrence(item_type: str, is_recurring: bool, frequency) -> tuple[bool, str]:
    if item_type == Item.ItemType.EXPENSE and is_recurring and not frequency:
        return False, "Los gastos recurrentes requieren una frecuencia"
    return True, ""
