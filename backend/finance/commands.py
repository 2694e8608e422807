# finance/commands.py
"""
Command layer for finance operations.

Commands are the single point where business operations happen.
Views call commands; commands enforce rules and keep balances and stock
consistent with the transaction set.

Pattern:
1. Resolve owned references (fetch_owned)
2. Apply business policies (can_*)
3. Perform the mutation inside one unit of work
4. Return CommandResult

Every business rule is checked before the unit of work starts. Once it
starts, only a storage failure can still occur, and that rolls back the
transaction row, the balance delta and the stock delta together.
"""

from decimal import Decimal
import logging

from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from accounts.authz import ActorContext
from finance.ledger import (
    LedgerWriteError,
    adjust_stock,
    apply_balance_delta,
    balance_delta,
    sells_stock,
)
from finance.models import Account, Category, Item, Transaction
from finance.policies import (
    can_categorize_item,
    can_delete_account,
    can_reference,
    can_sell_item,
    can_spend,
    fetch_owned,
    is_valid_amount,
    normalize_item_fields,
    not_found_message,
    validate_recurrence,
)
from minierp_backend.api import ErrorCode
from ops.metrics import record_ledger_mutation


logger = logging.getLogger(__name__)


class CommandResult:
    """
    Wrapper for command results with success/failure info.

    Usage:
        result = create_transaction(actor, account_id=1, ...)
        if result.success:
            txn = result.data
        else:
            error_message = result.error
            error_code = result.code
    """

    def __init__(self, success: bool, data=None, error: str = None, code: str = None):
        self.success = success
        self.data = data
        self.error = error
        self.code = code

    @classmethod
    def ok(cls, data=None):
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, code: str, error: str):
        return cls(success=False, error=error, code=code)

    def __repr__(self):
        if self.success:
            return f"CommandResult.ok({self.data!r})"
        return f"CommandResult.fail({self.code!r}, {self.error!r})"


INITIAL_BALANCE_CATEGORY = "Saldo Inicial"
INITIAL_BALANCE_DESCRIPTION = "Saldo inicial de la cuenta"
STORAGE_ERROR_MESSAGE = "No se pudo guardar la operación"

DEFAULT_CATEGORIES = [
    ("Alimentación", Category.Kind.PRODUCT, "#52c41a", "apple"),
    ("Electrónicos", Category.Kind.PRODUCT, "#1890ff", "mobile"),
    ("Ropa", Category.Kind.PRODUCT, "#722ed1", "skin"),
    ("Hogar", Category.Kind.PRODUCT, "#fa8c16", "home"),
    ("Consultoría", Category.Kind.SERVICE, "#13c2c2", "user"),
    ("Mantenimiento", Category.Kind.SERVICE, "#eb2f96", "tool"),
    ("Educación", Category.Kind.SERVICE, "#f5222d", "book"),
    ("Transporte", Category.Kind.SERVICE, "#faad14", "car"),
]


def _reject(operation: str, code: str, reason: str) -> CommandResult:
    """Fail a ledger command before any write happened."""
    logger.info(
        f"transaction.{operation} rejected: {reason}",
        extra={"operation": operation, "code": code},
    )
    record_ledger_mutation(operation, code)
    return CommandResult.fail(code, reason)


def _fetch_active(model, actor: ActorContext, pk, *, lock=False):
    """
    Resolve a reference that new data will point at.

    Returns (instance, None) or (None, (code, reason)).
    """
    instance = fetch_owned(model, actor, pk, lock=lock)
    if instance is None:
        return None, (ErrorCode.NOT_FOUND, not_found_message(model))
    allowed, reason = can_reference(instance)
    if not allowed:
        return None, (ErrorCode.INACTIVE_REFERENCE, reason)
    return instance, None


def _load_transaction(pk) -> Transaction:
    return Transaction.objects.select_related("account", "category", "item").get(pk=pk)


# =============================================================================
# Transaction Commands
# =============================================================================

@transaction.atomic
def create_transaction(
    actor: ActorContext,
    account_id: int,
    kind: str,
    amount: Decimal,
    description: str,
    category_id: int,
    date,
    notes: str = "",
    item_id: int = None,
) -> CommandResult:
    """
    Record an income or expense against one of the actor's accounts.

    Checks, in order: amount, account, category, item, stock of a sold
    product, balance of an expense. Then inserts the row, applies the
    balance delta and takes one unit of stock for a product sale, all in
    one unit of work.

    Returns:
        CommandResult with the created Transaction (account/category/item
        loaded) or error
    """
    allowed, reason = is_valid_amount(amount)
    if not allowed:
        return _reject("create", ErrorCode.VALIDATION, reason)
    amount = Decimal(amount)

    account, failure = _fetch_active(Account, actor, account_id, lock=True)
    if failure:
        return _reject("create", *failure)

    category, failure = _fetch_active(Category, actor, category_id)
    if failure:
        return _reject("create", *failure)

    item = None
    if item_id:
        item, failure = _fetch_active(Item, actor, item_id, lock=True)
        if failure:
            return _reject("create", *failure)
        if sells_stock(kind, item):
            allowed, reason = can_sell_item(item)
            if not allowed:
                return _reject("create", ErrorCode.INSUFFICIENT_STOCK, reason)

    if kind == Transaction.Kind.EXPENSE:
        allowed, reason = can_spend(account, amount)
        if not allowed:
            return _reject("create", ErrorCode.INSUFFICIENT_BALANCE, reason)

    delta = balance_delta(kind, amount)
    try:
        with transaction.atomic():
            txn = Transaction.objects.create(
                user_id=actor.user_id,
                account=account,
                category=category,
                item=item,
                kind=kind,
                amount=amount,
                description=description,
                date=date,
                notes=notes or "",
            )
            apply_balance_delta(account.pk, delta)
            if sells_stock(kind, item):
                adjust_stock(item.pk, -1)
    except (LedgerWriteError, DatabaseError):
        logger.exception("transaction.create failed", extra={"user_id": actor.user_id, "account_id": account.pk})
        record_ledger_mutation("create", ErrorCode.STORAGE)
        return CommandResult.fail(ErrorCode.STORAGE, STORAGE_ERROR_MESSAGE)

    logger.info(
        "transaction.created",
        extra={
            "user_id": actor.user_id,
            "transaction_id": txn.pk,
            "account_id": account.pk,
            "delta": str(delta),
        },
    )
    record_ledger_mutation("create", "ok")
    return CommandResult.ok(_load_transaction(txn.pk))


@transaction.atomic
def update_transaction(
    actor: ActorContext,
    transaction_id: int,
    **updates,
) -> CommandResult:
    """
    Update an existing transaction.

    References are re-validated only when they change. When kind, amount
    or account change, the old effect is reverted on the original account
    and the new effect applied to the current one; both are storage-level
    increments in the same unit of work. Stock is not reconciled here.

    Args:
        actor: The actor context
        transaction_id: ID of transaction to update
        **updates: account_id, category_id, item_id, kind, amount,
            description, date, notes

    Returns:
        CommandResult with updated Transaction or error
    """
    txn = fetch_owned(Transaction, actor, transaction_id, lock=True)
    if txn is None:
        return _reject("update", ErrorCode.NOT_FOUND, not_found_message(Transaction))

    allowed_fields = {
        "account_id", "category_id", "item_id", "kind",
        "amount", "description", "date", "notes",
    }
    changes = {}
    for field, value in updates.items():
        if field in allowed_fields and getattr(txn, field) != value:
            changes[field] = value

    if not changes:
        return CommandResult.ok(_load_transaction(txn.pk))  # No changes, no ledger writes

    if "amount" in changes:
        allowed, reason = is_valid_amount(changes["amount"])
        if not allowed:
            return _reject("update", ErrorCode.VALIDATION, reason)
        changes["amount"] = Decimal(changes["amount"])

    if "account_id" in changes:
        _, failure = _fetch_active(Account, actor, changes["account_id"])
        if failure:
            return _reject("update", *failure)

    if "category_id" in changes:
        _, failure = _fetch_active(Category, actor, changes["category_id"])
        if failure:
            return _reject("update", *failure)

    if changes.get("item_id"):
        _, failure = _fetch_active(Item, actor, changes["item_id"])
        if failure:
            return _reject("update", *failure)

    old_account_id = txn.account_id
    old_delta = balance_delta(txn.kind, txn.amount)
    touches_ledger = bool({"kind", "amount", "account_id"} & changes.keys())

    if touches_ledger:
        # Lock every account involved in pk order.
        account_ids = {old_account_id, changes.get("account_id", old_account_id)}
        list(Account.objects.select_for_update().filter(pk__in=account_ids).order_by("pk"))

    for field, value in changes.items():
        setattr(txn, field, value)
    new_delta = balance_delta(txn.kind, txn.amount)

    field_names = {"account_id": "account", "category_id": "category", "item_id": "item"}
    update_fields = [field_names.get(f, f) for f in changes] + ["updated_at"]

    try:
        with transaction.atomic():
            if touches_ledger:
                apply_balance_delta(old_account_id, -old_delta)
            txn.save(update_fields=update_fields)
            if touches_ledger:
                apply_balance_delta(txn.account_id, new_delta)
    except (LedgerWriteError, DatabaseError):
        logger.exception("transaction.update failed", extra={"user_id": actor.user_id, "transaction_id": txn.pk})
        record_ledger_mutation("update", ErrorCode.STORAGE)
        return CommandResult.fail(ErrorCode.STORAGE, STORAGE_ERROR_MESSAGE)

    logger.info(
        "transaction.updated",
        extra={
            "user_id": actor.user_id,
            "transaction_id": txn.pk,
            "account_id": txn.account_id,
            "delta": str(new_delta - old_delta) if old_account_id == txn.account_id else str(new_delta),
            "fields": sorted(changes),
        },
    )
    record_ledger_mutation("update", "ok")
    return CommandResult.ok(_load_transaction(txn.pk))


@transaction.atomic
def delete_transaction(actor: ActorContext, transaction_id: int) -> CommandResult:
    """
    Delete a transaction and revert its effects.

    The balance effect is reverted on its account and, for a product sale,
    the unit of stock is returned to the item, even if the item has been
    deactivated since.

    Returns:
        CommandResult with None or error
    """
    txn = fetch_owned(Transaction, actor, transaction_id, lock=True)
    if txn is None:
        return _reject("delete", ErrorCode.NOT_FOUND, not_found_message(Transaction))

    Account.objects.select_for_update().filter(pk=txn.account_id).first()
    item = None
    if txn.item_id:
        item = Item.objects.select_for_update().filter(pk=txn.item_id).first()

    delta = -balance_delta(txn.kind, txn.amount)
    txn_id, account_id = txn.pk, txn.account_id
    try:
        with transaction.atomic():
            apply_balance_delta(account_id, delta)
            if sells_stock(txn.kind, item):
                adjust_stock(item.pk, 1)
            txn.delete()
    except (LedgerWriteError, DatabaseError):
        logger.exception("transaction.delete failed", extra={"user_id": actor.user_id, "transaction_id": txn_id})
        record_ledger_mutation("delete", ErrorCode.STORAGE)
        return CommandResult.fail(ErrorCode.STORAGE, STORAGE_ERROR_MESSAGE)

    logger.info(
        "transaction.deleted",
        extra={
            "user_id": actor.user_id,
            "transaction_id": txn_id,
            "account_id": account_id,
            "delta": str(delta),
        },
    )
    record_ledger_mutation("delete", "ok")
    return CommandResult.ok(None)


# =============================================================================
# Account Commands
# =============================================================================

def _initial_balance_category(actor: ActorContext) -> Category:
    category, _ = Category.objects.get_or_create(
        user_id=actor.user_id,
        kind=Category.Kind.PRODUCT,
        name=INITIAL_BALANCE_CATEGORY,
        defaults={"color": "#52c41a"},
    )
    return category


@transaction.atomic
def create_account(
    actor: ActorContext,
    name: str,
    account_type: str,
    currency: str = Account.Currency.ARS,
    description: str = "",
    color: str = "#1890ff",
    initial_balance: Decimal = None,
) -> CommandResult:
    """
    Create a new account for the actor.

    The account starts at zero. A positive ``initial_balance`` is recorded
    as an INGRESO transaction "Saldo inicial de la cuenta" dated today and
    applied through the ledger, so the balance equals the initial amount
    right after creation and stays the sum of its transactions.

    Returns:
        CommandResult with the created Account or error
    """
    if Account.objects.filter(user_id=actor.user_id, name=name).exists():
        return CommandResult.fail(ErrorCode.CONFLICT, "Ya existe una cuenta con este nombre")

    initial_balance = Decimal(initial_balance or 0)
    try:
        with transaction.atomic():
            account = Account.objects.create(
                user_id=actor.user_id,
                name=name,
                account_type=account_type,
                currency=currency,
                description=description or "",
                color=color or "#1890ff",
            )
            if initial_balance > 0:
                txn = Transaction.objects.create(
                    user_id=actor.user_id,
                    account=account,
                    category=_initial_balance_category(actor),
                    kind=Transaction.Kind.INCOME,
                    amount=initial_balance,
                    description=INITIAL_BALANCE_DESCRIPTION,
                    date=timezone.localdate(),
                )
                apply_balance_delta(account.pk, initial_balance)
                logger.info(
                    "transaction.created",
                    extra={
                        "user_id": actor.user_id,
                        "transaction_id": txn.pk,
                        "account_id": account.pk,
                        "delta": str(initial_balance),
                    },
                )
    except IntegrityError:
        return CommandResult.fail(ErrorCode.CONFLICT, "Ya existe una cuenta con este nombre")
    except (LedgerWriteError, DatabaseError):
        logger.exception("account.create failed", extra={"user_id": actor.user_id})
        return CommandResult.fail(ErrorCode.STORAGE, STORAGE_ERROR_MESSAGE)

    if initial_balance > 0:
        record_ledger_mutation("seed", "ok")
    logger.info("account.created", extra={"user_id": actor.user_id, "account_id": account.pk})
    account.refresh_from_db()
    return CommandResult.ok(account)


@transaction.atomic
def update_account(actor: ActorContext, account_id: int, **updates) -> CommandResult:
    """
    Update an account's descriptive fields.

    The balance is never accepted here; it moves only through the ledger.
    """
    account = fetch_owned(Account, actor, account_id, lock=True)
    if account is None:
        return CommandResult.fail(ErrorCode.NOT_FOUND, not_found_message(Account))

    allowed_fields = {"name", "account_type", "currency", "description", "color", "is_active"}
    changes = {}
    for field, value in updates.items():
        if field in allowed_fields and getattr(account, field) != value:
            changes[field] = value

    if not changes:
        return CommandResult.ok(account)

    if "name" in changes and Account.objects.filter(
        user_id=actor.user_id,
        name=changes["name"],
    ).exclude(pk=account.pk).exists():
        return CommandResult.fail(ErrorCode.CONFLICT, "Ya existe una cuenta con este nombre")

    for field, value in changes.items():
        setattr(account, field, value)
    try:
        with transaction.atomic():
            account.save(update_fields=list(changes) + ["updated_at"])
    except IntegrityError:
        return CommandResult.fail(ErrorCode.CONFLICT, "Ya existe una cuenta con este nombre")

    logger.info("account.updated", extra={"user_id": actor.user_id, "account_id": account.pk, "fields": sorted(changes)})
    account.refresh_from_db()
    return CommandResult.ok(account)


@transaction.atomic
def delete_account(actor: ActorContext, account_id: int) -> CommandResult:
    """
    Delete an account.

    Rejected while any transaction references the account.
    """
    account = fetch_owned(Account, actor, account_id, lock=True)
    if account is None:
        return CommandResult.fail(ErrorCode.NOT_FOUND, not_found_message(Account))

    allowed, reason = can_delete_account(actor, account)
    if not allowed:
        return CommandResult.fail(ErrorCode.BUSINESS_RULE, reason)

    pk = account.pk
    account.delete()
    logger.info("account.deleted", extra={"user_id": actor.user_id, "account_id": pk})
    return CommandResult.ok(None)


# =============================================================================
# Category Commands
# =============================================================================

@transaction.atomic
def create_category(
    actor: ActorContext,
    name: str,
    kind: str,
    color: str = "#1890ff",
    icon: str = "",
) -> CommandResult:
    conflict = f'Ya existe una categoría "{name}" para {kind.lower()}s'
    if Category.objects.filter(user_id=actor.user_id, kind=kind, name=name).exists():
        return CommandResult.fail(ErrorCode.CONFLICT, conflict)

    try:
        with transaction.atomic():
            category = Category.objects.create(
                user_id=actor.user_id,
                name=name,
                kind=kind,
                color=color or "#1890ff",
                icon=icon or "",
            )
    except IntegrityError:
        return CommandResult.fail(ErrorCode.CONFLICT, conflict)

    logger.info("category.created", extra={"user_id": actor.user_id, "category_id": category.pk})
    return CommandResult.ok(category)


@transaction.atomic
def seed_user_defaults(user) -> None:
    """Create the starter categories and the cash account for a new user."""
    Category.objects.bulk_create([
        Category(user=user, name=name, kind=kind, color=color, icon=icon)
        for name, kind, color, icon in DEFAULT_CATEGORIES
    ])
    Account.objects.create(
        user=user,
        name="Efectivo",
        account_type=Account.AccountType.CASH,
        currency=Account.Currency.ARS,
        description="Cuenta de efectivo principal",
        color="#52c41a",
    )


# =============================================================================
# Item Commands
# =============================================================================

def _item_conflict(actor: ActorContext, name=None, barcode=None, exclude_pk=None):
    """Return a conflict message if an active item already uses the name or barcode."""
    active = Item.objects.filter(user_id=actor.user_id, is_active=True)
    if exclude_pk is not None:
        active = active.exclude(pk=exclude_pk)
    if name is not None and active.filter(name=name).exists():
        return "Ya existe un artículo activo con este nombre"
    if barcode and active.filter(barcode=barcode).exists():
        return "Ya existe un artículo activo con este código de barras"
    return None


@transaction.atomic
def create_item(
    actor: ActorContext,
    name: str,
    price: Decimal,
    category_id: int,
    item_type: str,
    **fields,
) -> CommandResult:
    """
    Create a catalog item.

    Args:
        fields: description, cost, stock, min_stock, unit, barcode,
            is_recurring, frequency

    Returns:
        CommandResult with the created Item or error
    """
    category = fetch_owned(Category, actor, category_id)
    allowed, reason = can_categorize_item(category, item_type)
    if not allowed:
        return CommandResult.fail(ErrorCode.BUSINESS_RULE, reason)

    data = normalize_item_fields(item_type, fields)
    allowed, reason = validate_recurrence(item_type, data.get("is_recurring"), data.get("frequency"))
    if not allowed:
        return CommandResult.fail(ErrorCode.VALIDATION, reason)

    conflict = _item_conflict(actor, name=name, barcode=data.get("barcode"))
    if conflict:
        return CommandResult.fail(ErrorCode.CONFLICT, conflict)

    try:
        with transaction.atomic():
            item = Item.objects.create(
                user_id=actor.user_id,
                category=category,
                name=name,
                price=price,
                item_type=item_type,
                **data,
            )
    except IntegrityError:
        return CommandResult.fail(ErrorCode.CONFLICT, "Ya existe un artículo activo con estos datos")

    logger.info("item.created", extra={"user_id": actor.user_id, "item_id": item.pk, "item_type": item_type})
    return CommandResult.ok(Item.objects.select_related("category").get(pk=item.pk))


@transaction.atomic
def update_item(actor: ActorContext, item_id: int, **updates) -> CommandResult:
    """
    Update a catalog item.

    Name and barcode collisions are checked against the other active items.
    A stock change is applied as an increment of the difference against the
    locked row, the same way the ledger moves stock.
    """
    item = fetch_owned(Item, actor, item_id, lock=True)
    if item is None:
        return CommandResult.fail(ErrorCode.NOT_FOUND, not_found_message(Item))

    allowed_fields = {
        "name", "description", "item_type", "category_id", "price", "cost",
        "stock", "min_stock", "unit", "barcode", "is_active", "is_recurring", "frequency",
    }
    current = {field: getattr(item, field) for field in allowed_fields}
    merged = dict(current)
    merged.update({f: v for f, v in updates.items() if f in allowed_fields})
    merged = normalize_item_fields(merged["item_type"], merged)
    changes = {f: v for f, v in merged.items() if current[f] != v}

    if not changes:
        return CommandResult.ok(Item.objects.select_related("category").get(pk=item.pk))

    if {"category_id", "item_type"} & changes.keys():
        category = fetch_owned(Category, actor, merged["category_id"])
        allowed, reason = can_categorize_item(category, merged["item_type"])
        if not allowed:
            return CommandResult.fail(ErrorCode.BUSINESS_RULE, reason)

    allowed, reason = validate_recurrence(merged["item_type"], merged["is_recurring"], merged["frequency"])
    if not allowed:
        return CommandResult.fail(ErrorCode.VALIDATION, reason)

    if merged["is_active"]:
        reactivated = "is_active" in changes
        conflict = _item_conflict(
            actor,
            name=merged["name"] if reactivated or "name" in changes else None,
            barcode=merged["barcode"] if reactivated or "barcode" in changes else None,
            exclude_pk=item.pk,
        )
        if conflict:
            return CommandResult.fail(ErrorCode.CONFLICT, conflict)

    stock_delta = changes.pop("stock", current["stock"]) - current["stock"]
    for field, value in changes.items():
        setattr(item, field, value)

    field_names = {"category_id": "category"}
    try:
        with transaction.atomic():
            if changes:
                item.save(update_fields=[field_names.get(f, f) for f in changes] + ["updated_at"])
            adjust_stock(item.pk, stock_delta)
    except IntegrityError:
        return CommandResult.fail(ErrorCode.CONFLICT, "Ya existe un artículo activo con estos datos")
    except (LedgerWriteError, DatabaseError):
        logger.exception("item.update failed", extra={"user_id": actor.user_id, "item_id": item.pk})
        return CommandResult.fail(ErrorCode.STORAGE, STORAGE_ERROR_MESSAGE)

    logger.info(
        "item.updated",
        extra={"user_id": actor.user_id, "item_id": item.pk, "stock_delta": stock_delta},
    )
    return CommandResult.ok(Item.objects.select_related("category").get(pk=item.pk))


@transaction.atomic
def delete_item(actor: ActorContext, item_id: int) -> CommandResult:
    """Soft-delete an item: it stays in place for the transactions that reference it."""
    item = fetch_owned(Item, actor, item_id, lock=True)
    if item is None:
        return CommandResult.fail(ErrorCode.NOT_FOUND, not_found_message(Item))

    if item.is_active:
        item.is_active = False
        item.save(update_fields=["is_active", "updated_at"])
        logger.info("item.deactivated", extra={"user_id": actor.user_id, "item_id": item.pk})
    return CommandResult.ok(Item.objects.select_related("category").get(pk=item.pk))
