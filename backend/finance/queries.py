# finance/queries.py
"""
Read paths for the finance API.

Every query is scoped to the requesting user and reflects the committed
state of the database at query time. Nothing here writes.
"""

from dataclasses import dataclass
from decimal import Decimal
import math

from django.db.models import Case, Count, DecimalField, ExpressionWrapper, F, Q, Sum, When
from django.db.models.functions import Coalesce
from django.utils import timezone

from finance.models import Account, Category, Item, Transaction


ZERO = Decimal("0.00")

LOW_STOCK = Q(item_type=Item.ItemType.PRODUCT) & (
    (Q(min_stock__gt=0) & Q(stock__lte=F("min_stock")))
    | (Q(min_stock__lte=0) & Q(stock__lte=0))
)


@dataclass
class Page:
    """One page of results plus the numbers needed to render pagination."""

    items: list
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    def metadata(self) -> dict:
        return {
            "pagina": self.page,
            "limite": self.limit,
            "total": self.total,
            "totalPaginas": self.total_pages,
            "tieneAnterior": self.has_previous,
            "tieneSiguiente": self.has_next,
        }


def paginate(queryset, page: int, limit: int) -> Page:
    total = queryset.count()
    offset = (page - 1) * limit
    return Page(items=list(queryset[offset:offset + limit]), page=page, limit=limit, total=total)


# =============================================================================
# Transactions
# =============================================================================

def transactions_for(actor, filters: dict = None):
    """
    Transactions of the actor, newest first.

    Filters: account_id, kind, category_id, item_id, date_from, date_to,
    amount_min, amount_max, currency (of the account), search.
    """
    filters = filters or {}
    qs = Transaction.objects.filter(user_id=actor.user_id).select_related("account", "category", "item")

    if filters.get("account_id"):
        qs = qs.filter(account_id=filters["account_id"])
    if filters.get("kind"):
        qs = qs.filter(kind=filters["kind"])
    if filters.get("category_id"):
        qs = qs.filter(category_id=filters["category_id"])
    if filters.get("item_id"):
        qs = qs.filter(item_id=filters["item_id"])
    if filters.get("date_from"):
        qs = qs.filter(date__gte=filters["date_from"])
    if filters.get("date_to"):
        qs = qs.filter(date__lte=filters["date_to"])
    if filters.get("amount_min") is not None:
        qs = qs.filter(amount__gte=filters["amount_min"])
    if filters.get("amount_max") is not None:
        qs = qs.filter(amount__lte=filters["amount_max"])
    if filters.get("currency"):
        qs = qs.filter(account__currency=filters["currency"])
    if filters.get("search"):
        term = filters["search"]
        qs = qs.filter(Q(description__icontains=term) | Q(notes__icontains=term))

    return qs.order_by("-date", "-created_at", "-id")


def page_summary(transactions) -> dict:
    """Income/expense totals over the rows of one page."""
    income = sum((t.amount for t in transactions if t.kind == Transaction.Kind.INCOME), ZERO)
    expense = sum((t.amount for t in transactions if t.kind == Transaction.Kind.EXPENSE), ZERO)
    return {
        "totalIngresos": income,
        "totalGastos": expense,
        "cantidadTransacciones": len(transactions),
    }


# =============================================================================
# Accounts and categories
# =============================================================================

def accounts_for(actor, filters: dict = None):
    filters = filters or {}
    qs = Account.objects.filter(user_id=actor.user_id)

    if filters.get("account_type"):
        qs = qs.filter(account_type=filters["account_type"])
    if filters.get("currency"):
        qs = qs.filter(currency=filters["currency"])
    if filters.get("is_active") is not None:
        qs = qs.filter(is_active=filters["is_active"])

    return qs.annotate(transaction_count=Count("transactions")).order_by("-is_active", "-created_at", "-id")


def categories_for(actor, filters: dict = None):
    filters = filters or {}
    qs = Category.objects.filter(user_id=actor.user_id)

    if filters.get("kind"):
        qs = qs.filter(kind=filters["kind"])
    if filters.get("is_active") is not None:
        qs = qs.filter(is_active=filters["is_active"])

    return qs.annotate(
        item_count=Count("items", distinct=True),
        transaction_count=Count("transactions", distinct=True),
    ).order_by("-is_active", "kind", "name", "id")


def group_by_kind(rows: list, key: str = "tipo") -> dict:
    grouped = {kind: [] for kind in Category.Kind.values}
    for row in rows:
        grouped.setdefault(row[key], []).append(row)
    return grouped


# =============================================================================
# Items
# =============================================================================

def items_for(actor, filters: dict = None):
    """
    Items of the actor: active first, then by type and name.

    Only active items are listed unless ``is_active`` is given explicitly.
    The low-stock filter only ever matches products.
    """
    filters = filters or {}
    qs = Item.objects.filter(user_id=actor.user_id).select_related("category")

    if filters.get("category_id"):
        qs = qs.filter(category_id=filters["category_id"])
    if filters.get("item_type"):
        qs = qs.filter(item_type=filters["item_type"])
    is_active = filters.get("is_active")
    qs = qs.filter(is_active=True if is_active is None else is_active)
    if filters.get("low_stock"):
        qs = qs.filter(LOW_STOCK)
    if filters.get("search"):
        term = filters["search"]
        qs = qs.filter(
            Q(name__icontains=term)
            | Q(description__icontains=term)
            | Q(barcode__icontains=term)
        )

    return qs.annotate(transaction_count=Count("transactions")).order_by("-is_active", "item_type", "name", "id")


def item_statistics(queryset) -> dict:
    """Counts and inventory value over every item matched by the list filters."""
    money = DecimalField(max_digits=20, decimal_places=2)
    active_products = Q(is_active=True, item_type=Item.ItemType.PRODUCT)
    stats = queryset.order_by().aggregate(
        total=Count("id"),
        products=Count("id", filter=active_products),
        services=Count("id", filter=Q(is_active=True, item_type=Item.ItemType.SERVICE)),
        expenses=Count("id", filter=Q(is_active=True, item_type=Item.ItemType.EXPENSE)),
        low_stock=Count("id", filter=Q(is_active=True) & LOW_STOCK),
        recurring=Count("id", filter=Q(is_active=True, item_type=Item.ItemType.EXPENSE, is_recurring=True)),
        inventory_value=Coalesce(
            Sum(ExpressionWrapper(F("price") * F("stock"), output_field=money), filter=active_products),
            ZERO,
            output_field=money,
        ),
        inventory_cost=Coalesce(
            Sum(ExpressionWrapper(F("cost") * F("stock"), output_field=money), filter=active_products),
            ZERO,
            output_field=money,
        ),
    )
    return {
        "totalArticulos": stats["total"],
        "productosActivos": stats["products"],
        "serviciosActivos": stats["services"],
        "gastosActivos": stats["expenses"],
        "stockBajo": stats["low_stock"],
        "gastosRecurrentes": stats["recurring"],
        "valorTotalInventario": stats["inventory_value"],
        "costoTotalInventario": stats["inventory_cost"],
    }


# =============================================================================
# Dashboard
# =============================================================================

def dashboard_summary(actor, recent: int = 5) -> dict:
    """
    Figures for the dashboard.

    Balances are summed per currency over active accounts only; amounts in
    different currencies are never added together.
    """
    balances = {currency: ZERO for currency in Account.Currency.values}
    rows = (
        Account.objects.filter(user_id=actor.user_id, is_active=True)
        .values("currency")
        .annotate(total=Sum("balance"), count=Count("id"))
        .order_by("currency")
    )
    active_accounts = 0
    for row in rows:
        balances[row["currency"]] = row["total"] or ZERO
        active_accounts += row["count"]

    today = timezone.localdate()
    month = Transaction.objects.filter(
        user_id=actor.user_id,
        date__year=today.year,
        date__month=today.month,
    ).aggregate(
        income=Coalesce(Sum("amount", filter=Q(kind=Transaction.Kind.INCOME)), ZERO),
        expense=Coalesce(Sum("amount", filter=Q(kind=Transaction.Kind.EXPENSE)), ZERO),
    )

    low_stock = Item.objects.filter(user_id=actor.user_id, is_active=True).filter(LOW_STOCK).count()

    return {
        "saldosPorMoneda": balances,
        "cuentasActivas": active_accounts,
        "mesActual": {
            "anio": today.year,
            "mes": today.month,
            "ingresos": month["income"],
            "gastos": month["expense"],
            "balance": month["income"] - month["expense"],
        },
        "articulosStockBajo": low_stock,
        "ultimasTransacciones": list(transactions_for(actor)[:recent]),
    }


def ledger_drift(limit: int = 10) -> list[dict]:
    """
    Accounts whose stored balance differs from the signed sum of their
    transactions. Used by the full health report, across all users.
    """
    signed = Case(
        When(transactions__kind=Transaction.Kind.INCOME, then=F("transactions__amount")),
        default=-F("transactions__amount"),
        output_field=DecimalField(max_digits=14, decimal_places=2),
    )
    drifted = (
        Account.objects
        .annotate(ledger_total=Coalesce(Sum(signed), ZERO, output_field=DecimalField(max_digits=14, decimal_places=2)))
        .exclude(balance=F("ledger_total"))
        .order_by("pk")
        .values("pk", "balance", "ledger_total")
    )
    return [
        {"account_id": row["pk"], "balance": str(row["balance"]), "ledger": str(row["ledger_total"])}
        for row in drifted[:limit]
    ]
