# finance/models.py
"""
Finance models for Mini ERP.

These are the primary state tables. All mutations go through the command
layer (finance/commands.py); Account.balance and Item.stock are written only
by the ledger helpers in finance/ledger.py using storage-level increments.

Models:
- Account: Cash/bank container in one currency with a materialized balance
- Category: Classification tag scoped by kind
- Item: Product, service or expense-type catalog entry (soft-deleted)
- Transaction: Income/expense event against one Account
"""

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q


MONEY = {"max_digits": 14, "decimal_places": 2}


class CategoryKind(models.TextChoices):
    PRODUCT = "PRODUCTO", "Producto"
    SERVICE = "SERVICIO", "Servicio"
    EXPENSE = "GASTO", "Gasto"


class Account(models.Model):
    """
    A named balance-holding container owned by one user.

    The balance is maintained incrementally by the ledger and is never
    recomputed on read. Regular saves of an existing row leave it untouched.
    """

    class AccountType(models.TextChoices):
        CASH = "EFECTIVO", "Efectivo"
        BANK = "BANCO", "Banco"
        CREDIT_CARD = "TARJETA_CREDITO", "Tarjeta de crédito"
        INVESTMENT = "INVERSION", "Inversión"
        OTHER = "OTRO", "Otro"

    class Currency(models.TextChoices):
        ARS = "ARS", "Peso argentino"
        USD = "USD", "Dólar estadounidense"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="finance_accounts",
    )
    name = models.CharField(max_length=100)
    account_type = models.CharField(
        max_length=20,
        choices=AccountType.choices,
        db_column="type",
    )
    balance = models.DecimalField(**MONEY, default=Decimal("0.00"), editable=False)
    description = models.CharField(max_length=500, blank=True, default="")
    color = models.CharField(max_length=7, default="#1890ff")
    currency = models.CharField(max_length=3, choices=Currency.choices, default=Currency.ARS)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-is_active", "-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "name"],
                name="uniq_account_name_per_user",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.currency})"

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding and kwargs.get("update_fields") is None:
            kwargs["update_fields"] = [
                f.name for f in self._meta.concrete_fields
                if not f.primary_key and f.name not in ("balance", "created_at")
            ]
        super().save(*args, **kwargs)


class Category(models.Model):
    """Classification tag for items and transactions, unique per (user, kind, name)."""

    Kind = CategoryKind

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="finance_categories",
    )
    name = models.CharField(max_length=100)
    kind = models.CharField(max_length=10, choices=CategoryKind.choices, db_column="type")
    color = models.CharField(max_length=7, default="#1890ff")
    icon = models.CharField(max_length=50, blank=True, default="")
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-is_active", "kind", "name"]
        verbose_name_plural = "categories"
        constraints = [
            models.UniqueConstraint(
                fields=["user", "kind", "name"],
                name="uniq_category_name_per_user_kind",
            ),
        ]

    def __str__(self):
        return f"{self.name} [{self.kind}]"


class Item(models.Model):
    """
    Catalog entry: a product, a service or an expense type.

    Only products carry stock; the command layer normalises stock and the
    minimum threshold to zero for the other types. Items are never deleted,
    only deactivated. Regular saves of an existing row leave stock untouched.
    """

    ItemType = CategoryKind

    class Frequency(models.TextChoices):
        MONTHLY = "MENSUAL", "Mensual"
        QUARTERLY = "TRIMESTRAL", "Trimestral"
        YEARLY = "ANUAL", "Anual"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="finance_items",
    )
    category = models.ForeignKey(
        Category,
        on_delete=models.PROTECT,
        related_name="items",
    )
    name = models.CharField(max_length=200)
    description = models.CharField(max_length=1000, blank=True, default="")
    item_type = models.CharField(max_length=10, choices=CategoryKind.choices, db_column="type")
    price = models.DecimalField(**MONEY)
    cost = models.DecimalField(**MONEY, default=Decimal("0.00"))
    stock = models.IntegerField(default=0)
    min_stock = models.IntegerField(default=0)
    unit = models.CharField(max_length=50, default="unidad")
    barcode = models.CharField(max_length=100, null=True, blank=True)
    is_active = models.BooleanField(default=True)
    is_recurring = models.BooleanField(default=False)
    frequency = models.CharField(max_length=10, choices=Frequency.choices, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-is_active", "item_type", "name"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "name"],
                condition=Q(is_active=True),
                name="uniq_active_item_name_per_user",
            ),
            models.UniqueConstraint(
                fields=["user", "barcode"],
                condition=Q(is_active=True) & Q(barcode__isnull=False),
                name="uniq_active_item_barcode_per_user",
            ),
        ]

    def __str__(self):
        return f"{self.name} [{self.item_type}]"

    @property
    def is_product(self) -> bool:
        return self.item_type == CategoryKind.PRODUCT

    @property
    def is_low_stock(self) -> bool:
        if not self.is_product:
            return False
        if self.min_stock > 0:
            return self.stock <= self.min_stock
        return self.stock <= 0

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding and kwargs.get("update_fields") is None:
            kwargs["update_fields"] = [
                f.name for f in self._meta.concrete_fields
                if not f.primary_key and f.name not in ("stock", "created_at")
            ]
        super().save(*args, **kwargs)


class Transaction(models.Model):
    """
    A single income or expense event affecting one account.

    The amount is always stored positive; its sign is derived from ``kind``
    by the ledger when the balance delta is computed.
    """

    class Kind(models.TextChoices):
        INCOME = "INGRESO", "Ingreso"
        EXPENSE = "GASTO", "Gasto"
        TRANSFER = "TRANSFERENCIA", "Transferencia"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="finance_transactions",
    )
    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="transactions",
    )
    category = models.ForeignKey(
        Category,
        on_delete=models.PROTECT,
        related_name="transactions",
    )
    item = models.ForeignKey(
        Item,
        on_delete=models.PROTECT,
        related_name="transactions",
        null=True,
        blank=True,
    )
    kind = models.CharField(max_length=15, choices=Kind.choices, db_column="type")
    amount = models.DecimalField(**MONEY)
    description = models.CharField(max_length=500)
    date = models.DateField()
    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-date", "-created_at", "-id"]
        indexes = [
            models.Index(fields=["user", "date"], name="finance_txn_user_date_idx"),
            models.Index(fields=["account", "date"], name="finance_txn_account_date_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="transaction_amount_positive",
            ),
        ]

    def __str__(self):
        return f"{self.kind} {self.amount} - {self.description}"
