# finance/serializers.py
"""
Serializers for the finance API.

Note: These serializers are used for:
1. Input validation (wire keys in Spanish, ``source`` maps them to the
   English keyword arguments the commands take)
2. Output formatting

The actual business logic happens in commands.py.
"""

from decimal import Decimal

from django.conf import settings
from rest_framework import serializers

from .models import Account, Category, Item, Transaction


MAX_MONEY = Decimal("999999999.99")
MAX_ID = 2**63 - 1
HEX_COLOR = r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$"
COLOR_MESSAGE = "Color debe ser un código hexadecimal válido"


class LenientDateField(serializers.DateField):
    """Accepts a date or a full ISO datetime and keeps the date part."""

    def to_internal_value(self, value):
        if isinstance(value, str) and "T" in value:
            value = value.split("T", 1)[0]
        return super().to_internal_value(value)


def id_field(source, **kwargs):
    """Positive primary key that fits a 64-bit integer column."""
    return serializers.IntegerField(source=source, min_value=1, max_value=MAX_ID, required=False, **kwargs)


def money_field(**kwargs):
    kwargs.setdefault("max_value", MAX_MONEY)
    return serializers.DecimalField(max_digits=14, decimal_places=2, **kwargs)


# =============================================================================
# Summaries (embedded in other payloads)
# =============================================================================

class AccountSummarySerializer(serializers.ModelSerializer):
    nombre = serializers.CharField(source="name")
    tipo = serializers.CharField(source="account_type")
    moneda = serializers.CharField(source="currency")

    class Meta:
        model = Account
        fields = ["id", "nombre", "tipo", "moneda", "color"]


class CategorySummarySerializer(serializers.ModelSerializer):
    nombre = serializers.CharField(source="name")
    tipo = serializers.CharField(source="kind")
    icono = serializers.CharField(source="icon")

    class Meta:
        model = Category
        fields = ["id", "nombre", "tipo", "color", "icono"]


class ItemSummarySerializer(serializers.ModelSerializer):
    nombre = serializers.CharField(source="name")
    tipo = serializers.CharField(source="item_type")
    precio = money_field(source="price")

    class Meta:
        model = Item
        fields = ["id", "nombre", "tipo", "precio", "stock"]


# =============================================================================
# Transaction Serializers
# =============================================================================

class TransactionSerializer(serializers.ModelSerializer):
    """Transaction with its account, category and item summaries."""

    tipo = serializers.CharField(source="kind")
    monto = money_field(source="amount")
    descripcion = serializers.CharField(source="description")
    fecha = serializers.DateField(source="date")
    notas = serializers.CharField(source="notes")
    cuentaId = serializers.IntegerField(source="account_id")
    categoriaId = serializers.IntegerField(source="category_id")
    articuloId = serializers.IntegerField(source="item_id", allow_null=True)
    cuenta = AccountSummarySerializer(source="account")
    categoria = CategorySummarySerializer(source="category")
    articulo = ItemSummarySerializer(source="item", allow_null=True)
    creadaEn = serializers.DateTimeField(source="created_at")
    actualizadaEn = serializers.DateTimeField(source="updated_at")

    class Meta:
        model = Transaction
        fields = [
            "id", "tipo", "monto", "descripcion", "fecha", "notas",
            "cuentaId", "categoriaId", "articuloId",
            "cuenta", "categoria", "articulo",
            "creadaEn", "actualizadaEn",
        ]
        read_only_fields = fields


class TransactionWriteSerializer(serializers.Serializer):
    """
    Input for creating transactions; with ``partial=True`` for updates.
    """

    cuentaId = serializers.IntegerField(source="account_id", min_value=1)
    tipo = serializers.ChoiceField(
        source="kind",
        choices=Transaction.Kind.choices,
        error_messages={"invalid_choice": "Tipo de transacción inválido"},
    )
    monto = money_field(
        source="amount",
        min_value=Decimal("0.01"),
        error_messages={
            "min_value": "El monto debe ser mayor a 0",
            "max_value": "El monto es demasiado grande",
        },
    )
    descripcion = serializers.CharField(source="description", max_length=500, trim_whitespace=True)
    categoriaId = serializers.IntegerField(source="category_id", min_value=1)
    fecha = LenientDateField(source="date", error_messages={"invalid": "Fecha inválida"})
    notas = serializers.CharField(
        source="notes",
        max_length=1000,
        required=False,
        allow_blank=True,
        default="",
    )
    articuloId = serializers.IntegerField(
        source="item_id",
        min_value=1,
        required=False,
        allow_null=True,
    )


class PaginationSerializer(serializers.Serializer):
    pagina = serializers.IntegerField(source="page", min_value=1, required=False, default=1)
    limite = serializers.IntegerField(
        source="limit",
        min_value=1,
        max_value=settings.FINANCE_MAX_PAGE_SIZE,
        required=False,
        default=settings.FINANCE_DEFAULT_PAGE_SIZE,
    )


class TransactionFilterSerializer(PaginationSerializer):
    cuentaId = id_field("account_id")
    tipo = serializers.ChoiceField(source="kind", choices=Transaction.Kind.choices, required=False)
    categoriaId = id_field("category_id")
    articuloId = id_field("item_id")
    fechaDesde = LenientDateField(source="date_from", required=False)
    fechaHasta = LenientDateField(source="date_to", required=False)
    montoMinimo = money_field(source="amount_min", min_value=Decimal("0"), required=False)
    montoMaximo = money_field(source="amount_max", min_value=Decimal("0"), required=False)
    moneda = serializers.ChoiceField(source="currency", choices=Account.Currency.choices, required=False)
    busqueda = serializers.CharField(source="search", max_length=200, required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs.get("date_from") and attrs.get("date_to") and attrs["date_from"] > attrs["date_to"]:
            raise serializers.ValidationError({"fechaHasta": "La fecha hasta debe ser posterior a la fecha desde"})
        low, high = attrs.get("amount_min"), attrs.get("amount_max")
        if low is not None and high is not None and low > high:
            raise serializers.ValidationError({"montoMaximo": "El monto máximo debe ser mayor al mínimo"})
        return attrs


class TransactionExportSerializer(TransactionFilterSerializer):
    formato = serializers.ChoiceField(source="format", choices=["xlsx", "csv"], required=False, default="xlsx")


# =============================================================================
# Account Serializers
# =============================================================================

class AccountSerializer(serializers.ModelSerializer):
    """
    Account with its materialized balance.

    ``saldo`` is read-only everywhere; it only moves through transactions.
    """

    nombre = serializers.CharField(source="name")
    tipo = serializers.CharField(source="account_type")
    saldo = money_field(source="balance", max_value=None)
    descripcion = serializers.CharField(source="description")
    moneda = serializers.CharField(source="currency")
    activa = serializers.BooleanField(source="is_active")
    cantidadTransacciones = serializers.SerializerMethodField()
    creadaEn = serializers.DateTimeField(source="created_at")
    actualizadaEn = serializers.DateTimeField(source="updated_at")

    class Meta:
        model = Account
        fields = [
            "id", "nombre", "tipo", "saldo", "descripcion", "color", "moneda",
            "activa", "cantidadTransacciones", "creadaEn", "actualizadaEn",
        ]
        read_only_fields = fields

    def get_cantidadTransacciones(self, obj):
        # Use annotated value if available (from list view), else query
        if hasattr(obj, "transaction_count"):
            return obj.transaction_count
        return obj.transactions.count()


class AccountCreateSerializer(serializers.Serializer):
    """Serializer for creating accounts via command."""
    nombre = serializers.CharField(source="name", max_length=100)
    tipo = serializers.ChoiceField(
        source="account_type",
        choices=Account.AccountType.choices,
        error_messages={"invalid_choice": "Tipo de cuenta inválido"},
    )
    moneda = serializers.ChoiceField(
        source="currency",
        choices=Account.Currency.choices,
        error_messages={"invalid_choice": "Moneda inválida"},
    )
    descripcion = serializers.CharField(source="description", max_length=500, required=False, allow_blank=True, default="")
    color = serializers.RegexField(HEX_COLOR, required=False, default="#1890ff", error_messages={"invalid": COLOR_MESSAGE})
    saldoInicial = money_field(
        source="initial_balance",
        min_value=Decimal("0"),
        required=False,
        default=Decimal("0"),
        error_messages={"min_value": "El saldo inicial no puede ser negativo"},
    )


class AccountUpdateSerializer(serializers.Serializer):
    """Serializer for updating accounts via command. There is no balance field."""
    nombre = serializers.CharField(source="name", max_length=100, required=False)
    tipo = serializers.ChoiceField(source="account_type", choices=Account.AccountType.choices, required=False)
    moneda = serializers.ChoiceField(source="currency", choices=Account.Currency.choices, required=False)
    descripcion = serializers.CharField(source="description", max_length=500, required=False, allow_blank=True)
    color = serializers.RegexField(HEX_COLOR, required=False, error_messages={"invalid": COLOR_MESSAGE})
    activa = serializers.BooleanField(source="is_active", required=False)


class AccountFilterSerializer(PaginationSerializer):
    tipo = serializers.ChoiceField(source="account_type", choices=Account.AccountType.choices, required=False)
    moneda = serializers.ChoiceField(source="currency", choices=Account.Currency.choices, required=False)
    activa = serializers.BooleanField(source="is_active", required=False)


# =============================================================================
# Category Serializers
# =============================================================================

class CategorySerializer(serializers.ModelSerializer):
    nombre = serializers.CharField(source="name")
    tipo = serializers.CharField(source="kind")
    icono = serializers.CharField(source="icon")
    activa = serializers.BooleanField(source="is_active")
    cantidadArticulos = serializers.IntegerField(source="item_count", default=0)
    cantidadTransacciones = serializers.IntegerField(source="transaction_count", default=0)
    creadaEn = serializers.DateTimeField(source="created_at")

    class Meta:
        model = Category
        fields = [
            "id", "nombre", "tipo", "color", "icono", "activa",
            "cantidadArticulos", "cantidadTransacciones", "creadaEn",
        ]
        read_only_fields = fields


class CategoryCreateSerializer(serializers.Serializer):
    nombre = serializers.CharField(source="name", max_length=100)
    tipo = serializers.ChoiceField(
        source="kind",
        choices=Category.Kind.choices,
        error_messages={"invalid_choice": "Tipo de categoría inválido"},
    )
    color = serializers.RegexField(HEX_COLOR, required=False, default="#1890ff", error_messages={"invalid": COLOR_MESSAGE})
    icono = serializers.CharField(source="icon", max_length=50, required=False, allow_blank=True, default="")


class CategoryFilterSerializer(serializers.Serializer):
    tipo = serializers.ChoiceField(source="kind", choices=Category.Kind.choices, required=False)
    activa = serializers.BooleanField(source="is_active", required=False)


# =============================================================================
# Item Serializers
# =============================================================================

class ItemSerializer(serializers.ModelSerializer):
    nombre = serializers.CharField(source="name")
    descripcion = serializers.CharField(source="description")
    tipo = serializers.CharField(source="item_type")
    precio = money_field(source="price")
    costo = money_field(source="cost")
    stockMinimo = serializers.IntegerField(source="min_stock")
    unidad = serializers.CharField(source="unit")
    codigoBarras = serializers.CharField(source="barcode", allow_null=True)
    activo = serializers.BooleanField(source="is_active")
    esRecurrente = serializers.BooleanField(source="is_recurring")
    frecuencia = serializers.CharField(source="frequency", allow_null=True)
    stockBajo = serializers.BooleanField(source="is_low_stock")
    categoriaId = serializers.IntegerField(source="category_id")
    categoria = CategorySummarySerializer(source="category")
    cantidadTransacciones = serializers.SerializerMethodField()
    creadoEn = serializers.DateTimeField(source="created_at")
    actualizadoEn = serializers.DateTimeField(source="updated_at")

    class Meta:
        model = Item
        fields = [
            "id", "nombre", "descripcion", "tipo", "precio", "costo",
            "stock", "stockMinimo", "stockBajo", "unidad", "codigoBarras",
            "activo", "esRecurrente", "frecuencia",
            "categoriaId", "categoria", "cantidadTransacciones",
            "creadoEn", "actualizadoEn",
        ]
        read_only_fields = fields

    def get_cantidadTransacciones(self, obj):
        if hasattr(obj, "transaction_count"):
            return obj.transaction_count
        return obj.transactions.count()


class ItemCreateSerializer(serializers.Serializer):
    """Input for creating items; type-specific fields are normalised by the command."""
    nombre = serializers.CharField(source="name", max_length=200)
    descripcion = serializers.CharField(source="description", max_length=1000, required=False, allow_blank=True, default="")
    precio = money_field(
        source="price",
        min_value=Decimal("0.01"),
        error_messages={"min_value": "El precio debe ser mayor a 0"},
    )
    costo = money_field(
        source="cost",
        min_value=Decimal("0"),
        required=False,
        default=Decimal("0"),
        error_messages={"min_value": "El costo no puede ser negativo"},
    )
    stock = serializers.IntegerField(min_value=0, required=False, default=0)
    stockMinimo = serializers.IntegerField(source="min_stock", min_value=0, required=False, default=0)
    categoriaId = serializers.IntegerField(source="category_id", min_value=1)
    unidad = serializers.CharField(source="unit", max_length=50, required=False, default="unidad")
    codigoBarras = serializers.CharField(
        source="barcode",
        max_length=100,
        required=False,
        allow_blank=True,
        allow_null=True,
        default=None,
    )
    tipo = serializers.ChoiceField(
        source="item_type",
        choices=Item.ItemType.choices,
        error_messages={"invalid_choice": "Tipo de artículo inválido"},
    )
    esRecurrente = serializers.BooleanField(source="is_recurring", required=False, default=False)
    frecuencia = serializers.ChoiceField(
        source="frequency",
        choices=Item.Frequency.choices,
        required=False,
        allow_null=True,
        default=None,
    )

    def validate_codigoBarras(self, value):
        return value or None


class ItemUpdateSerializer(ItemCreateSerializer):
    """Used with ``partial=True``: only the keys sent are changed."""
    activo = serializers.BooleanField(source="is_active", required=False)


class ItemFilterSerializer(PaginationSerializer):
    categoriaId = id_field("category_id")
    tipo = serializers.ChoiceField(source="item_type", choices=Item.ItemType.choices, required=False)
    stockBajo = serializers.BooleanField(source="low_stock", required=False)
    activo = serializers.BooleanField(source="is_active", required=False)
    busqueda = serializers.CharField(source="search", max_length=200, required=False, allow_blank=True)
