# finance/views.py
"""
Thin views that delegate to the commands layer.

Views handle: HTTP parsing, authentication, response formatting.
Commands handle: business logic, validation, balance and stock updates.

All mutations (create, update, delete) go through commands. Views never
call .save() on models. Every body uses the envelope from
minierp_backend.api.
"""

from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from accounts.authz import resolve_actor
from minierp_backend.api import ErrorCode, error_response, result_error_response, success_response
from .commands import (
    # Transaction commands
    create_transaction,
    update_transaction,
    delete_transaction,
    # Account commands
    create_account,
    update_account,
    delete_account,
    # Category commands
    create_category,
    # Item commands
    create_item,
    update_item,
    delete_item,
)
from .exports import (
    TRANSACTION_EXPORT_COLUMNS,
    create_export_response,
    prepare_transaction_export_data,
)
from .models import Account, Item, Transaction
from .policies import fetch_owned, not_found_message
from .queries import (
    accounts_for,
    categories_for,
    dashboard_summary,
    group_by_kind,
    item_statistics,
    items_for,
    page_summary,
    paginate,
    transactions_for,
)
from .serializers import (
    AccountCreateSerializer,
    AccountFilterSerializer,
    AccountSerializer,
    AccountUpdateSerializer,
    CategoryCreateSerializer,
    CategoryFilterSerializer,
    CategorySerializer,
    ItemCreateSerializer,
    ItemFilterSerializer,
    ItemSerializer,
    ItemUpdateSerializer,
    TransactionExportSerializer,
    TransactionFilterSerializer,
    TransactionSerializer,
    TransactionWriteSerializer,
)


def _validated(serializer_class, data, **kwargs) -> dict:
    serializer = serializer_class(data=data, **kwargs)
    serializer.is_valid(raise_exception=True)
    return dict(serializer.validated_data)


def _not_found(model):
    return error_response(not_found_message(model), ErrorCode.NOT_FOUND)


# =============================================================================
# Transaction Views
# =============================================================================

class TransactionListCreateView(APIView):
    """
    GET /api/transacciones/ -> filtered, paginated list with a page summary
    POST /api/transacciones/ -> create transaction (moves balance and stock)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        filters = _validated(TransactionFilterSerializer, request.query_params.dict())
        page_number, limit = filters.pop("page"), filters.pop("limit")

        page = paginate(transactions_for(actor, filters), page_number, limit)
        return success_response(
            TransactionSerializer(page.items, many=True).data,
            paginacion=page.metadata(),
            resumen=page_summary(page.items),
        )

    def post(self, request):
        actor = resolve_actor(request)
        data = _validated(TransactionWriteSerializer, request.data)

        result = create_transaction(actor, **data)
        if not result.success:
            return result_error_response(result)

        return success_response(
            TransactionSerializer(result.data).data,
            mensaje="Transacción creada exitosamente",
            http_status=status.HTTP_201_CREATED,
        )


class TransactionDetailView(APIView):
    """
    GET /api/transacciones/<id>/ -> retrieve transaction
    PUT /api/transacciones/<id>/ -> partial update (revert and re-apply balance)
    DELETE /api/transacciones/<id>/ -> delete (revert balance, return stock)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        txn = fetch_owned(Transaction, actor, pk, related=("account", "category", "item"))
        if txn is None:
            return _not_found(Transaction)
        return success_response(TransactionSerializer(txn).data)

    def put(self, request, pk):
        actor = resolve_actor(request)
        data = _validated(TransactionWriteSerializer, request.data, partial=True)

        result = update_transaction(actor, pk, **data)
        if not result.success:
            return result_error_response(result)

        return success_response(
            TransactionSerializer(result.data).data,
            mensaje="Transacción actualizada exitosamente",
        )

    def delete(self, request, pk):
        actor = resolve_actor(request)

        result = delete_transaction(actor, pk)
        if not result.success:
            return result_error_response(result)

        return success_response(None, mensaje="Transacción eliminada exitosamente")


class TransactionExportView(APIView):
    """
    GET /api/transacciones/export/ -> download the filtered transactions

    Query params:
        formato: xlsx, csv (default: xlsx)
        plus every filter of the list endpoint; no pagination
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        filters = _validated(TransactionExportSerializer, request.query_params.dict())
        export_format = filters.pop("format")
        filters.pop("page", None)
        filters.pop("limit", None)

        data = prepare_transaction_export_data(transactions_for(actor, filters))
        return create_export_response(
            data=data,
            columns=TRANSACTION_EXPORT_COLUMNS,
            format=export_format,
            filename=f"transacciones_{timezone.localdate().isoformat()}",
            title="Transacciones",
        )


# =============================================================================
# Account Views
# =============================================================================

class AccountListCreateView(APIView):
    """
    GET /api/cuentas/ -> list accounts (active first, newest first)
    POST /api/cuentas/ -> create account, optionally seeding an initial balance
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        filters = _validated(AccountFilterSerializer, request.query_params.dict())
        page_number, limit = filters.pop("page"), filters.pop("limit")

        page = paginate(accounts_for(actor, filters), page_number, limit)
        return success_response(
            AccountSerializer(page.items, many=True).data,
            paginacion=page.metadata(),
        )

    def post(self, request):
        actor = resolve_actor(request)
        data = _validated(AccountCreateSerializer, request.data)

        result = create_account(actor, **data)
        if not result.success:
            return result_error_response(result)

        return success_response(
            AccountSerializer(result.data).data,
            mensaje="Cuenta creada exitosamente",
            http_status=status.HTTP_201_CREATED,
        )


class AccountDetailView(APIView):
    """
    GET /api/cuentas/<id>/ -> retrieve account
    PUT /api/cuentas/<id>/ -> partial update (never the balance)
    DELETE /api/cuentas/<id>/ -> delete, rejected while transactions exist
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        account = fetch_owned(Account, actor, pk)
        if account is None:
            return _not_found(Account)
        return success_response(AccountSerializer(account).data)

    def put(self, request, pk):
        actor = resolve_actor(request)
        data = _validated(AccountUpdateSerializer, request.data, partial=True)

        result = update_account(actor, pk, **data)
        if not result.success:
            return result_error_response(result)

        return success_response(
            AccountSerializer(result.data).data,
            mensaje="Cuenta actualizada exitosamente",
        )

    def delete(self, request, pk):
        actor = resolve_actor(request)

        result = delete_account(actor, pk)
        if not result.success:
            return result_error_response(result)

        return success_response(None, mensaje="Cuenta eliminada exitosamente")


# =============================================================================
# Category Views
# =============================================================================

class CategoryListCreateView(APIView):
    """
    GET /api/categorias/ -> all categories, also grouped by kind
    POST /api/categorias/ -> create category
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        filters = _validated(CategoryFilterSerializer, request.query_params.dict())

        rows = CategorySerializer(categories_for(actor, filters), many=True).data
        return success_response(rows, agrupadas=group_by_kind(rows))

    def post(self, request):
        actor = resolve_actor(request)
        data = _validated(CategoryCreateSerializer, request.data)

        result = create_category(actor, **data)
        if not result.success:
            return result_error_response(result)

        return success_response(
            CategorySerializer(result.data).data,
            mensaje="Categoría creada exitosamente",
            http_status=status.HTTP_201_CREATED,
        )


# =============================================================================
# Item Views
# =============================================================================

CREATED_MESSAGES = {
    Item.ItemType.PRODUCT: "Producto creado exitosamente",
    Item.ItemType.SERVICE: "Servicio creado exitosamente",
    Item.ItemType.EXPENSE: "Gasto creado exitosamente",
}


class ItemListCreateView(APIView):
    """
    GET /api/articulos/ -> paginated items plus statistics over the whole filter
    POST /api/articulos/ -> create item
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        filters = _validated(ItemFilterSerializer, request.query_params.dict())
        page_number, limit = filters.pop("page"), filters.pop("limit")

        items = items_for(actor, filters)
        page = paginate(items, page_number, limit)
        return success_response(
            ItemSerializer(page.items, many=True).data,
            paginacion=page.metadata(),
            estadisticas=item_statistics(items),
        )

    def post(self, request):
        actor = resolve_actor(request)
        data = _validated(ItemCreateSerializer, request.data)

        result = create_item(actor, **data)
        if not result.success:
            return result_error_response(result)

        return success_response(
            ItemSerializer(result.data).data,
            mensaje=CREATED_MESSAGES[result.data.item_type],
            http_status=status.HTTP_201_CREATED,
        )


class ItemDetailView(APIView):
    """
    GET /api/articulos/<id>/ -> retrieve item (active or not)
    PUT /api/articulos/<id>/ -> partial update
    DELETE /api/articulos/<id>/ -> soft delete
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        item = fetch_owned(Item, actor, pk, related=("category",))
        if item is None:
            return _not_found(Item)
        return success_response(ItemSerializer(item).data)

    def put(self, request, pk):
        actor = resolve_actor(request)
        data = _validated(ItemUpdateSerializer, request.data, partial=True)

        result = update_item(actor, pk, **data)
        if not result.success:
            return result_error_response(result)

        return success_response(
            ItemSerializer(result.data).data,
            mensaje="Artículo actualizado exitosamente",
        )

    def delete(self, request, pk):
        actor = resolve_actor(request)

        result = delete_item(actor, pk)
        if not result.success:
            return result_error_response(result)

        return success_response(
            ItemSerializer(result.data).data,
            mensaje="Artículo eliminado exitosamente",
        )


# =============================================================================
# Dashboard
# =============================================================================

class SummaryView(APIView):
    """GET /api/resumen/ -> balances per currency, current month, low stock, recent activity."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        summary = dashboard_summary(actor)
        summary["ultimasTransacciones"] = TransactionSerializer(summary["ultimasTransacciones"], many=True).data
        return success_response(summary)
