# finance/urls.py
"""
URL configuration for the finance API (mounted under /api/).

Endpoints:
- /transacciones/ - Transactions CRUD, plus /transacciones/export/
- /cuentas/ - Accounts CRUD
- /categorias/ - Categories list/create
- /articulos/ - Items CRUD (soft delete)
- /resumen/ - Dashboard figures

The trailing slash is optional on every route.
"""

from django.urls import re_path

from .views import (
    # Transaction views
    TransactionListCreateView,
    TransactionDetailView,
    TransactionExportView,
    # Account views
    AccountListCreateView,
    AccountDetailView,
    # Category views
    CategoryListCreateView,
    # Item views
    ItemListCreateView,
    ItemDetailView,
    # Dashboard
    SummaryView,
)

app_name = "finance"

urlpatterns = [
    # ==========================================================================
    # Transactions
    # ==========================================================================
    re_path(r"^transacciones/?$", TransactionListCreateView.as_view(), name="transaction-list"),
    re_path(r"^transacciones/export/?$", TransactionExportView.as_view(), name="transaction-export"),
    re_path(r"^transacciones/(?P<pk>[^/]+)/?$", TransactionDetailView.as_view(), name="transaction-detail"),

    # ==========================================================================
    # Accounts
    # ==========================================================================
    re_path(r"^cuentas/?$", AccountListCreateView.as_view(), name="account-list"),
    re_path(r"^cuentas/(?P<pk>[^/]+)/?$", AccountDetailView.as_view(), name="account-detail"),

    # ==========================================================================
    # Categories
    # ==========================================================================
    re_path(r"^categorias/?$", CategoryListCreateView.as_view(), name="category-list"),

    # ==========================================================================
    # Items
    # ==========================================================================
    re_path(r"^articulos/?$", ItemListCreateView.as_view(), name="item-list"),
    re_path(r"^articulos/(?P<pk>[^/]+)/?$", ItemDetailView.as_view(), name="item-detail"),

    # ==========================================================================
    # Dashboard
    # ==========================================================================
    re_path(r"^resumen/?$", SummaryView.as_view(), name="summary"),
]
