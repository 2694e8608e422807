# finance/admin.py
"""
Django admin configuration for finance models.

The admin is read-only: balances and stock must stay consistent with the
transaction set, and only the command layer (finance/commands.py) keeps
them that way.
"""

from django.contrib import admin

from .models import Account, Category, Item, Transaction


class ReadOnlyModelAdmin(admin.ModelAdmin):
    """
    Base admin class for models that are only changed through commands.
    """

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Account)
class AccountAdmin(ReadOnlyModelAdmin):
    list_display = ["name", "user", "account_type", "currency", "balance", "is_active"]
    list_filter = ["account_type", "currency", "is_active"]
    search_fields = ["name", "user__email"]


@admin.register(Category)
class CategoryAdmin(ReadOnlyModelAdmin):
    list_display = ["name", "user", "kind", "color", "is_active"]
    list_filter = ["kind", "is_active"]
    search_fields = ["name", "user__email"]


@admin.register(Item)
class ItemAdmin(ReadOnlyModelAdmin):
    list_display = ["name", "user", "item_type", "price", "stock", "min_stock", "is_active"]
    list_filter = ["item_type", "is_active", "is_recurring"]
    search_fields = ["name", "barcode", "user__email"]


@admin.register(Transaction)
class TransactionAdmin(ReadOnlyModelAdmin):
    list_display = ["date", "kind", "amount", "description", "account", "user"]
    list_filter = ["kind", "date"]
    search_fields = ["description", "user__email"]
    date_hierarchy = "date"
    list_select_related = ["account", "user"]
