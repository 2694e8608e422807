# finance/__init__.py
"""
Finance app - Personal ledger and inventory for Mini ERP.

This app provides:
- Account: Cash/bank accounts with a materialized balance
- Category: Classification tags scoped by kind
- Item: Products, services and expense types (soft-deleted)
- Transaction: Income/expense events against one account

Commands handle all mutations so that balances and stock stay
consistent with the transaction set.
"""
