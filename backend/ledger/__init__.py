# ledger/__init__.py
"""
Ledger app - accounts, partners and the ledger entry store.

The LedgerEntry table is the source of truth. Account, Customer and
Supplier balances are denormalized caches kept current by the commands
in this package and in invoicing, and correctable by the reconcilers.
"""
