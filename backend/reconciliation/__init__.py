# reconciliation/__init__.py
"""
Reconciliation app - rebuilding cached balances from the ledger.

Per-write reconcilers touch only the documents a command affected.
reconcile_company() is the full batch pass used by the nightly Celery
job, the reconcile_balances management command and admin overrides.
"""
