# accounts/permission_defaults.py

ROLE_DEFAULTS = {
    "OWNER": {
        "ledger.view",
        "accounts.manage",
        "transactions.create",
        "transactions.edit",
        "partners.adjust",

        "invoices.create",
        "invoices.approve",
        "invoices.collect",
        "invoices.cancel",
        "invoices.override_status",

        "pos.sell",
        "pos.cancel",

        "reconciliation.run",
    },
    "ADMIN": {
        "ledger.view",
        "accounts.manage",
        "transactions.create",
        "transactions.edit",
        "partners.adjust",

        "invoices.create",
        "invoices.approve",
        "invoices.collect",
        "invoices.cancel",
        "invoices.override_status",

        "pos.sell",
        "pos.cancel",

        "reconciliation.run",
    },
    "USER": {
        "ledger.view",
        "transactions.create",

        "invoices.create",
        "invoices.collect",

        "pos.sell",
        "pos.cancel",
    },
}


def role_permission_codes(role: str) -> frozenset[str]:
    return frozenset(ROLE_DEFAULTS.get(role, set()))
