# ledger/exceptions.py
"""
Business error taxonomy.

Commands raise these inside their unit of work; the unit of work rolls
back and turns them into CommandResult failures carrying `code`.
Views map the code onto an HTTP status.
"""


class LedgerError(Exception):
    code = "ledger_error"

    def __init__(self, message: str = "", **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self):
        return self.message


class ValidationError(LedgerError):
    """Missing or invalid input, rejected before any mutation."""
    code = "validation_error"


class InsufficientStock(LedgerError):
    code = "insufficient_stock"

    def __init__(self, product, requested, available):
        super().__init__(
            f"Insufficient stock for '{product.name}': "
            f"requested {requested}, available {available}.",
            product_id=product.pk,
            requested=str(requested),
            available=str(available),
        )
        self.product = product


class InsufficientFunds(LedgerError):
    code = "insufficient_funds"

    def __init__(self, account, requested):
        super().__init__(
            f"Insufficient funds in '{account.name}': "
            f"balance {account.balance}, requested {requested}.",
            account_id=account.pk,
            requested=str(requested),
            balance=str(account.balance),
        )
        self.account = account


class InvalidStateTransition(LedgerError):
    code = "invalid_state_transition"


class NotFound(LedgerError):
    """Missing, or owned by another company. Callers cannot tell which."""
    code = "not_found"


class ConsistencyFailure(LedgerError):
    """A cached balance drifted from its replayed value."""
    code = "consistency_failure"
