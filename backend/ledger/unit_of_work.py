# ledger/unit_of_work.py
"""
Command boundary.

Every command runs as one atomic unit of work:
1. Open a transaction and a command write context
2. Run the command body, which raises LedgerError on business failures
3. Commit and return CommandResult.ok(...), or roll back and return
   CommandResult.fail(...) carrying the error code

PermissionDenied propagates unchanged so views can answer 403.
"""

import functools
import logging

from django.core.exceptions import PermissionDenied
from django.db import transaction

from ledger.exceptions import LedgerError
from ledger.write_barrier import command_writes_allowed

logger = logging.getLogger(__name__)


class CommandResult:
    """
    Wrapper for command results with success/failure info.

    Usage:
        result = approve_invoice(actor, invoice_id)
        if result.success:
            invoice = result.data
            entry = result.entry
        else:
            error_message = result.error
            error_code = result.error_code
    """

    def __init__(self, success: bool, data=None, error: str = None, error_code: str = None, entry=None):
        self.success = success
        self.data = data
        self.error = error
        self.error_code = error_code
        self.entry = entry  # The ledger entry written, if any

    @classmethod
    def ok(cls, data=None, entry=None):
        return cls(success=True, data=data, entry=entry)

    @classmethod
    def fail(cls, error: str, code: str = "validation_error"):
        return cls(success=False, error=error, error_code=code)

    def __repr__(self):
        if self.success:
            return f"<CommandResult ok data={self.data!r}>"
        return f"<CommandResult fail {self.error_code}: {self.error}>"


def ledger_command(func):
    """
    Run a command body as one atomic unit of work.

    The wrapped function receives the ActorContext first and returns a
    CommandResult on success.
    """

    @functools.wraps(func)
    def wrapper(actor, *args, **kwargs):
        try:
            with transaction.atomic(), command_writes_allowed():
                return func(actor, *args, **kwargs)
        except PermissionDenied:
            raise
        except LedgerError as exc:
            logger.info(
                "Command %s rejected: %s",
                func.__name__,
                exc,
                extra={
                    "command": func.__name__,
                    "company_id": actor.company.id,
                    "error_code": exc.code,
                    **exc.context,
                },
            )
            return CommandResult.fail(str(exc), code=exc.code)
        except Exception:
            logger.exception(
                "Command %s failed unexpectedly",
                func.__name__,
                extra={"command": func.__name__, "company_id": actor.company.id},
            )
            return CommandResult.fail("Internal error.", code="internal_error")

    return wrapper
