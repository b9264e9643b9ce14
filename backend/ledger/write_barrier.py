# ledger/write_barrier.py

from contextlib import contextmanager
import threading

from django.conf import settings


_state = threading.local()

# Contexts in which audit-trail rows (ledger entries, stock movements) may change.
AUDIT_TRAIL_CONTEXTS = frozenset({"command", "reconciliation"})


def _context_stack() -> list[str]:
    stack = getattr(_state, "write_context_stack", None)
    if stack is None:
        stack = []
        _state.write_context_stack = stack
    return stack


def current_write_context() -> str | None:
    stack = _context_stack()
    return stack[-1] if stack else None


def write_context_allowed(allowed_contexts) -> bool:
    ctx = current_write_context()
    if ctx is None:
        return False
    return ctx in allowed_contexts


def audit_trail_write_allowed() -> bool:
    if getattr(settings, "TESTING", False):
        return True
    return write_context_allowed(AUDIT_TRAIL_CONTEXTS)


@contextmanager
def _push_write_context(name: str):
    stack = _context_stack()
    stack.append(name)
    try:
        yield
    finally:
        stack.pop()


@contextmanager
def command_writes_allowed():
    with _push_write_context("command"):
        yield


@contextmanager
def reconciliation_writes_allowed():
    with _push_write_context("reconciliation"):
        yield
