# invoicing/policies.py
"""
Invoice state machine rules.

Each policy returns (allowed, reason); commands raise
InvalidStateTransition when a policy refuses.

    draft ──approve──> approved ──collect/pay──> paid
      │                   │                        │
      └──delete           └────cancel/delete───────┘
"""

from decimal import Decimal
from typing import Tuple

from invoicing.models import Invoice


def can_edit_invoice(invoice: Invoice) -> Tuple[bool, str]:
    if invoice.status != Invoice.Status.DRAFT:
        return False, f"Only draft invoices can be edited (status is {invoice.status})."
    return True, ""


def can_approve_invoice(invoice: Invoice) -> Tuple[bool, str]:
    if invoice.status != Invoice.Status.DRAFT:
        return False, f"Invoice {invoice.invoice_number} is {invoice.status} and cannot be approved."
    return True, ""


def _can_settle(invoice: Invoice, amount: Decimal, invoice_type: str, verb: str) -> Tuple[bool, str]:
    if invoice.type != invoice_type:
        return False, f"Only {invoice_type} invoices can be {verb}."
    if not invoice.is_posted:
        return False, f"Invoice {invoice.invoice_number} is {invoice.status}; approve it first."
    if invoice.outstanding <= 0:
        return False, f"Invoice {invoice.invoice_number} is already fully paid."
    if amount > invoice.outstanding:
        return False, f"Amount {amount} exceeds the outstanding {invoice.outstanding}."
    return True, ""


def can_collect(invoice: Invoice, amount: Decimal) -> Tuple[bool, str]:
    return _can_settle(invoice, amount, Invoice.Type.SALE, "collected")


def can_pay(invoice: Invoice, amount: Decimal) -> Tuple[bool, str]:
    return _can_settle(invoice, amount, Invoice.Type.PURCHASE, "paid")


def can_cancel_invoice(invoice: Invoice) -> Tuple[bool, str]:
    if invoice.status == Invoice.Status.CANCELED:
        return False, f"Invoice {invoice.invoice_number} is already canceled."
    return True, ""
