# invoicing/__init__.py
"""
Invoicing app - sale/purchase invoices and POS sales.

invoicing.commands is the Invoice Lifecycle Manager:
draft -> approved -> paid, with cancel/delete reversing every effect.
invoicing.pos_commands records and cancels retail sales.
"""
