# inventory/__init__.py
"""
Inventory app - products and the stock movement audit trail.

inventory.stock is the only code that changes Product.quantity during
invoice and POS lifecycle transitions.
"""
