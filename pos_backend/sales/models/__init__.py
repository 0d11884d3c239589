# sales/models/__init__.py

"""
SALES MODELS PACKAGE EXPORTS

Purpose:
- Central export surface for sales app models.
"""

from .order import Order
from .order_audit import OrderAuditLog
from .order_item import OrderItem

__all__ = [
    "Order",
    "OrderItem",
    "OrderAuditLog",
]
