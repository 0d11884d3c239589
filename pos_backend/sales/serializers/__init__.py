from .order import OrderItemSerializer, OrderSerializer, money_field
from .summary import OrderSummarySerializer

__all__ = [
    "OrderSerializer",
    "OrderItemSerializer",
    "OrderSummarySerializer",
    "money_field",
]
