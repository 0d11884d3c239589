from .cart import (
    MAX_LINE_QUANTITY,
    CartLineItem,
    CartService,
    InvalidDiscountError,
    InvalidQuantityError,
    UnknownVariantError,
)
from .cart_cache import SessionCartCache

__all__ = [
    "MAX_LINE_QUANTITY",
    "CartLineItem",
    "CartService",
    "InvalidDiscountError",
    "InvalidQuantityError",
    "UnknownVariantError",
    "SessionCartCache",
]
