from .cart import CartLineSerializer, CartSnapshotSerializer, CheckoutResultSerializer

__all__ = [
    "CartLineSerializer",
    "CartSnapshotSerializer",
    "CheckoutResultSerializer",
]
