"""
PATH: products/models/__init__.py

Products models export surface.
"""

from .product import Product, ProductVariant

__all__ = [
    "Product",
    "ProductVariant",
]
