# pos/services/cart.py

"""
======================================================
PATH: pos/services/cart.py
======================================================
CART SERVICE (SESSION-SCOPED CART AGGREGATE)

Purpose:
- Mutable working set of a sale in progress: line items, selected customer,
  discount configuration and the draft order being edited (if any).
- Totals are derived on every read from the pricing engine (never stored).

Rules:
- Line uniqueness key = (product_id, variant_id); adding a known key bumps
  its quantity by 1.
- unit_price is snapshotted when the line is created and never re-read from
  the catalog.
- quantity <= 0 removes the line.
- Every mutation refreshes the cache entry (if a cache is attached).
- One instance per session; the caller owns it. No module-level state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from customers.repositories import CustomerRepository
from sales.services.pricing import (
    DISCOUNT_AMOUNT,
    DISCOUNT_KINDS,
    ZERO,
    DiscountConfig,
    PricingBreakdown,
    compute_totals,
    to_decimal,
)
from store.repositories import SettingsRepository

logger = logging.getLogger(__name__)

PAYMENT_CASH = "cash"

# Largest quantity a single cart line may hold
MAX_LINE_QUANTITY = 99_999


class CartError(Exception):
    pass


class InvalidDiscountError(CartError):
    pass


class UnknownVariantError(CartError):
    pass


class InvalidQuantityError(CartError):
    pass


@dataclass
class CartLineItem:
    product_id: str
    title: str
    unit_price: Decimal
    quantity: int = 1
    variant_id: str | None = None
    variant_name: str | None = None

    @property
    def key(self) -> tuple:
        return (self.product_id, self.variant_id)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "variant_name": self.variant_name,
            "title": self.title,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartLineItem":
        return cls(
            product_id=data["product_id"],
            variant_id=data.get("variant_id") or None,
            variant_name=data.get("variant_name") or None,
            title=data.get("title") or "",
            unit_price=to_decimal(data.get("unit_price")),
            quantity=int(data.get("quantity") or 1),
        )


class CartService:
    def __init__(self, *, tax_rate=None, settings=None, cache=None):
        self.items: list[CartLineItem] = []
        self.customer = None
        self.discount = DiscountConfig()
        self.bound_order_id: str | None = None

        # Checkout state (see sales.services.checkout_orchestrator)
        self.processing = False
        self.last_order = None
        self.last_customer = None

        self.settings = settings or SettingsRepository()
        self.cache = cache

        if tax_rate is None:
            self.tax_rate = self._read_tax_rate()
        else:
            self.tax_rate = to_decimal(tax_rate, field_name="tax_rate")

    # =====================================================
    # CONSTRUCTION / CACHE
    # =====================================================

    @classmethod
    def restore(cls, *, cache, customers=None, settings=None, tax_rate=None) -> "CartService":
        cart = cls(tax_rate=tax_rate, settings=settings, cache=cache)
        if cache is None:
            return cart

        # Another request of this session is mid-checkout
        cart.processing = cache.is_checkout_locked()

        state = cache.load()
        if not state:
            return cart

        customers = customers or CustomerRepository()

        cart.items = [CartLineItem.from_dict(d) for d in state.get("items") or []]
        customer_id = state.get("customer_id")
        cart.customer = customers.get(customer_id)
        if customer_id and cart.customer is None:
            logger.warning("Cached cart customer no longer exists", extra={"customer_id": customer_id})
        cart.discount = DiscountConfig.from_dict(state.get("discount"))
        cart.bound_order_id = state.get("bound_order_id") or None
        return cart

    def to_cache(self) -> dict:
        return {
            "items": [i.to_dict() for i in self.items],
            "customer_id": getattr(self.customer, "pk", None),
            "discount": self.discount.to_dict(),
            "bound_order_id": self.bound_order_id,
        }

    def _persist(self) -> None:
        if self.cache is not None:
            self.cache.save(self.to_cache())

    def _read_tax_rate(self) -> Decimal:
        general = self.settings.get("general")
        return to_decimal(getattr(general, "tax_rate", None), field_name="tax_rate")

    def refresh_tax_rate(self) -> Decimal:
        self.tax_rate = self._read_tax_rate()
        return self.tax_rate

    # =====================================================
    # LINE ITEMS
    # =====================================================

    def find_line(self, product_id, variant_id=None) -> CartLineItem | None:
        key = (product_id, variant_id or None)
        for line in self.items:
            if line.key == key:
                return line
        return None

    def add_item(self, product, variant_id=None, variant_name=None, price_override=None) -> CartLineItem:
        variant_id = variant_id or None
        line = self.find_line(product.sku, variant_id)

        if line is not None:
            if line.quantity >= MAX_LINE_QUANTITY:
                raise InvalidQuantityError(
                    f"Quantity of {product.sku} cannot exceed {MAX_LINE_QUANTITY}"
                )
            line.quantity += 1
        else:
            unit_price = product.base_price if price_override is None else price_override
            line = CartLineItem(
                product_id=product.sku,
                variant_id=variant_id,
                variant_name=variant_name or None,
                title=product.title,
                unit_price=to_decimal(unit_price, field_name="unit_price"),
                quantity=1,
            )
            self.items.append(line)

        self._persist()
        return line

    def add_variant(self, product, variant_id) -> CartLineItem:
        """
        Product-grid behaviour for VARIABLE products: the variant title becomes
        the line's variant_name and a positive variant price overrides the base
        price.
        """
        variant = next(
            (v for v in product.variants.all() if v.variant_id == variant_id),
            None,
        )
        if variant is None:
            raise UnknownVariantError(f"Product {product.sku} has no variant '{variant_id}'")

        price_override = variant.effective_price()
        return self.add_item(
            product,
            variant_id=variant.variant_id,
            variant_name=variant.title,
            price_override=price_override,
        )

    def remove_item(self, product_id, variant_id=None) -> None:
        key = (product_id, variant_id or None)
        self.items = [line for line in self.items if line.key != key]
        self._persist()

    def set_quantity(self, product_id, quantity, variant_id=None) -> None:
        try:
            quantity = int(quantity)
        except (TypeError, ValueError) as exc:
            raise InvalidQuantityError("Quantity must be a whole number") from exc
        if quantity > MAX_LINE_QUANTITY:
            raise InvalidQuantityError(f"Quantity cannot exceed {MAX_LINE_QUANTITY}")

        if quantity <= 0:
            self.remove_item(product_id, variant_id)
            return

        line = self.find_line(product_id, variant_id)
        if line is not None:
            line.quantity = quantity
        self._persist()

    # =====================================================
    # CUSTOMER / DISCOUNT
    # =====================================================

    def set_customer(self, customer) -> None:
        self.customer = customer
        self._persist()

    def set_discount(self, kind: str, value) -> None:
        if kind not in DISCOUNT_KINDS:
            raise InvalidDiscountError(f"Unknown discount kind: {kind}")

        try:
            amount = to_decimal(value, field_name="discount")
        except ValueError as exc:
            raise InvalidDiscountError(str(exc)) from exc

        if amount < ZERO:
            raise InvalidDiscountError("Discount cannot be negative")

        self.discount = DiscountConfig(kind=kind, value=amount)
        self._persist()

    # =====================================================
    # WHOLE-CART OPERATIONS
    # =====================================================

    def clear(self) -> None:
        self.items = []
        self.customer = None
        self.discount = DiscountConfig(kind=DISCOUNT_AMOUNT, value=ZERO)
        self.bound_order_id = None
        if self.cache is not None:
            self.cache.clear()

    def load(self, *, items, customer, discount: DiscountConfig, bound_order_id) -> None:
        """Replace the whole cart (used when a draft order is resumed)."""
        self.items = list(items)
        self.customer = customer
        self.discount = discount
        self.bound_order_id = bound_order_id
        self._persist()

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.items)

    # =====================================================
    # DERIVED VALUES
    # =====================================================

    def totals(self) -> PricingBreakdown:
        return compute_totals(self.items, self.discount, self.tax_rate)

    def change_due(self, amount_tendered) -> Decimal:
        tendered = to_decimal(amount_tendered, field_name="amount_tendered")
        return max(ZERO, tendered - self.totals().total)

    def can_save_draft(self) -> bool:
        return not self.is_empty and not self.processing

    def can_checkout(self, payment_method: str, amount_tendered=None) -> bool:
        if self.is_empty or self.processing:
            return False
        if payment_method != PAYMENT_CASH:
            return True
        try:
            tendered = to_decimal(amount_tendered, field_name="amount_tendered")
        except ValueError:
            return False
        return tendered >= self.totals().total

    def snapshot(self) -> dict:
        totals = self.totals()
        return {
            "items": [
                {
                    "productId": line.product_id,
                    "variantId": line.variant_id,
                    "variantName": line.variant_name,
                    "title": line.title,
                    "unitPrice": line.unit_price,
                    "quantity": line.quantity,
                    "lineTotal": line.line_total,
                }
                for line in self.items
            ],
            "customer": self.customer,
            "discountKind": self.discount.kind,
            "discountValue": self.discount.value,
            "discount": totals.discount,
            "subtotal": totals.subtotal,
            "tax": totals.tax,
            "taxRate": self.tax_rate,
            "total": totals.total,
            "itemCount": self.item_count,
            "boundOrderId": self.bound_order_id,
        }
