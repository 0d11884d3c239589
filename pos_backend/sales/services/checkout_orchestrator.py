# sales/services/checkout_orchestrator.py

"""
CHECKOUT ORCHESTRATOR (ORDER LIFECYCLE MANAGER)

Purpose:
- Snapshot a session cart into an Order record (draft save / checkout).
- Decrement catalog stock for every line at checkout.
- Rehydrate a cart from a saved draft.

Hard rules:
- Totals come from the pricing engine, never from the client.
- Checkout is all-or-nothing: the Order write, its audit entry and every
  per-line stock write run inside one DB transaction.
- On failure the cart is left intact and the processing flag is reset so the
  cashier can retry. No automatic retry.
- A second checkout while one is running on the same cart is rejected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db import DatabaseError, transaction

from customers.repositories import CustomerRepository
from pos.services.cart import CartLineItem
from products.services.inventory import InventoryReconciler
from products.services.inventory import ReconciliationError as InventoryWriteError
from sales.models import Order, OrderItem
from sales.repositories import OrderRepository
from sales.services.order_lifecycle import InvalidOrderTransitionError, validate_resume
from sales.services.pricing import DiscountConfig, to_decimal

logger = logging.getLogger(__name__)

PAYMENT_METHODS = {
    Order.PAYMENT_CASH,
    Order.PAYMENT_CARD,
    Order.PAYMENT_UPI,
}

# Order money columns are Decimal(18, 6): 12 integer digits
MONEY_LIMIT = Decimal(10) ** 12


# ============================================================
# ERRORS
# ============================================================


class CheckoutError(Exception):
    """Base checkout exception (message is safe to show to the cashier)."""

    code = "CHECKOUT_ERROR"
    http_status = 400


class EmptyCartError(CheckoutError):
    code = "EMPTY_CART"


class InvalidPaymentMethodError(CheckoutError):
    code = "INVALID_PAYMENT_METHOD"


class InsufficientPaymentError(CheckoutError):
    code = "INSUFFICIENT_PAYMENT"


class CheckoutInProgressError(CheckoutError):
    code = "CHECKOUT_IN_PROGRESS"
    http_status = 409


class OrderStateError(CheckoutError):
    code = "INVALID_ORDER_STATE"
    http_status = 409


class PersistenceError(CheckoutError):
    code = "PERSISTENCE_ERROR"
    http_status = 500


class ReconciliationError(PersistenceError):
    code = "INVENTORY_RECONCILIATION_FAILED"


class OrderLimitError(CheckoutError):
    code = "ORDER_LIMIT_EXCEEDED"


@dataclass(frozen=True)
class CheckoutResult:
    order: Order
    customer: object | None
    change_due: Decimal


# ============================================================
# SNAPSHOT HELPERS
# ============================================================


def _check_money_limits(order: Order, items: list[OrderItem]) -> None:
    amounts = {
        "subtotal": order.subtotal,
        "discount": order.discount,
        "discount value": order.discount_value,
        "tax": order.tax,
        "total": order.total,
    }
    for item in items:
        amounts[f"price of {item.sku}"] = item.price

    for label, amount in amounts.items():
        if abs(amount) >= MONEY_LIMIT:
            raise OrderLimitError(f"Order {label} ({amount}) exceeds the largest storable amount")


def build_order(cart, *, status: str, payment_method: str | None = None) -> tuple[Order, list[OrderItem]]:
    totals = cart.totals()

    order_kwargs = dict(
        customer_id=getattr(cart.customer, "pk", None),
        subtotal=totals.subtotal,
        discount=totals.discount,
        discount_kind=cart.discount.kind,
        discount_value=cart.discount.value,
        tax=totals.tax,
        total=totals.total,
        status=status,
        payment_method=payment_method,
    )
    if cart.bound_order_id:
        order_kwargs["id"] = cart.bound_order_id

    order = Order(**order_kwargs)

    items = [
        OrderItem(
            sku=line.product_id,
            title=line.title,
            price=line.unit_price,
            qty=line.quantity,
            variant_name=line.variant_name,
            variant_id=line.variant_id,
        )
        for line in cart.items
    ]
    _check_money_limits(order, items)
    return order, items


def lines_from_order(order: Order) -> list[CartLineItem]:
    return [
        CartLineItem(
            product_id=item.sku,
            title=item.title,
            unit_price=to_decimal(item.price),
            quantity=int(item.qty),
            variant_id=item.variant_id or None,
            variant_name=item.variant_name or None,
        )
        for item in order.items.all()
    ]


# ============================================================
# LIFECYCLE MANAGER
# ============================================================


class OrderLifecycleManager:
    def __init__(self, *, cart, orders=None, reconciler=None, customers=None):
        self.cart = cart
        self.orders = orders or OrderRepository()
        self.reconciler = reconciler or InventoryReconciler()
        self.customers = customers or CustomerRepository()

    def save_draft(self) -> Order:
        if self.cart.is_empty:
            raise EmptyCartError("Cart is empty")
        if self.cart.processing:
            raise CheckoutInProgressError("A checkout is already in progress for this cart")

        order, items = build_order(self.cart, status=Order.STATUS_DRAFT)

        try:
            order = self.orders.put(order, items)
        except InvalidOrderTransitionError as exc:
            raise OrderStateError(str(exc)) from exc
        except DatabaseError as exc:
            logger.exception("Draft save failed", extra={"order_id": order.pk})
            raise PersistenceError("Could not save the draft order") from exc

        logger.info(
            "Draft order saved",
            extra={"order_id": order.pk, "item_count": len(items)},
        )

        self.cart.clear()
        return order

    def checkout(self, payment_method: str, amount_tendered=None) -> CheckoutResult:
        cart = self.cart

        if cart.processing:
            raise CheckoutInProgressError("A checkout is already in progress for this cart")
        if cart.is_empty:
            raise EmptyCartError("Cart is empty")

        pm = (payment_method or "").strip().lower()
        if pm not in PAYMENT_METHODS:
            raise InvalidPaymentMethodError(f"Invalid payment method: {payment_method}")

        total = cart.totals().total
        change_due = Decimal("0")

        if pm == Order.PAYMENT_CASH:
            try:
                tendered = to_decimal(amount_tendered, field_name="amount_tendered")
            except ValueError as exc:
                raise InsufficientPaymentError(str(exc)) from exc
            if tendered < total:
                raise InsufficientPaymentError(
                    f"Amount tendered ({tendered}) is less than the total ({total})"
                )
            change_due = cart.change_due(tendered)

        cart.processing = True
        try:
            order, items = build_order(cart, status=Order.STATUS_COMPLETED, payment_method=pm)

            try:
                with transaction.atomic():
                    order = self.orders.put(order, items)
                    self.reconciler.reconcile(cart.items)
            except InvalidOrderTransitionError as exc:
                raise OrderStateError(str(exc)) from exc
            except InventoryWriteError as exc:
                logger.exception(
                    "Checkout failed during stock reconciliation",
                    extra={"order_id": order.pk, "sku": exc.product_id, "payment_method": pm},
                )
                raise ReconciliationError(
                    "Stock could not be updated; the sale was not recorded"
                ) from exc
            except DatabaseError as exc:
                logger.exception(
                    "Checkout failed while writing the order",
                    extra={"order_id": order.pk, "payment_method": pm},
                )
                raise PersistenceError("The sale could not be recorded") from exc

            customer = cart.customer
            cart.clear()
            cart.last_order = order
            cart.last_customer = customer

            logger.info(
                "Checkout completed",
                extra={
                    "order_id": order.pk,
                    "payment_method": pm,
                    "total": str(order.total),
                },
            )

            return CheckoutResult(order=order, customer=customer, change_due=change_due)
        finally:
            cart.processing = False

    def resume_draft(self, order: Order) -> None:
        if self.cart.processing:
            raise CheckoutInProgressError("A checkout is already in progress for this cart")

        try:
            validate_resume(order)
        except InvalidOrderTransitionError as exc:
            raise OrderStateError(str(exc)) from exc

        self.cart.load(
            items=lines_from_order(order),
            customer=self.customers.get(order.customer_id),
            discount=DiscountConfig(
                kind=order.discount_kind,
                value=to_decimal(order.discount_value),
            ),
            bound_order_id=order.pk,
        )

        logger.info("Draft order resumed", extra={"order_id": order.pk})
