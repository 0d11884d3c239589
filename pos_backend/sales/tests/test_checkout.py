# sales/tests/test_checkout.py

from decimal import Decimal

from django.db import DatabaseError
from django.test import TestCase

from customers.models import Customer
from pos.services import CartService
from products.models import Product, ProductVariant
from products.services.inventory import ReconciliationError as InventoryWriteError
from sales.models import Order, OrderAuditLog, OrderItem
from sales.repositories import OrderRepository
from sales.services.checkout_orchestrator import (
    CheckoutInProgressError,
    EmptyCartError,
    InsufficientPaymentError,
    InvalidPaymentMethodError,
    OrderLifecycleManager,
    OrderLimitError,
    OrderStateError,
    PersistenceError,
    ReconciliationError,
)
from store.models import StoreSettings


class FailingReconciler:
    def reconcile(self, lines):
        raise InventoryWriteError("disk full", product_id="P")


class FailingOrderRepository(OrderRepository):
    def put(self, order, items):
        raise DatabaseError("database is locked")


class CheckoutTestBase(TestCase):
    def setUp(self):
        StoreSettings.objects.create(id=StoreSettings.GENERAL, tax_rate=Decimal("0.1000"))

        self.simple = Product.objects.create(
            sku="P", title="Plain Widget", base_price=Decimal("100.00"), inventory=10
        )

        self.variable = Product.objects.create(
            sku="V",
            title="Variable Widget",
            base_price=Decimal("20.00"),
            kind=Product.Kind.VARIABLE,
            inventory=10,
        )
        ProductVariant.objects.create(product=self.variable, variant_id="v1", title="Medium", inventory=5, position=0)
        ProductVariant.objects.create(
            product=self.variable, variant_id="v2", title="Medium", price=Decimal("25.00"), inventory=5, position=1
        )

        self.customer = Customer.objects.create(id="c1", name="Ann")

        self.cart = CartService()
        self.manager = OrderLifecycleManager(cart=self.cart)


class CheckoutTests(CheckoutTestBase):
    """
    GUARANTEES:
    - Checkout writes a completed Order and decrements stock
    - Cart is cleared only on success
    - Failures roll back the whole checkout and leave the cart intact
    - processing flag blocks double submission and is reset afterwards
    """

    def test_cash_checkout_completes_order_and_decrements_stock(self):
        self.cart.add_item(self.simple)
        self.cart.add_item(self.simple)
        self.cart.set_discount("amount", "20")
        self.cart.set_customer(self.customer)

        result = self.manager.checkout("cash", "200")

        order = Order.objects.get(pk=result.order.pk)
        self.assertEqual(order.status, Order.STATUS_COMPLETED)
        self.assertEqual(order.payment_method, Order.PAYMENT_CASH)
        self.assertEqual(order.customer_id, "c1")
        self.assertEqual(order.subtotal, Decimal("200"))
        self.assertEqual(order.discount, Decimal("20"))
        self.assertEqual(order.tax, Decimal("18"))
        self.assertEqual(order.total, Decimal("198"))
        self.assertEqual(result.change_due, Decimal("2"))
        self.assertEqual(result.customer, self.customer)

        self.simple.refresh_from_db()
        self.assertEqual(self.simple.inventory, 8)

        self.assertTrue(self.cart.is_empty)
        self.assertIsNone(self.cart.customer)
        self.assertEqual(self.cart.last_order.pk, order.pk)
        self.assertEqual(self.cart.last_customer, self.customer)
        self.assertFalse(self.cart.processing)

        self.assertTrue(
            OrderAuditLog.objects.filter(
                order_id=order.pk, action=OrderAuditLog.ACTION_CHECKOUT_COMPLETED
            ).exists()
        )

    def test_card_checkout_needs_no_tender(self):
        self.cart.add_item(self.simple)

        result = self.manager.checkout("card")

        self.assertEqual(result.order.payment_method, Order.PAYMENT_CARD)
        self.assertEqual(result.change_due, Decimal("0"))

    def test_variant_checkout_decrements_only_that_variant(self):
        self.cart.add_variant(self.variable, "v1")
        self.cart.add_variant(self.variable, "v1")

        self.manager.checkout("upi")

        inventories = dict(self.variable.variants.values_list("variant_id", "inventory"))
        self.assertEqual(inventories, {"v1": 3, "v2": 5})
        self.variable.refresh_from_db()
        self.assertEqual(self.variable.inventory, 8)

    def test_checkout_clamps_stock_at_zero(self):
        self.cart.add_item(self.simple)
        self.cart.set_quantity("P", 15)

        self.manager.checkout("card")

        self.simple.refresh_from_db()
        self.assertEqual(self.simple.inventory, 0)

    def test_empty_cart_is_rejected(self):
        with self.assertRaises(EmptyCartError):
            self.manager.checkout("card")

        self.assertFalse(Order.objects.exists())

    def test_invalid_payment_method_is_rejected(self):
        self.cart.add_item(self.simple)

        with self.assertRaises(InvalidPaymentMethodError):
            self.manager.checkout("cheque")

    def test_insufficient_cash_is_rejected_and_cart_kept(self):
        self.cart.add_item(self.simple)

        with self.assertRaises(InsufficientPaymentError):
            self.manager.checkout("cash", "50")

        self.assertFalse(Order.objects.exists())
        self.assertEqual(len(self.cart.items), 1)
        self.assertFalse(self.cart.processing)

    def test_missing_cash_tender_is_rejected(self):
        self.cart.add_item(self.simple)

        with self.assertRaises(InsufficientPaymentError):
            self.manager.checkout("cash")

    def test_checkout_in_progress_is_rejected(self):
        self.cart.add_item(self.simple)
        self.cart.processing = True

        with self.assertRaises(CheckoutInProgressError):
            self.manager.checkout("card")

        self.assertFalse(Order.objects.exists())

    def test_reconciliation_failure_rolls_back_order_and_keeps_cart(self):
        self.cart.add_item(self.simple)
        manager = OrderLifecycleManager(cart=self.cart, reconciler=FailingReconciler())

        with self.assertRaises(ReconciliationError) as ctx:
            manager.checkout("card")

        self.assertIsInstance(ctx.exception, PersistenceError)
        self.assertFalse(Order.objects.exists())
        self.assertFalse(OrderAuditLog.objects.exists())
        self.assertEqual(len(self.cart.items), 1)
        self.assertFalse(self.cart.processing)
        self.assertIsNone(self.cart.last_order)

        # Retry with a working reconciler succeeds
        result = self.manager.checkout("card")
        self.assertEqual(result.order.status, Order.STATUS_COMPLETED)

    def test_order_write_failure_keeps_cart_and_stock(self):
        self.cart.add_item(self.simple)
        manager = OrderLifecycleManager(cart=self.cart, orders=FailingOrderRepository())

        with self.assertRaises(PersistenceError) as ctx:
            manager.checkout("card")

        self.assertNotIsInstance(ctx.exception, ReconciliationError)
        self.assertFalse(Order.objects.exists())
        self.assertEqual(len(self.cart.items), 1)
        self.assertFalse(self.cart.processing)
        self.assertIsNone(self.cart.last_order)
        self.simple.refresh_from_db()
        self.assertEqual(self.simple.inventory, 10)

    def test_order_too_large_to_store_is_rejected(self):
        huge = Product.objects.create(
            sku="H", title="Huge", base_price=Decimal("9999999999.99"), inventory=10
        )
        self.cart.add_item(huge)
        self.cart.set_quantity("H", 1000)

        with self.assertRaises(OrderLimitError):
            self.manager.checkout("card")

        self.assertFalse(Order.objects.exists())
        self.assertEqual(self.cart.items[0].quantity, 1000)
        self.assertFalse(self.cart.processing)
        huge.refresh_from_db()
        self.assertEqual(huge.inventory, 10)

    def test_unknown_product_line_is_skipped(self):
        self.cart.add_item(self.simple)
        Product.objects.filter(pk="P").delete()

        result = self.manager.checkout("card")

        self.assertEqual(result.order.status, Order.STATUS_COMPLETED)


class DraftTests(CheckoutTestBase):
    """
    GUARANTEES:
    - save_draft persists a draft and empties the cart
    - resume_draft restores lines, discount, customer and the draft binding
    - Checkout of a resumed draft completes the same order id
    """

    def test_save_draft_requires_items(self):
        with self.assertRaises(EmptyCartError):
            self.manager.save_draft()

    def test_save_draft_empties_cart(self):
        self.cart.add_item(self.simple)

        order = self.manager.save_draft()

        self.assertEqual(order.status, Order.STATUS_DRAFT)
        self.assertIsNone(order.payment_method)
        self.assertTrue(self.cart.is_empty)
        self.assertIsNone(self.cart.bound_order_id)

        # Drafts never touch stock
        self.simple.refresh_from_db()
        self.assertEqual(self.simple.inventory, 10)

    def test_draft_round_trip_preserves_lines_and_discount(self):
        self.cart.add_item(self.simple)
        self.cart.add_variant(self.variable, "v2")
        self.cart.set_quantity("V", 3, variant_id="v2")
        self.cart.set_discount("percent", "10")
        self.cart.set_customer(self.customer)
        before = [
            (line.product_id, line.title, line.quantity, line.unit_price, line.variant_name, line.variant_id)
            for line in self.cart.items
        ]
        totals_before = self.cart.totals()

        order = self.manager.save_draft()
        self.manager.resume_draft(Order.objects.get(pk=order.pk))

        after = [
            (line.product_id, line.title, line.quantity, line.unit_price, line.variant_name, line.variant_id)
            for line in self.cart.items
        ]
        self.assertEqual(after, before)
        self.assertEqual(self.cart.discount.kind, "percent")
        self.assertEqual(self.cart.discount.value, Decimal("10"))
        self.assertEqual(self.cart.customer, self.customer)
        self.assertEqual(self.cart.bound_order_id, order.pk)
        self.assertEqual(self.cart.totals(), totals_before)

    def test_same_titled_variants_stay_distinct_after_resume(self):
        self.cart.add_variant(self.variable, "v1")
        self.cart.add_variant(self.variable, "v2")

        order = self.manager.save_draft()
        self.manager.resume_draft(Order.objects.get(pk=order.pk))

        self.assertEqual([line.variant_id for line in self.cart.items], ["v1", "v2"])

        self.cart.add_variant(self.variable, "v2")
        self.assertEqual([line.quantity for line in self.cart.items], [1, 2])

    def test_legacy_draft_without_variant_id_loses_variant_identity(self):
        legacy = Order.objects.create(id="legacy-1", status=Order.STATUS_DRAFT)
        OrderItem.objects.create(
            order=legacy,
            sku="V",
            title="Variable Widget",
            price=Decimal("20"),
            qty=1,
            variant_name="Medium",
            variant_id=None,
        )

        self.manager.resume_draft(Order.objects.get(pk="legacy-1"))

        line = self.cart.items[0]
        self.assertEqual(line.variant_name, "Medium")
        self.assertIsNone(line.variant_id)

        # Known limitation: the resumed line no longer matches its variant key
        self.cart.add_variant(self.variable, "v1")
        self.assertEqual(len(self.cart.items), 2)

    def test_checkout_of_resumed_draft_reuses_order_id(self):
        self.cart.add_item(self.simple)
        draft = self.manager.save_draft()
        self.manager.resume_draft(Order.objects.get(pk=draft.pk))

        result = self.manager.checkout("card")

        self.assertEqual(result.order.pk, draft.pk)
        self.assertEqual(Order.objects.count(), 1)
        self.assertEqual(Order.objects.get(pk=draft.pk).status, Order.STATUS_COMPLETED)

    def test_resaving_resumed_draft_keeps_order_id(self):
        self.cart.add_item(self.simple)
        draft = self.manager.save_draft()
        self.manager.resume_draft(Order.objects.get(pk=draft.pk))
        self.cart.add_item(self.simple)

        resaved = self.manager.save_draft()

        self.assertEqual(resaved.pk, draft.pk)
        self.assertEqual(Order.objects.count(), 1)
        self.assertEqual(Order.objects.get(pk=draft.pk).items.get().qty, 2)

    def test_completed_order_cannot_be_resumed(self):
        self.cart.add_item(self.simple)
        result = self.manager.checkout("card")

        with self.assertRaises(OrderStateError):
            self.manager.resume_draft(Order.objects.get(pk=result.order.pk))

        self.assertTrue(self.cart.is_empty)

    def test_cart_bound_to_completed_order_cannot_checkout_again(self):
        self.cart.add_item(self.simple)
        draft = self.manager.save_draft()
        self.manager.resume_draft(Order.objects.get(pk=draft.pk))

        other_cart = CartService()
        OrderLifecycleManager(cart=other_cart).resume_draft(Order.objects.get(pk=draft.pk))
        OrderLifecycleManager(cart=other_cart).checkout("card")

        with self.assertRaises(OrderStateError):
            self.manager.checkout("card")

        self.assertEqual(len(self.cart.items), 1)
        self.assertFalse(self.cart.processing)
        self.simple.refresh_from_db()
        self.assertEqual(self.simple.inventory, 9)

    def test_draft_write_failure_keeps_cart(self):
        self.cart.add_item(self.simple)
        manager = OrderLifecycleManager(cart=self.cart, orders=FailingOrderRepository())

        with self.assertRaises(PersistenceError):
            manager.save_draft()

        self.assertFalse(Order.objects.exists())
        self.assertEqual(len(self.cart.items), 1)

    def test_draft_too_large_to_store_is_rejected(self):
        self.cart.add_item(self.simple)
        self.cart.add_item(self.simple)
        # 200 x 999999999999% does not fit the discount column
        self.cart.set_discount("percent", "999999999999")

        with self.assertRaises(OrderLimitError):
            self.manager.save_draft()

        self.assertFalse(Order.objects.exists())
        self.assertEqual(self.cart.items[0].quantity, 2)

    def test_resume_is_rejected_while_checkout_is_running(self):
        self.cart.add_item(self.simple)
        draft = self.manager.save_draft()
        self.cart.add_item(self.simple)
        self.cart.processing = True

        with self.assertRaises(CheckoutInProgressError):
            self.manager.resume_draft(Order.objects.get(pk=draft.pk))

        self.assertIsNone(self.cart.bound_order_id)
        self.assertEqual(len(self.cart.items), 1)
