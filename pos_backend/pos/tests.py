# pos/tests.py

"""
POS TESTS

Run with:
    python manage.py test pos -v 2

Covers:
- CartService (merge rules, snapshot pricing, discount validation, cache)
- Session cart HTTP API (cart, drafts, checkout)
"""

from __future__ import annotations

from decimal import Decimal
from unittest import mock

from django.core.cache import cache as default_cache
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from customers.models import Customer
from pos.services import (
    MAX_LINE_QUANTITY,
    CartService,
    InvalidDiscountError,
    InvalidQuantityError,
    SessionCartCache,
    UnknownVariantError,
)
from pos.views import api
from products.models import Product, ProductVariant
from sales.models import Order
from store.models import StoreSettings


def _seed_catalog(testcase):
    StoreSettings.objects.create(id=StoreSettings.GENERAL, tax_rate=Decimal("0.1000"))

    testcase.simple = Product.objects.create(
        sku="P", title="Plain Widget", base_price=Decimal("100.00"), inventory=10
    )
    testcase.variable = Product.objects.create(
        sku="V",
        title="Variable Widget",
        base_price=Decimal("20.00"),
        kind=Product.Kind.VARIABLE,
        inventory=10,
    )
    ProductVariant.objects.create(product=testcase.variable, variant_id="v1", title="Small", inventory=5, position=0)
    ProductVariant.objects.create(
        product=testcase.variable, variant_id="v2", title="Large", price=Decimal("25.00"), inventory=5, position=1
    )
    testcase.customer = Customer.objects.create(id="c1", name="Ann", phone="555-0100")


# =====================================================
# CART SERVICE
# =====================================================


class CartServiceTests(TestCase):
    """
    GUARANTEES:
    - (product_id, variant_id) is the line key; re-adding bumps quantity
    - unit_price is a snapshot taken when the line is created
    - quantity <= 0 removes the line
    - Negative / unknown discounts are rejected without changing the cart
    """

    def setUp(self):
        _seed_catalog(self)
        default_cache.clear()
        self.cart = CartService()

    def test_tax_rate_is_read_from_store_settings(self):
        self.assertEqual(self.cart.tax_rate, Decimal("0.1000"))

    def test_tax_rate_defaults_to_zero_without_settings(self):
        StoreSettings.objects.all().delete()
        self.assertEqual(CartService().tax_rate, Decimal("0"))

    def test_adding_same_product_merges_lines(self):
        self.cart.add_item(self.simple)
        self.cart.add_item(self.simple)

        self.assertEqual(len(self.cart.items), 1)
        self.assertEqual(self.cart.items[0].quantity, 2)
        self.assertEqual(self.cart.item_count, 2)

    def test_variants_of_one_product_are_separate_lines(self):
        self.cart.add_variant(self.variable, "v1")
        self.cart.add_variant(self.variable, "v2")
        self.cart.add_variant(self.variable, "v1")

        self.assertEqual(
            [(line.variant_id, line.quantity) for line in self.cart.items],
            [("v1", 2), ("v2", 1)],
        )

    def test_variant_price_overrides_base_price(self):
        small = self.cart.add_variant(self.variable, "v1")
        large = self.cart.add_variant(self.variable, "v2")

        self.assertEqual(small.unit_price, Decimal("20.00"))
        self.assertEqual(small.variant_name, "Small")
        self.assertEqual(large.unit_price, Decimal("25.00"))

    def test_unknown_variant_is_rejected(self):
        with self.assertRaises(UnknownVariantError):
            self.cart.add_variant(self.variable, "v9")
        self.assertTrue(self.cart.is_empty)

    def test_unit_price_is_snapshotted(self):
        self.cart.add_item(self.simple)
        self.simple.base_price = Decimal("150.00")
        self.simple.save()

        self.cart.add_item(self.simple)

        self.assertEqual(self.cart.items[0].unit_price, Decimal("100.00"))
        self.assertEqual(self.cart.totals().subtotal, Decimal("200.00"))

    def test_set_quantity(self):
        self.cart.add_item(self.simple)
        self.cart.set_quantity("P", 5)
        self.assertEqual(self.cart.items[0].quantity, 5)

    def test_set_quantity_zero_removes_line(self):
        self.cart.add_item(self.simple)
        self.cart.add_variant(self.variable, "v1")

        self.cart.set_quantity("P", 0)

        self.assertEqual([line.product_id for line in self.cart.items], ["V"])

    def test_quantity_is_capped(self):
        self.cart.add_item(self.simple)

        with self.assertRaises(InvalidQuantityError):
            self.cart.set_quantity("P", MAX_LINE_QUANTITY + 1)
        with self.assertRaises(InvalidQuantityError):
            self.cart.set_quantity("P", "lots")
        self.assertEqual(self.cart.items[0].quantity, 1)

        self.cart.set_quantity("P", MAX_LINE_QUANTITY)
        with self.assertRaises(InvalidQuantityError):
            self.cart.add_item(self.simple)
        self.assertEqual(self.cart.items[0].quantity, MAX_LINE_QUANTITY)

    def test_remove_item_only_removes_matching_variant(self):
        self.cart.add_variant(self.variable, "v1")
        self.cart.add_variant(self.variable, "v2")

        self.cart.remove_item("V", variant_id="v1")

        self.assertEqual([line.variant_id for line in self.cart.items], ["v2"])

    def test_negative_discount_is_rejected(self):
        self.cart.set_discount("amount", "5")

        with self.assertRaises(InvalidDiscountError):
            self.cart.set_discount("amount", "-1")
        with self.assertRaises(InvalidDiscountError):
            self.cart.set_discount("bogus", "1")
        with self.assertRaises(InvalidDiscountError):
            self.cart.set_discount("percent", "abc")

        self.assertEqual(self.cart.discount.kind, "amount")
        self.assertEqual(self.cart.discount.value, Decimal("5"))

    def test_non_finite_discount_is_rejected(self):
        for raw in ("NaN", "Infinity", "-Infinity"):
            with self.assertRaises(InvalidDiscountError):
                self.cart.set_discount("amount", raw)

        self.assertEqual(self.cart.discount.value, Decimal("0"))

    def test_totals_follow_pricing_rules(self):
        self.cart.add_item(self.simple)
        self.cart.add_item(self.simple)
        self.cart.set_discount("percent", "10")

        totals = self.cart.totals()

        self.assertEqual(totals.subtotal, Decimal("200"))
        self.assertEqual(totals.discount, Decimal("20"))
        self.assertEqual(totals.tax, Decimal("18"))
        self.assertEqual(totals.total, Decimal("198"))

    def test_change_due_is_never_negative(self):
        self.cart.add_item(self.simple)

        self.assertEqual(self.cart.change_due("120"), Decimal("10"))
        self.assertEqual(self.cart.change_due("50"), Decimal("0"))

    def test_action_predicates(self):
        self.assertFalse(self.cart.can_save_draft())
        self.assertFalse(self.cart.can_checkout("card"))

        self.cart.add_item(self.simple)

        self.assertTrue(self.cart.can_save_draft())
        self.assertTrue(self.cart.can_checkout("card"))
        self.assertFalse(self.cart.can_checkout("cash", "100"))
        self.assertTrue(self.cart.can_checkout("cash", "110"))
        self.assertFalse(self.cart.can_checkout("cash", "not-a-number"))

        self.cart.processing = True
        self.assertFalse(self.cart.can_save_draft())
        self.assertFalse(self.cart.can_checkout("card"))

    def test_clear_resets_everything(self):
        self.cart.add_item(self.simple)
        self.cart.set_customer(self.customer)
        self.cart.set_discount("percent", "10")
        self.cart.bound_order_id = "draft-1"

        self.cart.clear()

        self.assertTrue(self.cart.is_empty)
        self.assertIsNone(self.cart.customer)
        self.assertEqual(self.cart.discount.value, Decimal("0"))
        self.assertIsNone(self.cart.bound_order_id)

    def test_refresh_tax_rate(self):
        StoreSettings.objects.filter(pk=StoreSettings.GENERAL).update(tax_rate=Decimal("0.2000"))

        self.assertEqual(self.cart.refresh_tax_rate(), Decimal("0.2000"))


class SessionCartCacheTests(TestCase):
    def setUp(self):
        _seed_catalog(self)
        default_cache.clear()
        self.cache = SessionCartCache("session-1")

    def test_cart_is_restored_from_cache(self):
        cart = CartService(cache=self.cache)
        cart.add_variant(self.variable, "v2")
        cart.set_customer(self.customer)
        cart.set_discount("amount", "3")

        restored = CartService.restore(cache=SessionCartCache("session-1"))

        self.assertEqual(len(restored.items), 1)
        self.assertEqual(restored.items[0].variant_id, "v2")
        self.assertEqual(restored.items[0].unit_price, Decimal("25.00"))
        self.assertEqual(restored.customer, self.customer)
        self.assertEqual(restored.discount.value, Decimal("3"))

    def test_sessions_do_not_share_carts(self):
        CartService(cache=self.cache).add_item(self.simple)

        other = CartService.restore(cache=SessionCartCache("session-2"))

        self.assertTrue(other.is_empty)

    def test_clear_drops_cache_entry(self):
        cart = CartService(cache=self.cache)
        cart.add_item(self.simple)

        cart.clear()

        self.assertIsNone(self.cache.load())

    def test_checkout_lock_marks_cart_as_processing(self):
        self.assertTrue(self.cache.acquire_checkout_lock())
        self.assertFalse(self.cache.acquire_checkout_lock())

        self.assertTrue(CartService.restore(cache=self.cache).processing)

        self.cache.release_checkout_lock()
        self.assertFalse(CartService.restore(cache=self.cache).processing)


# =====================================================
# HTTP API
# =====================================================


class POSApiTests(TestCase):
    def setUp(self):
        _seed_catalog(self)
        default_cache.clear()
        self.client = APIClient()

    def _add(self, product_id, variant_id=None):
        payload = {"product_id": product_id}
        if variant_id:
            payload["variant_id"] = variant_id
        return self.client.post(reverse("pos:add-cart-item"), payload, format="json")

    def test_empty_cart(self):
        res = self.client.get(reverse("pos:cart"))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["items"], [])
        self.assertEqual(res.data["total"], Decimal("0"))
        self.assertIsNone(res.data["customer"])

    def test_add_items_and_read_totals(self):
        self._add("P")
        self._add("P")
        res = self._add("V", "v2")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(len(res.data["items"]), 2)
        self.assertEqual(res.data["items"][0]["quantity"], 2)
        self.assertEqual(res.data["items"][1]["variantName"], "Large")
        self.assertEqual(res.data["subtotal"], Decimal("225.00"))
        self.assertEqual(res.data["tax"], Decimal("22.50"))
        self.assertEqual(res.data["total"], Decimal("247.50"))
        self.assertEqual(res.data["itemCount"], 3)

        # Cart survives between requests of the same session
        res = self.client.get(reverse("pos:cart"))
        self.assertEqual(len(res.data["items"]), 2)

    def test_add_unknown_product(self):
        res = self._add("NOPE")

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(res.data["error"]["code"], "PRODUCT_NOT_FOUND")

    def test_variable_product_requires_variant(self):
        res = self._add("V")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"]["code"], "VARIANT_REQUIRED")

    def test_unknown_variant(self):
        res = self._add("V", "v9")

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(res.data["error"]["code"], "VARIANT_NOT_FOUND")

    def test_update_quantity_to_zero_removes_line(self):
        self._add("P")

        res = self.client.patch(
            reverse("pos:update-cart-item"),
            {"product_id": "P", "quantity": 0},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["items"], [])

    def test_remove_item(self):
        self._add("V", "v1")
        self._add("V", "v2")

        res = self.client.post(
            reverse("pos:remove-cart-item"),
            {"product_id": "V", "variant_id": "v1"},
            format="json",
        )

        self.assertEqual([i["variantId"] for i in res.data["items"]], ["v2"])

    def test_set_customer(self):
        res = self.client.post(reverse("pos:cart-customer"), {"customer_id": "c1"}, format="json")
        self.assertEqual(res.data["customer"]["name"], "Ann")

        res = self.client.post(reverse("pos:cart-customer"), {"customer_id": "zzz"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(res.data["error"]["code"], "CUSTOMER_NOT_FOUND")

        res = self.client.post(reverse("pos:cart-customer"), {"customer_id": None}, format="json")
        self.assertIsNone(res.data["customer"])

    def test_negative_discount_is_rejected(self):
        res = self.client.post(
            reverse("pos:cart-discount"), {"kind": "amount", "value": "-5"}, format="json"
        )

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"]["code"], "INVALID_DISCOUNT")

    def test_unknown_discount_kind_is_a_validation_error(self):
        res = self.client.post(
            reverse("pos:cart-discount"), {"kind": "bogo", "value": "5"}, format="json"
        )

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"]["code"], "VALIDATION_ERROR")

    def test_clear_cart(self):
        self._add("P")

        res = self.client.delete(reverse("pos:clear-cart"))

        self.assertEqual(res.data["items"], [])

    def test_draft_save_and_resume(self):
        self._add("V", "v2")
        self.client.post(reverse("pos:cart-discount"), {"kind": "percent", "value": "10"}, format="json")

        res = self.client.post(reverse("pos:save-draft"))

        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        order_id = res.data["id"]
        self.assertEqual(res.data["status"], Order.STATUS_DRAFT)
        self.assertEqual(res.data["items"][0]["variantId"], "v2")
        self.assertEqual(self.client.get(reverse("pos:cart")).data["items"], [])

        res = self.client.post(reverse("pos:resume-draft"), {"order_id": order_id}, format="json")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["boundOrderId"], order_id)
        self.assertEqual(res.data["items"][0]["variantId"], "v2")
        self.assertEqual(res.data["discountKind"], "percent")

    def test_draft_of_empty_cart(self):
        res = self.client.post(reverse("pos:save-draft"))

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"]["code"], "EMPTY_CART")

    def test_resume_unknown_order(self):
        res = self.client.post(reverse("pos:resume-draft"), {"order_id": "nope"}, format="json")

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_cash_checkout(self):
        self._add("P")
        self.client.post(reverse("pos:cart-customer"), {"customer_id": "c1"}, format="json")

        res = self.client.post(
            reverse("pos:checkout"),
            {"payment_method": "cash", "amount_tendered": "120"},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["order"]["status"], Order.STATUS_COMPLETED)
        self.assertEqual(res.data["order"]["paymentMethod"], "cash")
        self.assertEqual(res.data["order"]["total"], Decimal("110.00"))
        self.assertEqual(res.data["order"]["customerId"], "c1")
        self.assertEqual(res.data["customer"]["id"], "c1")
        self.assertEqual(res.data["changeDue"], Decimal("10.00"))

        self.simple.refresh_from_db()
        self.assertEqual(self.simple.inventory, 9)
        self.assertEqual(self.client.get(reverse("pos:cart")).data["items"], [])

    def test_insufficient_cash(self):
        self._add("P")

        res = self.client.post(
            reverse("pos:checkout"),
            {"payment_method": "cash", "amount_tendered": "10"},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"]["code"], "INSUFFICIENT_PAYMENT")
        self.assertEqual(len(self.client.get(reverse("pos:cart")).data["items"]), 1)

    def test_checkout_rejected_while_another_is_running(self):
        self._add("P")
        session_key = self.client.cookies["sessionid"].value
        lock = SessionCartCache(session_key)
        lock.acquire_checkout_lock()

        res = self.client.post(reverse("pos:checkout"), {"payment_method": "card"}, format="json")

        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["error"]["code"], "CHECKOUT_IN_PROGRESS")
        self.assertFalse(Order.objects.exists())

        lock.release_checkout_lock()
        res = self.client.post(reverse("pos:checkout"), {"payment_method": "card"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)

    def test_oversized_quantity_is_a_validation_error(self):
        self._add("P")

        res = self.client.patch(
            reverse("pos:update-cart-item"),
            {"product_id": "P", "quantity": 10**13},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"]["code"], "VALIDATION_ERROR")
        self.assertEqual(self.client.get(reverse("pos:cart")).data["items"][0]["quantity"], 1)

    def test_draft_too_large_to_store_keeps_history_readable(self):
        Product.objects.create(sku="H", title="Huge", base_price=Decimal("9999999999.99"), inventory=1)
        self._add("H")
        self.client.patch(
            reverse("pos:update-cart-item"),
            {"product_id": "H", "quantity": MAX_LINE_QUANTITY},
            format="json",
        )

        res = self.client.post(reverse("pos:save-draft"))

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"]["code"], "ORDER_LIMIT_EXCEEDED")
        self.assertFalse(Order.objects.exists())
        self.assertEqual(self.client.get(reverse("orders-list")).status_code, status.HTTP_200_OK)
        self.assertEqual(len(self.client.get(reverse("pos:cart")).data["items"]), 1)

    def test_second_checkout_cannot_run_after_cart_is_read(self):
        self._add("P")
        load_cart = api._load_cart
        resubmitted = []

        def load_then_resubmit(request, *, cache=None):
            cart = load_cart(request, cache=cache)
            if not resubmitted:
                resubmitted.append(None)
                resubmitted[0] = self.client.post(
                    reverse("pos:checkout"), {"payment_method": "card"}, format="json"
                )
            return cart

        with mock.patch.object(api, "_load_cart", side_effect=load_then_resubmit):
            res = self.client.post(reverse("pos:checkout"), {"payment_method": "card"}, format="json")

        self.assertEqual(resubmitted[0].status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resubmitted[0].data["error"]["code"], "CHECKOUT_IN_PROGRESS")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(Order.objects.count(), 1)
        self.simple.refresh_from_db()
        self.assertEqual(self.simple.inventory, 9)

    def test_resume_rejected_while_checkout_is_running(self):
        self._add("P")
        draft_id = self.client.post(reverse("pos:save-draft")).data["id"]
        lock = SessionCartCache(self.client.cookies["sessionid"].value)
        lock.acquire_checkout_lock()

        res = self.client.post(reverse("pos:resume-draft"), {"order_id": draft_id}, format="json")

        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["error"]["code"], "CHECKOUT_IN_PROGRESS")
        self.assertEqual(self.client.get(reverse("pos:cart")).data["items"], [])

        lock.release_checkout_lock()
        res = self.client.post(reverse("pos:resume-draft"), {"order_id": draft_id}, format="json")
        self.assertEqual(res.data["boundOrderId"], draft_id)

    def test_invalid_payment_method(self):
        self._add("P")

        res = self.client.post(reverse("pos:checkout"), {"payment_method": "cheque"}, format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"]["code"], "VALIDATION_ERROR")

    def test_health(self):
        res = self.client.get(reverse("health-check"))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["db"], "ok")
