# pos/views/api.py

"""
POS API VIEWS

Purpose:
- Session-scoped cart lifecycle (add/update/remove/clear, customer, discount)
- Draft save / resume
- Checkout endpoint that finalizes the cart into an Order via the
  checkout orchestrator

Hard rules:
- The cart is keyed by the Django session; no authentication.
- Money is server-owned: unit_price is snapshotted from the Product on add,
  totals are derived by the pricing engine on every response.
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiExample, extend_schema
from rest_framework import serializers, status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from customers.repositories import CustomerRepository
from pos.serializers import CartSnapshotSerializer, CheckoutResultSerializer
from pos.services import (
    MAX_LINE_QUANTITY,
    CartService,
    InvalidDiscountError,
    InvalidQuantityError,
    SessionCartCache,
    UnknownVariantError,
)
from products.repositories import ProductRepository
from sales.models import Order
from sales.repositories import OrderRepository
from sales.serializers import OrderSerializer
from sales.services.checkout_orchestrator import (
    CheckoutError,
    CheckoutInProgressError,
    OrderLifecycleManager,
)
from sales.services.pricing import DISCOUNT_KINDS

logger = logging.getLogger(__name__)


# =====================================================
# SWAGGER INPUT SERIALIZERS
# =====================================================

class CartLineRefInputSerializer(serializers.Serializer):
    product_id = serializers.CharField(max_length=128)
    variant_id = serializers.CharField(max_length=128, required=False, allow_null=True, allow_blank=True)


class UpdateCartItemInputSerializer(CartLineRefInputSerializer):
    # 0 removes the line
    quantity = serializers.IntegerField(min_value=0, max_value=MAX_LINE_QUANTITY)


class SetCustomerInputSerializer(serializers.Serializer):
    customer_id = serializers.CharField(max_length=64, required=False, allow_null=True, allow_blank=True)


class SetDiscountInputSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=list(DISCOUNT_KINDS))
    value = serializers.DecimalField(max_digits=18, decimal_places=6)


class ResumeDraftInputSerializer(serializers.Serializer):
    order_id = serializers.CharField(max_length=64)


class CheckoutInputSerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(
        choices=[c[0] for c in Order.PAYMENT_METHOD_CHOICES],
    )
    amount_tendered = serializers.DecimalField(
        max_digits=18,
        decimal_places=6,
        required=False,
        allow_null=True,
    )


# =====================================================
# API ERROR NORMALIZATION
# =====================================================

def error_response(*, code: str, message: str, http_status: int):
    return Response(
        {"error": {"code": code, "message": message}},
        status=http_status,
    )


def _validation_error(exc: serializers.ValidationError):
    return error_response(
        code="VALIDATION_ERROR",
        message=str(exc.detail),
        http_status=status.HTTP_400_BAD_REQUEST,
    )


def _quantity_error(exc: InvalidQuantityError):
    return error_response(
        code="INVALID_QUANTITY",
        message=str(exc),
        http_status=status.HTTP_400_BAD_REQUEST,
    )


# =====================================================
# HELPERS
# =====================================================

def _session_key(request) -> str:
    session = request.session
    if not session.session_key:
        session.save()
        # Forces the session cookie onto the response
        session.modified = True
    return session.session_key


def _cart_cache(request) -> SessionCartCache:
    return SessionCartCache(_session_key(request))


def _load_cart(request, *, cache: SessionCartCache | None = None) -> CartService:
    return CartService.restore(cache=cache or _cart_cache(request))


def _cart_response(cart: CartService, http_status=status.HTTP_200_OK):
    return Response(CartSnapshotSerializer(cart.snapshot()).data, status=http_status)


def _blank_to_none(value):
    value = (value or "").strip() if isinstance(value, str) else value
    return value or None


# =====================================================
# CART VIEWS
# =====================================================

class CartView(APIView):
    """
    Retrieve the session's cart with derived totals.
    """

    permission_classes = [AllowAny]
    serializer_class = CartSnapshotSerializer

    @extend_schema(responses={200: CartSnapshotSerializer}, description="Current session cart")
    def get(self, request):
        return _cart_response(_load_cart(request))


class AddCartItemView(APIView):
    """
    Add one unit of a product (or one of its variants) to the cart.

    - SIMPLE product: variant_id must be omitted.
    - VARIABLE product: variant_id is required; a positive variant price
      overrides the product base price.
    """

    permission_classes = [AllowAny]
    serializer_class = CartSnapshotSerializer

    @extend_schema(
        request=CartLineRefInputSerializer,
        responses={200: CartSnapshotSerializer},
        description="Add one unit of a product to the cart",
        examples=[
            OpenApiExample("Simple product", value={"product_id": "SKU-001"}, request_only=True),
            OpenApiExample(
                "Variant",
                value={"product_id": "SKU-TEE", "variant_id": "tee-m"},
                request_only=True,
            ),
        ],
    )
    def post(self, request):
        serializer = CartLineRefInputSerializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
        except serializers.ValidationError as exc:
            return _validation_error(exc)

        product_id = serializer.validated_data["product_id"].strip()
        variant_id = _blank_to_none(serializer.validated_data.get("variant_id"))

        product = ProductRepository().get(product_id)
        if product is None:
            return error_response(
                code="PRODUCT_NOT_FOUND",
                message=f"Product {product_id} not found",
                http_status=status.HTTP_404_NOT_FOUND,
            )

        cart = _load_cart(request)

        try:
            if product.is_variable:
                if not variant_id:
                    return error_response(
                        code="VARIANT_REQUIRED",
                        message=f"Product {product_id} has variants; variant_id is required",
                        http_status=status.HTTP_400_BAD_REQUEST,
                    )
                cart.add_variant(product, variant_id)
            else:
                cart.add_item(product)
        except UnknownVariantError as exc:
            return error_response(
                code="VARIANT_NOT_FOUND",
                message=str(exc),
                http_status=status.HTTP_404_NOT_FOUND,
            )
        except InvalidQuantityError as exc:
            return _quantity_error(exc)

        return _cart_response(cart)


class UpdateCartItemView(APIView):
    """
    Set the quantity of one line. quantity <= 0 removes the line.
    """

    permission_classes = [AllowAny]
    serializer_class = CartSnapshotSerializer

    @extend_schema(
        request=UpdateCartItemInputSerializer,
        responses={200: CartSnapshotSerializer},
        description="Set a cart line's quantity",
    )
    def patch(self, request):
        serializer = UpdateCartItemInputSerializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
        except serializers.ValidationError as exc:
            return _validation_error(exc)

        data = serializer.validated_data
        cart = _load_cart(request)
        try:
            cart.set_quantity(
                data["product_id"].strip(),
                data["quantity"],
                variant_id=_blank_to_none(data.get("variant_id")),
            )
        except InvalidQuantityError as exc:
            return _quantity_error(exc)
        return _cart_response(cart)


class RemoveCartItemView(APIView):
    permission_classes = [AllowAny]
    serializer_class = CartSnapshotSerializer

    @extend_schema(
        request=CartLineRefInputSerializer,
        responses={200: CartSnapshotSerializer},
        description="Remove a line from the cart",
    )
    def post(self, request):
        serializer = CartLineRefInputSerializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
        except serializers.ValidationError as exc:
            return _validation_error(exc)

        data = serializer.validated_data
        cart = _load_cart(request)
        cart.remove_item(
            data["product_id"].strip(),
            variant_id=_blank_to_none(data.get("variant_id")),
        )
        return _cart_response(cart)


class SetCartCustomerView(APIView):
    """
    Attach a customer to the cart (customer_id = null detaches).
    """

    permission_classes = [AllowAny]
    serializer_class = CartSnapshotSerializer

    @extend_schema(
        request=SetCustomerInputSerializer,
        responses={200: CartSnapshotSerializer},
        description="Select the cart's customer",
    )
    def post(self, request):
        serializer = SetCustomerInputSerializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
        except serializers.ValidationError as exc:
            return _validation_error(exc)

        customer_id = _blank_to_none(serializer.validated_data.get("customer_id"))
        customer = None
        if customer_id:
            customer = CustomerRepository().get(customer_id)
            if customer is None:
                return error_response(
                    code="CUSTOMER_NOT_FOUND",
                    message=f"Customer {customer_id} not found",
                    http_status=status.HTTP_404_NOT_FOUND,
                )

        cart = _load_cart(request)
        cart.set_customer(customer)
        return _cart_response(cart)


class SetCartDiscountView(APIView):
    permission_classes = [AllowAny]
    serializer_class = CartSnapshotSerializer

    @extend_schema(
        request=SetDiscountInputSerializer,
        responses={200: CartSnapshotSerializer},
        description="Set the cart discount (flat amount or percent of subtotal)",
        examples=[
            OpenApiExample("Percent", value={"kind": "percent", "value": "10"}, request_only=True),
            OpenApiExample("Amount", value={"kind": "amount", "value": "5.00"}, request_only=True),
        ],
    )
    def post(self, request):
        serializer = SetDiscountInputSerializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
        except serializers.ValidationError as exc:
            return _validation_error(exc)

        cart = _load_cart(request)
        try:
            cart.set_discount(
                serializer.validated_data["kind"],
                serializer.validated_data["value"],
            )
        except InvalidDiscountError as exc:
            return error_response(
                code="INVALID_DISCOUNT",
                message=str(exc),
                http_status=status.HTTP_400_BAD_REQUEST,
            )
        return _cart_response(cart)


class ClearCartView(APIView):
    """
    Clear the cart (items, customer, discount and any draft binding).
    """

    permission_classes = [AllowAny]
    serializer_class = CartSnapshotSerializer

    @extend_schema(responses={200: CartSnapshotSerializer}, description="Clear the cart")
    def delete(self, request):
        cart = _load_cart(request)
        cart.clear()
        return _cart_response(cart)


# =====================================================
# DRAFTS
# =====================================================

class SaveDraftView(APIView):
    """
    Park the cart as a draft order and empty the cart.
    """

    permission_classes = [AllowAny]
    serializer_class = OrderSerializer

    @extend_schema(request=None, responses={201: OrderSerializer}, description="Save the cart as a draft order")
    def post(self, request):
        cart = _load_cart(request)

        try:
            order = OrderLifecycleManager(cart=cart).save_draft()
            payload = OrderSerializer(OrderRepository().get(order.pk)).data
        except CheckoutError as exc:
            return error_response(code=exc.code, message=str(exc), http_status=exc.http_status)
        except Exception as exc:
            logger.exception("Draft save failed")
            return error_response(
                code="UNKNOWN_ERROR",
                message=f"Draft save failed: {exc}",
                http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response(payload, status=status.HTTP_201_CREATED)


class ResumeDraftView(APIView):
    """
    Load a draft order back into the cart (replacing its contents).
    """

    permission_classes = [AllowAny]
    serializer_class = CartSnapshotSerializer

    @extend_schema(
        request=ResumeDraftInputSerializer,
        responses={200: CartSnapshotSerializer},
        description="Resume a draft order into the cart",
    )
    def post(self, request):
        serializer = ResumeDraftInputSerializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
        except serializers.ValidationError as exc:
            return _validation_error(exc)

        order_id = serializer.validated_data["order_id"].strip()
        order = OrderRepository().get(order_id)
        if order is None:
            return error_response(
                code="ORDER_NOT_FOUND",
                message=f"Order {order_id} not found",
                http_status=status.HTTP_404_NOT_FOUND,
            )

        cart = _load_cart(request)
        try:
            OrderLifecycleManager(cart=cart).resume_draft(order)
        except CheckoutError as exc:
            return error_response(code=exc.code, message=str(exc), http_status=exc.http_status)

        return _cart_response(cart)


# =====================================================
# CHECKOUT
# =====================================================

class CheckoutView(APIView):
    """
    Checkout the session cart into a completed Order.

    Calls:
    - sales.services.checkout_orchestrator.OrderLifecycleManager.checkout()
    """

    permission_classes = [AllowAny]
    serializer_class = CheckoutResultSerializer

    @extend_schema(
        request=CheckoutInputSerializer,
        responses={200: CheckoutResultSerializer},
        description="Checkout the cart (cash requires amount_tendered >= total)",
        examples=[
            OpenApiExample(
                "Cash",
                value={"payment_method": "cash", "amount_tendered": "50.00"},
                request_only=True,
            ),
            OpenApiExample("Card", value={"payment_method": "card"}, request_only=True),
        ],
    )
    def post(self, request):
        serializer = CheckoutInputSerializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
        except serializers.ValidationError as exc:
            return _validation_error(exc)

        cache = _cart_cache(request)

        # The cart is read only while this request holds the lock
        if not cache.acquire_checkout_lock():
            exc = CheckoutInProgressError("A checkout is already in progress for this cart")
            return error_response(code=exc.code, message=str(exc), http_status=exc.http_status)

        try:
            cart = _load_cart(request, cache=cache)
            # The lock seen by restore() is our own
            cart.processing = False
            result = OrderLifecycleManager(cart=cart).checkout(
                serializer.validated_data["payment_method"],
                serializer.validated_data.get("amount_tendered"),
            )
        except CheckoutError as exc:
            return error_response(code=exc.code, message=str(exc), http_status=exc.http_status)
        except Exception as exc:
            logger.exception("Checkout failed")
            return error_response(
                code="UNKNOWN_ERROR",
                message=f"Checkout failed: {exc}",
                http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        finally:
            cache.release_checkout_lock()

        payload = {
            "order": OrderRepository().get(result.order.pk),
            "customer": result.customer,
            "change_due": result.change_due,
        }
        return Response(CheckoutResultSerializer(payload).data, status=status.HTTP_200_OK)
