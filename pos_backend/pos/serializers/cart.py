# pos/serializers/cart.py

"""
CART SNAPSHOT SERIALIZER

Purpose:
- Return the session cart in a frontend-friendly shape.
- Totals are server-derived (pricing engine); the client never sends them.
- Money is rounded to 2dp (half-up) at this boundary only.
"""

from rest_framework import serializers

from customers.serializers import CustomerSerializer
from sales.serializers import OrderSerializer, money_field


class CartLineSerializer(serializers.Serializer):
    productId = serializers.CharField()
    variantId = serializers.CharField(allow_null=True)
    variantName = serializers.CharField(allow_null=True)
    title = serializers.CharField()
    unitPrice = money_field()
    quantity = serializers.IntegerField()
    lineTotal = money_field()


class CartSnapshotSerializer(serializers.Serializer):
    items = CartLineSerializer(many=True, read_only=True)
    customer = CustomerSerializer(read_only=True, allow_null=True)

    discountKind = serializers.CharField(read_only=True)
    discountValue = serializers.DecimalField(
        max_digits=18, decimal_places=6, coerce_to_string=False, read_only=True
    )

    subtotal = money_field()
    discount = money_field()
    tax = money_field()
    taxRate = serializers.DecimalField(
        max_digits=7, decimal_places=4, coerce_to_string=False, read_only=True
    )
    total = money_field()

    itemCount = serializers.IntegerField(read_only=True)
    boundOrderId = serializers.CharField(read_only=True, allow_null=True)


class CheckoutResultSerializer(serializers.Serializer):
    order = OrderSerializer(read_only=True)
    customer = CustomerSerializer(read_only=True, allow_null=True)
    changeDue = money_field(source="change_due")
