# sales/serializers/order.py

"""
ORDER RECORD SERIALIZERS (READ-ONLY)

Wire shape of a persisted order:

    {id, customerId?, items: [{sku, title, price, qty, variantName?, variantId?}],
     subtotal, discount, discountKind, discountValue, tax, total,
     status, paymentMethod?, createdAt}

Money is stored at full precision and rounded to 2dp (half-up) here only.
"""

from decimal import ROUND_HALF_UP

from rest_framework import serializers

from sales.models import Order, OrderItem


def money_field(**kwargs):
    return serializers.DecimalField(
        max_digits=18,
        decimal_places=2,
        coerce_to_string=False,
        rounding=ROUND_HALF_UP,
        read_only=True,
        **kwargs,
    )


class OrderItemSerializer(serializers.ModelSerializer):
    price = money_field()
    lineTotal = money_field(source="line_total")
    variantName = serializers.CharField(source="variant_name", read_only=True, allow_null=True)
    variantId = serializers.CharField(source="variant_id", read_only=True, allow_null=True)

    class Meta:
        model = OrderItem
        fields = [
            "sku",
            "title",
            "price",
            "qty",
            "variantName",
            "variantId",
            "lineTotal",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    customerId = serializers.CharField(source="customer_id", read_only=True, allow_null=True)
    items = OrderItemSerializer(many=True, read_only=True)

    subtotal = money_field()
    discount = money_field()
    discountKind = serializers.CharField(source="discount_kind", read_only=True)
    discountValue = serializers.DecimalField(
        source="discount_value",
        max_digits=18,
        decimal_places=6,
        coerce_to_string=False,
        read_only=True,
    )
    tax = money_field()
    total = money_field()

    paymentMethod = serializers.CharField(source="payment_method", read_only=True, allow_null=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    completedAt = serializers.DateTimeField(source="completed_at", read_only=True, allow_null=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "customerId",
            "items",
            "subtotal",
            "discount",
            "discountKind",
            "discountValue",
            "tax",
            "total",
            "status",
            "paymentMethod",
            "createdAt",
            "completedAt",
        ]
        read_only_fields = fields
