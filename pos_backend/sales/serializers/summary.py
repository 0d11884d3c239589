# sales/serializers/summary.py

"""
SALES SUMMARY SERIALIZER (DASHBOARD)

    {totalRevenue, totalOrders, averageOrderValue, lowStockCount,
     dailySales: [{date, sales}], topProducts: [{title, qty}],
     recentOrders: [<order record>]}
"""

from rest_framework import serializers

from sales.serializers.order import OrderSerializer, money_field


class DailySalesSerializer(serializers.Serializer):
    date = serializers.DateField(read_only=True)
    sales = money_field()


class TopProductSerializer(serializers.Serializer):
    title = serializers.CharField(read_only=True)
    qty = serializers.IntegerField(read_only=True)


class OrderSummarySerializer(serializers.Serializer):
    totalRevenue = money_field(source="total_revenue")
    totalOrders = serializers.IntegerField(source="total_orders", read_only=True)
    averageOrderValue = money_field(source="average_order_value")
    lowStockCount = serializers.IntegerField(source="low_stock_count", read_only=True)
    dailySales = DailySalesSerializer(source="daily_sales", many=True, read_only=True)
    topProducts = TopProductSerializer(source="top_products", many=True, read_only=True)
    recentOrders = OrderSerializer(source="recent_orders", many=True, read_only=True)
