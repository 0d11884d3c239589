# sales/api/viewsets/order.py

"""
======================================================
PATH: sales/api/viewsets/order.py
======================================================
ORDER VIEWSET (HISTORY + SUMMARY)

Purpose:
- Order history for the POS UI (newest first).
- Retrieve a single order record (receipt reprint, draft picker).
- Sales summary for the dashboard (GET /orders/summary/).

Rules:
- Read-only: orders are written by the checkout orchestrator only.
- Filters come from sales.api.filters.OrderFilter (django-filter).
- The summary ignores history filters and pagination.
======================================================
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from products.repositories import ProductRepository
from sales.api.filters import OrderFilter
from sales.repositories import OrderRepository
from sales.serializers import OrderSerializer, OrderSummarySerializer


class OrderViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = OrderSerializer
    permission_classes = [AllowAny]
    filter_backends = [DjangoFilterBackend]
    filterset_class = OrderFilter

    def get_queryset(self):
        return OrderRepository().list()

    @extend_schema(
        responses={200: OrderSummarySerializer},
        description="Revenue, order count, 7-day sales, top products and low-stock count",
    )
    @action(detail=False, methods=["get"], url_path="summary", filter_backends=[], pagination_class=None)
    def summary(self, request):
        data = OrderRepository().summary()
        data["low_stock_count"] = ProductRepository().count_low_stock()
        return Response(OrderSummarySerializer(data).data)
