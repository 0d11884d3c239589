# sales/repositories.py

"""
ORDER REPOSITORY

Purpose:
- Upsert order records by id (no separate create/update distinction for callers).
- Read orders for history screens and draft resume.
- Aggregate orders into the sales summary (revenue, daily sales, top products).

Rules:
- put() replaces the order row and its items wholesale.
- put() enforces lifecycle rules: a completed order is never overwritten.
- Every put() appends an OrderAuditLog entry in the same transaction.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone

from sales.models import Order, OrderAuditLog, OrderItem
from sales.services.order_lifecycle import validate_transition

_AUDIT_ACTIONS = {
    Order.STATUS_DRAFT: OrderAuditLog.ACTION_DRAFT_SAVED,
    Order.STATUS_COMPLETED: OrderAuditLog.ACTION_CHECKOUT_COMPLETED,
}


class OrderRepository:
    def get(self, order_id) -> Order | None:
        if not order_id:
            return None
        return Order.objects.prefetch_related("items").filter(pk=order_id).first()

    def list(self, *, status: str | None = None):
        qs = Order.objects.prefetch_related("items").order_by("-created_at")
        if status:
            qs = qs.filter(status=status)
        return qs

    def summary(self, *, today=None, days: int = 7, top: int = 5, recent: int = 5) -> dict:
        """
        Sales summary for the dashboard.

        - Revenue, order count and average order value cover every order
          that is not cancelled (drafts included).
        - daily_sales has one entry per day for the last `days` days, oldest
          first, with zero for days without orders.
        - top_products ranks item titles by units sold.
        - recent_orders are the newest non-draft orders.
        """
        today = today or timezone.localdate()
        counted = Order.objects.exclude(status=Order.STATUS_CANCELLED)

        totals = counted.aggregate(revenue=Sum("total"), orders=Count("id"))
        revenue = totals["revenue"] or Decimal("0")
        order_count = totals["orders"] or 0

        start = today - timedelta(days=days - 1)
        sales_by_day = dict(
            counted.filter(created_at__date__gte=start, created_at__date__lte=today)
            .annotate(day=TruncDate("created_at"))
            .order_by()
            .values("day")
            .annotate(sales=Sum("total"))
            .values_list("day", "sales")
        )
        daily_sales = []
        for offset in range(days):
            day = start + timedelta(days=offset)
            daily_sales.append({"date": day, "sales": sales_by_day.get(day) or Decimal("0")})

        top_products = list(
            OrderItem.objects.exclude(order__status=Order.STATUS_CANCELLED)
            .values("title")
            .annotate(qty=Sum("qty"))
            .order_by("-qty", "title")[:top]
        )

        recent_orders = list(
            Order.objects.prefetch_related("items")
            .exclude(status=Order.STATUS_DRAFT)
            .order_by("-created_at")[:recent]
        )

        return {
            "total_revenue": revenue,
            "total_orders": order_count,
            "average_order_value": revenue / order_count if order_count else Decimal("0"),
            "daily_sales": daily_sales,
            "top_products": top_products,
            "recent_orders": recent_orders,
        }

    @transaction.atomic
    def put(self, order: Order, items: list[OrderItem]) -> Order:
        existing = Order.objects.select_for_update().filter(pk=order.pk).first()

        validate_transition(
            order_id=order.pk,
            from_status=getattr(existing, "status", None),
            target_status=order.status,
        )

        if existing is not None:
            # Row exists: force an UPDATE instead of an INSERT.
            order._state.adding = False
            existing.items.all().delete()

        order.save()

        for position, item in enumerate(items):
            item.order = order
            item.position = position
        OrderItem.objects.bulk_create(items)

        action = _AUDIT_ACTIONS.get(order.status)
        if action:
            OrderAuditLog.objects.create(
                order_id=order.pk,
                action=action,
                details={
                    "status": order.status,
                    "total": str(order.total),
                    "payment_method": order.payment_method,
                    "item_count": len(items),
                    "resaved": existing is not None,
                },
            )

        return order
