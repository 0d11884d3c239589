# sales/tests/test_orders.py

from datetime import timedelta
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase
from django.utils import timezone

from sales.models import Order, OrderAuditLog, OrderItem
from sales.repositories import OrderRepository
from sales.services.order_lifecycle import (
    InvalidOrderTransitionError,
    can_resume,
    can_transition,
    validate_transition,
)


def _order(order_id="ord-1", status=Order.STATUS_DRAFT, total="10", created_at=None):
    order = Order(
        id=order_id,
        subtotal=Decimal(total),
        total=Decimal(total),
        status=status,
        payment_method=Order.PAYMENT_CASH if status == Order.STATUS_COMPLETED else None,
    )
    if created_at is not None:
        order.created_at = created_at
    return order


def _items(*specs):
    return [
        OrderItem(sku=sku, title=sku, price=Decimal(price), qty=qty)
        for sku, price, qty in specs
    ]


class OrderLifecycleRuleTests(TestCase):
    def test_allowed_transitions(self):
        self.assertTrue(can_transition(from_status=None, to_status=Order.STATUS_DRAFT))
        self.assertTrue(can_transition(from_status=None, to_status=Order.STATUS_COMPLETED))
        self.assertTrue(can_transition(from_status=Order.STATUS_DRAFT, to_status=Order.STATUS_DRAFT))
        self.assertTrue(can_transition(from_status=Order.STATUS_DRAFT, to_status=Order.STATUS_COMPLETED))

    def test_completed_is_never_demoted(self):
        self.assertFalse(can_transition(from_status=Order.STATUS_COMPLETED, to_status=Order.STATUS_DRAFT))
        self.assertFalse(can_transition(from_status=Order.STATUS_COMPLETED, to_status=Order.STATUS_COMPLETED))

        with self.assertRaises(InvalidOrderTransitionError):
            validate_transition(
                order_id="x",
                from_status=Order.STATUS_COMPLETED,
                target_status=Order.STATUS_DRAFT,
            )

    def test_cancelled_is_unreachable(self):
        self.assertFalse(can_transition(from_status=None, to_status=Order.STATUS_CANCELLED))
        self.assertFalse(can_transition(from_status=Order.STATUS_DRAFT, to_status=Order.STATUS_CANCELLED))

    def test_only_drafts_can_be_resumed(self):
        self.assertTrue(can_resume(_order(status=Order.STATUS_DRAFT)))
        self.assertFalse(can_resume(_order(status=Order.STATUS_COMPLETED)))


class OrderRepositoryTests(TestCase):
    """
    GUARANTEES:
    - put() is an upsert by id
    - Re-saving a draft replaces its items
    - A completed order can't be overwritten
    - Every put() writes an audit entry
    """

    def setUp(self):
        self.repo = OrderRepository()

    def test_put_creates_then_replaces_draft(self):
        self.repo.put(_order(total="10"), _items(("A", "5", 2)))
        self.repo.put(_order(total="3"), _items(("B", "1", 1), ("C", "2", 1)))

        order = self.repo.get("ord-1")
        self.assertEqual(Order.objects.count(), 1)
        self.assertEqual(order.total, Decimal("3"))
        self.assertEqual([i.sku for i in order.items.all()], ["B", "C"])
        self.assertEqual([i.position for i in order.items.all()], [0, 1])

    def test_draft_can_be_promoted_to_completed(self):
        self.repo.put(_order(), _items(("A", "5", 2)))
        self.repo.put(_order(status=Order.STATUS_COMPLETED), _items(("A", "5", 2)))

        order = self.repo.get("ord-1")
        self.assertEqual(order.status, Order.STATUS_COMPLETED)
        self.assertIsNotNone(order.completed_at)

    def test_completed_order_cannot_be_overwritten(self):
        self.repo.put(_order(status=Order.STATUS_COMPLETED), _items(("A", "5", 2)))

        with self.assertRaises(InvalidOrderTransitionError):
            self.repo.put(_order(status=Order.STATUS_DRAFT), _items(("A", "5", 1)))

        order = self.repo.get("ord-1")
        self.assertEqual(order.status, Order.STATUS_COMPLETED)
        self.assertEqual(order.items.count(), 1)

    def test_completed_order_fields_are_immutable(self):
        self.repo.put(_order(status=Order.STATUS_COMPLETED), _items(("A", "5", 2)))
        order = Order.objects.get(pk="ord-1")
        order.total = Decimal("999")

        with self.assertRaises(ValueError):
            order.save()

    def test_completed_order_items_cannot_be_deleted(self):
        self.repo.put(_order(status=Order.STATUS_COMPLETED), _items(("A", "5", 2)))
        item = OrderItem.objects.get(order_id="ord-1")

        with self.assertRaises(ValidationError):
            item.delete()

    def test_every_put_is_audited(self):
        self.repo.put(_order(), _items(("A", "5", 2)))
        self.repo.put(_order(status=Order.STATUS_COMPLETED), _items(("A", "5", 2)))

        actions = sorted(
            OrderAuditLog.objects.filter(order_id="ord-1").values_list("action", flat=True)
        )
        self.assertEqual(
            actions,
            sorted([OrderAuditLog.ACTION_DRAFT_SAVED, OrderAuditLog.ACTION_CHECKOUT_COMPLETED]),
        )

        draft_entry = OrderAuditLog.objects.get(
            order_id="ord-1", action=OrderAuditLog.ACTION_DRAFT_SAVED
        )
        self.assertFalse(draft_entry.details["resaved"])

        entry = OrderAuditLog.objects.get(
            order_id="ord-1", action=OrderAuditLog.ACTION_CHECKOUT_COMPLETED
        )
        self.assertTrue(entry.details["resaved"])
        self.assertEqual(entry.details["item_count"], 1)

    def test_audit_entries_are_immutable(self):
        self.repo.put(_order(), _items(("A", "5", 2)))
        entry = OrderAuditLog.objects.get(order_id="ord-1")

        with self.assertRaises(RuntimeError):
            entry.save()
        with self.assertRaises(RuntimeError):
            entry.delete()

    def test_list_filters_by_status_newest_first(self):
        now = timezone.now()
        self.repo.put(_order("a", created_at=now - timedelta(minutes=2)), _items(("A", "1", 1)))
        self.repo.put(
            _order("b", status=Order.STATUS_COMPLETED, created_at=now - timedelta(minutes=1)),
            _items(("A", "1", 1)),
        )
        self.repo.put(_order("c", created_at=now), _items(("A", "1", 1)))

        self.assertEqual([o.pk for o in self.repo.list()], ["c", "b", "a"])
        self.assertEqual([o.pk for o in self.repo.list(status=Order.STATUS_DRAFT)], ["c", "a"])


def _seed_sales_history(now):
    """
    today:      completed 100 (Tee x2), draft 10 (Tee x1), cancelled 999 (Mug x50)
    2 days ago: completed 50 (Pen x5)
    10 days ago: completed 7 (Widget x1)
    """
    repo = OrderRepository()
    repo.put(
        _order("today", status=Order.STATUS_COMPLETED, total="100", created_at=now),
        _items(("TEE", "50", 2)),
    )
    repo.put(
        _order("draft", total="10", created_at=now - timedelta(seconds=1)),
        [OrderItem(sku="TEE", title="TEE", price=Decimal("10"), qty=1)],
    )
    repo.put(
        _order("older", status=Order.STATUS_COMPLETED, total="50", created_at=now - timedelta(days=2)),
        _items(("PEN", "10", 5)),
    )
    repo.put(
        _order("oldest", status=Order.STATUS_COMPLETED, total="7", created_at=now - timedelta(days=10)),
        _items(("WIDGET", "7", 1)),
    )

    cancelled = Order.objects.create(
        id="cancelled",
        subtotal=Decimal("999"),
        total=Decimal("999"),
        status=Order.STATUS_CANCELLED,
        created_at=now - timedelta(minutes=1),
    )
    OrderItem.objects.create(order=cancelled, sku="MUG", title="MUG", price=Decimal("19.98"), qty=50)


class OrderSummaryTests(TestCase):
    """
    GUARANTEES:
    - Cancelled orders never count towards revenue, daily sales or top products
    - daily_sales covers the last 7 days, oldest first, zero-filled
    - recent_orders skips drafts
    """

    def setUp(self):
        self.now = timezone.now()
        _seed_sales_history(self.now)
        self.summary = OrderRepository().summary(today=timezone.localdate(self.now))

    def test_revenue_excludes_cancelled_orders(self):
        self.assertEqual(self.summary["total_revenue"], Decimal("167"))
        self.assertEqual(self.summary["total_orders"], 4)
        self.assertEqual(self.summary["average_order_value"], Decimal("41.75"))

    def test_daily_sales_cover_last_seven_days(self):
        daily = self.summary["daily_sales"]
        today = timezone.localdate(self.now)

        self.assertEqual(len(daily), 7)
        self.assertEqual(daily[0]["date"], today - timedelta(days=6))
        self.assertEqual(daily[-1]["date"], today)
        self.assertEqual(daily[-1]["sales"], Decimal("110"))
        self.assertEqual(daily[-3]["sales"], Decimal("50"))
        self.assertEqual(sum(d["sales"] for d in daily), Decimal("160"))

    def test_top_products_rank_by_units_sold(self):
        self.assertEqual(
            self.summary["top_products"],
            [
                {"title": "PEN", "qty": 5},
                {"title": "TEE", "qty": 3},
                {"title": "WIDGET", "qty": 1},
            ],
        )

    def test_recent_orders_skip_drafts(self):
        self.assertEqual(
            [o.pk for o in self.summary["recent_orders"]],
            ["today", "cancelled", "older", "oldest"],
        )


class EmptyOrderSummaryTests(TestCase):
    def test_empty_history(self):
        summary = OrderRepository().summary()

        self.assertEqual(summary["total_revenue"], Decimal("0"))
        self.assertEqual(summary["total_orders"], 0)
        self.assertEqual(summary["average_order_value"], Decimal("0"))
        self.assertEqual(summary["top_products"], [])
        self.assertTrue(all(d["sales"] == Decimal("0") for d in summary["daily_sales"]))
