# sales/tests/test_orders_api.py

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from products.models import Product
from sales.models import Order, OrderItem
from sales.repositories import OrderRepository


class OrderHistoryApiTests(TestCase):
    """
    GUARANTEES:
    - Order history is newest first and filterable by status
    - Records use the camelCase wire shape with 2dp money
    """

    def setUp(self):
        self.client = APIClient()
        repo = OrderRepository()
        now = timezone.now()

        completed = Order(
            id="ord-completed",
            customer_id="c1",
            subtotal=Decimal("200"),
            discount=Decimal("20"),
            discount_kind=Order.DISCOUNT_PERCENT,
            discount_value=Decimal("10"),
            tax=Decimal("18.005"),
            total=Decimal("198.005"),
            status=Order.STATUS_COMPLETED,
            payment_method=Order.PAYMENT_CARD,
            created_at=now,
        )
        repo.put(
            completed,
            [OrderItem(sku="V", title="Tee", price=Decimal("100"), qty=2, variant_name="Large", variant_id="v2")],
        )

        draft = Order(id="ord-draft", subtotal=Decimal("5"), total=Decimal("5"), created_at=now - timedelta(hours=1))
        repo.put(draft, [OrderItem(sku="P", title="Pen", price=Decimal("5"), qty=1)])

    def test_list_is_newest_first(self):
        res = self.client.get(reverse("orders-list"))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["count"], 2)
        self.assertEqual([o["id"] for o in res.data["results"]], ["ord-completed", "ord-draft"])

    def test_filter_by_status(self):
        res = self.client.get(reverse("orders-list"), {"status": "draft"})

        self.assertEqual([o["id"] for o in res.data["results"]], ["ord-draft"])

    def test_invalid_status_filter_is_rejected(self):
        res = self.client.get(reverse("orders-list"), {"status": "shipped"})

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_retrieve_record_shape(self):
        res = self.client.get(reverse("orders-detail", args=["ord-completed"]))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        data = res.data
        self.assertEqual(data["customerId"], "c1")
        self.assertEqual(data["discountKind"], "percent")
        self.assertEqual(data["paymentMethod"], "card")
        self.assertEqual(data["tax"], Decimal("18.01"))
        self.assertEqual(data["total"], Decimal("198.01"))
        self.assertEqual(
            data["items"][0],
            {
                "sku": "V",
                "title": "Tee",
                "price": Decimal("100.00"),
                "qty": 2,
                "variantName": "Large",
                "variantId": "v2",
                "lineTotal": Decimal("200.00"),
            },
        )
        self.assertIsNotNone(data["createdAt"])

    def test_retrieve_unknown_order(self):
        res = self.client.get(reverse("orders-detail", args=["nope"]))

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)


class OrderSummaryApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        repo = OrderRepository()
        now = timezone.now()

        repo.put(
            Order(
                id="sale-1",
                subtotal=Decimal("10.005"),
                total=Decimal("10.005"),
                status=Order.STATUS_COMPLETED,
                payment_method=Order.PAYMENT_CASH,
                created_at=now,
            ),
            [OrderItem(sku="P", title="Pen", price=Decimal("10.005"), qty=1)],
        )
        repo.put(
            Order(id="draft-1", subtotal=Decimal("5"), total=Decimal("5"), created_at=now - timedelta(seconds=1)),
            [OrderItem(sku="P", title="Pen", price=Decimal("5"), qty=1)],
        )

        Product.objects.create(sku="LOW", title="Low", base_price=Decimal("1.00"), inventory=4)
        Product.objects.create(sku="OK", title="Ok", base_price=Decimal("1.00"), inventory=5)

    def test_summary_shape(self):
        res = self.client.get(reverse("orders-summary"))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        data = res.data
        self.assertEqual(data["totalRevenue"], Decimal("15.01"))
        self.assertEqual(data["totalOrders"], 2)
        self.assertEqual(data["averageOrderValue"], Decimal("7.50"))
        self.assertEqual(data["lowStockCount"], 1)
        self.assertEqual(len(data["dailySales"]), 7)
        self.assertEqual(data["dailySales"][-1]["date"], timezone.localdate().isoformat())
        self.assertEqual(data["dailySales"][-1]["sales"], Decimal("15.01"))
        self.assertEqual(data["topProducts"], [{"title": "Pen", "qty": 2}])
        self.assertEqual([o["id"] for o in data["recentOrders"]], ["sale-1"])

    def test_summary_ignores_history_filters(self):
        res = self.client.get(reverse("orders-summary"), {"status": "bogus"})

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertNotIn("results", res.data)
