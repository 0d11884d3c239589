# sales/api/filters.py

import django_filters

from sales.models import Order


class OrderFilter(django_filters.FilterSet):
    """
    Order history filters.

    ?status=draft|completed|cancelled
    ?payment_method=cash|card|upi
    ?customer_id=<id>
    ?date_from=YYYY-MM-DD&date_to=YYYY-MM-DD   (inclusive, on created_at)
    """

    status = django_filters.ChoiceFilter(choices=Order.STATUS_CHOICES)
    payment_method = django_filters.ChoiceFilter(choices=Order.PAYMENT_METHOD_CHOICES)
    customer_id = django_filters.CharFilter()
    date_from = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    date_to = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")

    class Meta:
        model = Order
        fields = ["status", "payment_method", "customer_id"]
