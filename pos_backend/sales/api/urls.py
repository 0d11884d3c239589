# sales/api/urls.py

"""
SALES API URLS

Provides:
    GET /api/sales/orders/             order history (?status= etc.)
    GET /api/sales/orders/<id>/        one order record
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from sales.api.viewsets import OrderViewSet

router = DefaultRouter()
router.register(r"orders", OrderViewSet, basename="orders")

urlpatterns = [
    path("", include(router.urls)),
]
