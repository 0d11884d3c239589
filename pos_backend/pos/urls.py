"""
PATH: pos/urls.py

POS URLS

Purpose:
- Session cart lifecycle
- Cart item operations
- Draft save / resume
- Checkout (finalizes the cart into an Order via the checkout orchestrator)
"""

from django.urls import path

from pos.views.api import (
    AddCartItemView,
    CartView,
    CheckoutView,
    ClearCartView,
    RemoveCartItemView,
    ResumeDraftView,
    SaveDraftView,
    SetCartCustomerView,
    SetCartDiscountView,
    UpdateCartItemView,
)

app_name = "pos"

urlpatterns = [
    path("cart/", CartView.as_view(), name="cart"),
    path("cart/clear/", ClearCartView.as_view(), name="clear-cart"),

    path("cart/items/add/", AddCartItemView.as_view(), name="add-cart-item"),
    path("cart/items/update/", UpdateCartItemView.as_view(), name="update-cart-item"),
    path("cart/items/remove/", RemoveCartItemView.as_view(), name="remove-cart-item"),

    path("cart/customer/", SetCartCustomerView.as_view(), name="cart-customer"),
    path("cart/discount/", SetCartDiscountView.as_view(), name="cart-discount"),

    path("cart/draft/", SaveDraftView.as_view(), name="save-draft"),
    path("cart/resume/", ResumeDraftView.as_view(), name="resume-draft"),

    path("checkout/", CheckoutView.as_view(), name="checkout"),
]
