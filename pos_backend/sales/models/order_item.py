# sales/models/order_item.py

"""
ORDER ITEM (SNAPSHOT)

Represents a snapshot of one cart line at the moment the order was written.

Notes:
- sku/title/price/variant_name are copied from the cart line, never joined
  back to the live catalog (later catalog edits do not rewrite history).
- variant_id is persisted so a resumed draft keeps its exact variant even when
  two variants of a product share a title. Rows written before variant ids were
  stored have variant_id = NULL.
- Items of a completed order are immutable.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from .order import Order


class OrderItem(models.Model):
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="items",
    )

    position = models.PositiveIntegerField(default=0)

    sku = models.CharField(max_length=128)
    title = models.CharField(max_length=255)

    price = models.DecimalField(max_digits=18, decimal_places=6)
    qty = models.PositiveIntegerField()

    variant_name = models.CharField(max_length=255, null=True, blank=True)
    variant_id = models.CharField(max_length=128, null=True, blank=True)

    class Meta:
        ordering = ["position", "id"]

    @property
    def line_total(self) -> Decimal:
        return Decimal(self.price) * Decimal(int(self.qty or 0))

    def save(self, *args, **kwargs):
        if not self._state.adding and self.order.is_locked:
            raise ValidationError("OrderItem records are immutable once the order is completed")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.order.is_locked:
            raise ValidationError("OrderItem records cannot be deleted once the order is completed")
        return super().delete(*args, **kwargs)

    def __str__(self):
        return f"{self.sku} x {self.qty}"
