# sales/models/order_audit.py

"""
ORDER AUDIT LOG (IMMUTABLE)

Purpose:
- Append-only trail of every order write made by the POS engine
  (draft saves, re-saves, checkouts).
- Written inside the same transaction as the order write, so an entry exists
  if and only if the write committed.
"""

import uuid

from django.db import models
from django.utils import timezone


class OrderAuditLog(models.Model):
    """
    Created once. Never updated. Never deleted.
    """

    ACTION_DRAFT_SAVED = "draft_saved"
    ACTION_CHECKOUT_COMPLETED = "checkout_completed"

    ACTION_CHOICES = [
        (ACTION_DRAFT_SAVED, "Draft saved"),
        (ACTION_CHECKOUT_COMPLETED, "Checkout completed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order_id = models.CharField(max_length=64, db_index=True)
    action = models.CharField(max_length=32, choices=ACTION_CHOICES)
    details = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at"]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise RuntimeError("OrderAuditLog records are immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise RuntimeError("OrderAuditLog records cannot be deleted")

    def __str__(self):
        return f"{self.action} | {self.order_id}"
