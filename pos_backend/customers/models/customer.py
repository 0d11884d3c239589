# customers/models/customer.py

import uuid

from django.db import models


def _new_customer_id() -> str:
    return uuid.uuid4().hex


class Customer(models.Model):
    """
    Customer directory entry.

    Carts and orders reference customers BY ID only (never embedded), so an
    order keeps its customer_id even if this row is later edited or removed.
    """

    id = models.CharField(
        max_length=64,
        primary_key=True,
        default=_new_customer_id,
        editable=False,
    )

    name = models.CharField(max_length=255, db_index=True)
    phone = models.CharField(max_length=50, blank=True, default="", db_index=True)
    email = models.EmailField(blank=True, default="")
    address = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        phone = (self.phone or "").strip()
        if phone:
            return f"{self.name} ({phone})"
        return self.name
