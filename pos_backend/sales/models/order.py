# sales/models/order.py

import uuid
from decimal import Decimal

from django.db import models
from django.utils import timezone


def _new_order_id() -> str:
    return str(uuid.uuid4())


class Order(models.Model):
    """
    A POS sale record: a parked DRAFT or a COMPLETED checkout.

    GUARANTEES:
    - id is stable across the draft -> completed transition
    - Immutable financial record once completed (never demoted)
    - customer_id is a reference only; customers are never embedded

    MONEY:
    - Amounts are stored with 6 decimal places so the persisted record keeps
      the pricing engine's full precision. Rounding to 2dp is presentation-only.
    """

    STATUS_DRAFT = "draft"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    STATUS_ENUM = {
        STATUS_DRAFT: {"label": "Draft", "terminal": False, "resumable": True},
        STATUS_COMPLETED: {"label": "Completed", "terminal": True, "resumable": False},
        STATUS_CANCELLED: {"label": "Cancelled", "terminal": True, "resumable": False},
    }

    DISCOUNT_AMOUNT = "amount"
    DISCOUNT_PERCENT = "percent"

    DISCOUNT_KIND_CHOICES = [
        (DISCOUNT_AMOUNT, "Amount"),
        (DISCOUNT_PERCENT, "Percent"),
    ]

    PAYMENT_CASH = "cash"
    PAYMENT_CARD = "card"
    PAYMENT_UPI = "upi"

    PAYMENT_METHOD_CHOICES = [
        (PAYMENT_CASH, "Cash"),
        (PAYMENT_CARD, "Card"),
        (PAYMENT_UPI, "UPI"),
    ]

    @classmethod
    def get_status_enum(cls):
        return cls.STATUS_ENUM

    id = models.CharField(
        max_length=64,
        primary_key=True,
        default=_new_order_id,
        editable=False,
    )

    customer_id = models.CharField(max_length=64, null=True, blank=True, db_index=True)

    subtotal = models.DecimalField(max_digits=18, decimal_places=6, default=Decimal("0"))
    discount = models.DecimalField(max_digits=18, decimal_places=6, default=Decimal("0"))
    discount_kind = models.CharField(
        max_length=16,
        choices=DISCOUNT_KIND_CHOICES,
        default=DISCOUNT_AMOUNT,
    )
    discount_value = models.DecimalField(
        max_digits=18,
        decimal_places=6,
        default=Decimal("0"),
        help_text="Raw discount input (amount or percent) kept for later editing.",
    )
    tax = models.DecimalField(max_digits=18, decimal_places=6, default=Decimal("0"))
    total = models.DecimalField(max_digits=18, decimal_places=6, default=Decimal("0"))

    status = models.CharField(
        max_length=16,
        choices=STATUS_CHOICES,
        default=STATUS_DRAFT,
    )

    payment_method = models.CharField(
        max_length=16,
        choices=PAYMENT_METHOD_CHOICES,
        null=True,
        blank=True,
    )

    created_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["created_at"], name="sales_order_created_2c7e1f_idx"),
            models.Index(fields=["status"], name="sales_order_status_6a0b3d_idx"),
        ]

    _IMMUTABLE_FIELDS_AFTER_COMPLETION = (
        "customer_id",
        "subtotal",
        "discount",
        "discount_kind",
        "discount_value",
        "tax",
        "total",
        "payment_method",
        "created_at",
        "completed_at",
    )

    @property
    def is_locked(self) -> bool:
        return self.status in (self.STATUS_COMPLETED, self.STATUS_CANCELLED)

    def _validate_immutable(self, previous: "Order"):
        if not previous.is_locked:
            return

        if self.status != previous.status:
            raise ValueError(
                f"Order is immutable once {previous.status}. "
                f"Status change {previous.status} -> {self.status} is not allowed."
            )

        for field in self._IMMUTABLE_FIELDS_AFTER_COMPLETION:
            if getattr(self, field) != getattr(previous, field):
                raise ValueError(
                    f"Order is immutable once {previous.status}. "
                    f"Field '{field}' cannot be changed."
                )

    def save(self, *args, **kwargs):
        if self.pk and not self._state.adding:
            previous = Order.objects.filter(pk=self.pk).first()
            if previous is not None:
                self._validate_immutable(previous)

        if self.status == self.STATUS_COMPLETED and not self.completed_at:
            self.completed_at = timezone.now()

        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.id} | {self.status} | {self.total}"
