# store/models/settings.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models


class StoreSettings(models.Model):
    """
    Store-wide settings row(s), keyed by a short id.

    The transaction engine reads exactly one row: id="general".
    tax_rate is a FRACTION (0.08 means 8%), applied to the discounted subtotal.
    """

    GENERAL = "general"

    id = models.CharField(max_length=32, primary_key=True, default=GENERAL)

    store_name = models.CharField(max_length=255, default="My Store")
    address = models.TextField(blank=True, default="")
    phone = models.CharField(max_length=50, blank=True, default="")
    email = models.EmailField(blank=True, default="")

    tax_rate = models.DecimalField(
        max_digits=7,
        decimal_places=4,
        default=Decimal("0.0000"),
        help_text="Flat tax rate as a fraction, e.g. 0.0800 for 8%.",
    )

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "store settings"
        verbose_name_plural = "store settings"

    def clean(self):
        if self.tax_rate is None or Decimal(self.tax_rate) < 0:
            raise ValidationError("tax_rate cannot be negative")

    def __str__(self):
        return f"{self.store_name} ({self.id})"
