# products/models/product.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models


class Product(models.Model):
    """
    Represents a sellable catalog entry.

    STOCK MODEL (IMPORTANT):
    - A SIMPLE product stores its stock directly in `inventory`.
    - A VARIABLE product stores stock per ProductVariant; `inventory` is the
      aggregate (sum over variants) and is recomputed on every variant decrement.
    - Stock is never negative (PositiveIntegerField + clamped decrements).

    Identity:
    - sku is the primary key (orders reference products by sku).
    """

    class Kind(models.TextChoices):
        SIMPLE = "simple", "Simple"
        VARIABLE = "variable", "Variable"

    sku = models.CharField(max_length=128, primary_key=True)
    title = models.CharField(max_length=255, db_index=True)
    category = models.CharField(max_length=128, blank=True, default="")

    # Base selling price (variants may override)
    base_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )

    inventory = models.PositiveIntegerField(default=0)

    kind = models.CharField(
        max_length=16,
        choices=Kind.choices,
        default=Kind.SIMPLE,
    )

    description = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["title"]
        indexes = [
            models.Index(fields=["category"], name="products_pr_categor_5f1b2e_idx"),
            models.Index(fields=["kind"], name="products_pr_kind_8c4d7a_idx"),
        ]

    def __str__(self):
        return f"{self.title} ({self.sku})"

    def clean(self):
        if self.base_price is None or Decimal(self.base_price) < 0:
            raise ValidationError("base_price cannot be negative")

    @property
    def is_variable(self) -> bool:
        return self.kind == self.Kind.VARIABLE


class ProductVariant(models.Model):
    """
    A purchasable configuration (size, option...) of a VARIABLE product.

    Rules:
    - variant_id is unique within its product.
    - price > 0 overrides the product base price; 0 means "use base price".
    - position keeps the catalog's variant list order.
    """

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="variants",
    )

    variant_id = models.CharField(max_length=128)
    title = models.CharField(max_length=255)

    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )

    inventory = models.PositiveIntegerField(default=0)
    position = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["position", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "variant_id"],
                name="uniq_variant_id_per_product",
            ),
        ]

    def __str__(self):
        return f"{self.product_id} / {self.title}"

    def effective_price(self) -> Decimal:
        price = Decimal(self.price or 0)
        if price > 0:
            return price
        return Decimal(self.product.base_price)
