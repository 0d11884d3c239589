# products/repositories.py

"""
PRODUCT REPOSITORY (CATALOG ACCESS FOR THE TRANSACTION ENGINE)

Purpose:
- The only catalog surface the POS engine needs:
    get(product_id) -> Product | None
    update(product_id, fields) -> None
- Catalog CRUD lives elsewhere; this class never creates or deletes products.

Rules:
- `fields` is a partial update. Scalar keys map to Product columns.
- The special key "variants" is a list of {"id": <variant_id>, "inventory": <int>}
  and updates the matching ProductVariant rows.
"""

from __future__ import annotations

from django.utils import timezone

from products.models import Product, ProductVariant

# Products with less stock than this are flagged on the sales summary
LOW_STOCK_THRESHOLD = 5

_PRODUCT_FIELDS = {"title", "category", "base_price", "inventory", "kind", "description"}


class ProductRepository:
    def get(self, product_id, *, for_update: bool = False) -> Product | None:
        if not product_id:
            return None

        qs = Product.objects.all()
        if for_update:
            qs = qs.select_for_update()

        return qs.prefetch_related("variants").filter(pk=product_id).first()

    def update(self, product_id, fields: dict) -> None:
        fields = dict(fields or {})
        variants = fields.pop("variants", None)

        unknown = set(fields) - _PRODUCT_FIELDS
        if unknown:
            raise ValueError(f"Unknown product fields: {sorted(unknown)}")

        if fields:
            Product.objects.filter(pk=product_id).update(**fields, updated_at=timezone.now())

        for v in variants or []:
            ProductVariant.objects.filter(
                product_id=product_id,
                variant_id=v["id"],
            ).update(inventory=int(v["inventory"]))

    def count_low_stock(self, threshold: int = LOW_STOCK_THRESHOLD) -> int:
        # Variable products are judged by their aggregate inventory
        return Product.objects.filter(inventory__lt=threshold).count()
