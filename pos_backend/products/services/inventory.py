# products/services/inventory.py

"""
======================================================
PATH: products/services/inventory.py
======================================================
INVENTORY RECONCILER

Purpose:
- Apply sale-time stock decrements to the catalog, line by line, in cart order.
- Product granularity for SIMPLE products, variant granularity for VARIABLE ones.

Rules:
- Unknown product id: the line is skipped (catalog entry already removed).
- Decrements are clamped at 0 (stock never goes negative).
- Variant decrement recomputes the product aggregate as SUM(variant.inventory).
- Each line is its own read-modify-write. reconcile() joins the caller's transaction
  (checkout wraps the order write and every line in one atomic block).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import DatabaseError, transaction

from products.repositories import ProductRepository

logger = logging.getLogger(__name__)


class ReconciliationError(Exception):
    def __init__(self, message, *, product_id=None):
        super().__init__(message)
        self.product_id = product_id


@dataclass(frozen=True)
class ReconciliationOutcome:
    product_id: str
    variant_id: str | None
    quantity: int
    previous_inventory: int | None = None
    remaining_inventory: int | None = None
    skipped: bool = False


def clamped_decrement(current, quantity) -> int:
    return max(0, int(current or 0) - int(quantity or 0))


class InventoryReconciler:
    def __init__(self, products: ProductRepository | None = None):
        self.products = products or ProductRepository()

    @transaction.atomic
    def reconcile(self, lines) -> list[ReconciliationOutcome]:
        return [self.apply_line(line) for line in lines]

    def apply_line(self, line) -> ReconciliationOutcome:
        product_id = line.product_id
        variant_id = getattr(line, "variant_id", None)
        quantity = int(line.quantity)

        try:
            product = self.products.get(product_id, for_update=True)
        except DatabaseError as exc:
            raise ReconciliationError(
                f"Could not load product {product_id}: {exc}", product_id=product_id
            ) from exc

        if product is None:
            logger.warning(
                "Skipping stock decrement for unknown product",
                extra={"product_id": product_id},
            )
            return ReconciliationOutcome(
                product_id=product_id,
                variant_id=variant_id,
                quantity=quantity,
                skipped=True,
            )

        variants = list(product.variants.all())

        if variant_id and variants:
            fields = self._variant_fields(variants, variant_id=variant_id, quantity=quantity)
        else:
            fields = {"inventory": clamped_decrement(product.inventory, quantity)}

        try:
            self.products.update(product_id, fields)
        except DatabaseError as exc:
            raise ReconciliationError(
                f"Could not update stock for {product_id}: {exc}", product_id=product_id
            ) from exc

        logger.info(
            "Stock decremented",
            extra={
                "product_id": product_id,
                "variant_id": variant_id,
                "quantity": quantity,
                "remaining": fields["inventory"],
            },
        )

        return ReconciliationOutcome(
            product_id=product_id,
            variant_id=variant_id,
            quantity=quantity,
            previous_inventory=int(product.inventory or 0),
            remaining_inventory=fields["inventory"],
        )

    @staticmethod
    def _variant_fields(variants, *, variant_id, quantity) -> dict:
        updated = []
        for v in variants:
            inventory = int(v.inventory or 0)
            if v.variant_id == variant_id:
                inventory = clamped_decrement(inventory, quantity)
            updated.append({"id": v.variant_id, "inventory": inventory})

        return {
            "variants": updated,
            "inventory": sum(v["inventory"] for v in updated),
        }
