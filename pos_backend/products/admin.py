# products/admin.py
"""
=====================================================
PATH: products/admin.py
=====================================================

Admin rules:
- Products are catalog master data (edited here or by external CRUD screens).
- Variants are edited inline on their VARIABLE product.
- The aggregate `inventory` of a VARIABLE product is derived from its variants
  on save, so the list view never disagrees with the variant rows.
"""

from __future__ import annotations

from django.contrib import admin

from products.models import Product, ProductVariant


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 0
    fields = ("position", "variant_id", "title", "price", "inventory")
    ordering = ("position",)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("sku", "title", "category", "kind", "base_price", "inventory")
    list_filter = ("kind", "category")
    search_fields = ("sku", "title")
    inlines = [ProductVariantInline]

    def save_related(self, request, form, formsets, change):
        super().save_related(request, form, formsets, change)

        product = form.instance
        if product.is_variable:
            total = sum(int(v.inventory or 0) for v in product.variants.all())
            Product.objects.filter(pk=product.pk).update(inventory=total)
