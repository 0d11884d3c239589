from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from customers.models import Customer
from products.models import Product, ProductVariant
from store.models import StoreSettings


class Command(BaseCommand):
    help = "Seed a demo catalog (simple + variable products), a walk-in customer and store settings"

    def add_arguments(self, parser):
        parser.add_argument(
            "--tax-rate",
            default="0.08",
            help="Tax rate fraction for the 'general' settings row (default 0.08)",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write(self.style.WARNING("Seeding catalog..."))

        # -------------------------------
        # STORE SETTINGS
        # -------------------------------
        StoreSettings.objects.update_or_create(
            id=StoreSettings.GENERAL,
            defaults={
                "store_name": "Demo Store",
                "tax_rate": Decimal(str(options["tax_rate"])),
            },
        )

        # -------------------------------
        # SIMPLE PRODUCTS
        # -------------------------------
        simple_products = [
            ("COF-250", "Ground Coffee 250g", "Groceries", "8.50", 40),
            ("TEA-GRN", "Green Tea (20 bags)", "Groceries", "4.25", 60),
            ("MUG-WHT", "White Mug", "Homeware", "6.00", 25),
            ("NB-A5", "A5 Notebook", "Stationery", "3.75", 100),
        ]

        for sku, title, category, price, inventory in simple_products:
            Product.objects.update_or_create(
                sku=sku,
                defaults={
                    "title": title,
                    "category": category,
                    "base_price": Decimal(price),
                    "inventory": inventory,
                    "kind": Product.Kind.SIMPLE,
                },
            )

        # -------------------------------
        # VARIABLE PRODUCTS
        # -------------------------------
        variable_products = [
            (
                "TEE-BASIC",
                "Basic T-Shirt",
                "Apparel",
                "15.00",
                [
                    ("tee-s", "Small", "0", 10),
                    ("tee-m", "Medium", "0", 12),
                    ("tee-l", "Large", "17.00", 8),
                ],
            ),
            (
                "CAP-LOGO",
                "Logo Cap",
                "Apparel",
                "12.00",
                [
                    ("cap-blk", "Black", "0", 20),
                    ("cap-red", "Red", "13.50", 5),
                ],
            ),
        ]

        for sku, title, category, price, variants in variable_products:
            product, _ = Product.objects.update_or_create(
                sku=sku,
                defaults={
                    "title": title,
                    "category": category,
                    "base_price": Decimal(price),
                    "kind": Product.Kind.VARIABLE,
                },
            )

            for position, (variant_id, v_title, v_price, v_inventory) in enumerate(variants):
                ProductVariant.objects.update_or_create(
                    product=product,
                    variant_id=variant_id,
                    defaults={
                        "title": v_title,
                        "price": Decimal(v_price),
                        "inventory": v_inventory,
                        "position": position,
                    },
                )

            product.inventory = sum(v[3] for v in variants)
            product.save(update_fields=["inventory", "updated_at"])

        # -------------------------------
        # CUSTOMERS
        # -------------------------------
        Customer.objects.get_or_create(
            id="walk-in",
            defaults={"name": "Walk-in Customer"},
        )

        self.stdout.write(
            self.style.SUCCESS(
                f"Catalog seeded: {len(simple_products)} simple, "
                f"{len(variable_products)} variable products."
            )
        )
