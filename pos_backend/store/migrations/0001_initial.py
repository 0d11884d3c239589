# store/migrations/0001_initial.py

from decimal import Decimal

from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="StoreSettings",
            fields=[
                (
                    "id",
                    models.CharField(
                        default="general",
                        max_length=32,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("store_name", models.CharField(default="My Store", max_length=255)),
                ("address", models.TextField(blank=True, default="")),
                ("phone", models.CharField(blank=True, default="", max_length=50)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                (
                    "tax_rate",
                    models.DecimalField(
                        decimal_places=4,
                        default=Decimal("0.0000"),
                        help_text="Flat tax rate as a fraction, e.g. 0.0800 for 8%.",
                        max_digits=7,
                    ),
                ),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "store settings",
                "verbose_name_plural": "store settings",
            },
        ),
    ]
