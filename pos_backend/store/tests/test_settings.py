# store/tests/test_settings.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from store.models import StoreSettings
from store.repositories import SettingsRepository


class SettingsRepositoryTests(TestCase):
    def test_general_row_is_created_with_zero_tax(self):
        settings_row = SettingsRepository().get("general")

        self.assertEqual(settings_row.pk, StoreSettings.GENERAL)
        self.assertEqual(settings_row.tax_rate, Decimal("0"))
        self.assertEqual(StoreSettings.objects.count(), 1)

    def test_existing_row_is_returned(self):
        StoreSettings.objects.create(id="general", store_name="Corner Shop", tax_rate=Decimal("0.0825"))

        settings_row = SettingsRepository().get()

        self.assertEqual(settings_row.store_name, "Corner Shop")
        self.assertEqual(settings_row.tax_rate, Decimal("0.0825"))

    def test_negative_tax_rate_is_invalid(self):
        with self.assertRaises(ValidationError):
            StoreSettings(tax_rate=Decimal("-0.01")).clean()
