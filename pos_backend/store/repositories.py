# store/repositories.py

"""
SETTINGS REPOSITORY

get("general") -> StoreSettings

The "general" row is created with defaults (tax_rate = 0) the first time it is
read, so a fresh database can sell immediately.
"""

from __future__ import annotations

from store.models import StoreSettings


class SettingsRepository:
    def get(self, key: str = StoreSettings.GENERAL) -> StoreSettings:
        settings_row, _ = StoreSettings.objects.get_or_create(id=key)
        return settings_row
