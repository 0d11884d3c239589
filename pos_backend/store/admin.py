# store/admin.py

from django.contrib import admin

from store.models import StoreSettings


@admin.register(StoreSettings)
class StoreSettingsAdmin(admin.ModelAdmin):
    list_display = ("id", "store_name", "tax_rate", "updated_at")
    readonly_fields = ("updated_at",)
