# sales/admin.py

from django.contrib import admin

from sales.models import Order, OrderAuditLog, OrderItem


# ======================================================
# ORDER ADMIN
# ======================================================


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    readonly_fields = ("position", "sku", "title", "price", "qty", "variant_name", "variant_id")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "status",
        "total",
        "payment_method",
        "customer_id",
        "created_at",
    )
    readonly_fields = (
        "id",
        "customer_id",
        "subtotal",
        "discount",
        "discount_kind",
        "discount_value",
        "tax",
        "total",
        "status",
        "payment_method",
        "created_at",
        "completed_at",
    )
    search_fields = ("id", "customer_id")
    list_filter = ("status", "payment_method", "created_at")
    inlines = [OrderItemInline]


# ======================================================
# AUDIT LOG ADMIN
# ======================================================


@admin.register(OrderAuditLog)
class OrderAuditLogAdmin(admin.ModelAdmin):
    list_display = ("order_id", "action", "created_at")
    readonly_fields = ("id", "order_id", "action", "details", "created_at")
    search_fields = ("order_id",)
    list_filter = ("action",)

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
